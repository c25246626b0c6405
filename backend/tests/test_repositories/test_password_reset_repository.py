"""Tests for PasswordResetRepository."""

from datetime import datetime, timedelta, timezone

from repositories.password_reset_repository import PasswordResetRepository

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


class TestPasswordResetRepository:
    """Test cases for PasswordResetRepository."""

    def _create(self, db_session, user, expires_in=timedelta(minutes=30)):
        repo = PasswordResetRepository(db_session)
        return repo, repo.create_token(
            user_id=user.id,
            email=user.email,
            expires_at=NOW + expires_in,
            created_at=NOW,
        )

    def test_generate_token_is_url_safe(self):
        """Tokens are 43 URL-safe characters."""
        token = PasswordResetRepository.generate_token()
        assert len(token) == 43
        assert all(c.isalnum() or c in "-_" for c in token)

    def test_generate_token_randomness(self):
        """Generated tokens differ."""
        tokens = {PasswordResetRepository.generate_token() for _ in range(20)}
        assert len(tokens) == 20

    def test_create_token(self, db_session, test_user):
        """A created token is unused and tied to the user."""
        _, record = self._create(db_session, test_user)

        assert record.id is not None
        assert record.user_id == test_user.id
        assert record.is_used is False

    def test_get_valid_token(self, db_session, test_user):
        """An unused token before its expiry is valid."""
        repo, record = self._create(db_session, test_user)

        assert repo.get_valid_token(record.token, NOW).id == record.id

    def test_expired_token_not_valid(self, db_session, test_user):
        """A token at or after its expiry is not returned."""
        repo, record = self._create(db_session, test_user)

        assert repo.get_valid_token(record.token, NOW + timedelta(minutes=30)) is None

    def test_used_token_not_valid(self, db_session, test_user):
        """A consumed token is not returned."""
        repo, record = self._create(db_session, test_user)

        repo.mark_as_used(record.id)
        repo.commit()

        assert repo.get_valid_token(record.token, NOW) is None
        assert repo.get_by_token(record.token).is_used is True

    def test_unknown_token(self, db_session):
        """Lookups for unknown tokens return None."""
        repo = PasswordResetRepository(db_session)

        assert repo.get_valid_token("missing", NOW) is None
        assert repo.get_by_token("missing") is None
