"""Tests for login attempt recording and the lockout policy."""

import json
from datetime import timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from helpers.time_utils import ensure_aware
from models.security_policy import SecurityPolicy
from repositories import db_models
from repositories.account_lockout_repository import AccountLockoutRepository
from repositories.audit_log_repository import AuditLogRepository
from repositories.login_attempt_repository import LoginAttemptRepository
from services.lockout_service import LockoutService

UA = "Mozilla/5.0 (X11; Linux x86_64)"
IP = "10.0.0.1"


@pytest.fixture
def service(db_session: Session, policy: SecurityPolicy, clock) -> LockoutService:
    return LockoutService(db_session, policy=policy, clock=clock)


def fail(service: LockoutService, username: str = "alice", times: int = 1) -> None:
    for _ in range(times):
        service.record_login_attempt(username, IP, UA, False, "invalid_password")


class TestRecordLoginAttempt:
    """Tests for recording attempts."""

    def test_records_failed_attempt(self, service, login_attempts) -> None:
        """A failure is stored with its reason and the clock's timestamp."""
        service.record_login_attempt("alice", IP, UA, False, "invalid_password")

        attempts = login_attempts("alice")
        assert len(attempts) == 1
        assert attempts[0].success is False
        assert attempts[0].failure_reason == "invalid_password"
        assert attempts[0].ip_address == IP
        assert ensure_aware(attempts[0].attempted_at) == service.clock()

    def test_success_keeps_failure_reason(self, service, login_attempts) -> None:
        """A reason passed with a successful attempt is stored as given."""
        service.record_login_attempt("alice", IP, UA, True, "password_expired")

        attempt = login_attempts("alice")[0]
        assert attempt.success is True
        assert attempt.failure_reason == "password_expired"

    def test_oversized_client_strings_are_cut(
        self, service, login_attempts, lockouts
    ) -> None:
        """IP, user agent and reason are cut to their column sizes."""
        long_ip = "1" * 100
        for _ in range(5):
            service.record_login_attempt("alice", long_ip, "U" * 600, False, "r" * 150)

        attempts = login_attempts("alice")
        assert len(attempts) == 5
        assert attempts[0].ip_address == "1" * 45
        assert attempts[0].user_agent == "U" * 500
        assert attempts[0].failure_reason == "r" * 100
        assert service.is_account_locked("alice") is True
        assert lockouts("alice")[0].ip_address == "1" * 45

    def test_resolves_user_id_for_known_user(
        self, service, login_attempts, test_user
    ) -> None:
        """Attempts for an existing username are linked to the user row."""
        fail(service)

        attempt = login_attempts("alice")[0]
        assert attempt.user_id == test_user.id

    def test_unknown_username_has_no_user_id(self, service, login_attempts) -> None:
        """Attempts for unknown usernames keep user_id empty."""
        fail(service, username="ghost")

        attempt = login_attempts("ghost")[0]
        assert attempt.user_id is None

    @pytest.mark.parametrize("username", ["", "   "])
    def test_blank_username_is_skipped(self, service, row_count, username) -> None:
        """Blank usernames are logged and skipped without raising."""
        service.record_login_attempt(username, IP, UA, False, "invalid_password")

        assert row_count(db_models.LoginAttempt) == 0

    @pytest.mark.parametrize("ip_address", ["", "  "])
    def test_blank_ip_is_skipped(self, service, row_count, ip_address) -> None:
        """Blank IP addresses are logged and skipped without raising."""
        service.record_login_attempt("alice", ip_address, UA, False)

        assert row_count(db_models.LoginAttempt) == 0
        assert service.is_account_locked("alice") is False

    def test_attempts_are_append_only(self, service, login_attempts, clock) -> None:
        """Row count never decreases and timestamps follow call order."""
        previous = 0
        for i in range(7):
            service.record_login_attempt("alice", IP, UA, i % 2 == 0, None)
            clock.advance(seconds=30)
            rows = login_attempts("alice")
            assert len(rows) == previous + 1
            previous = len(rows)

        timestamps = [row.attempted_at for row in login_attempts("alice")]
        assert timestamps == sorted(timestamps)

    def test_insert_failure_is_swallowed(self, service, row_count) -> None:
        """A failed insert is logged, not raised, and skips lockout evaluation."""
        with patch.object(
            LoginAttemptRepository,
            "create_attempt",
            side_effect=OperationalError("INSERT", {}, Exception("db down")),
        ):
            with patch.object(LockoutService, "_evaluate_lockout") as evaluate:
                service.record_login_attempt("alice", IP, UA, False)
                evaluate.assert_not_called()

        assert row_count(db_models.LoginAttempt) == 0


class TestLockoutThreshold:
    """Tests for the OPEN -> LOCKED transition."""

    def test_four_failures_do_not_lock(self, service) -> None:
        """One failure short of the threshold leaves the account open."""
        fail(service, times=4)

        assert service.is_account_locked("alice") is False

    def test_fifth_failure_locks(self, service) -> None:
        """The threshold-reaching failure locks the account immediately."""
        fail(service, times=5)

        assert service.is_account_locked("alice") is True

    def test_lockout_row_contents(self, service, lockouts, clock) -> None:
        """The lockout spans the configured duration and counts the failures."""
        fail(service, times=5)

        rows = lockouts("alice")
        assert len(rows) == 1
        lockout = rows[0]
        assert lockout.is_active is True
        assert lockout.attempt_count == 5
        assert lockout.ip_address == IP
        assert ensure_aware(lockout.locked_until) == clock() + timedelta(minutes=15)

    def test_lockout_writes_audit_entry(self, service, db_session) -> None:
        """Locking writes an account_locked audit entry with the reason."""
        fail(service, times=5)

        entries = AuditLogRepository(db_session).get_logs(action="account_locked")
        assert len(entries) == 1
        assert entries[0].success is False
        assert entries[0].username == "alice"
        assert json.loads(entries[0].details) == {
            "reason": "max_login_attempts_exceeded",
            "attempt_count": 5,
        }

    def test_each_failure_past_threshold_adds_lockout(
        self, service, lockouts
    ) -> None:
        """Failures beyond the threshold each open another lockout episode."""
        fail(service, times=7)

        rows = lockouts("alice")
        assert [lockout.attempt_count for lockout in rows] == [5, 6, 7]

    def test_successes_do_not_count(self, service) -> None:
        """Only failures count toward the threshold."""
        fail(service, times=4)
        service.record_login_attempt("alice", IP, UA, True)

        assert service.is_account_locked("alice") is False

    def test_other_usernames_unaffected(self, service) -> None:
        """A lockout applies to its own username only."""
        fail(service, times=5)

        assert service.is_account_locked("bob") is False

    def test_custom_threshold(self, db_session, clock) -> None:
        """The policy threshold is honoured."""
        strict = LockoutService(
            db_session,
            policy=SecurityPolicy(max_login_attempts=2, bcrypt_rounds=4),
            clock=clock,
        )
        fail(strict, times=2)

        assert strict.is_account_locked("alice") is True


class TestFailureWindow:
    """Tests for the trailing failure window."""

    def test_old_failures_fall_out_of_window(self, service, clock) -> None:
        """Three failures at minute 0 and two at minute 18 do not lock."""
        fail(service, times=3)
        clock.advance(minutes=18)
        fail(service, times=2)

        assert service.is_account_locked("alice") is False

    def test_failures_inside_window_lock(self, service, clock) -> None:
        """Failures spread over 14 minutes still lock."""
        fail(service, times=3)
        clock.advance(minutes=14)
        fail(service, times=2)

        assert service.is_account_locked("alice") is True


class TestLockoutExpiry:
    """Tests for the automatic LOCKED -> OPEN transition."""

    def test_lock_expires_without_cleanup(self, service, lockouts, clock) -> None:
        """After locked_until passes the account reads as open, row untouched."""
        fail(service, times=5)
        clock.advance(minutes=15, seconds=1)

        assert service.is_account_locked("alice") is False
        lockout = lockouts("alice")[0]
        assert lockout.is_active is True

    def test_still_locked_at_boundary(self, service, clock) -> None:
        """The lock holds up to and including locked_until."""
        fail(service, times=5)
        clock.advance(minutes=15)

        assert service.is_account_locked("alice") is True

    def test_stale_active_row_in_past(self, service, db_session, clock) -> None:
        """An active row whose window ended earlier does not lock."""
        AccountLockoutRepository(db_session).create_lockout(
            username="alice",
            locked_at=clock() - timedelta(hours=2),
            locked_until=clock() - timedelta(hours=1),
            attempt_count=5,
        )

        assert service.is_account_locked("alice") is False


class TestUnlockAccount:
    """Tests for manual unlock."""

    def test_unlock_clears_lock(self, service) -> None:
        """Unlocking a locked account opens it."""
        fail(service, times=5)

        assert service.unlock_account("alice") is True
        assert service.is_account_locked("alice") is False

    def test_unlock_deactivates_every_active_row(self, service, lockouts) -> None:
        """All active lockout rows of the username are deactivated."""
        fail(service, times=7)

        service.unlock_account("alice")

        rows = lockouts("alice")
        assert rows
        assert all(lockout.is_active is False for lockout in rows)

    def test_unlock_is_idempotent(self, service) -> None:
        """Unlocking an open account twice returns True both times."""
        assert service.unlock_account("alice") is True
        assert service.unlock_account("alice") is True
        assert service.is_account_locked("alice") is False

    def test_unlock_writes_audit_entry(self, service, db_session) -> None:
        """Unlocking records who did it and how many lockouts were cleared."""
        fail(service, times=6)

        service.unlock_account("alice", unlocked_by="supervisor")

        entries = AuditLogRepository(db_session).get_logs(
            action="account_unlocked_manually"
        )
        assert len(entries) == 1
        assert entries[0].success is True
        assert json.loads(entries[0].details) == {
            "unlocked_by": "supervisor",
            "lockouts_cleared": 2,
        }

    def test_unlock_defaults_actor_to_admin(self, service, db_session) -> None:
        """Without an actor the audit entry names 'admin'."""
        service.unlock_account("alice")

        entry = AuditLogRepository(db_session).get_logs(
            action="account_unlocked_manually"
        )[0]
        assert json.loads(entry.details)["unlocked_by"] == "admin"

    def test_unlock_returns_false_on_persistence_error(self, service) -> None:
        """A failed update reports False."""
        with patch.object(
            AccountLockoutRepository,
            "deactivate_for_username",
            side_effect=SQLAlchemyError("db down"),
        ):
            assert service.unlock_account("alice") is False

    def test_new_failures_after_unlock_relock(self, service, clock) -> None:
        """Unlocking does not erase attempts; the next failure relocks."""
        fail(service, times=5)
        service.unlock_account("alice")

        fail(service)

        assert service.is_account_locked("alice") is True


class TestLockCheckFailureMode:
    """Tests for is_account_locked when the store fails."""

    def test_fails_open_by_default(self, service) -> None:
        """Default policy reports unlocked on a persistence error."""
        with patch.object(
            AccountLockoutRepository,
            "has_current_lockout",
            side_effect=SQLAlchemyError("db down"),
        ):
            assert service.is_account_locked("alice") is False

    def test_fails_closed_when_configured(self, db_session, clock) -> None:
        """Fail-closed policy reports locked on a persistence error."""
        closed = LockoutService(
            db_session,
            policy=SecurityPolicy(lockout_check_fail_open=False, bcrypt_rounds=4),
            clock=clock,
        )
        with patch.object(
            AccountLockoutRepository,
            "has_current_lockout",
            side_effect=SQLAlchemyError("db down"),
        ):
            assert closed.is_account_locked("alice") is True

    def test_lockout_write_failure_keeps_attempt(self, service, login_attempts) -> None:
        """A failed lockout insert never undoes the recorded attempt."""
        fail(service, times=4)
        with patch.object(
            AccountLockoutRepository,
            "create_lockout",
            side_effect=SQLAlchemyError("db down"),
        ):
            fail(service)

        assert len(login_attempts("alice")) == 5
        assert service.is_account_locked("alice") is False


class TestLockoutStatus:
    """Tests for get_lockout_status."""

    def test_open_account(self, service) -> None:
        """An open account reports no timing data."""
        status = service.get_lockout_status("alice")

        assert status.is_locked is False
        assert status.locked_until is None
        assert status.remaining_seconds == 0

    def test_remaining_seconds(self, service, clock) -> None:
        """Remaining time counts down with the clock."""
        fail(service, times=5)
        clock.advance(minutes=5)

        status = service.get_lockout_status("alice")

        assert status.is_locked is True
        assert status.remaining_seconds == 10 * 60
        assert status.attempt_count == 5

    def test_reports_newest_lockout(self, service, clock) -> None:
        """With several active rows the most recent one is reported."""
        fail(service, times=5)
        clock.advance(minutes=1)
        fail(service)

        status = service.get_lockout_status("alice")

        assert status.attempt_count == 6
        assert status.remaining_seconds == 15 * 60

    def test_status_on_persistence_error(self, service) -> None:
        """A failed lookup falls back to the fail-open answer."""
        with patch.object(
            AccountLockoutRepository,
            "get_current_lockout",
            side_effect=SQLAlchemyError("db down"),
        ):
            status = service.get_lockout_status("alice")

        assert status.is_locked is False
        assert status.locked_until is None


class TestCompactExpiredLockouts:
    """Tests for lockout compaction."""

    def test_deactivates_only_expired_rows(self, service, lockouts, clock) -> None:
        """Expired rows are flipped, current rows are left alone."""
        fail(service, username="old", times=5)
        clock.advance(minutes=20)
        fail(service, username="new", times=5)

        assert service.compact_expired_lockouts() == 1

        assert lockouts("old")[0].is_active is False
        assert lockouts("new")[0].is_active is True

    def test_does_not_change_lock_decisions(self, service, clock) -> None:
        """Lock answers are identical before and after compaction."""
        fail(service, username="old", times=5)
        clock.advance(minutes=20)
        fail(service, username="new", times=5)
        before = {u: service.is_account_locked(u) for u in ("old", "new", "none")}

        service.compact_expired_lockouts()

        after = {u: service.is_account_locked(u) for u in ("old", "new", "none")}
        assert before == after == {"old": False, "new": True, "none": False}

    def test_returns_zero_on_persistence_error(self, service) -> None:
        """A failed compaction reports zero rows."""
        with patch.object(
            AccountLockoutRepository,
            "deactivate_expired",
            side_effect=SQLAlchemyError("db down"),
        ):
            assert service.compact_expired_lockouts() == 0
