"""
Standardized pagination parameters for the security endpoints.
"""

from fastapi import Query
from typing import Annotated

# Offset pagination for the admin audit trail
PaginationSkip = Annotated[int, Query(ge=0, description="Number of records to skip")]
PaginationLimitLarge = Annotated[
    int, Query(ge=1, le=200, description="Maximum number of records to return")
]

# Page-number pagination for a user's activity history
ActivityPage = Annotated[int, Query(ge=1, description="Page number, starting at 1")]
ActivityPageLimit = Annotated[
    int, Query(ge=1, le=100, description="Entries per page")
]
