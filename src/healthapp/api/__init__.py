"""HealthApp API client layer -- re-exports the primary client classes."""

from healthapp.api.client import (
    ApiClient,
    PendingRequest,
    RefreshTokenPolicy,
    SessionExpiredError,
)
from healthapp.api.manager import ApiManager

__all__ = [
    "ApiClient",
    "ApiManager",
    "PendingRequest",
    "RefreshTokenPolicy",
    "SessionExpiredError",
]
