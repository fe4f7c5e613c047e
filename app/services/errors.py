"""Error taxonomy shared by the catalog, access and analytics services."""

from __future__ import annotations

from typing import Optional


class ServiceError(RuntimeError):
    """Base class for failures surfaced to API callers."""

    status_code = 500
    default_detail = "Unexpected error."

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class NotFound(ServiceError):
    """A referenced row (restaurant, category, item, staff, order) is absent."""

    status_code = 404
    default_detail = "Resource not found."


class Unauthenticated(ServiceError):
    """No resolvable caller."""

    status_code = 401
    default_detail = "Authentication required."


class Unauthorized(ServiceError):
    """Caller resolved but lacks rights over the target restaurant."""

    status_code = 403
    default_detail = "You do not have access to this restaurant."


class ValidationFailed(ServiceError):
    status_code = 422
    default_detail = "Invalid input."


class LimitExceeded(ServiceError):
    """Plan-tier cap reached. The detail is an upgrade prompt."""

    status_code = 402
    default_detail = "Plan limit reached. Upgrade your plan to add more."


class Conflict(ServiceError):
    status_code = 409
    default_detail = "The request conflicts with the current state."


class UpstreamError(ServiceError):
    status_code = 502
    default_detail = "Error while talking to Supabase."


class ServiceUnavailable(ServiceError):
    status_code = 503
    default_detail = "Supabase is temporarily unreachable."


__all__ = [
    "Conflict",
    "LimitExceeded",
    "NotFound",
    "ServiceError",
    "ServiceUnavailable",
    "Unauthenticated",
    "Unauthorized",
    "UpstreamError",
    "ValidationFailed",
]
