"""Shared utilities for talking to Supabase/PostgREST."""

from __future__ import annotations

import logging
from typing import NoReturn, Optional

from postgrest import APIError as PostgrestAPIError

from app.services.errors import NotFound, Unauthenticated, Unauthorized, UpstreamError

logger = logging.getLogger(__name__)


def extract_bearer_token(header_value: Optional[str]) -> str:
    """Return the Bearer token from an Authorization header."""

    if not header_value:
        raise Unauthenticated("Authentication required.")
    parts = header_value.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise Unauthenticated("Invalid Bearer token.")
    token = parts[1].strip()
    if not token:
        raise Unauthenticated("Missing Bearer token.")
    return token


def raise_postgrest_error(exc: PostgrestAPIError, *, context: str) -> NoReturn:
    """Map PostgREST errors to service errors with logging."""

    status_code = postgrest_status(exc)
    detail = exc.message or "Error while talking to Supabase."
    logger.error("%s failed (%s): %s", context, status_code, detail)
    if status_code == 401:
        raise Unauthenticated("Supabase authentication required.") from exc
    if status_code == 403:
        raise Unauthorized("Access to the requested resource was denied.") from exc
    if status_code == 404:
        raise NotFound("Resource not found.") from exc
    raise UpstreamError("Error while talking to Supabase.") from exc


POSTGREST_CODE_STATUS = {
    "PGRST301": 401,
    "PGRST302": 401,
    "42501": 403,
    "PGRST116": 404,
    "P0002": 404,
}


def postgrest_status(exc: PostgrestAPIError) -> int:
    """Best effort extraction of an HTTP status code from the API error."""

    code = str(exc.code or "")
    if code in POSTGREST_CODE_STATUS:
        return POSTGREST_CODE_STATUS[code]
    if len(code) == 3 and code.isdigit():
        return int(code)
    return 502


__all__ = [
    "extract_bearer_token",
    "postgrest_status",
    "raise_postgrest_error",
]
