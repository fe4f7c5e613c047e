"""Resolve an authenticated caller to the internal user record."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from httpx import HTTPError as HttpxError
from supabase_auth.errors import AuthApiError, AuthError

from app.config.supabase_client import get_supabase_client
from app.models import User
from app.services.data_store import SupabaseDataStore
from app.services.errors import ServiceUnavailable, Unauthenticated

logger = logging.getLogger(__name__)

EmailProvider = Callable[[str], Awaitable[Optional[str]]]


async def fetch_verified_email(access_token: str) -> Optional[str]:
    """Ask Supabase Auth which verified email the access token belongs to."""

    if not access_token:
        return None
    client = get_supabase_client()
    if client is None:
        raise ServiceUnavailable("Supabase is not configured.")

    def _request() -> Optional[str]:
        response = client.auth.get_user(access_token)
        user = getattr(response, "user", None)
        email = getattr(user, "email", None)
        return email or None

    try:
        return await asyncio.to_thread(_request)
    except (AuthApiError, AuthError) as exc:
        logger.info("Supabase auth rejected access token: %s", exc)
        return None
    except HttpxError as exc:
        logger.error("Supabase auth unreachable: %s", exc)
        raise ServiceUnavailable("The authentication service is temporarily unavailable.") from exc


async def resolve_user(
    store: SupabaseDataStore,
    access_token: Optional[str],
    *,
    email_provider: EmailProvider = fetch_verified_email,
) -> Optional[User]:
    """Return the caller's user row, or ``None`` when the caller is unknown."""

    if not access_token:
        return None
    email = await email_provider(access_token)
    if not email:
        return None
    user = await store.get_user_by_email(email.strip())
    if user is None:
        logger.info("No user row for authenticated email", extra={"email_domain": email.split("@")[-1]})
    return user


def require_user(user: Optional[User]) -> User:
    if user is None:
        raise Unauthenticated()
    return user


__all__ = ["EmailProvider", "fetch_verified_email", "require_user", "resolve_user"]
