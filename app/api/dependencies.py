"""Request-scoped dependencies shared by the API routers."""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header

from app.config.settings import ADMIN_SECRET
from app.models import User
from app.services.access_service import verify_admin_secret
from app.services.data_store import SupabaseDataStore
from app.services.identity_service import EmailProvider, fetch_verified_email, resolve_user
from app.services.notification_service import NotificationDispatcher, get_notification_dispatcher
from app.services.postgrest_client import extract_bearer_token


async def get_access_token(
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> str:
    """Extract the Supabase bearer token from the Authorization header."""

    return extract_bearer_token(authorization)


def get_data_store() -> SupabaseDataStore:
    return SupabaseDataStore()


def get_email_provider() -> EmailProvider:
    return fetch_verified_email


def get_notifier() -> NotificationDispatcher:
    return get_notification_dispatcher()


def get_admin_secret() -> Optional[str]:
    return ADMIN_SECRET


async def require_admin(
    admin_secret: Optional[str] = Header(default=None, alias="X-Admin-Secret"),
    expected: Optional[str] = Depends(get_admin_secret),
) -> None:
    verify_admin_secret(admin_secret, expected)


async def get_current_user(
    token: str = Depends(get_access_token),
    store: SupabaseDataStore = Depends(get_data_store),
    email_provider: EmailProvider = Depends(get_email_provider),
) -> Optional[User]:
    """Caller's user row; ``None`` when the token resolves to no known user."""

    return await resolve_user(store, token, email_provider=email_provider)


__all__ = [
    "get_access_token",
    "get_admin_secret",
    "get_current_user",
    "get_data_store",
    "get_email_provider",
    "get_notifier",
    "require_admin",
]
