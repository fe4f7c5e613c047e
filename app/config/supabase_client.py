"""Service-role Supabase client used by the data store and auth lookups."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from supabase import Client, ClientOptions, create_client

load_dotenv()

SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY")
SUPABASE_TIMEOUT_SECONDS = int(os.getenv("SUPABASE_TIMEOUT_SECONDS", "15") or 15)


def supabase_configured() -> bool:
    return bool(SUPABASE_URL and (SUPABASE_SERVICE_ROLE_KEY or SUPABASE_ANON_KEY))


@lru_cache(maxsize=1)
def get_supabase_client() -> Optional[Client]:
    """Build the shared client once; ``None`` while credentials are missing.

    The service-role key bypasses row level security, so every caller is
    authorized by ``access_service`` before touching a table.
    """

    if not supabase_configured():
        return None
    options = ClientOptions(
        auto_refresh_token=False,
        persist_session=False,
        postgrest_client_timeout=SUPABASE_TIMEOUT_SECONDS,
    )
    return create_client(SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY or SUPABASE_ANON_KEY, options=options)


__all__ = [
    "SUPABASE_ANON_KEY",
    "SUPABASE_SERVICE_ROLE_KEY",
    "SUPABASE_URL",
    "get_supabase_client",
    "supabase_configured",
]
