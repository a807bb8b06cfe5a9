# src/pitchcoach_backend/app/core/config.py
from __future__ import annotations

import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

# ------------------------
# Defaults
# ------------------------
GOOGLE_JWKS_URI_DEFAULT = "https://www.googleapis.com/oauth2/v3/certs"
APPLE_JWKS_URI_DEFAULT  = "https://appleid.apple.com/auth/keys"
LEEWAY_SEC_DEFAULT      = 120


def _env(name: str) -> Optional[str]:
    val = (os.getenv(name) or "").strip()
    return val or None


class OAuthSettings(BaseModel):
    """
    Provider configuration consumed by the token verifiers.

    A missing client id is allowed here; the verifier for that provider
    fails closed with ConfigurationError when it is actually called.
    """

    google_client_id: Optional[str] = None
    google_jwks_uri: str = GOOGLE_JWKS_URI_DEFAULT

    apple_client_id: Optional[str] = None
    apple_jwks_uri: str = APPLE_JWKS_URI_DEFAULT

    # clock-skew tolerance for signed-token time claims
    leeway_sec: int = LEEWAY_SEC_DEFAULT

    @classmethod
    def from_env(cls) -> "OAuthSettings":
        return cls(
            # GOOGLE_AUDIENCE wins when set (single source of truth)
            google_client_id=_env("GOOGLE_AUDIENCE") or _env("GOOGLE_CLIENT_ID"),
            google_jwks_uri=_env("GOOGLE_JWKS_URI") or GOOGLE_JWKS_URI_DEFAULT,
            apple_client_id=_env("APPLE_CLIENT_ID"),
            apple_jwks_uri=_env("APPLE_JWKS_URI") or APPLE_JWKS_URI_DEFAULT,
            leeway_sec=int(_env("OAUTH_LEEWAY_SEC") or LEEWAY_SEC_DEFAULT),
        )


@lru_cache(maxsize=1)
def load_oauth_settings() -> OAuthSettings:
    """Load .env (if any) and read provider settings once per process."""
    load_dotenv()
    return OAuthSettings.from_env()


def database_url() -> str:
    """
    Async SQLAlchemy URL, e.g. postgresql+asyncpg://user:pw@host/db.
    POSTGRES_URL is accepted for older .env files.
    """
    load_dotenv()
    url = _env("DATABASE_URL") or _env("POSTGRES_URL")
    if not url:
        raise RuntimeError("DATABASE_URL not set in environment (.env)")
    return url
