# src/pitchcoach_backend/app/auth/jwks.py
from __future__ import annotations

from functools import lru_cache
from typing import Any, Protocol

from jwt import PyJWKClient


class SigningKeySource(Protocol):
    """
    Anything that can find the public key a JWT was signed with.
    ``jwt.PyJWKClient`` satisfies this; tests pass an in-memory fake.
    """

    def get_signing_key_from_jwt(self, token: str) -> Any: ...


# One cached JWKS client per key-set URL (Google, Apple)
@lru_cache(maxsize=4)
def jwks_client(uri: str) -> PyJWKClient:
    return PyJWKClient(uri)


def as_bool(value: Any) -> bool:
    """Providers send email_verified as a bool or as "true"/"false"."""
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)
