# tests/conftest.py
from __future__ import annotations

import time
from types import SimpleNamespace
from typing import Any, Callable, Dict, Optional

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from pitchcoach_backend.app.core.config import load_oauth_settings
from pitchcoach_backend.app.db.init_db import init_models
from pitchcoach_backend.app.db.models import User
from pitchcoach_backend.app.db.user_store import SqlAlchemyUserStore

# ---------- Constants ----------
GOOGLE_CLIENT_ID = "dummy-client.apps.googleusercontent.com"
APPLE_CLIENT_ID = "com.pitchcoach.app"
KID = "test-key-1"


# ---------- Signing keys & token minting ----------
@pytest.fixture(scope="session")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def other_rsa_key():
    """A key nobody published: tokens signed with it must be rejected."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


class FakeJWKS:
    """In-memory stand-in for PyJWKClient: resolves the token's kid to a public key."""

    def __init__(self, keys: Dict[str, Any]):
        self._keys = keys
        self.calls = 0

    def get_signing_key_from_jwt(self, token: str) -> Any:
        self.calls += 1
        kid = jwt.get_unverified_header(token).get("kid")
        if kid not in self._keys:
            raise jwt.PyJWKClientError(f'Unable to find a signing key that matches: "{kid}"')
        return SimpleNamespace(key=self._keys[kid])


class UnreachableJWKS:
    """JWKS endpoint that cannot be reached."""

    def get_signing_key_from_jwt(self, token: str) -> Any:
        raise jwt.PyJWKClientError("Fail to fetch data from the url, err: timed out")


@pytest.fixture
def jwks(rsa_key) -> FakeJWKS:
    return FakeJWKS({KID: rsa_key.public_key()})


@pytest.fixture
def unreachable_jwks() -> UnreachableJWKS:
    return UnreachableJWKS()


@pytest.fixture
def make_token(rsa_key) -> Callable[..., str]:
    def _make(claims: Dict[str, Any], *, key=None, kid: str = KID, algorithm: str = "RS256") -> str:
        signing_key = key if key is not None else rsa_key
        return jwt.encode(claims, signing_key, algorithm=algorithm, headers={"kid": kid})
    return _make


@pytest.fixture
def google_claims() -> Callable[..., Dict[str, Any]]:
    def _claims(**overrides: Any) -> Dict[str, Any]:
        now = int(time.time())
        claims: Dict[str, Any] = {
            "iss": "https://accounts.google.com",
            "aud": GOOGLE_CLIENT_ID,
            "sub": "1234567890",
            "email": "tester@example.com",
            "email_verified": True,
            "iat": now,
            "exp": now + 3600,
        }
        claims.update(overrides)
        return {k: v for k, v in claims.items() if v is not None}
    return _claims


@pytest.fixture
def apple_claims() -> Callable[..., Dict[str, Any]]:
    def _claims(**overrides: Any) -> Dict[str, Any]:
        now = int(time.time())
        claims: Dict[str, Any] = {
            "iss": "https://appleid.apple.com",
            "aud": APPLE_CLIENT_ID,
            "sub": "001234.abcdef0123456789.0420",
            "email": "bob@privaterelay.appleid.com",
            "email_verified": "true",
            "iat": now,
            "exp": now + 600,
        }
        claims.update(overrides)
        return {k: v for k, v in claims.items() if v is not None}
    return _claims


# ---------- Environment ----------
@pytest.fixture(autouse=True)
def _clean_oauth_env(monkeypatch):
    """Tests never see the developer's .env provider settings."""
    for var in (
        "GOOGLE_CLIENT_ID",
        "GOOGLE_AUDIENCE",
        "GOOGLE_JWKS_URI",
        "APPLE_CLIENT_ID",
        "APPLE_JWKS_URI",
        "OAUTH_LEEWAY_SEC",
        "AUTH_TRACE",
    ):
        monkeypatch.delenv(var, raising=False)
    load_oauth_settings.cache_clear()
    yield
    load_oauth_settings.cache_clear()


# ---------- Database ----------
@pytest.fixture
async def engine(tmp_path):
    # one SQLite file per test; sessions get their own connections
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'users.db'}")
    await init_models(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def store(db) -> SqlAlchemyUserStore:
    return SqlAlchemyUserStore(db)


@pytest.fixture
def count_users(session_factory) -> Callable[[], Any]:
    async def _count() -> int:
        async with session_factory() as session:
            result = await session.execute(select(func.count()).select_from(User))
            return result.scalar_one()
    return _count


@pytest.fixture
def add_user(session_factory) -> Callable[..., Any]:
    """Insert a user directly (e.g. a pre-existing password account)."""
    async def _add(
        email: str,
        name: str = "Existing User",
        password: Optional[str] = None,
        oauth_provider: Optional[str] = None,
        oauth_id: Optional[str] = None,
        email_verified: bool = False,
    ) -> User:
        async with session_factory() as session:
            user = User(
                email=email,
                name=name,
                password=password,
                oauth_provider=oauth_provider,
                oauth_id=oauth_id,
                email_verified=email_verified,
            )
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user
    return _add
