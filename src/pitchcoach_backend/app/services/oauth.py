# src/pitchcoach_backend/app/services/oauth.py
# Verify a provider ID token, then map it to a local user.

from typing import Optional

from pitchcoach_backend.app.auth.apple import AppleTokenVerifier
from pitchcoach_backend.app.auth.errors import InvalidTokenError
from pitchcoach_backend.app.auth.google import GoogleTokenVerifier
from pitchcoach_backend.app.core.trace import auth_trace
from pitchcoach_backend.app.db.models import User
from pitchcoach_backend.app.db.user_store import UserStore
from pitchcoach_backend.app.services.identity import find_or_create_oauth_user

APPLE_DEFAULT_NAME = "Apple User"


async def sign_in_with_google(
    verifier: GoogleTokenVerifier,
    store: UserStore,
    id_token: str,
    device_id: Optional[str] = None,
) -> User:
    claim = await verifier.verify(id_token)
    user = await find_or_create_oauth_user(
        store,
        claim.provider,
        claim.provider_id,
        claim.email,
        claim.name,
        claim.email_verified,
        device_id,
    )
    auth_trace("signin.google.ok", user_id=user.id)
    return user


async def sign_in_with_apple(
    verifier: AppleTokenVerifier,
    store: UserStore,
    id_token: str,
    email: Optional[str] = None,
    name: Optional[str] = None,
    device_id: Optional[str] = None,
) -> User:
    """
    Apple puts email/name in the token only on the first sign-in; the client
    app receives them separately and may forward them. Values sent by the
    client win over the token's. A user created without any name is
    stored as "Apple User"; repeat sign-ins without a name keep the stored one.
    """
    claim = await verifier.verify(id_token)

    user_email = email or claim.email
    user_name = name or claim.name
    if not user_email:
        raise InvalidTokenError("email is required for Apple sign-in")

    user = await find_or_create_oauth_user(
        store,
        claim.provider,
        claim.provider_id,
        user_email,
        user_name,
        claim.email_verified,
        device_id,
        default_name=APPLE_DEFAULT_NAME,
    )
    auth_trace("signin.apple.ok", user_id=user.id)
    return user
