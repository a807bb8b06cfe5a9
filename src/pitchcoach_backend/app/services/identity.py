# src/pitchcoach_backend/app/services/identity.py

from typing import Optional, Union

from sqlalchemy.exc import IntegrityError

from pitchcoach_backend.app.core.trace import auth_trace, mask
from pitchcoach_backend.app.db.models import User
from pitchcoach_backend.app.db.user_store import UserStore
from pitchcoach_backend.app.schemas.identity import OAuthProvider


async def find_or_create_oauth_user(
    store: UserStore,
    provider: Union[OAuthProvider, str],
    provider_id: str,
    email: str,
    name: Optional[str],
    email_verified: bool,
    device_id: Optional[str] = None,
    *,
    default_name: Optional[str] = None,
) -> User:
    """
    Given a verified Google / Apple identity, return the internal User row,
    creating it if needed.

    Rules (strict order, each step short-circuits):
      1. A User with (oauth_provider, oauth_id) == (provider, provider_id)
         is the resolved user.
      2. Else a User with the same email is the resolved user. If it is a
         password account, the provider identity is linked to it first
         (email_verified is raised, never lowered).
      3. Else a new password-less User is created and returned as-is.
      4. A user resolved by 1 or 2 gets its name and email_verified
         reconciled with the incoming values.

    device_id does not influence resolution. default_name is stored only when
    a user is created without a name (falls back to the email local part).

    If the insert in step 3 loses a race against a concurrent sign-in for
    the same identity, the lookups of steps 1-2 are re-run once; when they
    still find nothing the IntegrityError propagates unchanged.
    """
    provider = OAuthProvider(provider).value
    auth_trace(
        "identity.resolve.begin",
        provider=provider,
        sub=mask(provider_id, prefix="sub"),
        device=mask(device_id, prefix="dev"),
    )

    user = await _lookup(store, provider, provider_id, email, email_verified)

    if user is None:
        try:
            user = await store.create(
                email=email,
                name=name or default_name or email.split("@")[0],
                oauth_provider=provider,
                oauth_id=provider_id,
                password=None,  # OAuth users don't have passwords
                email_verified=email_verified,
            )
        except IntegrityError:
            auth_trace("identity.create.conflict", provider=provider, sub=mask(provider_id, prefix="sub"))
            await store.rollback()
            user = await _lookup(store, provider, provider_id, email, email_verified)
            if user is None:
                raise
        else:
            auth_trace("identity.created", provider=provider, user_id=user.id)
            return user

    return await _reconcile(store, user, name, email_verified)


async def _lookup(
    store: UserStore,
    provider: str,
    provider_id: str,
    email: str,
    email_verified: bool,
) -> Optional[User]:
    # 1) Look up by (provider, provider_id)
    user = await store.find_by_oauth_identity(provider, provider_id)
    if user is not None:
        auth_trace("identity.match.provider", provider=provider, user_id=user.id)
        return user

    # 2) No linked identity; try the email (account linking)
    user = await store.find_by_email(email)
    if user is None:
        return None

    if user.password:
        # Password account predating any OAuth linkage: attach this identity
        user = await store.update(
            user.id,
            oauth_provider=provider,
            oauth_id=provider_id,
            email_verified=email_verified or bool(user.email_verified),
        )
        auth_trace("identity.linked", provider=provider, user_id=user.id)
    else:
        auth_trace("identity.match.email", provider=provider, user_id=user.id)
    return user


async def _reconcile(
    store: UserStore,
    user: User,
    name: Optional[str],
    email_verified: bool,
) -> User:
    # Two independent writes; each only when something actually differs.
    if name and name != user.name:
        user = await store.update(user.id, name=name)
        auth_trace("identity.reconcile.name", user_id=user.id)

    if email_verified and not user.email_verified:
        user = await store.update(user.id, email_verified=True)
        auth_trace("identity.reconcile.email_verified", user_id=user.id)

    return user
