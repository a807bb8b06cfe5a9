# app/auth/apple.py
from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, Dict, Optional

import jwt

from pitchcoach_backend.app.auth.errors import (
    ConfigurationError,
    InvalidTokenError,
    VerificationError,
)
from pitchcoach_backend.app.auth.jwks import SigningKeySource, as_bool, jwks_client
from pitchcoach_backend.app.core.config import OAuthSettings, load_oauth_settings
from pitchcoach_backend.app.core.trace import auth_trace, mask
from pitchcoach_backend.app.schemas.identity import NormalizedIdentityClaim, OAuthProvider

APPLE_ISS = "https://appleid.apple.com"

# signature only; issuer/audience/expiry are checked explicitly below
_SIGNATURE_ONLY = {
    "verify_signature": True,
    "verify_exp": False,
    "verify_nbf": False,
    "verify_iat": False,
    "verify_aud": False,
    "verify_iss": False,
}


class AppleTokenVerifier:
    """
    Verifies Sign in with Apple ID tokens.

    A token naming another issuer is rejected from its unverified payload,
    without a key lookup. Otherwise the signature is checked against Apple's
    published JWKS before any claim is trusted, then issuer, audience and
    expiry are validated in that order, each failing with its own
    VerificationError.check so callers can tell them apart.

    Apple sends ``email`` and ``name`` only on the first sign-in, so both are
    optional on the returned claim.
    """

    def __init__(
        self,
        client_id: Optional[str],
        keys: SigningKeySource,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client_id = (client_id or "").strip()
        self._keys = keys
        self._clock = clock

    async def verify(self, id_token: str) -> NormalizedIdentityClaim:
        if not self._client_id:
            raise ConfigurationError(
                "Apple OAuth not configured. Set APPLE_CLIENT_ID environment variable."
            )

        auth_trace("apple.verify.begin", want_aud=self._client_id)
        # foreign tokens are turned away before any key lookup
        self._check_issuer(self._decode_structure(id_token).get("iss"))
        claims = await self._verify_signature(id_token)
        self._check_issuer(claims.get("iss"))

        if claims.get("aud") != self._client_id:
            auth_trace("apple.verify.aud_mismatch", aud=claims.get("aud"), want_aud=self._client_id)
            raise VerificationError(
                VerificationError.AUDIENCE,
                "Apple token verification failed: invalid audience (audience mismatch)",
            )

        exp = claims.get("exp")
        if exp is not None:
            try:
                expired = float(exp) < self._clock()
            except (TypeError, ValueError) as ex:
                raise InvalidTokenError("Invalid Apple token: exp is not a timestamp") from ex
            if expired:
                auth_trace("apple.verify.expired", exp=exp)
                raise VerificationError(
                    VerificationError.EXPIRY, "Apple token verification failed: token has expired"
                )

        sub = claims.get("sub")
        if not sub:
            raise InvalidTokenError("Invalid Apple token payload: missing sub")

        claim = NormalizedIdentityClaim(
            provider=OAuthProvider.apple,
            provider_id=str(sub),
            email=claims.get("email") or None,
            name=claims.get("name") or None,
            email_verified=as_bool(claims.get("email_verified", False)),
            raw_claims=claims,
        )
        auth_trace(
            "apple.verify.ok",
            sub=mask(sub, prefix="sub"),
            has_email=claim.email is not None,
            email_verified=claim.email_verified,
        )
        return claim

    @staticmethod
    def _decode_structure(id_token: str) -> Dict[str, Any]:
        try:
            jwt.get_unverified_header(id_token)
            return jwt.decode(id_token, options={"verify_signature": False})
        except jwt.PyJWTError as ex:
            auth_trace("apple.verify.malformed", err=str(ex))
            raise InvalidTokenError("Invalid Apple token format") from ex

    @staticmethod
    def _check_issuer(iss: Any) -> None:
        if iss != APPLE_ISS:
            auth_trace("apple.verify.iss_mismatch", iss=iss)
            raise VerificationError(
                VerificationError.ISSUER,
                "Apple token verification failed: invalid issuer (issuer mismatch)",
                {"iss": iss},
            )

    async def _verify_signature(self, id_token: str) -> Dict[str, Any]:
        try:
            # PyJWKClient fetches over blocking HTTP; keep it off the event loop
            signing_key = await asyncio.to_thread(self._keys.get_signing_key_from_jwt, id_token)
            key = signing_key.key
            return jwt.decode(id_token, key=key, algorithms=["RS256"], options=_SIGNATURE_ONLY)
        except jwt.PyJWTError as ex:
            auth_trace("apple.verify.bad_signature", err=str(ex))
            raise VerificationError(
                VerificationError.SIGNATURE, f"Apple token verification failed: {ex}"
            ) from ex


def build_apple_verifier(settings: Optional[OAuthSettings] = None) -> AppleTokenVerifier:
    settings = settings or load_oauth_settings()
    return AppleTokenVerifier(settings.apple_client_id, jwks_client(settings.apple_jwks_uri))
