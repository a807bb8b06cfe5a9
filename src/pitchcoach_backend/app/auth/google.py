# app/auth/google.py
from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

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

GOOGLE_ISSUERS = ("https://accounts.google.com", "accounts.google.com")


class GoogleTokenVerifier:
    """
    Verifies Google ID tokens (RS256) against Google's JWKS and normalizes
    the payload into a NormalizedIdentityClaim.
    """

    def __init__(
        self,
        client_id: Optional[str],
        keys: SigningKeySource,
        *,
        leeway: int = 120,
    ) -> None:
        self._client_id = (client_id or "").strip()
        self._keys = keys
        self._leeway = leeway

    async def verify(self, id_token: str) -> NormalizedIdentityClaim:
        aud = self._client_id
        if not aud:
            raise ConfigurationError(
                "Google OAuth not configured. Set GOOGLE_CLIENT_ID environment variable."
            )

        auth_trace("google.verify.begin", want_aud=aud)
        claims = await self._decode(id_token, aud)

        iss = claims.get("iss")
        if iss not in GOOGLE_ISSUERS:
            auth_trace("google.verify.bad_iss_value", iss=iss)
            raise VerificationError(
                VerificationError.ISSUER,
                "Google token verification failed: issuer mismatch",
                {"iss": iss},
            )

        sub = claims.get("sub")
        if not sub:
            raise InvalidTokenError("Invalid Google token payload: missing sub")

        email = claims.get("email")
        if not email:
            auth_trace("google.verify.no_email", sub=mask(sub, prefix="sub"))
            raise InvalidTokenError("Invalid Google token payload: missing email")

        claim = NormalizedIdentityClaim(
            provider=OAuthProvider.google,
            provider_id=str(sub),
            email=email,
            name=claims.get("name") or email.split("@")[0],
            email_verified=as_bool(claims.get("email_verified", False)),
            raw_claims=claims,
        )
        auth_trace(
            "google.verify.ok",
            sub=mask(sub, prefix="sub"),
            email_verified=claim.email_verified,
            exp=claims.get("exp"),
        )
        return claim

    async def _decode(self, id_token: str, aud: str) -> Dict[str, Any]:
        try:
            hdr = jwt.get_unverified_header(id_token)
            if hdr.get("alg") != "RS256":
                raise VerificationError(
                    VerificationError.SIGNATURE,
                    f"Google token verification failed: unexpected alg: {hdr.get('alg')}",
                )
            # PyJWKClient fetches over blocking HTTP; keep it off the event loop
            signing_key = await asyncio.to_thread(self._keys.get_signing_key_from_jwt, id_token)
            key = signing_key.key
            return jwt.decode(
                id_token,
                key=key,
                algorithms=["RS256"],
                audience=aud,
                options={"require": ["exp", "aud", "iss"]},
                leeway=self._leeway,
            )
        except jwt.ExpiredSignatureError as ex:
            auth_trace("google.verify.expired")
            raise VerificationError(
                VerificationError.EXPIRY, "Google token verification failed: token expired"
            ) from ex
        except jwt.InvalidAudienceError as ex:
            auth_trace("google.verify.aud_mismatch", want_aud=aud)
            raise VerificationError(
                VerificationError.AUDIENCE,
                f"Google token verification failed: audience mismatch (want={aud})",
            ) from ex
        except jwt.MissingRequiredClaimError as ex:
            auth_trace("google.verify.missing_claim", claim=ex.claim)
            raise InvalidTokenError(
                f"Invalid Google token payload: missing {ex.claim}"
            ) from ex
        except jwt.PyJWTError as ex:
            # bad signature, malformed token, unknown kid, JWKS endpoint unreachable
            auth_trace("google.verify.jwt_error", err=str(ex))
            raise VerificationError(
                VerificationError.SIGNATURE, f"Google token verification failed: {ex}"
            ) from ex


def build_google_verifier(settings: Optional[OAuthSettings] = None) -> GoogleTokenVerifier:
    settings = settings or load_oauth_settings()
    return GoogleTokenVerifier(
        settings.google_client_id,
        jwks_client(settings.google_jwks_uri),
        leeway=settings.leeway_sec,
    )
