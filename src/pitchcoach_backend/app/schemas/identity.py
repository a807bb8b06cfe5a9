# src/pitchcoach_backend/app/schemas/identity.py

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel


class OAuthProvider(str, Enum):
    google = "google"
    apple = "apple"


class NormalizedIdentityClaim(BaseModel):
    """
    Who the user is, as asserted by a verified Google / Apple ID token.

    Produced only by the token verifiers, after signature and claim checks
    succeeded; consumed by the identity resolver.

    Fields:
      - provider: which provider issued the token
      - provider_id: the provider's stable subject identifier ("sub")
      - email: optional (Apple omits it on repeat sign-ins)
      - name: optional (Apple sends it only on the first sign-in)
      - email_verified: provider-asserted, defaults to False
    """

    provider: OAuthProvider
    provider_id: str

    email: Optional[str] = None
    name: Optional[str] = None
    email_verified: bool = False

    # verified payload, for debugging only
    raw_claims: Optional[Dict[str, Any]] = None
