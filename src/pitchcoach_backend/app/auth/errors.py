"""
OAuth error taxonomy.

- ConfigurationError: a provider client id is missing (deployment fault).
- InvalidTokenError:  token is malformed or lacks a required claim.
- VerificationError:  token failed a specific check; ``check`` names which.

Storage errors are never wrapped here; they reach the caller as raised by
SQLAlchemy.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class OAuthError(Exception):
    """Base exception for OAuth sign-in failures."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class ConfigurationError(OAuthError):
    """Required provider client identifier is not configured."""

    def __init__(self, message: str = "OAuth provider not configured", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, details)


class InvalidTokenError(OAuthError):
    """Token cannot be decoded or misses a required claim. Not retryable."""

    def __init__(self, message: str = "Invalid token", details: Optional[Dict[str, Any]] = None):
        super().__init__("INVALID_TOKEN", message, details)


class VerificationError(OAuthError):
    """Token failed signature, issuer, audience or expiry validation."""

    SIGNATURE = "signature"
    ISSUER = "issuer"
    AUDIENCE = "audience"
    EXPIRY = "expiry"

    def __init__(self, check: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.check = check
        super().__init__("VERIFICATION_FAILED", message, {"check": check, **(details or {})})


__all__ = [
    "OAuthError",
    "ConfigurationError",
    "InvalidTokenError",
    "VerificationError",
]
