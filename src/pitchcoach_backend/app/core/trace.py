# src/pitchcoach_backend/app/core/trace.py
from __future__ import annotations
import hashlib
import os
import time
from typing import Any, Mapping, Optional

from .logging import get_logger, setup_logging

# Ensure logging is configured before we emit anything
setup_logging()

_log = get_logger("auth")

def trace_enabled() -> bool:
    # read per call so tests (and ops) can flip AUTH_TRACE without a reload
    return (os.getenv("AUTH_TRACE", "")).lower() in ("1", "true", "yes", "on")

def mask(value: Optional[Any], *, prefix: str = "id") -> str:
    """
    Deterministic, non-reversible stand-in for identifiers (sub, email, device id)
    so trace lines can be correlated without leaking PII.
    """
    text = str(value or "").strip()
    if not text:
        return f"{prefix}-none"
    digest = hashlib.sha256(text.encode("utf-8")).hexdigest()[:12]
    return f"{prefix}-{digest}"

def _fmt_kv(d: Mapping[str, Any]) -> str:
    return " ".join(f"{k}={d[k]}" for k in d)

def auth_trace(event: str, **kv: Any) -> None:
    """
    Emit a single-line structured log ONLY when AUTH_TRACE=true.
    Example:
      [auth] google.verify.ok ts=... sub=sub-1f2e3d4c5b6a email_verified=True
    """
    if not trace_enabled():
        return
    kv2 = {"ts": int(time.time()), **kv}
    _log.info("[auth] %s %s", event, _fmt_kv(kv2))
