"""
geotera.api.tokens — Signed Session & Verification Tokens
==========================================================

Two kinds of HS256 JWT are signed with ``JWT_SECRET``.  They are told apart
by audience, so one can never be presented as the other:

* **session** (``geotera:session``, 12 h): identifies the caller.  Issued
  by ``POST /api/auth/session``.
* **verification** (``geotera:verification``, 30 min): carries a classifier
  verdict for one user.  Its ``jti`` is stored on the report it is
  submitted with, which makes it single-use.

The secret is checked when this module is imported, so a misconfigured
deployment fails at startup instead of on the first request.
"""

from __future__ import annotations

import os
import uuid
from datetime import UTC, datetime, timedelta

import jwt
from jwt.exceptions import InvalidTokenError

from geotera.engine.verification import VerificationResult

JWT_ALGORITHM = "HS256"
MIN_SECRET_LENGTH = 32

SESSION_AUDIENCE = "geotera:session"
VERIFICATION_AUDIENCE = "geotera:verification"
SESSION_TTL = timedelta(hours=12)
VERIFICATION_TTL = timedelta(minutes=30)

# Placeholders shipped in docs and examples
_PLACEHOLDER_SECRETS = frozenset({"secret", "dev", "changeme", "geotera"})


def validate_secret(secret: str | None) -> str:
    """Return *secret* if it is fit to sign tokens, else raise RuntimeError."""
    value = (secret or "").strip()
    if not value:
        raise RuntimeError(
            "JWT_SECRET is not set; generate one with `openssl rand -hex 32` "
            "and put it in .env"
        )
    if value.lower() in _PLACEHOLDER_SECRETS or "change-me" in value.lower():
        raise RuntimeError("JWT_SECRET is still a placeholder value; set a unique secret")
    if len(value) < MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"JWT_SECRET has {len(value)} characters; at least "
            f"{MIN_SECRET_LENGTH} are required"
        )
    return value


JWT_SECRET: str = validate_secret(os.getenv("JWT_SECRET"))


def _encode(claims: dict, audience: str, ttl: timedelta) -> str:
    now = datetime.now(UTC)
    payload = {**claims, "aud": audience, "iat": now, "exp": now + ttl}
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def _decode(token: str, audience: str) -> dict:
    return jwt.decode(
        token,
        JWT_SECRET,
        algorithms=[JWT_ALGORITHM],
        audience=audience,
        options={"require": ["exp", "aud", "sub"]},
    )


# ---------------------------------------------------------------------------
# Session tokens
# ---------------------------------------------------------------------------
def issue_session(user_id: int, email: str, *, is_admin: bool = False) -> str:
    return _encode(
        {"sub": str(user_id), "email": email, "is_admin": is_admin},
        SESSION_AUDIENCE,
        SESSION_TTL,
    )


def decode_session(token: str) -> dict:
    """Claims of a valid session token.  Raises ``InvalidTokenError``."""
    return _decode(token, SESSION_AUDIENCE)


# ---------------------------------------------------------------------------
# Verification tokens
# ---------------------------------------------------------------------------
def sign_verification(user_id: int, result: VerificationResult) -> str:
    """Sign *result* for *user_id* under a fresh, single-use id."""
    return _encode(
        {"sub": str(user_id), "jti": uuid.uuid4().hex, "result": result.to_json()},
        VERIFICATION_AUDIENCE,
        VERIFICATION_TTL,
    )


def read_verification(token: str) -> tuple[int, str, VerificationResult]:
    """Return ``(user_id, verification_id, result)`` from a verification token.

    Raises ``InvalidTokenError`` for a bad signature, wrong audience, expiry
    or a malformed payload.
    """
    payload = _decode(token, VERIFICATION_AUDIENCE)
    try:
        result = payload["result"]
        return (
            int(payload["sub"]),
            str(payload["jti"]),
            VerificationResult(
                waste_type=result["wasteType"],
                quantity=result["quantity"],
                confidence=float(result["confidence"]),
            ),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidTokenError("Malformed verification token") from exc
