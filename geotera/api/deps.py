"""
geotera.api.deps — FastAPI dependency injection
=================================================

Every ledger call receives the caller's identity explicitly: routes depend
on :func:`get_current_user_id`, which reads it from a signed session token.
Nothing about the caller is cached between requests.
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Annotated

from fastapi import Header, HTTPException, status
from jwt.exceptions import InvalidTokenError
from sqlalchemy import Engine

from geotera.api.tokens import decode_session
from geotera.config import GeoteraConfig, load_config
from geotera.database.engine import create_db_engine


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> GeoteraConfig:
    return load_config(os.getenv("GEOTERA_CONFIG", "config.yaml"))


def _decode_bearer(authorization: str | None) -> dict:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Missing token")
    try:
        return decode_session(authorization.split(" ", 1)[1])
    except InvalidTokenError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")


def get_current_user_id(
    authorization: Annotated[str | None, Header()] = None,
) -> int:
    """Validate the session JWT and return the caller's user id."""
    payload = _decode_bearer(authorization)
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")


def get_current_admin(
    authorization: Annotated[str | None, Header()] = None,
) -> dict:
    """Session claims of an admin caller; 401 without a session, 403 otherwise."""
    payload = _decode_bearer(authorization)
    if not payload.get("is_admin"):
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Not admin")
    return payload
