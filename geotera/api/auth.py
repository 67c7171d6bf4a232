"""
geotera.api.auth — Sign-in by email → JWT
===========================================

Sign-in is deliberately thin: the caller names an email, the user row is
fetched or created, and a signed session token carries the user id into
every later request.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from geotera.api.deps import get_config, get_current_user_id, get_engine
from geotera.api.tokens import issue_session
from geotera.config import GeoteraConfig
from geotera.services import user_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])


class SessionCreate(BaseModel):
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    name: str | None = Field(default=None, max_length=255)


@router.post("/session")
def create_session(
    body: SessionCreate,
    cfg: GeoteraConfig = Depends(get_config),
    engine=Depends(get_engine),
):
    """Fetch-or-create the user for *email* and issue a session token."""
    user = user_service.get_or_create_user(engine, body.email, body.name)
    is_admin = user.email in cfg.admin_emails
    return {
        "token": issue_session(user.id, user.email, is_admin=is_admin),
        "user": {"id": user.id, "email": user.email, "name": user.name},
        "is_admin": is_admin,
    }


@router.get("/me")
def me(user_id: int = Depends(get_current_user_id), engine=Depends(get_engine)):
    """Return the signed-in user."""
    user = user_service.get_user(engine, user_id)
    return {"id": user.id, "email": user.email, "name": user.name}
