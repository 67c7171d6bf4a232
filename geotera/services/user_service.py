"""
geotera.services.user_service — Users & Profiles
=================================================

A user row is created on first observed sign-in, keyed by email.
Profiles hold the settings-page data and are created lazily.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from geotera.database.models import User, UserProfile
from geotera.errors import UserNotFound

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

DEFAULT_NAME = "Anonymous User"
PROFILE_FIELDS: frozenset[str] = frozenset({"phone", "address", "notifications", "profile_image"})


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_user_by_email(session: Session, email: str) -> User | None:
    return session.scalar(select(User).where(User.email == normalize_email(email)))


def get_or_create_user(engine: Engine, email: str, name: str | None = None) -> User:
    """Fetch or insert a User row by email.  Returns a detached instance.

    Two first sign-ins racing on the same email both end up with the
    single row; the unique index on ``users.email`` picks the winner.
    """
    with Session(engine, expire_on_commit=False) as session:
        user = get_user_by_email(session, email)
        if user is not None:
            session.expunge(user)
            return user

        user = User(email=normalize_email(email), name=(name or "").strip() or DEFAULT_NAME)
        try:
            with session.begin_nested():   # SAVEPOINT
                session.add(user)
                session.flush()
        except IntegrityError:
            user = get_user_by_email(session, email)
            if user is None:
                raise
        else:
            logger.info("Created user %s for %s", user.id, user.email)
        session.commit()
        session.refresh(user)
        session.expunge(user)
        return user


def get_user(engine: Engine, user_id: int) -> User:
    with Session(engine) as session:
        user = session.get(User, user_id)
        if user is None:
            raise UserNotFound(user_id)
        session.expunge(user)
        return user


def update_user_name(engine: Engine, user_id: int, name: str) -> User:
    with Session(engine, expire_on_commit=False) as session:
        user = session.get(User, user_id)
        if user is None:
            raise UserNotFound(user_id)
        user.name = name.strip() or DEFAULT_NAME
        session.commit()
        session.expunge(user)
        return user


def get_profile(engine: Engine, user_id: int) -> dict:
    """Profile fields for *user_id*; defaults when no profile row exists."""
    with Session(engine) as session:
        profile = session.get(UserProfile, user_id)
        if profile is None:
            return {"phone": None, "address": None, "notifications": True, "profile_image": None}
        return {
            "phone": profile.phone,
            "address": profile.address,
            "notifications": profile.notifications,
            "profile_image": profile.profile_image,
        }


def update_profile(engine: Engine, user_id: int, changes: dict[str, Any]) -> dict:
    """Upsert the profile row with the supplied fields.

    Unknown keys are ignored.
    """
    with Session(engine) as session:
        if session.get(User, user_id) is None:
            raise UserNotFound(user_id)
        profile = session.get(UserProfile, user_id)
        if profile is None:
            profile = UserProfile(user_id=user_id)
            session.add(profile)
        for key, value in changes.items():
            if key in PROFILE_FIELDS:
                setattr(profile, key, value)
        session.commit()

    return get_profile(engine, user_id)
