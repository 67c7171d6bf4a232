"""
geotera.services.ledger_guard — Per-User Ledger Serialisation
==============================================================

Shared by every writer of a user's ledger-derived state (ledger appends and
the snapshot reconciliation sweep):

* :func:`lock_user` takes ``SELECT … FOR UPDATE`` on the user row.
* :func:`compare_and_swap_version` advances ``users.ledger_version`` only if
  nobody else did since it was read, raising :class:`LostRace` otherwise.
* :func:`persistence_errors` turns driver failures into
  :class:`~geotera.errors.PersistenceUnavailable`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import select, update
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from geotera.database.models import User
from geotera.errors import PersistenceUnavailable, UserNotFound

logger = logging.getLogger(__name__)


class LostRace(Exception):
    """The ledger_version compare-and-swap matched no row."""


@contextmanager
def persistence_errors(action: str) -> Iterator[None]:
    """Translate driver/connection failures into PersistenceUnavailable."""
    try:
        yield
    except DBAPIError as exc:
        logger.exception("Ledger store failure while trying to %s", action)
        raise PersistenceUnavailable(f"Could not {action}; please retry.") from exc


def lock_user(session: Session, user_id: int) -> User:
    """Load the user row with a row lock held until commit/rollback."""
    user = session.scalar(
        select(User).where(User.id == user_id).with_for_update()
    )
    if user is None:
        raise UserNotFound(user_id)
    return user


def bump_version(session: Session, user_id: int) -> None:
    session.execute(
        update(User)
        .where(User.id == user_id)
        .values(ledger_version=User.ledger_version + 1)
        .execution_options(synchronize_session=False)
    )


def compare_and_swap_version(session: Session, user_id: int, seen: int) -> None:
    result = session.execute(
        update(User)
        .where(User.id == user_id, User.ledger_version == seen)
        .values(ledger_version=seen + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise LostRace
