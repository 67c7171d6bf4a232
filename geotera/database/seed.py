"""
geotera.database.seed — Default Reward Catalogue Seeder
========================================================

Baseline catalogue seeded on first startup so the rewards page is usable
immediately.

Idempotent — only inserts slugs that don't already exist.  Entries edited
later (price changes, new copy) are never overwritten.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from geotera.database.models import RedeemableReward

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Default catalogue: slug → (name, cost, description, collection_info)
# ---------------------------------------------------------------------------
DEFAULT_REWARDS: dict[str, tuple[str, int, str, str]] = {
    "tree": (
        "Plant a Tree",
        50,
        "Contribute to global reforestation. We'll plant a tree in your name.",
        "A planting certificate code is issued on redemption.",
    ),
    "voucher": (
        "Recycling Voucher",
        30,
        "A discount voucher for partner recycling centres.",
        "Use the voucher code at checkout for your discount.",
    ),
    "badge": (
        "Eco Champion Badge",
        100,
        "Showcase your commitment with an exclusive profile badge.",
        "The badge appears on your profile immediately.",
    ),
}


def seed_reward_catalog(engine: Engine) -> int:
    """Insert any missing default catalogue entries.

    Returns the number of rows inserted.
    """
    with Session(engine) as session:
        existing = set(session.scalars(select(RedeemableReward.slug)).all())
        inserted = 0
        for slug, (name, cost, description, info) in DEFAULT_REWARDS.items():
            if slug in existing:
                continue
            session.add(RedeemableReward(
                slug=slug,
                name=name,
                cost=cost,
                description=description,
                collection_info=info,
            ))
            inserted += 1
        session.commit()

    if inserted:
        logger.info("Seeded %d default reward catalogue entries", inserted)
    return inserted
