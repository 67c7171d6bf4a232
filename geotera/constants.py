"""
geotera.constants — Shared Constants & Helpers
===============================================

Single source of truth for the leveling formula and the impact factors.
Import from here instead of duplicating in services and routes.
"""

from __future__ import annotations

RANK_BADGES: list[str] = ["\U0001f947", "\U0001f948", "\U0001f949"]  # 🥇🥈🥉

# Cash-out reward reference and ledger description
CASHOUT_REF = "cashout"
CASHOUT_DESCRIPTION = "Cashed out all points"

# Average mass of one logged collection when the report gives no amount
DEFAULT_COLLECTION_KG = 5.0
# kg of CO2 offset per kg of waste collected
CO2_PER_KG = 0.5


# ---------------------------------------------------------------------------
# Leveling formula
# ---------------------------------------------------------------------------
LEVEL_BASE = 100
LEVEL_FACTOR = 1.25


def points_for_level(level: int) -> int:
    """Lifetime points required to advance past *level*.

    Uses the exponential formula::

        required = LEVEL_BASE * (LEVEL_FACTOR ** level)
    """
    return int(LEVEL_BASE * (LEVEL_FACTOR ** level))


def level_for_points(lifetime_points: int) -> int:
    """Level reached with *lifetime_points* earned.  Everyone starts at 1.

    Redemptions never lower a level, so callers pass lifetime *earned*
    points rather than the spendable balance.
    """
    level = 1
    while lifetime_points >= points_for_level(level):
        level += 1
    return level
