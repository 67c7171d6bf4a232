"""
geotera.engine.impact — Community Impact Estimates
===================================================

Reports store the amount as free text ("2 kg", "500g", "1.5").  These
helpers turn that into kilograms and derive the CO2 offset figure shown on
the home page.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from geotera.constants import CO2_PER_KG

_AMOUNT_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(kg|kilograms?|g|grams?|lbs?|pounds?)?", re.IGNORECASE)

_UNIT_TO_KG: dict[str, float] = {
    "kg": 1.0,
    "kilogram": 1.0,
    "kilograms": 1.0,
    "g": 0.001,
    "gram": 0.001,
    "grams": 0.001,
    "lb": 0.453592,
    "lbs": 0.453592,
    "pound": 0.453592,
    "pounds": 0.453592,
}


@dataclass(frozen=True, slots=True)
class Impact:
    waste_collected_kg: float
    reports_submitted: int
    tokens_earned: int
    co2_offset_kg: float

    def as_dict(self) -> dict:
        return {
            "waste_collected_kg": self.waste_collected_kg,
            "reports_submitted": self.reports_submitted,
            "tokens_earned": self.tokens_earned,
            "co2_offset_kg": self.co2_offset_kg,
        }


def parse_amount_kg(amount: str | None) -> float:
    """First number in *amount*, converted to kg.  Unitless numbers are kg."""
    if not amount:
        return 0.0
    match = _AMOUNT_RE.search(amount)
    if match is None:
        return 0.0
    value = float(match.group(1))
    unit = (match.group(2) or "kg").lower()
    return value * _UNIT_TO_KG[unit]


def co2_offset(waste_kg: float) -> float:
    return round(waste_kg * CO2_PER_KG, 1)


def summarize(
    amounts: Iterable[str | None],
    *,
    reports_submitted: int,
    tokens_earned: int,
) -> Impact:
    """Build an :class:`Impact` from the amounts of collected reports."""
    waste = sum(parse_amount_kg(a) for a in amounts)
    return Impact(
        waste_collected_kg=round(waste, 1),
        reports_submitted=reports_submitted,
        tokens_earned=tokens_earned,
        co2_offset_kg=co2_offset(waste),
    )
