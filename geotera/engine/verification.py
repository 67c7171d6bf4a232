"""
geotera.engine.verification — Classifier Reply Parsing
=======================================================

The image classifier answers in free text that is *supposed* to be a JSON
object like::

    {"wasteType": "plastic", "quantity": "2 kg", "confidence": 0.85}

Models often wrap it in markdown fences or chatter around it, so the parser
strips fences, decodes the first JSON object in the reply and validates
the fields.
Anything unusable raises :class:`~geotera.errors.VerificationFailed`; a
report is never accepted on fallback data.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass

from geotera.errors import VerificationFailed

__all__ = ["VerificationResult", "parse_verification", "VERIFICATION_PROMPT"]

VERIFICATION_PROMPT = """Analyze this waste image and respond with ONLY a JSON object:
{
  "wasteType": "plastic" or "paper" or "glass" or "metal" or "organic",
  "quantity": "amount with unit like 2 kg or 500g",
  "confidence": 0.85
}"""

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)
_DECODER = json.JSONDecoder()


@dataclass(frozen=True, slots=True)
class VerificationResult:
    """A validated classifier verdict."""

    waste_type: str
    quantity: str
    confidence: float

    def to_json(self) -> dict:
        """Shape stored in ``reports.verification_result``."""
        return {
            "wasteType": self.waste_type,
            "quantity": self.quantity,
            "confidence": self.confidence,
        }


def parse_verification(text: str, *, min_confidence: float = 0.0) -> VerificationResult:
    """Parse and validate a classifier reply.

    Raises
    ------
    VerificationFailed
        If no JSON object is found, a field is missing or mistyped, or the
        confidence is outside [0, 1] or below *min_confidence*.
    """
    cleaned = _FENCE_RE.sub("", text or "").strip()
    if cleaned.lower().startswith("json"):
        cleaned = cleaned[4:].lstrip()

    start = cleaned.find("{")
    if start == -1:
        raise VerificationFailed("Classifier reply contained no JSON object")

    # Trailing chatter after the object is ignored
    try:
        data, _ = _DECODER.raw_decode(cleaned, start)
    except json.JSONDecodeError as exc:
        raise VerificationFailed(f"Classifier reply is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise VerificationFailed("Classifier reply is not a JSON object")

    waste_type = data.get("wasteType")
    quantity = data.get("quantity")
    confidence = data.get("confidence")

    if not isinstance(waste_type, str) or not waste_type.strip():
        raise VerificationFailed("Classifier reply is missing wasteType")
    if not isinstance(quantity, str) or not quantity.strip():
        raise VerificationFailed("Classifier reply is missing quantity")
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        raise VerificationFailed("Classifier reply is missing a numeric confidence")
    if not 0.0 <= confidence <= 1.0:
        raise VerificationFailed(f"Confidence {confidence} is outside [0, 1]")
    if confidence < min_confidence:
        raise VerificationFailed(
            f"Confidence {confidence:.2f} is below the {min_confidence:.2f} threshold"
        )

    return VerificationResult(
        waste_type=waste_type.strip(),
        quantity=quantity.strip(),
        confidence=float(confidence),
    )
