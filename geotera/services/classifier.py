"""
geotera.services.classifier — Generative-AI Image Verification
===============================================================

Sends a waste photo to Gemini's ``generateContent`` REST endpoint and
parses the reply with :func:`~geotera.engine.verification.parse_verification`.

The API key comes from ``GEMINI_API_KEY``.  Any transport or API failure
surfaces as :class:`~geotera.errors.VerificationFailed`; a report is never
accepted on guessed data.
"""

from __future__ import annotations

import base64
import logging
import os
from typing import TYPE_CHECKING

import httpx

from geotera.engine.verification import (
    VERIFICATION_PROMPT,
    VerificationResult,
    parse_verification,
)
from geotera.errors import VerificationFailed

if TYPE_CHECKING:
    from geotera.config import GeoteraConfig

logger = logging.getLogger(__name__)

GEMINI_API = "https://generativelanguage.googleapis.com/v1beta"
SUPPORTED_MIME_TYPES = frozenset({"image/jpeg", "image/png", "image/webp", "image/heic"})


def _api_key() -> str:
    key = os.getenv("GEMINI_API_KEY", "").strip()
    if not key:
        raise VerificationFailed("Image verification is not configured: missing GEMINI_API_KEY")
    return key


def _request_body(image_bytes: bytes, mime_type: str) -> dict:
    return {
        "contents": [{
            "parts": [
                {"text": VERIFICATION_PROMPT},
                {
                    "inline_data": {
                        "mime_type": mime_type,
                        "data": base64.b64encode(image_bytes).decode("ascii"),
                    },
                },
            ],
        }],
    }


def _reply_text(payload: dict) -> str:
    """Concatenate the text parts of the first candidate."""
    try:
        parts = payload["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError) as exc:
        raise VerificationFailed("Classifier returned no candidates") from exc
    return "".join(part.get("text", "") for part in parts if isinstance(part, dict))


async def verify_image(
    cfg: GeoteraConfig,
    image_bytes: bytes,
    mime_type: str = "image/jpeg",
    *,
    client: httpx.AsyncClient | None = None,
) -> VerificationResult:
    """Classify *image_bytes* and return the validated verdict.

    Pass *client* to reuse a connection pool (or a mock transport in tests).
    """
    if not image_bytes:
        raise VerificationFailed("Please select an image first")
    if mime_type not in SUPPORTED_MIME_TYPES:
        raise VerificationFailed(f"Unsupported image type: {mime_type}")

    url = f"{GEMINI_API}/models/{cfg.classifier_model}:generateContent"
    params = {"key": _api_key()}
    body = _request_body(image_bytes, mime_type)

    try:
        if client is not None:
            resp = await client.post(url, params=params, json=body)
        else:
            transport = httpx.AsyncHTTPTransport(retries=1)
            async with httpx.AsyncClient(timeout=30, transport=transport) as own_client:
                resp = await own_client.post(url, params=params, json=body)
        resp.raise_for_status()
    except httpx.HTTPError as exc:
        logger.warning("Image classifier request failed: %s", exc)
        raise VerificationFailed(f"Verification failed: {exc}") from exc

    text = _reply_text(resp.json())
    logger.debug("Classifier reply: %s", text)
    return parse_verification(text, min_confidence=cfg.min_confidence)
