"""
geotera.config — YAML Configuration Loader
===========================================

Reads ``config.yaml`` for service tuning (points per report/collection,
verification threshold, classifier model).  Secrets and connection strings
stay in the environment (``.env``) and are never read from this file.

Usage::

    from geotera.config import load_config

    cfg = load_config()          # reads ./config.yaml by default
    print(cfg.app_name)          # "Geotera"
    print(cfg.report_points)     # 10
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class GeoteraConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    app_name: str

    # Dashboard
    dashboard_port: int

    # Economy
    report_points: int = 10
    collect_points: int = 20

    # Verification
    min_confidence: float = 0.5
    classifier_model: str = "gemini-2.5-flash"

    # Ledger
    redeem_max_attempts: int = 5

    # Admin / Hardened Access
    admin_emails: tuple[str, ...] = ()  # May run reconciliation from the API


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> GeoteraConfig:
    """Read *path* and return a :class:`GeoteraConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to ``config.yaml`` in the current working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    economy = raw.get("economy") or {}
    verification = raw.get("verification") or {}

    return GeoteraConfig(
        app_name=raw["app_name"],
        dashboard_port=int(raw["dashboard_port"]),
        report_points=int(economy.get("report_points", 10)),
        collect_points=int(economy.get("collect_points", 20)),
        min_confidence=float(verification.get("min_confidence", 0.5)),
        classifier_model=str(verification.get("model", "gemini-2.5-flash")),
        redeem_max_attempts=int(raw.get("redeem_max_attempts", 5)),
        admin_emails=tuple(
            str(e).strip().lower() for e in (raw.get("admin_emails") or []) if str(e).strip()
        ),
    )
