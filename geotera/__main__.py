"""
geotera.__main__ — Entry point for ``python -m geotera``
=========================================================

Configures logging, loads ``.env`` and ``config.yaml``, then serves the
API with uvicorn on ``dashboard_port``.
"""

from __future__ import annotations

import logging
import os

import uvicorn
from dotenv import load_dotenv

from geotera.config import load_config

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("geotera")


def main() -> None:
    """Bootstrap and run the Geotera API."""
    load_dotenv()

    cfg = load_config(os.getenv("GEOTERA_CONFIG", "config.yaml"))
    logger.info("Starting %s on port %d", cfg.app_name, cfg.dashboard_port)

    uvicorn.run(
        "geotera.api.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=cfg.dashboard_port,
        log_config=None,  # keep the root handler configured above
    )


if __name__ == "__main__":
    main()
