"""
Geotera — Community Waste Reporting & Rewards
==============================================
Users report waste sightings, an image classifier verifies them, collectors
log pickups, and everyone earns points redeemable for rewards.  A
leaderboard ranks the community by points, reports and collections.

Package layout::

    geotera/
    ├── __main__.py        # `python -m geotera` (logging + uvicorn)
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Level formula, rank badges, impact factors
    ├── errors.py          # Domain error taxonomy
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + session helpers
    │   ├── models.py      # All ORM models
    │   └── seed.py        # Default reward catalogue seeder
    ├── engine/
    │   ├── ledger.py      # Pure balance / snapshot replay maths
    │   ├── leaderboard.py # rank() and find_rank()
    │   ├── verification.py # Classifier reply parsing
    │   └── impact.py      # Waste amount parsing + CO2 estimate
    ├── services/
    │   ├── ledger_guard.py    # Per-user row lock + ledger_version CAS
    │   ├── ledger_service.py  # Earn / redeem / cash-out against the DB
    │   ├── reconciliation_service.py  # Snapshot ↔ ledger reconciliation
    │   ├── leaderboard_service.py
    │   ├── intake_service.py  # Report submission + collection
    │   ├── classifier.py      # Generative-AI image verification client
    │   ├── impact_service.py
    │   └── user_service.py
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # Engine/config/identity dependencies
        ├── tokens.py      # Signed session + verification tokens
        ├── auth.py        # Email sign-in
        └── routes/        # REST endpoints
"""

__version__ = "0.1.0"
