"""
tests/test_tokens.py — Session & Verification Tokens
======================================================
Covers the signing secret check and how the two token kinds are kept apart
on the routes that consume them.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import jwt
import pytest

from conftest import auth, make_user
from geotera.api import tokens
from geotera.engine.verification import VerificationResult


def _forge(claims: dict, *, secret: str | None = None) -> str:
    return jwt.encode(claims, secret or tokens.JWT_SECRET, algorithm=tokens.JWT_ALGORITHM)


def _report_body(token: str) -> dict:
    return {
        "location": "Riverside Park",
        "waste_type": "plastic",
        "amount": "2 kg",
        "verification_token": token,
    }


# ===========================================================================
# Secret validation
# ===========================================================================
class TestValidateSecret:
    @pytest.mark.parametrize("secret", [None, "", "   "])
    def test_unset(self, secret):
        with pytest.raises(RuntimeError, match="not set"):
            tokens.validate_secret(secret)

    @pytest.mark.parametrize("secret", ["secret", "Geotera", "geotera-dev-secret-change-me-please-xxxxxx"])
    def test_placeholder(self, secret):
        with pytest.raises(RuntimeError, match="placeholder"):
            tokens.validate_secret(secret)

    def test_too_short(self):
        with pytest.raises(RuntimeError, match="at least 32"):
            tokens.validate_secret("a1b2c3d4")

    def test_accepts_and_strips(self):
        good = "f" * 64
        assert tokens.validate_secret(f"  {good}\n") == good


# ===========================================================================
# Session tokens
# ===========================================================================
class TestSessionTokens:
    def test_issued_session_authenticates(self, client):
        body = client.post("/api/auth/session", json={"email": "ada@example.com", "name": "Ada"}).json()
        claims = tokens.decode_session(body["token"])
        assert claims["sub"] == str(body["user"]["id"])
        assert claims["aud"] == tokens.SESSION_AUDIENCE

        assert client.get("/api/auth/me", headers=auth(body["token"])).status_code == 200

    def test_foreign_secret_rejected(self, client, db_engine):
        user_id = make_user(db_engine)
        token = _forge(
            {"sub": str(user_id), "aud": tokens.SESSION_AUDIENCE,
             "exp": datetime.now(UTC) + timedelta(hours=1)},
            secret="some-other-deployment-secret-" + "y" * 20,
        )
        assert client.get("/api/auth/me", headers=auth(token)).status_code == 401

    def test_expired_session_rejected(self, client, db_engine):
        user_id = make_user(db_engine)
        token = _forge({
            "sub": str(user_id), "aud": tokens.SESSION_AUDIENCE,
            "exp": datetime.now(UTC) - timedelta(minutes=1),
        })
        assert client.get("/api/auth/me", headers=auth(token)).status_code == 401

    def test_session_without_audience_rejected(self, client, db_engine):
        user_id = make_user(db_engine)
        token = _forge({"sub": str(user_id), "exp": datetime.now(UTC) + timedelta(hours=1)})
        assert client.get("/api/auth/me", headers=auth(token)).status_code == 401

    def test_verification_token_is_not_a_session(self, client, db_engine):
        user_id = make_user(db_engine)
        token = tokens.sign_verification(user_id, VerificationResult("glass", "1 kg", 0.9))
        assert client.get("/api/auth/me", headers=auth(token)).status_code == 401


# ===========================================================================
# Verification tokens
# ===========================================================================
class TestVerificationTokens:
    def test_round_trip_with_fresh_id(self):
        result = VerificationResult("metal", "3 kg", 0.75)
        first = tokens.read_verification(tokens.sign_verification(7, result))
        second = tokens.read_verification(tokens.sign_verification(7, result))

        assert first[0] == 7
        assert first[2] == result
        assert first[1] != second[1]

    def test_missing_id_rejected(self):
        token = _forge({
            "sub": "7", "aud": tokens.VERIFICATION_AUDIENCE,
            "result": VerificationResult("metal", "3 kg", 0.75).to_json(),
            "exp": datetime.now(UTC) + timedelta(minutes=5),
        })
        with pytest.raises(jwt.InvalidTokenError):
            tokens.read_verification(token)

    def test_missing_id_refused_at_submit(self, client, db_engine):
        user_id = make_user(db_engine)
        token = _forge({
            "sub": str(user_id), "aud": tokens.VERIFICATION_AUDIENCE,
            "result": VerificationResult("metal", "3 kg", 0.75).to_json(),
            "exp": datetime.now(UTC) + timedelta(minutes=5),
        })
        session = tokens.issue_session(user_id, "ada@example.com")
        resp = client.post("/api/reports", json=_report_body(token), headers=auth(session))
        assert resp.status_code == 422

    def test_expired_verification_refused_at_submit(self, client, db_engine):
        user_id = make_user(db_engine)
        token = _forge({
            "sub": str(user_id), "aud": tokens.VERIFICATION_AUDIENCE, "jti": "abc",
            "result": VerificationResult("metal", "3 kg", 0.75).to_json(),
            "exp": datetime.now(UTC) - timedelta(seconds=1),
        })
        session = tokens.issue_session(user_id, "ada@example.com")
        resp = client.post("/api/reports", json=_report_body(token), headers=auth(session))
        assert resp.status_code == 422
