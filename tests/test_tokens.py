"""
Tests for session token issuance.

Covers:
- Secret resolution (explicit, environment, missing)
- expiresAt conversion to epoch seconds
- Claims and header of minted tokens
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from triplit_auth.adapter.tokens import (
    build_session_claims,
    expires_at_to_epoch,
    mint_session_token,
    resolve_secret,
)
from triplit_auth.config import SECRET_ENV_VAR
from triplit_auth.exceptions import ConfigurationError


class TestResolveSecret:
    """Tests for resolve_secret."""

    def test_explicit_secret_wins(self, monkeypatch):
        monkeypatch.setenv(SECRET_ENV_VAR, "from-env")
        assert resolve_secret("explicit") == "explicit"

    def test_falls_back_to_environment(self, monkeypatch):
        monkeypatch.setenv(SECRET_ENV_VAR, "from-env")
        assert resolve_secret(None) == "from-env"

    def test_missing_secret_raises(self):
        with pytest.raises(ConfigurationError, match="No secret key provided"):
            resolve_secret(None)

    def test_empty_environment_value_is_missing(self, monkeypatch):
        monkeypatch.setenv(SECRET_ENV_VAR, "")
        with pytest.raises(ConfigurationError):
            resolve_secret("")


class TestExpiresAtToEpoch:
    """Tests for expires_at_to_epoch."""

    def test_epoch_milliseconds(self):
        assert expires_at_to_epoch(1_700_000_000_999) == 1_700_000_000

    def test_float_milliseconds_floor(self):
        assert expires_at_to_epoch(1_700_000_000_500.7) == 1_700_000_000

    def test_aware_datetime(self):
        value = datetime(2030, 1, 1, 0, 0, 30, 900000, tzinfo=timezone.utc)
        assert expires_at_to_epoch(value) == int(datetime(2030, 1, 1, 0, 0, 30, tzinfo=timezone.utc).timestamp())

    def test_naive_datetime_is_utc(self):
        naive = datetime(2030, 1, 1)
        aware = datetime(2030, 1, 1, tzinfo=timezone.utc)
        assert expires_at_to_epoch(naive) == int(aware.timestamp())

    def test_iso_string_with_z_suffix(self):
        expected = int(datetime(2030, 1, 1, tzinfo=timezone.utc).timestamp())
        assert expires_at_to_epoch("2030-01-01T00:00:00.000Z") == expected

    def test_invalid_values_raise(self):
        with pytest.raises(ValueError):
            expires_at_to_epoch("not a date")
        with pytest.raises(ValueError):
            expires_at_to_epoch(None)
        with pytest.raises(ValueError):
            expires_at_to_epoch(True)


class TestMintSessionToken:
    """Tests for minted token contents."""

    def test_claims_copied_from_user(self, user):
        expires_ms = 1_900_000_000_000
        claims = build_session_claims(user, expires_ms)
        assert claims == {
            "sub": "u1",
            "email": "a@b.com",
            "emailVerified": True,
            "name": "A",
            "role": "member",
            "username": "a",
            "exp": 1_900_000_000,
        }

    def test_missing_user_fields_are_omitted(self):
        claims = build_session_claims({"id": "u2"}, 1_900_000_000_000)
        assert claims == {"sub": "u2", "exp": 1_900_000_000}

    def test_explicit_null_fields_are_kept(self):
        claims = build_session_claims({"id": "u2", "username": None}, 1_900_000_000_000)
        assert "username" in claims
        assert claims["username"] is None
        assert "role" not in claims

    def test_token_is_hs256_signed(self, user, secret):
        expires_at = datetime.now(timezone.utc) + timedelta(hours=1)
        token = mint_session_token(user, expires_at, secret)

        assert jwt.get_unverified_header(token)["alg"] == "HS256"
        decoded = jwt.decode(token, secret, algorithms=["HS256"])
        assert decoded["sub"] == "u1"
        assert decoded["exp"] == int(expires_at.timestamp())

    def test_wrong_secret_fails_verification(self, user, secret):
        token = mint_session_token(user, 4_000_000_000_000, secret)
        with pytest.raises(jwt.InvalidSignatureError):
            jwt.decode(token, secret + "-other", algorithms=["HS256"])
