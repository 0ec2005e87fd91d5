from __future__ import annotations

import jwt
import pytest

from auth import security


@pytest.fixture(autouse=True)
def _jwt_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("JWT_SECRET", "test-secret")
    monkeypatch.setenv("JWT_ALG", "HS256")


class TestPasswords:
    def test_hash_and_verify(self):
        hashed = security.hash_password("user123")
        assert hashed != "user123"
        assert security.verify_password("user123", hashed)
        assert not security.verify_password("wrong", hashed)

    def test_empty_password_rejected(self):
        with pytest.raises(security.AuthSecurityError):
            security.hash_password("")

    def test_verify_against_garbage_hash(self):
        assert not security.verify_password("user123", "not-a-bcrypt-hash")


class TestAccessTokens:
    def test_round_trip_carries_roles(self):
        token = security.build_access_token(user_id=7, username="jane", roles=["ROLE_USER", "ROLE_ADMIN"])
        payload = security.decode_access_token(token)

        assert payload["sub"] == "7"
        assert payload["username"] == "jane"
        assert payload["roles"] == ["ROLE_ADMIN", "ROLE_USER"]
        assert payload["type"] == "access"

    def test_expired_token(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(security, "now_epoch_s", lambda: 1_000)
        token = security.build_access_token(user_id=1, username="john", roles=[])
        with pytest.raises(security.AuthSecurityError, match="expired"):
            security.decode_access_token(token)

    def test_wrong_secret(self):
        token = jwt.encode({"sub": "1", "type": "access"}, "other-secret", algorithm="HS256")
        with pytest.raises(security.AuthSecurityError, match="Invalid"):
            security.decode_access_token(token)

    def test_non_access_token(self):
        token = jwt.encode({"sub": "1", "type": "refresh"}, "test-secret", algorithm="HS256")
        with pytest.raises(security.AuthSecurityError, match="not an access token"):
            security.decode_access_token(token)


class TestRefreshTokens:
    def test_hash_is_stable_and_opaque(self):
        raw = security.build_refresh_token()
        assert len(raw) >= 40
        assert security.hash_refresh_token(raw) == security.hash_refresh_token(raw)
        assert security.hash_refresh_token(raw) != raw
