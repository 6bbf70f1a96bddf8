"""Unit tests for AuthService."""

import time
from uuid import uuid4

import jwt
import pytest

from flowdesk.config import get_settings
from flowdesk.services.auth_service import AuthService


def _token(**overrides) -> str:
    settings = get_settings()
    payload = {
        "sub": str(uuid4()),
        "email": "user@example.com",
        "role": "authenticated",
        "aud": settings.auth_jwt_audience,
        "exp": int(time.time()) + 3600,
    }
    payload.update(overrides)
    return jwt.encode(payload, settings.auth_jwt_secret, algorithm="HS256")


@pytest.fixture
def service():
    return AuthService()


class TestAuthenticate:
    def test_valid_token(self, service):
        subject = str(uuid4())
        user = service.authenticate(_token(sub=subject))
        assert str(user.id) == subject
        assert user.email == "user@example.com"

    def test_expired_token(self, service):
        with pytest.raises(ValueError, match="expired"):
            service.authenticate(_token(exp=int(time.time()) - 10))

    def test_wrong_audience(self, service):
        with pytest.raises(ValueError):
            service.authenticate(_token(aud="someone-else"))

    def test_wrong_signature(self, service):
        forged = jwt.encode(
            {"sub": str(uuid4()), "aud": "authenticated"},
            "another-secret-that-is-long-enough-for-hs256",
            algorithm="HS256",
        )
        with pytest.raises(ValueError):
            service.authenticate(forged)

    def test_non_uuid_subject(self, service):
        with pytest.raises(ValueError, match="subject"):
            service.authenticate(_token(sub="admin"))


class TestVerifyCronSecret:
    def test_matching_bearer(self, service):
        assert service.verify_cron_secret(f"Bearer {service.settings.cron_secret}") is True

    @pytest.mark.parametrize("header", [None, "", "Bearer wrong", "test-cron-secret"])
    def test_rejects_mismatch(self, service, header):
        assert service.verify_cron_secret(header) is False

    def test_empty_secret_disables_check(self, service, mock_settings):
        mock_settings.cron_secret = ""
        service.settings = mock_settings
        assert service.verify_cron_secret(None) is True
