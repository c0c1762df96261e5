"""
Tests for TOTP secret generation and code verification.
"""

import base64
import time

import pyotp
import pytest

from app.services.totp_service import STEP_SECONDS, TotpEngine


@pytest.fixture
def engine():
    return TotpEngine(issuer="FossFLOW", valid_window=1)


@pytest.fixture
def secret(engine):
    return engine.generate_secret("alice").secret


def code_at(secret: str, when: float) -> str:
    return pyotp.TOTP(secret).at(int(when))


class TestEnrollment:
    def test_secret_is_160_bit_base32(self, engine):
        enrollment = engine.generate_secret("alice")
        assert len(enrollment.secret) == 32
        assert len(base64.b32decode(enrollment.secret)) == 20

    def test_secrets_are_unique(self, engine):
        assert engine.generate_secret("alice").secret != engine.generate_secret("alice").secret

    def test_provisioning_uri(self, engine):
        enrollment = engine.generate_secret("alice")
        uri = enrollment.provisioning_uri
        assert uri.startswith("otpauth://totp/")
        assert "alice" in uri
        assert f"secret={enrollment.secret}" in uri
        assert "issuer=FossFLOW" in uri

    def test_qr_code_is_png_data_uri(self, engine):
        enrollment = engine.generate_secret("alice")
        assert engine.qr_data_uri(enrollment.provisioning_uri).startswith("data:image/png;base64,")


class TestVerifyCode:
    def test_current_code_accepted(self, engine, secret):
        now = time.time()
        assert engine.verify_code(secret, code_at(secret, now), for_time=now)

    def test_adjacent_steps_accepted(self, engine, secret):
        now = 1_700_000_015
        assert engine.verify_code(secret, code_at(secret, now - STEP_SECONDS), for_time=now)
        assert engine.verify_code(secret, code_at(secret, now + STEP_SECONDS), for_time=now)

    def test_two_steps_away_rejected(self, engine, secret):
        now = 1_700_000_015
        assert not engine.verify_code(secret, code_at(secret, now - 2 * STEP_SECONDS), for_time=now)
        assert not engine.verify_code(secret, code_at(secret, now + 2 * STEP_SECONDS), for_time=now)

    def test_wider_window_per_call(self, engine, secret):
        now = 1_700_000_015
        old = code_at(secret, now - 2 * STEP_SECONDS)
        assert engine.verify_code(secret, old, window_steps=2, for_time=now)

    def test_zero_window_is_exact(self, engine, secret):
        now = 1_700_000_015
        assert engine.verify_code(secret, code_at(secret, now), window_steps=0, for_time=now)
        assert not engine.verify_code(
            secret, code_at(secret, now - STEP_SECONDS), window_steps=0, for_time=now
        )

    @pytest.mark.parametrize("code", ["", "12345", "1234567", "12a456", " ", "١٢٣٤٥٦", None])
    def test_malformed_codes_rejected(self, engine, secret, code):
        assert not engine.verify_code(secret, code)

    def test_missing_secret_rejected(self, engine):
        assert not engine.verify_code("", "123456")
