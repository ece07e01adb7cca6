"""
Tests for password hashing, session tokens and the email OTP store
"""
from datetime import datetime, timezone

import pytest

import otp_store
from errors import RateLimitError, ValidationError
from security import (
    generate_otp,
    generate_session_token,
    hash_password,
    hash_session_token,
    session_expiry,
    verify_password,
)


class TestPasswords:

    def test_hash_and_verify(self):
        hashed = hash_password("s3cret-pass")
        assert hashed.startswith("$pbkdf2-sha256$210000$")
        assert verify_password("s3cret-pass", hashed)
        assert not verify_password("wrong", hashed)

    def test_missing_or_garbage_hash_is_rejected(self):
        assert not verify_password("anything", None)
        assert not verify_password("anything", "not-a-hash")


class TestSessionTokens:

    def test_token_is_urlsafe_and_unique(self):
        a, b = generate_session_token(), generate_session_token()
        assert a != b
        assert len(a) == 43
        assert "=" not in a and "+" not in a and "/" not in a

    def test_stored_hash_is_stable_sha256(self):
        # sha256("abc"), base64url without padding
        assert hash_session_token("abc") == "ungWv48Bz-pBQUDeXa4iI7ADYaOWF3qctBD_YfIAFa0"
        assert hash_session_token("abc") != hash_session_token("abd")

    def test_expiry_is_seven_days(self):
        now = datetime(2026, 3, 1, tzinfo=timezone.utc)
        assert session_expiry(now) == datetime(2026, 3, 8, tzinfo=timezone.utc)


class TestOtpStore:

    @pytest.fixture(autouse=True)
    def fresh_store(self):
        otp_store.clear()
        yield
        otp_store.clear()

    def test_generated_codes_are_six_digits(self):
        for _ in range(50):
            code = generate_otp()
            assert len(code) == 6 and 100000 <= int(code) <= 999999

    def test_correct_code_verifies_once(self):
        code = otp_store.issue("a@b.com", now=1000)
        otp_store.verify("a@b.com", code, now=1001)
        with pytest.raises(ValidationError, match="No OTP found"):
            otp_store.verify("a@b.com", code, now=1002)

    def test_expired_code(self):
        code = otp_store.issue("a@b.com", now=1000)
        with pytest.raises(ValidationError, match="expired"):
            otp_store.verify("a@b.com", code, now=1000 + otp_store.OTP_TTL_SECONDS + 1)

    def test_wrong_code_counts_down(self):
        code = otp_store.issue("a@b.com", now=1000)
        wrong = "000000" if code != "000000" else "111111"
        with pytest.raises(ValidationError, match="4 attempts remaining"):
            otp_store.verify("a@b.com", wrong, now=1001)

    def test_sixth_attempt_is_rate_limited(self):
        code = otp_store.issue("a@b.com", now=1000)
        wrong = "000000" if code != "000000" else "111111"
        for _ in range(otp_store.MAX_ATTEMPTS):
            with pytest.raises(ValidationError):
                otp_store.verify("a@b.com", wrong, now=1001)
        with pytest.raises(RateLimitError):
            otp_store.verify("a@b.com", code, now=1001)
        # entry is gone after lockout
        with pytest.raises(ValidationError, match="No OTP found"):
            otp_store.verify("a@b.com", code, now=1001)

    def test_reissue_replaces_previous_code(self):
        first = otp_store.issue("a@b.com", now=1000)
        second = otp_store.issue("a@b.com", now=1001)
        if first != second:
            with pytest.raises(ValidationError, match="Incorrect OTP"):
                otp_store.verify("a@b.com", first, now=1002)
        otp_store.verify("a@b.com", second, now=1002)

    def test_issue_drops_expired_entries(self):
        otp_store.issue("old@b.com", now=1000)
        otp_store.issue("live@b.com", now=1300)
        otp_store.issue("new@b.com", now=1000 + otp_store.OTP_TTL_SECONDS + 1)
        assert set(otp_store._store) == {"live@b.com", "new@b.com"}
