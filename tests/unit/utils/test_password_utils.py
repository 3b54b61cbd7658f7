"""
Unit tests for password hashing and session token helpers.
"""

import pytest

from content_access_core.exceptions import ErrorCode, ValidationError
from content_access_core.utils.password_utils import (
    HASH_ALGORITHM,
    generate_session_token,
    hash_password,
    token_fingerprint,
    verify_password,
)


class TestHashPassword:
    """Test password hashing."""

    def test_hash_format(self):
        hashed = hash_password("pw123", iterations=10, salt=b"\x00" * 16)

        algorithm, iterations, salt_hex, digest_hex = hashed.split("$")
        assert algorithm == HASH_ALGORITHM
        assert iterations == "10"
        assert salt_hex == "00" * 16
        assert len(digest_hex) == 64

    def test_hash_is_salted(self):
        assert hash_password("pw123") != hash_password("pw123")

    def test_uses_configured_iterations(self, app_config):
        hashed = hash_password("pw123")

        assert hashed.split("$")[1] == str(app_config.security.password_hash_iterations)

    def test_empty_password_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            hash_password("")

        assert exc_info.value.error_code == ErrorCode.MISSING_REQUIRED


class TestVerifyPassword:
    """Test password verification."""

    def test_round_trip(self):
        hashed = hash_password("pw123")

        assert verify_password("pw123", hashed) is True
        assert verify_password("pw124", hashed) is False
        assert verify_password("", hashed) is False

    @pytest.mark.parametrize(
        "bad_hash",
        [None, "", "plaintext", "md5$1$00$00", "pbkdf2_sha256$x$00$00", "pbkdf2_sha256$1$zz$00"],
    )
    def test_malformed_hash_is_false(self, bad_hash):
        assert verify_password("pw", bad_hash) is False


class TestTokens:
    """Test session tokens and fingerprints."""

    def test_tokens_are_unique_and_url_safe(self):
        tokens = {generate_session_token() for _ in range(50)}

        assert len(tokens) == 50
        assert all("/" not in t and "+" not in t for t in tokens)

    def test_token_length_follows_bytes(self):
        assert len(generate_session_token(16)) < len(generate_session_token(64))

    def test_fingerprint_is_stable_and_short(self):
        assert token_fingerprint("abc") == token_fingerprint("abc")
        assert token_fingerprint("abc") != token_fingerprint("abd")
        assert len(token_fingerprint("abc")) == 12
        assert "abc" not in token_fingerprint("abc")

    def test_fingerprint_of_nothing(self):
        assert token_fingerprint(None) is None
        assert token_fingerprint("") is None
