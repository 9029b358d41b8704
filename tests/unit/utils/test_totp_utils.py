"""
Unit tests for TOTP utilities.

Reference values come from the RFC 6238 SHA-1 test vectors, whose shared
secret is the ASCII string "12345678901234567890".
"""

import pytest

from ecosystem_vault.exceptions import InvalidSeedError
from ecosystem_vault.utils.totp_utils import (
    generate_totp,
    normalize_seed,
    validate_seed,
    verify_totp,
)

RFC_SEED = "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"


class TestGenerateTotp:
    @pytest.mark.parametrize(
        "for_time, expected",
        [(59, "94287082"), (1111111109, "07081804"), (1234567890, "89005924")],
    )
    def test_matches_rfc_vectors(self, for_time, expected):
        assert generate_totp(RFC_SEED, for_time=for_time, digits=8) == expected

    def test_six_digit_codes_are_zero_padded(self):
        code = generate_totp(RFC_SEED, for_time=1111111109)
        assert code == "081804"


class TestVerifyTotp:
    def test_current_step_verifies(self):
        assert verify_totp("287082", RFC_SEED, for_time=59) is True

    def test_code_length_selects_digits(self):
        assert verify_totp("94287082", RFC_SEED, for_time=59) is True

    def test_previous_step_is_accepted(self):
        code = generate_totp(RFC_SEED, for_time=59)
        assert verify_totp(code, RFC_SEED, for_time=89) is True

    def test_two_steps_back_is_rejected(self):
        code = generate_totp(RFC_SEED, for_time=59)
        assert verify_totp(code, RFC_SEED, for_time=119) is False

    def test_future_step_is_rejected(self):
        code = generate_totp(RFC_SEED, for_time=89)
        assert verify_totp(code, RFC_SEED, for_time=59) is False

    def test_wider_window_accepts_older_steps(self):
        code = generate_totp(RFC_SEED, for_time=59)
        assert verify_totp(code, RFC_SEED, for_time=119, valid_window=2) is True

    def test_zero_window_accepts_only_current_step(self):
        code = generate_totp(RFC_SEED, for_time=59)
        assert verify_totp(code, RFC_SEED, for_time=89, valid_window=0) is False

    @pytest.mark.parametrize("code", ["", "28708a", "12345", "123456789", None, "000000"])
    def test_malformed_or_wrong_codes_verify_false(self, code):
        assert verify_totp(code, RFC_SEED, for_time=59) is False

    def test_seed_is_normalized(self):
        messy = " gezd gnbv gy3t qojq gezd gnbv gy3t qojq "
        assert verify_totp("287082", messy, for_time=59) is True

    def test_invalid_seed_raises_even_for_bad_code(self):
        with pytest.raises(InvalidSeedError):
            verify_totp("abc", "not-base32!", for_time=59)

    def test_blank_seed_raises(self):
        with pytest.raises(InvalidSeedError):
            verify_totp("287082", "   ")


class TestSeedHelpers:
    def test_normalize_seed_pads_to_multiple_of_eight(self):
        assert normalize_seed("jbsw y3dp") == "JBSWY3DP"
        assert normalize_seed("JBSWY3DPEH") == "JBSWY3DPEH======"

    def test_validate_seed_returns_normalized(self):
        assert validate_seed("gezdgnbvgy3tqojq") == "GEZDGNBVGY3TQOJQ"

    @pytest.mark.parametrize("seed", ["", "   ", "1111", "ABC!DEF"])
    def test_validate_seed_rejects_bad_input(self, seed):
        with pytest.raises(InvalidSeedError):
            validate_seed(seed)
