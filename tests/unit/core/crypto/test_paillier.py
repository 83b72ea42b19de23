"""Tests for the Paillier homomorphic operations (public key only)."""

from __future__ import annotations

import pytest

from vrsense.core.crypto.paillier import (
    CryptoError,
    homomorphic_add,
    homomorphic_multiply,
    homomorphic_sum,
    load_public_key,
    parse_integer,
)
from vrsense.core.storage.models import PublicKey


class TestParseInteger:
    def test_decimal_string(self):
        assert parse_integer("12345678901234567890123456789") == 12345678901234567890123456789

    def test_int_passthrough(self):
        assert parse_integer(42) == 42

    def test_zero_is_valid(self):
        assert parse_integer("0") == 0

    @pytest.mark.parametrize("bad", ["", "abc", "12a", "1.5", " 12", "0x1f", "-5", 1.5, None, True, [1]])
    def test_rejects_invalid(self, bad):
        with pytest.raises(CryptoError):
            parse_integer(bad)

    def test_negative_allowed_when_signed(self):
        assert parse_integer("-7", signed=True) == -7
        assert parse_integer(-7, signed=True) == -7

    def test_beyond_default_digit_limit(self):
        digits = "7" * 5000
        assert str(parse_integer(digits)) == digits

    def test_lone_minus_rejected(self):
        with pytest.raises(CryptoError):
            parse_integer("-", signed=True)


class TestLoadPublicKey:
    def test_from_mapping(self, public_key_dict, public_key):
        pub = load_public_key(public_key_dict)
        assert pub.n == public_key.n

    def test_from_model(self, public_key):
        pub = load_public_key(PublicKey(n=public_key.n, g=public_key.g))
        assert pub.n == public_key.n

    def test_missing_g_raises(self, public_key):
        with pytest.raises(CryptoError, match="both n and g"):
            load_public_key({"n": str(public_key.n)})

    def test_non_numeric_n_raises(self):
        with pytest.raises(CryptoError):
            load_public_key({"n": "not-a-number", "g": "2"})

    def test_zero_modulus_raises(self):
        with pytest.raises(CryptoError, match="positive"):
            load_public_key({"n": "0", "g": "1"})

    def test_none_raises(self):
        with pytest.raises(CryptoError):
            load_public_key(None)


class TestHomomorphicAdd:
    def test_sum_of_plaintexts(self, encrypt, decrypt, public_key_dict):
        result = homomorphic_add(encrypt(70), encrypt(85), public_key_dict)
        assert decrypt(result) == 155

    def test_wraps_modulo_n(self, encrypt, decrypt, public_key, public_key_dict):
        a = public_key.n - 3
        result = homomorphic_add(encrypt(a), encrypt(10), public_key_dict)
        assert decrypt(result) == 7

    def test_deterministic(self, encrypt, public_key_dict):
        c1, c2 = encrypt(1), encrypt(2)
        assert homomorphic_add(c1, c2, public_key_dict) == homomorphic_add(c1, c2, public_key_dict)

    def test_accepts_int_ciphertexts(self, encrypt, decrypt, public_key_dict):
        result = homomorphic_add(int(encrypt(3)), int(encrypt(4)), public_key_dict)
        assert decrypt(result) == 7

    def test_returns_decimal_string(self, encrypt, public_key_dict):
        result = homomorphic_add(encrypt(1), encrypt(1), public_key_dict)
        assert isinstance(result, str)
        assert result.isdigit()

    def test_malformed_ciphertext_raises(self, encrypt, public_key_dict):
        with pytest.raises(CryptoError):
            homomorphic_add("garbage", encrypt(1), public_key_dict)

    def test_invalid_key_raises(self, encrypt):
        with pytest.raises(CryptoError):
            homomorphic_add(encrypt(1), encrypt(2), {"n": "abc", "g": "1"})


class TestHomomorphicMultiply:
    def test_scalar_product(self, encrypt, decrypt, public_key_dict):
        result = homomorphic_multiply(encrypt(12), 5, public_key_dict)
        assert decrypt(result) == 60

    def test_string_scalar(self, encrypt, decrypt, public_key_dict):
        assert decrypt(homomorphic_multiply(encrypt(12), "3", public_key_dict)) == 36

    def test_negative_scalar(self, encrypt, decrypt, public_key, public_key_dict):
        result = homomorphic_multiply(encrypt(12), -2, public_key_dict)
        assert decrypt(result) == (-24) % public_key.n

    def test_zero_scalar(self, encrypt, decrypt, public_key_dict):
        assert decrypt(homomorphic_multiply(encrypt(99), 0, public_key_dict)) == 0

    def test_scalar_n_minus_one_negates(self, encrypt, decrypt, public_key, public_key_dict):
        result = homomorphic_multiply(encrypt(5), public_key.n - 1, public_key_dict)
        assert decrypt(result) == (-5) % public_key.n

    def test_scalar_beyond_encodable_third(self, encrypt, decrypt, public_key, public_key_dict):
        k = public_key.n // 3 + 7
        result = homomorphic_multiply(encrypt(5), str(k), public_key_dict)
        assert decrypt(result) == (5 * k) % public_key.n

    def test_scalar_larger_than_modulus_reduces(self, encrypt, decrypt, public_key, public_key_dict):
        result = homomorphic_multiply(encrypt(4), public_key.n * 3 + 2, public_key_dict)
        assert decrypt(result) == 8

    def test_malformed_ciphertext_raises(self, public_key_dict):
        with pytest.raises(CryptoError):
            homomorphic_multiply("12x", 2, public_key_dict)

    def test_non_integer_scalar_raises(self, encrypt, public_key_dict):
        with pytest.raises(CryptoError):
            homomorphic_multiply(encrypt(1), "1.5", public_key_dict)


class TestHomomorphicSum:
    def test_fold_matches_plaintext_sum(self, encrypt, decrypt, public_key_dict):
        values = [72, 75, 80, 68]
        total = homomorphic_sum([encrypt(v) for v in values], public_key_dict)
        assert decrypt(total) == sum(values)

    def test_single_value_is_identity(self, encrypt, public_key_dict):
        c = encrypt(9)
        assert homomorphic_sum([c], public_key_dict) == c

    def test_two_values_equal_add(self, encrypt, public_key_dict):
        c1, c2 = encrypt(60), encrypt(90)
        assert homomorphic_sum([c1, c2], public_key_dict) == homomorphic_add(c1, c2, public_key_dict)

    def test_empty_raises(self, public_key_dict):
        with pytest.raises(CryptoError, match="empty"):
            homomorphic_sum([], public_key_dict)
