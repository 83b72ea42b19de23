"""Tests for the stateless homomorphic demo operation."""

from __future__ import annotations

from vrsense.domains.vr_therapy.demo import demo_homomorphic_op


def test_add_first_two(encrypt, decrypt, public_key_dict):
    result = demo_homomorphic_op("add", [encrypt(5), encrypt(7), encrypt(100)], public_key_dict)
    assert result.ok
    assert decrypt(result.result) == 12


def test_add_needs_two_values(encrypt, public_key_dict):
    result = demo_homomorphic_op("add", [encrypt(5)], public_key_dict)
    assert result.to_dict() == {"error": "Need at least 2 values for addition"}


def test_average_returns_sum_and_count(encrypt, decrypt, public_key_dict):
    result = demo_homomorphic_op("average", [encrypt(v) for v in (60, 70, 80)], public_key_dict)
    assert result.result["count"] == 3
    assert decrypt(result.result["sum"]) == 210


def test_average_needs_values(public_key_dict):
    assert demo_homomorphic_op("average", [], public_key_dict).error is not None


def test_multiply(encrypt, decrypt, public_key_dict):
    result = demo_homomorphic_op("multiply", [encrypt(9)], public_key_dict, scalar="4")
    assert decrypt(result.result) == 36


def test_multiply_by_modulus_minus_one(encrypt, decrypt, public_key, public_key_dict):
    result = demo_homomorphic_op("multiply", [encrypt(9)], public_key_dict, scalar=str(public_key.n - 1))
    assert result.ok
    assert decrypt(result.result) == (-9) % public_key.n


def test_multiply_requires_scalar(encrypt, public_key_dict):
    result = demo_homomorphic_op("multiply", [encrypt(9)], public_key_dict)
    assert result.error == "Scalar required for multiplication"


def test_invalid_operation(encrypt, public_key_dict):
    result = demo_homomorphic_op("divide", [encrypt(1), encrypt(2)], public_key_dict)
    assert result.to_dict() == {"error": "Invalid operation"}


def test_operands_must_be_list(public_key_dict):
    assert demo_homomorphic_op("add", "123", public_key_dict).error == "encryptedValues must be a list"


def test_crypto_error_becomes_error_result(encrypt):
    result = demo_homomorphic_op("add", [encrypt(1), encrypt(2)], {"n": "x", "g": "1"})
    assert not result.ok
    assert result.result is None


def test_malformed_ciphertext(public_key_dict):
    result = demo_homomorphic_op("average", ["12", "oops"], public_key_dict)
    assert result.error is not None
