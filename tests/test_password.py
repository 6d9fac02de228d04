"""Credential hasher tests.

Learn: argon2id hashes are salted, so hashing the same password twice
gives different strings that both verify.
"""

import bcrypt

from quill.auth.password import hash_password, needs_upgrade, verify_password


def test_hash_is_not_plaintext():
    h = hash_password("Pw123!")
    assert "Pw123!" not in h
    assert h.startswith("$argon2id$")


def test_verify_roundtrip():
    h = hash_password("Pw123!")
    assert verify_password("Pw123!", h) is True
    assert verify_password("Pw123?", h) is False
    assert verify_password("", h) is False


def test_hash_is_salted():
    assert hash_password("same") != hash_password("same")


def test_verify_garbage_hash_returns_false():
    assert verify_password("anything", "not-a-hash") is False
    assert verify_password("anything", "$argon2id$broken") is False


def test_legacy_bcrypt_hash_verifies_and_needs_upgrade():
    legacy = bcrypt.hashpw(b"old-password", bcrypt.gensalt(rounds=4)).decode()
    assert verify_password("old-password", legacy) is True
    assert verify_password("wrong", legacy) is False
    assert needs_upgrade(legacy) is True


def test_current_hash_needs_no_upgrade():
    assert needs_upgrade(hash_password("fresh")) is False
