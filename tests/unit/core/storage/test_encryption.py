"""Tests for the FieldEncryptor (Fernet-based health data encryption)."""

from __future__ import annotations

import pytest
from cryptography.fernet import Fernet

from healthwallet.core.storage.encryption import EncryptionError, FieldEncryptor


@pytest.fixture
def key() -> str:
    return Fernet.generate_key().decode()


@pytest.fixture
def encryptor(key: str) -> FieldEncryptor:
    return FieldEncryptor(key)


class TestRoundTrip:
    def test_biomarker_list_round_trip(self, encryptor: FieldEncryptor):
        data = [{"name": "Ferritin", "value": 15.0}, {"name": "Iron", "value": 50.0}]
        token = encryptor.encrypt(data)
        assert isinstance(token, str)
        assert "Ferritin" not in token
        assert encryptor.decrypt(token) == data

    def test_string_round_trip(self, encryptor: FieldEncryptor):
        assert encryptor.decrypt(encryptor.encrypt("slept badly")) == "slept badly"

    def test_null_round_trip(self, encryptor: FieldEncryptor):
        assert encryptor.encrypt(None) == ""
        assert encryptor.decrypt("") is None
        assert encryptor.decrypt(None) is None


class TestErrors:
    def test_empty_key_rejected(self):
        with pytest.raises(EncryptionError, match="must not be empty"):
            FieldEncryptor("  ")

    def test_invalid_key_rejected(self):
        with pytest.raises(EncryptionError, match="Invalid encryption key"):
            FieldEncryptor("not-a-fernet-key")

    def test_wrong_key_cannot_decrypt(self, encryptor: FieldEncryptor):
        token = encryptor.encrypt({"a": 1})
        other = FieldEncryptor(FieldEncryptor.generate_key())
        with pytest.raises(EncryptionError, match="invalid token"):
            other.decrypt(token)

    def test_tampered_token(self, encryptor: FieldEncryptor):
        with pytest.raises(EncryptionError):
            encryptor.decrypt("garbage")

    def test_non_serializable_data(self, encryptor: FieldEncryptor):
        with pytest.raises(EncryptionError):
            encryptor.encrypt(object())


def test_generate_key_is_usable():
    key = FieldEncryptor.generate_key()
    assert FieldEncryptor(key).decrypt(FieldEncryptor(key).encrypt(7)) == 7
