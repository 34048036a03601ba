# Overview: Pluggable codecs for audit log detail payloads at rest.

from __future__ import annotations

from typing import Protocol

from cryptography.fernet import Fernet, InvalidToken


class UndecryptableError(ValueError):
    """Stored audit details could not be decoded with the configured codec."""


class AuditCodec(Protocol):
    name: str

    def encode(self, plaintext: str) -> str: ...

    def decode(self, stored: str) -> str: ...


class PlainCodec:
    """Stores details as-is. Used when no encryption key is configured."""
    name = "plain"

    def encode(self, plaintext: str) -> str:
        return plaintext

    def decode(self, stored: str) -> str:
        return stored


class FernetCodec:
    """Authenticated symmetric encryption (AES-128-CBC + HMAC-SHA256)."""
    name = "fernet"

    def __init__(self, key: str | bytes):
        if isinstance(key, str):
            key = key.encode("utf-8")
        self._fernet = Fernet(key)

    def encode(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")

    def decode(self, stored: str) -> str:
        try:
            return self._fernet.decrypt(stored.encode("utf-8")).decode("utf-8")
        except (InvalidToken, UnicodeError) as exc:
            raise UndecryptableError("Audit details could not be decrypted") from exc


def codec_from_config(config) -> AuditCodec:
    """
    FernetCodec when AUDIT_ENCRYPTION_KEY is set, otherwise PlainCodec.

    A malformed key raises ValueError at startup rather than silently
    writing plaintext.
    """
    key = config.get("AUDIT_ENCRYPTION_KEY")
    if not key:
        return PlainCodec()
    return FernetCodec(key)
