"""Ed25519 wallet keys and their base36 text form.

A wallet's private key is the raw 32-byte Ed25519 seed stored in the vault;
its address is the 32-byte public key, both shown to users in base36.
"""
import secrets
from typing import Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

KEY_SIZE = 32
_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


def encode_base36(data: bytes) -> str:
    """Encode bytes as a lowercase base36 string."""
    value = int.from_bytes(data, "big")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_ALPHABET[rem])
    return "".join(reversed(digits))


def decode_base36(text: str, size: int = KEY_SIZE) -> Optional[bytes]:
    """Decode a base36 string into exactly ``size`` bytes.

    Returns None when the text is empty, not base36, or too large.
    """
    text = text.strip().lower()
    if not text or any(c not in _ALPHABET for c in text):
        return None
    try:
        return int(text, 36).to_bytes(size, "big")
    except OverflowError:
        return None


class PublicKey:
    """Wallet address."""

    __slots__ = ("_raw",)

    def __init__(self, raw: bytes):
        if len(raw) != KEY_SIZE:
            raise ValueError(f"Public key must be {KEY_SIZE} bytes, got {len(raw)}")
        self._raw = bytes(raw)

    @classmethod
    def from_base36(cls, text: str) -> Optional["PublicKey"]:
        raw = decode_base36(text)
        if raw is None:
            return None
        try:
            Ed25519PublicKey.from_public_bytes(raw)
        except ValueError:
            return None
        return cls(raw)

    def dump_buf(self) -> bytes:
        return self._raw

    def dump_base36(self) -> str:
        return encode_base36(self._raw)

    def verify(self, signature: bytes, message: bytes) -> bool:
        try:
            Ed25519PublicKey.from_public_bytes(self._raw).verify(signature, message)
        except InvalidSignature:
            return False
        return True

    def __eq__(self, other) -> bool:
        return isinstance(other, PublicKey) and other._raw == self._raw

    def __hash__(self) -> int:
        return hash(self._raw)

    def __repr__(self) -> str:
        return f"PublicKey({self.dump_base36()})"


class PrivateKey:
    """Wallet signing key built from a 32-byte seed."""

    __slots__ = ("_raw",)

    def __init__(self, raw: bytes):
        if len(raw) != KEY_SIZE:
            raise ValueError(f"Private key must be {KEY_SIZE} bytes, got {len(raw)}")
        self._raw = bytes(raw)

    @classmethod
    def random(cls) -> "PrivateKey":
        return cls(secrets.token_bytes(KEY_SIZE))

    @classmethod
    def from_base36(cls, text: str) -> Optional["PrivateKey"]:
        raw = decode_base36(text)
        return cls(raw) if raw is not None else None

    def _signer(self) -> Ed25519PrivateKey:
        return Ed25519PrivateKey.from_private_bytes(self._raw)

    def dump_buf(self) -> bytes:
        return self._raw

    def dump_base36(self) -> str:
        return encode_base36(self._raw)

    def to_public(self) -> PublicKey:
        raw = self._signer().public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        return PublicKey(raw)

    def sign(self, message: bytes) -> bytes:
        return self._signer().sign(message)

    def __repr__(self) -> str:
        return "PrivateKey(<hidden>)"
