"""Wallet Vault — Named private keys encrypted at rest under a PIN.

Security Note (Threat Model):
    The vault key is derived from a short numeric PIN without salt or
    stretching, so an attacker holding the vault file can brute force it.
    The file only protects against casual disclosure; keep it private.
    Wrong PIN and corrupted data are reported with the same error so the
    decryption step does not act as an oracle.
"""

from .crypto import (
    derive_key,
    serialize_vault,
    deserialize_vault,
    encrypt_vault,
    decrypt_vault,
    cipher_for,
)
from .config import WalletConfig
from .store import VaultStore, LastLogin

__all__ = [
    "derive_key",
    "serialize_vault",
    "deserialize_vault",
    "encrypt_vault",
    "decrypt_vault",
    "cipher_for",
    "WalletConfig",
    "VaultStore",
    "LastLogin",
]
