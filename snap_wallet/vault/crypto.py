"""
Vault Crypto Core — PIN key derivation, vault serialization and encryption.

Blob layout written to disk:
    [nonce 12B][encrypted_payload + tag 16B]

Plaintext layout, repeated once per wallet:
    [name_len 1B][name UTF-8 name_len B][private_key 32B]

Security Note:
    Never log PINs, plaintext or ciphertext values.
    The key is a plain SHA-256 of a prefixed 6-digit PIN; brute forcing the
    PIN space is an accepted limitation of the wallet's threat model.
    Nonces are random 96-bit; collision probability negligible under normal usage.
"""
import os
import logging
from collections.abc import Mapping

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305

from ..data import Vault
from ..exceptions import CryptoError, FormatError

logger = logging.getLogger("snapwallet.vault")

NONCE_SIZE = 12  # 96-bit nonce
KEY_LENGTH = 32  # AES-256
PRIVATE_KEY_SIZE = 32
MAX_NAME_LENGTH = 255  # one length byte

PIN_KEY_PREFIX = "snap-coin-wallet-"


# Both AEADs take a 32-byte key, a 12-byte nonce and append a 16-byte tag,
# so the blob layout does not depend on the backend.
CIPHERS = {
    "aesgcm": AESGCM,
    "chacha20": ChaCha20Poly1305,
}
DEFAULT_CIPHER = "aesgcm"


def cipher_for(backend: str) -> type:
    """Map a backend name (``aesgcm`` or ``chacha20``) to its AEAD class."""
    try:
        return CIPHERS[backend.lower()]
    except KeyError:
        raise ValueError(f"unsupported cipher backend: {backend}") from None


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def derive_key(pin: str) -> bytes:
    """Derive the 32-byte vault key from a PIN.

    SHA-256 over ``PIN_KEY_PREFIX + pin``. Deterministic, unsalted.

    Args:
        pin: PIN digits as entered by the user.

    Returns:
        32-byte derived key.
    """
    digest = hashes.Hash(hashes.SHA256())
    digest.update(f"{PIN_KEY_PREFIX}{pin}".encode("utf-8"))
    return digest.finalize()


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

def serialize_vault(vault: Mapping[str, bytes]) -> bytes:
    """Flatten a name -> private key mapping into length-prefixed records.

    Raises:
        FormatError: If a name encodes to more than 255 bytes or a key
            is not exactly 32 bytes.
    """
    out = bytearray()
    for name, key in vault.items():
        name_bytes = name.encode("utf-8")
        if len(name_bytes) > MAX_NAME_LENGTH:
            raise FormatError(
                f"wallet name is {len(name_bytes)} bytes "
                f"(maximum {MAX_NAME_LENGTH})",
                operation="encrypt",
            )
        if len(key) != PRIVATE_KEY_SIZE:
            raise FormatError(
                f"private key of '{name}' is {len(key)} bytes "
                f"(expected {PRIVATE_KEY_SIZE})",
                operation="encrypt",
            )
        out.append(len(name_bytes))
        out += name_bytes
        out += key
    return bytes(out)


def deserialize_vault(data: bytes) -> Vault:
    """Rebuild a vault from length-prefixed records.

    Names are decoded leniently (invalid UTF-8 is replaced). A later record
    with the same name overwrites an earlier one.

    Raises:
        FormatError: If a record is truncated.
    """
    vault = Vault()
    i = 0
    while i < len(data):
        name_len = data[i]
        i += 1
        if i + name_len + PRIVATE_KEY_SIZE > len(data):
            raise FormatError(
                f"truncated wallet record at offset {i - 1}",
                operation="deserialize",
            )
        name = data[i:i + name_len].decode("utf-8", errors="replace")
        i += name_len
        vault[name] = data[i:i + PRIVATE_KEY_SIZE]
        i += PRIVATE_KEY_SIZE
    vault.is_changed = False
    return vault


# ---------------------------------------------------------------------------
# Encryption
# ---------------------------------------------------------------------------

def encrypt_vault(
    vault: Mapping[str, bytes],
    pin: str,
    cipher_cls: type = AESGCM
) -> bytes:
    """Serialize and encrypt a vault under a PIN.

    Format: [nonce 12B][encrypted_payload + tag 16B]

    Args:
        vault: Mapping of wallet name to 32-byte private key.
        pin: PIN used for key derivation.
        cipher_cls: AEAD class, one of ``CIPHERS``.

    Returns:
        Encrypted blob.

    Raises:
        FormatError: If the vault cannot be serialized.
        CryptoError: If the cipher cannot be constructed.
    """
    plaintext = serialize_vault(vault)
    try:
        cipher = cipher_cls(derive_key(pin))
    except ValueError as err:
        raise CryptoError(str(err), operation="encrypt") from err
    nonce = os.urandom(NONCE_SIZE)
    ct = cipher.encrypt(nonce, plaintext, None)
    logger.debug("Encrypted vault with %d wallet(s)", len(vault))
    return nonce + ct


def decrypt_vault(blob: bytes, pin: str, cipher_cls: type = AESGCM) -> Vault:
    """Decrypt and deserialize a vault blob.

    Wrong PIN and corrupted data are reported with the same error.

    Args:
        blob: Encrypted vault in format [nonce 12B][payload+tag].
        pin: PIN used for key derivation.
        cipher_cls: AEAD class the blob was written with.

    Returns:
        Decrypted vault.

    Raises:
        CryptoError: If the blob is too short or fails authentication.
        FormatError: If the authenticated plaintext is malformed.
    """
    if len(blob) < NONCE_SIZE:
        raise CryptoError(
            f"vault data too short: {len(blob)} bytes (minimum {NONCE_SIZE})"
        )
    cipher = cipher_cls(derive_key(pin))
    nonce = blob[:NONCE_SIZE]
    ct = blob[NONCE_SIZE:]
    try:
        plaintext = cipher.decrypt(nonce, ct, None)
    except InvalidTag as err:
        raise CryptoError("failed to decrypt wallets (wrong PIN?)") from err
    return deserialize_vault(plaintext)
