"""
VaultStore — Encrypted wallet file on disk.

- ``load(pin)`` — decrypt the vault file (missing file is an empty vault)
- ``save(vault, pin)`` — encrypt and atomically replace the vault file

Security Note:
    Never log PINs or key material. Only log paths, wallet names and counts.
    There is no cross-process locking: two wallets writing the same file
    resolve as last writer wins.
"""
import os
import logging
import tempfile
from pathlib import Path
from typing import Union
from collections.abc import Mapping

from .crypto import DEFAULT_CIPHER, cipher_for, encrypt_vault, decrypt_vault
from ..data import Vault

logger = logging.getLogger("snapwallet.vault")

PathLike = Union[str, os.PathLike]


def _atomic_write(path: Path, payload: bytes) -> None:
    """Write payload to a sibling temp file and move it over ``path``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
    )
    try:
        with os.fdopen(fd, "wb") as fp:
            fp.write(payload)
            fp.flush()
            os.fsync(fp.fileno())
        os.chmod(tmp_name, 0o600)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


class VaultStore:
    """PIN encrypted vault file.

    ``cipher`` names the AEAD backend (``aesgcm`` or ``chacha20``); it is
    resolved once here and used for every load and save of this file.
    """

    def __init__(self, path: PathLike, cipher: str = DEFAULT_CIPHER):
        self.path = Path(path)
        self.cipher_cls = cipher_for(cipher)

    def __repr__(self) -> str:
        return (
            f'<VaultStore path={str(self.path)!r} '
            f'cipher={self.cipher_cls.__name__}>'
        )

    def exists(self) -> bool:
        return self.path.exists()

    def read_blob(self) -> bytes:
        return self.path.read_bytes()

    def load(self, pin: str) -> Vault:
        """Load and decrypt the vault.

        Returns:
            The decrypted vault, or an empty one if the file does not exist.

        Raises:
            CryptoError: Wrong PIN or corrupted file.
            FormatError: Authenticated plaintext is malformed.
            OSError: The file exists but cannot be read.
        """
        if not self.exists():
            logger.info("No vault file at %s, starting empty", self.path)
            return Vault()
        vault = decrypt_vault(self.read_blob(), pin, self.cipher_cls)
        logger.info("Vault loaded from %s: %d wallet(s)", self.path, len(vault))
        return vault

    def save(self, vault: Mapping[str, bytes], pin: str) -> None:
        """Encrypt and persist the vault.

        Encryption happens before the file is touched, so an encryption
        failure leaves the previous file in place.

        Raises:
            FormatError: The vault cannot be serialized.
            CryptoError: The cipher cannot be constructed.
            OSError: The file cannot be written.
        """
        blob = encrypt_vault(vault, pin, self.cipher_cls)
        _atomic_write(self.path, blob)
        if isinstance(vault, Vault):
            vault.is_changed = False
        logger.info("Vault saved to %s: %d wallet(s)", self.path, len(vault))


class LastLogin:
    """Remembers the name of the wallet used last."""

    def __init__(self, path: PathLike):
        self.path = Path(path)

    def load(self) -> str:
        if not self.path.exists():
            return ""
        return self.path.read_text(encoding="utf-8").strip()

    def save(self, name: str) -> None:
        _atomic_write(self.path, name.encode("utf-8"))
