"""Snap Wallet: PIN encrypted key vault and send shell for SNAP."""
from .version import __version__
from .data import Vault, OutputRef, SpentOutputSet
from .exceptions import (
    WalletError,
    FormatError,
    CryptoError,
    ValidationError,
    RemoteError,
    StateError,
)

__all__ = [
    "__version__",
    "Vault",
    "OutputRef",
    "SpentOutputSet",
    "WalletError",
    "FormatError",
    "CryptoError",
    "ValidationError",
    "RemoteError",
    "StateError",
]
