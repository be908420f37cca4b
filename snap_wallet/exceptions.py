"""Wallet error taxonomy.

Every error carries the name of the operation that failed so the
interactive shell can report it as ``"<operation> failed: <message>"``.
"""
from typing import Optional


class WalletError(Exception):
    """Base class for every error raised by the wallet."""

    default_operation = "wallet"

    def __init__(self, message: str, operation: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.operation = operation or self.default_operation

    def __str__(self) -> str:
        return f"{self.operation} failed: {self.message}"


class FormatError(WalletError):
    """Serialized vault bytes are malformed (truncated name or key)."""

    default_operation = "vault format"


class CryptoError(WalletError):
    """Key derivation or authenticated decryption failed.

    Wrong PIN and tampered data raise the same error on purpose.
    """

    default_operation = "decrypt"


class ValidationError(WalletError):
    """Malformed command arguments."""

    default_operation = "validate"


class RemoteError(WalletError):
    """Failure surfaced by the ledger client or transaction layer."""

    default_operation = "node"


class TransactionBuildError(RemoteError):
    default_operation = "build transaction"


class ProofOfWorkError(RemoteError):
    default_operation = "proof of work"


class StateError(WalletError):
    """Unknown wallet, or PIN mismatch on a confirmation prompt."""

    default_operation = "session"
