"""
WalletSession holds everything one running wallet shell owns.

Holds the unlocked vault and its PIN, the active wallet, the ledger client
and the outputs already spent during this session. Command handlers and
the send coordinator receive the session explicitly.

Security Note:
    Never log the PIN or key material. Only log wallet names and counts.
"""
import logging
from typing import Any, Callable, Optional

from .data import SpentOutputSet, Vault
from .exceptions import StateError, ValidationError
from .keys import PrivateKey
from .prompt import read_pin, read_input
from .vault.store import LastLogin, VaultStore

logger = logging.getLogger("snapwallet.session")

PinReader = Callable[..., str]


class WalletSession:
    """State of one interactive wallet session.

    The vault in memory is only replaced after the new contents encrypted
    successfully, so a failed save never leaves a half-applied change.
    """

    def __init__(
        self,
        vault: Vault,
        pin: str,
        store: VaultStore,
        client: Any = None,
        current_wallet: str = "",
        last_login: Optional[LastLogin] = None,
        pin_reader: PinReader = read_pin,
        line_reader: Callable[[str], str] = read_input,
        pin_length: int = 6,
        echo: Callable[..., None] = print,
    ):
        self.vault = vault
        self.pin = pin
        self.store = store
        self.client = client
        self.current_wallet = current_wallet
        self.last_login = last_login
        self.spent = SpentOutputSet()
        self.pin_reader = pin_reader
        self.line_reader = line_reader
        self.pin_length = pin_length
        self.echo = echo
        self.closed = False

    def __repr__(self) -> str:
        return (
            f'<WalletSession wallet={self.current_wallet!r} '
            f'wallets={len(self.vault)} spent={len(self.spent)}>'
        )

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def key_of(self, name: str, operation: str = "wallet") -> PrivateKey:
        try:
            return PrivateKey(self.vault[name])
        except KeyError:
            raise StateError(f"wallet '{name}' not found", operation=operation) from None

    def current_key(self, operation: str = "wallet") -> PrivateKey:
        return self.key_of(self.current_wallet, operation)

    def ask_pin(self, prompt: str) -> str:
        return self.pin_reader(prompt, self.pin_length)

    def confirm_pin(self, prompt: str, operation: str) -> None:
        """Re-prompt for the PIN.

        Raises:
            StateError: If the entered PIN differs from the session PIN.
        """
        if self.ask_pin(prompt) != self.pin:
            raise StateError("incorrect PIN", operation=operation)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def persist(self, vault: Vault, pin: Optional[str] = None) -> bool:
        """Encrypt ``vault`` to disk and make it the session vault.

        FormatError and CryptoError propagate with the session untouched.
        Disk errors are reported and the new state is kept in memory.

        Returns:
            True if the file was written.
        """
        pin = self.pin if pin is None else pin
        saved = True
        try:
            self.store.save(vault, pin)
        except OSError as err:
            logger.error("Failed to save wallets to %s: %s", self.store.path, err)
            self.echo(f"Failed to save wallets: {err}")
            saved = False
        self.vault = vault
        self.pin = pin
        return saved

    def remember_login(self, name: str) -> None:
        if self.last_login is None:
            return
        try:
            self.last_login.save(name)
        except OSError as err:
            logger.warning("Could not save last login: %s", err)

    # ------------------------------------------------------------------
    # Wallet management
    # ------------------------------------------------------------------

    def create_wallet(self, name: str, key: Optional[PrivateKey] = None) -> PrivateKey:
        """Add a wallet, random unless ``key`` is given, and persist."""
        if not name:
            raise ValidationError("wallet name cannot be empty", operation="create wallet")
        if name in self.vault:
            raise StateError(f"wallet '{name}' already exists", operation="create wallet")
        key = key or PrivateKey.random()
        updated = self.vault.copy()
        updated[name] = key.dump_buf()
        self.persist(updated)
        logger.info("Created wallet %s", name)
        return key

    def delete_wallet(self, name: str) -> None:
        """Delete a wallet after PIN confirmation and persist.

        Deleting the active wallet switches to another one, or closes the
        session when none remain.
        """
        if name not in self.vault:
            raise StateError(f"wallet '{name}' not found", operation="delete wallet")
        self.confirm_pin(
            f"Enter PIN to confirm deletion of '{name}': ", "delete wallet"
        )
        updated = self.vault.copy()
        del updated[name]
        self.persist(updated)
        logger.info("Deleted wallet %s", name)
        self.echo(f"Wallet '{name}' deleted.")
        if self.current_wallet == name:
            if self.vault.empty:
                self.echo("No wallets remaining.")
                self.closed = True
            else:
                self.switch_wallet(self.vault.names()[0])

    def reveal_private_key(self, name: str) -> PrivateKey:
        key = self.key_of(name, "show private key")
        self.confirm_pin(
            f"Enter PIN to view private key of '{name}': ", "show private key"
        )
        return key

    def switch_wallet(self, name: str) -> None:
        if name not in self.vault:
            raise StateError(f"wallet '{name}' not found", operation="switch wallet")
        self.remember_login(name)
        self.current_wallet = name
        self.echo(f"Switched to wallet '{name}'.")

    def change_pin(self, new_pin: str) -> None:
        """Re-encrypt the vault under ``new_pin`` and keep using it.

        Unlike other changes, a new PIN is only adopted once the file is
        written: the file on disk must always open with the session PIN.

        Raises:
            ValidationError: ``new_pin`` is not ``pin_length`` digits.
            StateError: The vault file could not be written.
        """
        if len(new_pin) != self.pin_length or not (new_pin.isascii() and new_pin.isdigit()):
            raise ValidationError(
                f"PIN must be exactly {self.pin_length} digits", operation="change PIN"
            )
        updated = self.vault.copy()
        try:
            self.store.save(updated, new_pin)
        except OSError as err:
            logger.error("Failed to save wallets to %s: %s", self.store.path, err)
            raise StateError(
                f"vault not saved, PIN unchanged ({err})", operation="change PIN"
            ) from err
        self.vault = updated
        self.pin = new_pin
        logger.info("Vault re-encrypted under a new PIN")
