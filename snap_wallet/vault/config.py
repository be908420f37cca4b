"""
Wallet Configuration — file locations, node address and cipher settings.

Reads overrides from environment variables:
    SNAP_WALLET_PATH = <vault file>
    SNAP_WALLET_HISTORY = <shell history file>
    SNAP_WALLET_LAST_LOGIN = <file remembering the last used wallet>
    SNAP_WALLET_NODE = <host:port>
    SNAP_WALLET_CIPHER = aesgcm | chacha20

Security Note:
    The PIN is never part of the configuration and is never logged.
"""
import os
import logging
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from .crypto import DEFAULT_CIPHER, cipher_for

logger = logging.getLogger("snapwallet.vault")

DEFAULT_NODE_ADDRESS = "127.0.0.1:3003"


def _home_file(name: str) -> Path:
    return Path.home() / name


class WalletConfig(BaseModel):
    """Validated wallet configuration."""

    wallet_path: Path = Field(default_factory=lambda: _home_file(".snap-coin-wallet"))
    history_path: Path = Field(default_factory=lambda: _home_file(".snap-coin-history"))
    last_login_path: Path = Field(
        default_factory=lambda: _home_file(".snap-coin-last-login")
    )
    node_address: str = Field(default=DEFAULT_NODE_ADDRESS)
    pin_length: int = Field(default=6, ge=4, le=12)
    cipher_backend: str = Field(default=DEFAULT_CIPHER)

    @field_validator("cipher_backend")
    @classmethod
    def known_cipher(cls, v: str) -> str:
        cipher_for(v)
        return v.lower()

    @field_validator("node_address")
    @classmethod
    def validate_node_address(cls, v: str) -> str:
        """Validate node address has the form host:port."""
        host, sep, port = v.rpartition(":")
        if not sep or not host or not port.isdigit() or not 0 < int(port) < 65536:
            raise ValueError(f"Node address must be host:port, got {v!r}")
        return v

    @property
    def node_url(self) -> str:
        if "://" in self.node_address:
            return self.node_address
        return f"http://{self.node_address}"

    @classmethod
    def from_env(cls, **overrides) -> "WalletConfig":
        """Create WalletConfig by loading values from environment.

        Keyword overrides win over environment values; ``None`` overrides
        are ignored.

        Returns:
            Populated WalletConfig instance.
        """
        values = {}
        env_map = {
            "wallet_path": "SNAP_WALLET_PATH",
            "history_path": "SNAP_WALLET_HISTORY",
            "last_login_path": "SNAP_WALLET_LAST_LOGIN",
            "node_address": "SNAP_WALLET_NODE",
            "cipher_backend": "SNAP_WALLET_CIPHER",
        }
        for field, env_name in env_map.items():
            raw = os.environ.get(env_name)
            if raw:
                values[field] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        config = cls(**values)
        logger.debug(
            "Wallet config: vault=%s node=%s cipher=%s",
            config.wallet_path, config.node_address, config.cipher_backend,
        )
        return config
