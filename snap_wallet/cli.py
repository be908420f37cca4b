"""
Snap Wallet command line entry point.

Usage:
    $ snap-wallet [NODE_ADDRESS] [--log-level LEVEL]
"""
import sys
import asyncio
import logging
import argparse
from typing import Optional

from .commands import handle_command
from .exceptions import CryptoError, FormatError, RemoteError, WalletError
from .keys import PrivateKey
from .ledger import HttpLedgerClient
from .prompt import read_input, read_pin
from .session import WalletSession
from .vault.config import WalletConfig
from .vault.store import LastLogin, VaultStore
from .version import __version__

logger = logging.getLogger("snapwallet.cli")

PROMPT = "snap coin wallet > "
EXIT_COMMANDS = ("exit", "e", "quit", "q")
CLEAR_COMMANDS = ("clear", "cls")


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="snap-wallet",
        description="Local-custody SNAP wallet shell.",
    )
    parser.add_argument(
        "node", nargs="?", default=None,
        help='node address to connect to, e.g. "127.0.0.1:3003"',
    )
    parser.add_argument(
        "--log-level", default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="diagnostic log level (default: WARNING)",
    )
    parser.add_argument("--version", action="version", version=__version__)
    return parser.parse_args(argv)


def create_wallet_interactive(session: WalletSession) -> str:
    """Ask for a name and optional base36 key, then add the wallet."""
    name = session.line_reader("Enter a name for your new wallet: ")
    key_input = session.line_reader(
        "Enter a base36 private key to import (leave empty for random): "
    )
    key = None
    if key_input:
        key = PrivateKey.from_base36(key_input)
        if key is None:
            raise FormatError("invalid base36 private key", operation="create wallet")
    key = session.create_wallet(name, key)
    session.echo(f"Wallet '{name}' created successfully.")
    session.echo("")
    session.echo("Please make sure to save the wallet private key, in a SAFE, OFFLINE LOCATION!")
    session.echo(f"Wallet private key (base 36): {key.dump_base36()}")
    session.echo(
        "!!! If you lose this key, you will lose your SNAP. "
        "There is NO way to recover it !!!"
    )
    session.echo("!!! Anyone who sees this key can steal your SNAP !!!")
    session.echo("")
    return name


def select_wallet_interactive(session: WalletSession) -> str:
    last = session.last_login.load() if session.last_login else ""
    session.echo("Available wallets:")
    for name in session.vault:
        session.echo(f"  - {name}{' [default]' if name == last else ''}")
    while True:
        name = session.line_reader("Enter wallet name to login: ")
        if not name and last in session.vault:
            return last
        if name in session.vault:
            return name
        session.echo(f"Wallet '{name}' not found. Please try again.")


def choose_wallet(session: WalletSession) -> str:
    if session.vault.empty:
        session.echo("No wallets found. Creating a new wallet.")
        if session.ask_pin(f"Confirm {session.pin_length}-digit wallet PIN: ") != session.pin:
            raise CryptoError("PINs don't match", operation="unlock")
        return create_wallet_interactive(session)

    session.echo("1) Select existing wallet [default]")
    session.echo("2) Create new wallet")
    choice = session.line_reader("Choose option (1 or 2): ") or "1"
    if choice == "1":
        return select_wallet_interactive(session)
    if choice == "2":
        return create_wallet_interactive(session)
    raise WalletError("invalid choice", operation="login")


def _load_history(config: WalletConfig):
    try:
        import readline
    except ImportError:
        return None
    if config.history_path.exists():
        try:
            readline.read_history_file(str(config.history_path))
        except OSError as err:
            logger.warning("Could not read history: %s", err)
    return readline


def _save_history(readline, config: WalletConfig) -> None:
    if readline is None:
        return
    try:
        readline.write_history_file(str(config.history_path))
    except OSError as err:
        logger.warning("Could not save history: %s", err)


async def repl(session: WalletSession, config: WalletConfig) -> None:
    readline = _load_history(config)
    try:
        while not session.closed:
            try:
                line = input(PROMPT).strip()
            except KeyboardInterrupt:
                print("\nInterrupted (Ctrl+C)")
                break
            except EOFError:
                print("\nExiting (Ctrl+D)")
                break
            if not line:
                continue
            if line in EXIT_COMMANDS:
                break
            if line in CLEAR_COMMANDS:
                if readline is not None:
                    readline.clear_history()
                print("\033[2J\033[H", end="", flush=True)
                continue
            await handle_command(session, line)
    finally:
        _save_history(readline, config)


async def run(config: WalletConfig) -> int:
    print("--- Snap Coin Wallet ---")
    store = VaultStore(config.wallet_path, cipher=config.cipher_backend)
    pin = read_pin(f"Enter {config.pin_length}-digit wallet PIN: ", config.pin_length)
    try:
        vault = store.load(pin)
    except (CryptoError, FormatError, OSError) as err:
        print(err)
        return 1

    session = WalletSession(
        vault=vault,
        pin=pin,
        store=store,
        last_login=LastLogin(config.last_login_path),
        pin_reader=read_pin,
        line_reader=read_input,
        pin_length=config.pin_length,
    )
    try:
        name = choose_wallet(session)
    except WalletError as err:
        print(err)
        return 1
    session.current_wallet = name
    session.remember_login(name)
    print(
        f"Loaded wallet '{name}' with public key: "
        f"{session.current_key().to_public().dump_base36()}"
    )

    async with HttpLedgerClient(config.node_url) as client:
        session.client = client
        print(f"Connected to node at {config.node_address}")
        await repl(session, config)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    try:
        config = WalletConfig.from_env(node_address=args.node)
    except ValueError as err:
        print(f"Invalid configuration: {err}", file=sys.stderr)
        return 2
    try:
        return asyncio.run(run(config))
    except RemoteError as err:
        print(err, file=sys.stderr)
        return 1
    except (KeyboardInterrupt, EOFError):
        print()
        return 130


if __name__ == "__main__":
    sys.exit(main())
