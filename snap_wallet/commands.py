"""
Interactive commands of the wallet shell.

``handle_command(session, line)`` parses one line and runs its handler.
Every ``WalletError`` is reported and the shell keeps going.
"""
import logging
from collections import defaultdict
from typing import Awaitable, Callable

from .exceptions import StateError, ValidationError, WalletError
from .send import SendCoordinator
from .session import WalletSession
from .transaction import to_snap

logger = logging.getLogger("snapwallet.commands")

HELP = """\
Available commands:
  balance                    - Show wallet balance
  available                  - List available UTXOs
  history                    - Show transaction history
  tx-info <txid>             - Show transaction details
  send <addr> <amt>...       - Send SNAP to addresses
  wallet <subcmd> [<wallet>] - Wallet management commands
    subcommands:
      delete [<wallet>]      - Delete the specified wallet (default: current)
      private [<wallet>]     - Show private key of the wallet (default: current)
      public [<wallet>]      - Show public key of the wallet (default: current)
      switch [<wallet>]      - Switch to the specified wallet (default: current)
  change-pin                 - Change wallet PIN
  help                       - Show this help message
  clear                      - Clears output history
  exit, quit                 - Exit the wallet"""

Handler = Callable[[WalletSession, list[str]], Awaitable[None]]


async def cmd_help(session: WalletSession, args: list[str]) -> None:
    session.echo(HELP)


async def cmd_balance(session: WalletSession, args: list[str]) -> None:
    public = session.current_key("balance").to_public()
    balance = await session.client.get_balance(public)
    session.echo(f"Balance: {to_snap(balance)} SNAP")


async def cmd_available(session: WalletSession, args: list[str]) -> None:
    public = session.current_key("available").to_public()
    outputs = await session.client.get_available_outputs(public)
    by_tx = defaultdict(list)
    for out in outputs:
        by_tx[out.tx_hash].append(out)
    session.echo("Available UTXOs:")
    for tx_hash, items in by_tx.items():
        session.echo(f"  Transaction: {tx_hash}")
        for out in items:
            spent = " (spent this session)" if out.ref in session.spent else ""
            session.echo(
                f"    - Output Index: {out.index}, "
                f"Amount: {to_snap(out.output.amount)}{spent}"
            )


async def cmd_history(session: WalletSession, args: list[str]) -> None:
    public = session.current_key("history").to_public()
    history = await session.client.get_transactions_of_address(public)
    session.echo(f"Transaction History ({len(history)} items):")
    for tx_id in history:
        session.echo(f"  - {tx_id}")


async def cmd_tx_info(session: WalletSession, args: list[str]) -> None:
    if len(args) != 1:
        raise ValidationError("Usage: tx-info <TXID>", operation="tx-info")
    tx_id = args[0].lower()
    try:
        bytes.fromhex(tx_id)
    except ValueError:
        raise ValidationError(f"invalid TX ID: {args[0]}", operation="tx-info") from None
    tx = await session.client.get_transaction(tx_id)
    if tx is None:
        session.echo(f"Transaction not found: {args[0]}")
        return
    session.echo(f"Transaction Details: {tx_id}")
    session.echo(f"  Sender: {tx.sender}")
    for i in tx.inputs:
        session.echo(f"  Input:  {i.tx_hash}:{i.index}")
    for o in tx.outputs:
        session.echo(f"  Output: {o.receiver} {to_snap(o.amount)} SNAP")


async def cmd_send(session: WalletSession, args: list[str]) -> None:
    await SendCoordinator(session).send(args)


async def cmd_wallet(session: WalletSession, args: list[str]) -> None:
    if not args:
        raise ValidationError(
            "Usage: wallet <delete|private|public|switch> [wallet_name]",
            operation="wallet",
        )
    subcmd = args[0]
    name = args[1] if len(args) > 1 else session.current_wallet

    if subcmd == "delete":
        session.delete_wallet(name)
    elif subcmd == "private":
        key = session.reveal_private_key(name)
        session.echo(f"Private key of '{name}': {key.dump_base36()}")
    elif subcmd == "public":
        key = session.key_of(name, "show public key")
        session.echo(f"Public key of '{name}': {key.to_public().dump_base36()}")
    elif subcmd == "switch":
        session.switch_wallet(name)
    else:
        raise ValidationError(f"unknown wallet subcommand: {subcmd}", operation="wallet")


async def cmd_change_pin(session: WalletSession, args: list[str]) -> None:
    session.confirm_pin("Enter current PIN: ", "change PIN")
    new = session.ask_pin(f"Create a new {session.pin_length}-digit wallet PIN: ")
    if new != session.ask_pin(f"Confirm new {session.pin_length}-digit PIN: "):
        raise StateError("PINs do not match", operation="change PIN")
    session.change_pin(new)
    session.echo("Changed PIN.")


COMMANDS: dict[str, Handler] = {
    "help": cmd_help,
    "balance": cmd_balance,
    "available": cmd_available,
    "history": cmd_history,
    "tx-info": cmd_tx_info,
    "send": cmd_send,
    "wallet": cmd_wallet,
    "change-pin": cmd_change_pin,
}


async def handle_command(session: WalletSession, line: str) -> None:
    """Run one command line against the session."""
    parts = line.split()
    if not parts:
        return
    cmd, args = parts[0], parts[1:]
    handler = COMMANDS.get(cmd)
    if handler is None:
        session.echo(f"Unknown command: '{cmd}'. Type 'help' for available commands.")
        return
    try:
        await handler(session, args)
    except WalletError as err:
        logger.debug("Command %s failed: %s", cmd, err)
        session.echo(str(err))
