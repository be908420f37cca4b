"""
Send coordinator for one transfer from the active wallet.

Steps, each completing or failing outright:
    validate -> collect candidates -> build -> prove -> confirm PIN
    -> submit -> verify in mempool -> commit spent outputs

The node's list of available outputs lags behind transactions it has not
mined yet, so outputs spent earlier in the session are excluded locally.
Outputs are only committed to the session once the node shows the
transaction in its mempool; a failed send leaves the session unchanged.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional
from collections.abc import Sequence

from .data import OutputRef
from .exceptions import ValidationError
from .keys import PrivateKey, PublicKey
from .session import WalletSession
from .transaction import (
    AvailableOutput,
    Payment,
    Transaction,
    build_transaction,
    to_nano,
)

logger = logging.getLogger("snapwallet.send")

USAGE = "Usage: send <receiver> <amount> [...more pairs]"


def parse_payments(args: Sequence[str]) -> list[Payment]:
    """Parse ``[addr, amount, addr, amount, ...]`` into payments.

    Raises:
        ValidationError: Odd or empty argument list, unknown address, or
            an amount that is not a positive number of nano.
    """
    if len(args) < 2 or len(args) % 2 != 0:
        raise ValidationError(USAGE, operation="send")
    payments: list[Payment] = []
    for receiver_str, amount_str in zip(args[::2], args[1::2]):
        receiver = PublicKey.from_base36(receiver_str)
        if receiver is None:
            raise ValidationError(
                f"invalid public address: {receiver_str}", operation="send"
            )
        payments.append((receiver, to_nano(amount_str)))
    return payments


@dataclass
class PendingSend:
    """Working state of a single send; dropped when the send ends."""
    wallet: str
    payments: list[Payment]
    candidates: list[AvailableOutput] = field(default_factory=list)
    transaction: Optional[Transaction] = None
    transaction_id: Optional[str] = None


@dataclass(frozen=True)
class SendResult:
    transaction_id: str
    status: str
    accepted: bool
    spent: tuple[OutputRef, ...] = ()


class SendCoordinator:
    """Drives a send against the session's ledger client."""

    def __init__(self, session: WalletSession, max_pow_attempts: Optional[int] = None):
        self.session = session
        self.max_pow_attempts = max_pow_attempts

    @property
    def client(self):
        return self.session.client

    def _echo(self, message: str) -> None:
        self.session.echo(message)

    async def send(self, args: Sequence[str]) -> SendResult:
        """Run a full send for ``args`` (address/amount pairs)."""
        payments = parse_payments(args)
        key = self.session.current_key("send")
        pending = PendingSend(wallet=self.session.current_wallet, payments=payments)

        await self._collect(pending, key)
        await self._build(pending, key)
        await self._prove(pending)
        self._confirm(pending)
        status = await self._submit(pending)
        return await self._verify(pending, status)

    async def _collect(self, pending: PendingSend, key: PrivateKey) -> None:
        available = await self.client.get_available_outputs(key.to_public())
        pending.candidates = [o for o in available if o.ref not in self.session.spent]
        logger.debug(
            "Send from %s: %d candidate output(s), %d excluded this session",
            pending.wallet, len(pending.candidates),
            len(available) - len(pending.candidates),
        )

    async def _build(self, pending: PendingSend, key: PrivateKey) -> None:
        pending.transaction = await build_transaction(
            self.client,
            key,
            pending.payments,
            excluded=self.session.spent,
            candidates=pending.candidates,
        )

    async def _prove(self, pending: PendingSend) -> None:
        self._echo("Computing Proof of Work...")
        difficulty = await self.client.get_transaction_difficulty()
        pending.transaction_id = pending.transaction.compute_proof_of_work(
            difficulty, self.max_pow_attempts
        )
        self._echo(f"Created transaction: {pending.transaction_id}")

    def _confirm(self, pending: PendingSend) -> None:
        self.session.confirm_pin(
            f"Enter {self.session.pin_length}-digit PIN to confirm: ", "send"
        )

    async def _submit(self, pending: PendingSend) -> str:
        self._echo("Submitting transaction...")
        status = await self.client.submit_transaction(pending.transaction)
        self._echo(f"Transaction submission status: {status}")
        logger.info("Submitted %s (%s)", pending.transaction_id, status)
        return status

    async def _verify(self, pending: PendingSend, status: str) -> SendResult:
        self._echo("Validating submission...")
        mempool = await self.client.get_mempool()
        accepted = any(
            tx.transaction_id == pending.transaction_id for tx in mempool
        )
        if not accepted:
            logger.warning("Transaction %s not found in mempool", pending.transaction_id)
            self._echo("Transaction failed to submit.")
            return SendResult(pending.transaction_id, status, False)

        spent = tuple(pending.transaction.input_refs())
        self.session.spent.update(spent)
        self._echo("Transaction successfully submitted.")
        self._echo("Saved spent UTXOs to session.")
        return SendResult(pending.transaction_id, status, True, spent)
