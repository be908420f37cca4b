"""
Transaction construction, signing and proof of work.

A transaction spends a set of outputs owned by the sender and creates one
output per payment plus an optional change output back to the sender.

- ``build_transaction`` selects inputs and signs the transaction
- ``Transaction.compute_proof_of_work`` searches a nonce under the node's
  difficulty target and assigns the final ``transaction_id``
"""
import hashlib
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union
from collections.abc import Iterable

import orjson
from pydantic import BaseModel, Field

from .data import OutputRef
from .exceptions import ProofOfWorkError, TransactionBuildError, ValidationError
from .keys import PrivateKey, PublicKey

logger = logging.getLogger("snapwallet.transaction")

NANO_PER_SNAP = 100_000_000

Payment = tuple[PublicKey, int]


def to_nano(amount: Union[str, int, Decimal]) -> int:
    """Convert a SNAP amount to nano units.

    Raises:
        ValidationError: If the amount is not a number, not positive, or has
            more precision than one nano.
    """
    try:
        value = Decimal(str(amount))
    except InvalidOperation as err:
        raise ValidationError(f"invalid amount: {amount}", operation="send") from err
    if not value.is_finite() or value <= 0:
        raise ValidationError(f"invalid amount: {amount}", operation="send")
    nano = value * NANO_PER_SNAP
    if nano != nano.to_integral_value():
        raise ValidationError(
            f"amount {amount} is finer than 1 nano", operation="send"
        )
    return int(nano)


def to_snap(nano: int) -> Decimal:
    return Decimal(nano) / NANO_PER_SNAP


class TransactionInput(BaseModel):
    tx_hash: str
    index: int = Field(ge=0)

    @property
    def ref(self) -> OutputRef:
        return OutputRef(self.tx_hash, self.index)


class TransactionOutput(BaseModel):
    receiver: str  # base36 address
    amount: int = Field(gt=0)


class AvailableOutput(BaseModel):
    """Unspent output as listed by the node."""
    tx_hash: str
    output: TransactionOutput
    index: int = Field(ge=0)

    @property
    def ref(self) -> OutputRef:
        return OutputRef(self.tx_hash, self.index)


def _target(difficulty: Union[bytes, str]) -> int:
    if isinstance(difficulty, str):
        difficulty = bytes.fromhex(difficulty)
    if len(difficulty) != 32:
        raise ProofOfWorkError(
            f"difficulty target must be 32 bytes, got {len(difficulty)}"
        )
    return int.from_bytes(difficulty, "big")


class Transaction(BaseModel):
    sender: str
    inputs: list[TransactionInput]
    outputs: list[TransactionOutput]
    signature: Optional[str] = None
    nonce: int = 0
    transaction_id: Optional[str] = None

    def signing_payload(self) -> bytes:
        """Canonical bytes covered by the signature."""
        return orjson.dumps(
            {
                "sender": self.sender,
                "inputs": [i.model_dump() for i in self.inputs],
                "outputs": [o.model_dump() for o in self.outputs],
            },
            option=orjson.OPT_SORT_KEYS,
        )

    def sign(self, private_key: PrivateKey) -> None:
        self.signature = private_key.sign(self.signing_payload()).hex()

    def verify_signature(self) -> bool:
        if self.signature is None:
            return False
        sender = PublicKey.from_base36(self.sender)
        if sender is None:
            return False
        return sender.verify(bytes.fromhex(self.signature), self.signing_payload())

    def _pow_prefix(self) -> bytes:
        return self.signing_payload() + bytes.fromhex(self.signature or "")

    def compute_proof_of_work(
        self,
        difficulty: Union[bytes, str],
        max_attempts: Optional[int] = None
    ) -> str:
        """Search a nonce whose SHA-256 digest is at or below the target.

        Args:
            difficulty: 32-byte big-endian target (bytes or hex).
            max_attempts: Give up after this many nonces. None searches
                until a nonce is found.

        Returns:
            The transaction id (hex digest of the winning nonce).

        Raises:
            ProofOfWorkError: Unsigned transaction, malformed target, or
                ``max_attempts`` exhausted.
        """
        if self.signature is None:
            raise ProofOfWorkError("transaction is not signed")
        target = _target(difficulty)
        base = hashlib.sha256(self._pow_prefix())
        nonce = 0
        while max_attempts is None or nonce < max_attempts:
            h = base.copy()
            h.update(nonce.to_bytes(8, "big"))
            digest = h.digest()
            if int.from_bytes(digest, "big") <= target:
                self.nonce = nonce
                self.transaction_id = digest.hex()
                logger.debug("Proof of work found after %d attempt(s)", nonce + 1)
                return self.transaction_id
            nonce += 1
        raise ProofOfWorkError(f"no nonce found in {max_attempts} attempts")

    def input_refs(self) -> list[OutputRef]:
        return [i.ref for i in self.inputs]

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump()


async def build_transaction(
    client: Any,
    private_key: PrivateKey,
    payments: list[Payment],
    excluded: Iterable[OutputRef] = (),
    candidates: Optional[list[AvailableOutput]] = None
) -> Transaction:
    """Build and sign a transaction paying every (receiver, nano) pair.

    Inputs are taken greedily, largest first, from ``candidates`` (fetched
    from ``client`` when not given), skipping anything in ``excluded``.

    Raises:
        TransactionBuildError: No payments, or not enough funds.
    """
    if not payments:
        raise TransactionBuildError("no payments given")
    sender = private_key.to_public()
    if candidates is None:
        candidates = await client.get_available_outputs(sender)
    excluded = set(excluded)
    pool = sorted(
        (c for c in candidates if c.ref not in excluded),
        key=lambda c: c.output.amount,
        reverse=True,
    )
    total = sum(amount for _, amount in payments)
    selected: list[AvailableOutput] = []
    funded = 0
    for candidate in pool:
        if funded >= total:
            break
        selected.append(candidate)
        funded += candidate.output.amount
    if funded < total:
        raise TransactionBuildError(
            f"insufficient funds: need {to_snap(total)} SNAP, "
            f"have {to_snap(funded)} SNAP available"
        )

    outputs = [
        TransactionOutput(receiver=receiver.dump_base36(), amount=amount)
        for receiver, amount in payments
    ]
    if funded > total:
        outputs.append(
            TransactionOutput(receiver=sender.dump_base36(), amount=funded - total)
        )
    tx = Transaction(
        sender=sender.dump_base36(),
        inputs=[TransactionInput(tx_hash=c.tx_hash, index=c.index) for c in selected],
        outputs=outputs,
    )
    tx.sign(private_key)
    logger.debug(
        "Built transaction with %d input(s), %d output(s)",
        len(tx.inputs), len(tx.outputs),
    )
    return tx
