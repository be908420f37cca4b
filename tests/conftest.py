"""Shared fixtures: scripted PIN entry, an in-memory ledger and a session."""
import pytest

from snap_wallet.data import Vault
from snap_wallet.keys import PrivateKey
from snap_wallet.session import WalletSession
from snap_wallet.transaction import AvailableOutput, TransactionOutput
from snap_wallet.vault.store import LastLogin, VaultStore

PIN = "135792"
EASY_TARGET = b"\xff" * 32


class ScriptedPins:
    """PIN reader that returns queued answers and records the prompts."""

    def __init__(self, *pins: str):
        self.pins = list(pins)
        self.prompts: list[str] = []

    def push(self, *pins: str) -> None:
        self.pins.extend(pins)

    def __call__(self, prompt: str, length: int = 6) -> str:
        self.prompts.append(prompt)
        if not self.pins:
            raise AssertionError(f"unexpected PIN prompt: {prompt!r}")
        return self.pins.pop(0)


class FakeLedger:
    """In-memory node.

    Like a real node before the next block, the list of available outputs
    does not change when a transaction is submitted.
    """

    def __init__(self, outputs=None, accept: bool = True, difficulty: bytes = EASY_TARGET):
        self.outputs = list(outputs or [])
        self.accept = accept
        self.difficulty = difficulty
        self.submitted = []
        self.mempool = []
        self.calls: list[str] = []
        self.balance = sum(o.output.amount for o in self.outputs)
        self.history: list[str] = []
        self.transactions = {}

    async def get_balance(self, address):
        self.calls.append("get_balance")
        return self.balance

    async def get_available_outputs(self, address):
        self.calls.append("get_available_outputs")
        return list(self.outputs)

    async def get_transactions_of_address(self, address):
        self.calls.append("get_transactions_of_address")
        return list(self.history)

    async def get_transaction(self, transaction_id):
        self.calls.append("get_transaction")
        return self.transactions.get(transaction_id)

    async def get_transaction_difficulty(self):
        self.calls.append("get_transaction_difficulty")
        return self.difficulty

    async def submit_transaction(self, transaction):
        self.calls.append("submit_transaction")
        self.submitted.append(transaction)
        if self.accept:
            self.mempool.append(transaction.model_copy(deep=True))
            return "accepted"
        return "rejected"

    async def get_mempool(self):
        self.calls.append("get_mempool")
        return list(self.mempool)


def make_output(tx_hash: str, index: int, snap: int, owner: str = "0") -> AvailableOutput:
    return AvailableOutput(
        tx_hash=tx_hash,
        index=index,
        output=TransactionOutput(receiver=owner, amount=snap * 100_000_000),
    )


@pytest.fixture
def alice_key():
    return PrivateKey.random()


@pytest.fixture
def recipient():
    return PrivateKey.random().to_public()


@pytest.fixture
def pins():
    return ScriptedPins()


@pytest.fixture
def messages():
    return []


@pytest.fixture
def store(tmp_path):
    return VaultStore(tmp_path / "wallet.bin")


@pytest.fixture
def session(tmp_path, store, alice_key, pins, messages):
    """Session unlocked with PIN, holding wallet 'alice', saved to disk."""
    vault = Vault({"alice": alice_key.dump_buf()})
    store.save(vault, PIN)
    return WalletSession(
        vault=vault,
        pin=PIN,
        store=store,
        client=FakeLedger(),
        current_wallet="alice",
        last_login=LastLogin(tmp_path / "last-login"),
        pin_reader=pins,
        echo=messages.append,
    )
