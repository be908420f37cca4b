"""
Tests for wallet keys, amounts and transaction building.
"""
import pytest

from snap_wallet.exceptions import ProofOfWorkError, TransactionBuildError, ValidationError
from snap_wallet.keys import PrivateKey, PublicKey, decode_base36, encode_base36
from snap_wallet.transaction import (
    Transaction,
    build_transaction,
    to_nano,
    to_snap,
)

from conftest import EASY_TARGET, FakeLedger, make_output


class TestBase36:
    """Tests for base36 text encoding."""

    def test_known_values(self):
        assert encode_base36(b"\x00") == "0"
        assert encode_base36(b"\x24") == "10"
        assert decode_base36("10", size=1) == b"\x24"

    def test_key_round_trip(self):
        key = PrivateKey.random()
        assert PrivateKey.from_base36(key.dump_base36()).dump_buf() == key.dump_buf()

    def test_uppercase_accepted(self):
        key = PrivateKey.random()
        assert PrivateKey.from_base36(key.dump_base36().upper()) is not None

    @pytest.mark.parametrize("text", ["", "   ", "abc$", "z" * 60])
    def test_invalid(self, text):
        assert decode_base36(text) is None
        assert PrivateKey.from_base36(text) is None


class TestKeys:
    """Tests for PrivateKey / PublicKey."""

    def test_public_key_is_deterministic(self):
        key = PrivateKey(b"\x01" * 32)
        assert key.to_public() == PrivateKey(b"\x01" * 32).to_public()

    def test_sign_and_verify(self):
        key = PrivateKey.random()
        sig = key.sign(b"message")
        assert key.to_public().verify(sig, b"message") is True
        assert key.to_public().verify(sig, b"other") is False

    def test_address_round_trip(self):
        public = PrivateKey.random().to_public()
        assert PublicKey.from_base36(public.dump_base36()) == public

    def test_wrong_size_rejected(self):
        with pytest.raises(ValueError):
            PrivateKey(b"\x01" * 31)

    def test_repr_hides_secret(self):
        key = PrivateKey.random()
        assert key.dump_base36() not in repr(key)


class TestAmounts:
    """Tests for to_nano / to_snap."""

    def test_to_nano(self):
        assert to_nano("1") == 100_000_000
        assert to_nano("0.5") == 50_000_000
        assert to_nano("12.34567891") == 1_234_567_891

    def test_to_snap(self):
        assert str(to_snap(150_000_000)) == "1.5"

    @pytest.mark.parametrize("amount", ["0", "-3", "x", "1e-9"])
    def test_rejected(self, amount):
        with pytest.raises(ValidationError):
            to_nano(amount)


class TestBuildTransaction:
    """Tests for build_transaction and proof of work."""

    @pytest.mark.asyncio
    async def test_fetches_candidates_when_not_given(self):
        key = PrivateKey.random()
        ledger = FakeLedger([make_output("aa" * 32, 0, 3)])
        tx = await build_transaction(ledger, key, [(key.to_public(), 100)])
        assert ledger.calls == ["get_available_outputs"]
        assert tx.input_refs() == [("aa" * 32, 0)]

    @pytest.mark.asyncio
    async def test_excluded_outputs_skipped(self):
        key = PrivateKey.random()
        o1 = make_output("01" * 32, 0, 10)
        o2 = make_output("02" * 32, 0, 1)
        tx = await build_transaction(
            None, key, [(key.to_public(), 100)], excluded=[o1.ref], candidates=[o1, o2]
        )
        assert tx.input_refs() == [o2.ref]

    @pytest.mark.asyncio
    async def test_exact_amount_has_no_change(self):
        key = PrivateKey.random()
        dest = PrivateKey.random().to_public()
        tx = await build_transaction(
            None, key, [(dest, 300_000_000)],
            candidates=[make_output("aa" * 32, 0, 3)],
        )
        assert len(tx.outputs) == 1

    @pytest.mark.asyncio
    async def test_insufficient_funds(self):
        key = PrivateKey.random()
        with pytest.raises(TransactionBuildError):
            await build_transaction(
                None, key, [(key.to_public(), 10**9)],
                candidates=[make_output("aa" * 32, 0, 1)],
            )

    @pytest.mark.asyncio
    async def test_no_payments(self):
        with pytest.raises(TransactionBuildError):
            await build_transaction(None, PrivateKey.random(), [], candidates=[])

    @pytest.mark.asyncio
    async def test_proof_of_work_assigns_id(self):
        key = PrivateKey.random()
        tx = await build_transaction(
            None, key, [(key.to_public(), 1)],
            candidates=[make_output("aa" * 32, 0, 1)],
        )
        # one in 16 digests starts with a zero nibble
        target = b"\x0f" + b"\xff" * 31
        tx_id = tx.compute_proof_of_work(target)
        assert tx.transaction_id == tx_id
        assert int(tx_id[0], 16) == 0
        assert tx.verify_signature() is True

    def test_unsigned_transaction_rejected(self):
        tx = Transaction(sender="abc", inputs=[], outputs=[])
        with pytest.raises(ProofOfWorkError):
            tx.compute_proof_of_work(EASY_TARGET)

    @pytest.mark.asyncio
    async def test_bad_target_size(self):
        key = PrivateKey.random()
        tx = await build_transaction(
            None, key, [(key.to_public(), 1)],
            candidates=[make_output("aa" * 32, 0, 1)],
        )
        with pytest.raises(ProofOfWorkError):
            tx.compute_proof_of_work(b"\xff" * 8)

    @pytest.mark.asyncio
    async def test_tampered_transaction_fails_verification(self):
        key = PrivateKey.random()
        tx = await build_transaction(
            None, key, [(key.to_public(), 1)],
            candidates=[make_output("aa" * 32, 0, 1)],
        )
        tx.outputs[0].amount = 2
        assert tx.verify_signature() is False
