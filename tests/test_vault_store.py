"""
Tests for vault persistence and wallet management through the session.

Tests cover:
- Missing file handling and atomic replacement
- Create / delete / change PIN persistence
- PIN confirmation failures leaving the file untouched
"""
import os
import stat

import pytest

from snap_wallet.data import Vault
from snap_wallet.exceptions import CryptoError, FormatError, StateError, ValidationError
from snap_wallet.keys import PrivateKey
from snap_wallet.vault.crypto import decrypt_vault
from snap_wallet.vault.store import LastLogin, VaultStore

from conftest import PIN


class TestVaultStore:
    """Tests for VaultStore."""

    def test_missing_file_is_empty_vault(self, tmp_path):
        store = VaultStore(tmp_path / "absent.bin")
        assert store.exists() is False
        assert store.load(PIN) == {}

    def test_save_and_load(self, tmp_path):
        store = VaultStore(tmp_path / "w.bin")
        vault = Vault({"alice": b"\x01" * 32})
        store.save(vault, PIN)
        assert vault.is_changed is False
        assert store.load(PIN) == {"alice": b"\x01" * 32}

    def test_wrong_pin_on_load(self, tmp_path):
        store = VaultStore(tmp_path / "w.bin")
        store.save({"alice": b"\x01" * 32}, PIN)
        with pytest.raises(CryptoError):
            store.load("000000")

    def test_file_is_private(self, tmp_path):
        store = VaultStore(tmp_path / "w.bin")
        store.save({"alice": b"\x01" * 32}, PIN)
        assert stat.S_IMODE(os.stat(store.path).st_mode) == 0o600

    def test_no_temp_files_left(self, tmp_path):
        store = VaultStore(tmp_path / "w.bin")
        store.save({"alice": b"\x01" * 32}, PIN)
        store.save({"bob": b"\x02" * 32}, PIN)
        assert os.listdir(tmp_path) == ["w.bin"]

    def test_unknown_cipher_rejected(self, tmp_path):
        with pytest.raises(ValueError):
            VaultStore(tmp_path / "w.bin", cipher="rot13")

    def test_failed_encryption_keeps_old_file(self, tmp_path):
        store = VaultStore(tmp_path / "w.bin")
        store.save({"alice": b"\x01" * 32}, PIN)
        before = store.read_blob()
        with pytest.raises(FormatError):
            store.save({"x" * 256: b"\x01" * 32}, PIN)
        assert store.read_blob() == before


class TestLastLogin:
    """Tests for LastLogin."""

    def test_missing_is_empty(self, tmp_path):
        assert LastLogin(tmp_path / "ll").load() == ""

    def test_save_and_load(self, tmp_path):
        last = LastLogin(tmp_path / "ll")
        last.save("bob")
        assert last.load() == "bob"


class TestWalletManagement:
    """End-to-end wallet management against the vault file."""

    def test_create_delete_scenario(self, session, store, alice_key, pins):
        bob_key = session.create_wallet("bob")
        assert len(session.vault) == 2
        assert store.load(PIN) == {
            "alice": alice_key.dump_buf(),
            "bob": bob_key.dump_buf(),
        }

        # incorrect PIN: nothing changes
        before = store.read_blob()
        pins.push("000000")
        with pytest.raises(StateError):
            session.delete_wallet("alice")
        assert store.read_blob() == before
        assert len(store.load(PIN)) == 2
        assert "alice" in session.vault

        # correct PIN
        pins.push(PIN)
        session.delete_wallet("alice")
        assert decrypt_vault(store.read_blob(), PIN) == {"bob": bob_key.dump_buf()}
        assert session.current_wallet == "bob"

    def test_create_existing_wallet_rejected(self, session):
        with pytest.raises(StateError):
            session.create_wallet("alice")

    def test_create_empty_name_rejected(self, session):
        with pytest.raises(ValidationError):
            session.create_wallet("")

    def test_create_imported_key(self, session, store):
        key = PrivateKey.random()
        session.create_wallet("imported", key)
        assert store.load(PIN)["imported"] == key.dump_buf()

    def test_create_too_long_name_keeps_memory_state(self, session, store):
        before = store.read_blob()
        with pytest.raises(FormatError):
            session.create_wallet("n" * 256)
        assert session.vault.names() == ["alice"]
        assert store.read_blob() == before

    def test_delete_unknown_wallet_asks_no_pin(self, session, pins):
        with pytest.raises(StateError):
            session.delete_wallet("nobody")
        assert pins.prompts == []

    def test_delete_last_wallet_closes_session(self, session, store, pins, messages):
        pins.push(PIN)
        session.delete_wallet("alice")
        assert session.closed is True
        assert store.load(PIN) == {}
        assert "No wallets remaining." in messages

    def test_delete_other_wallet_keeps_current(self, session, pins):
        session.create_wallet("bob")
        pins.push(PIN)
        session.delete_wallet("bob")
        assert session.current_wallet == "alice"
        assert session.closed is False

    def test_change_pin(self, session, store, alice_key):
        session.change_pin("246810")
        assert session.pin == "246810"
        assert store.load("246810") == {"alice": alice_key.dump_buf()}
        with pytest.raises(CryptoError):
            store.load(PIN)

    def test_change_pin_rejects_non_digits(self, session):
        with pytest.raises(ValidationError):
            session.change_pin("12ab56")

    def test_disk_failure_is_reported(self, session, messages, monkeypatch):
        def broken(*args, **kwargs):
            raise OSError("disk unavailable")
        monkeypatch.setattr("snap_wallet.vault.store._atomic_write", broken)
        session.create_wallet("bob")
        assert "bob" in session.vault
        assert any("Failed to save wallets" in m for m in messages)

    def test_change_pin_disk_failure_keeps_old_pin(self, session, store, monkeypatch):
        def broken(*args, **kwargs):
            raise OSError("disk unavailable")
        monkeypatch.setattr("snap_wallet.vault.store._atomic_write", broken)
        with pytest.raises(StateError, match="PIN unchanged"):
            session.change_pin("246810")
        assert session.pin == PIN
        monkeypatch.undo()
        assert store.load(PIN) == session.vault

    def test_switch_remembers_login(self, session):
        session.create_wallet("bob")
        session.switch_wallet("bob")
        assert session.current_wallet == "bob"
        assert session.last_login.load() == "bob"

    def test_switch_unknown_wallet(self, session):
        with pytest.raises(StateError):
            session.switch_wallet("nobody")
        assert session.current_wallet == "alice"

    def test_reveal_private_key_needs_pin(self, session, alice_key, pins):
        pins.push("111111")
        with pytest.raises(StateError):
            session.reveal_private_key("alice")
        pins.push(PIN)
        assert session.reveal_private_key("alice").dump_buf() == alice_key.dump_buf()
