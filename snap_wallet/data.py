from typing import Any, NamedTuple, Optional
from collections.abc import Iterable, Iterator, Mapping, MutableMapping, Set

PRIVATE_KEY_SIZE = 32


class Vault(MutableMapping[str, bytes]):
    """Wallet vault dict-like object.

    Maps a wallet name to its 32-byte private key. Every mutation marks the
    vault as changed so the session knows it has to be persisted again.
    """

    def __init__(
        self,
        data: Optional[Mapping[str, bytes]] = None
    ) -> None:
        self._data: dict[str, bytes] = {}
        self._changed = False
        if data is not None:
            for name, key in data.items():
                self[name] = key

    def __repr__(self) -> str:
        # never print key material
        return f'<Vault [changed:{self._changed}] wallets={list(self._data)}>'

    # --- Properties ---

    @property
    def is_changed(self) -> bool:
        return self._changed

    @is_changed.setter
    def is_changed(self, value: bool) -> None:
        self._changed = value

    @property
    def empty(self) -> bool:
        return not bool(self._data)

    def names(self) -> list[str]:
        return list(self._data.keys())

    def copy(self) -> 'Vault':
        """Return an independent vault with the same entries."""
        return Vault(self._data)

    # --- Magic Methods ---

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __getitem__(self, key: str) -> bytes:
        return self._data[key]

    def __setitem__(self, key: str, value: bytes) -> None:
        if not isinstance(key, str):
            raise TypeError(f"Wallet name must be str, got {type(key).__name__}")
        value = bytes(value)
        if len(value) != PRIVATE_KEY_SIZE:
            raise ValueError(
                f"Private key must be exactly {PRIVATE_KEY_SIZE} bytes, "
                f"got {len(value)}"
            )
        self._data[key] = value
        self._changed = True

    def __delitem__(self, key: str) -> None:
        del self._data[key]
        self._changed = True

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, Mapping):
            return dict(self._data) == dict(other)
        return NotImplemented


class OutputRef(NamedTuple):
    """Identifier of a spendable output: (transaction hash, output index)."""
    tx_hash: str
    index: int

    def __str__(self) -> str:
        return f"{self.tx_hash}:{self.index}"


class SpentOutputSet(Set):
    """Outputs already committed to a send during this session.

    Append-only: once an output is added it stays for the lifetime of the
    session, even if the node later drops the transaction.
    """

    def __init__(self, refs: Iterable[OutputRef] = ()) -> None:
        self._refs: set[OutputRef] = set()
        self.update(refs)

    def __repr__(self) -> str:
        return f'<SpentOutputSet size={len(self._refs)}>'

    def __contains__(self, ref: object) -> bool:
        return ref in self._refs

    def __iter__(self) -> Iterator[OutputRef]:
        return iter(self._refs)

    def __len__(self) -> int:
        return len(self._refs)

    def add(self, ref: OutputRef) -> None:
        self._refs.add(OutputRef(*ref))

    def update(self, refs: Iterable[OutputRef]) -> None:
        for ref in refs:
            self.add(ref)
