"""
Ledger client for the remote node the wallet talks to.

``LedgerClient`` is the interface the wallet depends on;
``HttpLedgerClient`` implements it over the node's JSON HTTP API.

Every call is a suspension point. Any failure to get a usable answer from
the node, timeouts and malformed bodies included, surfaces as ``RemoteError``.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional, Protocol, runtime_checkable

import aiohttp
import orjson

from .exceptions import RemoteError
from .keys import PublicKey
from .transaction import AvailableOutput, Transaction

logger = logging.getLogger("snapwallet.ledger")


def _as_list(data: Any) -> list:
    if data is None:
        return []
    if not isinstance(data, list):
        raise TypeError(f"expected a JSON array, got {type(data).__name__}")
    return data


@runtime_checkable
class LedgerClient(Protocol):
    """Async view of a SNAP node."""

    async def get_balance(self, address: PublicKey) -> int: ...

    async def get_available_outputs(self, address: PublicKey) -> list[AvailableOutput]: ...

    async def get_transactions_of_address(self, address: PublicKey) -> list[str]: ...

    async def get_transaction(self, transaction_id: str) -> Optional[Transaction]: ...

    async def get_transaction_difficulty(self) -> bytes: ...

    async def submit_transaction(self, transaction: Transaction) -> str: ...

    async def get_mempool(self) -> list[Transaction]: ...


class HttpLedgerClient:
    """LedgerClient backed by the node's HTTP API.

    Use as an async context manager, or call ``connect()``/``close()``.
    """

    def __init__(self, base_url: str, timeout: float = 30.0):
        self.base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "HttpLedgerClient":
        await self.connect()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def connect(self) -> None:
        """Open the HTTP session and check the node answers."""
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        try:
            await self.get_transaction_difficulty()
        except RemoteError:
            await self.close()
            raise
        logger.info("Connected to node at %s", self.base_url)

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def _request(
        self,
        method: str,
        path: str,
        payload: Any = None,
        allow_missing: bool = False
    ) -> Any:
        if self._session is None:
            raise RemoteError("client is not connected", operation=path)
        url = f"{self.base_url}{path}"
        data = orjson.dumps(payload) if payload is not None else None
        headers = {"Content-Type": "application/json"} if data is not None else None
        try:
            async with self._session.request(
                method, url, data=data, headers=headers
            ) as resp:
                body = await resp.read()
                if allow_missing and resp.status == 404:
                    return None
                if resp.status >= 400:
                    raise RemoteError(
                        f"node answered {resp.status}: "
                        f"{body.decode('utf-8', errors='replace')[:200]}",
                        operation=f"{method} {path}",
                    )
        except asyncio.TimeoutError as err:
            raise RemoteError(
                f"node did not answer within {self._timeout.total:g}s",
                operation=f"{method} {path}",
            ) from err
        except aiohttp.ClientError as err:
            raise RemoteError(str(err) or type(err).__name__, operation=f"{method} {path}") from err
        try:
            return orjson.loads(body) if body else None
        except orjson.JSONDecodeError as err:
            raise RemoteError("invalid JSON from node", operation=f"{method} {path}") from err

    async def _call(
        self,
        method: str,
        path: str,
        decode: Callable[[Any], Any],
        payload: Any = None,
        allow_missing: bool = False
    ) -> Any:
        """Request ``path`` and turn the JSON answer into wallet types."""
        data = await self._request(method, path, payload, allow_missing)
        try:
            return decode(data)
        except (AttributeError, KeyError, TypeError, ValueError) as err:
            # pydantic.ValidationError is a ValueError
            logger.debug("Malformed answer to %s %s: %s", method, path, err)
            raise RemoteError(
                "malformed response from node", operation=f"{method} {path}"
            ) from err

    async def get_balance(self, address: PublicKey) -> int:
        return await self._call(
            "GET", f"/balance/{address.dump_base36()}",
            lambda data: int(data["balance"]),
        )

    async def get_available_outputs(self, address: PublicKey) -> list[AvailableOutput]:
        return await self._call(
            "GET", f"/outputs/{address.dump_base36()}",
            lambda data: [AvailableOutput.model_validate(item) for item in _as_list(data)],
        )

    async def get_transactions_of_address(self, address: PublicKey) -> list[str]:
        return await self._call(
            "GET", f"/history/{address.dump_base36()}",
            lambda data: [str(tx_id) for tx_id in _as_list(data)],
        )

    async def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return await self._call(
            "GET", f"/transaction/{transaction_id}",
            lambda data: Transaction.model_validate(data) if data else None,
            allow_missing=True,
        )

    async def get_transaction_difficulty(self) -> bytes:
        return await self._call(
            "GET", "/difficulty/transaction",
            lambda data: bytes.fromhex(data["difficulty"]),
        )

    async def submit_transaction(self, transaction: Transaction) -> str:
        return await self._call(
            "POST", "/transaction",
            lambda data: str((data or {}).get("status", "unknown")),
            transaction.to_wire(),
        )

    async def get_mempool(self) -> list[Transaction]:
        return await self._call(
            "GET", "/mempool",
            lambda data: [Transaction.model_validate(item) for item in _as_list(data)],
        )
