"""Client for the token ledger JSON-RPC service."""

from __future__ import annotations

import base64
import itertools
import json
import logging
import time
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from .errors import AssetNotFoundError, TokenLedgerError, TxNotFoundError
from .ids import id_to_string
from .rpc_server import JSONRPC_ENDPOINT

logger = logging.getLogger(__name__)

Transport = Callable[[str, Mapping[str, Any]], Mapping[str, Any]]


class RPCError(TokenLedgerError):
    """The service answered a request with an error."""

    message = "rpc error"


@dataclass(frozen=True)
class TxStatus:
    success: bool
    timestamp: int


@dataclass(frozen=True)
class AssetInfo:
    metadata: bytes
    supply: int
    owner: str
    warp: bool


def _http_transport(url: str, request: Mapping[str, Any]) -> Mapping[str, Any]:
    body = json.dumps(request).encode("utf-8")
    req = urllib.request.Request(
        url, data=body, headers={"Content-Type": "application/json"}, method="POST"
    )
    try:
        with urllib.request.urlopen(req) as resp:
            return json.loads(resp.read())
    except urllib.error.HTTPError as exc:
        text = exc.read()
        try:
            return json.loads(text)
        except ValueError:
            raise RPCError(f"HTTP {exc.code}: {text.decode('utf-8', 'replace')}") from None


class JSONRPCClient:
    """Queries one chain's token service.

    ``timeout`` bounds how long the wait_for_* methods poll; None waits forever.
    """

    def __init__(
        self,
        uri: str,
        chain_id: bytes,
        name: str,
        *,
        transport: Optional[Transport] = None,
        poll_interval: float = 0.5,
        timeout: Optional[float] = None,
    ) -> None:
        self.url = uri.removesuffix("/") + JSONRPC_ENDPOINT
        self.chain_id = bytes(chain_id)
        self.name = name
        self.poll_interval = poll_interval
        self.timeout = timeout
        self._transport = transport or _http_transport
        self._ids = itertools.count(1)
        self._genesis: Any = None

    def _call(self, method: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        request = {
            "jsonrpc": "2.0",
            "method": f"{self.name}.{method}",
            "params": dict(params or {}),
            "id": next(self._ids),
        }
        response = self._transport(self.url, request)
        error = response.get("error")
        if error:
            message = error.get("message") if isinstance(error, Mapping) else str(error)
            raise RPCError(message)
        return response.get("result") or {}

    def genesis(self) -> Any:
        """Return the chain's genesis, fetched once and then cached."""
        if self._genesis is None:
            self._genesis = self._call("genesis").get("genesis")
        return self._genesis

    def tx(self, tx_id: bytes) -> Optional[TxStatus]:
        """Return a transaction's outcome, or None if it is not known yet."""
        try:
            reply = self._call("tx", {"txId": id_to_string(tx_id)})
        except RPCError as exc:
            if TxNotFoundError.message in str(exc):
                return None
            raise
        return TxStatus(bool(reply.get("success")), int(reply.get("timestamp", 0)))

    def asset(self, asset: bytes) -> Optional[AssetInfo]:
        """Return an asset's description, or None if it does not exist."""
        try:
            reply = self._call("asset", {"asset": id_to_string(asset)})
        except RPCError as exc:
            if AssetNotFoundError.message in str(exc):
                return None
            raise
        metadata = reply.get("metadata")
        return AssetInfo(
            metadata=base64.b64decode(metadata) if metadata else b"",
            supply=int(reply.get("supply", 0)),
            owner=reply.get("owner", ""),
            warp=bool(reply.get("warp")),
        )

    def balance(self, addr: str, asset: bytes) -> int:
        reply = self._call("balance", {"address": addr, "asset": id_to_string(asset)})
        return int(reply.get("amount", 0))

    def orders(self, pair: str) -> list:
        return list(self._call("orders", {"pair": pair}).get("orders") or [])

    def loan(self, asset: bytes, destination: bytes) -> int:
        reply = self._call(
            "loan",
            {"asset": id_to_string(asset), "destination": id_to_string(destination)},
        )
        return int(reply.get("amount", 0))

    def _wait(self, done: Callable[[], bool]) -> None:
        deadline = None if self.timeout is None else time.monotonic() + self.timeout
        while not done():
            if deadline is not None and time.monotonic() >= deadline:
                raise TimeoutError("condition not met before timeout")
            time.sleep(self.poll_interval)

    def wait_for_balance(self, addr: str, asset: bytes, minimum: int) -> None:
        """Block until the balance of addr reaches at least minimum."""

        def reached() -> bool:
            if self.balance(addr, asset) >= minimum:
                return True
            logger.info("waiting for %d balance: %s", minimum, addr)
            return False

        self._wait(reached)

    def wait_for_transaction(self, tx_id: bytes) -> bool:
        """Block until the transaction is known; return whether it succeeded."""
        found: list[TxStatus] = []

        def known() -> bool:
            status = self.tx(tx_id)
            if status is None:
                return False
            found.append(status)
            return True

        self._wait(known)
        return found[-1].success