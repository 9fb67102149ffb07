"""JSON-RPC service that answers token ledger queries."""

from __future__ import annotations

import base64
import dataclasses
import json
from typing import Any, Callable, Mapping, Optional, Protocol, Sequence, Union

from .address import parse_address, address
from .errors import AssetNotFoundError, TokenLedgerError, TxNotFoundError
from .ids import EMPTY_ID, id_from_string
from .storage import AssetRecord, TransactionRecord

JSONRPC_ENDPOINT = "/tokenapi"
ORDERS_TO_SEND = 128

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
SERVER_ERROR = -32000


class Controller(Protocol):
    """What the service needs from the running ledger."""

    def genesis(self) -> Any: ...

    def get_transaction(self, tx_id: bytes) -> Optional[TransactionRecord]: ...

    def get_asset_from_state(self, asset: bytes) -> Optional[AssetRecord]: ...

    def get_balance_from_state(self, public_key: bytes, asset: bytes) -> int: ...

    def orders(self, pair: str, limit: int) -> Sequence[Any]: ...

    def get_loan_from_state(self, asset: bytes, destination: bytes) -> int: ...


def _parse_id(args: Mapping[str, Any], key: str) -> bytes:
    value = args.get(key)
    if value is None:
        return EMPTY_ID
    return id_from_string(value)


def _jsonable(item: Any) -> Any:
    if dataclasses.is_dataclass(item) and not isinstance(item, type):
        return dataclasses.asdict(item)
    return item


class JSONRPCServer:
    """Serves genesis, transaction, asset, balance, order and loan queries."""

    def __init__(self, controller: Controller, hrp: str) -> None:
        self.controller = controller
        self.hrp = hrp
        self._methods: dict[str, Callable[[Mapping[str, Any]], dict]] = {
            "genesis": lambda _args: self.genesis(),
            "tx": self.tx,
            "asset": self.asset,
            "balance": self.balance,
            "orders": self.orders,
            "loan": self.loan,
        }

    def genesis(self) -> dict:
        return {"genesis": self.controller.genesis()}

    def tx(self, args: Mapping[str, Any]) -> dict:
        record = self.controller.get_transaction(_parse_id(args, "txId"))
        if record is None:
            raise TxNotFoundError()
        return {
            "timestamp": record.timestamp,
            "success": record.success,
            "units": record.units,
        }

    def asset(self, args: Mapping[str, Any]) -> dict:
        record = self.controller.get_asset_from_state(_parse_id(args, "asset"))
        if record is None:
            raise AssetNotFoundError()
        return {
            "metadata": base64.b64encode(record.metadata).decode("ascii"),
            "supply": record.supply,
            "owner": address(record.owner, self.hrp),
            "warp": record.warp,
        }

    def balance(self, args: Mapping[str, Any]) -> dict:
        public_key = parse_address(args.get("address") or "", self.hrp)
        amount = self.controller.get_balance_from_state(public_key, _parse_id(args, "asset"))
        return {"amount": amount}

    def orders(self, args: Mapping[str, Any]) -> dict:
        found = self.controller.orders(args.get("pair") or "", ORDERS_TO_SEND)
        return {"orders": [_jsonable(order) for order in found]}

    def loan(self, args: Mapping[str, Any]) -> dict:
        amount = self.controller.get_loan_from_state(
            _parse_id(args, "asset"), _parse_id(args, "destination")
        )
        return {"amount": amount}

    def handle(self, payload: Union[Mapping[str, Any], str, bytes]) -> dict:
        """Answer one JSON-RPC 2.0 request, given parsed or as JSON text."""
        if isinstance(payload, (str, bytes, bytearray)):
            try:
                payload = json.loads(payload)
            except ValueError as exc:
                return _error(None, PARSE_ERROR, f"parse error: {exc}")
        if not isinstance(payload, Mapping):
            return _error(None, INVALID_REQUEST, "request must be an object")
        request_id = payload.get("id")
        method = payload.get("method")
        if not isinstance(method, str):
            return _error(request_id, INVALID_REQUEST, "missing method")
        handler = self._methods.get(method.rsplit(".", 1)[-1])
        if handler is None:
            return _error(request_id, METHOD_NOT_FOUND, f"method {method!r} not found")
        params = payload.get("params")
        if isinstance(params, list):
            params = params[0] if params else None
        if params is None:
            params = {}
        if not isinstance(params, Mapping):
            return _error(request_id, INVALID_REQUEST, "params must be an object")
        try:
            result = handler(params)
        except (TokenLedgerError, ValueError) as exc:
            return _error(request_id, SERVER_ERROR, str(exc))
        return {"jsonrpc": "2.0", "result": result, "id": request_id}


def _error(request_id: Any, code: int, message: str) -> dict:
    return {
        "jsonrpc": "2.0",
        "error": {"code": code, "message": message},
        "id": request_id,
    }