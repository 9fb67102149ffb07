# tokenledger

`tokenledger` defines how the state of a small token ledger is laid out in
a key-value store: account balances per asset, asset records, open orders,
cross-chain loans and transaction results. It also has a JSON-RPC service
that answers queries about that state, and a client for that service.

The package has no runtime dependencies.

## Installation

```
pip install tokenledger
```

To run the test suite:

```
pip install "tokenledger[test]"
pytest
```

## Modules

- `tokenledger.storage`: the key layouts and typed reads and writes.
  - `MemoryDatabase` is a dictionary-backed store. It has `get_value`
    (raises `NotFoundError` for a missing key), `insert`, `remove` and
    `read_state`, which returns a list of values with `None` where a key is
    missing.
  - Transactions: `prefix_tx_key`, `store_transaction`, `get_transaction`.
    `get_transaction` returns a `TransactionRecord(timestamp, success, units)`
    or `None`.
  - Balances: `prefix_balance_key`, `get_balance`, `get_balance_from_state`,
    `set_balance`, `delete_balance`, `add_balance`, `sub_balance`.
  - Assets: `prefix_asset_key`, `get_asset`, `get_asset_from_state`,
    `set_asset`, `delete_asset`. Lookups return an
    `AssetRecord(metadata, supply, owner, warp)` or `None`.
  - Orders: `prefix_order_key`, `set_order`, `get_order`, `delete_order`.
    `get_order` returns an
    `OrderRecord(in_asset, in_tick, out_asset, out_tick, remaining, owner)`
    or `None`.
  - Loans: `prefix_loan_key`, `get_loan`, `get_loan_from_state`, `set_loan`,
    `add_loan`, `sub_loan`.
  - Other keys: `height_key`, `incoming_warp_key_prefix`,
    `outgoing_warp_key_prefix`.

  The `*_from_state` functions read through a callable that takes a list of
  keys and returns a list of values (or `None` for missing ones), such as
  `MemoryDatabase.read_state`. The others take any object with `get_value`,
  `insert` and `remove`.
- `tokenledger.ids`: `id_to_string` renders a 32-byte identifier as base58
  text with a 4-byte SHA-256 checksum; `id_from_string` parses it back and
  raises `ValueError` on a bad character, checksum or length.
- `tokenledger.address`: `address(public_key, hrp)` encodes a 32-byte public
  key as a bech32 address under the prefix `hrp`; `parse_address(text, hrp)`
  decodes it and raises `ValueError` if the prefix, checksum or length is
  wrong.
- `tokenledger.errors`: `TokenLedgerError` is the base class of
  `NotFoundError`, `InvalidBalanceError`, `TxNotFoundError` and
  `AssetNotFoundError`.
- `tokenledger.rpc_server`: `JSONRPCServer(controller, hrp)` answers the
  `genesis`, `tx`, `asset`, `balance`, `orders` and `loan` methods.
  `handle(payload)` takes one JSON-RPC 2.0 request, as a mapping or as JSON
  text, and returns the response as a dictionary. A method name may carry a
  service prefix (`tokenvm.balance`); only the part after the last dot is
  used. Errors come back as JSON-RPC error objects. `orders` returns at most
  `ORDERS_TO_SEND` (128) orders. The server gets its data from a
  `Controller`: any object with `genesis`, `get_transaction`,
  `get_asset_from_state`, `get_balance_from_state`, `orders` and
  `get_loan_from_state`.
- `tokenledger.rpc_client`: `JSONRPCClient(uri, chain_id, name, *, transport=None,
  poll_interval=0.5, timeout=None)` posts requests to `uri + "/tokenapi"`,
  with method names prefixed by `name`. By default it sends HTTP POSTs with
  `urllib`; pass `transport`, a callable `(url, request) -> response`, to
  use something else. `genesis` caches its first answer. `tx` returns a
  `TxStatus(success, timestamp)` or `None` if the transaction is not known,
  `asset` returns an `AssetInfo(metadata, supply, owner, warp)` or `None`,
  and `balance`, `orders` and `loan` return the reply values. Any other
  error reply raises `RPCError`. `wait_for_balance` and
  `wait_for_transaction` poll every `poll_interval` seconds and raise
  `TimeoutError` once `timeout` seconds have passed (`None` waits forever).

## Storage layout

Every key starts with one prefix byte. Numbers are big-endian; amounts and
ticks are unsigned 64-bit, the timestamp is signed 64-bit.

| prefix | key                        | value                                            |
|--------|----------------------------|--------------------------------------------------|
| `0x0`  | tx id                      | timestamp, success byte, units                   |
| `0x0`  | public key + asset         | balance                                          |
| `0x1`  | asset                      | metadata length (16-bit), metadata, supply, owner, warp byte |
| `0x2`  | order tx id                | in, in tick, out, out tick, remaining, owner     |
| `0x3`  | asset + destination        | loan amount                                      |
| `0x4`  | (height key, no suffix)    |                                                  |
| `0x5`  | source chain + message id  | incoming warp message                            |
| `0x6`  | tx id                      | outgoing warp message                            |

Transaction keys and balance keys share the prefix `0x0`; transaction
records are meant to go into a separate store from the rest of the state.

A balance or loan that falls to zero is removed rather than stored as zero,
and a missing one reads as zero. An addition that would overflow 64 bits,
or a subtraction that would go below zero, raises `InvalidBalanceError`.

## Example

```python
from tokenledger.address import address
from tokenledger.errors import InvalidBalanceError
from tokenledger.rpc_client import JSONRPCClient
from tokenledger.rpc_server import JSONRPCServer
from tokenledger.storage import (
    MemoryDatabase,
    add_balance,
    get_asset_from_state,
    get_balance,
    get_balance_from_state,
    get_loan_from_state,
    get_transaction,
    sub_balance,
)

db = MemoryDatabase()
owner = bytes(32)
asset = bytes(32)

add_balance(db, owner, asset, 100)
sub_balance(db, owner, asset, 40)
print(get_balance(db, owner, asset))  # 60

try:
    sub_balance(db, owner, asset, 1000)
except InvalidBalanceError as exc:
    print(exc)


class LedgerController:
    def __init__(self, db):
        self.db = db

    def genesis(self):
        return {"symbol": "TKN"}

    def get_transaction(self, tx_id):
        return get_transaction(self.db, tx_id)

    def get_asset_from_state(self, asset):
        return get_asset_from_state(self.db.read_state, asset)

    def get_balance_from_state(self, public_key, asset):
        return get_balance_from_state(self.db.read_state, public_key, asset)

    def orders(self, pair, limit):
        return []

    def get_loan_from_state(self, asset, destination):
        return get_loan_from_state(self.db.read_state, asset, destination)


server = JSONRPCServer(LedgerController(db), "token")
client = JSONRPCClient(
    "http://localhost:9650",
    bytes(32),
    "tokenvm",
    transport=lambda url, request: server.handle(request),
)
print(client.balance(address(owner, "token"), asset))  # 60
print(client.tx(bytes(32)))  # None
```

## What this package does not do

- It does not execute transactions, build blocks or run a chain. It only
  stores and reads the records; deciding what to write is up to the caller.
- `JSONRPCServer` does not listen on a network port. `handle` turns one
  request into one response; serving it over HTTP is left to the caller.
- It has no order book. The `orders` query returns whatever the supplied
  `Controller` gives back, and the `genesis` query returns the controller's
  genesis object as it is.
- `MemoryDatabase` keeps everything in memory; nothing is written to disk.
- There is no command-line tool.