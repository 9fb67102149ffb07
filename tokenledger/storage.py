"""Key layout and record encoding for ledger state.

State keys:
  0x0 | owner | asset        -> balance
  0x1 | asset                -> metadataLen | metadata | supply | owner | warp
  0x2 | txID                 -> in | inTick | out | outTick | remaining | owner
  0x3 | asset | destination  -> loan amount
  0x4                        -> height
  0x5 | sourceChain | msgID  -> incoming warp
  0x6 | txID                 -> outgoing warp

Metadata keys:
  0x0 | txID -> timestamp | success | units
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Protocol, Sequence

from .errors import InvalidBalanceError, NotFoundError
from .ids import ID_LEN, id_to_string

PUBLIC_KEY_LEN = 32
UINT64_LEN = 8
UINT16_LEN = 2
MAX_UINT64 = (1 << 64) - 1
MAX_UINT16 = (1 << 16) - 1

TX_PREFIX = 0x0

BALANCE_PREFIX = 0x0
ASSET_PREFIX = 0x1
ORDER_PREFIX = 0x2
LOAN_PREFIX = 0x3
HEIGHT_PREFIX = 0x4
INCOMING_WARP_PREFIX = 0x5
OUTGOING_WARP_PREFIX = 0x6

_FAILURE_BYTE = 0x0
_SUCCESS_BYTE = 0x1

ReadState = Callable[[Sequence[bytes]], Sequence[Optional[bytes]]]


class Database(Protocol):
    def get_value(self, key: bytes) -> bytes: ...

    def insert(self, key: bytes, value: bytes) -> None: ...

    def remove(self, key: bytes) -> None: ...


class MemoryDatabase:
    """A dictionary-backed key-value store."""

    def __init__(self, items: Optional[Iterable[tuple[bytes, bytes]]] = None) -> None:
        self._data: dict[bytes, bytes] = dict(items or {})

    def get_value(self, key: bytes) -> bytes:
        try:
            return self._data[bytes(key)]
        except KeyError:
            raise NotFoundError(f"key {bytes(key).hex()}") from None

    def insert(self, key: bytes, value: bytes) -> None:
        self._data[bytes(key)] = bytes(value)

    def remove(self, key: bytes) -> None:
        self._data.pop(bytes(key), None)

    def read_state(self, keys: Sequence[bytes]) -> list[Optional[bytes]]:
        """Return the value of each key, or None where it is missing."""
        return [self._data.get(bytes(k)) for k in keys]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, (bytes, bytearray)) and bytes(key) in self._data

    def __len__(self) -> int:
        return len(self._data)


@dataclass(frozen=True)
class TransactionRecord:
    timestamp: int
    success: bool
    units: int


@dataclass(frozen=True)
class AssetRecord:
    metadata: bytes
    supply: int
    owner: bytes
    warp: bool


@dataclass(frozen=True)
class OrderRecord:
    in_asset: bytes
    in_tick: int
    out_asset: bytes
    out_tick: int
    remaining: int
    owner: bytes


def _fixed(value: bytes, size: int, name: str) -> bytes:
    raw = bytes(value)
    if len(raw) != size:
        raise ValueError(f"{name} must be {size} bytes, got {len(raw)}")
    return raw


def _id(value: bytes, name: str = "identifier") -> bytes:
    return _fixed(value, ID_LEN, name)


def _pk(value: bytes) -> bytes:
    return _fixed(value, PUBLIC_KEY_LEN, "public key")


def _u64(value: int, name: str = "value") -> bytes:
    if not 0 <= value <= MAX_UINT64:
        raise ValueError(f"{name} {value} does not fit in 64 unsigned bits")
    return value.to_bytes(UINT64_LEN, "big")


def _read_u64(data: bytes, offset: int) -> int:
    chunk = data[offset : offset + UINT64_LEN]
    if len(chunk) != UINT64_LEN:
        raise ValueError("stored record is truncated")
    return int.from_bytes(chunk, "big")


# Transactions


def prefix_tx_key(tx_id: bytes) -> bytes:
    return bytes([TX_PREFIX]) + _id(tx_id, "transaction id")


def store_transaction(
    db: Database, tx_id: bytes, timestamp: int, success: bool, units: int
) -> None:
    """Record the outcome of a transaction."""
    if not -(1 << 63) <= timestamp < (1 << 63):
        raise ValueError(f"timestamp {timestamp} does not fit in 64 signed bits")
    value = (
        (timestamp & MAX_UINT64).to_bytes(UINT64_LEN, "big")
        + bytes([_SUCCESS_BYTE if success else _FAILURE_BYTE])
        + _u64(units, "units")
    )
    db.insert(prefix_tx_key(tx_id), value)


def get_transaction(db: Database, tx_id: bytes) -> Optional[TransactionRecord]:
    """Return the stored outcome of a transaction, or None if unknown."""
    try:
        value = db.get_value(prefix_tx_key(tx_id))
    except NotFoundError:
        return None
    if len(value) < 2 * UINT64_LEN + 1:
        raise ValueError("stored record is truncated")
    timestamp = int.from_bytes(value[:UINT64_LEN], "big", signed=True)
    success = value[UINT64_LEN] != _FAILURE_BYTE
    units = _read_u64(value, UINT64_LEN + 1)
    return TransactionRecord(timestamp, success, units)


# Balances


def prefix_balance_key(public_key: bytes, asset: bytes) -> bytes:
    return bytes([BALANCE_PREFIX]) + _pk(public_key) + _id(asset, "asset")


def _decode_amount(value: Optional[bytes]) -> int:
    if value is None:
        return 0
    return _read_u64(value, 0)


def _stored_amount(db: Database, key: bytes) -> int:
    try:
        return _decode_amount(db.get_value(key))
    except NotFoundError:
        return 0


def get_balance(db: Database, public_key: bytes, asset: bytes) -> int:
    """Return a balance; a missing account holds zero."""
    return _stored_amount(db, prefix_balance_key(public_key, asset))


def get_balance_from_state(read_state: ReadState, public_key: bytes, asset: bytes) -> int:
    """Return a balance through a bulk state reader, for serving queries."""
    (value,) = read_state([prefix_balance_key(public_key, asset)])
    return _decode_amount(value)


def set_balance(db: Database, public_key: bytes, asset: bytes, balance: int) -> None:
    db.insert(prefix_balance_key(public_key, asset), _u64(balance, "balance"))


def delete_balance(db: Database, public_key: bytes, asset: bytes) -> None:
    db.remove(prefix_balance_key(public_key, asset))


def add_balance(db: Database, public_key: bytes, asset: bytes, amount: int) -> None:
    """Increase a balance, failing on overflow."""
    key = prefix_balance_key(public_key, asset)
    balance = _stored_amount(db, key)
    new_balance = balance + amount
    if amount < 0 or new_balance > MAX_UINT64:
        raise InvalidBalanceError(
            f"could not add balance (asset={id_to_string(asset)}, bal={balance}, "
            f"addr={bytes(public_key).hex()}, amount={amount})"
        )
    db.insert(key, _u64(new_balance))


def sub_balance(db: Database, public_key: bytes, asset: bytes, amount: int) -> None:
    """Decrease a balance, removing the record when it reaches zero."""
    key = prefix_balance_key(public_key, asset)
    balance = _stored_amount(db, key)
    new_balance = balance - amount
    if amount < 0 or new_balance < 0:
        raise InvalidBalanceError(
            f"could not subtract balance (asset={id_to_string(asset)}, bal={balance}, "
            f"addr={bytes(public_key).hex()}, amount={amount})"
        )
    if new_balance == 0:
        db.remove(key)
    else:
        db.insert(key, _u64(new_balance))


# Assets


def prefix_asset_key(asset: bytes) -> bytes:
    return bytes([ASSET_PREFIX]) + _id(asset, "asset")


def _decode_asset(value: bytes) -> AssetRecord:
    if len(value) < UINT16_LEN:
        raise ValueError("stored record is truncated")
    metadata_len = int.from_bytes(value[:UINT16_LEN], "big")
    start = UINT16_LEN + metadata_len
    if len(value) < start + UINT64_LEN + PUBLIC_KEY_LEN + 1:
        raise ValueError("stored record is truncated")
    metadata = value[UINT16_LEN:start]
    supply = _read_u64(value, start)
    owner_start = start + UINT64_LEN
    owner = value[owner_start : owner_start + PUBLIC_KEY_LEN]
    warp = value[owner_start + PUBLIC_KEY_LEN] == 0x1
    return AssetRecord(metadata, supply, owner, warp)


def get_asset_from_state(read_state: ReadState, asset: bytes) -> Optional[AssetRecord]:
    """Return an asset through a bulk state reader, or None if missing."""
    (value,) = read_state([prefix_asset_key(asset)])
    return None if value is None else _decode_asset(value)


def get_asset(db: Database, asset: bytes) -> Optional[AssetRecord]:
    """Return an asset, or None if missing."""
    try:
        value = db.get_value(prefix_asset_key(asset))
    except NotFoundError:
        return None
    return _decode_asset(value)


def set_asset(
    db: Database, asset: bytes, metadata: bytes, supply: int, owner: bytes, warp: bool
) -> None:
    metadata = bytes(metadata)
    if len(metadata) > MAX_UINT16:
        raise ValueError(f"metadata of {len(metadata)} bytes is too long")
    value = (
        len(metadata).to_bytes(UINT16_LEN, "big")
        + metadata
        + _u64(supply, "supply")
        + _pk(owner)
        + bytes([0x1 if warp else 0x0])
    )
    db.insert(prefix_asset_key(asset), value)


def delete_asset(db: Database, asset: bytes) -> None:
    db.remove(prefix_asset_key(asset))


# Orders


def prefix_order_key(tx_id: bytes) -> bytes:
    return bytes([ORDER_PREFIX]) + _id(tx_id, "order id")


def set_order(
    db: Database,
    tx_id: bytes,
    in_asset: bytes,
    in_tick: int,
    out_asset: bytes,
    out_tick: int,
    supply: int,
    owner: bytes,
) -> None:
    value = (
        _id(in_asset, "in asset")
        + _u64(in_tick, "in tick")
        + _id(out_asset, "out asset")
        + _u64(out_tick, "out tick")
        + _u64(supply, "supply")
        + _pk(owner)
    )
    db.insert(prefix_order_key(tx_id), value)


def get_order(db: Database, order: bytes) -> Optional[OrderRecord]:
    """Return an open order, or None if missing."""
    try:
        value = db.get_value(prefix_order_key(order))
    except NotFoundError:
        return None
    size = 2 * ID_LEN + 3 * UINT64_LEN + PUBLIC_KEY_LEN
    if len(value) < size:
        raise ValueError("stored record is truncated")
    out_start = ID_LEN + UINT64_LEN
    tail = 2 * ID_LEN + UINT64_LEN
    return OrderRecord(
        in_asset=value[:ID_LEN],
        in_tick=_read_u64(value, ID_LEN),
        out_asset=value[out_start : out_start + ID_LEN],
        out_tick=_read_u64(value, tail),
        remaining=_read_u64(value, tail + UINT64_LEN),
        owner=value[tail + 2 * UINT64_LEN : size],
    )


def delete_order(db: Database, order: bytes) -> None:
    db.remove(prefix_order_key(order))


# Loans


def prefix_loan_key(asset: bytes, destination: bytes) -> bytes:
    return bytes([LOAN_PREFIX]) + _id(asset, "asset") + _id(destination, "destination")


def get_loan_from_state(read_state: ReadState, asset: bytes, destination: bytes) -> int:
    """Return a loan through a bulk state reader; missing loans are zero."""
    (value,) = read_state([prefix_loan_key(asset, destination)])
    return _decode_amount(value)


def get_loan(db: Database, asset: bytes, destination: bytes) -> int:
    return _stored_amount(db, prefix_loan_key(asset, destination))


def set_loan(db: Database, asset: bytes, destination: bytes, amount: int) -> None:
    db.insert(prefix_loan_key(asset, destination), _u64(amount, "loan"))


def add_loan(db: Database, asset: bytes, destination: bytes, amount: int) -> None:
    """Increase a loan, failing on overflow."""
    loan = get_loan(db, asset, destination)
    new_loan = loan + amount
    if amount < 0 or new_loan > MAX_UINT64:
        raise InvalidBalanceError(
            f"could not add loan (asset={id_to_string(asset)}, "
            f"destination={id_to_string(destination)}, amount={amount})"
        )
    set_loan(db, asset, destination, new_loan)


def sub_loan(db: Database, asset: bytes, destination: bytes, amount: int) -> None:
    """Decrease a loan, removing the record when it reaches zero."""
    loan = get_loan(db, asset, destination)
    new_loan = loan - amount
    if amount < 0 or new_loan < 0:
        raise InvalidBalanceError(
            f"could not subtract loan (asset={id_to_string(asset)}, "
            f"destination={id_to_string(destination)}, amount={amount})"
        )
    if new_loan == 0:
        db.remove(prefix_loan_key(asset, destination))
    else:
        set_loan(db, asset, destination, new_loan)


# Chain bookkeeping keys


def height_key() -> bytes:
    return bytes([HEIGHT_PREFIX])


def incoming_warp_key_prefix(source_chain_id: bytes, msg_id: bytes) -> bytes:
    return (
        bytes([INCOMING_WARP_PREFIX])
        + _id(source_chain_id, "source chain id")
        + _id(msg_id, "message id")
    )


def outgoing_warp_key_prefix(tx_id: bytes) -> bytes:
    return bytes([OUTGOING_WARP_PREFIX]) + _id(tx_id, "transaction id")