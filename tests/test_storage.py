import pytest

from tokenledger.errors import InvalidBalanceError, NotFoundError
from tokenledger.storage import (
    MAX_UINT64,
    AssetRecord,
    MemoryDatabase,
    OrderRecord,
    TransactionRecord,
    add_balance,
    add_loan,
    delete_asset,
    delete_balance,
    delete_order,
    get_asset,
    get_asset_from_state,
    get_balance,
    get_balance_from_state,
    get_loan,
    get_loan_from_state,
    get_order,
    get_transaction,
    height_key,
    incoming_warp_key_prefix,
    outgoing_warp_key_prefix,
    prefix_asset_key,
    prefix_balance_key,
    prefix_loan_key,
    prefix_order_key,
    prefix_tx_key,
    set_asset,
    set_balance,
    set_loan,
    set_order,
    store_transaction,
    sub_balance,
    sub_loan,
)

ASSET = b"\x11" * 32
OTHER = b"\x22" * 32
PK = b"\x33" * 32
OWNER = b"\x44" * 32


@pytest.fixture
def db():
    return MemoryDatabase()


def test_memory_database_basic(db):
    db.insert(b"k", b"v")
    assert db.get_value(b"k") == b"v"
    assert db.read_state([b"k", b"missing"]) == [b"v", None]
    db.remove(b"k")
    with pytest.raises(NotFoundError):
        db.get_value(b"k")
    assert len(db) == 0


def test_key_prefixes():
    assert prefix_tx_key(ASSET) == b"\x00" + ASSET
    assert prefix_balance_key(PK, ASSET) == b"\x00" + PK + ASSET
    assert prefix_asset_key(ASSET) == b"\x01" + ASSET
    assert prefix_order_key(ASSET) == b"\x02" + ASSET
    assert prefix_loan_key(ASSET, OTHER) == b"\x03" + ASSET + OTHER
    assert height_key() == b"\x04"
    assert incoming_warp_key_prefix(ASSET, OTHER) == b"\x05" + ASSET + OTHER
    assert outgoing_warp_key_prefix(ASSET) == b"\x06" + ASSET


def test_key_rejects_wrong_length():
    with pytest.raises(ValueError):
        prefix_asset_key(b"\x01" * 31)


def test_transaction_round_trip(db):
    store_transaction(db, ASSET, 5, True, 7)
    assert get_transaction(db, ASSET) == TransactionRecord(5, True, 7)
    raw = db.get_value(prefix_tx_key(ASSET))
    assert raw == (5).to_bytes(8, "big") + b"\x01" + (7).to_bytes(8, "big")


def test_transaction_negative_timestamp_and_failure(db):
    store_transaction(db, ASSET, -3, False, 0)
    assert get_transaction(db, ASSET) == TransactionRecord(-3, False, 0)


def test_missing_transaction(db):
    assert get_transaction(db, ASSET) is None


def test_balance_defaults_to_zero(db):
    assert get_balance(db, PK, ASSET) == 0
    assert get_balance_from_state(db.read_state, PK, ASSET) == 0


def test_set_and_get_balance(db):
    set_balance(db, PK, ASSET, 1000)
    assert get_balance(db, PK, ASSET) == 1000
    assert get_balance_from_state(db.read_state, PK, ASSET) == 1000
    assert get_balance(db, PK, OTHER) == 0
    delete_balance(db, PK, ASSET)
    assert prefix_balance_key(PK, ASSET) not in db


def test_add_and_sub_balance(db):
    add_balance(db, PK, ASSET, 10)
    add_balance(db, PK, ASSET, 5)
    assert get_balance(db, PK, ASSET) == 15
    sub_balance(db, PK, ASSET, 5)
    assert get_balance(db, PK, ASSET) == 10


def test_sub_balance_to_zero_removes_record(db):
    set_balance(db, PK, ASSET, 10)
    sub_balance(db, PK, ASSET, 10)
    assert prefix_balance_key(PK, ASSET) not in db
    assert get_balance(db, PK, ASSET) == 0


def test_sub_balance_underflow(db):
    set_balance(db, PK, ASSET, 3)
    with pytest.raises(InvalidBalanceError, match="could not subtract balance"):
        sub_balance(db, PK, ASSET, 4)
    assert get_balance(db, PK, ASSET) == 3


def test_add_balance_overflow(db):
    set_balance(db, PK, ASSET, MAX_UINT64)
    with pytest.raises(InvalidBalanceError, match="invalid balance"):
        add_balance(db, PK, ASSET, 1)
    assert get_balance(db, PK, ASSET) == MAX_UINT64


def test_asset_round_trip(db):
    set_asset(db, ASSET, b"meta", 42, OWNER, True)
    expected = AssetRecord(b"meta", 42, OWNER, True)
    assert get_asset(db, ASSET) == expected
    assert get_asset_from_state(db.read_state, ASSET) == expected


def test_asset_empty_metadata(db):
    set_asset(db, ASSET, b"", 0, OWNER, False)
    assert get_asset(db, ASSET) == AssetRecord(b"", 0, OWNER, False)


def test_asset_missing_and_delete(db):
    assert get_asset(db, ASSET) is None
    assert get_asset_from_state(db.read_state, ASSET) is None
    set_asset(db, ASSET, b"x", 1, OWNER, False)
    delete_asset(db, ASSET)
    assert get_asset(db, ASSET) is None


def test_asset_metadata_too_long(db):
    with pytest.raises(ValueError):
        set_asset(db, ASSET, bytes(70000), 1, OWNER, False)


def test_order_round_trip(db):
    set_order(db, PK, ASSET, 1, OTHER, 2, 4, OWNER)
    assert get_order(db, PK) == OrderRecord(ASSET, 1, OTHER, 2, 4, OWNER)
    delete_order(db, PK)
    assert get_order(db, PK) is None


def test_loans(db):
    assert get_loan(db, ASSET, OTHER) == 0
    add_loan(db, ASSET, OTHER, 100)
    add_loan(db, ASSET, OTHER, 10)
    assert get_loan(db, ASSET, OTHER) == 110
    assert get_loan_from_state(db.read_state, ASSET, OTHER) == 110
    sub_loan(db, ASSET, OTHER, 110)
    assert prefix_loan_key(ASSET, OTHER) not in db


def test_loan_errors(db):
    set_loan(db, ASSET, OTHER, 5)
    with pytest.raises(InvalidBalanceError, match="could not subtract loan"):
        sub_loan(db, ASSET, OTHER, 6)
    set_loan(db, ASSET, OTHER, MAX_UINT64)
    with pytest.raises(InvalidBalanceError, match="could not add loan"):
        add_loan(db, ASSET, OTHER, 1)


def test_balance_out_of_range_rejected(db):
    with pytest.raises(ValueError):
        set_balance(db, PK, ASSET, -1)