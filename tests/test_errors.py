from tokenledger.errors import (
    AssetNotFoundError,
    InvalidBalanceError,
    NotFoundError,
    TokenLedgerError,
    TxNotFoundError,
)


def test_tx_not_found_message():
    assert str(TxNotFoundError()) == "tx not found"


def test_asset_not_found_message():
    assert str(AssetNotFoundError()) == "asset not found"


def test_invalid_balance_message():
    assert str(InvalidBalanceError()) == "invalid balance"


def test_detail_is_appended_to_message():
    err = InvalidBalanceError("could not add balance")
    assert str(err) == "invalid balance: could not add balance"
    assert err.detail == "could not add balance"


def test_not_found_errors_are_lookup_errors():
    tx_err = TxNotFoundError()
    asset_err = AssetNotFoundError()
    assert issubclass(TxNotFoundError, LookupError)
    assert issubclass(AssetNotFoundError, NotFoundError)
    assert isinstance(tx_err, LookupError)
    assert str(tx_err) == "tx not found"
    assert isinstance(asset_err, NotFoundError)
    assert str(asset_err) == "asset not found"


def test_invalid_balance_is_value_error_and_ledger_error():
    value_err = InvalidBalanceError("x")
    ledger_err = InvalidBalanceError("y")
    assert issubclass(InvalidBalanceError, ValueError)
    assert issubclass(InvalidBalanceError, TokenLedgerError)
    assert str(value_err) == "invalid balance: x"
    assert ledger_err.detail == "y"
    assert str(ledger_err) == "invalid balance: y"


def test_tx_error_contains_base_message():
    assert "tx not found" in str(TxNotFoundError("abc"))