"""Exceptions raised by the token ledger."""

from __future__ import annotations


class TokenLedgerError(Exception):
    """Base class for every error raised by this package."""

    message = "token ledger error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail
        text = f"{self.message}: {detail}" if detail else self.message
        super().__init__(text)


class NotFoundError(TokenLedgerError, LookupError):
    """A requested key or record does not exist."""

    message = "not found"


class InvalidBalanceError(TokenLedgerError, ValueError):
    """A balance or loan update would overflow or go below zero."""

    message = "invalid balance"


class TxNotFoundError(NotFoundError):
    """The requested transaction is not known."""

    message = "tx not found"


class AssetNotFoundError(NotFoundError):
    """The requested asset is not known."""

    message = "asset not found"