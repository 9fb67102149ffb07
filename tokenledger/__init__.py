"""Key-value storage layout for token balances, assets, orders and loans, with a JSON-RPC query server and client."""

__version__ = "0.0.1"