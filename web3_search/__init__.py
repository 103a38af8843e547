"""ERC-20 token and native balance queries against an Ethereum JSON-RPC node."""

__version__ = "0.1.0"
