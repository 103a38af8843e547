import asyncio
from typing import Any

import pytest
from eth_abi import encode

from web3_search.erc20_abi import ABICodec, load_erc20_interface
from web3_search.rpc import RPCResponse
from web3_search.service import TokenQueryService

TOKEN = "0x1f9840a85d5af5bf1d1762f925bdaddc4201f984"
WALLET = "0xd8da6bf26964af9d7eed9e03e53415d37aa96045"


class FakeNode:
    """Stand-in for NodeConnection answering from in-memory tables."""

    def __init__(self, codec: ABICodec):
        self.codec = codec
        self.chain_id = 11155111
        self.calls: list[tuple[str, list[Any]]] = []
        self.returns: dict[bytes, Any] = {}
        self.delays: dict[bytes, float] = {}
        self.balances: dict[str, int] = {}

    def returns_value(self, function_name: str, abi_type: str, value: Any) -> None:
        self.returns[self.codec.selector(function_name)] = encode([abi_type], [value])

    def returns_raw(self, function_name: str, raw: bytes) -> None:
        self.returns[self.codec.selector(function_name)] = raw

    def fails(self, function_name: str, code: int = 3, message: str = "execution reverted") -> None:
        self.returns[self.codec.selector(function_name)] = {"code": code, "message": message}

    def delays_call(self, function_name: str, seconds: float) -> None:
        self.delays[self.codec.selector(function_name)] = seconds

    def called_functions(self) -> list[str]:
        by_selector = {
            self.codec.selector(name): name
            for name in self.codec.interface.function_names
        }
        return [
            by_selector[bytes.fromhex(params[0]["data"][2:10])]
            for method, params in self.calls
            if method == "eth_call"
        ]

    async def request(self, method: str, params: list[Any]) -> RPCResponse:
        self.calls.append((method, params))
        if method == "eth_call":
            selector = bytes.fromhex(params[0]["data"][2:10])
            if selector in self.delays:
                await asyncio.sleep(self.delays[selector])
            entry = self.returns.get(selector)
            if entry is None:
                raw = {"jsonrpc": "2.0", "id": 1, "result": "0x"}
            elif isinstance(entry, dict):
                raw = {"jsonrpc": "2.0", "id": 1, "error": entry}
            else:
                raw = {"jsonrpc": "2.0", "id": 1, "result": "0x" + entry.hex()}
        elif method == "eth_getBalance":
            raw = {"jsonrpc": "2.0", "id": 1, "result": hex(self.balances.get(params[0], 0))}
        else:
            raw = {
                "jsonrpc": "2.0",
                "id": 1,
                "error": {"code": -32601, "message": f"the method {method} does not exist"},
            }
        return RPCResponse.parse(method, raw)


@pytest.fixture
def codec():
    return ABICodec(load_erc20_interface())


@pytest.fixture
def node(codec):
    node = FakeNode(codec)
    node.returns_value("name", "string", "Test Token")
    node.returns_value("symbol", "string", "TEST")
    node.returns_value("decimals", "uint8", 18)
    node.returns_value("totalSupply", "uint256", 10**24)
    node.returns_value("balanceOf", "uint256", 10**18)
    return node


@pytest.fixture
def service(node, codec):
    return TokenQueryService(node, codec, default_timeout=5)
