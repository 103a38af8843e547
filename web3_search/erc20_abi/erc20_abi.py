"""ERC-20 interface description."""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping

from eth_utils import keccak

ERC20_ABI = [
    {
        "constant": True,
        "inputs": [],
        "name": "name",
        "outputs": [{"internalType": "string", "name": "", "type": "string"}],
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [],
        "name": "symbol",
        "outputs": [{"internalType": "string", "name": "", "type": "string"}],
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [],
        "name": "decimals",
        "outputs": [{"internalType": "uint8", "name": "", "type": "uint8"}],
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [],
        "name": "totalSupply",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [{"internalType": "address", "name": "_owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"internalType": "uint256", "name": "balance", "type": "uint256"}],
        "type": "function",
    },
]


@dataclass(frozen=True)
class FunctionSpec:
    """One contract function: ordered input and output ABI types."""

    name: str
    inputs: tuple[str, ...]
    outputs: tuple[str, ...]
    input_names: tuple[str, ...] = ()

    @property
    def signature(self) -> str:
        """Canonical signature, e.g. ``balanceOf(address)``."""
        return f"{self.name}({','.join(self.inputs)})"

    @property
    def selector(self) -> bytes:
        """First 4 bytes of keccak-256 of the canonical signature."""
        return keccak(text=self.signature)[:4]

    @classmethod
    def from_abi_entry(cls, entry: Mapping[str, Any]) -> "FunctionSpec":
        inputs = entry.get("inputs", [])
        outputs = entry.get("outputs", [])
        return cls(
            name=entry["name"],
            inputs=tuple(param["type"] for param in inputs),
            outputs=tuple(param["type"] for param in outputs),
            input_names=tuple(param.get("name", "") for param in inputs),
        )


class InterfaceDescription:
    """Read-only set of functions parsed from a JSON ABI."""

    def __init__(self, functions: Mapping[str, FunctionSpec]):
        self._functions = MappingProxyType(dict(functions))

    @classmethod
    def from_abi(cls, abi: list[dict[str, Any]]) -> "InterfaceDescription":
        functions = {}
        for entry in abi:
            if entry.get("type", "function") != "function":
                continue
            spec = FunctionSpec.from_abi_entry(entry)
            functions[spec.name] = spec
        return cls(functions)

    def get(self, name: str) -> FunctionSpec | None:
        return self._functions.get(name)

    @property
    def function_names(self) -> tuple[str, ...]:
        return tuple(self._functions)

    def __len__(self) -> int:
        return len(self._functions)


def load_erc20_interface() -> InterfaceDescription:
    """Build the ERC-20 interface description from the literal ABI."""
    return InterfaceDescription.from_abi(ERC20_ABI)
