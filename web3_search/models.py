"""Query result records."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class TokenInfo:
    """ERC-20 token metadata."""

    name: str
    symbol: str
    decimals: int
    total_supply: int
    address: str

    def to_dict(self) -> dict[str, Any]:
        # Large integers travel as decimal strings so JSON clients keep precision
        return {
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "totalSupply": str(self.total_supply),
            "address": self.address,
        }


@dataclass(frozen=True)
class BalanceInfo:
    """A wallet's balance of one ERC-20 token, in the token's smallest unit."""

    address: str
    token_address: str
    balance: int
    decimals: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "tokenAddress": self.token_address,
            "balance": str(self.balance),
            "decimals": self.decimals,
        }


@dataclass(frozen=True)
class NativeBalance:
    address: str
    balance: int
    unit: str = "wei"

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "balance": str(self.balance),
            "unit": self.unit,
        }
