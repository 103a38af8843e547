"""ERC-20 ABI helper module"""

from .codec import ABICodec as ABICodec
from .erc20_abi import ERC20_ABI as ERC20_ABI
from .erc20_abi import FunctionSpec as FunctionSpec
from .erc20_abi import InterfaceDescription as InterfaceDescription
from .erc20_abi import load_erc20_interface as load_erc20_interface

__all__ = [
    "ABICodec",
    "ERC20_ABI",
    "FunctionSpec",
    "InterfaceDescription",
    "load_erc20_interface",
]
