"""MCP server exposing the token queries as tools."""

import asyncio
import sys
from collections.abc import Awaitable
from typing import Any, Protocol

from mcp.server.fastmcp import FastMCP

from web3_search.config_manager import ConfigManager, get_config_manager
from web3_search.erc20_abi import ABICodec, load_erc20_interface
from web3_search.exceptions import Web3SearchException
from web3_search.logging_config import get_logger, setup_logging
from web3_search.models import NativeBalance
from web3_search.rpc import open_connection
from web3_search.service import TokenQueryService

logger = get_logger(__name__)


class _Serializable(Protocol):
    def to_dict(self) -> dict[str, Any]: ...


async def tool_result(query: Awaitable[_Serializable]) -> dict[str, Any]:
    """Await a query and turn its result or domain error into a tool payload."""
    try:
        result = await query
    except Web3SearchException as e:
        logger.warning(f"Tool query failed: {e.message}")
        return e.to_dict()
    return result.to_dict()


def create_server(service: TokenQueryService) -> FastMCP:
    """Build the FastMCP server around an already connected query service."""
    mcp = FastMCP("web3-search")

    @mcp.tool()
    async def get_token_info(address: str) -> dict[str, Any]:
        """
        Get ERC-20 token metadata: name, symbol, decimals and total supply.

        Args:
            address: The token contract address (0x-prefixed, 40 hex characters).
        """
        return await tool_result(service.get_token_info(address))

    @mcp.tool()
    async def get_token_balance(
        token_address: str, wallet_address: str
    ) -> dict[str, Any]:
        """
        Get a wallet's balance of an ERC-20 token in the token's smallest unit.

        Args:
            token_address: The token contract address.
            wallet_address: The wallet address to check.
        """
        return await tool_result(
            service.get_token_balance(token_address, wallet_address)
        )

    @mcp.tool()
    async def check_native_balance(address: str) -> dict[str, Any]:
        """
        Check the native coin balance of an address, in wei.

        Args:
            address: The address to check balance for.
        """

        async def query() -> NativeBalance:
            balance = await service.get_native_balance(address)
            return NativeBalance(address=address, balance=balance)

        return await tool_result(query())

    return mcp


async def serve(config: ConfigManager) -> None:
    """Run the stdio MCP server for the lifetime of one node connection."""
    async with open_connection(
        config.rpc_url, timeout=config.get("rpc", "timeout")
    ) as connection:
        service = TokenQueryService(
            connection,
            ABICodec(load_erc20_interface()),
            default_timeout=config.get("query", "timeout"),
        )
        await create_server(service).run_stdio_async()


def main():
    config = get_config_manager()
    # stdout carries the MCP protocol
    setup_logging(
        level=config.get("logging", "level"),
        log_file=config.get("logging", "file"),
        format_str=config.get("logging", "format"),
        stream=sys.stderr,
    )

    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(f"Invalid configuration: {error}")
        raise SystemExit(1)

    asyncio.run(serve(config))


if __name__ == "__main__":
    main()
