"""Token queries composed from ABI codec and contract caller round trips."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, TypeVar

from web3_search.erc20_abi import ABICodec
from web3_search.exceptions import DecodeError, DeadlineExceeded, Web3SearchException
from web3_search.logging_config import get_logger, log_with_context
from web3_search.models import BalanceInfo, TokenInfo
from web3_search.rpc import ContractCaller, NodeConnection
from web3_search.validators import mask_address, validate_address

logger = get_logger(__name__)

DEFAULT_QUERY_TIMEOUT = 30.0

T = TypeVar("T")


class TokenQueryService:
    """Answers token metadata, token balance and native balance questions.

    Every query validates its addresses, then runs its sub-calls one after
    another under a single deadline. The first failing sub-call aborts the
    query and its error is raised unchanged; nothing is retried or cached.
    """

    def __init__(
        self,
        connection: NodeConnection,
        codec: ABICodec,
        default_timeout: float = DEFAULT_QUERY_TIMEOUT,
    ):
        self.connection = connection
        self.codec = codec
        self.caller = ContractCaller(connection)
        self.default_timeout = default_timeout

    async def get_token_info(
        self, token_address: str, timeout: float | None = None
    ) -> TokenInfo:
        """Fetch name, symbol, decimals and totalSupply of a token.

        Args:
            token_address: Token contract address, any-case hex.
            timeout: Deadline in seconds for the whole query.

        Raises:
            ValidationError: If the address is malformed.
            RPCError: If a sub-call fails at the node or transport.
            DecodeError: If a result does not match the ERC-20 ABI.
            DeadlineExceeded: If the deadline elapses.
        """
        token = validate_address(token_address, "token address")
        async with self._deadline("get_token_info", token, timeout):
            name = await self._call_single(token, "name", str)
            symbol = await self._call_single(token, "symbol", str)
            decimals = await self._call_single(token, "decimals", int)
            total_supply = await self._call_single(token, "totalSupply", int)

        return TokenInfo(
            name=name,
            symbol=symbol,
            decimals=decimals,
            total_supply=total_supply,
            address=token,
        )

    async def get_token_balance(
        self, token_address: str, wallet_address: str, timeout: float | None = None
    ) -> BalanceInfo:
        """Fetch a wallet's raw token balance and the token's decimals."""
        token = validate_address(token_address, "token address")
        wallet = validate_address(wallet_address, "wallet address")
        async with self._deadline("get_token_balance", token, timeout):
            balance = await self._call_single(token, "balanceOf", int, wallet)
            decimals = await self._call_single(token, "decimals", int)

        return BalanceInfo(
            address=wallet,
            token_address=token,
            balance=balance,
            decimals=decimals,
        )

    async def get_native_balance(
        self, address: str, timeout: float | None = None
    ) -> int:
        """Fetch an account's native balance in wei at the latest block."""
        account = validate_address(address)
        async with self._deadline("get_native_balance", account, timeout):
            response = await self.connection.request(
                "eth_getBalance", [account, "latest"]
            )
            return response.as_quantity()

    async def _call(self, target: str, function_name: str, *args: Any) -> tuple:
        """Encode ``function_name(*args)``, eth_call it on ``target``, decode.

        Returns the decoded outputs in declared order.
        """
        payload = self.codec.encode(function_name, *args)
        context = {"function": function_name, "target": mask_address(target)}
        log_with_context(logger, logging.DEBUG, "eth_call", context)
        try:
            raw = await self.caller.call(target, payload)
            return self.codec.decode(function_name, raw)
        except Web3SearchException as e:
            log_with_context(
                logger, logging.WARNING, f"eth_call failed: {e.message}", context
            )
            raise

    async def _call_single(
        self, target: str, function_name: str, expected: type[T], *args: Any
    ) -> T:
        """``_call`` for functions with exactly one output of type ``expected``."""
        outputs = await self._call(target, function_name, *args)
        if len(outputs) != 1 or not isinstance(outputs[0], expected):
            raise DecodeError(
                f"{self.codec.signature(function_name)} returned {outputs!r}, "
                f"expected one {expected.__name__}",
                DecodeError.ERR_INVALID_DATA,
            )
        return outputs[0]

    @asynccontextmanager
    async def _deadline(
        self, operation: str, address: str, timeout: float | None
    ) -> AsyncIterator[None]:
        seconds = self.default_timeout if timeout is None else timeout
        try:
            async with asyncio.timeout(seconds):
                yield
        except TimeoutError as e:
            log_with_context(
                logger,
                logging.WARNING,
                f"{operation} exceeded its deadline",
                {"address": mask_address(address), "timeout": seconds},
            )
            raise DeadlineExceeded(
                f"{operation} did not complete within {seconds:g}s",
                DeadlineExceeded.ERR_DEADLINE,
            ) from e
