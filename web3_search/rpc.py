"""JSON-RPC connection to the node and read-only contract calls."""

from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

import aiohttp
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import Web3Exception

from web3_search.exceptions import NodeConnectionError, RPCError, ValidationError
from web3_search.logging_config import get_logger
from web3_search.validators import mask_url, validate_rpc_url

logger = get_logger(__name__)

# Geth and most clients report reverts with code 3 and this message prefix
REVERT_ERROR_CODE = 3
REVERT_MESSAGE_PREFIX = "execution reverted"

DEFAULT_REQUEST_TIMEOUT = 15.0


@dataclass(frozen=True)
class RPCErrorDetail:
    """The ``error`` member of a JSON-RPC response."""

    code: int
    message: str
    data: Any = None

    @property
    def is_revert(self) -> bool:
        return self.code == REVERT_ERROR_CODE or self.message.startswith(
            REVERT_MESSAGE_PREFIX
        )


@dataclass(frozen=True)
class RPCResponse:
    """Validated JSON-RPC response envelope.

    Exactly one of ``result`` and ``error`` is meaningful. Accessors convert
    the result into the type the method is documented to return and raise
    ``RPCError`` instead of handing back untyped data.
    """

    method: str
    result: Any = None
    error: RPCErrorDetail | None = None

    @classmethod
    def parse(cls, method: str, raw: Any) -> "RPCResponse":
        """Validate a decoded JSON body.

        Raises:
            RPCError: If the body is not a JSON-RPC response object.
        """
        if not isinstance(raw, Mapping):
            raise _malformed(
                method, f"expected a JSON object, got {type(raw).__name__}"
            )

        if raw.get("error") is not None:
            error = raw["error"]
            if not isinstance(error, Mapping):
                raise _malformed(method, "error member is not an object")
            code = error.get("code")
            message = error.get("message")
            if not isinstance(code, int) or not isinstance(message, str):
                raise _malformed(method, "error member lacks code or message")
            return cls(
                method=method,
                error=RPCErrorDetail(
                    code=code, message=message, data=error.get("data")
                ),
            )

        if "result" not in raw:
            raise _malformed(method, "neither result nor error present")
        return cls(method=method, result=raw["result"])

    def raise_for_error(self) -> None:
        """Raise ``RPCError`` carrying the node's code and message."""
        if self.error is None:
            return
        if self.error.is_revert:
            raise RPCError(
                f"{self.method} reverted: {self.error.message}",
                RPCError.ERR_REVERTED,
                hint=f"node error code {self.error.code}",
            )
        raise RPCError(
            f"{self.method} failed: {self.error.message}",
            RPCError.ERR_NODE_ERROR,
            hint=f"node error code {self.error.code}",
        )

    def as_bytes(self) -> bytes:
        """Return a 0x-prefixed hex data result as bytes."""
        self.raise_for_error()
        value = self.result
        if not isinstance(value, str) or not value.startswith("0x"):
            raise _malformed(self.method, f"result is not hex data: {value!r}")
        try:
            return bytes.fromhex(value[2:])
        except ValueError as e:
            raise _malformed(self.method, f"result is not hex data: {value!r}") from e

    def as_quantity(self) -> int:
        """Return a 0x-prefixed hex quantity result as an int."""
        self.raise_for_error()
        value = self.result
        if not isinstance(value, str) or not value.startswith("0x") or len(value) < 3:
            raise _malformed(self.method, f"result is not a hex quantity: {value!r}")
        try:
            return int(value, 16)
        except ValueError as e:
            raise _malformed(
                self.method, f"result is not a hex quantity: {value!r}"
            ) from e


def _malformed(method: str, detail: str) -> RPCError:
    return RPCError(
        f"Malformed {method} response: {detail}",
        RPCError.ERR_MALFORMED_RESPONSE,
    )


class NodeConnection:
    """Long-lived handle to a JSON-RPC node.

    Wraps web3's ``AsyncHTTPProvider``, whose aiohttp session serves
    concurrent requests from many tasks without cross-talk. Open it with
    ``open_connection`` so it is closed on every exit path.
    """

    def __init__(self, w3: AsyncWeb3, endpoint_url: str):
        self._w3 = w3
        self.endpoint_url = endpoint_url
        self.chain_id: int | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @classmethod
    async def connect(
        cls, endpoint_url: str, timeout: float = DEFAULT_REQUEST_TIMEOUT
    ) -> "NodeConnection":
        """Open a connection and check the endpoint speaks JSON-RPC.

        Args:
            endpoint_url: HTTP(S) URL of the node.
            timeout: Per-request HTTP timeout in seconds.

        Returns:
            Connected NodeConnection with ``chain_id`` set.

        Raises:
            NodeConnectionError: If the endpoint is invalid, unreachable or
                does not answer ``eth_chainId``.
        """
        try:
            validate_rpc_url(endpoint_url)
        except ValidationError as e:
            raise NodeConnectionError(
                e.message, NodeConnectionError.ERR_CONNECT_FAILED, hint=e.hint
            ) from e

        provider = AsyncHTTPProvider(
            endpoint_url,
            request_kwargs={"timeout": aiohttp.ClientTimeout(total=timeout)},
            exception_retry_configuration=None,
        )
        connection = cls(AsyncWeb3(provider), endpoint_url)
        try:
            await connection._handshake()
        except BaseException:
            await connection.close()
            raise

        logger.info(
            f"Connected to {mask_url(endpoint_url)} (chain ID {connection.chain_id})"
        )
        return connection

    async def _handshake(self) -> None:
        try:
            self.chain_id = (await self.request("eth_chainId", [])).as_quantity()
        except RPCError as e:
            if e.code in (RPCError.ERR_UNREACHABLE, RPCError.ERR_TIMEOUT):
                raise NodeConnectionError(
                    f"RPC endpoint {mask_url(self.endpoint_url)} is unreachable: "
                    f"{e.message}",
                    NodeConnectionError.ERR_CONNECT_FAILED,
                    hint="Check ETH_RPC_URL and network access",
                ) from e
            raise NodeConnectionError(
                f"RPC endpoint {mask_url(self.endpoint_url)} did not answer "
                f"eth_chainId: {e.message}",
                NodeConnectionError.ERR_INCOMPATIBLE,
                hint="Endpoint must speak Ethereum JSON-RPC",
            ) from e

    async def request(self, method: str, params: list[Any]) -> RPCResponse:
        """Send one JSON-RPC request and validate the response envelope.

        Raises:
            RPCError: On transport failure or malformed response. Node-side
                errors are returned inside the envelope.
        """
        if self._closed:
            raise RPCError(
                f"{method} on a closed connection", RPCError.ERR_UNREACHABLE
            )
        try:
            raw = await self._w3.provider.make_request(method, params)
        except TimeoutError as e:
            raise RPCError(
                f"{method} timed out waiting for {mask_url(self.endpoint_url)}",
                RPCError.ERR_TIMEOUT,
            ) from e
        except (aiohttp.ClientError, OSError) as e:
            raise RPCError(
                f"{method} transport failure: {e}",
                RPCError.ERR_UNREACHABLE,
            ) from e
        except ValueError as e:
            raise _malformed(method, str(e)) from e
        except Web3Exception as e:
            raise RPCError(f"{method} failed: {e}", RPCError.ERR_NODE_ERROR) from e
        return RPCResponse.parse(method, raw)

    async def close(self) -> None:
        """Release the HTTP session. A second call does nothing."""
        if self._closed:
            logger.debug("Connection already closed")
            return
        self._closed = True
        await self._w3.provider.disconnect()
        logger.info(f"Closed connection to {mask_url(self.endpoint_url)}")


@asynccontextmanager
async def open_connection(
    endpoint_url: str, timeout: float = DEFAULT_REQUEST_TIMEOUT
) -> AsyncIterator[NodeConnection]:
    """Open a NodeConnection for the duration of the block."""
    connection = await NodeConnection.connect(endpoint_url, timeout=timeout)
    try:
        yield connection
    finally:
        await connection.close()


class ContractCaller:
    """Read-only contract invocation (``eth_call``) at the latest block."""

    def __init__(self, connection: NodeConnection):
        self.connection = connection

    async def call(self, target_address: str, payload: bytes) -> bytes:
        """Invoke ``target_address`` with ``payload`` as input data.

        Args:
            target_address: Checksummed contract address.
            payload: Encoded call data.

        Returns:
            Raw return data.

        Raises:
            RPCError: On transport failure, malformed response or revert.
        """
        response = await self.connection.request(
            "eth_call",
            [{"to": target_address, "data": "0x" + bytes(payload).hex()}, "latest"],
        )
        return response.as_bytes()
