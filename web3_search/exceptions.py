"""Custom exception hierarchy for web3-search."""

# ruff: noqa: N818 - Error names follow the query failure kinds, not the Error suffix rule


class Web3SearchException(Exception):
    """Base exception for all web3-search errors."""

    def __init__(self, message: str, code: int, hint: str | None = None):
        self.message = message
        self.code = code
        self.hint = hint
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Serialize error for API and tool responses."""
        data = {"error": self.message, "code": self.code}
        if self.hint:
            data["hint"] = self.hint
        return data


class ValidationError(Web3SearchException):
    """Malformed input at the service boundary."""

    ERR_INVALID_ADDRESS = 1001
    ERR_EMPTY_ADDRESS = 1002
    ERR_INVALID_URL = 1003


class ABIError(Web3SearchException):
    """Misuse of the interface description. Indicates a bug in the caller."""


class UnknownFunction(ABIError):
    """Function is not declared in the interface description."""

    ERR_UNKNOWN_FUNCTION = 2001


class ArgumentMismatch(ABIError):
    """Arguments do not match the declared inputs."""

    ERR_ARGUMENT_COUNT = 2002
    ERR_ARGUMENT_TYPE = 2003


class DecodeError(Web3SearchException):
    """Node returned data inconsistent with the declared ABI."""

    ERR_SHORT_DATA = 3001
    ERR_OUT_OF_RANGE = 3002
    ERR_BAD_SELECTOR = 3003
    ERR_INVALID_DATA = 3004


class RPCError(Web3SearchException):
    """Transport or node failure, including reverts."""

    ERR_UNREACHABLE = 4001
    ERR_TIMEOUT = 4002
    ERR_MALFORMED_RESPONSE = 4003
    ERR_NODE_ERROR = 4004
    ERR_REVERTED = 4005


class NodeConnectionError(RPCError):
    """Endpoint could not be opened as a JSON-RPC connection."""

    ERR_CONNECT_FAILED = 4101
    ERR_INCOMPATIBLE = 4102


class DeadlineExceeded(Web3SearchException):
    """Query deadline elapsed before the node answered."""

    ERR_DEADLINE = 5001


class ConfigError(Web3SearchException):
    """Configuration errors."""

    ERR_INVALID_SCHEMA = 6001
    ERR_MISSING_RPC_URL = 6002
