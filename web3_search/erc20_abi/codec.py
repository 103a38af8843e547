"""ABI encoding and decoding for calls against an interface description."""

from typing import Any

from eth_abi import decode, encode, is_encodable
from eth_abi.exceptions import (
    DecodingError,
    EncodingError,
    InsufficientDataBytes,
    NonEmptyPaddingBytes,
)
from eth_utils import to_checksum_address

from web3_search.erc20_abi.erc20_abi import FunctionSpec, InterfaceDescription
from web3_search.exceptions import ArgumentMismatch, DecodeError, UnknownFunction

WORD_SIZE = 32
SELECTOR_SIZE = 4


def _is_dynamic(abi_type: str) -> bool:
    return abi_type in ("string", "bytes") or abi_type.endswith("[]")


class ABICodec:
    """Encode calls and decode results for one interface description.

    The codec holds no mutable state and may be shared by concurrent queries.
    """

    def __init__(self, interface: InterfaceDescription):
        self.interface = interface

    def function(self, function_name: str) -> FunctionSpec:
        """Look up a declared function.

        Raises:
            UnknownFunction: If the function is not declared.
        """
        spec = self.interface.get(function_name)
        if spec is None:
            raise UnknownFunction(
                f"Function '{function_name}' is not in the interface description",
                UnknownFunction.ERR_UNKNOWN_FUNCTION,
                hint=f"Known functions: {', '.join(self.interface.function_names)}",
            )
        return spec

    def selector(self, function_name: str) -> bytes:
        return self.function(function_name).selector

    def signature(self, function_name: str) -> str:
        return self.function(function_name).signature

    def encode(self, function_name: str, *args: Any) -> bytes:
        """Encode a call as selector followed by the ABI-encoded arguments.

        Args:
            function_name: Declared function name.
            *args: Arguments in declared input order.

        Returns:
            Call data bytes.

        Raises:
            UnknownFunction: If the function is not declared.
            ArgumentMismatch: If argument count or types do not match.
        """
        spec = self.function(function_name)
        if len(args) != len(spec.inputs):
            raise ArgumentMismatch(
                f"{spec.signature} takes {len(spec.inputs)} argument(s), "
                f"got {len(args)}",
                ArgumentMismatch.ERR_ARGUMENT_COUNT,
            )
        names = spec.input_names or ("",) * len(spec.inputs)
        for position, (abi_type, name, value) in enumerate(
            zip(spec.inputs, names, args)
        ):
            if not is_encodable(abi_type, value):
                label = name or f"#{position}"
                raise ArgumentMismatch(
                    f"Argument {label} of {spec.signature} is not a valid "
                    f"{abi_type}: {value!r}",
                    ArgumentMismatch.ERR_ARGUMENT_TYPE,
                )
        try:
            return spec.selector + encode(list(spec.inputs), list(args))
        except EncodingError as e:
            raise ArgumentMismatch(
                f"Cannot encode arguments for {spec.signature}: {e}",
                ArgumentMismatch.ERR_ARGUMENT_TYPE,
            ) from e

    def decode(self, function_name: str, raw: bytes) -> tuple[Any, ...]:
        """Decode a call result into one value per declared output.

        Unsigned integers come back as Python ints, strings are resolved
        through their offset and length words.

        Raises:
            UnknownFunction: If the function is not declared.
            DecodeError: If the data is short, padded with garbage, out of
                range for a fixed-width type, or not valid for the type.
        """
        spec = self.function(function_name)
        return self._decode_types(spec, spec.outputs, bytes(raw), "result")

    def decode_input(self, function_name: str, payload: bytes) -> tuple[Any, ...]:
        """Decode call data produced by ``encode`` back into its arguments.

        Raises:
            UnknownFunction: If the function is not declared.
            DecodeError: If the selector does not match or the arguments
                cannot be decoded.
        """
        spec = self.function(function_name)
        payload = bytes(payload)
        if payload[:SELECTOR_SIZE] != spec.selector:
            raise DecodeError(
                f"Call data does not start with the selector of {spec.signature}",
                DecodeError.ERR_BAD_SELECTOR,
            )
        return self._decode_types(
            spec, spec.inputs, payload[SELECTOR_SIZE:], "arguments"
        )

    def _decode_types(
        self, spec: FunctionSpec, types: tuple[str, ...], data: bytes, what: str
    ) -> tuple[Any, ...]:
        if not types:
            if data:
                raise DecodeError(
                    f"{spec.signature} {what}: expected no data, got {len(data)} bytes",
                    DecodeError.ERR_INVALID_DATA,
                )
            return ()
        head_size = WORD_SIZE * len(types)
        if len(data) < head_size:
            raise DecodeError(
                f"{spec.signature} {what}: expected at least {head_size} bytes, "
                f"got {len(data)}",
                DecodeError.ERR_SHORT_DATA,
            )
        if not any(_is_dynamic(t) for t in types) and len(data) != head_size:
            raise DecodeError(
                f"{spec.signature} {what}: expected {head_size} bytes, "
                f"got {len(data)}",
                DecodeError.ERR_INVALID_DATA,
            )
        try:
            values = decode(list(types), data)
        except InsufficientDataBytes as e:
            raise DecodeError(
                f"{spec.signature} {what}: {e}", DecodeError.ERR_SHORT_DATA
            ) from e
        except NonEmptyPaddingBytes as e:
            # Fixed-width values wider than their type show up as padding
            raise DecodeError(
                f"{spec.signature} {what}: value out of range for "
                f"({', '.join(types)})",
                DecodeError.ERR_OUT_OF_RANGE,
            ) from e
        except (DecodingError, UnicodeDecodeError) as e:
            raise DecodeError(
                f"{spec.signature} {what}: {e}", DecodeError.ERR_INVALID_DATA
            ) from e
        return tuple(
            to_checksum_address(value) if abi_type == "address" else value
            for abi_type, value in zip(types, values)
        )
