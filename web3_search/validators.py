"""Input validation and masking utilities."""

import re
from urllib.parse import urlparse

from web3 import Web3

from web3_search.exceptions import ValidationError

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_RPC_URL_RE = re.compile(r"^https?://[^\s/]+(/\S*)?$")


def validate_address(address: str, param_name: str = "address") -> str:
    """Validate and return checksum address.

    Any-case hex is accepted; the returned value is the EIP-55 checksum form,
    so two spellings of the same 20 bytes normalize to the same string.

    Args:
        address: 0x-prefixed 40-character hex address.
        param_name: Parameter name for error messages.

    Returns:
        Checksummed address.

    Raises:
        ValidationError: If address is empty or malformed.
    """
    if not address:
        raise ValidationError(
            f"{param_name} is required",
            ValidationError.ERR_EMPTY_ADDRESS,
        )
    if not isinstance(address, str) or not _ADDRESS_RE.match(address):
        raise ValidationError(
            f"Invalid {param_name}: {mask_address(str(address))}",
            ValidationError.ERR_INVALID_ADDRESS,
            hint="Address must be a valid 0x-prefixed hex string of 40 characters",
        )
    return Web3.to_checksum_address(address)


def validate_rpc_url(url: str) -> str:
    """Validate RPC URL format.

    Args:
        url: RPC URL to validate.

    Returns:
        Validated URL.

    Raises:
        ValidationError: If URL is invalid.
    """
    if not url or not _RPC_URL_RE.match(url):
        raise ValidationError(
            f"Invalid RPC URL: {mask_url(url or '')}",
            ValidationError.ERR_INVALID_URL,
            hint="URL must start with http:// or https://",
        )
    return url


def mask_address(address: str) -> str:
    """Mask address for display in errors and logs."""
    if len(address) < 10:
        return "***"
    return f"{address[:6]}...{address[-4:]}"


def mask_url(url: str) -> str:
    """Mask URL for display in errors.

    Infura/Alchemy style URLs carry the API key in the path, so the path
    is dropped along with most of the host.
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return "***"
    netloc = parsed.netloc
    if not parsed.scheme or not netloc:
        return "***"
    if len(netloc) > 10:
        netloc = f"{netloc[:4]}...{netloc[-4:]}"
    path = "/..." if parsed.path not in ("", "/") else parsed.path
    return f"{parsed.scheme}://{netloc}{path}"
