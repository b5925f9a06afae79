"""
Translation between chain-agnostic addresses and Ethereum's native form.
"""
from typing import Any, Union

from eth_typing import ChecksumAddress
from eth_utils import is_checksum_address, is_hex_address, to_canonical_address, to_checksum_address

from .exceptions import InvalidAddressError

AddressLike = Union[str, bytes, bytearray]


def parse_address(address: Any) -> ChecksumAddress:
    """
    Parse a chain-agnostic address into an EIP-55 checksummed address.

    Accepts 20 raw bytes or a hex string with or without the ``0x`` prefix.
    All-lowercase and all-uppercase hex are accepted as is; mixed case must
    carry a valid checksum.

    Raises:
        InvalidAddressError: If the value is not a valid address
    """
    if isinstance(address, (bytes, bytearray)):
        if len(address) != 20:
            raise InvalidAddressError(address, f"expected 20 bytes, got {len(address)}")
        return to_checksum_address(bytes(address))

    if not isinstance(address, str):
        raise InvalidAddressError(address, f"unsupported type {type(address).__name__}")

    candidate = address.strip()
    if candidate[:2] in ("0x", "0X"):
        candidate = candidate[2:]
    candidate = "0x" + candidate

    if not is_hex_address(candidate):
        raise InvalidAddressError(address)

    body = candidate[2:]
    if body != body.lower() and body != body.upper() and not is_checksum_address(candidate):
        raise InvalidAddressError(address, "invalid EIP-55 checksum")

    return to_checksum_address(candidate.lower())


def address_bytes(address: Any) -> bytes:
    """Parse an address and return its 20-byte native form."""
    return to_canonical_address(parse_address(address))


def format_address(raw: bytes) -> ChecksumAddress:
    """Format 20 native address bytes as a checksummed hex string."""
    return parse_address(raw)
