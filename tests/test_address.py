"""
Tests for address parsing.
"""
import pytest

from ethadapter_sdk.address import address_bytes, format_address, parse_address
from ethadapter_sdk.exceptions import InvalidAddressError
from conftest import TEST_ADDRESS

RAW = bytes.fromhex(TEST_ADDRESS[2:])


@pytest.mark.parametrize("value", [
    TEST_ADDRESS,
    TEST_ADDRESS.lower(),
    "0x" + TEST_ADDRESS[2:].upper(),
    "0X" + TEST_ADDRESS[2:].lower(),
    TEST_ADDRESS[2:].lower(),
    TEST_ADDRESS[2:],
    "  " + TEST_ADDRESS + "\n",
    RAW,
    bytearray(RAW),
])
def test_parse_accepts(value):
    assert parse_address(value) == TEST_ADDRESS


@pytest.mark.parametrize("value, reason", [
    ("0x" + "f39Fd6e51aad88F6F4ce6aB8827279cffFb92266".replace("f39", "F39"), "checksum"),
    ("0x1234", "20-byte"),
    ("", "20-byte"),
    (b"\x01" * 21, "expected 20 bytes"),
    (12345, "unsupported type int"),
])
def test_parse_rejects(value, reason):
    with pytest.raises(InvalidAddressError, match=reason) as exc_info:
        parse_address(value)

    assert exc_info.value.address == value


def test_invalid_address_is_value_error():
    with pytest.raises(ValueError):
        parse_address("nope")


def test_bytes_round_trip():
    assert address_bytes(TEST_ADDRESS.lower()) == RAW
    assert format_address(RAW) == TEST_ADDRESS
