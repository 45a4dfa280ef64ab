"""Memoized EIP-55 checksum conversion."""

from functools import lru_cache

from eth_typing import ChecksumAddress
from eth_utils.address import to_checksum_address


@lru_cache(maxsize=512)
def _checksum(address: str | bytes) -> ChecksumAddress:
    return to_checksum_address(address)


def get_checksum_address(address: str | bytes) -> ChecksumAddress:
    """Return the checksummed form of an address, caching repeat lookups."""
    if isinstance(address, bytearray):
        address = bytes(address)
    return _checksum(address)
