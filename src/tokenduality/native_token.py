"""Lookup of the native token's ERC-20 contract address.

The transforms take the lookup as an injected callable so they stay pure. A
static address covers tests and chains with a well-known deployment. The
registry resolver asks the chain's core contract registry, the way a Celo node
exposes its GoldToken address.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Protocol

from eth_abi.abi import decode, encode
from eth_typing import ChecksumAddress
from eth_utils.abi import function_signature_to_4byte_selector
from hexbytes import HexBytes

from tokenduality.checksum_cache import get_checksum_address
from tokenduality.exceptions import NativeTokenNotConfiguredError, NativeTokenNotRegisteredError

if TYPE_CHECKING:
    from web3 import Web3

NATIVE_TOKEN_ADDRESS_ENV = "TOKENDUALITY_NATIVE_TOKEN_ADDRESS"

# Celo core contract registry (same address on every Celo network)
CELO_REGISTRY_ADDRESS = get_checksum_address("0x000000000000000000000000000000000000cE10")
CELO_NATIVE_TOKEN_IDENTIFIER = "GoldToken"

ZERO_ADDRESS = get_checksum_address("0x" + "0" * 40)

GET_ADDRESS_FOR_STRING_SELECTOR = HexBytes(
    function_signature_to_4byte_selector("getAddressForString(string)")
)


class NativeTokenAddressResolver(Protocol):
    def __call__(self) -> ChecksumAddress: ...


class StaticNativeTokenResolver:
    """Always returns the same, configured address."""

    def __init__(self, address: str):
        self.address = get_checksum_address(address)

    def __call__(self) -> ChecksumAddress:
        return self.address

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.address})"


class RegistryNativeTokenResolver:
    """Reads the native token address from the core contract registry.

    The first successful lookup is cached on the instance. RPC errors are not
    caught, so a failed lookup propagates to whoever called the transform.
    """

    def __init__(
        self,
        w3: Web3,
        registry_address: str = CELO_REGISTRY_ADDRESS,
        identifier: str = CELO_NATIVE_TOKEN_IDENTIFIER,
    ):
        self.w3 = w3
        self.registry_address = get_checksum_address(registry_address)
        self.identifier = identifier
        self._address: ChecksumAddress | None = None

    def __call__(self) -> ChecksumAddress:
        if self._address is None:
            self._address = self._lookup()
        return self._address

    def clear(self) -> None:
        """Drop the cached address, e.g. after a registry update."""
        self._address = None

    def _lookup(self) -> ChecksumAddress:
        calldata = GET_ADDRESS_FOR_STRING_SELECTOR + encode(["string"], [self.identifier])
        result = self.w3.eth.call({"to": self.registry_address, "data": calldata})
        (address,) = decode(["address"], result)
        address = get_checksum_address(address)

        if address == ZERO_ADDRESS:
            raise NativeTokenNotRegisteredError(
                f"Registry {self.registry_address} has no address for {self.identifier!r}"
            )
        return address


def resolver_from_environment(w3: Web3 | None = None) -> NativeTokenAddressResolver:
    """Build a resolver from the environment, falling back to the registry.

    Args:
        w3: Connected Web3 instance, used when no static address is configured.

    Raises:
        NativeTokenNotConfiguredError: neither a static address nor a Web3
            instance is available.
    """
    if configured_address := os.environ.get(NATIVE_TOKEN_ADDRESS_ENV):
        return StaticNativeTokenResolver(configured_address)

    if w3 is None:
        raise NativeTokenNotConfiguredError(
            f"Set {NATIVE_TOKEN_ADDRESS_ENV} or provide a Web3 instance "
            "to look up the native token address"
        )
    return RegistryNativeTokenResolver(w3)
