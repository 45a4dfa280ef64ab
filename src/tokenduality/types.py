"""Raw inputs and derived records for native token transfers."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Final, NotRequired, TypedDict

from eth_typing import ChecksumAddress
from hexbytes import HexBytes

ERC20_TOKEN_TYPE: Final = "ERC-20"


# ============================================================================
# RAW INPUTS
# ============================================================================


class RawTransaction(TypedDict):
    """Top-level transaction, as imported from a block."""

    hash: HexBytes
    block_hash: HexBytes
    block_number: int
    index: int  # position within the block
    from_address: ChecksumAddress
    to_address: ChecksumAddress | None
    value: int  # wei
    created_contract_address: NotRequired[ChecksumAddress | None]
    error: NotRequired[str | None]
    call_type: NotRequired[str | None]


class RawInternalTransaction(TypedDict):
    """Call frame from a transaction trace."""

    transaction_hash: HexBytes
    transaction_index: int  # parent transaction's position within the block
    block_number: int
    index: int  # position within the parent transaction's trace, 0 is the root
    from_address: ChecksumAddress
    to_address: ChecksumAddress | None
    value: int  # wei
    created_contract_address: NotRequired[ChecksumAddress | None]
    error: NotRequired[str | None]
    call_type: NotRequired[str | None]


# ============================================================================
# DERIVED RECORDS
# ============================================================================


@dataclass(frozen=True)
class SyntheticTokenTransfer:
    """ERC-20 shaped transfer derived from a native value movement."""

    amount: Decimal
    block_hash: HexBytes
    block_number: int
    from_address: ChecksumAddress
    log_index: int
    to_address: ChecksumAddress | None
    token_contract_address: ChecksumAddress
    transaction_hash: HexBytes
    token_ids: None = None
    token_type: str = ERC20_TOKEN_TYPE

    def as_dict(self) -> dict[str, Any]:
        """Storage-ready mapping, same keys as event-derived transfers."""
        return {
            "amount": self.amount,
            "block_hash": self.block_hash,
            "block_number": self.block_number,
            "from_address_hash": self.from_address,
            "log_index": self.log_index,
            "to_address_hash": self.to_address,
            "token_contract_address_hash": self.token_contract_address,
            "token_ids": self.token_ids,
            "token_type": self.token_type,
            "transaction_hash": self.transaction_hash,
        }


@dataclass(frozen=True)
class TokenDescriptor:
    contract_address_hash: ChecksumAddress
    type: str = ERC20_TOKEN_TYPE

    def as_dict(self) -> dict[str, Any]:
        return {
            "contract_address_hash": self.contract_address_hash,
            "type": self.type,
        }


@dataclass(frozen=True)
class TransferBundle:
    """Output of one derivation pass."""

    token_transfers: tuple[SyntheticTokenTransfer, ...] = ()
    tokens: tuple[TokenDescriptor, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "token_transfers", tuple(self.token_transfers))
        object.__setattr__(self, "tokens", tuple(self.tokens))

    @property
    def is_empty(self) -> bool:
        return not self.token_transfers

    def merge(self, other: TransferBundle) -> TransferBundle:
        """Union two bundles, keeping one descriptor per token contract."""
        tokens: list[TokenDescriptor] = []
        seen_addresses: set[ChecksumAddress] = set()
        for token in [*self.tokens, *other.tokens]:
            if token.contract_address_hash not in seen_addresses:
                tokens.append(token)
                seen_addresses.add(token.contract_address_hash)

        return TransferBundle(
            token_transfers=(*self.token_transfers, *other.token_transfers),
            tokens=tokens,
        )
