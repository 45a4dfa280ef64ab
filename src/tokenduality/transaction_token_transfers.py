"""ERC-20 token transfers generated from native coin transfers.

Chains with token duality (e.g. Celo) expose the native coin as an ERC-20
contract as well, but moving the native coin emits no Transfer event. The
functions here rebuild those transfers from transactions and internal
transactions so they can be stored next to the event-derived ones.

Synthetic transfers get a negative log index (see tokenduality.log_index), so
they never collide with real transfer events.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from tokenduality.debug_logger import token_duality_debug_logger
from tokenduality.exceptions import InvalidAmountError, MissingBlockHashError, TokenDualityError
from tokenduality.log_index import internal_transaction_log_index, transaction_log_index
from tokenduality.types import (
    ERC20_TOKEN_TYPE,
    RawInternalTransaction,
    RawTransaction,
    SyntheticTokenTransfer,
    TokenDescriptor,
    TransferBundle,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from eth_typing import ChecksumAddress
    from hexbytes import HexBytes

    from tokenduality.native_token import NativeTokenAddressResolver

DELEGATECALL = "delegatecall"

SOURCE_TRANSACTIONS = "transactions"
SOURCE_INTERNAL_TRANSACTIONS = "internal_transactions"


# ============================================================================
# HELPERS
# ============================================================================


def _checked_value(transaction: RawTransaction | RawInternalTransaction) -> int:
    """Return the transaction value, refusing anything but a non-negative int."""
    value = transaction.get("value")
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAmountError(
            message=f"Value must be an integer, got {type(value).__name__}",
            transaction=transaction,
        )
    if value < 0:
        raise InvalidAmountError(
            message=f"Value must not be negative, got {value}",
            transaction=transaction,
        )
    return value


def _recipient(transaction: RawTransaction | RawInternalTransaction) -> ChecksumAddress | None:
    # Contract creations carry value to the new contract
    return transaction.get("to_address") or transaction.get("created_contract_address")


def _internal_transaction_skip_reason(transaction: RawInternalTransaction) -> str | None:
    """Reason an internal transaction is not a value transfer, or None to keep it."""
    if _checked_value(transaction) == 0:
        return "zero_value"
    # The trace root repeats the top-level transaction, which is counted separately
    if transaction["index"] <= 0:
        return "trace_root"
    if transaction.get("error") is not None:
        return "error"
    if transaction.get("call_type") == DELEGATECALL:
        return "delegatecall"
    return None


def to_tokens(
    token_transfers: Sequence[SyntheticTokenTransfer],
    token_address: ChecksumAddress,
) -> list[TokenDescriptor]:
    """Token descriptors for a set of transfers.

    No transfers means no token, so a token is never registered without any
    transfer referencing it.
    """
    if not token_transfers:
        return []
    return [TokenDescriptor(contract_address_hash=token_address, type=ERC20_TOKEN_TYPE)]


# ============================================================================
# TRANSFORMS
# ============================================================================


def parse_transactions(
    transactions: Iterable[RawTransaction],
    resolve_native_token_address: NativeTokenAddressResolver,
) -> TransferBundle:
    """Derive native token transfers from top-level transactions.

    Every transaction with a positive value yields one transfer. Transactions
    at block positions 0, 1, 2 get log indices -20000, -40000, -60000. The gaps
    in between are left for transfers from internal transactions.

    Negative values are rejected rather than dropped, unlike the zero-value
    filter. Earlier indexers skipped them silently.

    Args:
        transactions: Transactions of one or more blocks.
        resolve_native_token_address: Lookup for the native token contract.

    Raises:
        InvalidAmountError: a transaction value is not a non-negative integer.
    """
    transactions = list(transactions)
    token_address = resolve_native_token_address()

    token_transfers: list[SyntheticTokenTransfer] = []
    input_position: int | None = None
    try:
        for input_position, tx in enumerate(transactions):
            if _checked_value(tx) == 0:
                token_duality_debug_logger.log_filtered(
                    source=SOURCE_TRANSACTIONS,
                    reason="zero_value",
                    tx_hash=tx["hash"],
                    block_number=tx["block_number"],
                    index=tx["index"],
                )
                continue

            token_transfers.append(
                SyntheticTokenTransfer(
                    amount=Decimal(tx["value"]),
                    block_hash=tx["block_hash"],
                    block_number=tx["block_number"],
                    from_address=tx["from_address"],
                    log_index=transaction_log_index(tx["index"]),
                    to_address=_recipient(tx),
                    token_contract_address=token_address,
                    transaction_hash=tx["hash"],
                )
            )
    except TokenDualityError as exc:
        token_duality_debug_logger.log_exception(
            exc=exc,
            source=SOURCE_TRANSACTIONS,
            extra_context={"input_position": input_position},
        )
        raise

    token_duality_debug_logger.log_transfers_found(
        source=SOURCE_TRANSACTIONS,
        transfer_count=len(token_transfers),
        input_count=len(transactions),
        block_numbers=(transfer.block_number for transfer in token_transfers),
    )

    return TransferBundle(
        token_transfers=token_transfers,
        tokens=to_tokens(token_transfers, token_address),
    )


def parse_internal_transactions(
    internal_transactions: Iterable[RawInternalTransaction],
    block_number_to_block_hash: Mapping[int, HexBytes],
    resolve_native_token_address: NativeTokenAddressResolver,
) -> TransferBundle:
    """Derive native token transfers from internal transactions.

    A call counts as a transfer when it moves a positive value, is not the
    trace root (index 0), did not fail, and is not a delegatecall, which runs
    in the caller's context and moves nothing on its own. Its log index sits
    inside the parent transaction's slot: -(transaction_index * 20000 + index).

    Args:
        internal_transactions: Trace entries of one or more blocks.
        block_number_to_block_hash: Hash of every block referenced by the input.
        resolve_native_token_address: Lookup for the native token contract.

    Raises:
        InvalidAmountError: a value is not a non-negative integer.
        MissingBlockHashError: a block number is absent from the mapping.
        LogIndexOverflowError: a call index does not fit the parent's slot.
    """
    internal_transactions = list(internal_transactions)
    token_address = resolve_native_token_address()

    token_transfers: list[SyntheticTokenTransfer] = []
    input_position: int | None = None
    try:
        for input_position, tx in enumerate(internal_transactions):
            if (skip_reason := _internal_transaction_skip_reason(tx)) is not None:
                token_duality_debug_logger.log_filtered(
                    source=SOURCE_INTERNAL_TRANSACTIONS,
                    reason=skip_reason,
                    tx_hash=tx["transaction_hash"],
                    block_number=tx["block_number"],
                    index=tx["index"],
                )
                continue

            try:
                block_hash = block_number_to_block_hash[tx["block_number"]]
            except KeyError:
                raise MissingBlockHashError(
                    block_number=tx["block_number"], transaction=tx
                ) from None

            token_transfers.append(
                SyntheticTokenTransfer(
                    amount=Decimal(tx["value"]),
                    block_hash=block_hash,
                    block_number=tx["block_number"],
                    from_address=tx["from_address"],
                    log_index=internal_transaction_log_index(
                        tx["transaction_index"], tx["index"]
                    ),
                    to_address=_recipient(tx),
                    token_contract_address=token_address,
                    transaction_hash=tx["transaction_hash"],
                )
            )
    except TokenDualityError as exc:
        token_duality_debug_logger.log_exception(
            exc=exc,
            source=SOURCE_INTERNAL_TRANSACTIONS,
            extra_context={"input_position": input_position},
        )
        raise

    token_duality_debug_logger.log_transfers_found(
        source=SOURCE_INTERNAL_TRANSACTIONS,
        transfer_count=len(token_transfers),
        input_count=len(internal_transactions),
        block_numbers=(transfer.block_number for transfer in token_transfers),
    )

    return TransferBundle(
        token_transfers=token_transfers,
        tokens=to_tokens(token_transfers, token_address),
    )
