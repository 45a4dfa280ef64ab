"""Negative log index encoding for synthetic native token transfers.

Real ERC-20 transfers take their log index from the contract log, which is
never negative. Synthetic transfers use negative values instead, laid out so
that every transaction owns a contiguous slot of TRANSACTION_BUFFER_SIZE
indices:

    transaction 0 -> -20000, its internal calls -> -1 .. -19999
    transaction 1 -> -40000, its internal calls -> -20001 .. -39999
    transaction 2 -> -60000, its internal calls -> -40001 .. -59999

The buffer size is shared with previously persisted data and must not change.
"""

from __future__ import annotations

from tokenduality.exceptions import LogIndexOverflowError

TRANSACTION_BUFFER_SIZE = 20_000


def transaction_log_index(transaction_index: int) -> int:
    """Log index for a value transfer made by a top-level transaction."""
    if transaction_index < 0:
        raise LogIndexOverflowError(
            transaction_index=transaction_index,
            call_index=None,
            reason="transaction index must not be negative",
        )
    return -1 * (transaction_index + 1) * TRANSACTION_BUFFER_SIZE


def internal_transaction_log_index(transaction_index: int, call_index: int) -> int:
    """Log index for a value transfer made by an internal call.

    The result falls strictly between the boundaries of the parent
    transaction's slot. Call index 0 is the trace root and shares its value
    with the top-level transaction, so it is rejected along with anything that
    would spill into the neighbouring slot.
    """
    if transaction_index < 0:
        raise LogIndexOverflowError(
            transaction_index=transaction_index,
            call_index=call_index,
            reason="transaction index must not be negative",
        )
    if not 0 < call_index < TRANSACTION_BUFFER_SIZE:
        raise LogIndexOverflowError(
            transaction_index=transaction_index,
            call_index=call_index,
            reason=f"call index must be in 1..{TRANSACTION_BUFFER_SIZE - 1}",
        )
    return -1 * (transaction_index * TRANSACTION_BUFFER_SIZE + call_index)


def is_synthetic_log_index(log_index: int) -> bool:
    return log_index < 0


def decode_log_index(log_index: int) -> tuple[int, int | None]:
    """Recover (transaction_index, call_index) from a synthetic log index.

    call_index is None when the index belongs to the top-level transaction.
    """
    if not is_synthetic_log_index(log_index):
        raise ValueError(f"Log index {log_index} is not a synthetic (negative) log index")

    transaction_index, call_index = divmod(-log_index, TRANSACTION_BUFFER_SIZE)
    if call_index == 0:
        return transaction_index - 1, None
    return transaction_index, call_index
