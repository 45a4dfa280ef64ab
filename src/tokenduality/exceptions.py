"""Exceptions raised while deriving native token transfers."""

from __future__ import annotations

from typing import Any

from hexbytes import HexBytes


class TokenDualityError(Exception):
    """Base class for all errors raised by this package."""


class InputValidationError(TokenDualityError):
    """A single raw transaction broke the input contract.

    Aborts the whole call. The message carries a plain-text dump of the
    offending transaction for debugging.
    """

    title = "INPUT VALIDATION FAILED"

    def __init__(self, message: str, transaction: dict[str, Any] | Any):
        self.transaction = transaction
        self.error_message = message
        super().__init__(self._build_error_dump())

    def _build_error_dump(self) -> str:
        lines = [
            "=" * 80,
            self.title,
            "=" * 80,
            "",
        ]
        lines.extend(self._format_transaction(self.transaction))
        lines.extend([
            "",
            "ERROR:",
            "-" * 40,
            self.error_message,
            "=" * 80,
        ])
        return "\n".join(lines)

    @staticmethod
    def _format_transaction(transaction: dict[str, Any] | Any) -> list[str]:
        if not isinstance(transaction, dict):
            return [f"Transaction: {transaction!r}"]

        tx_hash = transaction.get("hash", transaction.get("transaction_hash"))
        if isinstance(tx_hash, (bytes, bytearray)):
            tx_hash = HexBytes(tx_hash).to_0x_hex()

        lines = [
            f"Transaction Hash: {tx_hash if tx_hash is not None else 'N/A'}",
            f"Block: {transaction.get('block_number', 'N/A')}",
        ]
        if "transaction_index" in transaction:
            lines.append(f"Transaction Index: {transaction['transaction_index']}")
        lines.extend([
            f"Index: {transaction.get('index', 'N/A')}",
            f"From: {transaction.get('from_address', 'N/A')}",
            f"To: {transaction.get('to_address', 'N/A')}",
            f"Value: {transaction.get('value', 'N/A')!r}",
        ])
        return lines


class InvalidAmountError(InputValidationError):
    """Raised when a transaction value is not a non-negative integer."""

    title = "INVALID AMOUNT"


class MissingBlockHashError(InputValidationError):
    """Raised when the block hash mapping has no entry for a block number."""

    title = "MISSING BLOCK HASH"

    def __init__(self, block_number: int, transaction: dict[str, Any]):
        self.block_number = block_number
        self.transaction_hash = transaction.get("transaction_hash")
        super().__init__(
            message=f"No block hash supplied for block {block_number}",
            transaction=transaction,
        )


class LogIndexOverflowError(TokenDualityError):
    """Raised when a position cannot be encoded without colliding."""

    def __init__(self, *, transaction_index: int, call_index: int | None, reason: str):
        self.transaction_index = transaction_index
        self.call_index = call_index
        self.reason = reason
        super().__init__(
            f"Cannot encode log index for transaction_index={transaction_index}, "
            f"call_index={call_index}: {reason}"
        )


class NativeTokenNotConfiguredError(TokenDualityError):
    """Raised when no source for the native token address is available."""


class NativeTokenNotRegisteredError(TokenDualityError):
    """Raised when the registry returns the zero address for the native token."""
