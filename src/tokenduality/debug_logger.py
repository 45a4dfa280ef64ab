"""Structured JSON logging for native token transfer derivation.

Provides machine-parseable debug output. Disabled until configured, either
explicitly or through the TOKENDUALITY_DEBUG_OUTPUT environment variable.
"""

from __future__ import annotations

import json
import os
import sys
import traceback
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar

from hexbytes import HexBytes

if TYPE_CHECKING:
    from collections.abc import Iterable

    from eth_typing import ChainId

DEBUG_OUTPUT_ENV = "TOKENDUALITY_DEBUG_OUTPUT"


def _hash_to_str(value: HexBytes | bytes | str | None) -> str | None:
    if isinstance(value, (bytes, bytearray)):
        return HexBytes(value).to_0x_hex()
    return value


class TokenDualityDebugLogger:
    """Structured debug logger for synthetic transfer derivation.

    Outputs JSON Lines format. Each entry includes a timestamp, an entry type
    and the configured chain id.
    """

    _instance: ClassVar[TokenDualityDebugLogger | None] = None
    _initialized: bool = False

    def __new__(cls) -> TokenDualityDebugLogger:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        if self._initialized:
            return
        self._initialized = True
        self._output_path: Path | None = None
        self._file_handle: Any = None
        self._chain_id: ChainId | int | None = None
        self._enabled: bool = False

    def configure(
        self,
        output_path: Path | str | None = None,
        chain_id: ChainId | int | None = None,
    ) -> bool:
        """Configure the debug logger.

        Args:
            output_path: Path to write JSONL debug output. If None, uses the
                environment variable or the existing path if already configured.
            chain_id: Chain ID for context

        Returns:
            True if logging is enabled, False otherwise
        """
        if output_path is None:
            output_path = os.environ.get(DEBUG_OUTPUT_ENV)

        if self._output_path is not None and output_path is None:
            if chain_id is not None:
                self._chain_id = chain_id
            return self._enabled

        if not output_path:
            self._enabled = False
            return False

        if self._file_handle is not None:
            self.close()

        self._output_path = Path(output_path)
        self._chain_id = chain_id
        self._enabled = True

        self._output_path.parent.mkdir(parents=True, exist_ok=True)
        self._file_handle = self._output_path.open("a", buffering=1, encoding="utf-8")

        self._write_entry({
            "type": "session_start",
            "timestamp": datetime.now(tz=UTC).isoformat(),
        })

        return True

    def is_enabled(self) -> bool:
        return self._enabled

    def _write_entry(self, entry: dict[str, Any]) -> None:
        if not self._enabled or self._file_handle is None:
            return

        entry["_chain_id"] = int(self._chain_id) if self._chain_id is not None else None

        try:
            self._file_handle.write(json.dumps(entry, default=str) + "\n")
        except OSError as e:
            sys.stderr.write(f"Failed to write debug log: {e}\n")

    def log_transfers_found(
        self,
        *,
        source: str,
        transfer_count: int,
        input_count: int,
        block_numbers: Iterable[int] = (),
    ) -> None:
        """Log the outcome of one derivation pass.

        Args:
            source: "transactions" or "internal_transactions"
            transfer_count: Number of synthetic transfers produced
            input_count: Number of raw inputs examined
            block_numbers: Blocks covered by the produced transfers
        """
        if not self._enabled:
            return

        self._write_entry({
            "type": "transfers_found",
            "timestamp": datetime.now(tz=UTC).isoformat(),
            "source": source,
            "transfer_count": transfer_count,
            "input_count": input_count,
            "block_numbers": sorted(set(block_numbers)),
        })

    def log_filtered(
        self,
        *,
        source: str,
        reason: str,
        tx_hash: HexBytes | str | None,
        block_number: int | None,
        index: int | None,
    ) -> None:
        """Log a raw input skipped by the value transfer filter."""
        if not self._enabled:
            return

        self._write_entry({
            "type": "filtered",
            "timestamp": datetime.now(tz=UTC).isoformat(),
            "source": source,
            "reason": reason,
            "tx_hash": _hash_to_str(tx_hash),
            "block_number": block_number,
            "index": index,
        })

    def log_exception(
        self,
        *,
        exc: Exception,
        source: str,
        extra_context: dict[str, Any] | None = None,
    ) -> None:
        """Log an exception that is about to abort a derivation pass.

        Args:
            exc: The exception that was raised
            source: Derivation pass being run
            extra_context: Additional context data
        """
        if not self._enabled:
            return

        entry: dict[str, Any] = {
            "type": "exception",
            "timestamp": datetime.now(tz=UTC).isoformat(),
            "source": source,
            "exception_type": type(exc).__name__,
            "exception_message": str(exc),
            "traceback": traceback.format_exc(),
        }

        if extra_context is not None:
            entry["extra_context"] = extra_context

        self._write_entry(entry)

    def close(self) -> None:
        """Close the debug log file and write session end marker."""
        if not self._enabled or self._file_handle is None:
            return

        self._write_entry({
            "type": "session_end",
            "timestamp": datetime.now(tz=UTC).isoformat(),
        })

        self._file_handle.close()
        self._file_handle = None
        self._output_path = None
        self._enabled = False


# Global instance
token_duality_debug_logger = TokenDualityDebugLogger()
