"""Tests for the JSON Lines debug logger and its use by the transforms."""

import json
from collections.abc import Iterator
from pathlib import Path

import pytest

from tests.factories import BLOCK_NUMBER, TransactionFactory, native_token_resolver
from tokenduality.debug_logger import (
    DEBUG_OUTPUT_ENV,
    TokenDualityDebugLogger,
    token_duality_debug_logger,
)
from tokenduality.exceptions import InvalidAmountError, MissingBlockHashError
from tokenduality.transaction_token_transfers import (
    parse_internal_transactions,
    parse_transactions,
)


def read_entries(path: Path) -> list[dict]:
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


@pytest.fixture
def debug_log(tmp_path: Path) -> Iterator[Path]:
    output_path = tmp_path / "debug" / "token_duality.jsonl"
    token_duality_debug_logger.configure(output_path=output_path, chain_id=42220)
    yield output_path
    token_duality_debug_logger.close()


class TestDebugLogger:
    def test_singleton(self) -> None:
        assert TokenDualityDebugLogger() is token_duality_debug_logger

    def test_disabled_without_configuration(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv(DEBUG_OUTPUT_ENV, raising=False)

        assert token_duality_debug_logger.configure() is False
        assert not token_duality_debug_logger.is_enabled()

    def test_configured_from_environment(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        output_path = tmp_path / "env.jsonl"
        monkeypatch.setenv(DEBUG_OUTPUT_ENV, str(output_path))

        assert token_duality_debug_logger.configure() is True
        token_duality_debug_logger.close()

        entries = read_entries(output_path)
        assert [e["type"] for e in entries] == ["session_start", "session_end"]

    def test_session_markers_and_chain_id(self, debug_log: Path) -> None:
        token_duality_debug_logger.close()

        entries = read_entries(debug_log)
        assert entries[0]["type"] == "session_start"
        assert entries[-1]["type"] == "session_end"
        assert all(e["_chain_id"] == 42220 for e in entries)


class TestTransformLogging:
    def test_transfers_found(self, debug_log: Path) -> None:
        transactions = [
            TransactionFactory.create_transaction(index=0, value=0),
            TransactionFactory.create_transaction(index=1, value=5),
        ]

        parse_transactions(transactions, native_token_resolver)

        entries = read_entries(debug_log)
        found = [e for e in entries if e["type"] == "transfers_found"]
        assert found == [
            {
                "type": "transfers_found",
                "timestamp": found[0]["timestamp"],
                "source": "transactions",
                "transfer_count": 1,
                "input_count": 2,
                "block_numbers": [BLOCK_NUMBER],
                "_chain_id": 42220,
            }
        ]
        filtered = [e for e in entries if e["type"] == "filtered"]
        assert [(e["reason"], e["index"]) for e in filtered] == [("zero_value", 0)]
        assert filtered[0]["tx_hash"] == "0x" + "00" * 32

    def test_filter_reasons(self, debug_log: Path) -> None:
        internal_transactions = [
            TransactionFactory.create_internal_transaction(
                transaction_index=0, index=0, value=1
            ),
            TransactionFactory.create_internal_transaction(
                transaction_index=0, index=1, value=1, error="out of gas"
            ),
            TransactionFactory.create_internal_transaction(
                transaction_index=0, index=2, value=1, call_type="delegatecall"
            ),
            TransactionFactory.create_internal_transaction(
                transaction_index=0, index=3, value=0
            ),
        ]

        result = parse_internal_transactions(
            internal_transactions, {BLOCK_NUMBER: b"\x00" * 32}, native_token_resolver
        )

        assert result.is_empty
        reasons = [e["reason"] for e in read_entries(debug_log) if e["type"] == "filtered"]
        assert reasons == ["trace_root", "error", "delegatecall", "zero_value"]

    def test_exception_logged_before_propagating(self, debug_log: Path) -> None:
        tx = TransactionFactory.create_internal_transaction(
            transaction_index=0, index=1, value=1
        )

        with pytest.raises(MissingBlockHashError):
            parse_internal_transactions([tx], {}, native_token_resolver)

        exceptions = [e for e in read_entries(debug_log) if e["type"] == "exception"]
        assert len(exceptions) == 1
        assert exceptions[0]["source"] == "internal_transactions"
        assert exceptions[0]["exception_type"] == "MissingBlockHashError"
        assert exceptions[0]["extra_context"] == {"input_position": 0}

    def test_exception_records_failing_input_position(self, debug_log: Path) -> None:
        transactions = [
            TransactionFactory.create_transaction(index=0, value=1),
            TransactionFactory.create_transaction(index=1, value=0),
            TransactionFactory.create_transaction(index=2, value=-5),
        ]

        with pytest.raises(InvalidAmountError):
            parse_transactions(transactions, native_token_resolver)

        exceptions = [e for e in read_entries(debug_log) if e["type"] == "exception"]
        assert exceptions[0]["source"] == "transactions"
        assert exceptions[0]["extra_context"] == {"input_position": 2}

    def test_logging_does_not_change_output(self, debug_log: Path) -> None:
        transactions = [
            TransactionFactory.create_transaction(index=i, value=i) for i in range(4)
        ]

        with_logging = parse_transactions(transactions, native_token_resolver)
        token_duality_debug_logger.close()
        without_logging = parse_transactions(transactions, native_token_resolver)

        assert with_logging == without_logging
