from tokenduality.log_index import TRANSACTION_BUFFER_SIZE
from tokenduality.transaction_token_transfers import (
    parse_internal_transactions,
    parse_transactions,
    to_tokens,
)
from tokenduality.types import SyntheticTokenTransfer, TokenDescriptor, TransferBundle

__all__ = (
    "TRANSACTION_BUFFER_SIZE",
    "SyntheticTokenTransfer",
    "TokenDescriptor",
    "TransferBundle",
    "parse_internal_transactions",
    "parse_transactions",
    "to_tokens",
)
