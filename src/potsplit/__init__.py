"""potsplit - Shared-expense ledger with owner balances and settlement."""

__version__ = "0.1.0"

from .balance import calculate_owner_balances, compute_settlement
from .config import Settings, load_settings
from .db import Database
from .importer import import_drafts, parse_csv_rows, parse_quick_text
from .models import (
    BalanceReport,
    Deposit,
    Expense,
    Owner,
    TransactionDraft,
    TransactionFilters,
    TransactionKind,
)
from .pipeline import build_transaction_view
from .service import LedgerService

__all__ = [
    "Settings",
    "load_settings",
    "Database",
    "BalanceReport",
    "Deposit",
    "Expense",
    "Owner",
    "TransactionDraft",
    "TransactionFilters",
    "TransactionKind",
    "calculate_owner_balances",
    "compute_settlement",
    "build_transaction_view",
    "import_drafts",
    "parse_csv_rows",
    "parse_quick_text",
    "LedgerService",
]
