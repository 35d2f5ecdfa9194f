"""Service layer that composes the ledger store with the pure core.

The service is the only place that knows about accounts. It resolves the
current account, validates input, and hands already-scoped snapshots to the
balance engine, the transaction pipeline and the importer.
"""

import logging
from datetime import date, datetime
from decimal import Decimal

from .balance import calculate_owner_balances
from .config import Settings
from .db import Database
from .exceptions import (
    DuplicateOwnerError,
    InvalidTransactionError,
    NotAuthenticatedError,
)
from .export import ExportKind, export_filename, select_transactions, to_csv, to_text_summary
from .importer import import_drafts, parse_csv_rows, parse_quick_text
from .models import (
    Account,
    BalanceReport,
    DateGroup,
    DateRange,
    Deposit,
    Expense,
    ImportResult,
    NewTransaction,
    Owner,
    Transaction,
    TransactionDraft,
    TransactionFilters,
    TransactionKind,
)
from .pipeline import build_transaction_view, tag_transactions, to_millis, transaction_span

logger = logging.getLogger(__name__)


def validate_amount(amount: Decimal) -> Decimal:
    """Reject non-finite, zero or negative amounts."""
    if not amount.is_finite() or amount <= 0:
        raise InvalidTransactionError(f"Amount must be a positive number, got {amount}")
    return amount


def validate_description(description: str) -> str:
    description = description.strip()
    if not description:
        raise InvalidTransactionError("Description must not be empty")
    return description


def _owner_or_none(owner: str | None) -> str | None:
    if owner is None:
        return None
    return owner.strip() or None


class LedgerService:
    """Account-scoped ledger operations."""

    def __init__(
        self, settings: Settings, database: Database, account_name: str | None = None
    ):
        """Initialize the ledger service."""
        self.settings = settings
        self.db = database
        self.account_name = account_name or settings.account_name
        self._account: Account | None = None

    @property
    def account(self) -> Account:
        """
        The authenticated account.

        Raises:
            NotAuthenticatedError: If no account is selected or it doesn't exist
        """
        if self._account is None:
            if not self.account_name:
                raise NotAuthenticatedError(
                    "Not authenticated: no account selected "
                    "(use --account or POTSPLIT_ACCOUNT_NAME)"
                )
            account = self.db.get_account_by_name(self.account_name)
            if account is None:
                raise NotAuthenticatedError(
                    f"Not authenticated: account '{self.account_name}' does not exist"
                )
            self._account = account
        return self._account

    @property
    def account_id(self) -> int:
        account_id = self.account.id
        assert account_id is not None
        return account_id

    # ========================================================================
    # Owner registry
    # ========================================================================

    def list_owners(self) -> list[Owner]:
        return self.db.list_owners(self.account_id)

    def add_owner(self, name: str) -> Owner:
        """Register an owner name; duplicates raise DuplicateOwnerError."""
        name = name.strip()
        if not name:
            raise InvalidTransactionError("Owner name must not be empty")
        owner = self.db.create_owner(self.account_id, name)
        logger.info(f"Added owner '{name}'")
        return owner

    def ensure_owner(self, name: str | None) -> Owner | None:
        """Register an owner on the fly if the name is new."""
        name = _owner_or_none(name)
        if name is None:
            return None
        for owner in self.list_owners():
            if owner.name == name:
                return owner
        try:
            return self.add_owner(name)
        except DuplicateOwnerError:
            # Lost a race with another writer; the owner exists now
            return next(o for o in self.list_owners() if o.name == name)

    def remove_owner(self, owner_id: int):
        """Delete an owner without touching transactions that name it."""
        self.db.delete_owner(self.account_id, owner_id)
        logger.info(f"Removed owner {owner_id}")

    # ========================================================================
    # Transactions
    # ========================================================================

    def list_expenses(self, date_range: DateRange | None = None) -> list[Expense]:
        if date_range:
            return self.db.list_expenses(self.account_id, date_range.start, date_range.end)
        return self.db.list_expenses(self.account_id)

    def list_deposits(self, date_range: DateRange | None = None) -> list[Deposit]:
        if date_range:
            return self.db.list_deposits(self.account_id, date_range.start, date_range.end)
        return self.db.list_deposits(self.account_id)

    def list_transactions(self, date_range: DateRange | None = None) -> list[Transaction]:
        return tag_transactions(
            self.list_expenses(date_range), self.list_deposits(date_range)
        )

    def add_expense(
        self,
        amount: Decimal,
        description: str,
        destination: str | None = None,
        timestamp: int | None = None,
    ) -> Expense:
        """Record an expense; timestamp defaults to now."""
        expense = Expense(
            timestamp=timestamp if timestamp is not None else to_millis(datetime.now()),
            amount=validate_amount(amount),
            description=validate_description(description),
            destination=_owner_or_none(destination),
            account_id=self.account_id,
        )
        expense = self.db.insert_expense(expense)
        logger.info(f"Added expense {expense.id}: {expense.amount} {expense.description!r}")
        return expense

    def add_deposit(
        self,
        amount: Decimal,
        description: str,
        source: str | None = None,
        timestamp: int | None = None,
    ) -> Deposit:
        """Record a deposit; timestamp defaults to now."""
        deposit = Deposit(
            timestamp=timestamp if timestamp is not None else to_millis(datetime.now()),
            amount=validate_amount(amount),
            description=validate_description(description),
            source=_owner_or_none(source),
            account_id=self.account_id,
        )
        deposit = self.db.insert_deposit(deposit)
        logger.info(f"Added deposit {deposit.id}: {deposit.amount} {deposit.description!r}")
        return deposit

    def add_transaction(self, transaction: NewTransaction) -> Expense | Deposit:
        """Create a validated import row as an expense or deposit."""
        if transaction.kind == TransactionKind.EXPENSE:
            return self.add_expense(
                transaction.amount,
                transaction.description,
                transaction.owner,
                transaction.timestamp,
            )
        return self.add_deposit(
            transaction.amount,
            transaction.description,
            transaction.owner,
            transaction.timestamp,
        )

    def update_transaction(
        self,
        kind: TransactionKind,
        record_id: int,
        amount: Decimal,
        description: str,
        owner: str | None,
        timestamp: int,
    ):
        """
        Replace amount, description, owner and timestamp of a record.

        Raises:
            RecordNotFoundError: If the record is missing or not in this account
        """
        amount = validate_amount(amount)
        description = validate_description(description)
        if kind == TransactionKind.EXPENSE:
            self.db.update_expense(
                Expense(
                    id=record_id,
                    timestamp=timestamp,
                    amount=amount,
                    description=description,
                    destination=_owner_or_none(owner),
                    account_id=self.account_id,
                )
            )
        else:
            self.db.update_deposit(
                Deposit(
                    id=record_id,
                    timestamp=timestamp,
                    amount=amount,
                    description=description,
                    source=_owner_or_none(owner),
                    account_id=self.account_id,
                )
            )
        logger.info(f"Updated {kind.value} {record_id}")

    def delete_transaction(self, kind: TransactionKind, record_id: int):
        if kind == TransactionKind.EXPENSE:
            self.db.delete_expense(self.account_id, record_id)
        else:
            self.db.delete_deposit(self.account_id, record_id)
        logger.info(f"Deleted {kind.value} {record_id}")

    def delete_all(
        self, kind: TransactionKind | None = None, date_range: DateRange | None = None
    ) -> int:
        """Delete matching records one by one; returns how many were deleted."""
        deleted = 0
        for transaction in self.list_transactions(date_range):
            if kind and transaction.kind != kind:
                continue
            assert transaction.id is not None
            self.delete_transaction(transaction.kind, transaction.id)
            deleted += 1
        logger.info(f"Deleted {deleted} transactions")
        return deleted

    def date_span(self) -> DateRange | None:
        """Earliest and latest timestamp across the whole ledger."""
        return transaction_span(self.list_transactions())

    # ========================================================================
    # Views
    # ========================================================================

    def compute_balances(self, date_range: DateRange | None = None) -> BalanceReport:
        return calculate_owner_balances(
            self.list_expenses(date_range),
            self.list_deposits(date_range),
            self.list_owners(),
            shared_parties=self.settings.parties(),
            currency=self.settings.currency_symbol,
        )

    def transaction_view(
        self,
        filters: TransactionFilters | None = None,
        date_range: DateRange | None = None,
        today: date | None = None,
    ) -> list[DateGroup]:
        # The range is applied in the store query; the pipeline re-checks it
        return build_transaction_view(
            self.list_expenses(date_range),
            self.list_deposits(date_range),
            filters=filters,
            date_range=date_range,
            today=today,
        )

    # ========================================================================
    # Import / export
    # ========================================================================

    def preview_quick_text(
        self, text: str, entry_date: date | None = None
    ) -> list[TransactionDraft]:
        return parse_quick_text(text, entry_date)

    def preview_csv(self, text: str) -> list[TransactionDraft]:
        return parse_csv_rows(text)

    def commit_drafts(
        self, drafts: list[TransactionDraft], create_owners: bool = False
    ) -> ImportResult:
        """
        Insert reviewed drafts one at a time.

        Args:
            drafts: Drafts to insert
            create_owners: Register unknown owner names before inserting
        """
        account_id = self.account_id  # fail fast before touching any row

        def create(transaction: NewTransaction):
            if create_owners:
                self.ensure_owner(transaction.owner)
            return self.add_transaction(transaction)

        logger.info(f"Importing {len(drafts)} drafts into account {account_id}")
        return import_drafts(drafts, create)

    def export_csv(
        self, kind: ExportKind = ExportKind.ALL, date_range: DateRange | None = None
    ) -> tuple[str, str]:
        """Return (filename, csv text) for the selected transactions."""
        everything = self.list_transactions(date_range)
        filename = export_filename(everything, kind, prefix=self.settings.export_prefix)
        return filename, to_csv(select_transactions(everything, kind))

    def export_text(
        self, kind: ExportKind = ExportKind.ALL, date_range: DateRange | None = None
    ) -> str:
        return to_text_summary(
            self.list_transactions(date_range),
            kind,
            currency=self.settings.currency_symbol,
        )
