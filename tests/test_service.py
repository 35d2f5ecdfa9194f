"""Tests for LedgerService layer."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from potsplit.config import Settings
from potsplit.db import Database
from potsplit.exceptions import (
    DuplicateOwnerError,
    InvalidTransactionError,
    NotAuthenticatedError,
    RecordNotFoundError,
)
from potsplit.export import ExportKind
from potsplit.models import (
    SystemStatus,
    TransactionDraft,
    TransactionFilters,
    TransactionKind,
)
from potsplit.pipeline import day_range, to_millis
from potsplit.service import LedgerService


@pytest.fixture
def mock_settings(tmp_path):
    """Create test settings."""
    return Settings(
        account_name="home",
        shared_parties="Robena:2/3,Patricia:1/3",
        currency_symbol="€",
        export_prefix="tarifa",
        database_path=tmp_path / "test.db",
    )


@pytest.fixture
def mock_db(mock_settings):
    """Create a temporary database with two accounts."""
    db = Database(mock_settings.database_path)
    db.create_account("home")
    db.create_account("other")
    yield db
    db.close()


@pytest.fixture
def service(mock_settings, mock_db):
    """Create a LedgerService for the 'home' account."""
    return LedgerService(mock_settings, mock_db)


@pytest.fixture
def other_service(mock_settings, mock_db):
    """Create a LedgerService for the 'other' account."""
    return LedgerService(mock_settings, mock_db, account_name="other")


def at(day: int, hour: int = 12) -> int:
    return to_millis(datetime(2026, 10, day, hour))


class TestAuthentication:
    def test_unknown_account(self, mock_settings, mock_db):
        service = LedgerService(mock_settings, mock_db, account_name="missing")

        with pytest.raises(NotAuthenticatedError, match="does not exist"):
            service.list_expenses()

    def test_no_account_selected(self, mock_settings, mock_db):
        settings = mock_settings.model_copy(update={"account_name": None})
        service = LedgerService(settings, mock_db)

        with pytest.raises(NotAuthenticatedError, match="no account selected"):
            service.add_expense(Decimal("1"), "x")


class TestOwners:
    def test_add_and_list(self, service, other_service):
        service.add_owner("Robena")
        other_service.add_owner("Robena")

        assert [o.name for o in service.list_owners()] == ["Robena"]
        assert [o.name for o in other_service.list_owners()] == ["Robena"]

    def test_duplicate_owner(self, service):
        service.add_owner("Robena")

        with pytest.raises(DuplicateOwnerError):
            service.add_owner(" Robena ")

    def test_ensure_owner_is_idempotent(self, service):
        first = service.ensure_owner("Patricia")
        second = service.ensure_owner("Patricia")

        assert first.id == second.id
        assert service.ensure_owner("  ") is None
        assert len(service.list_owners()) == 1

    def test_remove_owner_keeps_transactions(self, service):
        owner = service.add_owner("Patricia")
        service.add_owner("Robena")
        service.add_expense(Decimal("30"), "dentist", "Patricia", at(19))

        service.remove_owner(owner.id)

        assert service.list_expenses()[0].destination == "Patricia"
        report = service.compute_balances()
        assert report.total_shared_expenses == Decimal("30")
        assert "Patricia" not in report.owner_balances

    def test_remove_missing_owner(self, service):
        with pytest.raises(RecordNotFoundError):
            service.remove_owner(999)


class TestTransactions:
    def test_add_rejects_bad_input(self, service):
        with pytest.raises(InvalidTransactionError):
            service.add_expense(Decimal("0"), "nothing")
        with pytest.raises(InvalidTransactionError):
            service.add_deposit(Decimal("-5"), "negative")
        with pytest.raises(InvalidTransactionError):
            service.add_expense(Decimal("5"), "   ")

    def test_blank_owner_is_stored_as_shared(self, service):
        expense = service.add_expense(Decimal("5"), "bread", "  ", at(19))

        assert expense.destination is None

    def test_explicit_epoch_timestamp_is_kept(self, service):
        expense = service.add_expense(Decimal("1"), "a", timestamp=0)
        deposit = service.add_deposit(Decimal("1"), "b", timestamp=0)

        assert expense.timestamp == 0
        assert deposit.timestamp == 0

    def test_cross_account_isolation(self, service, other_service):
        expense = service.add_expense(Decimal("10"), "milk", timestamp=at(19))

        assert other_service.list_transactions() == []
        with pytest.raises(RecordNotFoundError):
            other_service.delete_transaction(TransactionKind.EXPENSE, expense.id)
        with pytest.raises(RecordNotFoundError):
            other_service.update_transaction(
                TransactionKind.EXPENSE, expense.id, Decimal("1"), "x", "", at(19)
            )
        assert len(service.list_transactions()) == 1

    def test_update_replaces_every_field(self, service):
        deposit = service.add_deposit(Decimal("50"), "pot", "Robena", at(18))

        service.update_transaction(
            TransactionKind.DEPOSIT, deposit.id, Decimal("60"), "bigger pot", "", at(19)
        )

        [updated] = service.list_deposits()
        assert updated.amount == Decimal("60")
        assert updated.description == "bigger pot"
        assert updated.source is None
        assert updated.timestamp == at(19)

    def test_update_missing_record(self, service):
        with pytest.raises(RecordNotFoundError, match="Expense 42"):
            service.update_transaction(
                TransactionKind.EXPENSE, 42, Decimal("1"), "x", "", at(19)
            )

    def test_delete_all_by_kind_and_range(self, service):
        service.add_expense(Decimal("1"), "a", timestamp=at(17))
        service.add_expense(Decimal("2"), "b", timestamp=at(18))
        service.add_deposit(Decimal("3"), "c", timestamp=at(18))

        deleted = service.delete_all(
            TransactionKind.EXPENSE, day_range(date(2026, 10, 18))
        )

        assert deleted == 1
        remaining = service.list_transactions()
        assert {t.description for t in remaining} == {"a", "c"}

        assert service.delete_all() == 2
        assert service.list_transactions() == []

    def test_date_span(self, service):
        assert service.date_span() is None

        service.add_expense(Decimal("1"), "a", timestamp=at(10))
        service.add_deposit(Decimal("1"), "b", timestamp=at(15))

        span = service.date_span()
        assert (span.start, span.end) == (at(10), at(15))


class TestViews:
    def test_compute_balances_uses_configured_split(self, service):
        service.add_owner("Robena")
        service.add_owner("Patricia")
        service.add_expense(Decimal("90"), "groceries", timestamp=at(19))
        service.add_deposit(Decimal("30"), "pot", "Patricia", at(19))

        report = service.compute_balances()

        assert report.owner_balances["Robena"].net_to_pay == Decimal("60.00")
        assert report.owner_balances["Patricia"].net_to_pay == Decimal("0.00")
        assert report.settlement.system_status == SystemStatus.SHORT

    def test_compute_balances_with_range(self, service):
        service.add_owner("Robena")
        service.add_expense(Decimal("90"), "old", timestamp=at(1))
        service.add_expense(Decimal("9"), "new", timestamp=at(19))

        report = service.compute_balances(day_range(date(2026, 10, 19)))

        assert report.total_expenses == Decimal("9")

    def test_transaction_view(self, service):
        service.add_expense(Decimal("5"), "a", "Robena", at(18))
        service.add_expense(Decimal("7"), "b", timestamp=at(19))

        groups = service.transaction_view(
            TransactionFilters(owner="Robena"), today=date(2026, 10, 19)
        )

        assert len(groups) == 1
        assert groups[0].header.relative_time == "Yesterday"


class TestImport:
    def test_preview_quick_text(self, service):
        drafts = service.preview_quick_text("20, ice cream\nabc, test")

        assert len(drafts) == 1
        assert service.list_transactions() == []

    def test_commit_drafts(self, service):
        drafts = service.preview_csv(
            "2026-10-18, 12.50, Lunch, Robena\n2026-10-19, abc, Dinner\n"
        )
        drafts.append(
            TransactionDraft(
                kind=TransactionKind.DEPOSIT, amount="40", description="pot"
            )
        )

        result = service.commit_drafts(drafts)

        assert result.success_count == 2
        assert result.error_count == 1
        assert len(service.list_expenses()) == 1
        assert len(service.list_deposits()) == 1
        assert service.list_owners() == []

    def test_commit_drafts_creates_owners(self, service):
        drafts = service.preview_quick_text("5, bread, Patricia\n6, milk, Patricia")

        result = service.commit_drafts(drafts, create_owners=True)

        assert result.success_count == 2
        assert [o.name for o in service.list_owners()] == ["Patricia"]

    def test_commit_drafts_requires_account(self, mock_settings, mock_db):
        service = LedgerService(mock_settings, mock_db, account_name="missing")

        with pytest.raises(NotAuthenticatedError):
            service.commit_drafts([TransactionDraft(amount="1", description="x")])

    def test_rows_with_zero_amount_fail(self, service):
        drafts = service.preview_quick_text("0, free sample")

        result = service.commit_drafts(drafts)

        assert result.error_count == 1
        assert "positive" in result.errors[0]


class TestExport:
    def test_export_csv(self, service):
        service.add_expense(Decimal("5"), "bread", timestamp=at(17, 10))
        service.add_deposit(Decimal("20"), "pot", timestamp=at(19, 10))

        filename, content = service.export_csv()

        assert filename.startswith("tarifa-")
        assert filename.endswith("-17102026-19102026-3days.csv")
        assert content.splitlines()[1].startswith('"2026-10-19","deposit"')

    def test_export_deposits_names_the_full_span(self, service):
        service.add_expense(Decimal("5"), "bread", timestamp=at(17, 10))
        service.add_deposit(Decimal("20"), "pot", timestamp=at(19, 10))

        filename, content = service.export_csv(ExportKind.DEPOSITS)

        assert filename.startswith("deposits-tarifa-")
        assert filename.endswith("-17102026-19102026-3days.csv")
        assert "bread" not in content

    def test_export_text_expenses(self, service):
        service.add_expense(Decimal("5"), "bread", timestamp=at(17, 10))
        service.add_deposit(Decimal("20"), "pot", timestamp=at(19, 10))

        summary = service.export_text(ExportKind.EXPENSES)

        assert "pot" not in summary
        assert summary.endswith("Total Expenses: 5€")
