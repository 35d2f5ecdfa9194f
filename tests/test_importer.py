"""Tests for the import normalizer."""

from datetime import date, datetime
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from potsplit.importer import (
    import_drafts,
    parse_amount,
    parse_csv_rows,
    parse_quick_text,
    parse_timestamp,
    toggle_kind,
    validate_draft,
)
from potsplit.models import TransactionDraft, TransactionKind
from potsplit.pipeline import to_millis

NOW = datetime(2026, 10, 19, 12, 0)


class TestParseQuickText:
    """Quick-entry grammar: amount, description[, owner]."""

    def test_amount_and_description(self):
        drafts = parse_quick_text("20, ice cream")

        assert drafts == [
            TransactionDraft(
                kind=TransactionKind.EXPENSE,
                date="",
                amount="20",
                description="ice cream",
                owner="",
            )
        ]

    def test_with_owner(self):
        drafts = parse_quick_text("  12.50 ,  lunch , Robena ")

        assert drafts[0].amount == "12.50"
        assert drafts[0].description == "lunch"
        assert drafts[0].owner == "Robena"

    def test_rejects_non_numeric_amount(self):
        assert parse_quick_text("abc, test") == []

    def test_rejects_single_field(self):
        assert parse_quick_text("15") == []

    def test_keeps_valid_lines_in_order(self):
        text = "20, ice cream\n\nabc, test\n15\n3, bread, Patricia\n"
        drafts = parse_quick_text(text)

        assert [d.description for d in drafts] == ["ice cream", "bread"]

    def test_entry_date_is_stamped_on_every_draft(self):
        drafts = parse_quick_text("1, a\n2, b", entry_date=date(2026, 10, 1))

        assert {d.date for d in drafts} == {"2026-10-01"}


class TestParseCsvRows:
    """Header-less tabular grammar: date, amount, description, owner?"""

    def test_permissive_rows(self):
        text = (
            '2026-01-05, 12.50, "Lunch", Robena\n'
            '"01/06/2026",abc,Dinner\n'
            "\n"
            "2026-01-07,3\n"
        )
        drafts = parse_csv_rows(text)

        assert len(drafts) == 3
        assert drafts[0] == TransactionDraft(
            date="2026-01-05", amount="12.50", description="Lunch", owner="Robena"
        )
        assert drafts[1].date == "01/06/2026"
        assert drafts[1].amount == "abc"
        assert drafts[2].description == ""
        assert drafts[2].owner == ""

    def test_unclosed_quote_stays_on_its_line(self):
        text = (
            '2026-01-01, 20, "ice cream\n'
            "2026-01-02, 5, bread\n"
            "2026-01-03, 7, milk\n"
        )
        drafts = parse_csv_rows(text)

        assert len(drafts) == 3
        assert drafts[0].description == "ice cream"
        assert [d.description for d in drafts[1:]] == ["bread", "milk"]
        assert drafts[2].amount == "7"

    def test_quoted_comma_stays_in_description(self):
        drafts = parse_csv_rows('2026-01-05, 4, "bread, rye", Robena')

        assert drafts[0].description == "bread, rye"
        assert drafts[0].owner == "Robena"

    def test_all_rows_are_expenses(self):
        drafts = parse_csv_rows("2026-01-05,1,a\n2026-01-06,2,b")

        assert all(d.kind == TransactionKind.EXPENSE for d in drafts)

    def test_empty_text(self):
        assert parse_csv_rows("") == []


class TestParseFields:
    @pytest.mark.parametrize(
        "raw,expected",
        [("20", Decimal("20")), (" 1.5 ", Decimal("1.5")), ("-3", Decimal("-3"))],
    )
    def test_amounts(self, raw, expected):
        assert parse_amount(raw) == expected

    @pytest.mark.parametrize("raw", ["", "abc", "NaN", "Infinity", "1,5"])
    def test_bad_amounts(self, raw):
        assert parse_amount(raw) is None

    @pytest.mark.parametrize(
        "raw",
        ["2026-01-06", "01/06/2026", "06.01.2026"],
    )
    def test_date_formats_mean_local_midnight(self, raw):
        assert parse_timestamp(raw, NOW) == to_millis(datetime(2026, 1, 6))

    def test_iso_datetime(self):
        assert parse_timestamp("2026-01-06T14:30", NOW) == to_millis(
            datetime(2026, 1, 6, 14, 30)
        )

    @pytest.mark.parametrize("raw", ["", "   ", "yesterday", "2026-13-45"])
    def test_unparsable_date_falls_back_to_now(self, raw):
        assert parse_timestamp(raw, NOW) == to_millis(NOW)


class TestValidateDraft:
    def test_valid_draft(self):
        draft = TransactionDraft(
            date="2026-01-06", amount="9.99", description=" soap ", owner=" "
        )
        transaction = validate_draft(draft, NOW)

        assert transaction.amount == Decimal("9.99")
        assert transaction.description == "soap"
        assert transaction.owner is None
        assert transaction.timestamp == to_millis(datetime(2026, 1, 6))

    @pytest.mark.parametrize(
        "amount,description", [("abc", "x"), ("", "x"), ("5", ""), ("5", "   ")]
    )
    def test_invalid_drafts(self, amount, description):
        draft = TransactionDraft(amount=amount, description=description)

        assert validate_draft(draft, NOW) is None

    def test_toggle_kind_keeps_fields(self):
        draft = TransactionDraft(amount="5", description="refund", owner="Robena")
        flipped = toggle_kind(draft, TransactionKind.DEPOSIT)

        assert flipped.kind == TransactionKind.DEPOSIT
        assert flipped.owner == "Robena"
        assert draft.kind == TransactionKind.EXPENSE


class TestImportDrafts:
    """Sequential commit with per-row error counting."""

    def test_counts_successes_and_failures(self):
        drafts = [
            TransactionDraft(amount="1", description="a"),
            TransactionDraft(amount="abc", description="b"),
            TransactionDraft(amount="3", description="c"),
            TransactionDraft(amount="4", description="d"),
        ]
        create = MagicMock(side_effect=[None, RuntimeError("store down"), None])

        result = import_drafts(drafts, create, now=NOW)

        assert result.success_count == 2
        assert result.error_count == 2
        assert create.call_count == 3
        assert len(result.errors) == 2
        assert "Row 2" in result.errors[0]
        assert "store down" in result.errors[1]

    def test_dispatches_by_kind(self):
        drafts = [
            TransactionDraft(kind=TransactionKind.DEPOSIT, amount="50", description="pot")
        ]
        create = MagicMock()

        import_drafts(drafts, create, now=NOW)

        transaction = create.call_args.args[0]
        assert transaction.kind == TransactionKind.DEPOSIT
        assert transaction.amount == Decimal("50")
        assert transaction.timestamp == to_millis(NOW)

    def test_empty_batch(self):
        create = MagicMock()

        result = import_drafts([], create)

        assert result.success_count == 0
        assert result.error_count == 0
        create.assert_not_called()
