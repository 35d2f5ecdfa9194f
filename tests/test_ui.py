"""Tests for interactive helpers."""

from unittest.mock import patch

from prompt_toolkit.document import Document

from potsplit.models import Owner, TransactionDraft, TransactionKind
from potsplit.ui import OwnerCompleter, confirm, fuzzy_match, review_drafts_interactive


def make_owners(*names: str) -> list[Owner]:
    return [Owner(id=i, name=name, account_id=1) for i, name in enumerate(names, 1)]


class TestFuzzyMatch:
    def test_in_order_characters(self):
        assert fuzzy_match("rb", "robena")
        assert fuzzy_match("", "anything")
        assert not fuzzy_match("br", "robena")


class TestOwnerCompleter:
    def test_completions(self):
        completer = OwnerCompleter(make_owners("Robena", "Patricia"))

        matches = [c.text for c in completer.get_completions(Document("pt"), None)]

        assert matches == ["Patricia"]

    def test_empty_query_lists_everyone(self):
        completer = OwnerCompleter(make_owners("Robena", "Patricia"))

        matches = [c.text for c in completer.get_completions(Document(""), None)]

        assert matches == ["Robena", "Patricia"]


class TestReviewDrafts:
    """Per-row keep / flip / skip answers."""

    def drafts(self) -> list[TransactionDraft]:
        return [
            TransactionDraft(amount="1", description="a"),
            TransactionDraft(amount="2", description="b"),
            TransactionDraft(amount="3", description="c"),
            TransactionDraft(amount="4", description="d"),
        ]

    def test_keep_flip_skip(self):
        with patch("builtins.input", side_effect=["", "d", "s", ""]):
            reviewed = review_drafts_interactive(self.drafts())

        assert [d.description for d in reviewed] == ["a", "b", "d"]
        assert reviewed[1].kind == TransactionKind.DEPOSIT
        assert reviewed[2].kind == TransactionKind.EXPENSE

    def test_quit_keeps_remaining(self):
        with patch("builtins.input", side_effect=["s", "q"]):
            reviewed = review_drafts_interactive(self.drafts())

        assert [d.description for d in reviewed] == ["b", "c", "d"]

    def test_cancel_returns_nothing(self):
        with patch("builtins.input", side_effect=KeyboardInterrupt):
            assert review_drafts_interactive(self.drafts()) == []


class TestConfirm:
    def test_answers(self):
        with patch("builtins.input", side_effect=["y", "YES", "", "n"]):
            assert [confirm("ok?") for _ in range(4)] == [True, True, False, False]
