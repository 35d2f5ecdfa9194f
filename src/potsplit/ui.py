"""Interactive prompts for owner selection and import review."""

import logging
from typing import Any

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from .importer import toggle_kind
from .models import Owner, TransactionDraft, TransactionKind

logger = logging.getLogger(__name__)


def fuzzy_match(query: str, text: str) -> bool:
    """
    Fuzzy match: all characters in query must appear in order in text.

    Example:
        query="rb" matches "Robena"
    """
    query_idx = 0
    for char in text:
        if query_idx < len(query) and char == query[query_idx]:
            query_idx += 1
    return query_idx == len(query)


class OwnerCompleter(Completer):
    """Fuzzy search completer for registered owners."""

    def __init__(self, owners: list[Owner]):
        """Initialize the completer with the account's owners."""
        self.names = [owner.name for owner in owners]

    def get_completions(self, document: Document, complete_event: Any):
        """Get fuzzy-matched completions."""
        query = document.text.lower()

        for name in self.names:
            if not query or fuzzy_match(query, name.lower()):
                yield Completion(
                    text=name,
                    start_position=-len(document.text),
                    display=name,
                )


def select_owner_interactive(
    owners: list[Owner], prompt_label: str = "Owner", default: str = ""
) -> str | None:
    """
    Pick an owner with fuzzy completion.

    Typing a name that isn't registered yet is allowed; the caller decides
    whether to create it. An empty answer means "shared".

    Returns:
        The chosen name, "" for shared, or None if cancelled
    """
    print("   Type to search, Enter to confirm (empty = shared), Ctrl+C to cancel")
    session: PromptSession[str] = PromptSession(completer=OwnerCompleter(owners))

    try:
        result = session.prompt(
            f"{prompt_label}: ", default=default, complete_while_typing=True
        ).strip()
    except (KeyboardInterrupt, EOFError):
        print("\n⏭️  Cancelled")
        return None

    known = {owner.name for owner in owners}
    if result and result not in known:
        logger.info(f"User entered new owner name: {result}")
    return result


def review_drafts_interactive(drafts: list[TransactionDraft]) -> list[TransactionDraft]:
    """
    Walk through import drafts, letting the user flip kind or drop rows.

    Answers per row: Enter keeps it, "d" records it as a deposit, "e" as an
    expense, "s" skips it, "q" stops reviewing and keeps the remaining rows.

    Returns:
        The drafts to commit
    """
    reviewed: list[TransactionDraft] = []

    for idx, draft in enumerate(drafts):
        owner = f" → {draft.owner}" if draft.owner else ""
        print(
            f"\n  [{idx + 1}/{len(drafts)}] {draft.kind.value}: "
            f"{draft.amount} {draft.description}{owner} {draft.date}".rstrip()
        )

        try:
            response = input("   Keep? [Enter/e/d/s/q] ").strip().lower()
        except (KeyboardInterrupt, EOFError):
            print("\n⏭️  Cancelled")
            return []

        if response == "q":
            reviewed.extend(drafts[idx:])
            break
        if response == "s":
            continue
        if response == "d":
            draft = toggle_kind(draft, TransactionKind.DEPOSIT)
        elif response == "e":
            draft = toggle_kind(draft, TransactionKind.EXPENSE)
        reviewed.append(draft)

    return reviewed


def confirm(message: str) -> bool:
    """Simple yes/no confirmation, defaulting to no."""
    response = input(f"{message} [y/N] ").strip().lower()
    return response in ("y", "yes")
