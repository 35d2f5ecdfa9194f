"""Import normalizer for quick-entry text and header-less CSV files.

Two grammars feed the same draft type:

- Quick entry, one line per expense: ``amount, description[, destination]``.
  Lines with fewer than two fields or a non-numeric amount are dropped.
- Tabular rows: ``date, amount, description, destination?``. Every row
  becomes a draft; bad rows only fail when the batch is committed.
"""

import csv
import logging
from collections.abc import Callable, Iterable
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from .models import ImportResult, NewTransaction, TransactionDraft, TransactionKind
from .pipeline import to_millis

logger = logging.getLogger(__name__)

DATE_FORMATS = ("%m/%d/%Y", "%d.%m.%Y")


# ============================================================================
# Field parsing
# ============================================================================


def parse_amount(raw: str) -> Decimal | None:
    """Parse a finite decimal amount, or return None."""
    try:
        amount = Decimal(raw.strip())
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return amount


def parse_timestamp(raw: str, now: datetime | None = None) -> int:
    """
    Parse a draft date into epoch millis, falling back to now.

    Date-only values are read as local midnight.
    """
    now = now or datetime.now()
    raw = raw.strip()
    if not raw:
        return to_millis(now)

    try:
        return to_millis(datetime.fromisoformat(raw))
    except ValueError:
        pass

    for fmt in DATE_FORMATS:
        try:
            return to_millis(datetime.strptime(raw, fmt))
        except ValueError:
            continue

    logger.debug(f"Unparsable date '{raw}', using current time")
    return to_millis(now)


# ============================================================================
# Grammars
# ============================================================================


def parse_quick_text(text: str, entry_date: date | None = None) -> list[TransactionDraft]:
    """
    Parse quick-entry lines into expense drafts.

    Args:
        text: One ``amount, description[, destination]`` entry per line
        entry_date: Date stamped on every draft (empty = now at commit)

    Returns:
        Drafts for the accepted lines, in input order
    """
    drafts = []
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue

        parts = [part.strip() for part in line.split(",")]
        if len(parts) < 2:
            logger.debug(f"Rejected line (too few fields): {line!r}")
            continue

        if parse_amount(parts[0]) is None:
            logger.debug(f"Rejected line (bad amount): {line!r}")
            continue

        drafts.append(
            TransactionDraft(
                date=entry_date.isoformat() if entry_date else "",
                amount=parts[0],
                description=parts[1],
                owner=parts[2] if len(parts) > 2 else "",
            )
        )

    return drafts


def parse_csv_rows(text: str) -> list[TransactionDraft]:
    """
    Parse header-less ``date, amount, description, destination?`` rows.

    Each line is one row: quotes never span lines. Quote characters are
    stripped and missing trailing columns become empty strings. No row is
    rejected here.
    """
    drafts = []
    for line in text.splitlines():
        if not line.strip():
            continue

        row = next(csv.reader([line], skipinitialspace=True), [])
        columns = [column.replace('"', "").strip() for column in row]
        if not any(columns):
            continue
        columns += [""] * (4 - len(columns))

        drafts.append(
            TransactionDraft(
                date=columns[0],
                amount=columns[1],
                description=columns[2],
                owner=columns[3],
            )
        )

    return drafts


# ============================================================================
# Validation and dispatch
# ============================================================================


def validate_draft(
    draft: TransactionDraft, now: datetime | None = None
) -> NewTransaction | None:
    """
    Turn a draft into an insertable transaction.

    Returns None when the amount isn't a finite number or the description is
    blank after trimming.
    """
    amount = parse_amount(draft.amount)
    description = draft.description.strip()
    if amount is None or not description:
        return None

    return NewTransaction(
        kind=draft.kind,
        timestamp=parse_timestamp(draft.date, now),
        amount=amount,
        description=description,
        owner=draft.owner.strip() or None,
    )


def import_drafts(
    drafts: Iterable[TransactionDraft],
    create: Callable[[NewTransaction], object],
    now: datetime | None = None,
) -> ImportResult:
    """
    Validate and create each draft, one at a time.

    A row that fails validation or whose create call raises is logged and
    counted; the rest of the batch carries on and earlier rows stay created.

    Args:
        drafts: Drafts to commit, in order
        create: Store call used for each accepted draft
        now: Fallback time for drafts without a usable date

    Returns:
        Success and error counts with a message per failed row
    """
    result = ImportResult()

    for index, draft in enumerate(drafts, start=1):
        transaction = validate_draft(draft, now)
        if transaction is None:
            result.error_count += 1
            result.errors.append(
                f"Row {index}: invalid amount or empty description "
                f"({draft.amount!r}, {draft.description!r})"
            )
            continue

        try:
            create(transaction)
        except Exception as e:
            logger.error(f"Error importing row {index} ({draft.description!r}): {e}")
            result.error_count += 1
            result.errors.append(f"Row {index}: {e}")
            continue

        result.success_count += 1

    logger.info(
        f"Imported {result.success_count} transactions "
        f"({result.error_count} failed)"
    )
    return result


def toggle_kind(draft: TransactionDraft, kind: TransactionKind) -> TransactionDraft:
    """Return a copy of the draft recorded as a different kind."""
    return draft.model_copy(update={"kind": kind})
