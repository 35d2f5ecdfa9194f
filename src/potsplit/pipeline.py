"""Transaction pipeline: filter, sort and group ledger records by day.

Everything here is a pure function of its inputs. Callers pass `today`
explicitly when they need stable relative labels (tests, cached views).
"""

from collections.abc import Iterable, Sequence
from datetime import date, datetime, time, timedelta
from decimal import Decimal

from .models import (
    DateGroup,
    DateHeader,
    DateRange,
    Deposit,
    Expense,
    SortOrder,
    Transaction,
    TransactionFilters,
    TransactionKind,
)


def to_millis(moment: datetime) -> int:
    """Convert a datetime (naive = local time) to epoch millis."""
    return round(moment.timestamp() * 1000)


# ============================================================================
# Date ranges
# ============================================================================


def day_range(day: date) -> DateRange:
    """Whole local day, from 00:00:00.000 to 23:59:59.999."""
    start = datetime.combine(day, time.min)
    end = datetime.combine(day, time(23, 59, 59, 999000))
    return DateRange(start=to_millis(start), end=to_millis(end))


def custom_range(start_day: date, end_day: date) -> DateRange:
    """From the start of `start_day` up to 23:59:59 on `end_day`."""
    start = datetime.combine(start_day, time.min)
    end = datetime.combine(end_day, time(23, 59, 59))
    return DateRange(start=to_millis(start), end=to_millis(end))


def quick_range(days: int, now: datetime | None = None) -> DateRange:
    """The last `days` days up to now."""
    now = now or datetime.now()
    return DateRange(start=to_millis(now - timedelta(days=days)), end=to_millis(now))


def transaction_span(transactions: Iterable[Transaction]) -> DateRange | None:
    """Earliest and latest timestamp, or None when there is nothing."""
    timestamps = [t.timestamp for t in transactions]
    if not timestamps:
        return None
    return DateRange(start=min(timestamps), end=max(timestamps))


# ============================================================================
# Steps
# ============================================================================


def tag_transactions(
    expenses: Iterable[Expense], deposits: Iterable[Deposit]
) -> list[Transaction]:
    """Merge both stored kinds into one stream of kind-tagged records."""
    return [Transaction.from_expense(e) for e in expenses] + [
        Transaction.from_deposit(d) for d in deposits
    ]


def filter_by_date_range(
    transactions: Iterable[Transaction], date_range: DateRange | None
) -> list[Transaction]:
    if date_range is None:
        return list(transactions)
    return [t for t in transactions if date_range.contains(t.timestamp)]


def filter_transactions(
    transactions: Iterable[Transaction], filters: TransactionFilters
) -> list[Transaction]:
    """Apply the type and owner filters."""
    result = []
    for transaction in transactions:
        if filters.type and transaction.kind != filters.type:
            continue
        # Records without an owner never match a non-empty owner filter
        if filters.owner and transaction.owner != filters.owner:
            continue
        result.append(transaction)
    return result


def sort_newest_first(transactions: Iterable[Transaction]) -> list[Transaction]:
    return sorted(transactions, key=lambda t: t.timestamp, reverse=True)


def expense_total(transactions: Iterable[Transaction]) -> Decimal:
    return sum(
        (t.amount for t in transactions if t.kind == TransactionKind.EXPENSE),
        Decimal("0"),
    )


def relative_day_label(day: date, today: date) -> str:
    """
    Describe `day` relative to `today` at calendar-day granularity.

    Example:
        relative_day_label(date(2026, 10, 16), date(2026, 10, 19)) -> "3 days ago"
    """
    diff = (day - today).days
    if diff == 0:
        return "Today"
    if diff == 1:
        return "Tomorrow"
    if diff == -1:
        return "Yesterday"
    if diff < 0:
        return f"{abs(diff)} days ago"
    return f"In {diff} days"


def format_date_header(day: date, today: date) -> DateHeader:
    return DateHeader(
        day_of_week=day.strftime("%A"),
        month_day=f"{day.strftime('%b')} {day.day}",
        relative_time=relative_day_label(day, today),
    )


def group_by_date(
    transactions: Sequence[Transaction], today: date
) -> list[DateGroup]:
    """
    Group already-sorted transactions by local calendar day.

    Group order follows first appearance, so newest-first input gives
    newest-first groups.
    """
    buckets: dict[date, list[Transaction]] = {}
    for transaction in transactions:
        buckets.setdefault(transaction.local_date, []).append(transaction)

    return [
        DateGroup(
            day=day,
            date_label=day.strftime("%a %b %d %Y"),
            header=format_date_header(day, today),
            transactions=records,
            total_expenses=expense_total(records),
        )
        for day, records in buckets.items()
    ]


def sort_groups(groups: Sequence[DateGroup], sort_by: SortOrder) -> list[DateGroup]:
    """Reorder whole day groups; records inside a group are left alone."""
    if sort_by == SortOrder.HIGHEST:
        return sorted(groups, key=lambda g: g.total_expenses, reverse=True)
    if sort_by == SortOrder.LOWEST:
        return sorted(groups, key=lambda g: g.total_expenses)
    return sorted(groups, key=lambda g: g.day, reverse=True)


# ============================================================================
# Pipeline
# ============================================================================


def build_transaction_view(
    expenses: Iterable[Expense],
    deposits: Iterable[Deposit],
    filters: TransactionFilters | None = None,
    date_range: DateRange | None = None,
    today: date | None = None,
) -> list[DateGroup]:
    """
    Produce the date-grouped, ordered view of a ledger snapshot.

    Args:
        expenses: Raw expenses
        deposits: Raw deposits
        filters: Type/owner filters and group ordering
        date_range: Optional inclusive timestamp window
        today: Reference day for relative labels (defaults to local today)

    Returns:
        Day groups, empty when nothing matches
    """
    filters = filters or TransactionFilters()
    today = today or date.today()

    transactions = tag_transactions(expenses, deposits)
    transactions = filter_by_date_range(transactions, date_range)
    transactions = filter_transactions(transactions, filters)
    transactions = sort_newest_first(transactions)

    groups = group_by_date(transactions, today)
    return sort_groups(groups, filters.sort_by)
