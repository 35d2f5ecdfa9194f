"""CSV and plain-text exports of ledger transactions."""

import csv
import io
import math
from collections.abc import Iterable
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from .models import Transaction, TransactionKind
from .pipeline import sort_newest_first

CSV_HEADER = ["Date", "Type", "Amount", "Description", "Owner"]
MILLIS_PER_DAY = 24 * 60 * 60 * 1000


class ExportKind(str, Enum):
    """Which transactions an export covers."""

    ALL = "all"
    EXPENSES = "expenses"
    DEPOSITS = "deposits"


def select_transactions(
    transactions: Iterable[Transaction], kind: ExportKind
) -> list[Transaction]:
    """Filter by export kind and order newest first."""
    ordered = sort_newest_first(transactions)
    if kind == ExportKind.EXPENSES:
        return [t for t in ordered if t.kind == TransactionKind.EXPENSE]
    if kind == ExportKind.DEPOSITS:
        return [t for t in ordered if t.kind == TransactionKind.DEPOSIT]
    return ordered


def to_csv(transactions: Iterable[Transaction]) -> str:
    """
    Render transactions as CSV with every field double-quoted.

    Rows are ordered by descending timestamp, dates are local ISO dates.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for t in sort_newest_first(transactions):
        writer.writerow(
            [
                t.local_date.isoformat(),
                t.kind.value,
                f"{t.amount:.2f}",
                t.description,
                t.owner,
            ]
        )
    return buffer.getvalue().rstrip("\n")


def export_filename(
    transactions: Iterable[Transaction],
    kind: ExportKind = ExportKind.ALL,
    prefix: str = "tarifa",
    today: date | None = None,
) -> str:
    """
    Build an export file name.

    The day span always comes from `transactions` as given, so callers pass
    every transaction in view, not just the exported kind.

    Example:
        tarifa-2026-01102026-19102026-19days.csv
        expenses-tarifa-2026-01102026-19102026-19days.csv
    """
    today = today or date.today()
    name = f"{prefix}-{today.year}"
    if kind != ExportKind.ALL:
        name = f"{kind.value}-{name}"

    ordered = sort_newest_first(transactions)
    if ordered:
        first, last = ordered[-1], ordered[0]
        span_days = math.ceil((last.timestamp - first.timestamp) / MILLIS_PER_DAY) + 1
        name += (
            f"-{first.local_date.strftime('%d%m%Y')}"
            f"-{last.local_date.strftime('%d%m%Y')}-{span_days}days"
        )
    else:
        name += f"-{today.strftime('%d%m%Y')}"

    return f"{name}.csv"


def _whole(amount: Decimal) -> Decimal:
    return amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def to_text_summary(
    transactions: Iterable[Transaction],
    kind: ExportKind = ExportKind.ALL,
    currency: str = "€",
) -> str:
    """
    Render a day-grouped message-friendly summary with whole-unit amounts.

    Example:
        Monday, 19/10
        - 12€, groceries, Robena
        + 30€, rent pot

        Expenses: 12€
        Deposits: 30€
        Total: 18€
    """
    selected = select_transactions(transactions, kind)

    lines: list[str] = []
    if kind != ExportKind.ALL:
        lines += [f"{kind.value.capitalize()} Summary", ""]

    days: dict[date, list[Transaction]] = {}
    for t in selected:
        days.setdefault(t.local_date, []).append(t)

    for day, records in days.items():
        lines.append(f"{day.strftime('%A')}, {day.strftime('%d/%m')}")
        for t in records:
            sign = "- " if t.kind == TransactionKind.EXPENSE else "+ "
            owner = f", {t.owner}" if t.owner else ""
            lines.append(f"{sign}{_whole(t.amount)}{currency}, {t.description}{owner}")
        lines.append("")

    total_expenses = sum(
        (t.amount for t in selected if t.kind == TransactionKind.EXPENSE), Decimal("0")
    )
    total_deposits = sum(
        (t.amount for t in selected if t.kind == TransactionKind.DEPOSIT), Decimal("0")
    )

    if kind == ExportKind.ALL:
        lines.append(f"Expenses: {_whole(total_expenses)}{currency}")
        lines.append(f"Deposits: {_whole(total_deposits)}{currency}")
        lines.append(f"Total: {_whole(total_deposits - total_expenses)}{currency}")
    elif kind == ExportKind.EXPENSES:
        lines.append(f"Total Expenses: {_whole(total_expenses)}{currency}")
    else:
        lines.append(f"Total Deposits: {_whole(total_deposits)}{currency}")

    return "\n".join(lines)
