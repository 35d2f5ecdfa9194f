"""CLI for potsplit using Typer."""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from .config import load_settings
from .db import Database
from .exceptions import PotsplitError
from .export import ExportKind
from .hotkeys import KeyRouter
from .importer import parse_amount
from .models import (
    BalanceReport,
    DateGroup,
    DateRange,
    SortOrder,
    TransactionDraft,
    TransactionFilters,
    TransactionKind,
)
from .pipeline import custom_range, day_range, quick_range, to_millis
from .service import LedgerService
from .ui import confirm, review_drafts_interactive, select_owner_interactive

app = typer.Typer(
    name="potsplit",
    help="Shared-expense ledger: track expenses and deposits, see who owes whom",
)
account_app = typer.Typer(help="Manage ledger accounts")
owner_app = typer.Typer(help="Manage owners (people expenses and deposits belong to)")
app.add_typer(account_app, name="account")
app.add_typer(owner_app, name="owner")

console = Console()

DATE_FORMATS = ["%Y-%m-%d", "%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M"]


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


@app.callback()
def main(
    ctx: typer.Context,
    account: str | None = typer.Option(
        None, "--account", "-a", help="Account to use (default: POTSPLIT_ACCOUNT_NAME)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Shared-expense ledger."""
    setup_logging(verbose)
    ctx.obj = {"account": account, "verbose": verbose}


@contextmanager
def _open_service(ctx: typer.Context) -> Iterator[LedgerService]:
    """Open the database and yield a service, reporting errors the CLI way."""
    verbose = ctx.obj.get("verbose", False)
    db = None
    try:
        settings = load_settings()
        db = Database(settings.database_path)
        yield LedgerService(settings, db, ctx.obj.get("account"))
    except PotsplitError as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if db is not None:
            db.close()


def _parse_amount_arg(raw: str) -> Decimal:
    amount = parse_amount(raw)
    if amount is None:
        raise typer.BadParameter(f"'{raw}' is not a number")
    return amount


def _resolve_range(
    start: datetime | None,
    end: datetime | None,
    today_only: bool = False,
    days: int | None = None,
) -> DateRange | None:
    """Turn the date filter options into a timestamp window."""
    if today_only:
        return day_range(date.today())
    if days is not None:
        return quick_range(days)
    if start and end:
        return custom_range(start.date(), end.date())
    if start:
        return custom_range(start.date(), date.today())
    if end:
        return DateRange(start=0, end=custom_range(end.date(), end.date()).end)
    return None


# ============================================================================
# Formatting
# ============================================================================


def format_money(amount: Decimal, currency: str = "€", use_color: bool = True) -> str:
    """
    Format money in accounting style.

    Negative amounts use parentheses: (85.02 €)
    Positive amounts have spaces:      85.02 €
    """
    text = f"{abs(amount):,.2f} {currency}"
    if amount < 0:
        return f"([red]{text}[/red])" if use_color else f"({text})"
    return f" [green]{text}[/green] " if use_color else f" {text} "


def display_groups(groups: list[DateGroup], currency: str):
    """Display date groups as one table per day."""
    for group in groups:
        header = group.header
        title = (
            f"{header.day_of_week} {header.month_day} "
            f"[dim]({header.relative_time})[/dim]"
        )
        if group.total_expenses > 0:
            title += f"  [blue]- {group.total_expenses:.2f} {currency}[/blue]"

        table = Table(title=title, title_justify="left", show_header=True)
        table.add_column("ID", style="dim", width=6)
        table.add_column("Time", width=5)
        table.add_column("Type", width=8)
        table.add_column("Description", style="cyan", width=36)
        table.add_column("Owner", style="yellow")
        table.add_column("Amount", justify="right", width=14)

        for t in group.transactions:
            sign = Decimal("-1") if t.kind == TransactionKind.EXPENSE else Decimal("1")
            table.add_row(
                str(t.id),
                t.local_datetime.strftime("%H:%M"),
                t.kind.value,
                t.description[:36],
                t.owner or "[dim]shared[/dim]",
                format_money(sign * t.amount, currency),
            )

        console.print(table)


def display_balance(report: BalanceReport, currency: str):
    """Display the to-pay calculation."""
    table = Table(title="To Pay Calculation", show_header=True, header_style="bold magenta")
    table.add_column("Owner", style="cyan")
    table.add_column("Deposited", justify="right")
    table.add_column("Expenses", justify="right")
    table.add_column("Shared", justify="right")
    table.add_column("To pay", justify="right")

    for name, balance in report.owner_balances.items():
        net = balance.net_to_pay
        to_pay = (
            f"[red]{net:.2f} {currency}[/red]"
            if net > 0
            else f"[green]has paid {abs(net):.2f} {currency} over[/green]"
        )
        table.add_row(
            name,
            f"{balance.deposits:.2f}",
            f"{balance.expenses:.2f}",
            f"{balance.shared_expenses:.2f}",
            to_pay,
        )

    console.print(table)
    console.print(
        f"\n  Shared expenses: {report.total_shared_expenses:.2f} {currency}"
        + "".join(
            f"\n    {name}: {share:.2f} {currency}"
            for name, share in report.shared_shares.items()
        )
    )
    if report.unattributed_deposits:
        console.print(
            f"  [dim]Unattributed deposits (not settled): "
            f"{report.unattributed_deposits:.2f} {currency}[/dim]"
        )
    console.print(
        f"  Ledger balance: {format_money(report.ledger_balance, currency)} "
        f"(in {report.total_deposits:.2f} / out {report.total_expenses:.2f}, "
        f"{report.deposit_share:.0f}% deposits)"
    )

    console.print("\n[bold]Settlement:[/bold]")
    if not report.settlement_messages:
        console.print("  [dim]No settlement (needs exactly two shared parties)[/dim]")
    for message in report.settlement_messages:
        console.print(f"  {message}")


def display_drafts(drafts: list[TransactionDraft]):
    """Display import drafts before commit."""
    table = Table(title="Import Preview", show_header=True, header_style="bold magenta")
    table.add_column("#", style="dim", width=4)
    table.add_column("Type", width=8)
    table.add_column("Date", width=12)
    table.add_column("Amount", justify="right", width=10)
    table.add_column("Description", style="cyan")
    table.add_column("Owner", style="yellow")

    for idx, draft in enumerate(drafts, start=1):
        amount = draft.amount if parse_amount(draft.amount) is not None else (
            f"[red]{draft.amount or '?'}[/red]"
        )
        table.add_row(
            str(idx),
            draft.kind.value,
            draft.date or "[dim]now[/dim]",
            amount,
            draft.description or "[red]missing[/red]",
            draft.owner or "[dim]shared[/dim]",
        )

    console.print(table)


# ============================================================================
# Account and owner commands
# ============================================================================


@account_app.command("create")
def account_create(ctx: typer.Context, name: str = typer.Argument(..., help="Account name")):
    """Create a new ledger account."""
    verbose = ctx.obj.get("verbose", False)
    try:
        settings = load_settings()
        with Database(settings.database_path) as db:
            account = db.create_account(name)
        console.print(f"[green]✓ Created account '{account.name}'[/green]")
    except PotsplitError as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)


@owner_app.command("add")
def owner_add(ctx: typer.Context, name: str = typer.Argument(..., help="Owner name")):
    """Register an owner."""
    with _open_service(ctx) as service:
        owner = service.add_owner(name)
        console.print(f"[green]✓ Added owner '{owner.name}' (id {owner.id})[/green]")


@owner_app.command("list")
def owner_list(ctx: typer.Context):
    """List registered owners."""
    with _open_service(ctx) as service:
        owners = service.list_owners()
        if not owners:
            console.print("[yellow]No owners registered.[/yellow]")
            return

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("ID", style="dim")
        table.add_column("Name", style="cyan")
        for owner in owners:
            table.add_row(str(owner.id), owner.name)
        console.print(table)


@owner_app.command("remove")
def owner_remove(ctx: typer.Context, owner_id: int = typer.Argument(..., help="Owner ID")):
    """Delete an owner. Transactions keep the name."""
    with _open_service(ctx) as service:
        service.remove_owner(owner_id)
        console.print(f"[green]✓ Removed owner {owner_id}[/green]")


# ============================================================================
# Transaction commands
# ============================================================================


def _add(
    ctx: typer.Context,
    kind: TransactionKind,
    amount: str,
    description: str,
    owner: str | None,
    when: datetime | None,
    pick_owner: bool,
    new_owner: bool,
):
    value = _parse_amount_arg(amount)
    with _open_service(ctx) as service:
        if pick_owner:
            owner = select_owner_interactive(service.list_owners(), default=owner or "")
            if owner is None:
                console.print("[yellow]Cancelled.[/yellow]")
                return

        if new_owner:
            service.ensure_owner(owner)

        timestamp = to_millis(when) if when else None
        if kind == TransactionKind.EXPENSE:
            record = service.add_expense(value, description, owner, timestamp)
        else:
            record = service.add_deposit(value, description, owner, timestamp)

        console.print(f"[green]✓ Added {kind.value} {record.id}[/green]")


@app.command()
def expense(
    ctx: typer.Context,
    amount: str = typer.Argument(..., help="Amount spent"),
    description: str = typer.Argument(..., help="What it was for"),
    owner: str | None = typer.Option(None, "--owner", "-o", help="Destination owner (empty = shared)"),
    when: datetime | None = typer.Option(None, "--date", "-d", formats=DATE_FORMATS, help="When (default: now)"),
    pick_owner: bool = typer.Option(False, "--pick-owner", "-p", help="Choose the owner interactively"),
    new_owner: bool = typer.Option(True, "--new-owner/--no-new-owner", help="Register unknown owner names"),
):
    """Record an expense."""
    _add(ctx, TransactionKind.EXPENSE, amount, description, owner, when, pick_owner, new_owner)


@app.command()
def deposit(
    ctx: typer.Context,
    amount: str = typer.Argument(..., help="Amount contributed"),
    description: str = typer.Argument(..., help="Description"),
    owner: str | None = typer.Option(None, "--owner", "-o", help="Source owner"),
    when: datetime | None = typer.Option(None, "--date", "-d", formats=DATE_FORMATS, help="When (default: now)"),
    pick_owner: bool = typer.Option(False, "--pick-owner", "-p", help="Choose the owner interactively"),
    new_owner: bool = typer.Option(True, "--new-owner/--no-new-owner", help="Register unknown owner names"),
):
    """Record a deposit."""
    _add(ctx, TransactionKind.DEPOSIT, amount, description, owner, when, pick_owner, new_owner)


@app.command()
def update(
    ctx: typer.Context,
    kind: TransactionKind = typer.Argument(..., help="expense or deposit"),
    record_id: int = typer.Argument(..., help="Record ID"),
    amount: str = typer.Argument(..., help="New amount"),
    description: str = typer.Argument(..., help="New description"),
    owner: str = typer.Option("", "--owner", "-o", help="New owner (empty = shared)"),
    when: datetime = typer.Option(..., "--date", "-d", formats=DATE_FORMATS, help="New date"),
):
    """Replace every field of an expense or deposit."""
    value = _parse_amount_arg(amount)
    with _open_service(ctx) as service:
        service.update_transaction(kind, record_id, value, description, owner, to_millis(when))
        console.print(f"[green]✓ Updated {kind.value} {record_id}[/green]")


@app.command()
def delete(
    ctx: typer.Context,
    kind: TransactionKind = typer.Argument(..., help="expense or deposit"),
    record_id: int = typer.Argument(..., help="Record ID"),
):
    """Delete an expense or deposit."""
    with _open_service(ctx) as service:
        service.delete_transaction(kind, record_id)
        console.print(f"[green]✓ Deleted {kind.value} {record_id}[/green]")


@app.command()
def clear(
    ctx: typer.Context,
    kind: TransactionKind | None = typer.Option(None, "--type", "-t", help="Only this kind"),
    start: datetime | None = typer.Option(None, "--from", formats=DATE_FORMATS),
    end: datetime | None = typer.Option(None, "--to", formats=DATE_FORMATS),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
):
    """Delete all matching transactions, one by one."""
    date_range = _resolve_range(start, end)
    with _open_service(ctx) as service:
        if not yes:
            what = f"{kind.value}s" if kind else "transactions"
            if not confirm(f"Delete all matching {what}?"):
                console.print("[yellow]Cancelled.[/yellow]")
                return
        deleted = service.delete_all(kind, date_range)
        console.print(f"[green]✓ Deleted {deleted} transactions[/green]")


# ============================================================================
# Views
# ============================================================================


@app.command("list")
def list_transactions(
    ctx: typer.Context,
    kind: TransactionKind | None = typer.Option(None, "--type", "-t", help="Only this kind"),
    owner: str | None = typer.Option(None, "--owner", "-o", help="Only this owner"),
    sort_by: SortOrder = typer.Option(SortOrder.DATE, "--sort", "-s", help="Day ordering"),
    start: datetime | None = typer.Option(None, "--from", formats=DATE_FORMATS),
    end: datetime | None = typer.Option(None, "--to", formats=DATE_FORMATS),
    today_only: bool = typer.Option(False, "--today", help="Only today"),
    days: int | None = typer.Option(None, "--days", help="Only the last N days"),
):
    """Show transactions grouped by day."""
    date_range = _resolve_range(start, end, today_only, days)
    filters = TransactionFilters(type=kind, owner=owner, sort_by=sort_by)
    with _open_service(ctx) as service:
        groups = service.transaction_view(filters, date_range)
        if not groups:
            console.print("[yellow]No transactions found.[/yellow]")
            return
        display_groups(groups, service.settings.currency_symbol)


@app.command()
def balance(
    ctx: typer.Context,
    start: datetime | None = typer.Option(None, "--from", formats=DATE_FORMATS),
    end: datetime | None = typer.Option(None, "--to", formats=DATE_FORMATS),
    today_only: bool = typer.Option(False, "--today", help="Only today"),
    days: int | None = typer.Option(None, "--days", help="Only the last N days"),
):
    """Show per-owner balances and the settlement recommendation."""
    date_range = _resolve_range(start, end, today_only, days)
    with _open_service(ctx) as service:
        report = service.compute_balances(date_range)
        display_balance(report, service.settings.currency_symbol)


# ============================================================================
# Import / export
# ============================================================================


@app.command("import")
def import_file(
    ctx: typer.Context,
    path: Path = typer.Argument(
        ..., exists=True, dir_okay=False, allow_dash=True, help="File to import ('-' for stdin)"
    ),
    csv_format: bool = typer.Option(False, "--csv", help="Rows are 'date, amount, description, owner'"),
    entry_date: datetime | None = typer.Option(None, "--date", "-d", formats=DATE_FORMATS, help="Date for quick-entry lines"),
    review: bool = typer.Option(False, "--review", "-r", help="Review each row (flip type / skip)"),
    create_owners: bool = typer.Option(False, "--create-owners", help="Register unknown owner names"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
):
    """
    Import expenses from quick-entry text or a CSV file.

    Quick entry has one 'amount, description[, owner]' per line.
    """
    text = sys.stdin.read() if str(path) == "-" else path.read_text(encoding="utf-8")

    with _open_service(ctx) as service:
        if csv_format:
            drafts = service.preview_csv(text)
        else:
            drafts = service.preview_quick_text(
                text, entry_date.date() if entry_date else None
            )

        if not drafts:
            console.print(
                "[yellow]No valid entries found. Format: amount, description[/yellow]"
            )
            return

        if review:
            drafts = review_drafts_interactive(drafts)
            if not drafts:
                console.print("[yellow]Nothing left to import.[/yellow]")
                return

        display_drafts(drafts)

        if not yes and not confirm(f"\nImport {len(drafts)} transactions?"):
            console.print("[yellow]Cancelled.[/yellow]")
            return

        result = service.commit_drafts(drafts, create_owners=create_owners)

        if result.success_count:
            console.print(
                f"[green]✓ Successfully imported {result.success_count} transactions[/green]"
            )
        if result.error_count:
            console.print(f"[red]✗ Failed to import {result.error_count} transactions[/red]")
            for error in result.errors:
                console.print(f"  [dim]{error}[/dim]")


@app.command()
def export(
    ctx: typer.Context,
    kind: ExportKind = typer.Option(ExportKind.ALL, "--type", "-t", help="What to export"),
    text: bool = typer.Option(False, "--text", help="Plain-text summary instead of CSV"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output file or directory"),
    start: datetime | None = typer.Option(None, "--from", formats=DATE_FORMATS),
    end: datetime | None = typer.Option(None, "--to", formats=DATE_FORMATS),
):
    """Export transactions as CSV (default) or a text summary."""
    date_range = _resolve_range(start, end)
    with _open_service(ctx) as service:
        if text:
            summary = service.export_text(kind, date_range)
            if output:
                output.write_text(summary + "\n", encoding="utf-8")
                console.print(f"[green]✓ Wrote {output}[/green]")
            else:
                console.print(summary, markup=False, highlight=False)
            return

        filename, content = service.export_csv(kind, date_range)
        target = output or Path(filename)
        if target.is_dir():
            target = target / filename
        target.write_text(content + "\n", encoding="utf-8")
        console.print(f"[green]✓ Exported {kind.value} to {target}[/green]")


@app.command()
def hotkeys():
    """Show keyboard shortcuts for interactive front ends."""
    table = Table(title="Keyboard Shortcuts", show_header=True, header_style="bold magenta")
    table.add_column("Key", style="cyan")
    table.add_column("Action")
    for chord, _action, description in KeyRouter().bindings():
        table.add_row(chord, description)
    console.print(table)


if __name__ == "__main__":
    app()
