"""Balance engine: per-owner positions and the two-party settlement plan."""

import logging
from collections.abc import Iterable, Sequence
from decimal import ROUND_HALF_UP, Decimal
from fractions import Fraction

from .exceptions import ShareRatioError
from .models import (
    Attributed,
    Attribution,
    BalanceReport,
    Deposit,
    Expense,
    IndividualStatus,
    Owner,
    OwnerBalance,
    SettlementPlan,
    SettlementTransfer,
    SharedParty,
    SystemStatus,
    Unattributed,
)

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
SHARE_EPSILON = Fraction(1, 1_000_000)

# Reference household policy: first party carries two thirds of shared costs.
DEFAULT_SHARED_PARTIES: tuple[SharedParty, ...] = (
    SharedParty("Robena", Fraction(2, 3)),
    SharedParty("Patricia", Fraction(1, 3)),
)


# ============================================================================
# Shared-party configuration
# ============================================================================


def parse_shared_parties(text: str) -> tuple[SharedParty, ...]:
    """
    Parse a "Name:ratio,Name:ratio" split definition.

    Ratios may be fractions ("2/3") or decimals ("0.5").

    Raises:
        ShareRatioError: If an entry is malformed or the ratios don't sum to 1
    """
    parties = []
    for entry in text.split(","):
        entry = entry.strip()
        if not entry:
            continue

        name, sep, raw_ratio = entry.rpartition(":")
        if not sep or not name.strip():
            raise ShareRatioError(
                f"Invalid shared party '{entry}', expected 'Name:ratio'"
            )

        try:
            ratio = Fraction(raw_ratio.strip())
        except (ValueError, ZeroDivisionError) as e:
            raise ShareRatioError(
                f"Invalid ratio '{raw_ratio}' for shared party '{name.strip()}'"
            ) from e

        parties.append(SharedParty(name.strip(), ratio))

    result = tuple(parties)
    validate_shared_parties(result)
    return result


def validate_shared_parties(parties: Sequence[SharedParty]) -> None:
    """
    Check that a shared split is usable.

    Raises:
        ShareRatioError: On an empty split, duplicate names, non-positive
            ratios, or ratios that don't sum to 1 within SHARE_EPSILON
    """
    if not parties:
        raise ShareRatioError("At least one shared party is required")

    names = [party.name for party in parties]
    if len(set(names)) != len(names):
        raise ShareRatioError(f"Duplicate shared party names: {names}")

    for party in parties:
        if party.ratio <= 0:
            raise ShareRatioError(
                f"Ratio for '{party.name}' must be positive, got {party.ratio}"
            )

    total = sum((party.ratio for party in parties), Fraction(0))
    if abs(total - 1) > SHARE_EPSILON:
        raise ShareRatioError(f"Shared party ratios must sum to 1, got {total}")


# ============================================================================
# Attribution
# ============================================================================


def resolve_owner(name: str | None, owners_by_name: dict[str, Owner]) -> Attribution:
    """Resolve a stored owner name against the registered owners."""
    if name and name in owners_by_name:
        return Attributed(owner=owners_by_name[name])
    return Unattributed(name=name or "")


# ============================================================================
# Apportionment
# ============================================================================


def apportion_shared_expenses(
    total: Decimal, parties: Sequence[SharedParty]
) -> dict[str, Decimal]:
    """
    Split the shared pool across parties by ratio.

    Each share is rounded to cents independently; the rounding residual is
    then applied to the largest share so the shares always sum to `total`.
    """
    shares: dict[str, Decimal] = {}
    for party in parties:
        exact = total * party.ratio.numerator / party.ratio.denominator
        shares[party.name] = exact.quantize(CENT, rounding=ROUND_HALF_UP)

    residual = total - sum(shares.values(), Decimal("0"))
    if residual != 0 and shares:
        largest = max(shares, key=lambda name: shares[name])
        shares[largest] += residual
        logger.debug(f"Applied share rounding adjustment {residual} to {largest}")

    return shares


# ============================================================================
# Settlement
# ============================================================================


def _fmt(amount: Decimal, currency: str) -> str:
    text = f"{amount:.2f}"
    return f"{text} {currency}" if currency else text


def compute_settlement(
    party_a: str,
    net_a: Decimal,
    party_b: str,
    net_b: Decimal,
    currency: str = "€",
) -> SettlementPlan:
    """
    Recommend how two shared-cost parties settle up.

    Args:
        party_a: First party name
        net_a: First party's net-to-pay (positive = owes)
        party_b: Second party name
        net_b: Second party's net-to-pay
        currency: Symbol appended to amounts in messages

    Returns:
        Structured plan plus human-readable messages
    """
    messages: list[str] = []

    system_balance = net_a + net_b
    if system_balance > 0:
        system_status = SystemStatus.SHORT
        messages.append(
            f"The total missing cost for the system is "
            f"{_fmt(system_balance, currency)}."
        )
    elif system_balance < 0:
        system_status = SystemStatus.OVERPAID
        messages.append(
            f"The system has been overpaid by {_fmt(abs(system_balance), currency)}."
        )
    else:
        system_status = SystemStatus.SETTLED
        messages.append("The system's overall balance is settled.")

    transfer = None
    if net_a == 0 and net_b == 0:
        individual_status = IndividualStatus.SETTLED
        messages.append("Individual balances are settled.")
    elif net_a > 0 and net_b < 0:
        individual_status = IndividualStatus.TRANSFER
        transfer = SettlementTransfer(
            payer=party_b, payee=party_a, amount=min(net_a, abs(net_b))
        )
    elif net_b > 0 and net_a < 0:
        individual_status = IndividualStatus.TRANSFER
        transfer = SettlementTransfer(
            payer=party_a, payee=party_b, amount=min(net_b, abs(net_a))
        )
    elif net_a > 0 and net_b > 0:
        individual_status = IndividualStatus.BOTH_OWE
        messages.append(
            f"Both {party_a} and {party_b} need to contribute to the system "
            f"to cover their shares."
        )
    elif net_a < 0 and net_b < 0:
        individual_status = IndividualStatus.BOTH_OVERPAID
        messages.append(f"Both {party_a} and {party_b} have overpaid the system.")
    else:
        individual_status = IndividualStatus.ONE_SIDED

    if transfer:
        messages.append(
            f"To settle individual accounts, {transfer.payer} pays "
            f"{transfer.payee} {_fmt(transfer.amount, currency)}."
        )

    return SettlementPlan(
        party_a=party_a,
        party_b=party_b,
        net_a=net_a,
        net_b=net_b,
        system_balance=system_balance,
        system_status=system_status,
        individual_status=individual_status,
        transfer=transfer,
        messages=messages,
    )


# ============================================================================
# Engine
# ============================================================================


def calculate_owner_balances(
    expenses: Iterable[Expense],
    deposits: Iterable[Deposit],
    owners: Iterable[Owner],
    shared_parties: Sequence[SharedParty] = DEFAULT_SHARED_PARTIES,
    currency: str = "€",
) -> BalanceReport:
    """
    Turn a ledger snapshot into per-owner balances and a settlement plan.

    Unattributed expenses (no owner, or an owner that is no longer
    registered) go into the shared pool. Unattributed deposits are left out
    of the settlement entirely; they only show up in `unattributed_deposits`.

    Args:
        expenses: Expenses in the snapshot
        deposits: Deposits in the snapshot
        owners: Registered owners; each gets an entry even with no activity
        shared_parties: Parties that carry the shared pool, with ratios
        currency: Symbol used in settlement messages

    Returns:
        Balance report
    """
    validate_shared_parties(shared_parties)

    owners_by_name = {owner.name: owner for owner in owners}
    balances = {name: OwnerBalance() for name in owners_by_name}

    total_shared = Decimal("0")
    total_expenses = Decimal("0")
    for expense in expenses:
        total_expenses += expense.amount
        match resolve_owner(expense.destination, owners_by_name):
            case Attributed(owner=owner):
                balances[owner.name].expenses += expense.amount
            case Unattributed():
                total_shared += expense.amount

    total_deposits = Decimal("0")
    unattributed_deposits = Decimal("0")
    for deposit in deposits:
        total_deposits += deposit.amount
        match resolve_owner(deposit.source, owners_by_name):
            case Attributed(owner=owner):
                balances[owner.name].deposits += deposit.amount
            case Unattributed():
                unattributed_deposits += deposit.amount

    shares = apportion_shared_expenses(total_shared, shared_parties)
    for name, share in shares.items():
        if name in balances:
            balances[name].shared_expenses = share

    settlement = None
    if len(shared_parties) == 2:
        party_a, party_b = (party.name for party in shared_parties)
        zero = OwnerBalance()
        settlement = compute_settlement(
            party_a,
            balances.get(party_a, zero).net_to_pay,
            party_b,
            balances.get(party_b, zero).net_to_pay,
            currency=currency,
        )

    logger.debug(
        f"Computed balances for {len(balances)} owners, "
        f"shared pool {total_shared}"
    )

    return BalanceReport(
        owner_balances=balances,
        total_shared_expenses=total_shared,
        shared_shares=shares,
        total_expenses=total_expenses,
        total_deposits=total_deposits,
        unattributed_deposits=unattributed_deposits,
        settlement=settlement,
    )
