"""Pydantic domain models for potsplit."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from fractions import Fraction
from typing import Literal

from pydantic import BaseModel, Field

# ============================================================================
# Ledger Models
# ============================================================================


class TransactionKind(str, Enum):
    """The two stored entity kinds."""

    EXPENSE = "expense"
    DEPOSIT = "deposit"


class Account(BaseModel):
    """An account that owns owners, expenses and deposits."""

    id: int | None = None
    name: str
    created_at: datetime = Field(default_factory=datetime.now)


class Owner(BaseModel):
    """A named party that expenses go to and deposits come from."""

    id: int | None = None
    name: str
    account_id: int


class Expense(BaseModel):
    """Money spent, optionally attributed to a destination owner."""

    id: int | None = None
    timestamp: int  # epoch millis
    amount: Decimal = Field(ge=0)
    description: str
    destination: str | None = None  # None or "" = shared
    account_id: int


class Deposit(BaseModel):
    """Money contributed, optionally attributed to a source owner."""

    id: int | None = None
    timestamp: int  # epoch millis
    amount: Decimal = Field(ge=0)
    description: str
    source: str | None = None  # None or "" = unattributed
    account_id: int


class Transaction(BaseModel):
    """An expense or deposit tagged with its kind, for presentation."""

    id: int | None = None
    kind: TransactionKind
    timestamp: int
    amount: Decimal
    description: str
    owner: str = ""
    account_id: int

    @classmethod
    def from_expense(cls, expense: Expense) -> "Transaction":
        return cls(
            id=expense.id,
            kind=TransactionKind.EXPENSE,
            timestamp=expense.timestamp,
            amount=expense.amount,
            description=expense.description,
            owner=expense.destination or "",
            account_id=expense.account_id,
        )

    @classmethod
    def from_deposit(cls, deposit: Deposit) -> "Transaction":
        return cls(
            id=deposit.id,
            kind=TransactionKind.DEPOSIT,
            timestamp=deposit.timestamp,
            amount=deposit.amount,
            description=deposit.description,
            owner=deposit.source or "",
            account_id=deposit.account_id,
        )

    @property
    def local_datetime(self) -> datetime:
        """Timestamp as a naive local datetime."""
        return datetime.fromtimestamp(self.timestamp / 1000)

    @property
    def local_date(self) -> date:
        """Calendar date of the timestamp in local time."""
        return self.local_datetime.date()


# ============================================================================
# Balance Models
# ============================================================================


@dataclass(frozen=True)
class SharedParty:
    """An owner that carries a fixed share of unattributed expenses."""

    name: str
    ratio: Fraction


class Attributed(BaseModel):
    """An owner name that resolved to a registered owner."""

    outcome: Literal["attributed"] = "attributed"
    owner: Owner


class Unattributed(BaseModel):
    """An owner name that is empty, absent or no longer registered."""

    outcome: Literal["unattributed"] = "unattributed"
    name: str = ""


Attribution = Attributed | Unattributed


class OwnerBalance(BaseModel):
    """Per-owner accumulators. Never negative."""

    expenses: Decimal = Decimal("0")
    deposits: Decimal = Decimal("0")
    shared_expenses: Decimal = Decimal("0")

    @property
    def net_to_pay(self) -> Decimal:
        """Positive: owner still owes the pool. Negative: owner overpaid."""
        return self.expenses + self.shared_expenses - self.deposits


class SystemStatus(str, Enum):
    """State of the pool as a whole."""

    SHORT = "short"
    OVERPAID = "overpaid"
    SETTLED = "settled"


class IndividualStatus(str, Enum):
    """State between the two shared-cost parties."""

    SETTLED = "settled"
    TRANSFER = "transfer"
    BOTH_OWE = "both_owe"
    BOTH_OVERPAID = "both_overpaid"
    ONE_SIDED = "one_sided"  # one party at zero, the other not


class SettlementTransfer(BaseModel):
    """A direct payment between the two shared-cost parties."""

    payer: str
    payee: str
    amount: Decimal


class SettlementPlan(BaseModel):
    """Settlement recommendation between two shared-cost parties."""

    party_a: str
    party_b: str
    net_a: Decimal
    net_b: Decimal
    system_balance: Decimal
    system_status: SystemStatus
    individual_status: IndividualStatus
    transfer: SettlementTransfer | None = None
    messages: list[str] = Field(default_factory=list)


class BalanceReport(BaseModel):
    """Output of the balance engine."""

    owner_balances: dict[str, OwnerBalance]
    total_shared_expenses: Decimal = Decimal("0")
    shared_shares: dict[str, Decimal] = Field(default_factory=dict)
    total_expenses: Decimal = Decimal("0")
    total_deposits: Decimal = Decimal("0")
    unattributed_deposits: Decimal = Decimal("0")
    settlement: SettlementPlan | None = None

    @property
    def settlement_messages(self) -> list[str]:
        return self.settlement.messages if self.settlement else []

    @property
    def ledger_balance(self) -> Decimal:
        """Deposits minus expenses over everything in the snapshot."""
        return self.total_deposits - self.total_expenses

    @property
    def deposit_share(self) -> Decimal:
        """Percentage of deposits in the combined deposit + expense volume."""
        volume = self.total_deposits + self.total_expenses
        if volume == 0:
            return Decimal("0")
        return self.total_deposits / volume * 100


# ============================================================================
# Pipeline Models
# ============================================================================


class SortOrder(str, Enum):
    """Ordering applied to date groups."""

    DATE = "date"
    HIGHEST = "highest"
    LOWEST = "lowest"


class TransactionFilters(BaseModel):
    """Optional type/owner filters and group ordering."""

    type: TransactionKind | None = None
    owner: str | None = None
    sort_by: SortOrder = SortOrder.DATE


class DateRange(BaseModel):
    """Inclusive timestamp window in epoch millis."""

    start: int
    end: int

    def contains(self, timestamp: int) -> bool:
        return self.start <= timestamp <= self.end


class DateHeader(BaseModel):
    """Display header for one calendar day."""

    day_of_week: str  # "Monday"
    month_day: str  # "Oct 19"
    relative_time: str  # "Today", "3 days ago", ...


class DateGroup(BaseModel):
    """Transactions of a single local calendar day."""

    day: date
    date_label: str
    header: DateHeader
    transactions: list[Transaction]
    total_expenses: Decimal = Decimal("0")


# ============================================================================
# Import Models
# ============================================================================


class TransactionDraft(BaseModel):
    """An unvalidated row from an import, editable before commit.

    Fields stay raw text until insertion so that a malformed tabular row can
    still be previewed and counted as a failure later.
    """

    kind: TransactionKind = TransactionKind.EXPENSE
    date: str = ""
    amount: str
    description: str
    owner: str = ""


class NewTransaction(BaseModel):
    """A validated draft ready to be created in the store."""

    kind: TransactionKind
    timestamp: int
    amount: Decimal
    description: str
    owner: str | None = None


class ImportResult(BaseModel):
    """Summary of an import batch."""

    success_count: int = 0
    error_count: int = 0
    errors: list[str] = Field(default_factory=list)
