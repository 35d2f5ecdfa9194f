"""SQLite ledger store for potsplit.

Every query and mutation on owners, expenses and deposits takes the owning
account id; a row that exists under another account behaves as missing.
"""

import sqlite3
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from .exceptions import DuplicateAccountError, DuplicateOwnerError, RecordNotFoundError
from .models import Account, Deposit, Expense, Owner


class Database:
    """SQLite database manager."""

    def __init__(self, db_path: Path):
        """Initialize database connection."""
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path))
        self.conn.row_factory = sqlite3.Row
        self._init_schema()

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _init_schema(self):
        """Initialize database schema."""
        cursor = self.conn.cursor()

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS accounts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL UNIQUE,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS owners (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                account_id INTEGER NOT NULL,
                UNIQUE (account_id, name)
            )
        """
        )

        # Owner names on transactions are plain text; deleting an owner
        # leaves them in place.
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS expenses (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp INTEGER NOT NULL,
                amount TEXT NOT NULL,
                description TEXT NOT NULL,
                destination TEXT,
                account_id INTEGER NOT NULL
            )
        """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS deposits (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp INTEGER NOT NULL,
                amount TEXT NOT NULL,
                description TEXT NOT NULL,
                source TEXT,
                account_id INTEGER NOT NULL
            )
        """
        )

        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_expenses_account_timestamp "
            "ON expenses(account_id, timestamp)"
        )
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_deposits_account_timestamp "
            "ON deposits(account_id, timestamp)"
        )

        self.conn.commit()

    def close(self):
        """Close database connection."""
        self.conn.close()

    # ========================================================================
    # Account operations
    # ========================================================================

    def create_account(self, name: str) -> Account:
        """Create an account, failing on a duplicate name."""
        account = Account(name=name)
        cursor = self.conn.cursor()
        try:
            cursor.execute(
                "INSERT INTO accounts (name, created_at) VALUES (?, ?)",
                (account.name, account.created_at.isoformat()),
            )
        except sqlite3.IntegrityError as e:
            raise DuplicateAccountError(name) from e
        self.conn.commit()
        account.id = cursor.lastrowid
        return account

    def get_account_by_name(self, name: str) -> Account | None:
        """Get an account by name."""
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT id, name, created_at FROM accounts WHERE name = ?", (name,)
        )
        row = cursor.fetchone()
        if not row:
            return None

        return Account(
            id=row["id"],
            name=row["name"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    # ========================================================================
    # Owner operations
    # ========================================================================

    def list_owners(self, account_id: int) -> list[Owner]:
        """Get all owners of an account, ordered by name."""
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT id, name, account_id FROM owners WHERE account_id = ? ORDER BY name",
            (account_id,),
        )
        return [
            Owner(id=row["id"], name=row["name"], account_id=row["account_id"])
            for row in cursor.fetchall()
        ]

    def create_owner(self, account_id: int, name: str) -> Owner:
        """Create an owner, failing if the name is taken in this account."""
        cursor = self.conn.cursor()
        try:
            cursor.execute(
                "INSERT INTO owners (name, account_id) VALUES (?, ?)",
                (name, account_id),
            )
        except sqlite3.IntegrityError as e:
            raise DuplicateOwnerError(name) from e
        self.conn.commit()
        return Owner(id=cursor.lastrowid, name=name, account_id=account_id)

    def delete_owner(self, account_id: int, owner_id: int):
        """Delete an owner. Transactions that name it are left untouched."""
        cursor = self.conn.cursor()
        cursor.execute(
            "DELETE FROM owners WHERE id = ? AND account_id = ?",
            (owner_id, account_id),
        )
        self.conn.commit()
        if cursor.rowcount == 0:
            raise RecordNotFoundError("owner", owner_id)

    # ========================================================================
    # Expense operations
    # ========================================================================

    def insert_expense(self, expense: Expense) -> Expense:
        """Insert an expense and return it with its new id."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO expenses (
                timestamp, amount, description, destination, account_id
            ) VALUES (?, ?, ?, ?, ?)
            """,
            (
                expense.timestamp,
                str(expense.amount),
                expense.description,
                expense.destination,
                expense.account_id,
            ),
        )
        self.conn.commit()
        return expense.model_copy(update={"id": cursor.lastrowid})

    def get_expense(self, account_id: int, expense_id: int) -> Expense | None:
        """Get an expense by id within an account."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT id, timestamp, amount, description, destination, account_id
            FROM expenses
            WHERE id = ? AND account_id = ?
            """,
            (expense_id, account_id),
        )
        row = cursor.fetchone()
        return _expense_from_row(row) if row else None

    def list_expenses(
        self, account_id: int, start: int | None = None, end: int | None = None
    ) -> list[Expense]:
        """Get expenses of an account, optionally within [start, end] millis."""
        query, params = _range_query(
            "SELECT id, timestamp, amount, description, destination, account_id "
            "FROM expenses",
            account_id,
            start,
            end,
        )
        cursor = self.conn.cursor()
        cursor.execute(query, params)
        return [_expense_from_row(row) for row in cursor.fetchall()]

    def update_expense(self, expense: Expense):
        """Replace every editable field of an existing expense."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            UPDATE expenses
            SET timestamp = ?, amount = ?, description = ?, destination = ?
            WHERE id = ? AND account_id = ?
            """,
            (
                expense.timestamp,
                str(expense.amount),
                expense.description,
                expense.destination,
                expense.id,
                expense.account_id,
            ),
        )
        self.conn.commit()
        if cursor.rowcount == 0:
            raise RecordNotFoundError("expense", expense.id or 0)

    def delete_expense(self, account_id: int, expense_id: int):
        """Delete an expense."""
        cursor = self.conn.cursor()
        cursor.execute(
            "DELETE FROM expenses WHERE id = ? AND account_id = ?",
            (expense_id, account_id),
        )
        self.conn.commit()
        if cursor.rowcount == 0:
            raise RecordNotFoundError("expense", expense_id)

    # ========================================================================
    # Deposit operations
    # ========================================================================

    def insert_deposit(self, deposit: Deposit) -> Deposit:
        """Insert a deposit and return it with its new id."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO deposits (
                timestamp, amount, description, source, account_id
            ) VALUES (?, ?, ?, ?, ?)
            """,
            (
                deposit.timestamp,
                str(deposit.amount),
                deposit.description,
                deposit.source,
                deposit.account_id,
            ),
        )
        self.conn.commit()
        return deposit.model_copy(update={"id": cursor.lastrowid})

    def get_deposit(self, account_id: int, deposit_id: int) -> Deposit | None:
        """Get a deposit by id within an account."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT id, timestamp, amount, description, source, account_id
            FROM deposits
            WHERE id = ? AND account_id = ?
            """,
            (deposit_id, account_id),
        )
        row = cursor.fetchone()
        return _deposit_from_row(row) if row else None

    def list_deposits(
        self, account_id: int, start: int | None = None, end: int | None = None
    ) -> list[Deposit]:
        """Get deposits of an account, optionally within [start, end] millis."""
        query, params = _range_query(
            "SELECT id, timestamp, amount, description, source, account_id "
            "FROM deposits",
            account_id,
            start,
            end,
        )
        cursor = self.conn.cursor()
        cursor.execute(query, params)
        return [_deposit_from_row(row) for row in cursor.fetchall()]

    def update_deposit(self, deposit: Deposit):
        """Replace every editable field of an existing deposit."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            UPDATE deposits
            SET timestamp = ?, amount = ?, description = ?, source = ?
            WHERE id = ? AND account_id = ?
            """,
            (
                deposit.timestamp,
                str(deposit.amount),
                deposit.description,
                deposit.source,
                deposit.id,
                deposit.account_id,
            ),
        )
        self.conn.commit()
        if cursor.rowcount == 0:
            raise RecordNotFoundError("deposit", deposit.id or 0)

    def delete_deposit(self, account_id: int, deposit_id: int):
        """Delete a deposit."""
        cursor = self.conn.cursor()
        cursor.execute(
            "DELETE FROM deposits WHERE id = ? AND account_id = ?",
            (deposit_id, account_id),
        )
        self.conn.commit()
        if cursor.rowcount == 0:
            raise RecordNotFoundError("deposit", deposit_id)


def _range_query(
    select: str, account_id: int, start: int | None, end: int | None
) -> tuple[str, list[int]]:
    """Build an account-scoped, timestamp-bounded query."""
    clauses = ["account_id = ?"]
    params = [account_id]
    if start is not None:
        clauses.append("timestamp >= ?")
        params.append(start)
    if end is not None:
        clauses.append("timestamp <= ?")
        params.append(end)
    query = f"{select} WHERE {' AND '.join(clauses)} ORDER BY timestamp, id"
    return query, params


def _expense_from_row(row: sqlite3.Row) -> Expense:
    return Expense(
        id=row["id"],
        timestamp=row["timestamp"],
        amount=Decimal(row["amount"]),
        description=row["description"],
        destination=row["destination"],
        account_id=row["account_id"],
    )


def _deposit_from_row(row: sqlite3.Row) -> Deposit:
    return Deposit(
        id=row["id"],
        timestamp=row["timestamp"],
        amount=Decimal(row["amount"]),
        description=row["description"],
        source=row["source"],
        account_id=row["account_id"],
    )
