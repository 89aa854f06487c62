"""Expense service for database operations."""

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from dateutil.relativedelta import relativedelta

from models.expense import Expense
from logger import get_logger

logger = get_logger()

# Amounts are stored as REAL; sums are rounded back to cents
CENTS = Decimal("0.01")

# SQL Query Constants
_EXPENSE_SELECT_FIELDS = """id, amount, category, merchant, description, date,
       embedding, receipt_image_uri"""


def month_bounds(as_of: date) -> Tuple[str, str]:
    """Return the [start, end) ISO bounds of the calendar month containing as_of."""
    start = date(as_of.year, as_of.month, 1)
    end = start + relativedelta(months=1)
    return start.isoformat(), end.isoformat()


class ExpenseService:
    """Service for managing expenses and their embeddings."""

    def __init__(self, db_manager):
        """Initialize the expense service.

        Args:
            db_manager: Database manager instance for database operations.
        """
        self.db_manager = db_manager

    def create(
        self,
        amount: Decimal,
        category: str,
        merchant: Optional[str],
        description: str,
        date: str,
        embedding: Optional[Sequence[float]] = None,
        receipt_image_uri: Optional[str] = None,
    ) -> Expense:
        """Insert a new expense.

        Args:
            amount: Positive amount spent.
            category: Category name.
            merchant: Merchant name or None.
            description: Free-text description.
            date: ISO-8601 timestamp.
            embedding: Optional vector stored alongside the row.
            receipt_image_uri: Optional receipt photo location.

        Returns:
            The created Expense with its database id.

        Raises:
            ValueError: If amount is not positive.
            sqlite3.Error: If the insert fails.
        """
        amount = Decimal(str(amount))
        if amount <= 0:
            raise ValueError(f"Expense amount must be positive, got {amount}")

        embedding_text = json.dumps(list(embedding)) if embedding is not None else None

        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO expenses
                    (amount, category, merchant, description, date, embedding,
                     receipt_image_uri)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    float(amount),
                    category,
                    merchant,
                    description,
                    date,
                    embedding_text,
                    receipt_image_uri,
                ),
            )
            conn.commit()
            expense_id = cursor.lastrowid

        logger.debug(f"Created expense {expense_id}: {amount} in {category}")

        return Expense(
            id=expense_id,
            amount=amount,
            category=category,
            merchant=merchant,
            description=description,
            date=date,
            embedding=list(embedding) if embedding is not None else None,
            receipt_image_uri=receipt_image_uri,
        )

    def find(self, expense_id: int) -> Optional[Expense]:
        """Get a single expense by ID.

        Returns:
            Expense object if found, None otherwise.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"SELECT {_EXPENSE_SELECT_FIELDS} FROM expenses WHERE id = ?",
                (expense_id,),
            )
            row = cursor.fetchone()

            if row:
                return self._row_to_expense(row)
            return None

    def find_all(self) -> List[Expense]:
        """Get all expenses, newest first."""
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"""
                SELECT {_EXPENSE_SELECT_FIELDS}
                FROM expenses
                ORDER BY date DESC, created_at DESC, id DESC
                """
            )
            return [self._row_to_expense(row) for row in cursor.fetchall()]

    def find_filtered(
        self,
        category: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> List[Expense]:
        """Get expenses filtered by category and an inclusive date range.

        Args:
            category: Only expenses in this category.
            start_date: ISO date/timestamp lower bound.
            end_date: ISO date/timestamp upper bound.

        Returns:
            Matching expenses, newest first.
        """
        query = f"SELECT {_EXPENSE_SELECT_FIELDS} FROM expenses WHERE 1=1"
        params = []

        if category:
            query += " AND category = ?"
            params.append(category)

        if start_date:
            query += " AND date >= ?"
            params.append(start_date)

        if end_date:
            query += " AND date <= ?"
            params.append(end_date)

        query += " ORDER BY date DESC, created_at DESC, id DESC"

        with self.db_manager.connect() as conn:
            cursor = conn.execute(query, params)
            return [self._row_to_expense(row) for row in cursor.fetchall()]

    def find_in_month(self, year: int, month: int) -> List[Expense]:
        """Expenses dated in one calendar month, oldest first."""
        start, end = month_bounds(date(year, month, 1))

        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"""
                SELECT {_EXPENSE_SELECT_FIELDS}
                FROM expenses
                WHERE date >= ? AND date < ?
                ORDER BY date, id
                """,
                (start, end),
            )
            return [self._row_to_expense(row) for row in cursor.fetchall()]

    def update_category(self, expense_id: int, category: str) -> bool:
        """Move an expense to another category. The embedding is left as is.

        Returns:
            True if the expense was updated, False if not found.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                """
                UPDATE expenses
                SET category = ?, updated_at = datetime('now')
                WHERE id = ?
                """,
                (category, expense_id),
            )
            conn.commit()
            return cursor.rowcount > 0

    def delete(self, expense_id: int) -> bool:
        """Delete an expense by ID.

        Returns:
            True if expense was deleted, False if not found.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute("DELETE FROM expenses WHERE id = ?", (expense_id,))
            conn.commit()
            return cursor.rowcount > 0

    def month_to_date_spend(
        self, category: str, as_of: Optional[datetime] = None
    ) -> Decimal:
        """Sum of expenses in a category for the calendar month of as_of.

        Args:
            category: Category name.
            as_of: Reference moment, defaults to now.

        Returns:
            Total spend as Decimal (0 when nothing was spent).
        """
        start, end = month_bounds((as_of or datetime.now()).date())

        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                """
                SELECT COALESCE(SUM(amount), 0)
                FROM expenses
                WHERE category = ? AND date >= ? AND date < ?
                """,
                (category, start, end),
            )
            total = cursor.fetchone()[0]

        return _to_cents(total)

    def spend_by_category(self, year: int, month: int) -> Dict[str, Decimal]:
        """Total spend per category for one calendar month."""
        start, end = month_bounds(date(year, month, 1))

        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                """
                SELECT category, SUM(amount)
                FROM expenses
                WHERE date >= ? AND date < ?
                GROUP BY category
                ORDER BY category
                """,
                (start, end),
            )
            return {row[0]: _to_cents(row[1]) for row in cursor.fetchall()}

    def update_embedding(self, expense_id: int, vector: Sequence[float]) -> bool:
        """Overwrite the stored embedding of an expense.

        No dimensionality check is made; callers keep vectors consistent.

        Returns:
            True if the expense exists and was updated.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                "UPDATE expenses SET embedding = ? WHERE id = ?",
                (json.dumps(list(vector)), expense_id),
            )
            conn.commit()
            return cursor.rowcount > 0

    def find_all_with_embedding(self) -> List[Tuple[Expense, str]]:
        """Get every expense that has an embedding, paired with its raw JSON text.

        The raw text is returned so callers decide how to treat rows whose
        embedding cannot be decoded.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"""
                SELECT {_EXPENSE_SELECT_FIELDS}
                FROM expenses
                WHERE embedding IS NOT NULL
                ORDER BY id
                """
            )
            return [(self._row_to_expense(row), row[6]) for row in cursor.fetchall()]

    def _row_to_expense(self, row: tuple) -> Expense:
        """Convert a database row to an Expense object."""
        return Expense(
            id=row[0],
            amount=Decimal(str(row[1])),
            category=row[2],
            merchant=row[3],
            description=row[4],
            date=row[5],
            embedding=_load_embedding(row[6]),
            receipt_image_uri=row[7],
        )


def _to_cents(value) -> Decimal:
    return Decimal(str(value)).quantize(CENTS)


def _load_embedding(text: Optional[str]) -> Optional[List[float]]:
    """Decode a stored embedding, returning None when it is missing or corrupt."""
    if text is None:
        return None
    try:
        value = json.loads(text)
    except ValueError:
        logger.warning("Ignoring undecodable embedding")
        return None
    if not isinstance(value, list):
        return None
    return value
