"""Budget service for database operations."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from models.budget import Budget, BudgetStatus


class BudgetService:
    """Service for managing monthly budget limits.

    Args:
        db_manager: Database manager instance for database operations.
        expense_service: Expense service used to compute month-to-date spend.
    """

    def __init__(self, db_manager, expense_service):
        self.db_manager = db_manager
        self.expense_service = expense_service

    def set_limit(self, category: str, amount: Decimal) -> Budget:
        """Create or replace the monthly limit of a category.

        Raises:
            ValueError: If amount is negative.
        """
        amount = Decimal(str(amount))
        if amount < 0:
            raise ValueError(f"Budget amount cannot be negative, got {amount}")

        with self.db_manager.connect() as conn:
            conn.execute(
                """
                INSERT INTO budgets (category, amount, period, updated_at)
                VALUES (?, ?, 'monthly', datetime('now'))
                ON CONFLICT(category) DO UPDATE SET
                    amount = excluded.amount,
                    updated_at = excluded.updated_at
                """,
                (category, float(amount)),
            )
            conn.commit()
            row = conn.execute(
                "SELECT id, category, amount, period FROM budgets WHERE category = ?",
                (category,),
            ).fetchone()

        return self._row_to_budget(row)

    def get_limit(self, category: str) -> Optional[Decimal]:
        """Monthly limit of a category, or None if no budget is set."""
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                "SELECT amount FROM budgets WHERE category = ?", (category,)
            )
            row = cursor.fetchone()

        if row is None:
            return None
        return Decimal(str(row[0]))

    def find_all(self) -> List[Budget]:
        """All budgets ordered by category."""
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                "SELECT id, category, amount, period FROM budgets ORDER BY category"
            )
            return [self._row_to_budget(row) for row in cursor.fetchall()]

    def delete(self, category: str) -> bool:
        """Remove the budget of a category.

        Returns:
            True if a budget was deleted, False if none existed.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute("DELETE FROM budgets WHERE category = ?", (category,))
            conn.commit()
            return cursor.rowcount > 0

    def status(
        self, category: str, as_of: Optional[datetime] = None
    ) -> Optional[BudgetStatus]:
        """Limit, month-to-date spend and remaining amount of a category.

        Args:
            category: Category name.
            as_of: Moment whose calendar month is used, defaults to now.

        Returns:
            BudgetStatus, or None when the category has no budget.
        """
        limit = self.get_limit(category)
        if limit is None:
            return None

        spend = self.expense_service.month_to_date_spend(category, as_of)
        return BudgetStatus.from_limit_and_spend(limit, spend)

    def _row_to_budget(self, row: tuple) -> Budget:
        return Budget(
            id=row[0], category=row[1], amount=Decimal(str(row[2])), period=row[3]
        )
