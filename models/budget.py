"""Budget models."""

from dataclasses import dataclass
from decimal import Decimal

# Budget row holding the overall monthly limit rather than a category limit
GLOBAL_BUDGET_CATEGORY = "GLOBAL_MONTHLY_BUDGET"


@dataclass
class Budget:
    id: int
    category: str
    amount: Decimal
    period: str = "monthly"


@dataclass
class BudgetStatus:
    """Snapshot of a category budget for the current month.

    Derived on demand, never stored. ``spend`` already includes any expense
    logged just before the snapshot was taken.
    """

    limit: Decimal
    spend: Decimal
    remaining: Decimal

    @classmethod
    def from_limit_and_spend(cls, limit: Decimal, spend: Decimal) -> "BudgetStatus":
        return cls(limit=limit, spend=spend, remaining=limit - spend)

    def to_dict(self) -> dict:
        return {
            "limit": float(self.limit),
            "spend": float(self.spend),
            "remaining": float(self.remaining),
        }
