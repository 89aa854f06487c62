"""Budget overview calculations."""

from decimal import Decimal
from typing import Dict, List

from models.budget import Budget, GLOBAL_BUDGET_CATEGORY

STATUS_RED = "#F44336"
STATUS_YELLOW = "#FFC107"
STATUS_GREEN = "#4CAF50"


def calculate_budget_overview(
    budgets: List[Budget], category_spends: Dict[str, Decimal]
) -> Dict[str, Decimal]:
    """Summarize spending against the monthly budget.

    The global monthly budget, when set, is the total budget. Otherwise the
    category budgets are summed. Spending in categories without a budget
    still counts toward the total spent.

    Args:
        budgets: All budgets, possibly including the global one.
        category_spends: Amount spent per category.

    Returns:
        Dictionary with:
        - "total_budget": Budget for the month
        - "total_spent": Spend across all categories
        - "remaining": total_budget - total_spent (negative when over budget)
        - "percentage": Share of the budget used, capped at 100, 0 without a budget

    Example:
        {
            "total_budget": Decimal("800"),
            "total_spent": Decimal("400"),
            "remaining": Decimal("400"),
            "percentage": Decimal("50"),
        }
    """
    global_budget = next(
        (b for b in budgets if b.category == GLOBAL_BUDGET_CATEGORY), None
    )
    category_budgets_sum = sum(
        (Decimal(b.amount) for b in budgets if b.category != GLOBAL_BUDGET_CATEGORY),
        Decimal("0"),
    )

    total_budget = (
        Decimal(global_budget.amount) if global_budget else category_budgets_sum
    )
    total_spent = sum((Decimal(v) for v in category_spends.values()), Decimal("0"))
    remaining = total_budget - total_spent

    if total_budget > 0:
        percentage = min(total_spent / total_budget * 100, Decimal("100"))
    else:
        percentage = Decimal("0")

    return {
        "total_budget": total_budget,
        "total_spent": total_spent,
        "remaining": remaining,
        "percentage": percentage,
    }


def get_budget_status_color(percentage) -> str:
    """Traffic-light color for a budget usage percentage."""
    if percentage > 85:
        return STATUS_RED
    if percentage > 60:
        return STATUS_YELLOW
    return STATUS_GREEN


def get_month_overview(services, year: int, month: int) -> Dict:
    """Budget overview plus per-category detail for one calendar month.

    Args:
        services: Services container with expense and budget services.
        year: Year (e.g., 2025).
        month: Month (1-12).

    Returns:
        The calculate_budget_overview() dictionary extended with:
        - "color": Status color for the overall percentage
        - "categories": Dict mapping category name to a dict of
          "limit" (Decimal or None), "spend" and "remaining" (None without a limit)
    """
    budgets = services.budgets.find_all()
    spends = services.expenses.spend_by_category(year, month)

    overview = calculate_budget_overview(budgets, spends)
    overview["color"] = get_budget_status_color(overview["percentage"])

    limits = {
        b.category: b.amount for b in budgets if b.category != GLOBAL_BUDGET_CATEGORY
    }
    categories = {}
    for name in sorted(set(limits) | set(spends)):
        limit = limits.get(name)
        spend = spends.get(name, Decimal("0"))
        categories[name] = {
            "limit": limit,
            "spend": spend,
            "remaining": limit - spend if limit is not None else None,
        }
    overview["categories"] = categories

    return overview
