"""Spending reports: summary, category breakdown, daily and monthly trends,
top merchants."""

from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List

from dateutil.relativedelta import relativedelta

from models.category import Category
from models.expense import Expense

CENTS = Decimal("0.01")
TENTHS = Decimal("0.1")

UNKNOWN_MERCHANT = "Unknown"
TOP_MERCHANTS = 5

# Colors for categories that are not in the category list
DEFAULT_PALETTE = [
    "#FF6B6B", "#4ECDC4", "#45B7D1", "#FFA07A",
    "#98D8C8", "#F7DC6F", "#BB8FCE", "#95A5A6",
    "#A9DFBF", "#F5B7B1", "#D7BDE2", "#AED6F1",
]


def summarize(expenses: List[Expense]) -> Dict[str, Decimal]:
    """Total, count and average of a list of expenses.

    Returns:
        Dictionary with "total", "count" and "average" (0 without expenses).
    """
    total = sum((e.amount for e in expenses), Decimal("0")).quantize(CENTS)
    count = len(expenses)
    average = (total / count).quantize(CENTS) if count else Decimal("0.00")
    return {"total": total, "count": count, "average": average}


def category_breakdown(
    expenses: Iterable[Expense], categories: List[Category]
) -> List[Dict]:
    """Spend per category, largest first.

    Each category takes its own color; names missing from the category list
    get a palette color by order of first appearance.

    Returns:
        List of dicts with "category", "total", "percentage" (one decimal)
        and "color".
    """
    totals: Dict[str, Decimal] = {}
    for expense in expenses:
        totals[expense.category] = totals.get(expense.category, Decimal("0")) + expense.amount

    grand_total = sum(totals.values(), Decimal("0"))
    colors = {category.name: category.color for category in categories}

    rows = []
    for index, (name, total) in enumerate(totals.items()):
        percentage = total / grand_total * 100 if grand_total > 0 else Decimal("0")
        rows.append(
            {
                "category": name,
                "total": total.quantize(CENTS),
                "percentage": percentage.quantize(TENTHS),
                "color": colors.get(name, DEFAULT_PALETTE[index % len(DEFAULT_PALETTE)]),
            }
        )

    return sorted(rows, key=lambda row: row["total"], reverse=True)


def daily_totals(expenses: Iterable[Expense], year: int, month: int) -> List[Dict]:
    """Spend per day of a month, with every day present.

    Expenses dated outside the month are ignored.

    Returns:
        List of {"day": int, "total": Decimal} for day 1 to the last day.
    """
    first = date(year, month, 1)
    days_in_month = ((first + relativedelta(months=1)) - first).days
    totals = {day: Decimal("0") for day in range(1, days_in_month + 1)}

    for expense in expenses:
        day = date.fromisoformat(expense.date[:10])
        if (day.year, day.month) == (year, month):
            totals[day.day] += expense.amount

    return [{"day": day, "total": total.quantize(CENTS)} for day, total in totals.items()]


def top_merchants(expenses: Iterable[Expense], limit: int = TOP_MERCHANTS) -> List[Dict]:
    """Merchants ranked by amount spent.

    Expenses without a merchant are grouped under "Unknown".

    Returns:
        Up to ``limit`` dicts with "name", "amount" and "count".
    """
    merchants: Dict[str, Dict] = {}
    for expense in expenses:
        name = expense.merchant or UNKNOWN_MERCHANT
        entry = merchants.setdefault(name, {"name": name, "amount": Decimal("0"), "count": 0})
        entry["amount"] += expense.amount
        entry["count"] += 1

    ranked = sorted(merchants.values(), key=lambda entry: entry["amount"], reverse=True)
    for entry in ranked:
        entry["amount"] = entry["amount"].quantize(CENTS)
    return ranked[:limit]


def monthly_totals(services, year: int, month: int, months: int = 6) -> List[Dict]:
    """Total spend of the ``months`` calendar months ending with year/month.

    Returns:
        List of {"month": "YYYY/MM", "total": Decimal}, oldest first.
    """
    end = date(year, month, 1)
    trend = []
    for offset in range(months - 1, -1, -1):
        current = end - relativedelta(months=offset)
        spends = services.expenses.spend_by_category(current.year, current.month)
        trend.append(
            {
                "month": f"{current.year:04d}/{current.month:02d}",
                "total": sum(spends.values(), Decimal("0.00")),
            }
        )
    return trend


def get_month_report(services, year: int, month: int) -> Dict:
    """Everything the reports command shows for one month.

    Returns:
        Dictionary with "summary", "categories", "daily" and "merchants", as
        returned by the functions above for the month's expenses.
    """
    expenses = services.expenses.find_in_month(year, month)
    return {
        "summary": summarize(expenses),
        "categories": category_breakdown(expenses, services.categories.find_all()),
        "daily": daily_totals(expenses, year, month),
        "merchants": top_merchants(expenses),
    }
