#!/usr/bin/env python3

import sys
from datetime import date
from decimal import Decimal, InvalidOperation
from models.budget import GLOBAL_BUDGET_CATEGORY
from tools.budget import get_month_overview
from logger import get_logger

logger = get_logger()


def cmd_list(args, services):
    """List all budgets."""
    budgets = services.budgets.find_all()

    if not budgets:
        logger.info("No budgets set.")
        return

    for budget in budgets:
        name = "(overall)" if budget.category == GLOBAL_BUDGET_CATEGORY else budget.category
        logger.info(f"{name:<20} ${budget.amount:>10.2f} {budget.period}")


def cmd_set(args, services):
    """Set the monthly limit of a category, or the overall limit with --global."""
    try:
        amount = Decimal(args.amount)
    except InvalidOperation:
        logger.error(f"Invalid amount: {args.amount}")
        sys.exit(1)

    if args.overall:
        category = GLOBAL_BUDGET_CATEGORY
    elif args.category:
        category = services.categories.resolve(args.category)
    else:
        logger.error("Give a category or --global.")
        sys.exit(1)

    try:
        budget = services.budgets.set_limit(category, amount)
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)

    logger.info(f"✓ Budget for {budget.category} set to ${budget.amount:.2f}")


def cmd_delete(args, services):
    """Remove a category budget."""
    category = GLOBAL_BUDGET_CATEGORY if args.overall else args.category
    if services.budgets.delete(category):
        logger.info(f"✓ Budget for {category} removed.")
    else:
        logger.error(f"No budget set for {category}.")
        sys.exit(1)


def cmd_overview(args, services):
    """Show spending against budgets for a month."""
    today = date.today()
    year = args.year or today.year
    month = args.month or today.month

    overview = get_month_overview(services, year, month)

    logger.info(f"\nBudget overview {year:04d}/{month:02d}")
    logger.info("=" * 60)
    for name, row in overview["categories"].items():
        limit = f"${row['limit']:.2f}" if row["limit"] is not None else "-"
        remaining = f"${row['remaining']:.2f}" if row["remaining"] is not None else "-"
        logger.info(f"{name:<20} spent ${row['spend']:>9.2f}  limit {limit:>10}  left {remaining:>10}")
    logger.info("=" * 60)
    logger.info(f"Total budget: ${overview['total_budget']:.2f}")
    logger.info(f"Total spent:  ${overview['total_spent']:.2f}")
    logger.info(f"Remaining:    ${overview['remaining']:.2f}")
    logger.info(f"Used:         {overview['percentage']:.0f}% ({overview['color']})")


def setup_parser(subparsers):
    """Setup budgets subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "budgets",
        help="Manage monthly budgets",
        description="Set monthly limits per category and review spending",
    )

    budgets_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available budget commands",
        dest="subcommand",
        required=True,
    )

    list_parser = budgets_subparsers.add_parser("list", help="List budgets")
    list_parser.set_defaults(func=cmd_list)

    set_parser = budgets_subparsers.add_parser(
        "set",
        help="Set a monthly budget",
        epilog="""
Examples:
  python -m cli budgets set 500 Food
  python -m cli budgets set 2000 --global
        """,
    )
    set_parser.add_argument("amount", help="Monthly limit")
    set_parser.add_argument("category", nargs="?", help="Category name")
    set_parser.add_argument(
        "--global", dest="overall", action="store_true", help="Set the overall monthly budget"
    )
    set_parser.set_defaults(func=cmd_set)

    delete_parser = budgets_subparsers.add_parser("delete", help="Remove a budget")
    delete_parser.add_argument("category", nargs="?", help="Category name")
    delete_parser.add_argument(
        "--global", dest="overall", action="store_true", help="Remove the overall budget"
    )
    delete_parser.set_defaults(func=cmd_delete)

    overview_parser = budgets_subparsers.add_parser(
        "overview", help="Spending against budgets for a month"
    )
    overview_parser.add_argument("--year", type=int, help="Year (default: this year)")
    overview_parser.add_argument("--month", type=int, help="Month 1-12 (default: this month)")
    overview_parser.set_defaults(func=cmd_overview)
