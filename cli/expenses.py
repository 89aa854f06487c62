#!/usr/bin/env python3

import sys
from datetime import datetime
from decimal import Decimal, InvalidOperation
from logger import get_logger

logger = get_logger()


def _format_expense(expense) -> str:
    merchant = f" @ {expense.merchant}" if expense.merchant else ""
    return (
        f"{expense.id:>5}  {expense.date[:10]}  ${expense.amount:>10.2f}  "
        f"{expense.category:<15} {expense.description}{merchant}"
    )


def cmd_list(args, services):
    """List expenses, optionally filtered by category and date range."""
    expenses = services.expenses.find_filtered(
        category=args.category, start_date=args.start, end_date=args.end
    )

    if not expenses:
        logger.info("No expenses found.")
        return

    logger.info(f"\n{'ID':>5}  {'Date':<10}  {'Amount':>11}  {'Category':<15} Description")
    logger.info("=" * 80)
    for expense in expenses:
        logger.info(_format_expense(expense))

    total = sum((e.amount for e in expenses), Decimal("0"))
    logger.info("=" * 80)
    logger.info(f"{len(expenses)} expense(s), total ${total:.2f}")


def cmd_add(args, services):
    """Add an expense by hand."""
    try:
        amount = Decimal(args.amount)
    except InvalidOperation:
        logger.error(f"Invalid amount: {args.amount}")
        sys.exit(1)

    category = services.categories.find_by_name(args.category)
    category_name = category.name if category else args.category
    if not category:
        logger.warning(f"'{args.category}' is not a known category; saving anyway.")

    try:
        expense = services.expenses.create(
            amount=amount,
            category=category_name,
            merchant=args.merchant,
            description=args.description,
            date=args.date or datetime.now().isoformat(timespec="seconds"),
        )
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)

    logger.info(f"✓ Expense saved with ID: {expense.id}")


def cmd_delete(args, services):
    """Delete an expense by ID."""
    if services.expenses.delete(args.expense_id):
        logger.info(f"✓ Expense {args.expense_id} deleted.")
    else:
        logger.error(f"Expense with ID {args.expense_id} not found.")
        sys.exit(1)


def cmd_recategorize(args, services):
    """Move an expense to another category."""
    category = services.categories.find_by_name(args.category)
    if not category:
        logger.error(f"Category '{args.category}' not found.")
        logger.info("Use 'python -m cli categories list' to see available categories.")
        sys.exit(1)

    if services.expenses.update_category(args.expense_id, category.name):
        logger.info(f"✓ Expense {args.expense_id} moved to {category.name}.")
    else:
        logger.error(f"Expense with ID {args.expense_id} not found.")
        sys.exit(1)


def setup_parser(subparsers):
    """Setup expenses subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "expenses",
        help="List and manage expenses",
        description="List, add, delete and recategorize expenses",
    )

    expenses_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available expense commands",
        dest="subcommand",
        required=True,
    )

    list_parser = expenses_subparsers.add_parser(
        "list",
        help="List expenses",
        epilog="""
Examples:
  python -m cli expenses list
  python -m cli expenses list --category Food --start 2025-01-01 --end 2025-01-31
        """,
    )
    list_parser.add_argument("--category", help="Only this category")
    list_parser.add_argument("--start", help="Start date (YYYY-MM-DD)")
    list_parser.add_argument("--end", help="End date (YYYY-MM-DD)")
    list_parser.set_defaults(func=cmd_list)

    add_parser = expenses_subparsers.add_parser("add", help="Add an expense")
    add_parser.add_argument("amount", help="Amount spent")
    add_parser.add_argument("category", help="Category name")
    add_parser.add_argument("description", help="What the money was spent on")
    add_parser.add_argument("--merchant", help="Merchant name")
    add_parser.add_argument("--date", help="ISO date or timestamp (default: now)")
    add_parser.set_defaults(func=cmd_add)

    delete_parser = expenses_subparsers.add_parser("delete", help="Delete an expense")
    delete_parser.add_argument("expense_id", type=int, help="Expense ID")
    delete_parser.set_defaults(func=cmd_delete)

    recategorize_parser = expenses_subparsers.add_parser(
        "recategorize", help="Change the category of an expense"
    )
    recategorize_parser.add_argument("expense_id", type=int, help="Expense ID")
    recategorize_parser.add_argument("category", help="New category name")
    recategorize_parser.set_defaults(func=cmd_recategorize)
