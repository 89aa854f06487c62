#!/usr/bin/env python3

import sys
from services.categories import DEFAULT_COLOR, DEFAULT_EMOJI
from logger import get_logger

logger = get_logger()


def cmd_list(args, services):
    """List categories with the number of expenses logged under each."""
    categories = services.categories.find_all()
    counts = services.categories.expense_counts()

    if not categories:
        logger.info("No categories found.")
        return

    logger.info(f"\n{'Category':<24} {'Color':<9} {'Expenses':>8}")
    logger.info("=" * 44)
    for category in categories:
        logger.info(
            f"{category.label:<24} {category.color:<9} {counts.pop(category.name, 0):>8}"
        )

    # Names the assistant logged that are not in the list
    for name, count in sorted(counts.items()):
        logger.info(f"{'  ' + name:<24} {'-':<9} {count:>8}")


def cmd_create(args, services):
    """Add a category."""
    try:
        category = services.categories.create(args.name, args.emoji, args.color)
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)

    logger.info(f"✓ Added {category.label}")


def cmd_delete(args, services):
    """Delete a category by name. Its expenses are left as they are."""
    category = services.categories.find_by_name(args.name)
    if not category:
        logger.error(f"Category '{args.name}' not found.")
        sys.exit(1)

    if not args.yes:
        answer = input(f"Delete {category.label}? Expenses keep their category name. (yes/no): ")
        if answer.strip().lower() != "yes":
            logger.info("Deletion cancelled.")
            return

    services.categories.delete(category.name)
    logger.info(f"✓ Deleted {category.name}")


def setup_parser(subparsers):
    """Setup categories subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "categories",
        help="Manage spending categories",
        description="List, add and remove the categories expenses are filed under",
    )

    categories_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available category commands",
        dest="subcommand",
        required=True,
    )

    list_parser = categories_subparsers.add_parser("list", help="List categories")
    list_parser.set_defaults(func=cmd_list)

    create_parser = categories_subparsers.add_parser(
        "create",
        help="Add a category",
        epilog="""
Examples:
  python -m cli categories create Travel --emoji ✈️ --color "#3498DB"
        """,
    )
    create_parser.add_argument("name", help="Category name")
    create_parser.add_argument("--emoji", default=DEFAULT_EMOJI, help="Icon")
    create_parser.add_argument("--color", default=DEFAULT_COLOR, help="Hex color")
    create_parser.set_defaults(func=cmd_create)

    delete_parser = categories_subparsers.add_parser("delete", help="Remove a category")
    delete_parser.add_argument("name", help="Category name")
    delete_parser.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")
    delete_parser.set_defaults(func=cmd_delete)
