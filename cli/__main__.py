#!/usr/bin/env python3
"""
Ledger CLI - personal expense tracking with a natural-language assistant.

Usage:
    python -m cli <command> <subcommand> [options]

Commands:
    expenses     List, add and edit expenses
    categories   Manage spending categories
    budgets      Monthly budgets and overview
    reports      Spending reports and trends
    chat         Log expenses or ask questions in plain language
    migrate      Database migrations

Examples:
    python -m cli migrate apply
    python -m cli budgets set 500 Food
    python -m cli chat send "Spent $15 on lunch"
    python -m cli chat send "How much did I spend on food this month?"
    python -m cli expenses list --category Food
"""

import sys
import argparse
from cli import budgets, categories, chat, expenses, migrate, reports
from config import load_config
from services.base import Services
from db.manager import DatabaseManager
from logger import setup_logging

SERVICE_COMMANDS = ("expenses", "categories", "budgets", "reports", "chat")


def main():
    """Main CLI entry point with subcommands."""
    parser = argparse.ArgumentParser(
        prog="cli",
        description="Ledger - Personal expense tracker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(
        title="commands",
        description="Available commands",
        dest="command",
        required=True,
    )

    expenses.setup_parser(subparsers)
    categories.setup_parser(subparsers)
    budgets.setup_parser(subparsers)
    reports.setup_parser(subparsers)
    chat.setup_parser(subparsers)
    migrate.setup_parser(subparsers)

    args = parser.parse_args()

    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    try:
        config = load_config()
        setup_logging(config)

        db_manager = DatabaseManager(config)
        if args.command in SERVICE_COMMANDS:
            db_manager.ensure_schema()
            args.func(args, Services(config, db_manager=db_manager))
        else:
            # migrate works on the raw database
            args.func(args, db_manager)
    except Exception as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
