#!/usr/bin/env python3

from datetime import date
from tools.reports import get_month_report, monthly_totals
from logger import get_logger

logger = get_logger()


def cmd_summary(args, services):
    """Show the spending report for a month."""
    today = date.today()
    year = args.year or today.year
    month = args.month or today.month

    report = get_month_report(services, year, month)
    summary = report["summary"]

    logger.info(f"\nSpending report {year:04d}/{month:02d}")
    logger.info("=" * 60)
    logger.info(f"Total:    ${summary['total']:.2f}")
    logger.info(f"Expenses: {summary['count']}")
    logger.info(f"Average:  ${summary['average']:.2f}")

    if not report["categories"]:
        logger.info("No expenses this month.")
        return

    logger.info("\nBy category")
    for row in report["categories"]:
        logger.info(f"{row['category']:<20} ${row['total']:>10.2f} {row['percentage']:>6}%")

    logger.info("\nTop merchants")
    for merchant in report["merchants"]:
        logger.info(f"{merchant['name']:<20} ${merchant['amount']:>10.2f} ({merchant['count']}x)")

    if args.daily:
        logger.info("\nDaily")
        for day in report["daily"]:
            logger.info(f"{day['day']:>2} ${day['total']:>10.2f}")


def cmd_trend(args, services):
    """Show total spend for the last few months."""
    today = date.today()
    for row in monthly_totals(services, today.year, today.month, months=args.months):
        logger.info(f"{row['month']}  ${row['total']:>10.2f}")


def setup_parser(subparsers):
    """Setup reports subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "reports",
        help="Spending reports",
        description="Monthly summary, category breakdown and trends",
    )

    reports_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available report commands",
        dest="subcommand",
        required=True,
    )

    summary_parser = reports_subparsers.add_parser(
        "summary",
        help="Report for one month",
        epilog="""
Examples:
  python -m cli reports summary
  python -m cli reports summary --year 2025 --month 3 --daily
        """,
    )
    summary_parser.add_argument("--year", type=int, help="Year (default: this year)")
    summary_parser.add_argument("--month", type=int, help="Month 1-12 (default: this month)")
    summary_parser.add_argument("--daily", action="store_true", help="Include daily totals")
    summary_parser.set_defaults(func=cmd_summary)

    trend_parser = reports_subparsers.add_parser("trend", help="Monthly totals")
    trend_parser.add_argument(
        "--months", type=int, default=6, help="Number of months (default: 6)"
    )
    trend_parser.set_defaults(func=cmd_trend)
