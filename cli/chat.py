#!/usr/bin/env python3

import sys
from assistant.chat import ChatSession, recategorize_transaction, undo_transaction
from assistant.state_machine import ExpenseAssistant
from llm import get_llm_provider
from llm.embeddings import get_embedder
from llm.runner import ModelRunner
from logger import get_logger

logger = get_logger()


def _open_session(services):
    provider = get_llm_provider(services.config)
    if provider is None:
        logger.error("The assistant model is disabled. Set [llm] enabled = true in ~/.config/ledger.toml")
        sys.exit(1)

    runner = ModelRunner(provider)
    assistant = ExpenseAssistant(
        services,
        runner,
        get_embedder(services.config),
        top_k=services.config.rag_top_k,
    )
    return ChatSession(services, assistant), runner


def cmd_send(args, services):
    """Send one message to the assistant and print its reply."""
    session, runner = _open_session(services)
    try:
        session.start()
        if session.send(args.text) is None:
            logger.error("Nothing to send.")
            sys.exit(1)

        if not session.assistant.wait_until_idle(args.timeout):
            logger.error(f"No reply within {args.timeout} seconds.")
            sys.exit(1)

        reply = session.last_reply
        if reply is None:
            logger.error("The assistant produced no reply.")
            sys.exit(1)

        print(reply.text)
        if reply.type == "transaction":
            budget = reply.data.get("budget")
            if budget:
                print(f"Budget: ${budget['remaining']:.2f} left of ${budget['limit']:.2f}")
            print(f"(message {reply.id}; undo with 'python -m cli chat undo {reply.id}')")
    finally:
        runner.shutdown(wait=False)


def cmd_history(args, services):
    """Print the stored conversation."""
    messages = services.messages.find_all()
    if not messages:
        logger.info("No messages yet.")
        return

    for message in messages:
        who = "You" if message.sender == "user" else "AI "
        marker = f" [{message.type} {message.id}]" if message.type == "transaction" else ""
        print(f"{who}: {message.text}{marker}")


def cmd_clear(args, services):
    """Delete the stored conversation."""
    count = services.messages.clear()
    logger.info(f"✓ Deleted {count} message(s).")


def cmd_undo(args, services):
    """Delete the expense logged by an assistant reply."""
    try:
        deleted = undo_transaction(services, args.message_id)
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)

    if deleted:
        logger.info("✓ Expense removed.")
    else:
        logger.info("That expense was already removed.")


def cmd_recategorize(args, services):
    """Move the expense logged by an assistant reply to another category."""
    category = services.categories.find_by_name(args.category)
    if not category:
        logger.error(f"Category '{args.category}' not found.")
        sys.exit(1)

    try:
        updated = recategorize_transaction(services, args.message_id, category.name)
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)

    if updated:
        logger.info(f"✓ Expense moved to {category.name}.")
    else:
        logger.error("That expense no longer exists.")
        sys.exit(1)


def setup_parser(subparsers):
    """Setup chat subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "chat",
        help="Talk to the expense assistant",
        description="Log expenses in plain language or ask about your spending",
    )

    chat_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available chat commands",
        dest="subcommand",
        required=True,
    )

    send_parser = chat_subparsers.add_parser(
        "send",
        help="Send a message",
        epilog="""
Examples:
  python -m cli chat send "Spent $15 on lunch"
  python -m cli chat send "How much did I spend on food this month?"
        """,
    )
    send_parser.add_argument("text", help="Message text")
    send_parser.add_argument(
        "--timeout", type=float, default=120.0, help="Seconds to wait for a reply"
    )
    send_parser.set_defaults(func=cmd_send)

    history_parser = chat_subparsers.add_parser("history", help="Show the conversation")
    history_parser.set_defaults(func=cmd_history)

    clear_parser = chat_subparsers.add_parser("clear", help="Delete the conversation")
    clear_parser.set_defaults(func=cmd_clear)

    undo_parser = chat_subparsers.add_parser(
        "undo", help="Remove the expense logged by a reply"
    )
    undo_parser.add_argument("message_id", help="ID of the assistant reply")
    undo_parser.set_defaults(func=cmd_undo)

    recategorize_parser = chat_subparsers.add_parser(
        "recategorize", help="Change the category of the expense logged by a reply"
    )
    recategorize_parser.add_argument("message_id", help="ID of the assistant reply")
    recategorize_parser.add_argument("category", help="New category name")
    recategorize_parser.set_defaults(func=cmd_recategorize)
