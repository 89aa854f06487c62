"""Persistent conversation on top of the expense assistant."""

from typing import Optional

from assistant.extraction import format_amount
from assistant.state_machine import ExpenseAssistant
from models.ai_response import AIResponse
from models.message import Message
from logger import get_logger

logger = get_logger()

GREETING = (
    "Hi! I'm your financial assistant. Tell me what you spent "
    "(e.g., 'Spent $15 on lunch') or ask about your expenses."
)
EMPTY_ANSWER = "I processed that but have nothing to say."
UNKNOWN_ERROR = "Error processing request"


def response_to_message(response: AIResponse) -> Message:
    """Build the assistant's chat message for a result."""
    if response.type == "transaction":
        data = response.data
        text = (
            f"Saved: {data.merchant or 'Expense'} - "
            f"${format_amount(data.amount)} ({data.category})"
        )
        return Message(text=text, sender="ai", type="transaction", data=data.to_dict())

    if response.type == "message":
        return Message(text=response.content or EMPTY_ANSWER, sender="ai", type="message")

    return Message(text=response.content or UNKNOWN_ERROR, sender="ai", type="error")


class ChatSession:
    """Stores every user message and assistant reply.

    Transaction replies keep the id of the saved expense, which is what
    ``undo`` and ``recategorize`` act on.

    Args:
        services: Services container.
        assistant: The assistant whose results are recorded.
    """

    def __init__(self, services, assistant: ExpenseAssistant):
        self.services = services
        self.assistant = assistant
        self.last_reply: Optional[Message] = None
        assistant.subscribe(self._record_result)

    def start(self) -> Message:
        """Greet the user when the conversation is empty.

        Returns:
            The greeting, or the latest stored message.
        """
        history = self.services.messages.find_all()
        if history:
            return history[-1]
        return self.services.messages.create(
            Message(text=GREETING, sender="ai", type="text")
        )

    def send(self, text: str) -> Optional[Message]:
        """Record a user message and hand it to the assistant.

        Returns:
            The stored user message, or None when the text is blank or the
            assistant is still busy with the previous message. While the model
            is loading the message is kept and answered with an error.
        """
        text = text.strip()
        if not text or self.assistant.is_processing:
            return None

        message = self.services.messages.create(Message(text=text, sender="user"))
        if not self.assistant.send_message(text) and self.assistant.model_ready:
            # Another turn started first; nothing will answer this message
            self.services.messages.delete(message.id)
            return None
        return message

    def undo(self, message_id: str) -> bool:
        return undo_transaction(self.services, message_id)

    def recategorize(self, message_id: str, category: str) -> bool:
        return recategorize_transaction(self.services, message_id, category)

    def _record_result(self, response: AIResponse) -> None:
        self.last_reply = self.services.messages.create(response_to_message(response))


def _expense_id(services, message_id: str) -> int:
    message = services.messages.find(message_id)
    if message is None:
        raise ValueError(f"Message {message_id} not found")
    if message.type != "transaction":
        raise ValueError(f"Message {message_id} did not log an expense")
    return message.data["id"]


def undo_transaction(services, message_id: str) -> bool:
    """Delete the expense logged by a transaction reply.

    Returns:
        True if the expense was deleted, False if it was already gone.

    Raises:
        ValueError: If the message does not exist or is not a transaction.
    """
    expense_id = _expense_id(services, message_id)
    deleted = services.expenses.delete(expense_id)
    logger.info(f"Undo of message {message_id}: expense {expense_id} deleted={deleted}")
    return deleted


def recategorize_transaction(services, message_id: str, category: str) -> bool:
    """Move the expense logged by a transaction reply to another category.

    Raises:
        ValueError: If the message does not exist or is not a transaction.
    """
    return services.expenses.update_category(_expense_id(services, message_id), category)
