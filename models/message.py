"""Conversation message model."""

from dataclasses import dataclass, field
from typing import Optional
import uuid

SENDERS = ("user", "ai")
MESSAGE_TYPES = ("text", "transaction", "error", "message")


@dataclass
class Message:
    """One line of the assistant conversation.

    Attributes:
        text: Text shown to the user.
        sender: "user" or "ai".
        type: "text", "transaction", "error" or "message".
        data: Optional payload. Transaction messages always carry data["id"],
            the id of the persisted expense, so they can be undone later.
        id: Unique identifier, generated when not given.
        created_at: Set by the database.
    """

    text: str
    sender: str
    type: str = "text"
    data: Optional[dict] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: Optional[str] = None

    def __post_init__(self):
        if self.sender not in SENDERS:
            raise ValueError(f"Unknown message sender: {self.sender}")
        if self.type not in MESSAGE_TYPES:
            raise ValueError(f"Unknown message type: {self.type}")
        if self.type == "transaction" and (not self.data or "id" not in self.data):
            raise ValueError("Transaction messages must reference an expense id")
