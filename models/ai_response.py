"""Results produced by the expense assistant for one user turn.

``AIResponse`` is a tagged union: every variant carries a fixed ``type`` tag
and only the fields that variant needs.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Literal, Optional, Union

from models.budget import BudgetStatus


@dataclass
class TransactionData:
    """Fields of an expense logged from a user message."""

    id: int
    amount: Decimal
    category: str
    merchant: Optional[str]
    budget: Optional[BudgetStatus] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "amount": float(self.amount),
            "category": self.category,
            "merchant": self.merchant,
            "budget": self.budget.to_dict() if self.budget else None,
        }


@dataclass
class TransactionResponse:
    data: TransactionData
    type: Literal["transaction"] = field(default="transaction", init=False)

    def to_dict(self) -> dict:
        return {"type": self.type, "data": self.data.to_dict()}


@dataclass
class MessageResponse:
    content: str
    type: Literal["message"] = field(default="message", init=False)

    def to_dict(self) -> dict:
        return {"type": self.type, "content": self.content}


@dataclass
class ErrorResponse:
    content: str
    type: Literal["error"] = field(default="error", init=False)

    def to_dict(self) -> dict:
        return {"type": self.type, "content": self.content}


AIResponse = Union[TransactionResponse, MessageResponse, ErrorResponse]
