"""Expense model."""

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional
import json

UNCATEGORIZED = "Uncategorized"


@dataclass
class Expense:
    """A single logged expense.

    Attributes:
        id: Identifier assigned by the database on insert.
        amount: Amount spent, always positive.
        category: Category name, "Uncategorized" when nothing matched.
        merchant: Merchant name, None when not extracted.
        description: Free text, the user's original words for AI-logged expenses.
        date: ISO-8601 timestamp of the expense.
        embedding: Vector used for similarity search, None until attached.
        receipt_image_uri: Optional path of a receipt photo.
    """

    id: int
    amount: Decimal
    category: str
    merchant: Optional[str]
    description: str
    date: str
    embedding: Optional[List[float]] = None
    receipt_image_uri: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert expense to dictionary for database storage."""
        return {
            "id": self.id,
            "amount": float(self.amount),
            "category": self.category,
            "merchant": self.merchant,
            "description": self.description,
            "date": self.date,
            "embedding": (
                json.dumps(self.embedding) if self.embedding is not None else None
            ),
            "receipt_image_uri": self.receipt_image_uri,
        }
