"""Parsing of the model's extraction output and RAG context rendering."""

import json
import math
from decimal import Decimal
from typing import Iterable, Optional

from pydantic import BaseModel, ValidationError, field_validator

from models.expense import Expense
from logger import get_logger

logger = get_logger()

EMPTY_CONTEXT = "No expenses recorded yet."


class ExtractedTransaction(BaseModel):
    """Spending record extracted from a user message."""

    amount: float
    category: Optional[str] = None
    merchant: Optional[str] = None

    @field_validator("amount", mode="before")
    @classmethod
    def _numeric_amount(cls, value):
        # bool is an int subclass; "15" is text, not a number
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("amount must be a number")
        if not math.isfinite(value) or value <= 0:
            raise ValueError("amount must be positive")
        return value

    @field_validator("category", "merchant", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if not isinstance(value, str) or not value.strip():
            return None
        return value.strip()


def find_json_object(text: str) -> Optional[dict]:
    """Return the first JSON object embedded in text.

    Scans from each ``{`` to its matching ``}`` (quotes and escapes aware) and
    returns the first candidate that decodes to a dict, so prose or code
    fences around the object are ignored.
    """
    if not text:
        return None

    start = text.find("{")
    while start != -1:
        end = _matching_brace(text, start)
        value = None
        if end is not None:
            try:
                value = json.loads(text[start : end + 1])
            except ValueError:
                pass
        if isinstance(value, dict):
            return value
        start = text.find("{", start + 1)

    return None


def _matching_brace(text: str, start: int) -> Optional[int]:
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return None


def parse_transaction(text: str) -> Optional[ExtractedTransaction]:
    """Interpret raw model output as a spending record.

    Returns:
        The extracted transaction, or None when the output has no JSON object,
        or the object lacks a positive numeric ``amount`` (questions come back
        as ``{"intent": "query"}``).
    """
    payload = find_json_object(text)
    if payload is None:
        logger.warning("No JSON object in extraction output")
        return None

    if "amount" not in payload:
        return None

    try:
        return ExtractedTransaction.model_validate(payload)
    except ValidationError as e:
        logger.warning(f"Extraction output is not a transaction: {e.error_count()} error(s)")
        return None


def format_amount(amount) -> str:
    """Render an amount without trailing zeros (15, 12.5)."""
    amount = Decimal(str(amount))
    if amount == amount.to_integral_value():
        return str(amount.quantize(Decimal(1)))
    return str(amount.normalize())


def format_context(expenses: Iterable[Expense]) -> str:
    """Render retrieved expenses as the bulleted context block of the RAG prompt."""
    lines = [
        f"- {e.date}: {e.merchant or 'Expense'} (${format_amount(e.amount)}) - {e.category}"
        for e in expenses
    ]
    return "\n".join(lines) if lines else EMPTY_CONTEXT
