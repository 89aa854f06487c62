"""Similarity search over expense embeddings.

Embeddings live in the ``embedding`` column of the expense row. Retrieval is a
brute-force cosine scan of every embedded expense, which is fine for a
personal ledger of a few thousand rows. Anything larger should provide
another ``VectorStore`` implementation backed by an index.
"""

import json
import math
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from models.expense import Expense
from logger import get_logger

logger = get_logger()

# Score given to rows whose stored embedding cannot be decoded
INVALID_EMBEDDING_SCORE = -1.0


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors.

    A zero norm is replaced by 1 in the denominator, so comparing against a
    zero vector gives 0.0 instead of dividing by zero. Vectors of different
    length are compared over their common prefix.
    """
    dot_product = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b):
        dot_product += x * y
        norm_a += x * x
        norm_b += y * y

    denominator = math.sqrt(norm_a) * math.sqrt(norm_b)
    return dot_product / (denominator or 1)


def _decode_vector(text: str) -> Optional[List[float]]:
    try:
        value = json.loads(text)
    except ValueError:
        return None
    if not isinstance(value, list):
        return None
    if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in value):
        return None
    # json.loads accepts NaN and Infinity, which would poison the ranking
    if not all(math.isfinite(v) for v in value):
        return None
    return value


class VectorStore(ABC):
    """Retrieval interface used by the assistant."""

    @abstractmethod
    def add_embedding(self, expense_id: int, vector: Sequence[float]) -> None:
        """Attach (or overwrite) the embedding of an expense."""
        pass

    @abstractmethod
    def search(self, query_vector: Sequence[float], k: int = 5) -> List[Expense]:
        """Return the k expenses most similar to query_vector, best first."""
        pass


class LinearScanVectorStore(VectorStore):
    """Vector store that scans every embedded expense on each query.

    Args:
        expense_service: ExpenseService that owns the expense rows.
    """

    def __init__(self, expense_service):
        self.expense_service = expense_service

    def add_embedding(self, expense_id: int, vector: Sequence[float]) -> None:
        """Overwrite the embedding of an expense.

        Raises:
            LookupError: If the expense does not exist.
        """
        if not self.expense_service.update_embedding(expense_id, vector):
            raise LookupError(f"Expense with ID {expense_id} not found")

    def search(self, query_vector: Sequence[float], k: int = 5) -> List[Expense]:
        """Rank embedded expenses by cosine similarity to query_vector.

        Rows with an undecodable embedding score -1 and so only show up when
        fewer than k valid rows exist.

        Args:
            query_vector: Query embedding.
            k: Number of expenses to return.

        Returns:
            Up to k Expense objects, most similar first.
        """
        if k <= 0:
            return []

        rows = self.expense_service.find_all_with_embedding()

        scored = []
        invalid = 0
        for expense, embedding_text in rows:
            vector = _decode_vector(embedding_text)
            if vector is None:
                invalid += 1
                scored.append((INVALID_EMBEDDING_SCORE, expense))
                continue
            scored.append((cosine_similarity(query_vector, vector), expense))

        if invalid:
            logger.warning(f"{invalid} expense(s) have an undecodable embedding")

        # sorted() is stable, so ties keep insertion order
        scored = sorted(scored, key=lambda pair: pair[0], reverse=True)

        logger.debug(f"Vector search scanned {len(rows)} expense(s), k={k}")

        return [expense for _, expense in scored[:k]]
