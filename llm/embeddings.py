"""Text embedders used to index expenses for similarity search.

``RandomEmbedder`` fills vectors with uniform noise in [0, 1). It stands in
for a real embedding model and is what the assistant uses unless configured
otherwise: search results under it carry no semantic meaning. The opt-in
``HashingEmbedder`` is deterministic, so the same words always land on the
same dimensions and similar descriptions actually score higher.
"""

import hashlib
import math
import random
import re
from abc import ABC, abstractmethod
from typing import List, Optional

from config import Config

DEFAULT_DIMENSIONS = 128

_TOKEN_RE = re.compile(r"[a-z0-9]+")


class Embedder(ABC):
    """Turns text into a fixed-length vector."""

    def __init__(self, dimensions: int = DEFAULT_DIMENSIONS):
        if dimensions <= 0:
            raise ValueError(f"Embedding dimensions must be positive, got {dimensions}")
        self.dimensions = dimensions

    @abstractmethod
    def embed(self, text: str) -> List[float]:
        pass


class RandomEmbedder(Embedder):
    """Placeholder embedder returning a fresh random vector on every call.

    Args:
        dimensions: Vector length.
        rng: Optional random generator, for reproducible tests.
    """

    def __init__(
        self, dimensions: int = DEFAULT_DIMENSIONS, rng: Optional[random.Random] = None
    ):
        super().__init__(dimensions)
        self.rng = rng or random.Random()

    def embed(self, text: str) -> List[float]:
        return [self.rng.random() for _ in range(self.dimensions)]


class HashingEmbedder(Embedder):
    """Bag-of-words feature hashing, L2-normalized.

    Each lower-cased token is hashed with blake2b to a dimension; counts are
    accumulated and the vector is scaled to unit length. Text with no tokens
    embeds to the zero vector.
    """

    def embed(self, text: str) -> List[float]:
        vector = [0.0] * self.dimensions
        for token in _TOKEN_RE.findall(text.lower()):
            digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
            vector[int.from_bytes(digest, "big") % self.dimensions] += 1.0

        norm = math.sqrt(sum(v * v for v in vector))
        if norm == 0:
            return vector
        return [v / norm for v in vector]


def get_embedder(config: Config) -> Embedder:
    """Create the embedder selected by ``embedding_mode``.

    Raises:
        ValueError: If the mode is unknown.
    """
    mode = config.embedding_mode
    if mode == "random":
        return RandomEmbedder(config.embedding_dimensions)
    if mode == "hashing":
        return HashingEmbedder(config.embedding_dimensions)
    raise ValueError(f"Unknown embedding mode: {mode}")
