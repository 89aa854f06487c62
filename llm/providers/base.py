"""Base provider interface for LLM implementations."""

from abc import ABC, abstractmethod
from typing import Dict, List

# A chat message: {"role": "system" | "user" | "assistant", "content": str}
ChatMessage = Dict[str, str]


class LLMProvider(ABC):
    """Abstract base class for text-generation providers.

    The assistant only needs plain text back from a list of role-tagged
    messages. Providers that fetch model weights before they can answer
    report that through ``is_ready`` and ``download_progress``.
    """

    @property
    def is_ready(self) -> bool:
        """Whether the provider can accept generation requests."""
        return True

    @property
    def download_progress(self) -> float:
        """Fraction (0-1) of the model asset fetched so far."""
        return 1.0

    @abstractmethod
    def generate(self, messages: List[ChatMessage]) -> str:
        """Generate a completion for the conversation.

        Args:
            messages: Role-tagged messages, oldest first.

        Returns:
            The full generated text.

        Raises:
            Exception: If the underlying model call fails.
        """
        pass
