"""OpenAI provider implementation using streamed chat completions.

Works against api.openai.com or any OpenAI-compatible server (llama.cpp,
Ollama, LM Studio) running on the device, selected through ``base_url``.
"""

from typing import List, Optional
from openai import OpenAI
from llm.providers.base import LLMProvider, ChatMessage
from logger import get_logger

logger = get_logger()

DEFAULT_MODEL = "gpt-4o-mini"


class OpenAIProvider(LLMProvider):
    """OpenAI chat-completions provider."""

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        temperature: float = 0.1,
        max_tokens: int = 512,
    ):
        """Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key (any non-empty string for local servers).
            model: Model to use. Defaults to gpt-4o-mini.
            base_url: Optional OpenAI-compatible endpoint.
            temperature: Sampling temperature.
            max_tokens: Completion token limit.
        """
        self.client = OpenAI(api_key=api_key, base_url=base_url)
        self.model = model or DEFAULT_MODEL
        self.temperature = temperature
        self.max_tokens = max_tokens

    def generate(self, messages: List[ChatMessage]) -> str:
        """Stream a chat completion and return the concatenated text.

        Raises:
            Exception: If OpenAI API call fails.
        """
        logger.info(f"Calling {self.model} with {len(messages)} message(s)")

        try:
            stream = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                stream=True,
            )

            parts = []
            for chunk in stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    parts.append(delta)

        except Exception as e:
            logger.error(f"OpenAI API error: {e}")
            raise

        text = "".join(parts)
        logger.debug(f"Model returned {len(text)} character(s)")
        return text
