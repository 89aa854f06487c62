"""Builds the configured model provider."""

from typing import Optional
from config import Config
from llm.providers.base import LLMProvider
from llm.providers.openai import OpenAIProvider
from logger import get_logger

logger = get_logger()

# Placeholder key for OpenAI-compatible servers that do not check keys
LOCAL_API_KEY = "local"


def get_llm_provider(config: Config) -> Optional[LLMProvider]:
    """Create the provider named by ``[llm] provider``.

    Returns:
        The provider, or None when the assistant model is disabled or no
        provider is named.

    Raises:
        ValueError: If the provider is unknown or its settings are incomplete.
    """
    if not config.llm_enabled:
        logger.info("Assistant model is disabled")
        return None

    provider_name = config.llm_provider or None

    if provider_name == "openai":
        return _openai_provider(config)

    elif provider_name is None:
        logger.info("No LLM provider configured")
        return None

    else:
        raise ValueError(f"Unknown LLM provider: {provider_name}")


def _openai_provider(config: Config) -> OpenAIProvider:
    base_url = config.llm_openai_base_url
    api_key = config.llm_openai_api_key or (LOCAL_API_KEY if base_url else "")
    if not api_key:
        raise ValueError(
            "OpenAI provider selected but openai_api_key not configured "
            "(or set openai_base_url for a local server)"
        )

    model = config.llm_openai_model
    logger.info(
        f"Initializing OpenAI provider (model: {model or 'default'}, "
        f"endpoint: {base_url or 'api.openai.com'})"
    )
    return OpenAIProvider(api_key=api_key, model=model, base_url=base_url)
