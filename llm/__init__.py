"""Language model access for the expense assistant."""

from llm.factory import get_llm_provider
from llm.runner import ModelRunner

__all__ = ["get_llm_provider", "ModelRunner"]
