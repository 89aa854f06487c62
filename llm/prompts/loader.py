"""Prompt loading and rendering."""

import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional
from llm.providers.base import ChatMessage
from logger import get_logger

logger = get_logger()


class PromptManager:
    """Loads prompts from YAML files and renders them into chat messages.

    Each prompt file holds a ``version``, an optional ``system_prompt`` and a
    ``user_prompt_template``, both rendered with ``str.format``
    (literal braces are written as ``{{`` and ``}}``).
    """

    def __init__(self, prompts_dir: Optional[Path] = None):
        """Initialize the prompt manager.

        Args:
            prompts_dir: Directory containing prompt YAML files.
                        Defaults to llm/prompts/ in the project.
        """
        self.prompts_dir = prompts_dir or Path(__file__).parent
        self._cache: Dict[str, Dict[str, Any]] = {}

    def load_prompt(self, prompt_name: str) -> Dict[str, Any]:
        """Load a prompt configuration from YAML file.

        Args:
            prompt_name: Name of the prompt file (without .yaml extension).

        Returns:
            Dictionary containing prompt configuration.

        Raises:
            FileNotFoundError: If prompt file doesn't exist.
            yaml.YAMLError: If YAML is invalid.
        """
        if prompt_name in self._cache:
            return self._cache[prompt_name]

        prompt_file = self.prompts_dir / f"{prompt_name}.yaml"

        if not prompt_file.exists():
            raise FileNotFoundError(f"Prompt file not found: {prompt_file}")

        logger.debug(f"Loading prompt from {prompt_file}")

        with open(prompt_file, "r", encoding="utf-8") as f:
            prompt_config = yaml.safe_load(f)

        self._cache[prompt_name] = prompt_config
        return prompt_config

    def render_messages(
        self, prompt_name: str, variables: Dict[str, Any]
    ) -> List[ChatMessage]:
        """Render a prompt into the message list sent to the model.

        Args:
            prompt_name: Name of the prompt to load.
            variables: Values substituted into both templates.

        Returns:
            A system message (when the prompt has one) followed by the user message.
        """
        prompt_config = self.load_prompt(prompt_name)

        system_prompt = (prompt_config.get("system_prompt") or "").format(**variables)
        user_prompt = prompt_config.get("user_prompt_template", "").format(**variables)

        messages: List[ChatMessage] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt.strip()})
        messages.append({"role": "user", "content": user_prompt.strip()})

        logger.debug(
            f"Rendered prompt {prompt_name} (version {prompt_config.get('version', 'unknown')})"
        )
        return messages
