"""Background execution of generation requests.

``ModelRunner`` is the boundary between the assistant and the model: a
prompt is submitted, the provider runs on a worker thread, and the outcome is
delivered to a callback. ``is_generating`` is true while a request is queued
or running and turns false just before the callback fires.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, List

from llm.providers.base import LLMProvider, ChatMessage
from logger import get_logger

logger = get_logger()


class ModelRunner:
    """Runs generation requests one at a time on a background thread.

    Args:
        provider: Provider that performs the generation.
    """

    def __init__(self, provider: LLMProvider):
        self.provider = provider
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="ledger-model"
        )
        self._lock = threading.Lock()
        self._pending = 0

    @property
    def is_ready(self) -> bool:
        return self.provider.is_ready

    @property
    def download_progress(self) -> float:
        return self.provider.download_progress

    @property
    def is_generating(self) -> bool:
        with self._lock:
            return self._pending > 0

    def submit(
        self,
        messages: List[ChatMessage],
        on_complete: Callable[[str], None],
        on_error: Callable[[Exception], None],
    ) -> Future:
        """Queue a generation request.

        Args:
            messages: Role-tagged prompt messages.
            on_complete: Called with the generated text.
            on_error: Called with the exception if generation fails.

        Returns:
            Future of the background job.

        Raises:
            RuntimeError: If the runner has been shut down.
        """
        with self._lock:
            self._pending += 1
        try:
            return self._executor.submit(self._run, messages, on_complete, on_error)
        except RuntimeError:
            self._finish()
            raise

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def _run(self, messages, on_complete, on_error) -> None:
        try:
            text = self.provider.generate(messages)
        except Exception as e:
            logger.error(f"Generation failed: {e}")
            self._finish()
            on_error(e)
            return

        self._finish()
        on_complete(text)

    def _finish(self) -> None:
        with self._lock:
            self._pending -= 1
