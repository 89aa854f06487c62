"""Two-phase conversation with the model for one user message.

A message first goes through an extraction prompt. If the model answers with
a spending record the expense is saved, embedded and reported together with
its category budget. Otherwise the message is treated as a question: similar
past expenses are retrieved and a second prompt asks the model to answer
from them.

    IDLE -> EXTRACTING -> IDLE                (transaction or error)
    IDLE -> EXTRACTING -> RAG_GEN -> IDLE     (question)

Only one turn runs at a time. Generation happens on the runner's thread and
comes back through ``on_generation_complete`` / ``on_generation_failed``.
"""

import threading
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Callable, List, Optional

from assistant.extraction import ExtractedTransaction, format_context, parse_transaction
from llm.embeddings import Embedder
from llm.prompts.loader import PromptManager
from llm.providers.base import ChatMessage
from models.ai_response import (
    AIResponse,
    ErrorResponse,
    MessageResponse,
    TransactionData,
    TransactionResponse,
)
from models.expense import UNCATEGORIZED, Expense
from logger import get_logger

logger = get_logger()

MODEL_LOADING = "Model is loading..."
SAVE_FAILED = "Failed to save expense."
GENERATION_FAILED = "Sorry, something went wrong while generating a reply."

ResultListener = Callable[[AIResponse], None]


class AssistantState(Enum):
    IDLE = "idle"
    EXTRACTING = "extracting"
    RAG_GEN = "rag_gen"


class ExpenseAssistant:
    """Drives the extraction / retrieval conversation.

    Args:
        services: Services container (expenses, categories, budgets, vector store).
        runner: Object with ``submit(messages, on_complete, on_error)``,
            ``is_ready`` and ``download_progress``, normally a ModelRunner.
        embedder: Embedder for expense and query vectors.
        prompt_manager: Prompt loader, defaults to the bundled prompts.
        top_k: Number of past expenses given to the model as context.
        clock: Returns the current time; expenses are dated with it.
    """

    def __init__(
        self,
        services,
        runner,
        embedder: Embedder,
        prompt_manager: Optional[PromptManager] = None,
        top_k: int = 5,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.services = services
        self.runner = runner
        self.embedder = embedder
        self.prompt_manager = prompt_manager or PromptManager()
        self.top_k = top_k
        self.clock = clock

        self._state = AssistantState.IDLE
        self._query = ""
        self._turn = 0
        self._result: Optional[AIResponse] = None
        self._listeners: List[ResultListener] = []

        self._state_lock = threading.Lock()
        # Held while a completion is being handled; a second signal is dropped
        self._busy = threading.Lock()
        self._idle = threading.Event()
        self._idle.set()

    @property
    def state(self) -> AssistantState:
        return self._state

    @property
    def result(self) -> Optional[AIResponse]:
        """Outcome of the last turn, None while a turn is running."""
        return self._result

    @property
    def is_processing(self) -> bool:
        return self._state is not AssistantState.IDLE

    @property
    def model_ready(self) -> bool:
        return self.runner.is_ready

    @property
    def download_progress(self) -> float:
        return self.runner.download_progress

    def subscribe(self, listener: ResultListener) -> None:
        """Call listener with every result the assistant produces."""
        self._listeners.append(listener)

    def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until the running turn finishes.

        Returns:
            False if the timeout expired first.
        """
        return self._idle.wait(timeout)

    def send_message(self, text: str) -> bool:
        """Start a turn for a user message without waiting for the model.

        Returns:
            True if the turn started. False if the model is not ready (an
            error result is produced) or another turn is still running (the
            message is rejected and nothing changes).
        """
        if not self.runner.is_ready:
            logger.info("Message received before the model is ready")
            self._publish(ErrorResponse(MODEL_LOADING))
            return False

        with self._state_lock:
            if self._state is not AssistantState.IDLE:
                logger.warning(
                    f"Rejecting message while in state {self._state.value}"
                )
                return False

            self._turn += 1
            turn = self._turn
            self._result = None
            self._query = text
            self._state = AssistantState.EXTRACTING
            self._idle.clear()

        logger.info(f"Turn {turn}: extracting")

        try:
            messages = self._extraction_messages(text)
        except Exception as e:
            logger.error(f"Could not build extraction prompt: {e}")
            self._finish(ErrorResponse(GENERATION_FAILED))
            return True

        self._submit(turn, messages)
        return True

    def on_generation_complete(self, raw_text: str, turn: Optional[int] = None) -> None:
        """Advance the state machine with a finished generation.

        Args:
            raw_text: Full model output.
            turn: Turn the generation belongs to; output of an older turn is
                ignored. None means the current turn.
        """
        if not self._busy.acquire(blocking=False):
            logger.warning("Completion arrived while another is being handled; ignored")
            return

        follow_up = None
        current_turn = self._turn
        try:
            if self._is_current(turn):
                follow_up = self._handle_completion(raw_text)
        except Exception as e:
            logger.error(f"Unexpected error in state {self._state.value}: {e}")
            follow_up = None
            self._finish(ErrorResponse(GENERATION_FAILED))
        finally:
            self._busy.release()

        # Submitted after releasing the guard so a fast reply is not dropped
        if follow_up is not None:
            self._submit(current_turn, follow_up)

    def on_generation_failed(self, error: Exception, turn: Optional[int] = None) -> None:
        """End the current turn with an error result."""
        if not self._busy.acquire(blocking=False):
            logger.warning("Failure arrived while a completion is being handled; ignored")
            return

        try:
            if self._is_current(turn):
                logger.error(f"Generation failed in state {self._state.value}: {error}")
                self._finish(ErrorResponse(GENERATION_FAILED))
        finally:
            self._busy.release()

    def _is_current(self, turn: Optional[int]) -> bool:
        with self._state_lock:
            if self._state is AssistantState.IDLE:
                logger.debug("Generation signal while idle; ignored")
                return False
            if turn is not None and turn != self._turn:
                logger.debug(f"Stale generation signal for turn {turn}; ignored")
                return False
            return True

    def _handle_completion(self, raw_text: str) -> Optional[List[ChatMessage]]:
        """Run the transition for the current state.

        Returns:
            Messages for a follow-up generation, or None when the turn is over.
        """
        if self._state is AssistantState.RAG_GEN:
            self._finish(MessageResponse(raw_text))
            return None

        extracted = parse_transaction(raw_text)
        if extracted is not None:
            self._finish(self._save_transaction(extracted))
            return None

        with self._state_lock:
            self._state = AssistantState.RAG_GEN
        logger.info(f"Turn {self._turn}: no transaction found, answering as a question")

        try:
            return self._rag_messages(self._query)
        except Exception as e:
            logger.error(f"Could not build answer prompt: {e}")
            self._finish(ErrorResponse(GENERATION_FAILED))
            return None

    def _save_transaction(self, extracted: ExtractedTransaction) -> AIResponse:
        """Persist the expense, attach its embedding and look up its budget.

        The insert and the embedding update are separate writes. If the second
        one fails the expense stays saved without an embedding and is simply
        never returned by similarity search.
        """
        try:
            category = self.services.categories.resolve(extracted.category)
            now = self.clock()
            expense = self.services.expenses.create(
                amount=Decimal(str(extracted.amount)),
                category=category,
                merchant=extracted.merchant,
                description=self._query,
                date=now.isoformat(timespec="seconds"),
            )
        except Exception as e:
            logger.error(f"Failed to save expense: {e}")
            return ErrorResponse(SAVE_FAILED)

        try:
            self.services.vector_store.add_embedding(
                expense.id, self.embedder.embed(_embedding_text(expense))
            )
        except Exception as e:
            logger.warning(f"Expense {expense.id} saved without embedding: {e}")

        budget = None
        try:
            budget = self.services.budgets.status(category, as_of=now)
        except Exception as e:
            logger.warning(f"Budget lookup for {category} failed: {e}")

        logger.info(f"Logged expense {expense.id}: {expense.amount} in {category}")

        return TransactionResponse(
            TransactionData(
                id=expense.id,
                amount=expense.amount,
                category=category,
                merchant=expense.merchant,
                budget=budget,
            )
        )

    def _extraction_messages(self, text: str) -> List[ChatMessage]:
        categories = self.services.categories.names()
        if UNCATEGORIZED not in categories:
            categories.append(UNCATEGORIZED)
        return self.prompt_manager.render_messages(
            "extraction", {"text": text, "categories": ", ".join(categories)}
        )

    def _rag_messages(self, question: str) -> List[ChatMessage]:
        query_vector = self.embedder.embed(question)
        expenses = self.services.vector_store.search(query_vector, self.top_k)
        return self.prompt_manager.render_messages(
            "rag_answer", {"context": format_context(expenses), "question": question}
        )

    def _submit(self, turn: int, messages: List[ChatMessage]) -> None:
        try:
            self.runner.submit(
                messages,
                on_complete=lambda text: self.on_generation_complete(text, turn=turn),
                on_error=lambda error: self.on_generation_failed(error, turn=turn),
            )
        except Exception as e:
            logger.error(f"Could not start generation: {e}")
            self._finish(ErrorResponse(GENERATION_FAILED))

    def _finish(self, response: AIResponse) -> None:
        with self._state_lock:
            self._state = AssistantState.IDLE
            self._result = response
        logger.info(f"Turn {self._turn} finished with a {response.type} result")
        self._notify(response)
        self._idle.set()

    def _publish(self, response: AIResponse) -> None:
        with self._state_lock:
            self._result = response
        self._notify(response)

    def _notify(self, response: AIResponse) -> None:
        for listener in list(self._listeners):
            try:
                listener(response)
            except Exception as e:
                logger.error(f"Result listener failed: {e}")


def _embedding_text(expense: Expense) -> str:
    parts = [expense.description, expense.category]
    if expense.merchant:
        parts.append(expense.merchant)
    return " ".join(parts)
