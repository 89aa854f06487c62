import sqlite3
from decimal import Decimal

import pytest

from assistant import state_machine
from assistant.state_machine import (
    GENERATION_FAILED,
    MODEL_LOADING,
    SAVE_FAILED,
    AssistantState,
    ExpenseAssistant,
)
from llm.embeddings import Embedder
from models.ai_response import ErrorResponse, MessageResponse, TransactionResponse
from tests.helpers import NOW, FakeRunner

LUNCH = "Spent $15 on lunch"
QUESTION = "How much did I spend on food this month?"


class FixedEmbedder(Embedder):
    """Returns the same vector for every text."""

    def __init__(self, vector):
        super().__init__(len(vector))
        self.vector = vector

    def embed(self, text):
        return list(self.vector)


@pytest.fixture
def results(assistant):
    """Every result the assistant publishes, in order."""
    collected = []
    assistant.subscribe(collected.append)
    return collected


class TestSendMessage:
    """Tests for starting a turn."""

    def test_model_not_ready(self, services):
        """Test that an unready model yields an error without a transition."""
        runner = FakeRunner(ready=False, progress=0.4)
        assistant = ExpenseAssistant(services, runner, FixedEmbedder([1.0]))
        results = []
        assistant.subscribe(results.append)

        assert assistant.send_message(LUNCH) is False

        assert assistant.result == ErrorResponse(MODEL_LOADING)
        assert results == [ErrorResponse(MODEL_LOADING)]
        assert assistant.state is AssistantState.IDLE
        assert assistant.is_processing is False
        assert runner.requests == []
        assert assistant.model_ready is False
        assert assistant.download_progress == 0.4

    def test_starts_extraction(self, assistant, runner):
        """Test that a message moves to EXTRACTING and submits the prompt."""
        assert assistant.send_message(LUNCH) is True

        assert assistant.state is AssistantState.EXTRACTING
        assert assistant.is_processing is True
        assert assistant.result is None
        assert len(runner.requests) == 1

        system, user = runner.requests[0]
        assert system["role"] == "system"
        assert "Food, Healthcare" in system["content"]
        assert "Uncategorized" in system["content"]
        assert '{"intent": "query"}' in system["content"]
        assert user == {"role": "user", "content": f'Input: "{LUNCH}"'}

    def test_new_turn_clears_previous_result(self, assistant, runner):
        assistant.send_message(QUESTION)
        runner.complete("not json")
        runner.complete("An answer")
        assert assistant.result == MessageResponse("An answer")

        assistant.send_message(LUNCH)

        assert assistant.result is None


class TestTransactionBranch:
    """Tests for messages the model extracts as spending."""

    def test_logs_expense(self, assistant, runner, services, results):
        """Test the end-to-end lunch scenario."""
        assistant.send_message(LUNCH)
        runner.complete('{"amount":15,"category":"Food","merchant":null}')

        assert assistant.state is AssistantState.IDLE
        assert len(results) == 1
        result = results[0]
        assert isinstance(result, TransactionResponse)
        assert result.type == "transaction"

        expense = services.expenses.find(result.data.id)
        assert expense.amount == Decimal("15")
        assert expense.category == "Food"
        assert expense.merchant is None
        assert expense.description == LUNCH
        assert expense.date == NOW.isoformat()

        assert result.data.amount == Decimal("15")
        assert result.data.category == "Food"
        assert result.data.merchant is None
        assert result.data.budget is None
        assert len(runner.requests) == 1

    def test_attaches_embedding(self, assistant, runner, services):
        """Test that the new expense gets a 128-dimension vector in [0, 1)."""
        assistant.send_message(LUNCH)
        runner.complete('{"amount": 15, "category": "Food"}')

        expense = services.expenses.find(assistant.result.data.id)
        assert len(expense.embedding) == 128
        assert all(0.0 <= v < 1.0 for v in expense.embedding)

    def test_prose_around_json_is_still_a_transaction(self, assistant, runner):
        assistant.send_message("coffee 4.50 at Blue Bottle")
        runner.complete(
            'Here you go:\n```json\n{"amount": 4.5, "category": "Food", "merchant": "Blue Bottle"}\n```'
        )

        assert isinstance(assistant.result, TransactionResponse)
        assert assistant.result.data.merchant == "Blue Bottle"
        assert assistant.result.data.amount == Decimal("4.5")

    def test_missing_category_is_uncategorized(self, assistant, runner, services):
        assistant.send_message("paid 30")
        runner.complete('{"amount": 30}')

        assert assistant.result.data.category == "Uncategorized"
        assert services.expenses.find(assistant.result.data.id).category == "Uncategorized"

    def test_category_matched_to_known_name(self, assistant, runner):
        assistant.send_message("taxi 12")
        runner.complete('{"amount": 12, "category": "transport"}')

        assert assistant.result.data.category == "Transport"

    def test_budget_snapshot(self, assistant, runner, services):
        """Test remaining = limit - (prior spend + new amount)."""
        services.budgets.set_limit("Food", Decimal("500"))
        services.expenses.create(
            Decimal("200"), "Food", None, "groceries", "2025-03-02T10:00:00"
        )

        assistant.send_message("Spent $50 on dinner")
        runner.complete('{"amount": 50, "category": "Food", "merchant": null}')

        budget = assistant.result.data.budget
        assert budget.limit == Decimal("500")
        assert budget.spend == Decimal("250")
        assert budget.remaining == Decimal("250")
        assert assistant.result.to_dict()["data"]["budget"] == {
            "limit": 500.0,
            "spend": 250.0,
            "remaining": 250.0,
        }

    def test_storage_failure(self, assistant, runner, services, monkeypatch):
        """Test that a failed insert ends the turn with an error and no embedding."""
        def fail_create(*args, **kwargs):
            raise sqlite3.OperationalError("database is locked")

        embedded = []
        monkeypatch.setattr(services.expenses, "create", fail_create)
        monkeypatch.setattr(
            services.vector_store, "add_embedding", lambda *a: embedded.append(a)
        )

        assistant.send_message(LUNCH)
        runner.complete('{"amount": 15, "category": "Food"}')

        assert assistant.result == ErrorResponse(SAVE_FAILED)
        assert assistant.state is AssistantState.IDLE
        assert embedded == []
        assert len(runner.requests) == 1

    def test_category_lookup_failure(self, assistant, runner, services, monkeypatch):
        """Test that a database error while resolving the category is a save failure."""
        def fail_resolve(name):
            raise sqlite3.OperationalError("database is locked")

        monkeypatch.setattr(services.categories, "resolve", fail_resolve)

        assistant.send_message(LUNCH)
        runner.complete('{"amount": 15, "category": "Food"}')

        assert assistant.result == ErrorResponse(SAVE_FAILED)
        assert assistant.state is AssistantState.IDLE
        assert services.expenses.find_all() == []
        assert assistant.send_message(LUNCH) is True

    def test_embedding_failure_still_reports_transaction(
        self, assistant, runner, services, monkeypatch
    ):
        """Test that the expense stays saved when attaching its vector fails."""
        def fail_add(expense_id, vector):
            raise sqlite3.OperationalError("disk I/O error")

        monkeypatch.setattr(services.vector_store, "add_embedding", fail_add)

        assistant.send_message(LUNCH)
        runner.complete('{"amount": 15, "category": "Food"}')

        assert isinstance(assistant.result, TransactionResponse)
        expense = services.expenses.find(assistant.result.data.id)
        assert expense is not None
        assert expense.embedding is None


class TestQueryBranch:
    """Tests for messages answered from retrieved expenses."""

    def _seed(self, services):
        """Five Food expenses close to [1, 0] and five Transport ones far from it."""
        for i in range(5):
            services.expenses.create(
                Decimal(str(10 + i)),
                "Food",
                "Cafe" if i == 0 else None,
                f"meal {i}",
                f"2025-03-0{i + 1}T12:00:00",
                embedding=[1.0, 0.1 * i],
            )
        for i in range(5):
            services.expenses.create(
                Decimal("3"),
                "Transport",
                None,
                f"bus {i}",
                f"2025-03-0{i + 1}T08:00:00",
                embedding=[0.0, 1.0],
            )

    def test_question_answered_from_context(self, services, runner):
        """Test the end-to-end food question scenario."""
        self._seed(services)
        assistant = ExpenseAssistant(
            services, runner, FixedEmbedder([1.0, 0.0]), top_k=5, clock=lambda: NOW
        )
        results = []
        assistant.subscribe(results.append)

        assistant.send_message(QUESTION)
        runner.complete('{"intent": "query"}')

        assert assistant.state is AssistantState.RAG_GEN
        assert assistant.is_processing is True
        assert results == []
        assert len(runner.requests) == 2

        prompt = runner.last_prompt()
        context_lines = [line for line in prompt.splitlines() if line.startswith("- 2025")]
        assert len(context_lines) == 5
        assert all(line.endswith("- Food") for line in context_lines)
        assert "- 2025-03-01T12:00:00: Cafe ($10) - Food" in context_lines
        assert "- 2025-03-02T12:00:00: Expense ($11) - Food" in context_lines
        assert f'User Question: "{QUESTION}"' in prompt

        runner.complete("You spent $60 on food this month.")

        assert results == [MessageResponse("You spent $60 on food this month.")]
        assert assistant.state is AssistantState.IDLE
        assert assistant.result.to_dict() == {
            "type": "message",
            "content": "You spent $60 on food this month.",
        }

    @pytest.mark.parametrize(
        "raw",
        ["I am not sure what you mean.", '{"category": "Food"}', '{"amount": "lots"}', ""],
    )
    def test_unparseable_output_falls_back_to_question(self, assistant, runner, raw):
        assistant.send_message("hmm")
        runner.complete(raw)

        assert assistant.state is AssistantState.RAG_GEN
        assert len(runner.requests) == 2

    def test_answer_taken_verbatim(self, assistant, runner):
        assistant.send_message(QUESTION)
        runner.complete('{"intent": "query"}')
        runner.complete('  {"amount": 99}  ')

        # A JSON-looking answer is still an answer once in RAG_GEN
        assert assistant.result == MessageResponse('  {"amount": 99}  ')

    def test_no_history(self, assistant, runner):
        assistant.send_message(QUESTION)
        runner.complete('{"intent": "query"}')

        assert "No expenses recorded yet." in runner.last_prompt()

    def test_answer_generation_failure(self, assistant, runner):
        """Test that a failed second generation resets to idle with an error."""
        assistant.send_message(QUESTION)
        runner.complete('{"intent": "query"}')
        runner.fail(RuntimeError("model crashed"))

        assert assistant.result == ErrorResponse(GENERATION_FAILED)
        assert assistant.state is AssistantState.IDLE
        assert assistant.is_processing is False

    def test_retrieval_failure(self, assistant, runner, services, monkeypatch):
        def fail_search(query, k):
            raise sqlite3.OperationalError("no such table")

        monkeypatch.setattr(services.vector_store, "search", fail_search)

        assistant.send_message(QUESTION)
        runner.complete('{"intent": "query"}')

        assert assistant.result == ErrorResponse(GENERATION_FAILED)
        assert assistant.state is AssistantState.IDLE
        assert len(runner.requests) == 1


class TestSingleFlight:
    """Tests for overlapping messages and stray completion signals."""

    def test_second_message_rejected_while_busy(self, assistant, runner, results):
        """Test that a rapid double send produces one turn and one result."""
        assert assistant.send_message(LUNCH) is True
        assert assistant.send_message("Spent $99 on shoes") is False

        assert len(runner.requests) == 1

        runner.complete('{"amount": 15, "category": "Food"}')

        assert len(results) == 1
        assert results[0].data.amount == Decimal("15")

    def test_rejected_during_answer_generation(self, assistant, runner, results):
        assistant.send_message(QUESTION)
        runner.complete('{"intent": "query"}')

        assert assistant.send_message(LUNCH) is False
        assert assistant.state is AssistantState.RAG_GEN

        runner.complete("answer")
        assert results == [MessageResponse("answer")]

    def test_accepts_next_message_after_idle(self, assistant, runner):
        assistant.send_message(LUNCH)
        runner.complete('{"amount": 15}')

        assert assistant.send_message("Spent $5 on coffee") is True
        assert len(runner.requests) == 2

    def test_completion_while_idle_ignored(self, assistant, services, results):
        assistant.on_generation_complete('{"amount": 15, "category": "Food"}')

        assert results == []
        assert services.expenses.find_all() == []

    def test_stale_turn_ignored(self, assistant, runner, services):
        """Test that output tagged with an earlier turn does not advance a new one."""
        assistant.send_message(LUNCH)
        runner.complete('{"amount": 15}')
        assistant.send_message(QUESTION)

        assistant.on_generation_complete('{"amount": 77}', turn=1)

        assert assistant.state is AssistantState.EXTRACTING
        assert len(services.expenses.find_all()) == 1

    def test_reentrant_completion_dropped(self, assistant, runner, services):
        """Test that a completion signalled during handling is not processed."""
        def reenter(result):
            assistant.on_generation_complete('{"amount": 1}')

        assistant.subscribe(reenter)

        assistant.send_message(LUNCH)
        runner.complete('{"amount": 15}')

        assert len(services.expenses.find_all()) == 1

    def test_unexpected_handler_error_ends_turn(self, assistant, runner, monkeypatch):
        """Test that an error escaping the transition still returns to idle."""
        def broken_parse(text):
            raise RuntimeError("parser bug")

        monkeypatch.setattr(state_machine, "parse_transaction", broken_parse)

        assistant.send_message(LUNCH)
        runner.complete('{"amount": 15}')

        assert assistant.result == ErrorResponse(GENERATION_FAILED)
        assert assistant.state is AssistantState.IDLE
        assert assistant.wait_until_idle(0) is True
        assert assistant.send_message(QUESTION) is True

    def test_extraction_generation_failure(self, assistant, runner):
        assistant.send_message(LUNCH)
        runner.fail(TimeoutError("no reply"))

        assert assistant.result == ErrorResponse(GENERATION_FAILED)
        assert assistant.state is AssistantState.IDLE

    def test_wait_until_idle(self, assistant, runner):
        assert assistant.wait_until_idle(0) is True

        assistant.send_message(LUNCH)
        assert assistant.wait_until_idle(0) is False

        runner.complete('{"amount": 15}')
        assert assistant.wait_until_idle(0) is True
