import pytest

from models.message import Message


class TestMessageService:
    """Tests for MessageService."""

    def test_create_and_find(self, services):
        message = services.messages.create(Message(text="hello", sender="user"))

        found = services.messages.find(message.id)

        assert found.text == "hello"
        assert found.sender == "user"
        assert found.type == "text"
        assert found.data is None
        assert found.created_at is not None

    def test_find_not_found(self, services):
        assert services.messages.find("missing") is None

    def test_data_round_trips_as_json(self, services):
        """Test that the payload of a transaction message is kept."""
        data = {"id": 7, "amount": 15.0, "category": "Food", "merchant": None, "budget": None}
        message = services.messages.create(
            Message(text="Saved", sender="ai", type="transaction", data=data)
        )

        assert services.messages.find(message.id).data == data

    def test_find_all_in_insertion_order(self, services):
        for text in ["one", "two", "three"]:
            services.messages.create(Message(text=text, sender="user"))

        assert [m.text for m in services.messages.find_all()] == ["one", "two", "three"]

    def test_clear(self, services):
        services.messages.create(Message(text="one", sender="user"))
        services.messages.create(Message(text="two", sender="ai"))

        assert services.messages.clear() == 2
        assert services.messages.find_all() == []

    def test_delete(self, services):
        keep = services.messages.create(Message(text="keep", sender="user"))
        drop = services.messages.create(Message(text="drop", sender="user"))

        assert services.messages.delete(drop.id) is True
        assert services.messages.delete(drop.id) is False
        assert [m.id for m in services.messages.find_all()] == [keep.id]


class TestMessageModel:
    """Tests for Message validation."""

    def test_transaction_message_requires_expense_id(self):
        with pytest.raises(ValueError, match="expense id"):
            Message(text="Saved", sender="ai", type="transaction", data={"amount": 1})

    def test_unknown_sender(self):
        with pytest.raises(ValueError):
            Message(text="hi", sender="bot")

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            Message(text="hi", sender="ai", type="card")

    def test_ids_are_unique(self):
        assert Message(text="a", sender="user").id != Message(text="b", sender="user").id
