"""Message service for persisting the assistant conversation."""

import json
from typing import List, Optional

from models.message import Message


class MessageService:
    """Service for managing conversation messages."""

    def __init__(self, db_manager):
        self.db_manager = db_manager

    def create(self, message: Message) -> Message:
        """Store a message.

        Returns:
            The same Message object.
        """
        with self.db_manager.connect() as conn:
            conn.execute(
                "INSERT INTO messages (id, text, sender, type, data) VALUES (?, ?, ?, ?, ?)",
                (
                    message.id,
                    message.text,
                    message.sender,
                    message.type,
                    json.dumps(message.data) if message.data is not None else None,
                ),
            )
            conn.commit()

        return message

    def find(self, message_id: str) -> Optional[Message]:
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                "SELECT id, text, sender, type, data, created_at FROM messages WHERE id = ?",
                (message_id,),
            )
            row = cursor.fetchone()

            if row:
                return self._row_to_message(row)
            return None

    def find_all(self) -> List[Message]:
        """All messages in the order they were written."""
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                """
                SELECT id, text, sender, type, data, created_at
                FROM messages
                ORDER BY created_at, rowid
                """
            )
            return [self._row_to_message(row) for row in cursor.fetchall()]

    def delete(self, message_id: str) -> bool:
        with self.db_manager.connect() as conn:
            cursor = conn.execute("DELETE FROM messages WHERE id = ?", (message_id,))
            conn.commit()
            return cursor.rowcount > 0

    def clear(self) -> int:
        """Delete the whole conversation.

        Returns:
            Number of messages deleted.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute("DELETE FROM messages")
            conn.commit()
            return cursor.rowcount

    def _row_to_message(self, row: tuple) -> Message:
        return Message(
            id=row[0],
            text=row[1],
            sender=row[2],
            type=row[3],
            data=json.loads(row[4]) if row[4] else None,
            created_at=row[5],
        )
