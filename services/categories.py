"""Spending categories.

Expenses store the category *name*, not a foreign key, so deleting a
category never touches expenses and a model may log an expense under a name
that is not in the list.
"""

from typing import Dict, List, Optional
from models.category import Category
from models.expense import UNCATEGORIZED

_CATEGORY_FIELDS = "id, name, emoji, color"

DEFAULT_EMOJI = "📦"
DEFAULT_COLOR = "#95A5A6"


class CategoryService:
    """Reads and edits the category list."""

    def __init__(self, db_manager):
        self.db_manager = db_manager

    def find_all(self) -> List[Category]:
        """All categories, ordered by name."""
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"SELECT {_CATEGORY_FIELDS} FROM categories ORDER BY name"
            )
            return [self._row_to_category(row) for row in cursor.fetchall()]

    def names(self) -> List[str]:
        return [category.name for category in self.find_all()]

    def find_by_name(self, name: str) -> Optional[Category]:
        """Look up a category, ignoring case."""
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                f"SELECT {_CATEGORY_FIELDS} FROM categories WHERE name = ? COLLATE NOCASE",
                (name.strip(),),
            )
            row = cursor.fetchone()

        return self._row_to_category(row) if row else None

    def resolve(self, name: Optional[str]) -> str:
        """Map a free-form category name to the stored spelling.

        Blank names become "Uncategorized". Names that match a known category
        case-insensitively take its spelling; anything else is kept as given.
        """
        if not name or not name.strip():
            return UNCATEGORIZED
        known = self.find_by_name(name)
        return known.name if known else name.strip()

    def expense_counts(self) -> Dict[str, int]:
        """Number of expenses logged under each category name, including
        names that are not in the category list."""
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                "SELECT category, COUNT(*) FROM expenses GROUP BY category"
            )
            return {row[0]: row[1] for row in cursor.fetchall()}

    def create(
        self, name: str, emoji: str = DEFAULT_EMOJI, color: str = DEFAULT_COLOR
    ) -> Category:
        """Add a category.

        Raises:
            ValueError: If the name is blank or already taken (ignoring case).
        """
        name = name.strip()
        if not name:
            raise ValueError("Category name cannot be empty")
        existing = self.find_by_name(name)
        if existing:
            raise ValueError(f"Category '{existing.name}' already exists")

        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                "INSERT INTO categories (name, emoji, color) VALUES (?, ?, ?)",
                (name, emoji, color),
            )
            conn.commit()
            category_id = cursor.lastrowid

        return Category(id=category_id, name=name, emoji=emoji, color=color)

    def delete(self, name: str) -> bool:
        """Remove a category by name, ignoring case.

        Returns:
            False if no such category exists.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                "DELETE FROM categories WHERE name = ? COLLATE NOCASE", (name.strip(),)
            )
            conn.commit()
            return cursor.rowcount > 0

    def _row_to_category(self, row: tuple) -> Category:
        return Category(*row)
