"""Spending category model."""

from dataclasses import dataclass


@dataclass
class Category:
    """A named spending category with its display icon and chart color."""

    id: int
    name: str
    emoji: str
    color: str

    @property
    def label(self) -> str:
        return f"{self.emoji} {self.name}"
