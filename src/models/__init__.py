"""Models package for the position hierarchy service."""

from src.models.base import Base
from src.models.position import Position

__all__ = [
    "Base",
    "Position",
]
