"""Book catalog module.

Provides functionality for:
- Adding, editing and removing catalog titles
- Tracking how many copies are available to lend
"""

from .models import Book, DEFAULT_COVER_IMAGE
from .schemas import BookCreate, BookUpdate, BookResponse
from .store import CatalogStore

__all__ = [
    "Book",
    "DEFAULT_COVER_IMAGE",
    "BookCreate",
    "BookUpdate",
    "BookResponse",
    "CatalogStore",
]
