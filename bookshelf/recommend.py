"""Pick one recommended book among the best-rated recent titles."""
import random
from datetime import date
from typing import Iterable, List, Optional

from bookshelf.models import Book

DEFAULT_WINDOW_YEARS = 3
MARKER = "---"


def recent_books(books: Iterable[Book], current_year: int, window: int = DEFAULT_WINDOW_YEARS) -> List[Book]:
    """Books published in the last ``window`` years (inclusive)."""
    oldest = current_year - window
    return [book for book in books if book.has_year and book.year >= oldest]


def top_rated(books: List[Book]) -> List[Book]:
    """All books sharing the highest rating; empty for an empty list."""
    if not books:
        return []
    best = max(book.rating for book in books)
    return [book for book in books if book.rating == best]


def recommend(
    books: Iterable[Book],
    rng: Optional[random.Random] = None,
    current_year: Optional[int] = None,
    window: int = DEFAULT_WINDOW_YEARS
) -> Optional[Book]:
    """
    Select the recommended book.

    Filters to recent books, keeps those with the maximum rating and draws
    one of them uniformly at random. Every call makes a fresh draw.

    Args:
        books: Current catalog
        rng: Random source; pass a seeded ``random.Random`` for repeatable picks
        current_year: Defaults to today's year
        window: How many years back still count as recent

    Returns:
        The chosen Book, or None when no book is recent
    """
    if current_year is None:
        current_year = date.today().year
    rng = rng or random

    ties = top_rated(recent_books(books, current_year, window))
    if not ties:
        return None
    return ties[rng.randrange(len(ties))]


def format_recommendation(book: Optional[Book]) -> str:
    if book is None:
        return ""
    return f"{MARKER}{book.title}{MARKER}"
