"""Group the catalog by publication year or by author for display."""
import unicodedata
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Tuple, Union

from bookshelf.models import Book

NO_BOOKS_MESSAGE = "No books. Please add"


class GroupingMode(Enum):
    BY_YEAR = "year"
    BY_AUTHOR = "author"

    def toggled(self) -> "GroupingMode":
        if self is GroupingMode.BY_YEAR:
            return GroupingMode.BY_AUTHOR
        return GroupingMode.BY_YEAR


@dataclass(frozen=True)
class Group:
    """One heading (a year or an author) and its books, sorted by title."""
    key: Union[int, str]
    books: Tuple[Book, ...]


@dataclass(frozen=True)
class Grouping:
    mode: GroupingMode
    groups: Tuple[Group, ...] = ()
    without_year: Tuple[Book, ...] = ()
    placeholder: Optional[str] = None


def title_sort_key(title: str) -> Tuple[str, str, str]:
    """
    Collation key approximating locale-aware comparison.

    Compares accent- and case-insensitively first, then case-insensitively,
    then by the raw string, so ``"apple" < "Banana" < "banana"`` and
    ``"Élan"`` sorts next to ``"Elan"``.
    """
    folded = title.casefold()
    decomposed = unicodedata.normalize("NFKD", folded)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return base, folded, title


def sort_by_title(books: Iterable[Book]) -> Tuple[Book, ...]:
    # sorted() is stable: equal titles keep their catalog order
    return tuple(sorted(books, key=lambda book: title_sort_key(book.title)))


def distinct_years(books: Iterable[Book]) -> List[Optional[int]]:
    """
    Years present in the catalog, newest first.

    A book without a year contributes ``None``, which sorts last.
    """
    years = list(dict.fromkeys(book.year for book in books))
    return sorted(years, key=lambda year: (year is not None, year or 0), reverse=True)


def distinct_authors(books: Iterable[Book]) -> List[str]:
    """Authors in order of their first appearance in the catalog."""
    return list(dict.fromkeys(book.author for book in books))


def group_by_year(books: List[Book]) -> Grouping:
    with_year = [book for book in books if book.has_year]
    without_year = tuple(book for book in books if not book.has_year)

    if not with_year:
        return Grouping(
            mode=GroupingMode.BY_YEAR,
            without_year=without_year,
            placeholder=NO_BOOKS_MESSAGE,
        )

    groups = tuple(
        Group(year, sort_by_title(book for book in with_year if book.year == year))
        for year in distinct_years(books)
        if year is not None
    )
    return Grouping(mode=GroupingMode.BY_YEAR, groups=groups, without_year=without_year)


def group_by_author(books: List[Book]) -> Grouping:
    groups = tuple(
        Group(author, sort_by_title(book for book in books if book.author == author))
        for author in distinct_authors(books)
    )
    return Grouping(mode=GroupingMode.BY_AUTHOR, groups=groups)


def group_catalog(books: List[Book], mode: GroupingMode) -> Grouping:
    """
    Build the nested grouping shown for the given mode.

    Args:
        books: Current catalog, in store order
        mode: Year or author grouping

    Returns:
        Grouping with one Group per year (descending) or per author
        (first appearance)
    """
    if mode is GroupingMode.BY_YEAR:
        return group_by_year(books)
    return group_by_author(books)
