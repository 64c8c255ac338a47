"""Data models for books."""
from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any


TITLE_MAX_LENGTH = 100
MIN_YEAR = 1800
MIN_RATING = 0
MAX_RATING = 10


@dataclass(frozen=True)
class Book:
    """One catalog entry as stored under ``str(id)``."""
    id: int
    title: str
    author: str
    year: Optional[int] = None
    rating: int = 0
    isbn: Optional[str] = None

    @property
    def key(self) -> str:
        """Document key in the books collection."""
        return str(self.id)

    @property
    def has_year(self) -> bool:
        return self.year is not None

    def to_record(self) -> Dict[str, Any]:
        """Plain mapping written to the document store."""
        return asdict(self)


@dataclass(frozen=True)
class FormFields:
    """Raw form input. An empty string means the field was left blank."""
    title: str = ""
    author: str = ""
    year: str = ""
    rating: str = ""
    isbn: str = ""

    @classmethod
    def from_book(cls, book: Book) -> "FormFields":
        """Pre-fill the form with a book's current values."""
        return cls(
            title=book.title,
            author=book.author,
            year=str(book.year) if book.year is not None else "",
            rating=str(book.rating),
            isbn=book.isbn or "",
        )

    @classmethod
    def field_names(cls):
        return list(cls.__dataclass_fields__)
