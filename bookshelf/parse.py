"""Parse and normalize book records, store documents and form input."""
import logging
from typing import Dict, Any, List, Optional

from bookshelf.errors import InvalidRecord
from bookshelf.models import (
    Book,
    FormFields,
    TITLE_MAX_LENGTH,
    MIN_YEAR,
    MIN_RATING,
    MAX_RATING,
)

logger = logging.getLogger(__name__)


def parse_int(value: Any) -> Optional[int]:
    """
    Read an integer leniently.

    Args:
        value: int, integral float, numeric string, or anything else

    Returns:
        The integer, or None when the value is blank or not numeric
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def parse_book(record: Dict[str, Any]) -> Optional[Book]:
    """
    Parse a single raw record read from the document store.

    Args:
        record: Mapping with id, title, author, year, rating, isbn

    Returns:
        Book object or None if the record has no usable id
    """
    try:
        book_id = parse_int(record.get("id"))
        if book_id is None:
            logger.warning(f"Skipping record without a numeric id: {record!r}")
            return None

        rating = parse_int(record.get("rating"))
        isbn = record.get("isbn")

        return Book(
            id=book_id,
            title=str(record.get("title") or ""),
            author=str(record.get("author") or ""),
            year=parse_int(record.get("year")),
            rating=rating if rating is not None else 0,
            isbn=str(isbn) if isbn else None,
        )
    except (AttributeError, TypeError) as e:
        logger.warning(f"Failed to parse book record: {e}")
        return None


def parse_catalog(records: List[Dict[str, Any]]) -> List[Book]:
    """
    Parse every record of a full collection read.

    Args:
        records: Raw records in store order

    Returns:
        List of Book objects (malformed records dropped)
    """
    books = []

    for record in records:
        book = parse_book(record)
        if book:
            books.append(book)

    return books


def deduplicate_books(books: List[Book]) -> List[Book]:
    """
    Remove duplicate books by ID, keeping the first occurrence.

    Args:
        books: List of Book objects

    Returns:
        Deduplicated list of books
    """
    seen_ids = set()
    unique_books = []

    for book in books:
        if book.id not in seen_ids:
            seen_ids.add(book.id)
            unique_books.append(book)
        else:
            logger.warning(f"Duplicate book id {book.id} ignored")

    return unique_books


def _form_int(name: str, text: str, low: int, high: Optional[int] = None) -> Optional[int]:
    text = text.strip()
    if not text:
        return None
    try:
        value = int(text)
    except ValueError:
        raise InvalidRecord(f"{name} must be a whole number, got {text!r}")
    if value < low or (high is not None and value > high):
        bounds = f"between {low} and {high}" if high is not None else f"at least {low}"
        raise InvalidRecord(f"{name} must be {bounds}, got {value}")
    return value


def validate_form(form: FormFields) -> Dict[str, Any]:
    """
    Check raw form input and convert it to record values.

    Args:
        form: Current form fields

    Returns:
        Dict with title, author, year, rating and isbn ready to be stored

    Raises:
        InvalidRecord: A required field is blank or a number is out of range
    """
    if not form.title.strip():
        raise InvalidRecord("Title is required")
    if len(form.title) > TITLE_MAX_LENGTH:
        raise InvalidRecord(f"Title is limited to {TITLE_MAX_LENGTH} characters")
    if not form.author.strip():
        raise InvalidRecord("Author is required")

    rating = _form_int("Rating", form.rating, MIN_RATING, MAX_RATING)

    return {
        "title": form.title,
        "author": form.author,
        "year": _form_int("Year", form.year, MIN_YEAR),
        "rating": rating if rating is not None else 0,
        "isbn": form.isbn or None,
    }


# Firestore typed values

def encode_value(value: Any) -> Dict[str, Any]:
    """Wrap a Python value in a Firestore typed value."""
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        # int64 travels as a decimal string
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    raise InvalidRecord(f"Cannot store value of type {type(value).__name__}")


def encode_fields(record: Dict[str, Any]) -> Dict[str, Any]:
    return {name: encode_value(value) for name, value in record.items()}


def decode_value(typed: Dict[str, Any]) -> Any:
    """Unwrap a Firestore typed value."""
    if "nullValue" in typed:
        return None
    if "booleanValue" in typed:
        return bool(typed["booleanValue"])
    if "integerValue" in typed:
        return int(typed["integerValue"])
    if "doubleValue" in typed:
        return float(typed["doubleValue"])
    if "stringValue" in typed:
        return typed["stringValue"]
    if "timestampValue" in typed:
        return typed["timestampValue"]
    if "mapValue" in typed:
        return decode_fields(typed["mapValue"].get("fields", {}))
    if "arrayValue" in typed:
        return [decode_value(v) for v in typed["arrayValue"].get("values", [])]
    logger.warning(f"Unsupported Firestore value: {typed!r}")
    return None


def decode_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {name: decode_value(value) for name, value in fields.items()}


def decode_document(document: Dict[str, Any]) -> Dict[str, Any]:
    """
    Turn a Firestore REST document into a plain record.

    Args:
        document: Document JSON with ``name`` and ``fields``

    Returns:
        Record mapping (empty if the document has no fields)
    """
    return decode_fields(document.get("fields", {}))
