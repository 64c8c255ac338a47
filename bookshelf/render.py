"""Text rendering of the catalog, recommendation and edit form."""
import json
from typing import List

from tabulate import tabulate

from bookshelf.grouping import Grouping, GroupingMode
from bookshelf.models import Book
from bookshelf.state import CatalogState

FORMATS = ["table", "compact", "json"]


def _clip(text: str, width: int) -> str:
    return text[:width] + "..." if len(text) > width else text


def render_table(grouping: Grouping) -> str:
    headers = ["Year" if grouping.mode is GroupingMode.BY_YEAR else "Author",
               "ID", "Title", "Author", "Year", "Rating"]
    rows = []
    for group in grouping.groups:
        for index, book in enumerate(group.books):
            rows.append([
                _clip(str(group.key), 30) if index == 0 else "",
                book.id,
                _clip(book.title, 50),
                _clip(book.author, 30),
                book.year or "",
                book.rating,
            ])
    return tabulate(rows, headers=headers, tablefmt="grid")


def render_compact(grouping: Grouping) -> str:
    lines = []
    for group in grouping.groups:
        lines.append(str(group.key))
        for book in group.books:
            lines.append(f"  - {book.title} [{book.id}]")
    return "\n".join(lines)


def render_json(grouping: Grouping, recommendation: str) -> str:
    data = {
        "mode": grouping.mode.value,
        "recommendation": recommendation or None,
        "groups": [
            {"key": group.key, "books": [book.to_record() for book in group.books]}
            for group in grouping.groups
        ],
        "without_year": [book.to_record() for book in grouping.without_year],
        "placeholder": grouping.placeholder,
    }
    return json.dumps(data, indent=2, ensure_ascii=False)


def render_catalog(grouping: Grouping, recommendation: str = "", format_type: str = "table") -> str:
    """
    Render a grouping in the requested format.

    Args:
        grouping: Output of ``group_catalog``
        recommendation: Already formatted recommendation line (may be empty)
        format_type: One of ``FORMATS``

    Returns:
        Printable text
    """
    if format_type == "json":
        return render_json(grouping, recommendation)

    parts: List[str] = []
    if recommendation:
        parts.append(recommendation)

    if grouping.placeholder:
        parts.append(grouping.placeholder)
    elif grouping.groups:
        if format_type == "compact":
            parts.append(render_compact(grouping))
        else:
            parts.append(render_table(grouping))

    if grouping.mode is GroupingMode.BY_YEAR and grouping.without_year:
        parts.append(f"({len(grouping.without_year)} book(s) without a year, shown when grouped by author)")

    return "\n".join(parts)


def render_book(book: Book) -> str:
    rows = [[name, "" if value is None else value] for name, value in book.to_record().items()]
    return tabulate(rows, tablefmt="plain")


def render_form(state: CatalogState) -> str:
    """Show the edit form with its current values and submit label."""
    form = state.form
    rows = [
        ["title", form.title],
        ["author", form.author],
        ["year", form.year],
        ["rating", form.rating],
        ["isbn", form.isbn],
    ]
    return "\n".join([
        state.form_title,
        tabulate(rows, tablefmt="plain"),
        f"[{state.submit_label}]",
    ])
