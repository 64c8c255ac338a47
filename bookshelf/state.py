"""Catalog state and the pure transitions that change it.

Each transition takes the current state and an event and returns the next
state together with the store writes that must succeed before that state is
committed. Nothing here performs I/O; see ``bookshelf.catalog`` for that.
"""
from dataclasses import dataclass, replace
from typing import Iterable, Optional, Tuple, Union

from bookshelf.errors import CatalogError
from bookshelf.grouping import GroupingMode, Grouping, group_catalog
from bookshelf.models import Book, FormFields
from bookshelf.parse import validate_form


@dataclass(frozen=True)
class CatalogState:
    books: Tuple[Book, ...] = ()
    mode: GroupingMode = GroupingMode.BY_YEAR
    form: FormFields = FormFields()
    selected: Optional[Book] = None
    recommendation: Optional[Book] = None
    # Highest id ever seen or assigned
    last_id: int = 0

    @property
    def is_editing(self) -> bool:
        return self.selected is not None

    @property
    def form_title(self) -> str:
        return "Edit book" if self.is_editing else "Add book"

    @property
    def submit_label(self) -> str:
        return "Save changes" if self.is_editing else "Add"

    @property
    def grouping(self) -> Grouping:
        return group_catalog(list(self.books), self.mode)

    def find(self, book_id: int) -> Optional[Book]:
        for book in self.books:
            if book.id == book_id:
                return book
        return None


# Events

@dataclass(frozen=True)
class LoadCatalog:
    books: Tuple[Book, ...]
    recommendation: Optional[Book] = None
    last_id: int = 0


@dataclass(frozen=True)
class BeginEdit:
    book: Book


@dataclass(frozen=True)
class SetField:
    name: str
    value: str


@dataclass(frozen=True)
class Submit:
    """Create or update, depending on whether a book is selected."""


@dataclass(frozen=True)
class SubmitCreate:
    pass


@dataclass(frozen=True)
class SubmitUpdate:
    pass


@dataclass(frozen=True)
class CancelEdit:
    pass


@dataclass(frozen=True)
class Delete:
    book_id: int


@dataclass(frozen=True)
class ToggleGrouping:
    pass


Event = Union[
    LoadCatalog, BeginEdit, SetField, Submit, SubmitCreate,
    SubmitUpdate, CancelEdit, Delete, ToggleGrouping,
]


# Store writes requested by a transition

@dataclass(frozen=True)
class SaveBook:
    book: Book


@dataclass(frozen=True)
class SaveCounter:
    last_id: int


@dataclass(frozen=True)
class RemoveBook:
    book_id: int


Command = Union[SaveBook, SaveCounter, RemoveBook]


@dataclass(frozen=True)
class Transition:
    state: CatalogState
    commands: Tuple[Command, ...] = ()

    @property
    def writes(self) -> bool:
        return bool(self.commands)


def next_id(books: Iterable[Book], last_id: int = 0) -> int:
    """``max(existing ids, last_id) + 1``; 1 for a catalog that never held a book."""
    return max([book.id for book in books] + [last_id, 0]) + 1


def load_catalog(state: CatalogState, event: LoadCatalog) -> Transition:
    books = tuple(event.books)
    last_id = max([book.id for book in books] + [state.last_id, event.last_id])
    return Transition(replace(
        state,
        books=books,
        recommendation=event.recommendation,
        last_id=last_id,
    ))


def begin_edit(state: CatalogState, event: BeginEdit) -> Transition:
    return Transition(replace(state, selected=event.book, form=FormFields.from_book(event.book)))


def set_field(state: CatalogState, event: SetField) -> Transition:
    if event.name not in FormFields.field_names():
        raise CatalogError(f"Unknown form field: {event.name}")
    return Transition(replace(state, form=replace(state.form, **{event.name: event.value})))


def submit_create(state: CatalogState, event: Optional[SubmitCreate] = None) -> Transition:
    values = validate_form(state.form)
    book = Book(id=next_id(state.books, state.last_id), **values)
    # Counter first: a failed book write then leaves a gap, never a reused id
    return Transition(
        replace(state, form=FormFields(), last_id=book.id),
        (SaveCounter(book.id), SaveBook(book)),
    )


def submit_update(state: CatalogState, event: Optional[SubmitUpdate] = None) -> Transition:
    if state.selected is None:
        raise CatalogError("No book is selected for editing")
    values = validate_form(state.form)
    book = replace(state.selected, **values)
    return Transition(
        replace(state, form=FormFields(), selected=None),
        (SaveBook(book),),
    )


def submit(state: CatalogState, event: Optional[Submit] = None) -> Transition:
    if state.is_editing:
        return submit_update(state)
    return submit_create(state)


def cancel_edit(state: CatalogState, event: Optional[CancelEdit] = None) -> Transition:
    return Transition(replace(state, form=FormFields(), selected=None))


def delete(state: CatalogState, event: Delete) -> Transition:
    # The selection is kept: saving it afterwards writes the record back
    return Transition(state, (RemoveBook(event.book_id),))


def toggle_grouping(state: CatalogState, event: Optional[ToggleGrouping] = None) -> Transition:
    return Transition(replace(state, mode=state.mode.toggled()))


_HANDLERS = {
    LoadCatalog: load_catalog,
    BeginEdit: begin_edit,
    SetField: set_field,
    Submit: submit,
    SubmitCreate: submit_create,
    SubmitUpdate: submit_update,
    CancelEdit: cancel_edit,
    Delete: delete,
    ToggleGrouping: toggle_grouping,
}


def transition(state: CatalogState, event: Event) -> Transition:
    """
    Apply one event.

    Raises:
        InvalidRecord: Submitted form failed validation
        CatalogError: Update without a selection, or unknown form field
    """
    return _HANDLERS[type(event)](state, event)
