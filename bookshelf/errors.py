"""Exceptions raised by the catalog and its stores."""


class CatalogError(Exception):
    """Base class for every catalog failure."""


class InvalidRecord(CatalogError):
    """Input the user has to correct before it can be saved."""


class BookNotFound(CatalogError):
    """No book with the requested id is in the loaded catalog."""

    def __init__(self, book_id: int):
        super().__init__(f"No book with id {book_id}")
        self.book_id = book_id


class StoreError(CatalogError):
    """The document store failed to complete a request."""


class StoreUnavailable(StoreError):
    """Transient store failure; the request may succeed if retried later."""


class StoreRejected(StoreError):
    """The store refused the request (permissions, unknown collection...)."""
