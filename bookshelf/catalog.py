"""Catalog session: applies transitions and performs their store I/O."""
import logging
import random
from typing import Optional

from bookshelf.config import Config
from bookshelf.errors import BookNotFound, StoreError
from bookshelf.grouping import Grouping
from bookshelf.parse import deduplicate_books, parse_catalog, parse_int
from bookshelf.recommend import DEFAULT_WINDOW_YEARS, format_recommendation, recommend
from bookshelf.state import (
    BeginEdit,
    CancelEdit,
    CatalogState,
    Command,
    Delete,
    Event,
    LoadCatalog,
    RemoveBook,
    SaveBook,
    SaveCounter,
    SetField,
    Submit,
    ToggleGrouping,
    transition,
)
from bookshelf.store import DocumentStore

logger = logging.getLogger(__name__)


class CatalogSession:
    """
    Holds the catalog state for one user session.

    The catalog is loaded when the session opens and again after every
    successful write. Groupings and the recommendation are derived from the
    loaded books and never trigger a load themselves. A failed write keeps
    the form and selection; the catalog is reloaded if part of it landed.
    """

    def __init__(
        self,
        store: DocumentStore,
        collection: str = "books",
        meta_collection: str = "catalog_meta",
        rng: Optional[random.Random] = None,
        current_year: Optional[int] = None,
        window: int = DEFAULT_WINDOW_YEARS
    ):
        """
        Args:
            store: Document store holding the books
            collection: Collection with one record per book
            meta_collection: Collection holding the id counter
            rng: Random source for the recommendation draw
            current_year: Fixes "this year" for the recommendation
            window: Years that still count as recent
        """
        self.store = store
        self.collection = collection
        self.meta_collection = meta_collection
        self.rng = rng or random.Random()
        self.current_year = current_year
        self.window = window
        self._state = CatalogState()

    @classmethod
    def from_config(cls, store: DocumentStore, config: Config, **kwargs) -> "CatalogSession":
        return cls(
            store,
            collection=config.BOOKS_COLLECTION,
            meta_collection=config.META_COLLECTION,
            window=config.RECOMMEND_WINDOW_YEARS,
            **kwargs
        )

    @property
    def state(self) -> CatalogState:
        return self._state

    @property
    def grouping(self) -> Grouping:
        return self._state.grouping

    @property
    def recommendation_text(self) -> str:
        return format_recommendation(self._state.recommendation)

    async def refresh(self) -> CatalogState:
        """Load the full catalog and re-derive the recommendation."""
        records = await self.store.list_all(self.collection)
        books = deduplicate_books(parse_catalog(records))

        counter = await self.store.get(self.meta_collection, self.collection) or {}
        last_id = parse_int(counter.get("last_id")) or 0

        picked = recommend(books, rng=self.rng, current_year=self.current_year, window=self.window)
        self._state = transition(
            self._state,
            LoadCatalog(tuple(books), recommendation=picked, last_id=last_id)
        ).state

        logger.info(f"Loaded {len(books)} books from {self.collection}")
        return self._state

    async def dispatch(self, event: Event) -> CatalogState:
        """
        Apply an event, run its writes, and reload the catalog if anything was written.

        Args:
            event: One of the events from ``bookshelf.state``

        Returns:
            The new state

        Raises:
            InvalidRecord: Form input failed validation
            StoreError: A write failed; form and selection are unchanged,
                and the catalog is reloaded if an earlier write went through
        """
        result = transition(self._state, event)

        done = 0
        try:
            for command in result.commands:
                await self._execute(command)
                done += 1
        except StoreError:
            if done:
                await self._reload_after_partial_write()
            raise

        self._state = result.state
        if result.writes:
            await self.refresh()
        return self._state

    async def _reload_after_partial_write(self) -> None:
        """Bring the catalog back in line with the store; the form and selection are kept."""
        logger.warning("Write failed after earlier writes succeeded; reloading catalog")
        try:
            await self.refresh()
        except StoreError as e:
            logger.error(f"Reload after failed write also failed: {e}")

    async def _execute(self, command: Command) -> None:
        if isinstance(command, SaveBook):
            await self.store.upsert(self.collection, command.book.key, command.book.to_record())
            logger.info(f"Saved book {command.book.id}: {command.book.title}")
        elif isinstance(command, SaveCounter):
            await self.store.upsert(self.meta_collection, self.collection, {"last_id": command.last_id})
        elif isinstance(command, RemoveBook):
            await self.store.delete(self.collection, str(command.book_id))
            logger.info(f"Deleted book {command.book_id}")
        else:
            raise TypeError(f"Unknown command: {command!r}")

    # Named actions used by the CLI

    async def begin_edit(self, book_id: int) -> CatalogState:
        book = self._state.find(book_id)
        if book is None:
            raise BookNotFound(book_id)
        return await self.dispatch(BeginEdit(book))

    async def set_field(self, name: str, value: str) -> CatalogState:
        return await self.dispatch(SetField(name, value))

    async def submit(self) -> CatalogState:
        return await self.dispatch(Submit())

    async def cancel(self) -> CatalogState:
        return await self.dispatch(CancelEdit())

    async def delete(self, book_id: int) -> CatalogState:
        return await self.dispatch(Delete(book_id))

    async def toggle_grouping(self) -> CatalogState:
        return await self.dispatch(ToggleGrouping())
