"""Tests for the catalog session against an in-memory store."""
import random

import pytest

from bookshelf.catalog import CatalogSession
from bookshelf.errors import BookNotFound, InvalidRecord, StoreUnavailable
from bookshelf.grouping import GroupingMode
from bookshelf.models import FormFields

from conftest import FixedRandom

YEAR = 2026


def new_session(store, rng=None):
    return CatalogSession(store, rng=rng or random.Random(0), current_year=YEAR)


async def add(session, **fields):
    for name, value in fields.items():
        await session.set_field(name, value)
    return await session.submit()


@pytest.mark.asyncio
async def test_first_book_gets_id_one(store):
    """Test that the first book added to an empty catalog gets id 1."""
    session = new_session(store)
    await session.refresh()

    await add(session, title="Dune", author="Herbert", year="1965", rating="9")

    assert store.books()["1"] == {
        "id": 1, "title": "Dune", "author": "Herbert", "year": 1965, "rating": 9, "isbn": None,
    }
    assert [book.id for book in session.state.books] == [1]


@pytest.mark.asyncio
async def test_deleted_max_id_is_not_reused(store):
    """Test that deleting the highest id does not free it for the next book."""
    session = new_session(store)
    await session.refresh()
    for title in ("One", "Two", "Three"):
        await add(session, title=title, author="A")

    await session.delete(3)
    await add(session, title="Four", author="A")

    assert sorted(store.books()) == ["1", "2", "4"]


@pytest.mark.asyncio
async def test_counter_survives_a_new_session(store):
    """Test that the id counter is read back by a later session."""
    session = new_session(store)
    await session.refresh()
    await add(session, title="One", author="A")
    await add(session, title="Two", author="A")
    await session.delete(2)

    later = new_session(store)
    await later.refresh()
    await add(later, title="Three", author="A")

    assert sorted(store.books()) == ["1", "3"]


@pytest.mark.asyncio
async def test_dune_end_to_end(store):
    """Test adding one book and viewing it in both groupings."""
    session = new_session(store)
    await session.refresh()

    await add(session, title="Dune", author="Herbert", year="1965", rating="9")

    by_year = session.grouping
    assert [(group.key, [b.title for b in group.books]) for group in by_year.groups] == [(1965, ["Dune"])]

    await session.toggle_grouping()
    by_author = session.grouping
    assert [(group.key, [b.title for b in group.books]) for group in by_author.groups] == [("Herbert", ["Dune"])]

    assert session.state.recommendation is None
    assert session.recommendation_text == ""


@pytest.mark.asyncio
async def test_two_top_rated_books_this_year(store):
    """Test that reloads draw between tied top-rated books."""
    session = new_session(store, rng=random.Random(3))
    await session.refresh()
    await add(session, title="First", author="A", year=str(YEAR), rating="10")
    await add(session, title="Second", author="B", year=str(YEAR), rating="10")

    seen = set()
    for _ in range(20):
        await session.refresh()
        assert session.recommendation_text in ("---First---", "---Second---")
        seen.add(session.state.recommendation.title)

    assert seen == {"First", "Second"}


@pytest.mark.asyncio
async def test_injected_random_fixes_the_pick(store):
    """Test that an injected random source decides the recommendation."""
    session = new_session(store, rng=FixedRandom(1))
    await session.refresh()
    await add(session, title="First", author="A", year=str(YEAR), rating="10")
    await add(session, title="Second", author="B", year=str(YEAR), rating="10")

    assert session.state.recommendation.title == "Second"


@pytest.mark.asyncio
async def test_edit_overwrites_fields_and_keeps_id(store):
    """Test that saving an edit replaces the fields under the same id."""
    session = new_session(store)
    await session.refresh()
    await add(session, title="Dune", author="Herbert", year="1965", rating="9")

    await session.begin_edit(1)
    assert session.state.form == FormFields("Dune", "Herbert", "1965", "9", "")
    await session.set_field("rating", "10")
    await session.set_field("isbn", "978-0-441-17271-9")
    await session.submit()

    assert store.books()["1"]["rating"] == 10
    assert store.books()["1"]["isbn"] == "978-0-441-17271-9"
    assert store.books()["1"]["id"] == 1
    assert session.state.selected is None
    assert len(store.books()) == 1


@pytest.mark.asyncio
async def test_update_after_deleting_the_selected_book_recreates_it(store):
    """Test that saving a book deleted mid-edit writes it back."""
    session = new_session(store)
    await session.refresh()
    await add(session, title="Dune", author="Herbert")
    await add(session, title="Emma", author="Austen")

    await session.begin_edit(1)
    await session.delete(1)
    assert "1" not in store.books()
    assert session.state.is_editing

    await session.set_field("title", "Dune Messiah")
    await session.submit()

    assert store.books()["1"]["title"] == "Dune Messiah"
    assert {book.id for book in session.state.books} == {1, 2}
    assert not session.state.is_editing


@pytest.mark.asyncio
async def test_begin_edit_unknown_book(store):
    """Test that editing an unknown id raises BookNotFound."""
    session = new_session(store)
    await session.refresh()

    with pytest.raises(BookNotFound):
        await session.begin_edit(42)


@pytest.mark.asyncio
async def test_delete_missing_book_is_not_an_error(store):
    """Test that deleting an absent book succeeds."""
    session = new_session(store)
    await session.refresh()

    await session.delete(99)

    assert session.state.books == ()


@pytest.mark.asyncio
async def test_failed_write_leaves_state_unchanged(store):
    """Test that a failed write keeps the previous state and form."""
    session = new_session(store)
    await session.refresh()
    await session.set_field("title", "Dune")
    await session.set_field("author", "Herbert")
    before = session.state

    store.fail_writes = True
    with pytest.raises(StoreUnavailable):
        await session.submit()

    assert session.state == before
    assert session.state.form.title == "Dune"


@pytest.mark.asyncio
async def test_failed_counter_write_never_overwrites_a_book(store):
    """Test that a failed id counter write leaves no book behind to be overwritten."""
    session = new_session(store)
    await session.refresh()
    await session.set_field("title", "Dune")
    await session.set_field("author", "Herbert")

    store.fail_collections.add("catalog_meta")
    with pytest.raises(StoreUnavailable):
        await session.submit()

    assert store.books() == {}
    assert session.state.form.title == "Dune"

    store.fail_collections.clear()
    await session.submit()
    await add(session, title="Emma", author="Austen")

    assert {key: record["title"] for key, record in store.books().items()} == {"1": "Dune", "2": "Emma"}


@pytest.mark.asyncio
async def test_failed_book_write_after_counter_leaves_a_gap(store):
    """Test that a book write failing after the counter moved skips that id and reloads."""
    session = new_session(store)
    await session.refresh()
    await add(session, title="Dune", author="Herbert")
    await session.set_field("title", "Emma")
    await session.set_field("author", "Austen")
    calls = store.list_calls

    store.fail_collections.add("books")
    with pytest.raises(StoreUnavailable):
        await session.submit()

    assert store.list_calls == calls + 1
    assert session.state.last_id == 2
    assert session.state.form.title == "Emma"

    store.fail_collections.clear()
    await session.submit()

    assert {key: record["title"] for key, record in store.books().items()} == {"1": "Dune", "3": "Emma"}


@pytest.mark.asyncio
async def test_invalid_form_is_rejected_before_any_write(store):
    """Test that validation fails before the store is touched."""
    session = new_session(store)
    await session.refresh()
    await session.set_field("title", "Dune")

    with pytest.raises(InvalidRecord):
        await session.submit()

    assert store.books() == {}


@pytest.mark.asyncio
async def test_reload_only_after_writes(store):
    """Test that only writing events reload the catalog."""
    session = new_session(store)
    await session.refresh()
    calls = store.list_calls

    await session.toggle_grouping()
    await session.set_field("title", "T")
    _ = session.grouping
    assert store.list_calls == calls

    await session.set_field("author", "A")
    await session.submit()
    assert store.list_calls == calls + 1


@pytest.mark.asyncio
async def test_grouping_mode_survives_refresh(store):
    """Test that the grouping mode is kept across reloads."""
    session = new_session(store)
    await session.refresh()
    await session.toggle_grouping()

    await add(session, title="T", author="A")

    assert session.state.mode is GroupingMode.BY_AUTHOR
