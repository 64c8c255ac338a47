#!/usr/bin/env python3
"""Bookshelf CLI - personal book catalog backed by a document store."""
import argparse
import asyncio
import logging
import shlex
import sys

from bookshelf.catalog import CatalogSession
from bookshelf.config import Config
from bookshelf.errors import CatalogError
from bookshelf.grouping import GroupingMode
from bookshelf.render import FORMATS, render_book, render_catalog, render_form
from bookshelf.store import open_store

logger = logging.getLogger(__name__)

FIELDS = ["title", "author", "year", "rating", "isbn"]

SHELL_HELP = """Commands:
  list [table|compact|json]   show the catalog
  toggle                      switch grouping between year and author
  recommend                   show the recommended book
  add                         start a new book (clears the form)
  edit ID                     load a book into the form
  set FIELD VALUE             change a form field (title, author, year, rating, isbn)
  form                        show the form
  save                        add or save changes, depending on the form mode
  cancel                      leave edit mode without saving
  delete ID                   remove a book
  help                        show this help
  quit                        leave the shell"""


def print_catalog(session: CatalogSession, format_type: str):
    print(render_catalog(session.grouping, session.recommendation_text, format_type))


async def fill_form(session: CatalogSession, args):
    for name in FIELDS:
        value = getattr(args, name, None)
        if value is not None:
            await session.set_field(name, value)


async def list_books(session: CatalogSession, args):
    """Show the catalog grouped by year or author."""
    if GroupingMode(args.group) is not session.state.mode:
        await session.toggle_grouping()
    print_catalog(session, args.format)


async def add_book(session: CatalogSession, args):
    """Create a book from command line fields."""
    await fill_form(session, args)
    before = {book.id for book in session.state.books}
    await session.submit()

    added = [book for book in session.state.books if book.id not in before]
    for book in added:
        logger.info(f"✅ Added book {book.id}")
        print(render_book(book))


async def edit_book(session: CatalogSession, args):
    """Load a book into the form, overwrite the given fields and save."""
    await session.begin_edit(args.id)
    await fill_form(session, args)
    await session.submit()

    book = session.state.find(args.id)
    if book:
        logger.info(f"✅ Saved book {book.id}")
        print(render_book(book))


async def delete_book(session: CatalogSession, args):
    """Remove a book by id."""
    if session.state.find(args.id) is None:
        logger.warning(f"Book {args.id} is not in the catalog")
    await session.delete(args.id)
    logger.info(f"✅ Deleted book {args.id}")


async def show_recommendation(session: CatalogSession, args):
    print(session.recommendation_text or "No recommendation yet")


async def run_shell(session: CatalogSession, args):
    """Interactive session keeping the form and selection between commands."""
    print(SHELL_HELP)

    while True:
        try:
            line = await asyncio.to_thread(input, "shelf> ")
        except EOFError:
            break

        try:
            words = shlex.split(line)
        except ValueError as e:
            print(f"❌ {e}")
            continue
        if not words:
            continue

        command, rest = words[0], words[1:]
        if command in ("quit", "exit"):
            break

        try:
            await run_shell_command(session, command, rest)
        except CatalogError as e:
            # The state is unchanged; let the user fix the form and retry
            print(f"❌ {e}")


async def run_shell_command(session: CatalogSession, command: str, rest):
    if command == "list":
        print_catalog(session, rest[0] if rest else "compact")
    elif command == "toggle":
        await session.toggle_grouping()
        print(f"Grouping by {session.state.mode.value}")
    elif command == "recommend":
        print(session.recommendation_text or "No recommendation yet")
    elif command == "add":
        await session.cancel()
        print(render_form(session.state))
    elif command == "edit" and len(rest) == 1 and rest[0].isdigit():
        await session.begin_edit(int(rest[0]))
        print(render_form(session.state))
    elif command == "set" and len(rest) >= 1:
        await session.set_field(rest[0], " ".join(rest[1:]))
    elif command == "form":
        print(render_form(session.state))
    elif command == "save":
        await session.submit()
        print_catalog(session, "compact")
    elif command == "cancel":
        await session.cancel()
    elif command == "delete" and len(rest) == 1 and rest[0].isdigit():
        await session.delete(int(rest[0]))
        print_catalog(session, "compact")
    else:
        print(SHELL_HELP)


COMMANDS = {
    "list": list_books,
    "add": add_book,
    "edit": edit_book,
    "delete": delete_book,
    "recommend": show_recommendation,
    "shell": run_shell,
}


async def run(args, config: Config):
    """Open the store, load the catalog and run one command."""
    async with open_store(config, args.backend) as store:
        session = CatalogSession.from_config(store, config)
        await session.refresh()
        await COMMANDS[args.command](session, args)


def add_field_arguments(parser, required: bool):
    parser.add_argument("--title", required=required, help="Book title (max 100 characters)")
    parser.add_argument("--author", required=required, help="Author name(s)")
    parser.add_argument("--year", help="Publication year (1800 or later)")
    parser.add_argument("--rating", help="Rating from 0 to 10")
    parser.add_argument("--isbn", help="ISBN, e.g. 978-0-441-17271-9")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Bookshelf - personal book catalog",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Show books grouped by year
  %(prog)s list

  # Group by author as plain text
  %(prog)s list --group author --format compact

  # Add and edit
  %(prog)s add --title "Dune" --author "Frank Herbert" --year 1965 --rating 9
  %(prog)s edit 1 --rating 10

  # Interactive session
  %(prog)s shell
        """
    )
    parser.add_argument("--backend", choices=["firestore", "postgres"], help="Override STORE_BACKEND")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # List command
    list_parser = subparsers.add_parser("list", help="Show the catalog")
    list_parser.add_argument("--group", choices=[mode.value for mode in GroupingMode], default="year", help="Grouping (default: year)")
    list_parser.add_argument("--format", choices=FORMATS, default="table", help="Output format")

    # Add command
    add_parser = subparsers.add_parser("add", help="Add a book")
    add_field_arguments(add_parser, required=True)

    # Edit command
    edit_parser = subparsers.add_parser("edit", help="Edit a book")
    edit_parser.add_argument("id", type=int, help="Book id")
    add_field_arguments(edit_parser, required=False)

    # Delete command
    delete_parser = subparsers.add_parser("delete", help="Delete a book")
    delete_parser.add_argument("id", type=int, help="Book id")

    subparsers.add_parser("recommend", help="Show the recommended book")
    subparsers.add_parser("shell", help="Interactive session")

    return parser


def main():
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    config = Config()

    # Configure logging
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    try:
        asyncio.run(run(args, config))

    except KeyboardInterrupt:
        logger.info("\n⚠️  Interrupted by user")
        sys.exit(0)
    except CatalogError as e:
        logger.error(f"❌ {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"❌ Error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
