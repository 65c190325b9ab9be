from __future__ import annotations

from typing import TYPE_CHECKING

from rich import get_console
from sqlalchemy import ForeignKey, create_engine, func, select
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from alchemy_fixtures import DependentFixture, Fixture, FixtureLoader, LoadConfig, SQLAlchemyExecutor

if TYPE_CHECKING:
    from collections.abc import Sequence

    from alchemy_fixtures import ReferenceStore, SQLExecutor

console = get_console()


class Base(DeclarativeBase):
    pass


class Author(Base):
    __tablename__ = "author"
    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str]


class Book(Base):
    __tablename__ = "book"
    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str]
    author_id: Mapped[int] = mapped_column(ForeignKey("author.id"))


class AuthorFixture(Fixture):
    def load(self, references: ReferenceStore, executor: SQLExecutor) -> None:
        executor.insert_rows("author", [{"id": 1, "name": "Ursula K. Le Guin"}])
        references.set("author:le-guin", 1)


class BookFixture(DependentFixture):
    def __init__(self, author: AuthorFixture) -> None:
        self.author = author

    def required_relations(self) -> Sequence[Fixture]:
        return [self.author]

    def load(self, references: ReferenceStore, executor: SQLExecutor) -> None:
        author_id = references.require("author:le-guin")
        executor.insert_rows(
            "book",
            [
                {"id": 1, "title": "The Left Hand of Darkness", "author_id": author_id},
                {"id": 2, "title": "The Dispossessed", "author_id": author_id},
            ],
        )


engine = create_engine("sqlite:///:memory:")


def run_script() -> int:
    """Load the fixtures twice, clearing the tables before the second run."""

    # Initializes the database.
    with engine.begin() as conn:
        Base.metadata.create_all(conn)

    with engine.connect() as connection:
        executor = SQLAlchemyExecutor(connection)
        # BookFixture is listed first, AuthorFixture still loads before it.
        loader = FixtureLoader(executor, BookFixture(AuthorFixture()))

        loader.load()
        loader.load(LoadConfig(truncate_all_tables=True))

        books = executor.execute(select(func.count()).select_from(Book)).scalar_one()
        console.print(f"Loaded {books} books.")
        return books


if __name__ == "__main__":
    run_script()
