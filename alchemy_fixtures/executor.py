from __future__ import annotations

import logging
import threading
from contextlib import AbstractContextManager, contextmanager
from typing import TYPE_CHECKING, Any, Protocol, Union, runtime_checkable

from sqlalchemy import column, insert, text
from sqlalchemy import table as table_clause
from sqlalchemy.exc import SQLAlchemyError

if TYPE_CHECKING:
    from collections.abc import Generator, Mapping, Sequence

    from sqlalchemy import Connection, Result
    from sqlalchemy.sql import Executable

__all__ = (
    "Parameters",
    "SQLAlchemyExecutor",
    "SQLExecutor",
    "Statement",
)

logger = logging.getLogger("alchemy_fixtures.executor")

Statement = Union[str, "Executable"]
Parameters = Union["Mapping[str, Any]", "Sequence[Mapping[str, Any]]", None]


@runtime_checkable
class SQLExecutor(Protocol):
    """Runs statements against the target database."""

    @property
    def dialect_name(self) -> str:
        """Name of the backend, e.g. ``"postgresql"``."""
        ...

    def execute(self, statement: Statement, parameters: Parameters = None) -> Any: ...

    def insert_rows(self, table: str, rows: Sequence[Mapping[str, Any]]) -> None: ...

    def transaction(self) -> AbstractContextManager[None]: ...


class SQLAlchemyExecutor:
    """:class:`SQLExecutor` on top of a SQLAlchemy :class:`Connection <sqlalchemy.engine.Connection>`.

    Outside :meth:`transaction` every statement is committed on its own and a
    failing statement is rolled back, so earlier statements stay applied.
    Statement execution is serialized, which lets fixtures running on worker
    threads share one executor.

    Args:
        connection: An open connection owned by the caller.
    """

    def __init__(self, connection: Connection) -> None:
        self.connection = connection
        self._lock = threading.RLock()
        self._depth = 0

    @property
    def dialect_name(self) -> str:
        return self.connection.dialect.name

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    def execute(self, statement: Statement, parameters: Parameters = None) -> Result[Any]:
        """Execute ``statement`` and return its result.

        Plain strings are wrapped in :func:`sqlalchemy.text`. Row returning
        results are buffered so they stay readable after the commit.
        """
        if isinstance(statement, str):
            statement = text(statement)
        with self._lock:
            logger.debug("executing %s", statement)
            try:
                result = self.connection.execute(statement, parameters)  # type: ignore[arg-type]
                if result.returns_rows:
                    result = result.freeze()()  # type: ignore[assignment]
            except SQLAlchemyError:
                if not self._depth:
                    self.connection.rollback()
                raise
            if not self._depth:
                self.connection.commit()
            return result

    def insert_rows(self, table: str, rows: Sequence[Mapping[str, Any]]) -> None:
        """Insert ``rows`` into ``table`` with a single executemany statement."""
        if not rows:
            return
        columns = list(dict.fromkeys(name for row in rows for name in row))
        statement = insert(table_clause(table, *(column(name) for name in columns)))
        self.execute(statement, [dict(row) for row in rows])

    @contextmanager
    def transaction(self) -> Generator[None, None, None]:
        """Run the enclosed statements in one transaction.

        The outermost scope begins a transaction and nested scopes use a
        savepoint. A scope commits on success and rolls back when the block
        raises.
        """
        with self._lock:
            if self._depth:
                trans = self.connection.begin_nested()
            else:
                if self.connection.in_transaction():
                    # left open by autobegin, e.g. after schema inspection
                    self.connection.commit()
                trans = self.connection.begin()
            self._depth += 1
        try:
            yield
        except BaseException:
            with self._lock:
                self._depth -= 1
                trans.rollback()
            raise
        with self._lock:
            self._depth -= 1
            trans.commit()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(dialect={self.dialect_name!r})"

