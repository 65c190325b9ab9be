"""Clear tables in foreign key order and reset auto increment counters.

Usage:
    >>> with engine.connect() as connection:
    ...     cleaner = Cleaner(SQLAlchemyExecutor(connection), exclude_tables=["alembic_version"])
    ...     cleaner.truncate_all_tables()
    ...     cleaner.reset_auto_increment_counters()
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from alchemy_fixtures.dependencies import resolve_table_order
from alchemy_fixtures.dialects import get_dialect
from alchemy_fixtures.exceptions import ImproperConfigurationError, wrap_statement_exception
from alchemy_fixtures.inspector import SQLAlchemySchemaInspector

if TYPE_CHECKING:
    from collections.abc import Sequence

    from alchemy_fixtures.dialects import Dialect
    from alchemy_fixtures.executor import SQLExecutor
    from alchemy_fixtures.inspector import SchemaInspector
    from alchemy_fixtures.utils.sync_tools import CancellationToken

__all__ = ("Cleaner",)

logger = logging.getLogger("alchemy_fixtures.cleaner")


class Cleaner:
    """Resets the database to a clean state before fixtures are loaded.

    Each statement is executed and committed on its own: a failure leaves the
    tables processed so far cleared. Wrap calls in
    :meth:`SQLExecutor.transaction` where the backend supports transactional
    DDL and atomicity is needed.

    Args:
        executor: Executes the clear and reset statements.
        inspector: Source of table names and foreign keys. Defaults to a
            :class:`SQLAlchemySchemaInspector` on the executor's connection.
        exclude_tables: Tables never touched, e.g. the migration version table.
        include_only: When given, only these tables are touched.
        dialect: Statement builder. Defaults to the one registered for
            ``executor.dialect_name``.
    """

    def __init__(
        self,
        executor: SQLExecutor,
        inspector: Optional[SchemaInspector] = None,
        *,
        exclude_tables: Sequence[str] = (),
        include_only: Optional[Sequence[str]] = None,
        dialect: Optional[Dialect] = None,
    ) -> None:
        if inspector is None:
            connection = getattr(executor, "connection", None)
            if connection is None:
                msg = "An inspector is required when the executor does not expose a SQLAlchemy connection."
                raise ImproperConfigurationError(detail=msg)
            inspector = SQLAlchemySchemaInspector(connection)
        self.executor = executor
        self.inspector = inspector
        self.exclude_tables = set(exclude_tables)
        self.include_only = set(include_only) if include_only is not None else None
        self.dialect = dialect or get_dialect(executor.dialect_name)

    def get_table_list(self) -> list[str]:
        """Tables to clean, respecting the include and exclude filters."""
        tables = self.inspector.list_tables()
        if self.include_only is not None:
            return [table for table in tables if table in self.include_only]
        return [table for table in tables if table not in self.exclude_tables]

    def resolve_order(self) -> list[str]:
        """Order the tables so each comes after every table it references.

        Raises:
            CyclicDependencyError: If the foreign keys between the tables form a cycle.
        """
        tables = self.get_table_list()
        references = {table: self.inspector.references_of(table) for table in tables}
        return resolve_table_order(tables, references)

    def truncate_all_tables(self, cancellation: Optional[CancellationToken] = None) -> list[str]:
        """Clear every table, one statement per table.

        The order is resolved before the first statement, so a cycle leaves
        every table untouched. Dialects that clear with plain ``DELETE``
        statements walk the order backwards, referencing tables first.

        Raises:
            CyclicDependencyError: If the tables cannot be ordered.
            StatementExecutionError: If clearing a table fails; the error names the table.
            LoadCancelledError: If ``cancellation`` fires between two tables.

        Returns:
            The resolved order, see :meth:`resolve_order`.
        """
        order = self.resolve_order()
        logger.info("truncating %d tables", len(order))
        self._execute_optional(self.dialect.disable_constraints_statement(), "foreign key checks")
        try:
            for table in reversed(order) if self.dialect.clears_children_first else order:
                if cancellation is not None:
                    cancellation.raise_if_cancelled()
                with wrap_statement_exception(table):
                    self.executor.execute(self.dialect.truncate_statement(table))
                logger.debug("truncated table %s", table)
        finally:
            self._execute_optional(self.dialect.enable_constraints_statement(), "foreign key checks")
        return order

    def reset_auto_increment_counters(self, cancellation: Optional[CancellationToken] = None) -> int:
        """Restart the auto increment counter of every table.

        Dialects without counter reset support are skipped with a warning.

        Raises:
            StatementExecutionError: If resetting a counter fails; the error names the table.
            LoadCancelledError: If ``cancellation`` fires between two tables.

        Returns:
            The number of reset statements issued.
        """
        if not self.dialect.supports_counter_reset:
            logger.warning(
                "auto increment reset is not supported for the %r dialect, skipping",
                self.executor.dialect_name,
            )
            return 0
        if not self._has_counter_store():
            logger.debug("no auto increment counters to reset")
            return 0
        issued = 0
        for table in self.get_table_list():
            statement = self.dialect.reset_counter_statement(table)
            if statement is None:
                continue
            if cancellation is not None:
                cancellation.raise_if_cancelled()
            with wrap_statement_exception(table):
                self.executor.execute(statement)
            issued += 1
        logger.info("reset auto increment counters of %d tables", issued)
        return issued

    def _has_counter_store(self) -> bool:
        query = self.dialect.counter_store_query
        if query is None:
            return True
        with wrap_statement_exception("counter store"):
            return self.executor.execute(query).first() is not None

    def _execute_optional(self, statement: Optional[str], target: str) -> None:
        if statement is None:
            return
        with wrap_statement_exception(target):
            self.executor.execute(statement)
