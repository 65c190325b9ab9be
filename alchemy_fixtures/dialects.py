from __future__ import annotations

from typing import ClassVar, Optional

__all__ = (
    "DIALECTS",
    "Dialect",
    "GenericDialect",
    "MySQLDialect",
    "PostgresDialect",
    "SQLiteDialect",
    "get_dialect",
)


class Dialect:
    """Statement builders for clearing tables and resetting counters on one backend."""

    name: ClassVar[str] = "generic"
    quote_char: ClassVar[str] = '"'
    supports_counter_reset: ClassVar[bool] = False
    clears_children_first: ClassVar[bool] = True
    """Clear referencing tables before the tables they reference."""
    counter_store_query: ClassVar[Optional[str]] = None
    """Query returning a row when the table holding the counters exists."""

    def quote(self, identifier: str) -> str:
        escaped = identifier.replace(self.quote_char, self.quote_char * 2)
        return f"{self.quote_char}{escaped}{self.quote_char}"

    def truncate_statement(self, table: str) -> str:
        return f"DELETE FROM {self.quote(table)}"  # noqa: S608

    def reset_counter_statement(self, table: str) -> Optional[str]:  # noqa: ARG002
        """Statement restarting the table's auto increment counter, ``None`` when unsupported."""
        return None

    def literal(self, value: str) -> str:
        escaped = value.replace("'", "''")
        return f"'{escaped}'"

    def disable_constraints_statement(self) -> Optional[str]:
        return None

    def enable_constraints_statement(self) -> Optional[str]:
        return None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class GenericDialect(Dialect):
    """Fallback for backends without dedicated support."""


class MySQLDialect(Dialect):
    name: ClassVar[str] = "mysql"
    quote_char: ClassVar[str] = "`"
    supports_counter_reset: ClassVar[bool] = True
    clears_children_first: ClassVar[bool] = False

    def truncate_statement(self, table: str) -> str:
        return f"TRUNCATE TABLE {self.quote(table)}"

    def reset_counter_statement(self, table: str) -> Optional[str]:
        return f"ALTER TABLE {self.quote(table)} AUTO_INCREMENT = 1"

    def disable_constraints_statement(self) -> Optional[str]:
        # TRUNCATE refuses tables referenced by a foreign key, empty or not.
        return "SET foreign_key_checks = 0"

    def enable_constraints_statement(self) -> Optional[str]:
        return "SET foreign_key_checks = 1"


class PostgresDialect(Dialect):
    name: ClassVar[str] = "postgresql"
    supports_counter_reset: ClassVar[bool] = True
    clears_children_first: ClassVar[bool] = False

    def truncate_statement(self, table: str) -> str:
        return f"TRUNCATE TABLE {self.quote(table)} CASCADE"

    def reset_counter_statement(self, table: str) -> Optional[str]:
        return f"ALTER SEQUENCE IF EXISTS {self.quote(f'{table}_id_seq')} RESTART WITH 1"


class SQLiteDialect(Dialect):
    name: ClassVar[str] = "sqlite"
    supports_counter_reset: ClassVar[bool] = True
    # only created once a table declares AUTOINCREMENT
    counter_store_query: ClassVar[Optional[str]] = (
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = 'sqlite_sequence'"
    )

    def reset_counter_statement(self, table: str) -> Optional[str]:
        return f"DELETE FROM sqlite_sequence WHERE name = {self.literal(table)}"

    def disable_constraints_statement(self) -> Optional[str]:
        # PRAGMA foreign_keys is a no-op inside a transaction, deferral is not.
        # Resets on the next COMMIT or ROLLBACK.
        return "PRAGMA defer_foreign_keys = ON"


DIALECTS: dict[str, type[Dialect]] = {
    "mysql": MySQLDialect,
    "mariadb": MySQLDialect,
    "postgresql": PostgresDialect,
    "sqlite": SQLiteDialect,
}


def get_dialect(dialect_name: str) -> Dialect:
    """Return the dialect registered for a SQLAlchemy dialect name.

    Unknown names get :class:`GenericDialect`, which clears tables with
    ``DELETE`` and does not reset counters.
    """
    return DIALECTS.get(dialect_name, GenericDialect)()
