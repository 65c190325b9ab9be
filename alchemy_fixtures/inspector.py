from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

from sqlalchemy import inspect

from alchemy_fixtures.exceptions import wrap_statement_exception

if TYPE_CHECKING:
    from sqlalchemy import Connection

__all__ = ("SQLAlchemySchemaInspector", "SchemaInspector")


@runtime_checkable
class SchemaInspector(Protocol):
    """Reads table names and foreign key targets from the database schema."""

    def list_tables(self) -> list[str]: ...

    def references_of(self, table: str) -> set[str]:
        """Tables that ``table`` references through its foreign keys."""
        ...


class SQLAlchemySchemaInspector:
    """:class:`SchemaInspector` backed by :func:`sqlalchemy.inspect`.

    Args:
        connection: Connection to reflect from.
        schema: Schema to reflect, the connection's default schema when ``None``.
    """

    def __init__(self, connection: Connection, schema: Optional[str] = None) -> None:
        self.connection = connection
        self.schema = schema

    def list_tables(self) -> list[str]:
        with wrap_statement_exception(self.schema or "<default schema>"):
            return list(inspect(self.connection).get_table_names(schema=self.schema))

    def references_of(self, table: str) -> set[str]:
        with wrap_statement_exception(table):
            foreign_keys = inspect(self.connection).get_foreign_keys(table, schema=self.schema)
        return {fk["referred_table"] for fk in foreign_keys if fk.get("referred_table")}
