from __future__ import annotations

from abc import ABCMeta, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from collections.abc import Sequence

    from alchemy_fixtures.executor import SQLExecutor
    from alchemy_fixtures.references import ReferenceStore

__all__ = (
    "DependentFixture",
    "Fixture",
    "Ref",
    "TableFixture",
)


class Fixture(metaclass=ABCMeta):
    """A named unit of work that writes test data to the database.

    Fixtures are compared by identity. Subclasses implement :meth:`load`; a
    fixture that must run after others overrides :meth:`required_relations`
    (or inherits from :class:`DependentFixture`).
    """

    @property
    def name(self) -> str:
        """Name used for lookup and logging. Defaults to the class name."""
        return type(self).__name__

    @abstractmethod
    def load(self, references: ReferenceStore, executor: SQLExecutor) -> None:
        """Write this fixture's data.

        Args:
            references: The store shared by every fixture of the current run.
            executor: Executes statements against the target database.
        """

    def required_relations(self) -> Optional[Sequence[Fixture]]:
        """Fixtures that must be loaded before this one.

        Returns:
            ``None`` for fixtures without declared dependencies, otherwise the
            ordered sequence of required fixtures.
        """
        return None

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name!r}>"


class DependentFixture(Fixture):
    """A fixture that declares the fixtures it requires."""

    @abstractmethod
    def required_relations(self) -> Sequence[Fixture]: ...


@dataclass(frozen=True)
class Ref:
    """Placeholder for a value another fixture stored in the reference store.

    ``Ref("customer:alice", "id")`` resolves to ``references.require("customer:alice")["id"]``.
    """

    key: str
    attribute: Optional[str] = None

    def resolve(self, references: ReferenceStore) -> Any:
        value = references.require(self.key)
        if self.attribute is None:
            return value
        if isinstance(value, Mapping):
            return value[self.attribute]
        return getattr(value, self.attribute)


class TableFixture(Fixture):
    """Insert literal rows into one table.

    Row values that are :class:`Ref` instances are resolved against the
    reference store at load time. ``publish`` maps reference ids to row
    indexes; after insertion each of those rows (with references resolved) is
    stored under its id for later fixtures.

    Example:
        >>> customers = TableFixture(
        ...     "customers",
        ...     [{"id": 1, "name": "Alice"}],
        ...     publish={"customer:alice": 0},
        ... )
        >>> orders = TableFixture(
        ...     "orders",
        ...     [{"id": 10, "customer_id": Ref("customer:alice", "id")}],
        ...     requires=[customers],
        ... )
    """

    def __init__(
        self,
        table: str,
        rows: Sequence[Mapping[str, Any]],
        *,
        name: Optional[str] = None,
        requires: Sequence[Fixture] = (),
        publish: Optional[Mapping[str, int]] = None,
    ) -> None:
        self.table = table
        self.rows = list(rows)
        self.requires = list(requires)
        self.publish = dict(publish or {})
        self._name = name or table

    @property
    def name(self) -> str:
        return self._name

    def required_relations(self) -> Optional[Sequence[Fixture]]:
        return self.requires or None

    def load(self, references: ReferenceStore, executor: SQLExecutor) -> None:
        rows = [
            {column: value.resolve(references) if isinstance(value, Ref) else value for column, value in row.items()}
            for row in self.rows
        ]
        if rows:
            executor.insert_rows(self.table, rows)
        for key, index in self.publish.items():
            references.set(key, rows[index])
