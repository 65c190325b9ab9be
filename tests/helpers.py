from __future__ import annotations

import threading
from collections.abc import Generator, Mapping, Sequence
from contextlib import contextmanager
from typing import Any, Callable, Optional

from sqlalchemy.exc import OperationalError

from alchemy_fixtures.fixtures import Fixture
from alchemy_fixtures.references import ReferenceStore


class FakeResult:
    def __init__(self, rows: Sequence[Any]) -> None:
        self.rows = list(rows)

    def first(self) -> Any:
        return self.rows[0] if self.rows else None


class FakeExecutor:
    """Records statements instead of running them."""

    def __init__(
        self,
        dialect_name: str = "postgresql",
        fail_on: Optional[str] = None,
        results: Optional[Mapping[str, Sequence[Any]]] = None,
    ) -> None:
        self._dialect_name = dialect_name
        self.fail_on = fail_on
        self.results = dict(results or {})
        self.statements: list[str] = []
        self.inserted: list[tuple[str, list[dict[str, Any]]]] = []
        self.events: list[str] = []
        self._lock = threading.Lock()

    @property
    def dialect_name(self) -> str:
        return self._dialect_name

    def execute(self, statement: Any, parameters: Any = None) -> FakeResult:
        statement = str(statement)
        if self.fail_on is not None and self.fail_on in statement:
            raise OperationalError(statement, parameters, Exception("boom"))
        with self._lock:
            self.statements.append(statement)
        return FakeResult(self.results.get(statement, []))

    def insert_rows(self, table: str, rows: Sequence[Mapping[str, Any]]) -> None:
        with self._lock:
            self.inserted.append((table, [dict(row) for row in rows]))

    @contextmanager
    def transaction(self) -> Generator[None, None, None]:
        self.events.append("begin")
        try:
            yield
        except BaseException:
            self.events.append("rollback")
            raise
        self.events.append("commit")


class FakeInspector:
    def __init__(self, references: Mapping[str, Sequence[str]]) -> None:
        self.references = {table: set(targets) for table, targets in references.items()}

    def list_tables(self) -> list[str]:
        return list(self.references)

    def references_of(self, table: str) -> set[str]:
        return set(self.references[table])


class RecordingFixture(Fixture):
    """Appends its name to ``log`` when loaded and optionally runs ``action``."""

    def __init__(
        self,
        name: str,
        log: list[str],
        requires: Optional[Sequence[Fixture]] = None,
        action: Optional[Callable[[ReferenceStore, Any], None]] = None,
    ) -> None:
        self._name = name
        self.log = log
        self.requires = requires
        self.action = action

    @property
    def name(self) -> str:
        return self._name

    def required_relations(self) -> Optional[Sequence[Fixture]]:
        return self.requires

    def load(self, references: ReferenceStore, executor: Any) -> None:
        if self.action is not None:
            self.action(references, executor)
        self.log.append(self.name)


class RecordingReporter:
    def __init__(self) -> None:
        self.events: list[tuple[str, Any]] = []

    def start(self, total: int) -> None:
        self.events.append(("start", total))

    def describe(self, description: str) -> None:
        self.events.append(("describe", description))

    def advance(self) -> None:
        self.events.append(("advance", None))

    def finish(self) -> None:
        self.events.append(("finish", None))


def names(fixtures: Sequence[Fixture]) -> list[str]:
    return [fixture.name for fixture in fixtures]
