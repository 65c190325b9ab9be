from __future__ import annotations

import asyncio
import logging
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import TYPE_CHECKING, Any, Callable, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from alchemy_fixtures.cleaner import Cleaner
from alchemy_fixtures.config import LoadConfig
from alchemy_fixtures.dependencies import fixture_dependencies, group_by_depth, resolve_fixture_order
from alchemy_fixtures.exceptions import (
    FixtureLoadError,
    FixtureNotFoundError,
    LoadCancelledError,
    StatementExecutionError,
)
from alchemy_fixtures.progress import NullProgressReporter, RichProgressReporter
from alchemy_fixtures.references import ReferenceStore
from alchemy_fixtures.utils.sync_tools import CancellationToken, async_

if TYPE_CHECKING:
    from collections.abc import Sequence

    from alchemy_fixtures.executor import SQLExecutor
    from alchemy_fixtures.fixtures import Fixture
    from alchemy_fixtures.progress import ProgressReporter

__all__ = ("FixtureLoader",)

logger = logging.getLogger("alchemy_fixtures.loader")

ReturnT = TypeVar("ReturnT")


class FixtureLoader:
    """Loads a set of fixtures in dependency order.

    Args:
        executor: Executes the statements of the fixtures and the cleaner.
        *fixtures: The fixture set. Their order breaks ties between fixtures
            that do not depend on each other.
        cleaner: Used when a run truncates tables or resets counters.
            Defaults to a :class:`Cleaner` on ``executor``, created on first use.
        progress: Reporter used when ``show_progress_bar`` is enabled.
            Defaults to :class:`RichProgressReporter`.

    Example:
        >>> with engine.connect() as connection:
        ...     loader = FixtureLoader(SQLAlchemyExecutor(connection), OrderFixture(), UserFixture())
        ...     loader.load(LoadConfig(truncate_all_tables=True))
    """

    def __init__(
        self,
        executor: SQLExecutor,
        *fixtures: Fixture,
        cleaner: Optional[Cleaner] = None,
        progress: Optional[ProgressReporter] = None,
    ) -> None:
        self.executor = executor
        self.fixtures = list(fixtures)
        self.progress = progress
        self._cleaner = cleaner

    @property
    def cleaner(self) -> Cleaner:
        if self._cleaner is None:
            self._cleaner = Cleaner(self.executor)
        return self._cleaner

    def ordered_fixtures(self) -> list[Fixture]:
        """The fixture set, including required fixtures, in load order.

        Raises:
            CyclicFixtureDependencyError: If the fixtures require each other in a cycle.
        """
        return resolve_fixture_order(self.fixtures)

    def get_fixture(self, name: str) -> Fixture:
        """Return the first fixture of the set named ``name``.

        Raises:
            FixtureNotFoundError: If no fixture of the set has that name.
        """
        for fixture in self.fixtures:
            if fixture.name == name:
                return fixture
        raise FixtureNotFoundError(name)

    def load(
        self,
        config: Optional[LoadConfig] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> ReferenceStore:
        """Load the whole fixture set.

        Tables are truncated and counters reset first when the config asks
        for it. Fixtures then run in resolved order with one fresh
        :class:`ReferenceStore`; the first failure stops the run.

        Args:
            config: Run options, :class:`LoadConfig` defaults when omitted.
            cancellation: Checked before each fixture and each cleanup statement.

        Raises:
            CyclicFixtureDependencyError: If the fixtures cannot be ordered.
            CyclicDependencyError: If the tables to truncate cannot be ordered.
            StatementExecutionError: If a statement fails; the error names the table or fixture.
            FixtureLoadError: If a fixture raises anything else.
            LoadCancelledError: If ``cancellation`` fires.

        Returns:
            The reference store of the run.
        """
        config = config or LoadConfig()
        cancellation = cancellation or CancellationToken()
        if config.max_workers > 1:
            layers = group_by_depth(self.fixtures)
        else:
            layers = [self.ordered_fixtures()]
        reporter = (self.progress or RichProgressReporter()) if config.show_progress_bar else NullProgressReporter()

        if config.transactional:
            with self.executor.transaction():
                return self._run(layers, config, cancellation, reporter)
        return self._run(layers, config, cancellation, reporter)

    def load_fixture(self, fixture: Fixture, cancellation: Optional[CancellationToken] = None) -> ReferenceStore:
        """Load ``fixture`` after its transitive dependencies.

        Other fixtures of the set are not loaded and no cleanup runs.

        Returns:
            The reference store of the run.
        """
        cancellation = cancellation or CancellationToken()
        references = ReferenceStore()
        reporter = NullProgressReporter()
        for dependency in fixture_dependencies(fixture):
            self._load_one(dependency, references, cancellation, reporter)
        return references

    def load_fixture_by_name(self, name: str, cancellation: Optional[CancellationToken] = None) -> ReferenceStore:
        """Load the fixture of the set named ``name`` after its transitive dependencies.

        Raises:
            FixtureNotFoundError: If no fixture of the set has that name. The
                database is not touched.
        """
        return self.load_fixture(self.get_fixture(name), cancellation)

    async def load_async(
        self,
        config: Optional[LoadConfig] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> ReferenceStore:
        """Run :meth:`load` in a worker thread.

        Cancelling the awaiting task stops the run at the next fixture boundary.
        """
        cancellation = cancellation or CancellationToken()
        return await self._run_cancellable(self.load, config, cancellation=cancellation)

    async def load_fixture_async(
        self,
        fixture: Fixture,
        cancellation: Optional[CancellationToken] = None,
    ) -> ReferenceStore:
        cancellation = cancellation or CancellationToken()
        return await self._run_cancellable(self.load_fixture, fixture, cancellation=cancellation)

    async def load_fixture_by_name_async(
        self,
        name: str,
        cancellation: Optional[CancellationToken] = None,
    ) -> ReferenceStore:
        fixture = self.get_fixture(name)
        return await self.load_fixture_async(fixture, cancellation)

    def _run(
        self,
        layers: list[list[Fixture]],
        config: LoadConfig,
        cancellation: CancellationToken,
        reporter: ProgressReporter,
    ) -> ReferenceStore:
        if config.truncate_all_tables:
            cancellation.raise_if_cancelled()
            self.cleaner.truncate_all_tables(cancellation)
        if config.reset_auto_increments:
            cancellation.raise_if_cancelled()
            self.cleaner.reset_auto_increment_counters(cancellation)

        references = ReferenceStore()
        total = sum(len(layer) for layer in layers)
        logger.info("loading %d fixtures", total)
        reporter.start(total)
        try:
            if config.max_workers > 1:
                self._load_parallel(layers, references, cancellation, reporter, config.max_workers)
            else:
                for layer in layers:
                    for fixture in layer:
                        self._load_one(fixture, references, cancellation, reporter)
        finally:
            reporter.finish()
        logger.info("loaded %d fixtures", total)
        return references

    def _load_parallel(
        self,
        layers: Sequence[Sequence[Fixture]],
        references: ReferenceStore,
        cancellation: CancellationToken,
        reporter: ProgressReporter,
        max_workers: int,
    ) -> None:
        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="alchemy-fixtures") as pool:
            for layer in layers:
                futures = [
                    pool.submit(self._load_one, fixture, references, cancellation, reporter) for fixture in layer
                ]
                done, _ = wait(futures, return_when=FIRST_EXCEPTION)
                failed = next((future for future in futures if future in done and future.exception()), None)
                if failed is not None:
                    for future in futures:
                        future.cancel()
                    raise failed.exception()  # type: ignore[misc]

    def _load_one(
        self,
        fixture: Fixture,
        references: ReferenceStore,
        cancellation: CancellationToken,
        reporter: ProgressReporter,
    ) -> None:
        cancellation.raise_if_cancelled()
        reporter.describe(f"Loading fixture: {fixture.name}")
        logger.debug("loading fixture %s", fixture.name)
        try:
            fixture.load(references, self.executor)
        except LoadCancelledError:
            raise
        except SQLAlchemyError as exc:
            msg = f"loading fixture {fixture.name!r} failed: {exc}"
            raise StatementExecutionError(fixture.name, detail=msg) from exc
        except Exception as exc:
            msg = f"loading fixture {fixture.name!r} failed: {exc}"
            raise FixtureLoadError(fixture.name, detail=msg) from exc
        reporter.advance()

    @staticmethod
    async def _run_cancellable(
        function: Callable[..., ReturnT],
        *args: Any,
        cancellation: CancellationToken,
    ) -> ReturnT:
        try:
            return await async_(function)(*args, cancellation=cancellation)
        except asyncio.CancelledError:
            cancellation.cancel()
            raise
