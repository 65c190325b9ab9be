from __future__ import annotations

from dataclasses import dataclass

from alchemy_fixtures.exceptions import ImproperConfigurationError

__all__ = ("LoadConfig",)


@dataclass(frozen=True)
class LoadConfig:
    """Options of a :meth:`FixtureLoader.load <alchemy_fixtures.loader.FixtureLoader.load>` run."""

    show_progress_bar: bool = False
    """Report progress on the terminal with :mod:`rich` when no reporter was given to the loader."""
    reset_auto_increments: bool = False
    """Restart auto increment counters and sequences before loading."""
    truncate_all_tables: bool = False
    """Clear every table before loading. Runs before the counter reset."""
    transactional: bool = False
    """Run the cleanup and every fixture in a single transaction that is rolled back on failure.

    By default each statement commits on its own and a failure keeps what was written so far.
    """
    max_workers: int = 1
    """Number of threads loading fixtures that do not depend on each other.

    ``1`` loads fixtures one at a time in resolved order.
    """

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            msg = f"max_workers must be at least 1, got {self.max_workers}"
            raise ImproperConfigurationError(detail=msg)
