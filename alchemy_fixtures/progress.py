from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, Protocol, runtime_checkable

from alchemy_fixtures.exceptions import MissingDependencyError

if TYPE_CHECKING:
    from rich.console import Console
    from rich.progress import Progress, TaskID

__all__ = ("NullProgressReporter", "ProgressReporter", "RichProgressReporter")


@runtime_checkable
class ProgressReporter(Protocol):
    """Observer of a load run. Reporters never influence the run."""

    def start(self, total: int) -> None: ...

    def describe(self, description: str) -> None: ...

    def advance(self) -> None: ...

    def finish(self) -> None: ...


class NullProgressReporter:
    """Reporter that ignores every notification."""

    def start(self, total: int) -> None:
        pass

    def describe(self, description: str) -> None:
        pass

    def advance(self) -> None:
        pass

    def finish(self) -> None:
        pass


class RichProgressReporter:
    """Terminal progress bar built on :class:`rich.progress.Progress`.

    Args:
        console: Console to render to, the global rich console by default.
        **progress_kwargs: Passed on to :class:`rich.progress.Progress`.

    Raises:
        MissingDependencyError: If ``rich`` is not installed.
    """

    def __init__(self, console: Optional[Console] = None, **progress_kwargs: Any) -> None:
        try:
            from rich.progress import (
                BarColumn,
                MofNCompleteColumn,
                Progress,
                TextColumn,
                TimeElapsedColumn,
                TimeRemainingColumn,
            )
        except ImportError as exc:
            raise MissingDependencyError(package="rich", install_package="progress") from exc

        self._progress: Progress = Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            TimeRemainingColumn(),
            console=console,
            **progress_kwargs,
        )
        self._task: Optional[TaskID] = None

    def start(self, total: int) -> None:
        self._progress.start()
        self._task = self._progress.add_task("Loading fixtures", total=total)

    def describe(self, description: str) -> None:
        from rich.markup import escape

        if self._task is not None:
            self._progress.update(self._task, description=escape(description))

    def advance(self) -> None:
        if self._task is not None:
            self._progress.advance(self._task)

    def finish(self) -> None:
        self._progress.stop()
        self._task = None
