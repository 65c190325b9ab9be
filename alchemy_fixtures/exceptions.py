# ruff: noqa: UP007
from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy.exc import SQLAlchemyError

if TYPE_CHECKING:
    from collections.abc import Generator, Sequence

__all__ = (
    "AlchemyFixturesError",
    "CyclicDependencyError",
    "CyclicFixtureDependencyError",
    "DependencyResolutionError",
    "FixtureLoadError",
    "FixtureNotFoundError",
    "ImproperConfigurationError",
    "LoadCancelledError",
    "MissingDependencyError",
    "ReferenceNotFoundError",
    "StatementExecutionError",
    "wrap_statement_exception",
)


class AlchemyFixturesError(Exception):
    """Base exception class from which all Alchemy Fixtures exceptions inherit."""

    detail: str

    def __init__(self, *args: Any, detail: str = "") -> None:
        """Initialize ``AlchemyFixturesError``.

        Args:
            *args: args are converted to :class:`str` before passing to :class:`Exception`
            detail: detail of the exception.
        """
        str_args = [str(arg) for arg in args if arg]
        if not detail:
            if str_args:
                detail, *str_args = str_args
            elif hasattr(self, "detail"):
                detail = self.detail
        self.detail = detail
        super().__init__(*str_args)

    def __repr__(self) -> str:
        if self.detail:
            return f"{self.__class__.__name__} - {self.detail}"
        return self.__class__.__name__

    def __str__(self) -> str:
        return " ".join((*self.args, self.detail)).strip()


class MissingDependencyError(AlchemyFixturesError, ImportError):
    """Missing optional dependency.

    This exception is raised when a module depends on a dependency that has not been installed.

    Args:
        package: Name of the missing package.
        install_package: Optional alternative package name to install.
    """

    def __init__(self, package: str, install_package: Optional[str] = None) -> None:
        super().__init__(
            f"Package {package!r} is not installed but required. You can install it by running "
            f"'pip install alchemy_fixtures[{install_package or package}]' to install alchemy_fixtures with the "
            f"required extra or 'pip install {package}' to install the package separately",
        )


class ImproperConfigurationError(AlchemyFixturesError):
    """Improper Configuration error.

    This exception is raised when there is an issue with the configuration of a loader or cleaner.
    """


class FixtureNotFoundError(AlchemyFixturesError, LookupError):
    """No fixture in the configured set matches the requested name.

    Args:
        name: The name that was looked up.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(detail=f"fixture not found: {name!r}")


class DependencyResolutionError(AlchemyFixturesError):
    """Base error for ordering failures of tables or fixtures."""


class CyclicDependencyError(DependencyResolutionError):
    """The foreign key graph of the tables to clear contains a cycle.

    Args:
        tables: The tables that could not be ordered.
    """

    def __init__(self, tables: Sequence[str]) -> None:
        self.tables = tuple(tables)
        super().__init__(
            detail=f"cyclic dependencies detected, unable to order tables: {', '.join(self.tables)}",
        )


class CyclicFixtureDependencyError(DependencyResolutionError):
    """A fixture requires itself, directly or through other fixtures.

    Args:
        cycle: Fixture names along the cycle, the first name repeated at the end.
    """

    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle = tuple(cycle)
        super().__init__(detail=f"cyclic fixture dependency: {' -> '.join(self.cycle)}")


class StatementExecutionError(AlchemyFixturesError):
    """A statement issued for a table or fixture failed.

    The original driver error is available as ``__cause__``.

    Args:
        target: Name of the table or fixture the statement was issued for.
        detail: Detailed error message.
    """

    def __init__(self, target: str, detail: str = "") -> None:
        self.target = target
        super().__init__(detail=detail or f"statement failed for {target!r}")


class FixtureLoadError(AlchemyFixturesError):
    """A fixture raised while loading.

    Args:
        fixture: Name of the failing fixture.
        detail: Detailed error message.
    """

    def __init__(self, fixture: str, detail: str = "") -> None:
        self.fixture = fixture
        super().__init__(detail=detail or f"loading fixture {fixture!r} failed")


class ReferenceNotFoundError(AlchemyFixturesError, LookupError):
    """A reference was requested that no earlier fixture has set.

    Args:
        key: The missing reference id.
    """

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(detail=f"reference not found: {key!r}")


class LoadCancelledError(AlchemyFixturesError):
    """The load run was cancelled before it completed."""

    detail = "load cancelled"


@contextmanager
def wrap_statement_exception(target: str) -> Generator[None, None, None]:
    """Do something within context to raise a ``StatementExecutionError`` chained
    from an original ``SQLAlchemyError``.

        >>> try:
        ...     with wrap_statement_exception("users"):
        ...         raise SQLAlchemyError("Original Exception")
        ... except StatementExecutionError as exc:
        ...     print(f"{exc.target}: caught from {type(exc.__cause__)}")
        users: caught from <class 'sqlalchemy.exc.SQLAlchemyError'>
    """
    try:
        yield
    except SQLAlchemyError as exc:
        raise StatementExecutionError(target, detail=f"statement failed for {target!r}: {exc}") from exc
