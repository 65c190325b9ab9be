import pytest
from sqlalchemy.exc import OperationalError

from alchemy_fixtures.exceptions import (
    AlchemyFixturesError,
    CyclicDependencyError,
    CyclicFixtureDependencyError,
    DependencyResolutionError,
    FixtureLoadError,
    FixtureNotFoundError,
    LoadCancelledError,
    MissingDependencyError,
    ReferenceNotFoundError,
    StatementExecutionError,
    wrap_statement_exception,
)


def test_wrap_statement_exception_names_the_target() -> None:
    with pytest.raises(StatementExecutionError) as excinfo, wrap_statement_exception("orders"):
        raise OperationalError("DELETE FROM orders", {}, Exception("locked"))

    assert excinfo.value.target == "orders"
    assert isinstance(excinfo.value.__cause__, OperationalError)
    assert "orders" in str(excinfo.value)


def test_wrap_statement_exception_leaves_other_errors() -> None:
    with pytest.raises(ValueError), wrap_statement_exception("orders"):
        raise ValueError("original")


def test_wrap_statement_exception_no_error() -> None:
    with wrap_statement_exception("orders"):
        pass


def test_cycle_errors_share_a_base() -> None:
    assert issubclass(CyclicDependencyError, DependencyResolutionError)
    assert issubclass(CyclicFixtureDependencyError, DependencyResolutionError)


def test_cyclic_dependency_error_lists_tables() -> None:
    error = CyclicDependencyError(["orders", "payments"])

    assert error.tables == ("orders", "payments")
    assert str(error) == "cyclic dependencies detected, unable to order tables: orders, payments"


def test_cyclic_fixture_dependency_error_shows_path() -> None:
    error = CyclicFixtureDependencyError(["a", "b", "a"])

    assert str(error) == "cyclic fixture dependency: a -> b -> a"


@pytest.mark.parametrize(
    "error",
    [FixtureNotFoundError("users"), ReferenceNotFoundError("user:alice")],
    ids=["fixture", "reference"],
)
def test_lookup_errors(error: AlchemyFixturesError) -> None:
    assert isinstance(error, LookupError)
    assert isinstance(error, AlchemyFixturesError)


def test_default_details() -> None:
    assert str(StatementExecutionError("orders")) == "statement failed for 'orders'"
    assert str(FixtureLoadError("users")) == "loading fixture 'users' failed"
    assert str(LoadCancelledError()) == "load cancelled"
    assert repr(LoadCancelledError()) == "LoadCancelledError - load cancelled"


def test_missing_dependency_error() -> None:
    error = MissingDependencyError(package="rich", install_package="progress")

    assert isinstance(error, ImportError)
    assert "alchemy_fixtures[progress]" in str(error)


def test_base_error_without_detail() -> None:
    assert repr(AlchemyFixturesError()) == "AlchemyFixturesError"
    assert str(AlchemyFixturesError("first", "second")) == "second first"
