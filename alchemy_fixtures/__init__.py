from alchemy_fixtures.__metadata__ import __project__, __version__
from alchemy_fixtures.cleaner import Cleaner
from alchemy_fixtures.config import LoadConfig
from alchemy_fixtures.dependencies import (
    fixture_dependencies,
    group_by_depth,
    resolve_fixture_order,
    resolve_table_order,
)
from alchemy_fixtures.dialects import Dialect, get_dialect
from alchemy_fixtures.exceptions import (
    AlchemyFixturesError,
    CyclicDependencyError,
    CyclicFixtureDependencyError,
    FixtureLoadError,
    FixtureNotFoundError,
    LoadCancelledError,
    ReferenceNotFoundError,
    StatementExecutionError,
)
from alchemy_fixtures.executor import SQLAlchemyExecutor, SQLExecutor
from alchemy_fixtures.fixtures import DependentFixture, Fixture, Ref, TableFixture
from alchemy_fixtures.inspector import SchemaInspector, SQLAlchemySchemaInspector
from alchemy_fixtures.loader import FixtureLoader
from alchemy_fixtures.progress import NullProgressReporter, ProgressReporter, RichProgressReporter
from alchemy_fixtures.references import ReferenceStore
from alchemy_fixtures.utils.sync_tools import CancellationToken

__all__ = (
    "AlchemyFixturesError",
    "CancellationToken",
    "Cleaner",
    "CyclicDependencyError",
    "CyclicFixtureDependencyError",
    "DependentFixture",
    "Dialect",
    "Fixture",
    "FixtureLoadError",
    "FixtureLoader",
    "FixtureNotFoundError",
    "LoadCancelledError",
    "LoadConfig",
    "NullProgressReporter",
    "ProgressReporter",
    "Ref",
    "ReferenceNotFoundError",
    "ReferenceStore",
    "RichProgressReporter",
    "SQLAlchemyExecutor",
    "SQLAlchemySchemaInspector",
    "SQLExecutor",
    "SchemaInspector",
    "StatementExecutionError",
    "TableFixture",
    "__project__",
    "__version__",
    "fixture_dependencies",
    "get_dialect",
    "group_by_depth",
    "resolve_fixture_order",
    "resolve_table_order",
)
