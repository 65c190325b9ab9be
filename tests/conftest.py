import logging
from collections.abc import Generator

import pytest
from sqlalchemy import Connection, Engine, create_engine
from sqlalchemy.pool import StaticPool


@pytest.fixture(autouse=True, scope="session")
def configure_logging() -> None:
    """Surface the library's debug output in failing test reports."""
    logging.getLogger("alchemy_fixtures").setLevel(logging.DEBUG)


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    engine = create_engine("sqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False})
    yield engine
    engine.dispose()


@pytest.fixture
def connection(engine: Engine) -> Generator[Connection, None, None]:
    with engine.connect() as connection:
        yield connection
