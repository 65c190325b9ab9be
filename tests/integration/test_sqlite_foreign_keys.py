from __future__ import annotations

from collections.abc import Generator
from typing import Any

import pytest
from sqlalchemy import Column, ForeignKey, Integer, MetaData, String, Table, create_engine, event, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.pool import StaticPool

from alchemy_fixtures import Cleaner, FixtureLoader, LoadConfig, Ref, SQLAlchemyExecutor, TableFixture

metadata = MetaData()
customers = Table(
    "customers",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String(50), nullable=False),
    sqlite_autoincrement=True,
)
orders = Table(
    "orders",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("customer_id", Integer, ForeignKey("customers.id"), nullable=False),
)


@pytest.fixture
def executor() -> Generator[SQLAlchemyExecutor, None, None]:
    engine = create_engine("sqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False})

    @event.listens_for(engine, "connect")
    def enable_foreign_keys(dbapi_connection: Any, _: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()

    with engine.connect() as connection:
        metadata.create_all(connection)
        connection.commit()
        yield SQLAlchemyExecutor(connection)
    engine.dispose()


def shop_fixtures() -> tuple[TableFixture, TableFixture]:
    customer_fixture = TableFixture(
        "customers",
        [{"id": 1, "name": "Alice"}],
        name="CustomerFixture",
        publish={"customer:alice": 0},
    )
    order_fixture = TableFixture(
        "orders",
        [{"id": 10, "customer_id": Ref("customer:alice", "id")}],
        name="OrderFixture",
        requires=[customer_fixture],
    )
    return customer_fixture, order_fixture


def count(executor: SQLAlchemyExecutor, table: Table) -> int:
    return executor.execute(select(func.count()).select_from(table)).scalar_one()


def customer_ids(executor: SQLAlchemyExecutor) -> list[int]:
    return list(executor.execute(select(customers.c.id).order_by(customers.c.id)).scalars().all())


def test_foreign_keys_are_enforced(executor: SQLAlchemyExecutor) -> None:
    with pytest.raises(IntegrityError):
        executor.insert_rows("orders", [{"id": 1, "customer_id": 404}])


@pytest.mark.parametrize("transactional", [False, True], ids=["autocommit", "transactional"])
def test_truncate_with_enforced_foreign_keys(executor: SQLAlchemyExecutor, transactional: bool) -> None:
    loader = FixtureLoader(executor, *shop_fixtures())
    loader.load()

    loader.load(LoadConfig(truncate_all_tables=True, transactional=transactional))

    assert count(executor, customers) == 1
    assert count(executor, orders) == 1


def test_truncate_keeps_foreign_keys_enforced(executor: SQLAlchemyExecutor) -> None:
    FixtureLoader(executor, *shop_fixtures()).load()

    assert Cleaner(executor).truncate_all_tables() == ["customers", "orders"]

    assert count(executor, orders) == 0
    with pytest.raises(IntegrityError):
        executor.insert_rows("orders", [{"id": 1, "customer_id": 1}])


def test_reset_restarts_autoincrement_ids(executor: SQLAlchemyExecutor) -> None:
    loader = FixtureLoader(executor, TableFixture("customers", [{"name": "Alice"}, {"name": "Bob"}]))
    loader.load()

    loader.load(LoadConfig(truncate_all_tables=True))
    assert customer_ids(executor) == [3, 4]

    loader.load(LoadConfig(truncate_all_tables=True, reset_auto_increments=True))
    assert customer_ids(executor) == [1, 2]
