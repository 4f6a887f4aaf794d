"""Shared fixtures: a seeded temporary SQLite database and table registries."""

from datetime import date, datetime

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from gridcore.application.services import ColumnRegistry
from gridcore.infrastructure.database.base import Base
from gridcore.infrastructure.database.query_executor import model_identity

from grid_models import (
    EMPLOYEE_COLUMNS,
    PROJECT_COLUMNS,
    USER_COLUMNS,
    Department,
    Employee,
    Project,
    Tag,
    Task,
    User,
)


def _seed(session: AsyncSession) -> None:
    """25 users (12 active), 3 departments, 2 tags, 10 projects with 3 tasks each.

    Employees: zed and amy have no manager, bob reports to zed, cat and dan
    report to amy.
    """
    departments = [
        Department(id=1, name="Engineering"),
        Department(id=2, name="Marketing"),
        Department(id=3, name="Sales"),
    ]
    alpha, beta = Tag(id=1, label="alpha"), Tag(id=2, label="beta")
    session.add_all([*departments, alpha, beta])

    for i in range(1, 26):
        if i == 25:
            status = "pending"
        elif i % 2:
            status = "active"
        else:
            status = "inactive"
        tags = []
        if i % 2:
            tags.append(alpha)
        if i % 5 == 0:
            tags.append(beta)
        session.add(
            User(
                id=i,
                name=f"user{i:02d}",
                email=f"user{i:02d}@example.com",
                status=status,
                age=20 + i,
                joined_on=date(2024, 1, i),
                last_login=datetime(2024, 2, i, 12, 30),
                department_id=None if i == 25 else (i % 3) + 1,
                tags=tags,
            )
        )

    for p in range(1, 11):
        session.add(Project(id=p, title=f"Project {p:02d}", owner_id=p))
        for t in range(1, 4):
            session.add(Task(title=f"Task {p}-{t}", state="open", project_id=p))

    session.add_all(
        [
            Employee(id=1, name="zed"),
            Employee(id=2, name="amy"),
            Employee(id=3, name="bob", manager_id=1),
            Employee(id=4, name="cat", manager_id=2),
            Employee(id=5, name="dan", manager_id=2),
        ]
    )


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'grid.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        _seed(session)
        await session.commit()
    return factory


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def statements(engine, session_factory):
    """SQL statements sent to the database after seeding."""
    captured: list[str] = []

    def _record(conn, cursor, statement, parameters, context, executemany):
        captured.append(statement)

    event.listen(engine.sync_engine, "before_cursor_execute", _record)
    yield captured
    event.remove(engine.sync_engine, "before_cursor_execute", _record)


@pytest.fixture
def user_registry() -> ColumnRegistry:
    return ColumnRegistry.register(
        USER_COLUMNS,
        model_identity=model_identity(User),
        date_column="joined_on",
        count_aggregations=["projects"],
    )


@pytest.fixture
def project_registry() -> ColumnRegistry:
    return ColumnRegistry.register(PROJECT_COLUMNS, model_identity=model_identity(Project))


@pytest.fixture
def employee_registry() -> ColumnRegistry:
    return ColumnRegistry.register(
        EMPLOYEE_COLUMNS,
        model_identity=model_identity(Employee),
        count_aggregations=["reports"],
    )
