"""Shared fixtures: a fixed clock, a throwaway SQLite database and an ASGI client."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from questlog.core.auth import create_access_token
from questlog.core.clock import FixedClock, get_clock
from questlog.database import Base, get_db
from questlog.main import app
from questlog.models.task import QuestTask, Task
from questlog.models.user import User
from questlog.models.workspace import Invitation, Workspace, WorkspaceMember

# Wednesday of ISO week 2026-W42
WEDNESDAY_MORNING = datetime(2026, 10, 14, 8, 30, tzinfo=timezone.utc)


@pytest.fixture()
def clock():
    return FixedClock(WEDNESDAY_MORNING)


@pytest_asyncio.fixture()
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'questlog.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)


@pytest_asyncio.fixture()
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture()
async def client(session_factory, clock):
    """Async httpx client bound to the app, with the temp DB and fixed clock wired in."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def auth():
    """Bearer headers for a user id."""
    def headers(user_id: int) -> dict:
        token = create_access_token({"sub": str(user_id)})
        return {"Authorization": f"Bearer {token}"}
    return headers


@pytest_asyncio.fixture()
async def world(db):
    """
    One workspace with a mentee, a mentor, an invited-but-pending user and an
    outsider, two task definitions and one quest task already assigned.
    """
    mentee = User(email="mira@example.com", name="Mira", role="user", is_active=True)
    mentor = User(email="omar@example.com", name="Omar", role="user", is_active=True)
    pending = User(email="pat@example.com", name="Pat", role="user", is_active=True)
    outsider = User(email="olga@example.com", name="Olga", role="user", is_active=True)
    workspace = Workspace(name="Nebula cohort")
    db.add_all([mentee, mentor, pending, outsider, workspace])
    await db.flush()

    db.add_all([
        WorkspaceMember(workspace_id=workspace.id, user_id=mentee.id, role="mentee",
                        planet="Nebulae", position="Backend"),
        WorkspaceMember(workspace_id=workspace.id, user_id=mentor.id, role="mentor"),
        WorkspaceMember(workspace_id=workspace.id, user_id=pending.id, role="mentee", planet="Nebulae"),
        Invitation(workspace_id=workspace.id, email=pending.email, status="pending",
                   expires_at=WEDNESDAY_MORNING - timedelta(days=1)),
    ])

    intro = Task(title="Set up your environment", category="Learning courses",
                 planets=[], positions=[], is_global=True, stars_earned=2)
    pitch = Task(title="Pitch deck review", category="Product refinement",
                 planets=[], positions=[], is_global=False, stars_earned=5)
    orbit = Task(title="Orbit onboarding", category="Mandatory sessions",
                 planets=["Nebulae"], positions=[], is_global=True, stars_earned=1)
    db.add_all([intro, pitch, orbit])
    await db.flush()

    db.add(QuestTask(workspace_id=workspace.id, user_id=mentee.id, task_id=intro.id,
                     status="todo", created_at=WEDNESDAY_MORNING))
    await db.commit()

    return SimpleNamespace(
        workspace_id=workspace.id,
        mentee_id=mentee.id,
        mentor_id=mentor.id,
        pending_id=pending.id,
        outsider_id=outsider.id,
        intro_id=intro.id,
        pitch_id=pitch.id,
        orbit_id=orbit.id,
    )
