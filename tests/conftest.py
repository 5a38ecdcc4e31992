import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

from datetime import datetime, timedelta
import uuid

import httpx
import pytest
from fastapi import HTTPException, status
from fastapi_users.password import PasswordHelper
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from quizroom.app import create_app
from quizroom.db import Base, get_async_session
from quizroom.dependencies import get_clock
from quizroom.models import user_model, exam_model, question_model, exam_session_model, submission_model  # noqa: F401
from quizroom.models.user_model import User
from quizroom.schemas.exam_schema import ExamCreate
from quizroom.security import current_active_user
from quizroom.services import exam_service

T0 = datetime(2026, 3, 2, 9, 0, 0)


class FakeClock:
    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


def make_questions(correct_indices):
    return [
        {
            "content": f"Question {i + 1}",
            "options": ["A", "B", "C", "D"],
            "correctIdx": idx,
            "explanation": f"Because option {idx}",
        }
        for i, idx in enumerate(correct_indices)
    ]


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def make_user(session_maker):
    async def _make_user(email=None, name="Student", password=None):
        user = User(
            email=email or f"{uuid.uuid4().hex[:8]}@example.com",
            hashed_password=PasswordHelper().hash(password) if password else "not-a-real-hash",
            name=name,
        )
        async with session_maker() as session:
            session.add(user)
            await session.commit()
            await session.refresh(user)
        return user
    return _make_user


@pytest.fixture
def make_exam(session_maker):
    async def _make_exam(author, code="MATH101", status="PUBLISHED", duration=30, correct=(1, 0, 2, 3), title="Algebra"):
        payload = ExamCreate(
            code=code,
            title=title,
            status=status,
            duration_minutes=duration,
            questions=make_questions(correct),
        )
        async with session_maker() as session:
            return await exam_service.create_exam(session, payload, author.id)
    return _make_exam


class ApiClient:
    """httpx client against the app, acting as whichever user is set."""

    def __init__(self, http: httpx.AsyncClient, clock: FakeClock):
        self.http = http
        self.clock = clock
        self.user = None

    def act_as(self, user):
        self.user = user
        return self

    def __getattr__(self, name):
        return getattr(self.http, name)


@pytest.fixture
async def client(session_maker):
    app = create_app()
    clock = FakeClock()

    async def _session():
        async with session_maker() as session:
            yield session

    api = None

    def _user():
        if api.user is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
        return api.user

    app.dependency_overrides[get_async_session] = _session
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[current_active_user] = _user

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as http:
        api = ApiClient(http, clock)
        yield api
