"""Shared fixtures: an in-memory SQLite database and account factories."""

import uuid
from typing import Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from studypartner.core.deps import AuthContext
from studypartner.db.models.database import Base, Profiles, User
from studypartner.libs.formats.datetime import now as get_now


@pytest_asyncio.fixture
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
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_account(db):
    """Create a user (and a profile unless ``role`` is None); returns its AuthContext."""

    async def _make(
        role: Optional[str] = "student",
        tokens: int = 0,
        hourly_rate: Optional[int] = None,
        is_approved: Optional[bool] = None,
        expertise: Optional[list[str]] = None,
        email: Optional[str] = None,
    ) -> AuthContext:
        user = User(
            id=uuid.uuid4(),
            email=email or f"{uuid.uuid4().hex[:8]}@example.com",
            password="x",
            fullname="Test User",
            created_at=get_now(),
        )
        db.add(user)
        profile_id = None
        if role is not None:
            profile = Profiles(
                id=uuid.uuid4(),
                user_id=user.id,
                role=role,
                first_name="Test",
                last_name=role.title(),
                expertise=expertise,
                hourly_rate=hourly_rate,
                tokens=tokens,
                total_earnings=0 if role == "tutor" else None,
                is_approved=is_approved,
                created_at=get_now(),
                updated_at=get_now(),
            )
            db.add(profile)
            profile_id = profile.id
        await db.commit()
        return AuthContext(user_id=user.id, role=role, profile_id=profile_id)

    return _make


@pytest.fixture
def student(make_account):
    async def _student(tokens: int = 0) -> AuthContext:
        return await make_account("student", tokens=tokens)

    return _student


@pytest.fixture
def tutor(make_account):
    async def _tutor(hourly_rate: int = 12, is_approved: bool = True, expertise=None) -> AuthContext:
        return await make_account(
            "tutor",
            hourly_rate=hourly_rate,
            is_approved=is_approved,
            expertise=expertise or ["Mathematics"],
        )

    return _tutor


@pytest_asyncio.fixture
async def admin(make_account) -> AuthContext:
    return await make_account("admin")
