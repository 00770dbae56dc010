# tests/conftest.py

from urllib.parse import unquote

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import DatabaseError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)

from app.main import app
from app.db import Base
from app.dependencies import get_db, get_run_guard, get_summary_client
from app.services.pipeline import RunGuard
from app.services.summarizer import SummaryClient
from app.settings import settings_cache


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeSmmry:
    """Stands in for api.smmry.com.

    Queued bodies are answered in order (a callable is called with the
    request and its result answered); once the queue is empty every page
    is summarized as "Summary of <url>".
    """

    def __init__(self):
        self.requests = []
        self.responses = []

    def queue(self, *bodies):
        self.responses.extend(bodies)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.responses:
            body = self.responses.pop(0)
        else:
            body = {"sm_api_content": f"Summary of {self.page_url(request)}"}
        if callable(body):
            body = body(request)
        if isinstance(body, httpx.Response):
            return body
        return httpx.Response(200, json=body)

    @staticmethod
    def page_url(request: httpx.Request) -> str:
        return unquote(str(request.url).split("SM_URL=", 1)[1])

    @property
    def page_urls(self):
        return [self.page_url(r) for r in self.requests]

    def http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def smmry():
    return FakeSmmry()


@pytest.fixture
def run_guard():
    return RunGuard()


@pytest.fixture(autouse=True)
def reset_settings():
    """settings_cache is process-wide; start every test from the defaults."""
    settings_cache.timezone = "UTC"
    settings_cache.read_only = False
    yield
    settings_cache.timezone = "UTC"
    settings_cache.read_only = False


@pytest_asyncio.fixture(scope="function")
async def engine():
    """Create a fresh in-memory SQLite engine for each test function."""
    eng = create_async_engine(TEST_DATABASE_URL, echo=False)
    async with eng.begin() as conn:
        import app.models  # noqa: F401, registers every table on Base
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await eng.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(engine):
    """Provide an AsyncSession backed by the in-memory engine."""
    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(db_session, smmry, run_guard):
    """AsyncClient with the DB, the summary service and the run guard swapped out."""

    async def override_get_db():
        yield db_session

    async def override_get_summary_client():
        async with smmry.http_client() as http:
            yield SummaryClient(http)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_summary_client] = override_get_summary_client
    app.dependency_overrides[get_run_guard] = lambda: run_guard
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def failing_commit(monkeypatch):
    """Make the n-th AsyncSession.commit flush its changes and then fail.

    Returns an installer; the list it hands back records every commit call.
    """
    real_commit = AsyncSession.commit
    calls = []

    def install(fail_on: int):
        async def commit(self):
            calls.append(self)
            if len(calls) == fail_on:
                await self.flush()
                raise DatabaseError("COMMIT", {}, Exception("database is locked"))
            await real_commit(self)

        monkeypatch.setattr(AsyncSession, "commit", commit)
        return calls

    return install
