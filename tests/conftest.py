"""
Pytest Configuration and Fixtures.

Every test gets a fresh in-memory SQLite database (async, via aiosqlite) and
a scripted stand-in for the Ollama client.
"""
from collections import deque

import httpx
import pytest

from contentflow.database import Database
from contentflow.errors import AIServiceError
from contentflow.main import create_app, register_default_llm, register_workflow_steps
from contentflow.services.ledger import GenerationLedger
from contentflow.services.steps import WorkflowSettingsService
from contentflow.services.workflow import GenerationWorkflow
from contentflow.settings.config import Settings
from contentflow.store import SqlEntityStore

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (sqlite database)")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


class FakeLLM:
    """Replays scripted replies; an Exception in the script is raised instead."""

    def __init__(self, *replies):
        self.replies = deque(replies)
        self.calls = []

    def script(self, *replies):
        self.replies.extend(replies)

    async def generate(self, prompt, model=None, *, temperature=0.7, max_tokens=1000):
        self.calls.append({"prompt": prompt, "model": model, "temperature": temperature, "max_tokens": max_tokens})
        if not self.replies:
            raise AIServiceError("no scripted reply left")
        reply = self.replies.popleft()
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def settings():
    return Settings(
        ENVIRONMENT="test",
        DATABASE_URL=TEST_DB_URL,
        OLLAMA_MODEL="llama3.1:8b",
        PILLAR_COUNT=5,
        SUBPILLAR_COUNT=3,
    )


@pytest.fixture
async def database():
    db = Database(TEST_DB_URL)
    await db.create_all()
    yield db
    await db.drop_all()
    await db.dispose()


@pytest.fixture
async def session(database):
    async with database.session() as s:
        yield s


@pytest.fixture
def store(session):
    return SqlEntityStore(session)


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def ledger(store):
    return GenerationLedger(store, default_llm_id="llama3.1:8b")


@pytest.fixture
def steps(store):
    return WorkflowSettingsService(store)


@pytest.fixture
def workflow(store, fake_llm, ledger, steps):
    return GenerationWorkflow(store, fake_llm, ledger, steps=steps, pillar_count=5, subpillar_count=3)


@pytest.fixture
async def app(settings, database, fake_llm):
    application = create_app(settings=settings, database=database, llm_client=fake_llm)
    # ASGITransport does not run lifespan; do the startup work here
    await register_default_llm(database, settings)
    await register_workflow_steps(database, settings)
    return application


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c