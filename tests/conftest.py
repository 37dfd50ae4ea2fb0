"""Pytest configuration and fixtures for LiveScribe tests."""

import asyncio
import logging

import pytest
from fastapi.testclient import TestClient

from livescribe.core.database import build_engine, init_db
from livescribe.main import create_app
from livescribe.services import build_services
from livescribe.services.retry import RetryPolicy

# Configure logging for tests
logging.basicConfig(level=logging.INFO)


class FakeGemini:
    """Stands in for GeminiClient: audio bytes decode to their transcription."""

    def __init__(self):
        self.errors = []
        self.delay = 0.0
        self.transcribe_calls = []
        self.summarize_calls = []
        self.active = 0
        self.max_active = 0

    async def transcribe(self, audio, mime_type="audio/wav"):
        self.transcribe_calls.append((audio, mime_type))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.errors:
                raise self.errors.pop(0)
            return audio.decode()
        finally:
            self.active -= 1

    async def summarize(self, text):
        self.summarize_calls.append(text)
        return f"Main topic: {text}"

    async def check(self):
        return True, "fake model is available"


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
def engine(database_url):
    engine = build_engine(database_url)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def fake_gemini():
    return FakeGemini()


@pytest.fixture
def no_wait_retry():
    """Retry policy with the production attempt count but no sleeping."""
    return RetryPolicy(attempts=4, base_delay=0, max_jitter=0)


@pytest.fixture
def services(engine, fake_gemini, no_wait_retry):
    return build_services(engine, fake_gemini, retry=no_wait_retry)


@pytest.fixture
def client(database_url, fake_gemini, no_wait_retry):
    app = create_app(database_url=database_url, gemini=fake_gemini, retry=no_wait_retry)
    with TestClient(app) as test_client:
        yield test_client


async def new_session(services, email="u1@example.com", chunks=()):
    """Creates a user and a session, then stores (sequence, text) chunks as given."""
    user = await services.store.get_or_create_user(email)
    session = await services.sessions.start_session(user.id)
    for sequence, text in chunks:
        await services.store.create_chunk(session.id, sequence, text=text)
    return session.id
