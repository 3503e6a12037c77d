import os
import uuid
from typing import List, Optional, Union

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from tortoise import Tortoise

from gutcheck.config import settings
from gutcheck.core import db as db_module
from gutcheck.core.context import AuthContext
from gutcheck.core.security import generate_encryption_key
from gutcheck.api.v1.deps import get_pipeline
from gutcheck.main import app
from gutcheck.services.asr_base import ASRService, AudioPayload, TranscriptionResult
from gutcheck.services.evaluator import Evaluation, IdeaEvaluatorService
from gutcheck.services.idea_pipeline import IdeaPipeline
from gutcheck.services.response_parser import parse_evaluation
from gutcheck.services.user_service import user_service


TEST_DB_URL = "sqlite://:memory:?cache=shared"
os.environ["DATABASE_URL"] = TEST_DB_URL
db_module.DB_URL = TEST_DB_URL
db_module.TORTOISE_ORM["connections"]["default"] = TEST_DB_URL

GOOD_REPLY = (
    '{"problem": "Lonely desks", "audience": "Remote workers", "competitors": [], '
    '"potential": "Niche gift market", "score": 85, "recommendation": "pursue"}'
)


async def _init_test_db() -> None:
    """
    Initialize a clean in-memory SQLite database for every test.
    Ensures tables are recreated from scratch.
    """
    if Tortoise._inited:
        await Tortoise.close_connections()
    await Tortoise.init(config=db_module.TORTOISE_ORM)
    await Tortoise.generate_schemas()


class StubEvaluator(IdeaEvaluatorService):
    """
    Evaluator that replays canned model replies through the real parser.
    Each call consumes the next reply; the last one repeats. An Exception
    instance in the list is raised instead.
    """

    def __init__(self, replies: Optional[List[Union[str, Exception]]] = None):
        super().__init__()
        self.replies = list(replies or [GOOD_REPLY])
        self.calls = []

    async def evaluate(self, idea_text, credential=None, preferred_model=None, audio_payload=None):
        self.calls.append({
            "idea_text": idea_text,
            "credential": credential,
            "preferred_model": preferred_model,
        })
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        fields = parse_evaluation(reply)
        return Evaluation(
            **fields.to_dict(),
            raw_response={"choices": [{"message": {"content": reply}}]},
            model=self.select_model(credential, preferred_model),
        )


class StubASR(ASRService):
    """ASR service returning a fixed transcript (or raising) without network access."""

    def __init__(self, text: str = "Transcribed idea", available: bool = True, error: Exception | None = None):
        self.text = text
        self.available = available
        self.error = error
        self.calls = []

    @property
    def name(self) -> str:
        return "Stub ASR"

    def is_available(self) -> bool:
        return self.available

    async def transcribe(self, audio: AudioPayload, api_key=None, language=None) -> TranscriptionResult:
        self.calls.append({"audio": audio, "api_key": api_key})
        if self.error:
            raise self.error
        return TranscriptionResult(text=self.text, duration_sec=1.5, language="en")


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Deterministic settings: vault key set, default free limits, no real provider keys."""
    monkeypatch.setattr(settings, "encryption_key", generate_encryption_key())
    monkeypatch.setattr(settings, "free_evaluation_limit", 10)
    monkeypatch.setattr(settings, "free_transcription_limit", 10)
    return settings


@pytest_asyncio.fixture
async def db():
    await _init_test_db()
    yield
    await Tortoise.close_connections()


@pytest.fixture
def stub_evaluator():
    return StubEvaluator()


@pytest.fixture
def stub_asr():
    return StubASR()


@pytest.fixture
def pipeline(stub_evaluator, stub_asr):
    return IdeaPipeline(evaluator=stub_evaluator, asr=stub_asr)


@pytest_asyncio.fixture
async def client(db, pipeline):
    """
    Provide an HTTPX AsyncClient bound to the FastAPI app with a fresh DB
    and the stubbed pipeline.
    """
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    # Use ASGITransport without lifespan parameter (not supported in all httpx versions)
    try:
        transport = ASGITransport(app=app, lifespan="off")
    except TypeError:
        # Fallback for httpx versions that don't support lifespan parameter
        transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        yield async_client
    app.dependency_overrides.pop(get_pipeline, None)


@pytest_asyncio.fixture
async def make_ctx(db):
    """
    Factory fixture creating a user directly and returning its AuthContext.
    """

    async def _make_ctx(email: str | None = None, llm_key: str | None = None,
                        transcription_key: str | None = None) -> AuthContext:
        email = email or f"user_{uuid.uuid4().hex[:6]}@example.com"
        user = await user_service.find_or_create_user(
            email, ip="127.0.0.1", llm_key=llm_key, transcription_key=transcription_key
        )
        return AuthContext(user=user, email=user.email, ip="127.0.0.1")

    return _make_ctx


@pytest_asyncio.fixture
async def auth_header_factory(client):
    """
    Helper fixture to obtain Authorization headers via the register endpoint.
    """

    async def _get_headers(email: str | None = None, **keys) -> dict[str, str]:
        email = email or f"user_{uuid.uuid4().hex[:6]}@example.com"
        resp = await client.post("/api/v1/auth/register", json={"email": email, **keys})
        assert resp.status_code == 201, resp.text
        token = resp.json()["data"]["accessToken"]
        return {"Authorization": f"Bearer {token}"}

    return _get_headers


@pytest.fixture
def make_pipeline():
    """
    Factory fixture for a pipeline with custom canned replies and ASR behaviour.
    The stubs stay reachable as ``pipeline.evaluator`` / ``pipeline.asr``.
    """

    def _make_pipeline(replies: Optional[List[Union[str, Exception]]] = None, **asr_kwargs) -> IdeaPipeline:
        return IdeaPipeline(evaluator=StubEvaluator(replies), asr=StubASR(**asr_kwargs))

    return _make_pipeline
