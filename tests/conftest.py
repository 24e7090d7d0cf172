import asyncio
import json
import os
import tempfile

import fitz  # PyMuPDF
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="resumematch-test-")
os.environ.setdefault("OPENROUTER_API_KEY", "test-key")

from resumematch.core.config import settings
from resumematch.database import Base
from resumematch.dependencies import ServiceBundle, get_services
from resumematch.main import app
from resumematch.services.inference_client import InferenceResponse
from resumematch.services.kv_store import SQLKeyValueStore
from resumematch.services.object_store import LocalObjectStore
from fastapi.testclient import TestClient

FEEDBACK = {
    "overallScore": 82,
    "ATS": {"score": 75, "tips": [{"type": "good", "tip": "Standard section headings"}]},
    "toneAndStyle": {"score": 80, "tips": []},
    "content": {"score": 85, "tips": [{"type": "improve", "tip": "Quantify impact", "explanation": "Add metrics."}]},
    "structure": {"score": 78, "tips": []},
    "skills": {
        "score": 70,
        "tips": [{"type": "improve", "tip": "Kubernetes", "explanation": "The role deploys Go services on Kubernetes."}],
    },
}


def reply(content) -> InferenceResponse:
    """Build an inference response carrying `content` (string or list of blocks)."""
    return InferenceResponse(message={"role": "assistant", "content": content})


class FakeInferenceClient:
    """Scripted stand-in for the AI service that records every call."""

    def __init__(self):
        self.feedback_response = reply(json.dumps(FEEDBACK))
        self.feedback_error = None
        self.chat_response = reply("## Plan\n1. Learn Kubernetes")
        self.chat_delay = 0.0
        self.feedback_calls = []
        self.chat_calls = []

    async def feedback(self, document_handle, instructions):
        self.feedback_calls.append((document_handle, instructions))
        if self.feedback_error is not None:
            raise self.feedback_error
        return self.feedback_response

    async def chat(self, messages, model=None):
        self.chat_calls.append((messages, model))
        if self.chat_delay:
            await asyncio.sleep(self.chat_delay)
        return self.chat_response


@pytest.fixture(scope="function")
def engine():
    """Fresh in-memory database per test, shared across worker threads."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    from resumematch.models import kv_entry  # noqa: F401
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def kv_store(engine):
    return SQLKeyValueStore(sessionmaker(autocommit=False, autoflush=False, bind=engine))


@pytest.fixture(scope="function")
def object_store(tmp_path):
    return LocalObjectStore(str(tmp_path / "storage"))


@pytest.fixture(scope="function")
def inference():
    return FakeInferenceClient()


@pytest.fixture(scope="function")
def services(kv_store, object_store, inference, tmp_path):
    test_settings = settings.model_copy(update={"storage_root": str(tmp_path / "storage"), "raster_scale": 1.0})
    return ServiceBundle(
        settings=test_settings,
        kv=kv_store,
        object_store=object_store,
        inference=inference,
    )


@pytest.fixture(scope="session")
def make_reply():
    return reply


@pytest.fixture(scope="function")
def feedback_payload():
    return json.loads(json.dumps(FEEDBACK))


@pytest.fixture(scope="session")
def pdf_factory():
    def _make_pdf(text: str = "Jane Doe\nBackend Engineer", pages: int = 1, width: int = 200, height: int = 300) -> bytes:
        doc = fitz.open()
        for _ in range(pages):
            page = doc.new_page(width=width, height=height)
            page.insert_text((20, 40), text)
        data = doc.tobytes()
        doc.close()
        return data
    return _make_pdf


@pytest.fixture(scope="function")
def sample_pdf(pdf_factory):
    return pdf_factory()


@pytest.fixture(scope="function")
def client(services):
    """TestClient wired to the per-test service bundle."""
    app.dependency_overrides[get_services] = lambda: services
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
