# tests/conftest.py
import hashlib
import os
import tempfile

# Scratch data dir and deterministic settings, before the app reads its config
os.environ["DATA_DIR"] = tempfile.mkdtemp(prefix="manga_studio_tests_")
os.environ["OPENAI_API_KEY"] = ""
os.environ["TASKS_QUEUE"] = ""
os.environ["GCS_BUCKET"] = ""
os.environ["IMAGE_RETRIES"] = "1"
os.environ["IMAGE_RETRY_DELAY"] = "0"

import pytest
from fastapi.testclient import TestClient

from manga_studio import services
from manga_studio.features.generation.service import VariationGenerator
from manga_studio.features.generation.tracker import JobTracker
from manga_studio.features.projects.schemas import CreateProjectRequest
from manga_studio.features.projects.service import create_project
from manga_studio.lib.image_provider import OpenAIImageProvider
from manga_studio.lib.store import RecordStore
from manga_studio.main import app

PLACEHOLDER_BASE = "https://placeholder.test"

# -------- Mocks for OpenAI --------
class _MockImageData:
    def __init__(self, url=None, b64_json=None):
        self.url = url
        self.b64_json = b64_json

class _MockImagesResponse:
    def __init__(self, url=None, b64_json=None):
        self.data = [_MockImageData(url=url, b64_json=b64_json)]

class FakeImages:
    """images.generate that answers with a URL derived from the prompt."""
    def __init__(self, fail_when=None, b64_json=None):
        self.calls = []
        self._fail_when = fail_when or (lambda prompt: False)
        self._b64 = b64_json

    def generate(self, **kwargs):
        self.calls.append(kwargs)
        prompt = kwargs["prompt"]
        if self._fail_when(prompt):
            raise RuntimeError("boom")
        if self._b64:
            return _MockImagesResponse(b64_json=self._b64)
        digest = hashlib.md5(prompt.encode("utf-8")).hexdigest()[:10]
        return _MockImagesResponse(url=f"https://images.example.com/{digest}.png")

class FakeOpenAIClient:
    def __init__(self, images=None):
        self.images = images or FakeImages()


def tiny_png_bytes() -> bytes:
    from io import BytesIO
    from PIL import Image
    im = Image.new("RGB", (16, 24), (10, 20, 30))
    buf = BytesIO()
    im.save(buf, format="PNG")
    return buf.getvalue()


# -------- Fixtures --------
@pytest.fixture
def store(tmp_path):
    return RecordStore(str(tmp_path / "records"), indexes=services.STORE_INDEXES)

@pytest.fixture
def fake_openai():
    return FakeOpenAIClient()

@pytest.fixture
def provider(fake_openai, tmp_path):
    return OpenAIImageProvider(
        api_key="test-key",
        client=fake_openai,
        media_dir=str(tmp_path / "media"),
        media_base_url="http://testserver/media",
    )

@pytest.fixture
def generator(provider):
    return VariationGenerator(provider, placeholder_base_url=PLACEHOLDER_BASE)

@pytest.fixture
def tracker(store, generator):
    return JobTracker(store, generator)

@pytest.fixture
def project(store):
    return create_project(store, CreateProjectRequest(story_summary="A firefighter finds a dragon egg"))

@pytest.fixture(autouse=True)
def services_in_tmp(monkeypatch, store, provider):
    """Route the app's service singletons to the per-test store and fake provider."""
    monkeypatch.setattr(services, "_store", store)
    monkeypatch.setattr(services, "_provider", provider)
    yield

@pytest.fixture
def client():
    return TestClient(app)
