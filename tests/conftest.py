import io
import json
import os
import tempfile
import uuid
from datetime import datetime, timedelta, timezone

# Point the backend at throwaway locations before its config is imported
_TMP = tempfile.mkdtemp(prefix="chart-vision-tests-")
os.environ.setdefault("STORAGE_DIR", os.path.join(_TMP, "storage"))
os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(_TMP, 'default.db')}")
os.environ.setdefault("PUBLIC_BASE_URL", "http://testserver")

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from backend.app import app
from backend.database import create_db_engine, get_db
from backend.storage import ObjectStorage, get_storage
from backend.vision_helper import VisionGateway, get_vision_gateway


# =========================
# BACKEND FIXTURES
# =========================

@pytest.fixture
def session_factory(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'test.db'}")
    yield sessionmaker(bind=engine, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def storage(tmp_path):
    return ObjectStorage(root=str(tmp_path / "objects"), public_base_url="http://testserver")


@pytest.fixture
def api(session_factory, storage):
    def override_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_storage] = lambda: storage
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def upstream(api):
    """
    Fake AI gateway. Set ``upstream.respond`` to a callable taking the
    httpx.Request and returning an httpx.Response; requests are recorded.
    """

    class Upstream:
        def __init__(self):
            self.requests = []
            self.respond = lambda request: chat_completion("{}")
            self.api_key = "test-key"

        def handler(self, request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return self.respond(request)

    fake = Upstream()
    app.dependency_overrides[get_vision_gateway] = lambda: VisionGateway(
        api_key=fake.api_key,
        url="https://gateway.test/v1/chat/completions",
        model="google/gemini-2.5-flash",
        transport=httpx.MockTransport(fake.handler),
    )
    return fake


def chat_completion(content: str, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json={"choices": [{"message": {"role": "assistant", "content": content}}]})


@pytest.fixture
def auth_headers(api):
    def make(email="trader@example.com", password="s3cret-pass"):
        response = api.post("/api/auth/signup", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return make


# =========================
# FRONTEND FIXTURES
# =========================

class FakeBackend:
    """In-memory stand-in for the backend's auth and history endpoints"""

    def __init__(self):
        self.token = "valid-token"
        self.user = {"id": "user-1", "email": "trader@example.com"}
        self.records = []
        self.requests = []
        self.fail_saves = False

    def add_record(self, bias, confidence=50, minutes_ago=0, reasons=None):
        created = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc) - timedelta(minutes=minutes_ago)
        record = {
            "id": str(uuid.uuid4()),
            "image_url": "http://testserver/storage/user-1/1.png",
            "bias": bias,
            "confidence": confidence,
            "reasons": reasons or [f"{bias} structure", "liquidity sweep", "fair value gap"],
            "best_move": "Wait for a retest",
            "parse_failed": False,
            "created_at": created.isoformat(),
        }
        self.records.append(record)
        self.records.sort(key=lambda r: r["created_at"], reverse=True)
        return record

    def _authorized(self, request):
        return request.headers.get("Authorization") == f"Bearer {self.token}"

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/api/auth/login":
            body = json.loads(request.content)
            if body["password"] != "s3cret-pass":
                return httpx.Response(401, json={"error": "Invalid email or password"})
            return httpx.Response(200, json={"token": self.token, "user": self.user})
        if path == "/api/auth/signup":
            return httpx.Response(200, json={"token": self.token, "user": self.user})
        if not self._authorized(request):
            return httpx.Response(401, json={"error": "Invalid token"})
        if path == "/api/auth/me":
            return httpx.Response(200, json=self.user)
        if path == "/api/analyses" and request.method == "GET":
            return httpx.Response(200, json=self.records)
        if path == "/api/analyses" and request.method == "POST":
            if self.fail_saves:
                return httpx.Response(500, json={"error": "Internal server error"})
            record = self.add_record("bullish")
            return httpx.Response(201, json=record)
        if path.startswith("/api/analyses/") and request.method == "DELETE":
            analysis_id = path.rsplit("/", 1)[-1]
            before = len(self.records)
            self.records = [r for r in self.records if r["id"] != analysis_id]
            if len(self.records) == before:
                return httpx.Response(404, json={"error": "Analysis not found"})
            return httpx.Response(204)
        return httpx.Response(404, json={"error": "Not Found"})


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def backend_client(fake_backend):
    from frontend.clients.backend_client import BackendClient

    return BackendClient(base_url="http://backend.test", transport=httpx.MockTransport(fake_backend.handler))


@pytest.fixture
def session_file(tmp_path):
    return str(tmp_path / "session" / "session.json")


@pytest.fixture
async def signed_in(backend_client, session_file):
    from frontend.session import SessionContext

    context = SessionContext(backend_client, session_file=session_file)
    await context.sign_in("trader@example.com", "s3cret-pass")
    return context


@pytest.fixture
def png_bytes():
    from PIL import Image

    buffer = io.BytesIO()
    with Image.new("RGB", (120, 60), (20, 30, 40)) as image:
        image.save(buffer, format="PNG")
    return buffer.getvalue()
