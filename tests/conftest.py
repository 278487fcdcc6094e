import os

os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["LOG_LEVEL"] = "warning"

import functools  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.api.deps import get_asr_client, get_exotel_client, get_llm_client  # noqa: E402
from app.config import get_settings  # noqa: E402
from app.core.exotel_client import normalize_call  # noqa: E402
from app.main import app  # noqa: E402


class FakeExotel:
    """In-memory stand-in for ExotelClient."""

    def __init__(self):
        self.details = {}  # sid -> raw Exotel Call object
        self.listing = []  # sids returned by list_calls
        self.failing = set()  # sids whose detail fetch fails
        self.audio = {}  # recording url -> bytes
        self.placed = []

    def add_call(self, sid, listed=True, **raw):
        call = {"Sid": sid, "From": "09876543210", "To": "08046669001", "Status": "completed",
                "StartTime": "2024-06-10 09:30:00", "Direction": "inbound"}
        call.update(raw)
        self.details[sid] = call
        if listed and sid not in self.listing:
            self.listing.append(sid)
        return call

    async def list_calls(self, page_size=50):
        return [{"Sid": sid} for sid in self.listing[:page_size]]

    async def fetch_call_details(self, call_sid):
        if call_sid in self.failing or call_sid not in self.details:
            return None
        return normalize_call(self.details[call_sid])

    async def place_outbound_call(self, to_number):
        self.placed.append(to_number)
        self.add_call("CA_OUT_1", listed=False, To=to_number, Status="in-progress", Direction="outbound-api")
        return {"Call": {"Sid": "CA_OUT_1", "Status": "in-progress"}}

    async def open_recording(self, url):
        return httpx.Response(200, headers={"content-type": "audio/mpeg"}, content=self.audio.get(url, b""))

    async def download_recording(self, url, dest_path):
        data = self.audio.get(url, b"")
        with open(dest_path, "wb") as fh:
            fh.write(data)
        return len(data)


class FakeLLM:
    def __init__(self):
        self.result = {
            "is_lead": True,
            "customer_name": "  Priya Sharma ",
            "phone_number": "98765-43210",
            "product_interest": "black jeans",
            "customer_need": "wants to see samples",
            "is_appointment": True,
            "confidence_score": 0.5,
        }
        self.error = None
        self.transcripts = []

    async def extract_lead(self, transcript):
        self.transcripts.append(transcript)
        if self.error:
            raise self.error
        return dict(self.result)

    async def summarize(self, text):
        return f"summary of: {text}"


class FakeASR:
    def __init__(self):
        self.text = "मेरा नाम प्रिया है, कल शाम को आना है"
        self.paths = []

    async def transcribe(self, path):
        self.paths.append(path)
        return self.text


@pytest.fixture
def fake_exotel():
    return FakeExotel()


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def fake_asr():
    return FakeASR()


@pytest.fixture
def client(tmp_path, monkeypatch, fake_exotel, fake_llm, fake_asr):
    settings = get_settings()
    monkeypatch.setattr(settings, "DB_URL", f"sqlite:///{tmp_path / 'test.db'}")
    app.dependency_overrides[get_exotel_client] = lambda: fake_exotel
    app.dependency_overrides[get_llm_client] = lambda: fake_llm
    app.dependency_overrides[get_asr_client] = lambda: fake_asr
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def run(client):
    """Run an async callable on the app's event loop."""

    def _run(fn, *args, **kwargs):
        return client.portal.call(functools.partial(fn, *args, **kwargs))

    return _run


@pytest.fixture
def auth_headers(client):
    client.post(
        "/api/auth/register",
        json={"name": "Agent", "email": "agent@example.com", "password": "s3cret", "assignedPhoneNumber": "+918046669001"},
    )
    resp = client.post("/api/auth/login", json={"email": "agent@example.com", "password": "s3cret"})
    return {"Authorization": f"Bearer {resp.json()['token']}"}
