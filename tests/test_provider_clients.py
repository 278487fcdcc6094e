import asyncio
import base64
import json
from types import SimpleNamespace
from urllib.parse import parse_qs

import httpx
import pytest

from app.config import get_settings
from app.core.exotel_client import ExotelClient
from app.core.llm_client import LLMClient


@pytest.fixture
def exotel_settings():
    return get_settings().model_copy(
        update={
            "EXOTEL_BASE_URL": "https://api.exotel.test/",
            "EXOTEL_SID": "acme1",
            "EXOTEL_USER": "api-key",
            "EXOTEL_TOKEN": "api-token",
            "EXOTEL_NUMBER": "08046669001",
            "CALLFLOW_SID": "4242",
        }
    )


def _exotel(settings, handler):
    return ExotelClient(settings, transport=httpx.MockTransport(handler))


def _call(coro_fn):
    """Run one client coroutine and close the client afterwards."""

    async def scenario():
        client, coro = coro_fn()
        try:
            return await coro
        finally:
            await client.aclose()

    return asyncio.run(scenario())


def test_list_calls_sends_auth_and_page_size(exotel_settings):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"Calls": [{"Sid": "CA1"}, {"Sid": "CA2"}, "junk"]})

    def run():
        client = _exotel(exotel_settings, handler)
        return client, client.list_calls()

    calls = _call(run)

    assert calls == [{"Sid": "CA1"}, {"Sid": "CA2"}]
    request = seen[0]
    assert request.url.path == "/v1/Accounts/acme1/Calls.json"
    assert request.url.params["PageSize"] == "50"
    expected = base64.b64encode(b"api-key:api-token").decode()
    assert request.headers["authorization"] == f"Basic {expected}"


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="boom"),
        httpx.Response(200, text="not json"),
        httpx.Response(200, json=[{"Sid": "CA1"}]),
        httpx.Response(200, json={"Calls": "nope"}),
    ],
)
def test_list_calls_failures_yield_empty_list(exotel_settings, response):
    def run():
        client = _exotel(exotel_settings, lambda request: response)
        return client, client.list_calls()

    assert _call(run) == []


def test_list_calls_network_error_yields_empty_list(exotel_settings):
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    def run():
        client = _exotel(exotel_settings, handler)
        return client, client.list_calls()

    assert _call(run) == []


def test_fetch_call_details_normalizes(exotel_settings):
    def handler(request):
        assert request.url.path == "/v1/Accounts/acme1/Calls/CA9.json"
        return httpx.Response(
            200,
            json={
                "Call": {
                    "Sid": "CA9",
                    "From": "09876543210",
                    "To": "08046669001",
                    "Status": "completed",
                    "StartTime": "2024-06-10 09:30:00",
                    "EndTime": "2024-06-10 09:32:10",
                    "Duration": 130,
                    "Direction": "inbound",
                    "RecordingUrl": "https://recordings.example/CA9.mp3",
                }
            },
        )

    def run():
        client = _exotel(exotel_settings, handler)
        return client, client.fetch_call_details("CA9")

    call = _call(run)

    assert call["sid"] == "CA9"
    assert call["start_time"] == "2024-06-10T09:30:00.000"
    assert call["duration"] == "130"
    assert call["recordings"][0]["recording_url"] == "https://recordings.example/CA9.mp3"


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(404, json={"RestException": {"Message": "not found"}}),
        httpx.Response(200, json=["CA9"]),
        httpx.Response(200, json={"Call": None}),
        httpx.Response(200, text="<html>"),
    ],
)
def test_fetch_call_details_failures_yield_none(exotel_settings, response):
    def run():
        client = _exotel(exotel_settings, lambda request: response)
        return client, client.fetch_call_details("CA9")

    assert _call(run) is None


def test_place_outbound_call_posts_connect_form(exotel_settings):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"Call": {"Sid": "CA_NEW", "Status": "in-progress"}})

    def run():
        client = _exotel(exotel_settings, handler)
        return client, client.place_outbound_call("09123456789")

    data = _call(run)

    assert data["Call"]["Sid"] == "CA_NEW"
    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/v1/Accounts/acme1/Calls/connect.json"
    form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
    assert form == {"From": "08046669001", "To": "09123456789", "CallerId": "08046669001", "CallFlowSid": "4242"}


def test_place_outbound_call_raises_on_provider_error(exotel_settings):
    def run():
        client = _exotel(exotel_settings, lambda request: httpx.Response(401, text="unauthorized"))
        return client, client.place_outbound_call("09123456789")

    with pytest.raises(httpx.HTTPStatusError):
        _call(run)


def test_download_recording_writes_file(exotel_settings, tmp_path):
    dest = tmp_path / "rec.mp3"

    def run():
        client = _exotel(exotel_settings, lambda request: httpx.Response(200, content=b"ID3audio"))
        return client, client.download_recording("https://recordings.example/r.mp3", str(dest))

    assert _call(run) == 8
    assert dest.read_bytes() == b"ID3audio"


class _StubCompletions:
    def __init__(self, content):
        self.content = content
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _llm(content):
    completions = _StubCompletions(content)
    client = LLMClient(get_settings())
    client._openai = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return client, completions


def test_extract_lead_parses_json_object():
    client, completions = _llm(json.dumps({"is_lead": True, "customer_name": "Priya"}))

    result = asyncio.run(client.extract_lead("मेरा नाम प्रिया है"))

    assert result == {"is_lead": True, "customer_name": "Priya"}
    assert completions.kwargs["response_format"] == {"type": "json_object"}
    assert completions.kwargs["temperature"] == 0.0
    assert "मेरा नाम प्रिया है" in completions.kwargs["messages"][1]["content"]


@pytest.mark.parametrize("content", ["[1, 2]", "not json", ""])
def test_extract_lead_rejects_non_object_answers(content):
    client, _ = _llm(content)
    with pytest.raises(ValueError):
        client._blocking_extract_lead("transcript")


def test_summarize_returns_message_text():
    client, completions = _llm("Caller wants jeans samples.")
    assert asyncio.run(client.summarize("long text")) == "Caller wants jeans samples."
    assert completions.kwargs["max_tokens"] == 200
