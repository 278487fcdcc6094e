import asyncio
import json

from starlette.websockets import WebSocketState

from app.core.notifier import broadcast_new_transcriptions
from app.core.scheduler import PeriodicJob
from app.main import app
from app.state.connections import ConnectionRegistry
from app.storage import calls_store


def test_new_transcriptions_are_broadcast_once(client, run):
    run(calls_store.upsert_call, {"sid": "CA1", "status": "completed", "recordings": []})
    run(calls_store.set_transcription, "CA1", "नमस्ते")
    run(calls_store.upsert_call, {"sid": "CA2", "recordings": []})

    with client.websocket_connect("/ws") as ws:
        assert run(broadcast_new_transcriptions, app.state.connections) == 1
        payload = json.loads(ws.receive_text())
        assert [c["sid"] for c in payload] == ["CA1"]
        assert payload[0]["transcription"] == "नमस्ते"

        assert run(broadcast_new_transcriptions, app.state.connections) == 0

    assert run(calls_store.get_call, "CA1")["is_processed"] is True
    assert run(calls_store.get_call, "CA2")["is_processed"] is False


def test_claim_without_clients_still_marks_processed(client, run):
    run(calls_store.set_transcription, "CA3", "text")

    assert run(broadcast_new_transcriptions, app.state.connections) == 1
    assert run(calls_store.claim_unprocessed_transcriptions) == []


def test_health_reports_connected_clients(client):
    with client.websocket_connect("/ws"):
        assert client.get("/health").json()["websocket_clients"] == 1
    assert client.get("/health").json()["websocket_clients"] == 0


class _Socket:
    def __init__(self, fail=False):
        self.application_state = WebSocketState.CONNECTED
        self.fail = fail
        self.sent = []
        self.accepted = False

    async def accept(self):
        self.accepted = True

    async def send_text(self, message):
        if self.fail:
            raise RuntimeError("connection reset")
        self.sent.append(message)


def test_registry_drops_clients_that_fail():
    async def scenario():
        registry = ConnectionRegistry()
        good, bad, closing = _Socket(), _Socket(fail=True), _Socket()
        closing.application_state = WebSocketState.DISCONNECTED
        for ws in (good, bad, closing):
            await registry.connect(ws)

        delivered = await registry.broadcast("[]")
        return registry, good, delivered

    registry, good, delivered = asyncio.run(scenario())
    assert delivered == 1
    assert good.sent == ["[]"]
    assert good.accepted
    assert len(registry) == 2


def test_periodic_job_skips_tick_while_running():
    async def scenario():
        release = asyncio.Event()
        runs = []

        async def body():
            runs.append(1)
            await release.wait()

        job = PeriodicJob("test", 60, body)
        assert job.tick() is True
        await asyncio.sleep(0)
        assert job.running
        assert job.tick() is False

        release.set()
        await asyncio.sleep(0.01)
        assert not job.running
        assert job.tick() is True
        await asyncio.sleep(0.01)
        await job.stop()
        return runs

    assert asyncio.run(scenario()) == [1, 1]


def test_periodic_job_survives_failures():
    async def scenario():
        calls = []

        async def body():
            calls.append(1)
            raise RuntimeError("boom")

        job = PeriodicJob("flaky", 0.01, body)
        job.start()
        await asyncio.sleep(0.1)
        await job.stop()
        return calls

    assert len(asyncio.run(scenario())) >= 2
