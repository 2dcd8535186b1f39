"""FastAPI endpoints with the orchestrator swapped for stubbed chains."""

import asyncio
from types import SimpleNamespace

import pytest
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.testclient import TestClient

from backend.tailor import main
from backend.tailor.config import ServerConfig
from backend.tailor.errors import ProviderError
from backend.tailor.main import ClientDisconnected, _cancel_on_disconnect, app, cors_options, get_orchestrator

from tests.helpers import StubReasoner, StubSynthesizer, StubVisionAnalyzer, make_orchestrator

PNG_DATA_URL = "data:image/png;base64,aGVsbG8="


@pytest.fixture
def client_for():
    def build(**chains):
        orchestrator = make_orchestrator(**chains)
        app.dependency_overrides[get_orchestrator] = lambda: orchestrator
        return TestClient(app)

    yield build
    app.dependency_overrides.clear()


def test_health_lists_candidates(client_for):
    response = client_for().get("/health")

    assert response.status_code == 200
    assert response.json()["chains"]["vision"] == ["vlm/stub"]


def test_config_hides_credentials(client_for):
    body = client_for().get("/config").json()

    assert "credentials" not in body
    assert body["polling"]["max_polls"] == 15


def test_analyze_with_uploaded_image_and_text(client_for):
    response = client_for().post(
        "/analyze",
        files={"image": ("skirt.jpg", b"\xff\xd8\xffjpeg", "image/jpeg")},
        data={"text": "the hem came down"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["transcription"] == "the hem came down"
    assert body["visionAnalysis"].startswith("Garment: skirt")
    assert body["analysis"].startswith("## Repair guide")


def test_analyze_with_data_url_image_and_audio(client_for):
    response = client_for().post(
        "/analyze",
        data={"image": PNG_DATA_URL},
        files={"audio": ("note.webm", b"\x1a\x45\xdf\xa3voice", "audio/webm")},
    )

    assert response.status_code == 200
    assert response.json()["transcription"] == "there is a tear near the hem"


def test_analyze_without_image_is_400(client_for):
    response = client_for().post("/analyze", data={"text": "help"})

    assert response.status_code == 400
    assert response.json() == {"error": "Image is required"}


def test_analyze_vision_exhaustion_is_generic_502(client_for):
    client = client_for(vision=[StubVisionAnalyzer("vlm", ProviderError("secret upstream detail"))])

    response = client.post("/analyze", data={"image": PNG_DATA_URL})

    assert response.status_code == 502
    assert response.json() == {"error": "Failed to analyze the garment."}
    assert "secret" not in response.text


def test_preview_success(client_for):
    response = client_for().post("/preview", json={"originalImage": PNG_DATA_URL, "prompt": "torn hem"})

    assert response.status_code == 200
    assert response.json() == {"success": True, "previewUrl": "data:image/png;base64,aW1n"}


def test_preview_unavailable_is_not_an_error(client_for):
    client = client_for(synthesis=[
        StubSynthesizer("direct", ProviderError("x")),
        StubSynthesizer("polled", ProviderError("y")),
    ])

    response = client.post("/preview", json={"originalImage": PNG_DATA_URL})

    assert response.status_code == 200
    assert response.json()["success"] is False


def test_preview_without_image_is_400(client_for):
    response = client_for().post("/preview", json={"prompt": "torn hem"})

    assert response.status_code == 400


def test_chat_reply(client_for):
    response = client_for().post("/chat", json={"messages": [{"role": "user", "content": "Best needle for denim?"}]})

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Use a slip stitch."}


def test_chat_exhaustion_is_502(client_for):
    client = client_for(chat=[StubReasoner("chat", ProviderError("down"))])

    response = client.post("/chat", json={"messages": [{"role": "user", "content": "hi"}]})

    assert response.status_code == 502
    assert response.json() == {"error": "Failed to process chat."}


# ── Client disconnects ──

class FakeRequest:
    def __init__(self, disconnected: bool):
        self.url = SimpleNamespace(path="/analyze")
        self.disconnected = disconnected

    async def is_disconnected(self) -> bool:
        return self.disconnected


@pytest.mark.asyncio
async def test_disconnect_cancels_in_flight_work(monkeypatch):
    monkeypatch.setattr(main, "_DISCONNECT_POLL_S", 0.01)
    cancelled = asyncio.Event()

    async def work():
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            cancelled.set()
            raise

    with pytest.raises(ClientDisconnected):
        await _cancel_on_disconnect(FakeRequest(disconnected=True), work())

    await asyncio.wait_for(cancelled.wait(), timeout=1)


@pytest.mark.asyncio
async def test_connected_client_gets_the_result(monkeypatch):
    monkeypatch.setattr(main, "_DISCONNECT_POLL_S", 0.01)

    async def work():
        await asyncio.sleep(0.05)
        return "## Repair guide"

    assert await _cancel_on_disconnect(FakeRequest(disconnected=False), work()) == "## Repair guide"


@pytest.mark.asyncio
async def test_disconnect_maps_to_499():
    response = await main._client_disconnected(None, ClientDisconnected())

    assert response.status_code == 499


# ── CORS ──

def test_cors_origins_come_from_server_config():
    options = cors_options(ServerConfig(cors_origins=["https://tailor.example"]))

    assert options["allow_origins"] == ["https://tailor.example"]
    assert options["allow_credentials"] is True


def test_cors_rejects_origins_outside_config():
    restricted = FastAPI()
    restricted.add_middleware(CORSMiddleware, **cors_options(ServerConfig(cors_origins=["https://tailor.example"])))
    client = TestClient(restricted)
    preflight = {"Access-Control-Request-Method": "POST"}

    allowed = client.options("/analyze", headers={"Origin": "https://tailor.example", **preflight})
    denied = client.options("/analyze", headers={"Origin": "https://elsewhere.example", **preflight})

    assert allowed.headers["access-control-allow-origin"] == "https://tailor.example"
    assert denied.status_code == 400


def test_app_uses_configured_wildcard_origin(client_for):
    response = client_for().get("/health", headers={"Origin": "https://anywhere.example"})

    assert response.headers["access-control-allow-origin"] == "*"


def test_orchestrator_missing_before_startup_raises():
    request = SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace()))

    with pytest.raises(RuntimeError, match="not initialized"):
        get_orchestrator(request)
