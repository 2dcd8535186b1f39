"""FastAPI backend — REST endpoints for garment diagnosis, repair preview and chat."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Awaitable, TypeVar

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field
from starlette.datastructures import UploadFile

from backend.tailor.config import Config, ServerConfig, load_config
from backend.tailor.errors import ChainExhausted, ValidationError
from backend.tailor.models import ChatMessage, MediaInput
from backend.tailor.orchestrator import Orchestrator
from backend.tailor.utils.logging import setup_logging
from backend.tailor.utils.media import parse_data_url

logger = logging.getLogger(__name__)

T = TypeVar("T")

# How often a running request checks whether its client went away
_DISCONNECT_POLL_S = 0.5

# Non-standard "client closed request" status, as nginx uses it
_CLIENT_CLOSED = 499


def _startup_config() -> Config:
    # Load .env file into environment before credentials are read
    from dotenv import load_dotenv
    load_dotenv()
    return load_config()


# Loaded at import: the CORS middleware below needs it before startup
config = _startup_config()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Startup / shutdown lifecycle."""
    setup_logging()
    logger.info("Starting Tailor Assist backend...")
    app.state.config = config
    app.state.orchestrator = Orchestrator(config)
    yield
    logger.info("Shutting down...")


app = FastAPI(
    title="Tailor Assist",
    description="Garment damage diagnosis, repair guides and repaired-garment previews",
    version="1.0.0",
    lifespan=lifespan,
)


def get_orchestrator(request: Request) -> Orchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise RuntimeError("Orchestrator not initialized")
    return orchestrator


# ── CORS ──

def cors_options(server: ServerConfig) -> dict:
    """CORSMiddleware settings for the configured origins."""
    origins = server.cors_origins or ["*"]
    return {
        "allow_origins": origins,
        # Browsers refuse credentialed responses to a wildcard origin
        "allow_credentials": "*" not in origins,
        "allow_methods": ["*"],
        "allow_headers": ["*"],
    }


app.add_middleware(CORSMiddleware, **cors_options(config.server))


# ── Error mapping (no provider internals cross this boundary) ──

@app.exception_handler(ValidationError)
async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(ChainExhausted)
async def _chain_exhausted(request: Request, exc: ChainExhausted) -> JSONResponse:
    logger.error(f"[API] {request.url.path}: {exc}")
    return JSONResponse(status_code=502, content={"error": exc.user_message})


class ClientDisconnected(Exception):
    """The caller went away before the response was ready."""


@app.exception_handler(ClientDisconnected)
async def _client_disconnected(request: Request, exc: ClientDisconnected) -> Response:
    return Response(status_code=_CLIENT_CLOSED)


async def _cancel_on_disconnect(request: Request, work: Awaitable[T]) -> T:
    """Run `work` as a task; cancel it (and its provider calls) if the client disconnects."""
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=_DISCONNECT_POLL_S)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.info(f"[API] {request.url.path}: client disconnected, cancelling")
                task.cancel()
                raise ClientDisconnected()
    finally:
        if not task.done():
            task.cancel()


# ── Models ──

class PreviewRequest(BaseModel):
    originalImage: str | None = None
    prompt: str | None = None


class ChatMessageIn(BaseModel):
    role: str = "user"
    content: str = ""


class ChatRequest(BaseModel):
    messages: list[ChatMessageIn] = Field(default_factory=list)


# ── REST Endpoints ──

@app.get("/health")
async def health(orchestrator: Orchestrator = Depends(get_orchestrator)):
    """Health check with configured candidates per capability."""
    return {"status": "ok", "chains": orchestrator.describe()}


@app.get("/config")
async def get_config(orchestrator: Orchestrator = Depends(get_orchestrator)):
    """Return current configuration as JSON (credentials excluded)."""
    return orchestrator.config.public_dump()


async def _read_media(request: Request) -> MediaInput:
    """Pull image / audio / text out of a multipart form.

    `image` may be an uploaded file or a data URL string (what the browser
    client sends); `image_data` is accepted as an alias for the latter.
    """
    form = await request.form()
    image = form.get("image") or form.get("image_data")

    if isinstance(image, UploadFile):
        image_bytes = await image.read()
        image_mime = image.content_type or "image/jpeg"
        if not image_bytes:
            raise ValidationError("Image is required")
    elif isinstance(image, str) and image.strip():
        image_mime, image_bytes = parse_data_url(image)
    else:
        raise ValidationError("Image is required")

    audio_bytes, audio_mime = None, None
    audio = form.get("audio")
    if isinstance(audio, UploadFile):
        audio_bytes = await audio.read() or None
        audio_mime = audio.content_type

    text = form.get("text")
    return MediaInput(
        image_bytes=image_bytes,
        image_mime_type=image_mime,
        audio_bytes=audio_bytes,
        audio_mime_type=audio_mime,
        user_text=text if isinstance(text, str) else None,
    )


@app.post("/analyze")
async def analyze(request: Request, orchestrator: Orchestrator = Depends(get_orchestrator)):
    """Diagnose a damaged garment.

    Multipart fields: image (file or data URL), audio (optional file), text (optional).
    """
    media = await _read_media(request)
    result = await _cancel_on_disconnect(request, orchestrator.diagnose(media))
    return {"success": True, **result.to_dict()}


@app.post("/preview")
async def preview(req: PreviewRequest, request: Request, orchestrator: Orchestrator = Depends(get_orchestrator)):
    """Generate a best-effort "after repair" image from a data-URL photo."""
    if not req.originalImage:
        raise ValidationError("Image is required")

    mime, image = parse_data_url(req.originalImage)
    result = await _cancel_on_disconnect(
        request, orchestrator.generate_preview(image, mime, req.prompt)
    )

    if not result.available:
        # UI hides the preview section on success=false
        return {
            "success": False,
            "message": "Preview generation unavailable. The analysis above is still complete.",
        }
    return {"success": True, "previewUrl": result.image_data_or_url}


@app.post("/chat")
async def chat(req: ChatRequest, request: Request, orchestrator: Orchestrator = Depends(get_orchestrator)):
    """Follow-up conversation with the tailoring assistant."""
    messages = [ChatMessage(role=m.role, content=m.content) for m in req.messages]
    reply = await _cancel_on_disconnect(request, orchestrator.chat(messages))
    return {"success": True, "message": reply}


# ── Entry point ──

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "backend.tailor.main:app",
        host=config.server.host,
        port=config.server.port,
        reload=config.app.debug,
    )
