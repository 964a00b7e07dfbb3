"""
SVGA Forge Main Application
===========================

FastAPI entry point: the collaborator surface over one EditingSession.

The session lives on app.state and is created in the lifespan handler.
Presentation (upload form, preview canvas, progress bar) is expected to
be rendered by a client that calls these endpoints.

Endpoints:
    GET    /                   - Service information
    GET    /health             - Liveness probe
    GET    /frames             - Ordered frames, dimensions, config, duration
    POST   /frames             - Ingest a batch of base64 files
    DELETE /frames/{frame_id}  - Remove one frame
    DELETE /frames             - Clear the session
    GET    /previews/{handle}  - Bytes behind a live display handle
    PUT    /config             - Set fps / loop
    GET    /playback           - Scheduler state and cursor
    POST   /playback/start     - Start preview playback
    POST   /playback/stop      - Stop preview playback
    GET    /status             - GenerationStatus snapshot
    POST   /export             - Build and download the archive
    WS     /ws/status          - Real-time status stream
"""

import asyncio
import logging
import mimetypes
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from svga_forge.config import settings
from svga_forge.models.frame import IngestRequest
from svga_forge.models.sequence import InvalidConfig
from svga_forge.session import EditingSession


logger = logging.getLogger(__name__)


class ConfigUpdate(BaseModel):
    """Partial update of the sequence config."""

    fps: Optional[int] = None
    loop: Optional[bool] = None


def _alert(notice: str) -> None:
    logger.warning(f"User alert: {notice}")


def get_session(request: Request) -> EditingSession:
    return request.app.state.session


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the session on startup and stop playback on shutdown."""
    app.state.startup_time = time.time()
    app.state.session = EditingSession.from_settings(settings, alert=_alert)
    logger.info(f"Starting {settings.app.name} {settings.app.version}")

    yield

    logger.info("Shutting down gracefully...")
    app.state.session.stop_playback()
    logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="SVGA Forge",
    description="Image sequence to SVGA archive encoder",
    version=settings.app.version,
    lifespan=lifespan,
)


# =============================================================================
# HTTP Endpoints
# =============================================================================

@app.get("/")
async def root() -> JSONResponse:
    """Service information endpoint."""
    return JSONResponse({
        "service": "SVGA Forge",
        "version": settings.app.version,
        "name": settings.app.name,
        "status": "running",
    })


@app.get("/health")
async def health(request: Request) -> JSONResponse:
    """Liveness probe. Always 200 while the process is up."""
    return JSONResponse({
        "status": "healthy",
        "uptime_seconds": round(time.time() - request.app.state.startup_time, 1),
        "metrics": get_session(request).metrics(),
    })


@app.get("/frames")
async def list_frames(request: Request) -> JSONResponse:
    return JSONResponse(get_session(request).snapshot())


@app.post("/frames")
async def ingest_frames(request: Request, body: IngestRequest) -> JSONResponse:
    """Ingest a batch. 422 if the reference image cannot be probed."""
    session = get_session(request)
    outcome = await session.ingest(f.to_incoming() for f in body.files)

    if outcome.error is not None:
        return JSONResponse({"error": str(outcome.error)}, status_code=422)

    return JSONResponse({
        "added": [r.id for r in outcome.added],
        **session.snapshot(),
    })


@app.delete("/frames/{frame_id}")
async def remove_frame(request: Request, frame_id: str) -> JSONResponse:
    session = get_session(request)
    removed = session.remove(frame_id)
    return JSONResponse({"removed": removed, **session.snapshot()})


@app.delete("/frames")
async def clear_frames(request: Request) -> JSONResponse:
    session = get_session(request)
    cleared = session.clear()
    return JSONResponse({"cleared": cleared, **session.snapshot()})


@app.get("/previews/{handle}")
async def preview(request: Request, handle: str) -> Response:
    """Serve the bytes of a live display handle. 404 once released."""
    session = get_session(request)
    content = session.registry.handles.resolve(handle)
    if content is None:
        raise HTTPException(status_code=404, detail="Unknown or released handle")

    media_type = "application/octet-stream"
    for record in session.registry:
        if record.display_handle == handle:
            media_type = mimetypes.guess_type(record.name)[0] or media_type
            break
    return Response(content=content, media_type=media_type)


@app.put("/config")
async def update_config(request: Request, body: ConfigUpdate) -> JSONResponse:
    """Update fps and/or loop. 422 if fps is outside [1, 60]."""
    session = get_session(request)
    try:
        if body.fps is not None:
            session.set_fps(body.fps)
        if body.loop is not None:
            session.set_loop(body.loop)
    except InvalidConfig as e:
        return JSONResponse({"error": str(e)}, status_code=422)

    return JSONResponse({
        "config": session.config.model_dump(),
        "duration": session.duration,
    })


@app.get("/playback")
async def playback(request: Request) -> JSONResponse:
    return JSONResponse(get_session(request).snapshot()["playback"])


@app.post("/playback/start")
async def start_playback(request: Request) -> JSONResponse:
    session = get_session(request)
    started = session.start_playback()
    return JSONResponse({"started": started, **session.snapshot()["playback"]})


@app.post("/playback/stop")
async def stop_playback(request: Request) -> JSONResponse:
    session = get_session(request)
    session.stop_playback()
    return JSONResponse(session.snapshot()["playback"])


@app.get("/status")
async def status(request: Request) -> JSONResponse:
    return JSONResponse(get_session(request).status.to_dict())


@app.post("/export")
async def export(request: Request) -> Response:
    """
    Build the archive and return it as a download.

    204 if there are no frames, 409 while another export runs,
    500 with a user-facing notice if encoding fails.
    """
    session = get_session(request)
    outcome = await session.export()

    if outcome is None:
        return Response(status_code=204)
    if not outcome.accepted:
        return JSONResponse({"error": "Export already in progress"}, status_code=409)
    if outcome.error is not None:
        return JSONResponse(
            {"error": str(outcome.error), "status": session.status.to_dict()},
            status_code=500,
        )

    return Response(
        content=outcome.archive.content,
        media_type="application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{outcome.filename}"'},
    )


# =============================================================================
# WebSocket Endpoints
# =============================================================================

@app.websocket("/ws/status")
async def status_stream(websocket: WebSocket) -> None:
    """Push the status snapshot whenever it changes."""
    await websocket.accept()
    session: EditingSession = websocket.app.state.session
    logger.info("Client connected to /ws/status")

    queue: asyncio.Queue = asyncio.Queue()
    unsubscribe = session.trigger.subscribe(queue.put_nowait)

    async def pump() -> None:
        while True:
            snapshot = await queue.get()
            await websocket.send_json(snapshot.to_dict())

    sender: Optional[asyncio.Task] = None
    try:
        await websocket.send_json(session.status.to_dict())
        sender = asyncio.create_task(pump(), name="status_pump")
        # Inbound messages are ignored; receiving only detects disconnects
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.warning(f"WebSocket error: {e}")
    finally:
        if sender is not None:
            sender.cancel()
        unsubscribe()
        logger.info("Client disconnected from /ws/status")


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "svga_forge.main:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=False,
    )
