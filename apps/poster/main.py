# apps/poster/main.py
#
# ROLE:
# - Article poster service
#   - POST /generate : URL in, 1200x1600 (or requested size) PNG poster out
#   - GET  /health   : simple liveness probe
#
# FLOW (one request, no shared state):
#   body -> metadata.resolve(url)      feed first, page tags second, never raises
#        -> poster.build_poster_html   escaped, fixed layout, template palette
#        -> rasterizer.rasterize       fresh headless Chromium, closed in finally
#        -> temp PNG -> streamed -> deleted when the send ends (done or aborted)
#
# NOTES:
# - Missing url is the only error we shape ourselves (400 {"error": ...}).
# - Invalid source URLs and browser failures are NOT caught here; they bubble
#   up as the framework's plain 500.
# - Playwright's Chromium must be installed in this container
#   (`playwright install chromium`).
#
# ENV (see config.py):
#   PORT                    listen port (default 3000)
#   MAX_BODY_BYTES          request body cap (default 5MB)
#   MAX_CONCURRENT_RENDERS  live browser cap, 0 = unlimited (default 4)
#   FETCH_TIMEOUT           metadata HTTP timeout in seconds (default 10)

from __future__ import annotations

import logging
import time

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import FileResponse, JSONResponse
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from apps.poster.config import settings
from apps.poster.metadata import resolve
from apps.poster.models import RenderRequest
from apps.poster.poster import build_poster_html
from apps.poster.rasterizer import discard_artifact, rasterize, write_artifact

# -------------------------------------------------------------------
# logging
# -------------------------------------------------------------------

log = logging.getLogger("posterpulse.poster")
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(message)s",
)

VERSION = "1.0.0"

app = FastAPI(
    title="PosterPulse",
    version=VERSION,
    description="Turns an article URL into a PNG poster (title, excerpt, hero image).",
)


# -------------------------------------------------------------------
# body size guard
# -------------------------------------------------------------------

class PayloadTooLarge(HTTPException):
    def __init__(self) -> None:
        super().__init__(status_code=413, detail="Payload too large")


class BodySizeLimitMiddleware:
    """
    Caps request bodies at settings.max_body_bytes.
    Declared Content-Length is rejected up front; chunked bodies are counted
    as they are read and abort the read once they pass the cap.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        limit = settings.max_body_bytes
        length = Headers(scope=scope).get("content-length")
        if length and length.isdigit() and int(length) > limit:
            await _too_large()(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > limit:
                    raise PayloadTooLarge()
            return message

        await self.app(scope, limited_receive, send)


def _too_large() -> JSONResponse:
    return JSONResponse(status_code=413, content={"error": "Payload too large"})


@app.exception_handler(PayloadTooLarge)
async def payload_too_large_handler(_: Request, exc: PayloadTooLarge):
    return _too_large()


app.add_middleware(BodySizeLimitMiddleware)


# -------------------------------------------------------------------
# /health
# -------------------------------------------------------------------

@app.get("/health")
def health():
    """Liveness probe for infra."""
    return {
        "status": "ok",
        "service": "poster",
        "version": VERSION,
        "env": settings.env,
    }


# -------------------------------------------------------------------
# /generate
# -------------------------------------------------------------------

class ArtifactResponse(FileResponse):
    """FileResponse that removes its file once sending ends, aborted or not."""

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            discard_artifact(self.path)


@app.post("/generate")
async def generate(body: RenderRequest):
    """
    Resolve article metadata for body.url and return the poster PNG.

    The PNG is written to a uniquely named temp file, streamed back, and
    removed when sending ends, including when the client goes away
    mid-stream.
    """
    if not body.url:
        return JSONResponse(status_code=400, content={"error": "Missing url"})

    started = time.monotonic()
    size = body.viewport()

    meta = await resolve(body.url)
    html = build_poster_html(meta, body.url, body.template, size)
    png = await rasterize(html, size)
    path = write_artifact(png)

    log.info(
        "poster url=%s template=%s size=%dx%d bytes=%d image=%s took=%.2fs",
        body.url, body.template, size.w, size.h, len(png),
        "yes" if meta.image else "no", time.monotonic() - started,
    )

    return ArtifactResponse(path, media_type="image/png")


def main() -> None:
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
