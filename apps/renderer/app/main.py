# apps/renderer/app/main.py
#
# ROLE:
# - Pin renderer service
#   - POST /render  : JSON pin payload + X-KEY → 1000x1500 PNG
#   - GET  /preview : same template at 500x750 as SVG, for the live editor
#   - GET  /health  : liveness probe + which font assets are cached
#
# CONTRACT (POST /render):
#   headers  Content-Type: application/json, X-KEY: <RENDER_KEY>
#   body     {main_image?, color?, title?, subtitle?, format?}  (all optional)
#   200      image/png
#   401      X-KEY missing/wrong, or RENDER_KEY not configured (nothing rendered),
#            whatever the method
#   405      correct key, method other than POST (bare OPTIONS → empty 200)
#   500      "Render failed: <reason>" (bad image URL, font fetch, rasterizer)
#
# NOTES:
# - A body that isn't valid JSON (or isn't an object) is treated as {}:
#   every field falls back to the template default.
# - Rendering is CPU-bound, so it runs in the threadpool; the only shared
#   state is the process-wide font cache in fonts.py.

from __future__ import annotations

import hmac
import json
import logging
from typing import Any, Dict, Optional

import uvicorn
from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import BaseModel, ValidationError
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from apps.renderer.app.config import settings
from apps.renderer.app.errors import AuthorizationError, MethodError, RenderError, RendererError
from apps.renderer.app.fonts import font_cache
from apps.renderer.app.preview import render_preview_svg
from apps.renderer.app.render import render_pin_png
from apps.renderer.app.schemas import (
    DEFAULT_COLOR,
    DEFAULT_SUBTITLE,
    DEFAULT_TITLE,
    HealthResponse,
    PinRequest,
)

VERSION = "1.0.0"

# -------------------------------------------------------------------
# logging
# -------------------------------------------------------------------

log = logging.getLogger("pinmaker.renderer")
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s [%(levelname)s] %(message)s",
)

# -------------------------------------------------------------------
# FastAPI app + CORS
# -------------------------------------------------------------------

app = FastAPI(
    title="Pinmaker Renderer",
    version=VERSION,
    description="Renders the minimalist bakery pin template to PNG, plus an SVG preview.",
)

_cors = settings.cors_origins.strip()
if _cors == "*":
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
else:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in _cors.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def _cors_headers() -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type, x-key",
    }


# -------------------------------------------------------------------
# Error handlers
# -------------------------------------------------------------------

class ErrorBody(BaseModel):
    ok: bool = False
    status: int
    error: str
    message: str


def _json_error(status_code: int, err: str, msg: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorBody(status=status_code, error=err, message=msg).model_dump(),
    )


@app.exception_handler(RendererError)
async def renderer_exc_handler(_: Request, exc: RendererError):
    if isinstance(exc, AuthorizationError):
        log.warning("rejected render request: %s", exc.message)
        return PlainTextResponse(exc.message, status_code=exc.status_code)
    if isinstance(exc, MethodError):
        return PlainTextResponse(exc.message, status_code=exc.status_code, headers={"Allow": "POST, OPTIONS"})
    log.error("render failed: %s", exc.message, exc_info=exc)
    return PlainTextResponse(f"Render failed: {exc.message}", status_code=exc.status_code)


@app.exception_handler(StarletteHTTPException)
async def http_exc_handler(_: Request, exc: StarletteHTTPException):
    # routing errors: unknown path, or a method the route does not take
    detail = exc.detail if isinstance(exc.detail, str) else json.dumps(exc.detail)
    return _json_error(exc.status_code, "http_error", detail)


@app.exception_handler(Exception)
async def unhandled_exc_handler(_: Request, exc: Exception):
    log.exception("unhandled error", exc_info=exc)
    return _json_error(500, exc.__class__.__name__, "Internal server error")


# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------

def require_render_key(x_key: Optional[str] = Header(None)) -> None:
    """Exact match against RENDER_KEY. No key configured means nobody gets in."""
    expected = settings.render_key or ""
    if not expected or not x_key or not hmac.compare_digest(x_key.encode(), expected.encode()):
        raise AuthorizationError("Unauthorized: Invalid X-KEY")


async def _read_payload(request: Request) -> Dict[str, Any]:
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except ValueError:
        log.warning("malformed JSON body (%d bytes); using template defaults", len(raw))
        return {}
    if not isinstance(data, dict):
        log.warning("JSON body is %s, not an object; using template defaults", type(data).__name__)
        return {}
    return data


# -------------------------------------------------------------------
# Endpoints
# -------------------------------------------------------------------

@app.get("/health", response_model=HealthResponse)
def health():
    """Liveness probe. Never touches the network."""
    return HealthResponse(
        status="ok",
        env=settings.env,
        version=VERSION,
        fonts_cached=font_cache.cached(),
    )


@app.post("/render", dependencies=[Depends(require_render_key)])
async def render(request: Request):
    payload = await _read_payload(request)
    try:
        pin = PinRequest.from_payload(payload)
    except ValidationError as e:
        raise RenderError(f"invalid payload: {e.errors(include_url=False)}") from e

    png = await run_in_threadpool(render_pin_png, pin)

    return Response(
        content=png,
        media_type="image/png",
        headers={
            "Content-Disposition": 'attachment; filename="pin.png"',
            "Cache-Control": "no-store",
        },
    )


@app.api_route("/render", methods=["GET", "PUT", "PATCH", "DELETE", "OPTIONS"], include_in_schema=False)
def render_wrong_method(request: Request):
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=_cors_headers())
    # key first: without it, every method is a 401
    require_render_key(request.headers.get("x-key"))
    raise MethodError("Method Not Allowed")


@app.get("/preview")
def preview(
    main_image: Optional[str] = Query(None, description="Image URL or data URI; empty → placeholder"),
    title: str = Query(DEFAULT_TITLE),
    subtitle: str = Query(DEFAULT_SUBTITLE),
    color: str = Query(DEFAULT_COLOR),
):
    """500x750 SVG of the current editor state. Same layout as the PNG export."""
    svg = render_preview_svg(main_image=main_image, title=title, subtitle=subtitle, color=color)
    return Response(
        content=svg,
        media_type="image/svg+xml",
        headers={"Cache-Control": "no-store"},
    )


if __name__ == "__main__":
    uvicorn.run("apps.renderer.app.main:app", host="0.0.0.0", port=8000, reload=False)
