# apps/renderer/app/render.py
#
# The export pipeline behind POST /render:
#
#   PinRequest → main image (fetch + cover-fit) → PinTree → SVG → PNG
#
# Single attempt, fail fast. Anything that goes wrong below is surfaced as
# a RenderError so the route has exactly one failure type to map to 500.

from __future__ import annotations

import logging
from typing import Optional

import httpx

from apps.renderer.app.errors import RenderError
from apps.renderer.app.fonts import FontCache, load_pin_faces
from apps.renderer.app.images import load_main_image
from apps.renderer.app.layout import HEIGHT, IMAGE_HEIGHT, WIDTH, build_pin_tree
from apps.renderer.app.raster import svg_to_png
from apps.renderer.app.schemas import PinRequest
from apps.renderer.app.svg import tree_to_svg

log = logging.getLogger("pinmaker.renderer")


def render_pin_svg(
    pin: PinRequest,
    *,
    cache: Optional[FontCache] = None,
    client: Optional[httpx.Client] = None,
) -> str:
    try:
        faces = load_pin_faces(cache)
        image_href = None
        if pin.main_image.strip():
            image_href = load_main_image(pin.main_image, (WIDTH, IMAGE_HEIGHT), client=client)
        tree = build_pin_tree(
            title=pin.title,
            subtitle=pin.subtitle,
            color=pin.color,
            image_href=image_href,
            faces=faces,
        )
        return tree_to_svg(tree, faces)
    except RenderError:
        raise
    except Exception as e:
        raise RenderError(f"{type(e).__name__}: {e}") from e


def render_pin_png(
    pin: PinRequest,
    *,
    cache: Optional[FontCache] = None,
    client: Optional[httpx.Client] = None,
) -> bytes:
    """Render the pin to a 1000x1500 PNG. Raises RenderError on any failure."""
    log.info("rendering pin %s", pin.log_params())
    svg = render_pin_svg(pin, cache=cache, client=client)
    log.info("svg generated (%d chars), rasterizing", len(svg))
    png = svg_to_png(svg, WIDTH, HEIGHT)
    log.info("pin rendered (%d bytes)", len(png))
    return png
