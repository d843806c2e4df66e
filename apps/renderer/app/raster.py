from __future__ import annotations

import io

import cairosvg
from PIL import Image

from apps.renderer.app.errors import RenderError


def svg_to_png(svg: str, width: int, height: int) -> bytes:
    """
    Rasterize at 1:1. The document's viewBox already matches width x height,
    so output_width/height only pin the pixel size.
    """
    try:
        png = cairosvg.svg2png(
            bytestring=svg.encode("utf-8"),
            output_width=width,
            output_height=height,
        )
    except Exception as e:
        raise RenderError(f"rasterize failed: {type(e).__name__}: {e}") from e

    with Image.open(io.BytesIO(png)) as im:
        if im.size != (width, height):
            raise RenderError(f"rasterizer produced {im.size[0]}x{im.size[1]}, expected {width}x{height}")
    return png
