# apps/renderer/app/images.py
#
# Resolve the pin's main_image into something the rasterizer can embed.
#
#   http(s)://…   → fetched with httpx (browser-ish headers, redirects,
#                   size cap), must come back as an image/* body
#   data:…        → decoded in place (base64 or percent-encoded)
#
# Whatever arrives is decoded with Pillow, cover-fitted (centered crop) to
# the image region and re-encoded as PNG, so cairosvg only ever sees one
# format and never goes to the network itself. Every failure is an
# ImageLoadError; the caller turns that into a 500.

from __future__ import annotations

import base64
import binascii
import io
import logging
from typing import Optional, Tuple
from urllib.parse import unquote_to_bytes, urlparse

import httpx
from PIL import Image, ImageOps, UnidentifiedImageError

from apps.renderer.app.config import settings
from apps.renderer.app.errors import ImageLoadError

log = logging.getLogger("pinmaker.renderer.images")

BROWSER_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/125.0.0.0 Safari/537.36"
)
MAX_REDIRECTS = 5


def _timeout() -> httpx.Timeout:
    return httpx.Timeout(
        timeout=None,
        connect=settings.fetch_connect_timeout,
        read=settings.fetch_read_timeout,
        write=settings.fetch_read_timeout,
        pool=settings.fetch_connect_timeout,
    )


def _looks_like_image(content_type: Optional[str]) -> bool:
    if not content_type:
        return False
    ct = content_type.lower().split(";", 1)[0].strip()
    return ct.startswith("image/") or ct == "application/octet-stream"


def parse_data_url(src: str) -> Tuple[bytes, str]:
    """'data:<mime>[;base64],<data>' → (bytes, mime). Percent-escapes decode to raw bytes."""
    try:
        header, data = src.split(",", 1)
    except ValueError:
        raise ImageLoadError("malformed data URI (no ',' separator)")
    meta = header[5:].split(";")
    mime = meta[0] or "application/octet-stream"
    if "base64" in meta[1:]:
        try:
            return base64.b64decode(data, validate=False), mime
        except (binascii.Error, ValueError) as e:
            raise ImageLoadError(f"malformed base64 in data URI: {e}") from e
    return unquote_to_bytes(data), mime


def fetch_image_bytes(url: str, client: Optional[httpx.Client] = None) -> bytes:
    p = urlparse(url)
    if p.scheme not in ("http", "https") or not p.netloc:
        raise ImageLoadError(f"unsupported main_image URL: {url[:120]!r}")

    headers = {
        "User-Agent": BROWSER_UA,
        "Accept": "image/avif,image/webp,image/apng,image/*,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
        "Accept-Encoding": "identity",
    }
    limit = settings.max_image_bytes

    own_client = client is None
    if own_client:
        client = httpx.Client(timeout=_timeout(), follow_redirects=True, max_redirects=MAX_REDIRECTS)
    try:
        with client.stream("GET", url, headers=headers) as r:
            if r.status_code >= 400:
                raise ImageLoadError(f"main_image fetch returned HTTP {r.status_code}")
            ct = r.headers.get("Content-Type", "")
            if not _looks_like_image(ct):
                raise ImageLoadError(f"main_image is not an image (Content-Type {ct or '-'})")
            buf = bytearray()
            for chunk in r.iter_bytes():
                buf.extend(chunk)
                if len(buf) > limit:
                    raise ImageLoadError(f"main_image larger than {limit} bytes")
    except httpx.HTTPError as e:
        raise ImageLoadError(f"cannot fetch main_image: {type(e).__name__}: {e}") from e
    finally:
        if own_client:
            client.close()

    log.info("fetched main_image (%d bytes) from %s", len(buf), p.netloc)
    return bytes(buf)


def cover_fit_png(data: bytes, size: Tuple[int, int]) -> bytes:
    """Decode, crop to fill `size` around the center, re-encode as PNG."""
    try:
        im = Image.open(io.BytesIO(data))
        im.load()
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as e:
        raise ImageLoadError(f"main_image could not be decoded: {e}") from e

    im = ImageOps.exif_transpose(im)
    # flatten transparency onto white, same as the canvas behind the image
    if im.mode in ("RGBA", "LA") or (im.mode == "P" and "transparency" in im.info):
        im = im.convert("RGBA")
        background = Image.new("RGB", im.size, (255, 255, 255))
        background.paste(im, mask=im.split()[-1])
        im = background
    else:
        im = im.convert("RGB")

    im = ImageOps.fit(im, size, method=Image.Resampling.LANCZOS, centering=(0.5, 0.5))

    out = io.BytesIO()
    im.save(out, format="PNG")
    return out.getvalue()


def to_data_uri(png: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")


def load_main_image(src: str, size: Tuple[int, int], client: Optional[httpx.Client] = None) -> str:
    """main_image (URL or data URI) → PNG data URI of exactly `size`."""
    src = (src or "").strip()
    if src.startswith("data:"):
        data, _ = parse_data_url(src)
    else:
        data = fetch_image_bytes(src, client=client)
    return to_data_uri(cover_fit_png(data, size))
