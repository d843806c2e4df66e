# apps/renderer/app/fonts.py
#
# Font assets for the pin template.
#
#   display → Playfair Display @ 800 (title)
#   body    → Inter @ 600 (subtitle, placeholder caption)
#
# Bytes are fetched once per process (local path first, then URL) and kept
# forever in FontCache. Parsed faces are cached next to them. There is no
# lock: two first requests may both fetch, the second write simply replaces
# an identical value.
#
# Text never reaches the SVG as <text>. Face.line_path() turns a line into
# glyph outlines so the rasterizer does not depend on installed fonts.

from __future__ import annotations

import logging
from dataclasses import dataclass
from io import BytesIO
from typing import Dict, List, Optional

import httpx
from fontTools.pens.svgPathPen import SVGPathPen
from fontTools.pens.transformPen import TransformPen
from fontTools.ttLib import TTFont
from fontTools.varLib import instancer

from apps.renderer.app.config import settings
from apps.renderer.app.errors import FontLoadError

log = logging.getLogger("pinmaker.renderer.fonts")

DISPLAY = "display"
BODY = "body"


def svg_num(v: float) -> str:
    # 2 decimals is well below a device pixel at 1:1; keeps the SVG small
    s = f"{v:.2f}".rstrip("0").rstrip(".")
    return "0" if s in ("", "-0") else s


@dataclass(frozen=True)
class FontSpec:
    family: str
    weight: int
    url: str
    path: Optional[str] = None

    @property
    def key(self) -> str:
        return f"{self.family}:{self.weight}:{self.path or self.url}"


def pin_fonts() -> Dict[str, FontSpec]:
    """Font roles used by the template, resolved from current settings."""
    return {
        DISPLAY: FontSpec("Playfair", 800, settings.display_font_url, settings.display_font_path),
        BODY: FontSpec("Inter", 600, settings.body_font_url, settings.body_font_path),
    }


class Face:
    """A parsed font pinned to one weight, with the metrics layout needs."""

    def __init__(self, family: str, font: TTFont):
        self.family = family
        self._font = font
        self.units_per_em = font["head"].unitsPerEm
        hhea = font["hhea"]
        self.ascender = hhea.ascent
        self.descender = hhea.descent  # negative
        self._cmap = font.getBestCmap() or {}
        self._hmtx = font["hmtx"]
        self._glyphs = font.getGlyphSet()

    @classmethod
    def from_bytes(cls, family: str, data: bytes, weight: int) -> "Face":
        font = TTFont(BytesIO(data))
        if "fvar" in font:
            font = _pin_variable_font(font, weight)
        return cls(family, font)

    def scale(self, size: float) -> float:
        return size / self.units_per_em

    def glyph_name(self, ch: str) -> str:
        return self._cmap.get(ord(ch), ".notdef")

    def text_width(self, text: str, size: float, letter_spacing: float = 0.0) -> float:
        if not text:
            return 0.0
        units = sum(self._hmtx[self.glyph_name(ch)][0] for ch in text)
        return units * self.scale(size) + letter_spacing * (len(text) - 1)

    def content_height(self, size: float) -> float:
        return (self.ascender - self.descender) * self.scale(size)

    def baseline_offset(self, size: float, line_height: float) -> float:
        """Distance from the top of a line box to its baseline (CSS half-leading)."""
        half_leading = (size * line_height - self.content_height(size)) / 2
        return half_leading + self.ascender * self.scale(size)

    def wrap(self, text: str, size: float, max_width: float, letter_spacing: float = 0.0) -> List[str]:
        """Greedy word wrap. A single word wider than max_width keeps its own line."""
        lines: List[str] = []
        for para in text.split("\n"):
            words = para.split()
            if not words:
                continue
            current = words[0]
            for word in words[1:]:
                candidate = f"{current} {word}"
                if self.text_width(candidate, size, letter_spacing) <= max_width:
                    current = candidate
                else:
                    lines.append(current)
                    current = word
            lines.append(current)
        return lines

    def line_path(self, text: str, x: float, baseline: float, size: float, letter_spacing: float = 0.0) -> str:
        """SVG path data for one line, left edge at x, in canvas coordinates."""
        pen = SVGPathPen(self._glyphs, ntos=svg_num)
        s = self.scale(size)
        cursor = x
        for ch in text:
            name = self.glyph_name(ch)
            self._glyphs[name].draw(TransformPen(pen, (s, 0, 0, -s, cursor, baseline)))
            cursor += self._hmtx[name][0] * s + letter_spacing
        return pen.getCommands()


def _pin_variable_font(font: TTFont, weight: int) -> TTFont:
    location = {}
    for axis in font["fvar"].axes:
        if axis.axisTag == "wght":
            location["wght"] = min(max(weight, axis.minValue), axis.maxValue)
        else:
            location[axis.axisTag] = axis.defaultValue
    return instancer.instantiateVariableFont(font, location)


def _read_font(spec: FontSpec) -> bytes:
    if spec.path:
        try:
            with open(spec.path, "rb") as fh:
                return fh.read()
        except OSError as e:
            raise FontLoadError(f"cannot read font {spec.family} from {spec.path}: {e}") from e

    timeout = httpx.Timeout(settings.fetch_read_timeout, connect=settings.fetch_connect_timeout)
    try:
        r = httpx.get(spec.url, timeout=timeout, follow_redirects=True)
        r.raise_for_status()
    except httpx.HTTPError as e:
        raise FontLoadError(f"cannot fetch font {spec.family} from {spec.url}: {e}") from e
    log.info("fetched font %s (%d bytes) from %s", spec.family, len(r.content), spec.url)
    return r.content


class FontCache:
    """Process-wide memo of font bytes and parsed faces. No eviction."""

    def __init__(self) -> None:
        self._bytes: Dict[str, bytes] = {}
        self._faces: Dict[str, Face] = {}

    def font_bytes(self, spec: FontSpec) -> bytes:
        data = self._bytes.get(spec.key)
        if data is None:
            data = _read_font(spec)
            self._bytes[spec.key] = data
        return data

    def face(self, spec: FontSpec) -> Face:
        face = self._faces.get(spec.key)
        if face is None:
            data = self.font_bytes(spec)
            try:
                face = Face.from_bytes(spec.family, data, spec.weight)
            except Exception as e:
                raise FontLoadError(f"cannot parse font {spec.family}: {e}") from e
            self._faces[spec.key] = face
        return face

    def seed(self, spec: FontSpec, data: bytes) -> None:
        self._bytes[spec.key] = data
        self._faces.pop(spec.key, None)

    def cached(self) -> List[str]:
        return sorted(self._bytes)

    def clear(self) -> None:
        self._bytes.clear()
        self._faces.clear()


font_cache = FontCache()


def load_pin_faces(cache: Optional[FontCache] = None) -> Dict[str, Face]:
    cache = cache or font_cache
    return {role: cache.face(spec) for role, spec in pin_fonts().items()}
