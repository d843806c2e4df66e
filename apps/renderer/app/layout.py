# apps/renderer/app/layout.py
#
# The pin template as a fixed tree of boxes. Everything is expressed in
# output units (1000x1500) and multiplied by `scale`, so the browser
# preview (scale 0.5 → 500x750) and the PNG export share one layout.
#
#   ┌──────────── 1000 ────────────┐
#   │                              │
#   │  main image, cover-fit       │ 1200
#   │                              │
#   ├──────────────────────────────┤ ← band starts 14 above the image edge
#   │  TITLE (Playfair 800, 90)    │
#   │  subtitle (Inter 600, 36)    │ 314
#   └──────────────────────────────┘
#
# The text column is centered vertically inside the band. Without a
# subtitle the title sits on the band's midline.

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from apps.renderer.app.errors import RenderError
from apps.renderer.app.fonts import BODY, DISPLAY, Face

# -------------------------------------------------------------------
# Template constants (output units)
# -------------------------------------------------------------------

WIDTH = 1000
HEIGHT = 1500
CORNER_RADIUS = 20
BACKGROUND = "#ffffff"

IMAGE_HEIGHT = 1200
BAND_HEIGHT = 314          # overlaps the image by 14 to hide the seam

PAD_X = 40
PAD_Y = 80
COLUMN_GAP = 18
TEXT_COLOR = "#ffffff"

TITLE_SIZE = 90
TITLE_LINE_HEIGHT = 1.05
TITLE_TRACKING = 1.28

SUBTITLE_SIZE = 36
SUBTITLE_LINE_HEIGHT = 1.25
SUBTITLE_OPACITY = 0.95

PLACEHOLDER_FILL = "#f4f4f5"
PLACEHOLDER_TEXT = "#71717a"
PLACEHOLDER_CAPTION = "Image placeholder"
PLACEHOLDER_SIZE = 32
PLACEHOLDER_LINE_HEIGHT = 1.5

_HEX_COLOR = re.compile(r"^#?([0-9a-fA-F]{3,4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")


def parse_color(value: str) -> Tuple[str, float]:
    """
    '#abc', '#abcd', '#aabbcc' or '#aabbccdd' (hash optional) →
    ('#aabbcc', opacity). Without an alpha pair the opacity is 1.
    """
    m = _HEX_COLOR.match((value or "").strip())
    if not m:
        raise RenderError(f"invalid color {value!r} (expected #RGB, #RGBA, #RRGGBB or #RRGGBBAA)")
    hx = m.group(1).lower()
    if len(hx) <= 4:
        hx = "".join(c * 2 for c in hx)
    opacity = int(hx[6:], 16) / 255 if len(hx) == 8 else 1.0
    return f"#{hx[:6]}", opacity


# -------------------------------------------------------------------
# Tree nodes
# -------------------------------------------------------------------

@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float
    fill: str
    opacity: float = 1.0

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2


@dataclass(frozen=True)
class ImageBox:
    x: float
    y: float
    width: float
    height: float
    href: Optional[str]  # None → neutral placeholder


@dataclass(frozen=True)
class TextLine:
    text: str
    x: float
    baseline: float
    width: float


@dataclass(frozen=True)
class TextBlock:
    role: str
    size: float
    line_height: float
    letter_spacing: float
    fill: str
    opacity: float
    top: float
    lines: Tuple[TextLine, ...]

    @property
    def height(self) -> float:
        return len(self.lines) * self.size * self.line_height

    @property
    def center_y(self) -> float:
        return self.top + self.height / 2


@dataclass(frozen=True)
class PinTree:
    width: float
    height: float
    corner_radius: float
    background: str
    image: ImageBox
    band: Rect
    title: TextBlock
    subtitle: Optional[TextBlock]
    placeholder: Optional[TextBlock]


# -------------------------------------------------------------------
# Text setting
# -------------------------------------------------------------------

def _wrap(face: Face, text: str, size: float, tracking: float, max_width: float):
    return [(line, face.text_width(line, size, tracking)) for line in face.wrap(text, size, max_width, tracking)]


def _block_height(lines, size: float, line_height: float) -> float:
    return len(lines) * size * line_height


def _set_block(
    face: Face,
    role: str,
    lines,
    *,
    size: float,
    line_height: float,
    tracking: float,
    center_x: float,
    top: float,
    fill: str,
    opacity: float = 1.0,
) -> TextBlock:
    box = size * line_height
    offset = face.baseline_offset(size, line_height)
    placed = tuple(
        TextLine(text=text, x=center_x - width / 2, baseline=top + i * box + offset, width=width)
        for i, (text, width) in enumerate(lines)
    )
    return TextBlock(
        role=role,
        size=size,
        line_height=line_height,
        letter_spacing=tracking,
        fill=fill,
        opacity=opacity,
        top=top,
        lines=placed,
    )


# -------------------------------------------------------------------
# Tree builder
# -------------------------------------------------------------------

def build_pin_tree(
    *,
    title: str,
    subtitle: str,
    color: str,
    image_href: Optional[str],
    faces: Dict[str, Face],
    scale: float = 1.0,
) -> PinTree:
    """
    Lay out the pin. `faces` maps the DISPLAY and BODY roles to loaded
    fonts; `image_href` is whatever the SVG should reference (data URI for
    export, URL or data URI for preview, None for the placeholder).
    """
    k = scale
    width, height = WIDTH * k, HEIGHT * k
    center_x = width / 2
    column_width = width - 2 * PAD_X * k

    image = ImageBox(0, 0, width, IMAGE_HEIGHT * k, image_href or None)
    band_h = BAND_HEIGHT * k
    band_fill, band_opacity = parse_color(color)
    band = Rect(0, height - band_h, width, band_h, band_fill, band_opacity)

    display, body = faces[DISPLAY], faces[BODY]

    title_size, title_tracking = TITLE_SIZE * k, TITLE_TRACKING * k
    title_lines = _wrap(display, (title or "").upper(), title_size, title_tracking, column_width)
    content_h = _block_height(title_lines, title_size, TITLE_LINE_HEIGHT)

    sub_size = SUBTITLE_SIZE * k
    sub_text = (subtitle or "").strip()
    sub_lines = _wrap(body, sub_text, sub_size, 0.0, column_width) if sub_text else []
    if sub_lines:
        content_h += COLUMN_GAP * k + _block_height(sub_lines, sub_size, SUBTITLE_LINE_HEIGHT)

    # flex-style centering: overflow past PAD_Y spills evenly both ways
    top = band.center_y - content_h / 2

    title_block = _set_block(
        display, DISPLAY, title_lines,
        size=title_size, line_height=TITLE_LINE_HEIGHT, tracking=title_tracking,
        center_x=center_x, top=top, fill=TEXT_COLOR,
    )

    sub_block = None
    if sub_lines:
        sub_block = _set_block(
            body, BODY, sub_lines,
            size=sub_size, line_height=SUBTITLE_LINE_HEIGHT, tracking=0.0,
            center_x=center_x, top=top + title_block.height + COLUMN_GAP * k,
            fill=TEXT_COLOR, opacity=SUBTITLE_OPACITY,
        )

    placeholder = None
    if image.href is None:
        cap_size = PLACEHOLDER_SIZE * k
        cap_lines = _wrap(body, PLACEHOLDER_CAPTION, cap_size, 0.0, column_width)
        cap_h = _block_height(cap_lines, cap_size, PLACEHOLDER_LINE_HEIGHT)
        placeholder = _set_block(
            body, BODY, cap_lines,
            size=cap_size, line_height=PLACEHOLDER_LINE_HEIGHT, tracking=0.0,
            center_x=center_x, top=image.height / 2 - cap_h / 2, fill=PLACEHOLDER_TEXT,
        )

    return PinTree(
        width=width,
        height=height,
        corner_radius=CORNER_RADIUS * k,
        background=BACKGROUND,
        image=image,
        band=band,
        title=title_block,
        subtitle=sub_block,
        placeholder=placeholder,
    )
