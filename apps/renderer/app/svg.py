# apps/renderer/app/svg.py
#
# PinTree → SVG document. Output is deterministic for a given tree and
# font set: same input, same bytes.

from __future__ import annotations

from typing import Dict, List
from xml.sax.saxutils import quoteattr

from apps.renderer.app.fonts import Face, svg_num
from apps.renderer.app.layout import PLACEHOLDER_FILL, PinTree, TextBlock

SVG_NS = "http://www.w3.org/2000/svg"
XLINK_NS = "http://www.w3.org/1999/xlink"


def _text_paths(block: TextBlock, face: Face) -> List[str]:
    out = []
    opacity = "" if block.opacity >= 1 else f' fill-opacity="{svg_num(block.opacity)}"'
    for line in block.lines:
        d = face.line_path(line.text, line.x, line.baseline, block.size, block.letter_spacing)
        if not d:
            continue  # whitespace-only line
        out.append(f'<path d="{d}" fill="{block.fill}"{opacity}/>')
    return out


def tree_to_svg(tree: PinTree, faces: Dict[str, Face]) -> str:
    w, h = svg_num(tree.width), svg_num(tree.height)
    r = svg_num(tree.corner_radius)
    img = tree.image

    parts = [
        f'<svg xmlns="{SVG_NS}" xmlns:xlink="{XLINK_NS}" '
        f'width="{w}" height="{h}" viewBox="0 0 {w} {h}">',
        "<defs>",
        f'<clipPath id="pin-clip"><rect x="0" y="0" width="{w}" height="{h}" rx="{r}" ry="{r}"/></clipPath>',
        "</defs>",
        '<g clip-path="url(#pin-clip)">',
        f'<rect x="0" y="0" width="{w}" height="{h}" fill="{tree.background}"/>',
    ]

    if img.href:
        href = quoteattr(img.href)
        parts.append(
            f'<image x="{svg_num(img.x)}" y="{svg_num(img.y)}" width="{svg_num(img.width)}" height="{svg_num(img.height)}" '
            f'preserveAspectRatio="xMidYMid slice" xlink:href={href}/>'
        )
    else:
        parts.append(
            f'<rect x="{svg_num(img.x)}" y="{svg_num(img.y)}" width="{svg_num(img.width)}" '
            f'height="{svg_num(img.height)}" fill="{PLACEHOLDER_FILL}"/>'
        )
        if tree.placeholder is not None:
            parts.extend(_text_paths(tree.placeholder, faces[tree.placeholder.role]))

    band = tree.band
    band_opacity = "" if band.opacity >= 1 else f' fill-opacity="{svg_num(band.opacity)}"'
    parts.append(
        f'<rect x="{svg_num(band.x)}" y="{svg_num(band.y)}" width="{svg_num(band.width)}" '
        f'height="{svg_num(band.height)}" fill="{band.fill}"{band_opacity}/>'
    )

    parts.extend(_text_paths(tree.title, faces[tree.title.role]))
    if tree.subtitle is not None:
        parts.extend(_text_paths(tree.subtitle, faces[tree.subtitle.role]))

    parts.append("</g>")
    parts.append("</svg>")
    return "\n".join(parts)
