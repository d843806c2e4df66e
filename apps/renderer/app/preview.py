"""
Live preview of the pin at display scale (500x750).

Same layout tree as the export, so what the editor shows is what POST
/render produces. Nothing is fetched here: an http(s) image is referenced
by URL and left for the browser to load, a data URI is embedded as is, and
an empty image gives the neutral placeholder.
"""

from __future__ import annotations

from typing import Optional

from apps.renderer.app.fonts import FontCache, load_pin_faces
from apps.renderer.app.layout import build_pin_tree
from apps.renderer.app.schemas import DEFAULT_COLOR, DEFAULT_SUBTITLE, DEFAULT_TITLE
from apps.renderer.app.svg import tree_to_svg

PREVIEW_SCALE = 0.5


def render_preview_svg(
    main_image: Optional[str] = None,
    title: str = DEFAULT_TITLE,
    subtitle: str = DEFAULT_SUBTITLE,
    color: str = DEFAULT_COLOR,
    cache: Optional[FontCache] = None,
) -> str:
    faces = load_pin_faces(cache)
    tree = build_pin_tree(
        title=title,
        subtitle=subtitle,
        color=color,
        image_href=(main_image or "").strip() or None,
        faces=faces,
        scale=PREVIEW_SCALE,
    )
    return tree_to_svg(tree, faces)
