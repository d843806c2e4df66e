# apps/renderer/app/client.py
#
# Small caller for POST /render: build a payload, send it with X-KEY, save
# the PNG. Also prints the equivalent curl command for integrators.
#
#   python -m apps.renderer.app.client --url http://localhost:8000 \
#       --key $RENDER_KEY --title "Sourdough" --image ./loaf.jpg -o pin.png

from __future__ import annotations

import argparse
import base64
import json
import mimetypes
import os
import sys
from typing import Any, Dict, Optional

import httpx

DEFAULT_TIMEOUT = 60.0


class RenderClientError(Exception):
    def __init__(self, status: int, message: str):
        super().__init__(f"HTTP {status}: {message}")
        self.status = status
        self.message = message


def image_to_data_url(path: str) -> str:
    """Local file → data URI, the same thing the browser editor sends for uploads."""
    mime, _ = mimetypes.guess_type(path)
    with open(path, "rb") as fh:
        data = fh.read()
    return f"data:{mime or 'application/octet-stream'};base64,{base64.b64encode(data).decode('ascii')}"


def build_payload(
    title: Optional[str] = None,
    subtitle: Optional[str] = None,
    color: Optional[str] = None,
    main_image: Optional[str] = None,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {}
    if main_image:
        payload["main_image"] = image_to_data_url(main_image) if os.path.isfile(main_image) else main_image
    if color:
        payload["color"] = color
    if title is not None:
        payload["title"] = title
    if subtitle is not None:
        payload["subtitle"] = subtitle
    payload["format"] = "png"
    return payload


def render_endpoint(base_url: str) -> str:
    return base_url.rstrip("/") + "/render"


def render_pin(
    base_url: str,
    key: str,
    payload: Dict[str, Any],
    timeout: float = DEFAULT_TIMEOUT,
    client: Optional[httpx.Client] = None,
) -> bytes:
    headers = {"Content-Type": "application/json", "X-KEY": key}
    own_client = client is None
    if own_client:
        client = httpx.Client(timeout=timeout)
    try:
        r = client.post(render_endpoint(base_url), headers=headers, content=json.dumps(payload))
    finally:
        if own_client:
            client.close()
    if r.status_code >= 400:
        raise RenderClientError(r.status_code, r.text.strip() or r.reason_phrase)
    return r.content


def curl_command(base_url: str, payload: Dict[str, Any]) -> str:
    body = json.dumps(payload, separators=(", ", ": "))
    return (
        f'curl -X POST "{render_endpoint(base_url)}" \\\n'
        f'  -H "Content-Type: application/json" \\\n'
        f'  -H "X-KEY: YOUR_RENDER_KEY" \\\n'
        f"  -o pin.png \\\n"
        f"  -d '{body}'"
    )


def main(argv: Optional[list[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Render a pin through a running renderer service.")
    ap.add_argument("--url", default=os.getenv("RENDER_URL", "http://localhost:8000"))
    ap.add_argument("--key", default=os.getenv("RENDER_KEY"))
    ap.add_argument("--title")
    ap.add_argument("--subtitle")
    ap.add_argument("--color")
    ap.add_argument("--image", help="image URL, data URI or local file")
    ap.add_argument("-o", "--output", default="pin.png")
    ap.add_argument("--curl", action="store_true", help="print the curl command and exit")
    args = ap.parse_args(argv)

    payload = build_payload(args.title, args.subtitle, args.color, args.image)

    if args.curl:
        print(curl_command(args.url, payload))
        return 0

    if not args.key:
        print("RENDER_KEY required (--key or env)", file=sys.stderr)
        return 2

    try:
        png = render_pin(args.url, args.key, payload)
    except (RenderClientError, httpx.HTTPError) as e:
        print(f"render failed: {e}", file=sys.stderr)
        return 1

    with open(args.output, "wb") as fh:
        fh.write(png)
    print(f"saved {args.output} ({len(png)} bytes)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
