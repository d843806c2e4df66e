import base64
import io
from unittest import TestCase, mock
from urllib.parse import quote_from_bytes

import httpx
from PIL import Image

from apps.renderer.app.config import settings
from apps.renderer.app.errors import ImageLoadError
from apps.renderer.app.images import (
    cover_fit_png,
    fetch_image_bytes,
    load_main_image,
    parse_data_url,
)
from tests.unit.fakes import png_data_uri, solid_png


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestParseDataUrl(TestCase):

    def test_base64(self):
        data, mime = parse_data_url("data:image/png;base64," + base64.b64encode(b"abc").decode())
        self.assertEqual((data, mime), (b"abc", "image/png"))

    def test_plain(self):
        data, mime = parse_data_url("data:,hello%20world")
        self.assertEqual((data, mime), (b"hello world", "application/octet-stream"))

    def test_percent_encoded_bytes_kept(self):
        data, _ = parse_data_url("data:image/png,%89PNG%0D%0A%1A%0A")
        self.assertEqual(data, b"\x89PNG\r\n\x1a\n")

    def test_percent_encoded_png_loads(self):
        src = "data:image/png," + quote_from_bytes(solid_png((10, 200, 30)))
        out = load_main_image(src, (100, 120))
        self.assertTrue(out.startswith("data:image/png;base64,"))
        png = base64.b64decode(out.split(",", 1)[1])
        with Image.open(io.BytesIO(png)) as im:
            self.assertEqual(im.convert("RGB").getpixel((50, 60)), (10, 200, 30))

    def test_malformed(self):
        with self.assertRaises(ImageLoadError):
            parse_data_url("data:image/png;base64")


class TestCoverFit(TestCase):

    def test_exact_size_and_color(self):
        out = cover_fit_png(solid_png((200, 10, 10), (300, 200)), (1000, 1200))
        with Image.open(io.BytesIO(out)) as im:
            self.assertEqual(im.format, "PNG")
            self.assertEqual(im.size, (1000, 1200))
            self.assertEqual(im.convert("RGB").getpixel((500, 600)), (200, 10, 10))

    def test_transparency_flattened_on_white(self):
        im = Image.new("RGBA", (40, 40), (0, 0, 0, 0))
        buf = io.BytesIO()
        im.save(buf, format="PNG")
        out = cover_fit_png(buf.getvalue(), (100, 120))
        with Image.open(io.BytesIO(out)) as res:
            self.assertEqual(res.mode, "RGB")
            self.assertEqual(res.getpixel((50, 60)), (255, 255, 255))

    def test_not_an_image(self):
        with self.assertRaises(ImageLoadError):
            cover_fit_png(b"<html>nope</html>", (100, 100))


class TestFetchImageBytes(TestCase):

    def test_ok(self):
        png = solid_png((1, 2, 3))
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["ua"] = request.headers.get("user-agent")
            return httpx.Response(200, headers={"Content-Type": "image/png"}, content=png)

        with _client(handler) as client:
            self.assertEqual(fetch_image_bytes("https://img.example/a.png", client=client), png)
        self.assertIn("Mozilla/5.0", seen["ua"])

    def test_http_error_status(self):
        with _client(lambda r: httpx.Response(404, headers={"Content-Type": "text/html"})) as client:
            with self.assertRaisesRegex(ImageLoadError, "HTTP 404"):
                fetch_image_bytes("https://img.example/missing.png", client=client)

    def test_not_image_content_type(self):
        handler = lambda r: httpx.Response(200, headers={"Content-Type": "text/html"}, content=b"<html/>")
        with _client(handler) as client:
            with self.assertRaisesRegex(ImageLoadError, "not an image"):
                fetch_image_bytes("https://img.example/page", client=client)

    def test_unreachable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with _client(handler) as client:
            with self.assertRaisesRegex(ImageLoadError, "ConnectError"):
                fetch_image_bytes("https://unreachable.example/a.jpg", client=client)

    def test_size_cap(self):
        handler = lambda r: httpx.Response(200, headers={"Content-Type": "image/png"}, content=b"x" * 64)
        with mock.patch.object(settings, "max_image_bytes", 10), _client(handler) as client:
            with self.assertRaisesRegex(ImageLoadError, "larger than"):
                fetch_image_bytes("https://img.example/big.png", client=client)

    def test_rejects_non_http(self):
        for url in ("ftp://img.example/a.png", "file:///etc/passwd", "not a url"):
            with self.assertRaises(ImageLoadError):
                fetch_image_bytes(url)


class TestLoadMainImage(TestCase):

    def test_data_uri(self):
        uri = load_main_image(png_data_uri((0, 128, 0)), (1000, 1200))
        self.assertTrue(uri.startswith("data:image/png;base64,"))
        raw = base64.b64decode(uri.split(",", 1)[1])
        with Image.open(io.BytesIO(raw)) as im:
            self.assertEqual(im.size, (1000, 1200))

    def test_url_goes_through_fetch(self):
        handler = lambda r: httpx.Response(200, headers={"Content-Type": "image/png"}, content=solid_png((9, 9, 9)))
        with _client(handler) as client:
            uri = load_main_image("https://img.example/a.png", (10, 12), client=client)
        raw = base64.b64decode(uri.split(",", 1)[1])
        with Image.open(io.BytesIO(raw)) as im:
            self.assertEqual(im.size, (10, 12))
