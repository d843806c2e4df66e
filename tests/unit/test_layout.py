from unittest import TestCase

from apps.renderer.app import layout
from apps.renderer.app.errors import RenderError
from apps.renderer.app.fonts import BODY, DISPLAY, FontCache, load_pin_faces
from apps.renderer.app.layout import build_pin_tree, parse_color
from apps.renderer.app.svg import tree_to_svg
from tests.unit.fakes import seed_pin_fonts


def _faces():
    cache = FontCache()
    seed_pin_fonts(cache)
    return load_pin_faces(cache)


class TestParseColor(TestCase):

    def test_normalizes(self):
        self.assertEqual(parse_color("#5B3A1D"), ("#5b3a1d", 1.0))
        self.assertEqual(parse_color("5b3a1d"), ("#5b3a1d", 1.0))
        self.assertEqual(parse_color(" #abc "), ("#aabbcc", 1.0))

    def test_alpha(self):
        self.assertEqual(parse_color("#5B3A1D80"), ("#5b3a1d", 0x80 / 255))
        self.assertEqual(parse_color("#5b3a1dff"), ("#5b3a1d", 1.0))
        self.assertEqual(parse_color("#abc0"), ("#aabbcc", 0.0))

    def test_rejects(self):
        for bad in ("red", "#12345", "#1234567", "#gggggg", "", "rgb(0,0,0)"):
            with self.assertRaises(RenderError):
                parse_color(bad)


class TestBuildPinTree(TestCase):

    def setUp(self) -> None:
        self.faces = _faces()

    def _tree(self, **kw):
        args = dict(
            title="bake recipes",
            subtitle="Brown minimalist bakery template",
            color="#5B3A1D",
            image_href="data:image/png;base64,AAAA",
            faces=self.faces,
        )
        args.update(kw)
        return build_pin_tree(**args)

    def test_fixed_geometry(self):
        tree = self._tree()
        self.assertEqual((tree.width, tree.height), (1000, 1500))
        self.assertEqual(tree.corner_radius, 20)
        self.assertEqual(tree.background, "#ffffff")
        self.assertEqual((tree.image.x, tree.image.y, tree.image.width, tree.image.height), (0, 0, 1000, 1200))
        self.assertEqual((tree.band.width, tree.band.height), (1000, 314))
        self.assertEqual(tree.band.y + tree.band.height, 1500)
        # band overlaps the image bottom edge
        self.assertEqual(tree.image.height - tree.band.y, 14)
        self.assertEqual(tree.band.fill, "#5b3a1d")

    def test_title_upper_cased_and_centered(self):
        tree = self._tree()
        self.assertEqual(tree.title.role, DISPLAY)
        self.assertEqual(tree.title.size, 90)
        self.assertEqual([ln.text for ln in tree.title.lines], ["BAKE RECIPES"])
        line = tree.title.lines[0]
        self.assertAlmostEqual(line.x + line.width / 2, 500)

    def test_column_centered_in_band(self):
        tree = self._tree()
        self.assertIsNotNone(tree.subtitle)
        self.assertEqual(tree.subtitle.role, BODY)
        self.assertEqual(tree.subtitle.size, 36)
        self.assertEqual(tree.subtitle.opacity, 0.95)
        self.assertAlmostEqual(tree.subtitle.top - (tree.title.top + tree.title.height), 18)
        column_mid = (tree.title.top + tree.subtitle.top + tree.subtitle.height) / 2
        self.assertAlmostEqual(column_mid, tree.band.center_y)

    def test_no_subtitle_title_on_band_midline(self):
        for sub in ("", "   "):
            tree = self._tree(subtitle=sub)
            self.assertIsNone(tree.subtitle)
            self.assertAlmostEqual(tree.title.center_y, tree.band.center_y)

    def test_long_title_wraps_inside_column(self):
        tree = self._tree(title="the very best sourdough bread recipes for weekend baking")
        self.assertGreater(len(tree.title.lines), 1)
        for ln in tree.title.lines:
            self.assertLessEqual(ln.width, 920)
        baselines = [ln.baseline for ln in tree.title.lines]
        self.assertAlmostEqual(baselines[1] - baselines[0], 90 * 1.05)

    def test_placeholder_when_no_image(self):
        tree = self._tree(image_href=None)
        self.assertIsNone(tree.image.href)
        self.assertIsNotNone(tree.placeholder)
        self.assertEqual([ln.text for ln in tree.placeholder.lines], [layout.PLACEHOLDER_CAPTION])
        self.assertAlmostEqual(tree.placeholder.center_y, 600)
        self.assertIsNone(self._tree().placeholder)

    def test_preview_scale(self):
        tree = self._tree(scale=0.5)
        self.assertEqual((tree.width, tree.height), (500, 750))
        self.assertEqual(tree.band.height, 157)
        self.assertEqual(tree.title.size, 45)
        self.assertEqual(tree.corner_radius, 10)

    def test_bad_color(self):
        with self.assertRaises(RenderError):
            self._tree(color="not-a-color")


class TestTreeToSvg(TestCase):

    def setUp(self) -> None:
        self.faces = _faces()

    def _svg(self, **kw):
        args = dict(
            title="BAKE RECIPES",
            subtitle="Brown minimalist bakery template",
            color="#5B3A1D",
            image_href="data:image/png;base64,AAAA",
            faces=self.faces,
        )
        args.update(kw)
        return tree_to_svg(build_pin_tree(**args), self.faces)

    def test_document_shape(self):
        svg = self._svg()
        self.assertTrue(svg.startswith("<svg "))
        self.assertIn('width="1000" height="1500" viewBox="0 0 1000 1500"', svg)
        self.assertIn('rx="20" ry="20"', svg)
        self.assertIn('clip-path="url(#pin-clip)"', svg)
        self.assertIn('xlink:href="data:image/png;base64,AAAA"', svg)
        self.assertIn('preserveAspectRatio="xMidYMid slice"', svg)
        self.assertIn('y="1186" width="1000" height="314" fill="#5b3a1d"', svg)
        # text is outlined, never left to system fonts
        self.assertNotIn("<text", svg)
        self.assertEqual(svg.count('fill="#ffffff"'), 3)  # canvas, title, subtitle

    def test_subtitle_opacity_only_with_subtitle(self):
        self.assertIn('fill-opacity="0.95"', self._svg())
        self.assertNotIn("fill-opacity", self._svg(subtitle=""))

    def test_translucent_band(self):
        svg = self._svg(color="#5B3A1D80", subtitle="")
        self.assertIn('height="314" fill="#5b3a1d" fill-opacity="0.5"/>', svg)
        self.assertNotIn("#5b3a1d80", svg)

    def test_deterministic(self):
        self.assertEqual(self._svg(), self._svg())

    def test_href_is_escaped(self):
        svg = self._svg(image_href="https://img.example/a.jpg?w=1&h=2<x")
        self.assertIn('xlink:href="https://img.example/a.jpg?w=1&amp;h=2&lt;x"', svg)

    def test_placeholder(self):
        svg = self._svg(image_href=None)
        self.assertNotIn("<image", svg)
        self.assertIn(f'fill="{layout.PLACEHOLDER_FILL}"', svg)
        self.assertIn(f'fill="{layout.PLACEHOLDER_TEXT}"', svg)
