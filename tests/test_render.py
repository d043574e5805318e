"""Tests for the Pillow rasterizer and the backend pool."""
import threading
import time
import unittest

from PIL import Image

from banner.document import load_document
from banner.errors import BackendPoolExhausted, RenderBackendError, RenderTimeout
from banner.geometry import CanvasSize
from banner.render import (
    BackendPool,
    PillowBackend,
    RasterBackend,
    RenderCancelled,
    gradient_image,
    parse_color,
)
from banner.scene import GradientBackgroundOp, SceneGraph, assemble


def _close(a, b, tolerance=12):
    return all(abs(x - y) <= tolerance for x, y in zip(a, b))


def _scene(width=40, height=20):
    return SceneGraph(CanvasSize(width, height), [GradientBackgroundOp("#000000", "#ffffff")])


class ColorTest(unittest.TestCase):
    def test_css_colors(self) -> None:
        self.assertEqual(parse_color("#fff"), (255, 255, 255, 255))
        self.assertEqual(parse_color("#ff000080"), (255, 0, 0, 128))
        self.assertEqual(parse_color("red"), (255, 0, 0, 255))

    def test_bad_color_falls_back(self) -> None:
        with self.assertLogs("banner.render", level="WARNING"):
            self.assertEqual(parse_color("not-a-color"), (59, 130, 246, 255))


class GradientTest(unittest.TestCase):
    def test_diagonal_gradient_runs_top_left_to_bottom_right(self) -> None:
        img = gradient_image((40, 20), "#000000", "#ffffff", 135.0)
        self.assertEqual(img.size, (40, 20))
        self.assertTrue(_close(img.getpixel((0, 0)), (0, 0, 0, 255)))
        self.assertTrue(_close(img.getpixel((39, 19)), (255, 255, 255, 255)))
        self.assertLess(img.getpixel((5, 5))[0], img.getpixel((30, 15))[0])

    def test_vertical_gradient(self) -> None:
        img = gradient_image((10, 100), "#ff0000", "#0000ff", 180.0)
        self.assertTrue(_close(img.getpixel((5, 0)), (255, 0, 0, 255)))
        self.assertTrue(_close(img.getpixel((5, 99)), (0, 0, 255, 255)))


class PillowBackendTest(unittest.TestCase):
    def _render(self, design, canvas=(200, 100)):
        doc = load_document(design, canvas={"width": canvas[0], "height": canvas[1]})
        return PillowBackend().render(assemble(doc))

    def test_output_matches_canvas_size(self) -> None:
        img = self._render({"mainText": "Hello"}, canvas=(320, 180))
        self.assertEqual(img.size, (320, 180))
        self.assertEqual(img.mode, "RGBA")

    def test_rectangle_paints_its_bounds_only(self) -> None:
        img = self._render(
            {
                "colors": ["#000000", "#000000"],
                "designElements": [
                    {"id": "r", "type": "shape", "shape": "rectangle", "x": 50, "y": 20,
                     "width": 40, "height": 30, "fill": "#ff0000", "stroke": "#ff0000"},
                ],
            }
        )
        self.assertTrue(_close(img.getpixel((70, 35)), (255, 0, 0, 255)))
        self.assertTrue(_close(img.getpixel((10, 10)), (0, 0, 0, 255)))
        self.assertTrue(_close(img.getpixel((150, 80)), (0, 0, 0, 255)))

    def test_opacity_blends_with_background(self) -> None:
        img = self._render(
            {
                "colors": ["#000000", "#000000"],
                "designElements": [
                    {"id": "r", "type": "shape", "shape": "rectangle", "x": 0, "y": 0, "width": 100,
                     "height": 100, "fill": "#ffffff", "stroke": "#ffffff", "opacity": 0.5},
                ],
            }
        )
        red = img.getpixel((50, 50))[0]
        self.assertTrue(110 <= red <= 145, red)

    def test_rotation_keeps_center(self) -> None:
        img = self._render(
            {
                "colors": ["#000000", "#000000"],
                "designElements": [
                    {"id": "r", "type": "shape", "shape": "rectangle", "x": 80, "y": 30, "width": 40,
                     "height": 40, "fill": "#00ff00", "stroke": "#00ff00", "rotation": 45},
                ],
            }
        )
        self.assertTrue(_close(img.getpixel((100, 50)), (0, 255, 0, 255)))
        # the unrotated corner is outside the rotated square
        self.assertTrue(_close(img.getpixel((81, 31)), (0, 0, 0, 255)))

    def test_text_is_drawn(self) -> None:
        design = {
            "colors": ["#000000", "#000000"],
            "mainText": "HELLO",
            "textStyle": {"fontSize": 40, "color": "#ffffff"},
        }
        img = self._render(design)
        self.assertGreater(img.convert("L").getextrema()[1], 200)

    def test_text_effects_render(self) -> None:
        design = {
            "colors": ["#ffffff", "#ffffff"],
            "mainText": "HELLO",
            "textStyle": {"fontSize": 40, "shadow": True, "outline": True, "gradient": True},
        }
        img = self._render(design).convert("RGB")
        colors = {color for _, color in img.getcolors(maxcolors=200 * 100)}
        self.assertGreater(len(colors), 10)

    def test_render_is_deterministic(self) -> None:
        design = {
            "mainText": "Deterministic",
            "textStyle": {"shadow": True, "outline": True},
            "designElements": [
                {"id": "s", "type": "shape", "shape": "star", "x": 10, "y": 10, "width": 60, "height": 60,
                 "rotation": 20},
                {"id": "i", "type": "icon", "icon": "instagram", "x": 120, "y": 20, "width": 48, "height": 48},
            ],
        }
        first = self._render(design)
        second = self._render(design)
        self.assertEqual(first.tobytes(), second.tobytes())

    def test_cancelled_render_raises(self) -> None:
        cancel = threading.Event()
        cancel.set()
        with self.assertRaises(RenderCancelled):
            PillowBackend().render(_scene(), cancel)


class SlowBackend(RasterBackend):
    """Blocks until cancelled, then unwinds like a torn-down page."""

    def __init__(self) -> None:
        super().__init__()
        self.closed = False

    def render(self, scene, cancel=None):
        deadline = time.monotonic() + 5
        while time.monotonic() < deadline:
            if cancel is not None and cancel.is_set():
                raise RenderCancelled("cancelled")
            time.sleep(0.01)
        return Image.new("RGBA", scene.canvas.as_tuple())

    def close(self) -> None:
        self.closed = True


class CrashingBackend(RasterBackend):
    def render(self, scene, cancel=None):
        raise RuntimeError("engine crashed")


class BackendPoolTest(unittest.TestCase):
    def test_render_returns_backend_to_pool(self) -> None:
        created = []

        def factory():
            backend = PillowBackend()
            created.append(backend)
            return backend

        pool = BackendPool(factory, size=1, acquire_timeout=1)
        try:
            pool.render(_scene(), timeout=10)
            pool.render(_scene(), timeout=10)
        finally:
            pool.close()
        self.assertEqual(len(created), 1)
        self.assertEqual(created[0].renders, 2)

    def test_timeout_replaces_backend(self) -> None:
        created = []

        def factory():
            backend = SlowBackend()
            created.append(backend)
            return backend

        pool = BackendPool(factory, size=1, acquire_timeout=1)
        try:
            with self.assertRaises(RenderTimeout):
                pool.render(_scene(), timeout=0.05)
            self.assertEqual(len(created), 2)
            self.assertTrue(created[0].closed)
            with pool.acquire() as backend:
                self.assertIs(backend, created[1])
        finally:
            pool.close()

    def test_crash_is_reported_as_backend_error(self) -> None:
        created = []

        def factory():
            backend = CrashingBackend()
            created.append(backend)
            return backend

        pool = BackendPool(factory, size=1, acquire_timeout=1)
        try:
            with self.assertRaises(RenderBackendError) as ctx:
                pool.render(_scene(), timeout=5)
            self.assertIsInstance(ctx.exception.__cause__, RuntimeError)
            self.assertEqual(len(created), 2)
        finally:
            pool.close()

    def test_exhausted_pool_times_out(self) -> None:
        pool = BackendPool(PillowBackend, size=1, acquire_timeout=0.05)
        try:
            with pool.acquire():
                with self.assertRaises(BackendPoolExhausted):
                    with pool.acquire():
                        pass
        finally:
            pool.close()

    def test_exhausted_acquire_does_not_poison_holder(self) -> None:
        pool = BackendPool(PillowBackend, size=1, acquire_timeout=0.05)
        try:
            with pool.acquire() as held:
                with self.assertRaises(BackendPoolExhausted):
                    with pool.acquire():
                        pass
            with pool.acquire() as again:
                self.assertIs(again, held)
        finally:
            pool.close()


if __name__ == "__main__":
    unittest.main()
