"""
Pillow rasterization backend and the pool that bounds concurrent renders.

The backend paints a `SceneGraph` operation by operation onto an RGBA
canvas. Primitives are drawn supersampled on their own layer so rotation,
opacity and knockouts stay local to the element.

Output is deterministic for a given Pillow/FreeType build. Glyph hinting
and antialiasing can differ between FreeType versions, so byte-identical
PNGs are only guaranteed within one font-rendering environment.
Each text block carries its own font object, so concurrent renders share
nothing but the backend pool.
"""

import abc
import concurrent.futures
import contextlib
import logging
import math
import queue
import threading
from typing import Callable, Iterator, Optional, Tuple

import numpy as np
from PIL import Image, ImageChops, ImageColor, ImageDraw, ImageFilter

from .errors import BackendPoolExhausted, RenderBackendError, RenderTimeout
from .geometry import CanvasSize, round_half_away
from .primitives import DrawInstruction, Part, PartKind
from .scene import (
    DrawOp,
    GradientBackgroundOp,
    ImageBackgroundOp,
    OverlayOp,
    PrimitiveOp,
    SceneGraph,
    TextOp,
)
from .text import TextBlock


logger = logging.getLogger(__name__)

RGBA = Tuple[int, int, int, int]

SUPERSAMPLE = 2
FALLBACK_COLOR: RGBA = (59, 130, 246, 255)  # blue-500


class RenderCancelled(RenderTimeout):
    """Raised inside a backend when its render was cancelled by the caller."""


def parse_color(value: str, fallback: RGBA = FALLBACK_COLOR) -> RGBA:
    """
    Parse any CSS-style color Pillow understands ('#fff', '#ff0000',
    'rgba(0,0,0,0.5)', 'red'). Falls back to a safe default if parsing fails.
    """
    try:
        color = ImageColor.getcolor(str(value).strip(), "RGBA")
    except ValueError:
        logger.warning("Unparseable color %r; using %s", value, fallback)
        return fallback
    return color


def gradient_image(size: Tuple[int, int], color_a: str, color_b: str, angle: float) -> Image.Image:
    """
    Linear gradient using CSS `linear-gradient(<angle>deg, a, b)` geometry:
    0deg points up, angles turn clockwise, and the gradient line is long
    enough for the corners to hit the end colors exactly.
    """
    width, height = size
    a = np.array(parse_color(color_a), dtype=np.float64)
    b = np.array(parse_color(color_b), dtype=np.float64)
    rad = math.radians(angle)
    dx, dy = math.sin(rad), -math.cos(rad)
    length = abs(width * dx) + abs(height * dy) or 1.0

    xs = np.arange(width, dtype=np.float64) + 0.5 - width / 2
    ys = np.arange(height, dtype=np.float64) + 0.5 - height / 2
    t = (xs[np.newaxis, :] * dx + ys[:, np.newaxis] * dy) / length + 0.5
    t = np.clip(t, 0.0, 1.0)[..., np.newaxis]
    pixels = np.floor(a + (b - a) * t + 0.5).astype(np.uint8)
    return Image.fromarray(pixels, "RGBA")


def scale_alpha(layer: Image.Image, factor: float) -> Image.Image:
    if factor >= 1.0:
        return layer
    alpha = layer.getchannel("A").point(lambda v: round_half_away(v * max(0.0, factor)))
    layer = layer.copy()
    layer.putalpha(alpha)
    return layer


def composite_at(base: Image.Image, layer: Image.Image, offset: Tuple[int, int]) -> None:
    """Alpha-composite `layer` onto `base` at `offset`, which may be negative."""
    overlay = Image.new("RGBA", base.size, (0, 0, 0, 0))
    overlay.paste(layer, offset)
    base.alpha_composite(overlay)


class RasterBackend(abc.ABC):
    """A rasterization engine instance. Not assumed safe for concurrent use."""

    def __init__(self) -> None:
        self.poisoned = False

    @abc.abstractmethod
    def render(self, scene: SceneGraph, cancel: Optional[threading.Event] = None) -> Image.Image:
        """Paint `scene` and return an RGBA image of exactly `scene.canvas` size."""

    def close(self) -> None:
        """Release engine resources. The instance must not be reused."""


class PillowBackend(RasterBackend):
    def __init__(self) -> None:
        super().__init__()
        self.renders = 0

    def render(self, scene: SceneGraph, cancel: Optional[threading.Event] = None) -> Image.Image:
        canvas = Image.new("RGBA", scene.canvas.as_tuple(), (0, 0, 0, 255))
        for op in scene.operations:
            if cancel is not None and cancel.is_set():
                raise RenderCancelled("render cancelled")
            self._draw(canvas, op, scene.canvas)
        self.renders += 1
        return canvas

    def _draw(self, canvas: Image.Image, op: DrawOp, size: CanvasSize) -> None:
        if isinstance(op, GradientBackgroundOp):
            canvas.paste(gradient_image(size.as_tuple(), op.color_a, op.color_b, op.angle))
        elif isinstance(op, ImageBackgroundOp):
            image = op.image.convert("RGBA")
            if image.size != size.as_tuple():
                image = image.resize(size.as_tuple(), Image.LANCZOS)
            canvas.paste(image)
        elif isinstance(op, OverlayOp):
            alpha = round_half_away(255 * op.opacity)
            canvas.alpha_composite(Image.new("RGBA", size.as_tuple(), op.color + (alpha,)))
        elif isinstance(op, PrimitiveOp):
            draw_primitive(canvas, op.instruction)
        elif isinstance(op, TextOp):
            draw_text(canvas, op.block)
        else:
            raise RenderBackendError(f"unsupported draw operation {type(op).__name__}")


def draw_primitive(canvas: Image.Image, instruction: DrawInstruction) -> None:
    bounds = instruction.bounds
    if bounds.width <= 0 or bounds.height <= 0 or instruction.opacity <= 0:
        return

    ss = SUPERSAMPLE
    size = (bounds.width * ss, bounds.height * ss)
    fill = parse_color(instruction.fill)
    stroke = parse_color(instruction.stroke)
    stroke_width = round_half_away(instruction.stroke_width * ss)

    layer = Image.new("RGBA", size, (0, 0, 0, 0))
    for part in instruction.parts:
        local = tuple(((x - bounds.x) * ss, (y - bounds.y) * ss) for x, y in part.points)
        if part.knockout:
            mask = Image.new("L", size, 0)
            _draw_part(ImageDraw.Draw(mask), part, local, 255, None, 0, ss)
            layer.putalpha(ImageChops.subtract(layer.getchannel("A"), mask))
            continue
        piece = Image.new("RGBA", size, (0, 0, 0, 0))
        color = fill[:3] + (round_half_away(fill[3] * part.alpha),)
        width = stroke_width if part.stroked else 0
        _draw_part(ImageDraw.Draw(piece), part, local, color, stroke, width, ss)
        layer.alpha_composite(piece)

    layer = layer.resize((bounds.width, bounds.height), Image.LANCZOS)
    layer = scale_alpha(layer, instruction.opacity)

    offset = (bounds.x, bounds.y)
    if instruction.rotation % 360:
        # Pillow rotates counter-clockwise; the design model is clockwise-positive.
        layer = layer.rotate(-instruction.rotation, resample=Image.BICUBIC, expand=True)
        cx, cy = bounds.center
        offset = (round_half_away(cx - layer.width / 2), round_half_away(cy - layer.height / 2))
    composite_at(canvas, layer, offset)


def _draw_part(draw: ImageDraw.ImageDraw, part: Part, points, fill, outline, width: int, ss: int) -> None:
    outline = outline if width > 0 else None
    if part.kind is PartKind.POLYGON:
        draw.polygon(points, fill=fill, outline=outline, width=max(width, 1))
        return
    (x0, y0), (x1, y1) = points
    box = [min(x0, x1), min(y0, y1), max(x0, x1) - 1, max(y0, y1) - 1]
    if part.kind is PartKind.ELLIPSE:
        draw.ellipse(box, fill=fill, outline=outline, width=width)
    elif part.kind is PartKind.RECT:
        draw.rectangle(box, fill=fill, outline=outline, width=width)
    elif part.kind is PartKind.ROUNDED_RECT:
        draw.rounded_rectangle(box, radius=part.radius * ss, fill=fill, outline=outline, width=width)
    else:
        raise RenderBackendError(f"unsupported part kind {part.kind!r}")


def draw_text(canvas: Image.Image, block: TextBlock) -> None:
    """
    Paint a laid-out text block with its effects.

    Layers, bottom to top: blurred shadow, outline stroke, fill (solid color
    or the gradient sampled across the block's bounding box).
    """
    size = canvas.size
    style = block.style
    effects = block.effects
    frame = block.frame

    glyphs = _text_mask(block, size, stroke=0)
    outer = _text_mask(block, size, stroke=effects.outline.width) if effects.outline else glyphs

    if frame.reveal < 1.0:
        box = block.bounding_box
        visible = Image.new("L", size, 0)
        ImageDraw.Draw(visible).rectangle(
            [box.x, 0, box.x + round_half_away(box.width * frame.reveal) - 1, size[1]], fill=255
        )
        glyphs = ImageChops.multiply(glyphs, visible)
        outer = ImageChops.multiply(outer, visible)

    layer = Image.new("RGBA", size, (0, 0, 0, 0))
    if effects.shadow:
        shadow = effects.shadow
        shifted = Image.new("L", size, 0)
        shifted.paste(outer, shadow.offset)
        blurred = shifted.filter(ImageFilter.GaussianBlur(shadow.blur / 2))
        layer.alpha_composite(_tint(blurred, shadow.color))

    if effects.outline:
        layer.alpha_composite(_tint(outer, effects.outline.color))

    if effects.gradient:
        box = block.bounding_box
        paint = Image.new("RGBA", size, (0, 0, 0, 0))
        if box.width > 0 and box.height > 0:
            gradient = gradient_image(
                (box.width, box.height), effects.gradient.stops[0], effects.gradient.stops[1], effects.gradient.angle
            )
            paint.paste(gradient, (box.x, box.y))
        paint.putalpha(ImageChops.multiply(glyphs, paint.getchannel("A")))
        layer.alpha_composite(paint)
    else:
        layer.alpha_composite(_tint(glyphs, parse_color(style.color, (255, 255, 255, 255))))

    layer = _apply_frame(layer, block)
    layer = scale_alpha(layer, style.opacity * frame.opacity)
    canvas.alpha_composite(layer)


def _tint(mask: Image.Image, color: RGBA) -> Image.Image:
    """Solid `color` whose alpha is `mask` scaled by the color's own alpha."""
    layer = Image.new("RGBA", mask.size, color[:3] + (0,))
    alpha = mask if color[3] >= 255 else ImageChops.multiply(mask, Image.new("L", mask.size, color[3]))
    layer.putalpha(alpha)
    return layer


def _text_mask(block: TextBlock, size: Tuple[int, int], stroke: int) -> Image.Image:
    mask = Image.new("L", size, 0)
    draw = ImageDraw.Draw(mask)
    spacing = block.style.letter_spacing
    for line in block.lines:
        if not line.text:
            continue
        if not spacing and not line.word_gap:
            draw.text((line.start_x, line.baseline_y), line.text, font=block.font, fill=255,
                      anchor="ls", stroke_width=stroke, stroke_fill=255)
            continue
        x = line.start_x
        for index, word in enumerate(line.text.split(" ")):
            if index:
                x += block.font.getlength(" ") + 2 * spacing + line.word_gap
            for char in word:
                draw.text((x, line.baseline_y), char, font=block.font, fill=255,
                          anchor="ls", stroke_width=stroke, stroke_fill=255)
                x += block.font.getlength(char) + spacing
            if word:
                x -= spacing
    return mask


def _apply_frame(layer: Image.Image, block: TextBlock) -> Image.Image:
    frame = block.frame
    if frame.scale == 1.0 and not frame.dx and not frame.dy:
        return layer
    if frame.scale <= 0:
        return Image.new("RGBA", layer.size, (0, 0, 0, 0))
    box = block.bounding_box
    cx, cy = box.center
    tx = frame.dx * box.width
    ty = frame.dy * box.height
    # Inverse mapping for Image.transform: output (x, y) samples input at
    # ((x - cx - tx) / s + cx, (y - cy - ty) / s + cy).
    s = frame.scale
    coeffs = (1 / s, 0, cx - (cx + tx) / s, 0, 1 / s, cy - (cy + ty) / s)
    return layer.transform(layer.size, Image.AFFINE, coeffs, resample=Image.BICUBIC)


BackendFactory = Callable[[], RasterBackend]


class BackendPool:
    """
    Fixed-size pool of backend instances.

    At most one render runs per instance. Acquisition blocks up to
    `acquire_timeout` seconds, then fails with `BackendPoolExhausted`.
    An instance that timed out or crashed is closed and replaced, never
    returned to the pool.
    """

    def __init__(
        self,
        factory: BackendFactory = PillowBackend,
        size: int = 2,
        acquire_timeout: float = 30.0,
    ) -> None:
        if size < 1:
            raise ValueError("pool size must be at least 1")
        self.factory = factory
        self.size = size
        self.acquire_timeout = acquire_timeout
        self._idle: "queue.Queue[RasterBackend]" = queue.Queue()
        for _ in range(size):
            self._idle.put(factory())
        # Extra workers let a new render start while a cancelled one unwinds.
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=size * 2, thread_name_prefix="banner-render"
        )
        self._closed = False

    @contextlib.contextmanager
    def acquire(self, timeout: Optional[float] = None) -> Iterator[RasterBackend]:
        if self._closed:
            raise RenderBackendError("backend pool is closed")
        wait = self.acquire_timeout if timeout is None else timeout
        try:
            backend = self._idle.get(timeout=wait)
        except queue.Empty:
            raise BackendPoolExhausted(f"no render backend free after {wait}s") from None
        try:
            yield backend
        except BaseException:
            backend.poisoned = True
            raise
        finally:
            self._release(backend)

    def render(self, scene: SceneGraph, timeout: float = 30.0) -> Image.Image:
        """
        Render `scene` on a pooled backend, bounded by `timeout` seconds.

        On timeout the in-flight render is cancelled and its backend replaced.
        Backend crashes surface as `RenderBackendError`.
        """
        with self.acquire() as backend:
            cancel = threading.Event()
            future = self._executor.submit(backend.render, scene, cancel)
            try:
                return future.result(timeout=timeout)
            except concurrent.futures.TimeoutError:
                cancel.set()
                future.cancel()
                raise RenderTimeout(f"render did not finish within {timeout}s") from None
            except RenderBackendError:
                raise
            except Exception as exc:
                raise RenderBackendError(f"render backend failed: {exc}") from exc

    def _release(self, backend: RasterBackend) -> None:
        if backend.poisoned:
            logger.warning("Discarding render backend after failure; starting a fresh one")
            try:
                backend.close()
            finally:
                backend = self.factory()
        self._idle.put(backend)

    def close(self) -> None:
        self._closed = True
        self._executor.shutdown(wait=False)
        while True:
            try:
                self._idle.get_nowait().close()
            except queue.Empty:
                break
