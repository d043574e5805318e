"""
Text layout for headlines and text boxes.

Lines are wrapped greedily at word boundaries using real font metrics, then
positioned as a block centered on the resolved anchor. Effects and the
animation frame are resolved here so the rasterizer only has to paint.
"""

import functools
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from PIL import ImageFont

from .document import DEFAULT_MAX_WIDTH_PERCENT, TextStyle
from .errors import LayoutError
from .geometry import CanvasSize, PixelPoint, PixelRect, round_half_away


logger = logging.getLogger(__name__)

SHADOW_OFFSET = (3, 3)
SHADOW_BLUR = 6
SHADOW_COLOR = (0, 0, 0, 178)
OUTLINE_WIDTH = 2
OUTLINE_COLOR = (0, 0, 0, 204)
GRADIENT_STOPS = ("#667eea", "#764ba2")
GRADIENT_ANGLE = 45.0
ANIMATION_DURATION = 1.0
TEXT_ALIGNMENTS = ("left", "center", "right", "justify")

# Ordered by preference; the first hit wins. Bold variants are tried first
# when the requested weight is bold.
SYSTEM_FONTS = {
    False: [
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
        "/System/Library/Fonts/Supplemental/Arial.ttf",
        "/Library/Fonts/Arial.ttf",
        "C:/Windows/Fonts/arial.ttf",
    ],
    True: [
        "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
        "/System/Library/Fonts/Supplemental/Arial Bold.ttf",
        "/Library/Fonts/Arial Bold.ttf",
        "C:/Windows/Fonts/arialbd.ttf",
    ],
}


@dataclass(frozen=True)
class TextSpec:
    content: str
    style: TextStyle
    max_width_percent: float = DEFAULT_MAX_WIDTH_PERCENT


@dataclass(frozen=True)
class Shadow:
    offset: Tuple[int, int] = SHADOW_OFFSET
    blur: int = SHADOW_BLUR
    color: Tuple[int, int, int, int] = SHADOW_COLOR


@dataclass(frozen=True)
class Outline:
    width: int = OUTLINE_WIDTH
    color: Tuple[int, int, int, int] = OUTLINE_COLOR


@dataclass(frozen=True)
class GradientFill:
    stops: Tuple[str, str] = GRADIENT_STOPS
    angle: float = GRADIENT_ANGLE


@dataclass(frozen=True)
class TextEffects:
    shadow: Optional[Shadow] = None
    outline: Optional[Outline] = None
    gradient: Optional[GradientFill] = None


@dataclass(frozen=True)
class AnimationFrame:
    """Presentation transform of one animation instant; identity when settled."""

    opacity: float = 1.0
    dx: float = 0.0
    dy: float = 0.0
    scale: float = 1.0
    reveal: float = 1.0

    @property
    def is_identity(self) -> bool:
        return self == SETTLED_FRAME


SETTLED_FRAME = AnimationFrame()


@dataclass(frozen=True)
class TextLine:
    text: str
    start_x: float
    baseline_y: float
    width: float
    word_gap: float = 0.0


@dataclass
class TextBlock:
    lines: List[TextLine]
    bounding_box: PixelRect
    font: ImageFont.FreeTypeFont
    style: TextStyle
    effects: TextEffects
    frame: AnimationFrame = field(default=SETTLED_FRAME)
    line_advance: float = 0.0


def is_bold(weight: str) -> bool:
    value = (weight or "").strip().lower()
    if value in ("bold", "bolder"):
        return True
    try:
        return int(value) >= 600
    except ValueError:
        return False


def resolve_font(
    family: str,
    weight: str,
    size: float,
    fonts_dir: Optional[Path] = None,
) -> ImageFont.FreeTypeFont:
    """
    Load a TrueType font for `family` at `size` pixels.

    Search order: files in `fonts_dir` whose name starts with the family,
    then common system sans fonts, then Pillow's bundled default sans.
    Raises `LayoutError` when nothing scalable can be loaded.

    Only the resolved file path is cached. Every call returns a new font
    object, so text blocks rendered concurrently never share one.
    """
    if size <= 0:
        raise LayoutError(f"font size must be positive, got {size}")
    family = (family or "").strip()
    source = _font_source(family, is_bold(weight), str(fonts_dir) if fonts_dir else "")
    if source is not None:
        return ImageFont.truetype(source, size=float(size))

    font = ImageFont.load_default(size=float(size))
    if not isinstance(font, ImageFont.FreeTypeFont):
        raise LayoutError(f"no scalable font available for family {family!r}")
    return font


@functools.lru_cache(maxsize=256)
def _font_source(family: str, bold: bool, fonts_dir: str) -> Optional[str]:
    """Path of the first loadable font file, or None for Pillow's default."""
    for path in _family_candidates(family, bold, Path(fonts_dir) if fonts_dir else None):
        if _loadable(str(path)):
            return str(path)

    for path in SYSTEM_FONTS[bold] + SYSTEM_FONTS[not bold]:
        if _loadable(path):
            logger.warning("Font family %r not found; substituting %s", family, Path(path).name)
            return path

    logger.warning("Font family %r not found; substituting Pillow default sans", family)
    return None


def _loadable(path: str) -> bool:
    try:
        ImageFont.truetype(path, size=12)
    except OSError:
        return False
    return True


def _family_candidates(family: str, bold: bool, fonts_dir: Optional[Path]) -> List[Path]:
    if not fonts_dir or not family or not fonts_dir.is_dir():
        return []
    key = family.replace(" ", "").lower()
    matches = sorted(
        path
        for path in fonts_dir.iterdir()
        if path.suffix.lower() in (".ttf", ".otf", ".ttc")
        and path.stem.replace(" ", "").replace("_", "-").lower().startswith(key)
    )
    # Prefer weight-matching files, then variable fonts, then anything.
    def rank(path: Path) -> int:
        stem = path.stem.lower()
        has_bold = "bold" in stem or "black" in stem or "heavy" in stem
        if "variable" in stem or "wght" in stem:
            return 1
        return 0 if has_bold == bold else 2

    return sorted(matches, key=lambda p: (rank(p), p.name))


def measure(font: ImageFont.FreeTypeFont, text: str, letter_spacing: float = 0.0) -> float:
    """Advance width of `text`, with `letter_spacing` added between characters."""
    if not text:
        return 0.0
    return font.getlength(text) + letter_spacing * (len(text) - 1)


def wrap_text(
    text: str,
    font: ImageFont.FreeTypeFont,
    max_width: float,
    letter_spacing: float = 0.0,
) -> List[str]:
    """
    Greedy word wrap. Never breaks inside a word, so a word wider than
    `max_width` gets a line of its own. Explicit newlines are kept.
    """
    lines: List[str] = []
    for paragraph in text.split("\n"):
        words = paragraph.split()
        if not words:
            lines.append("")
            continue
        current = ""
        for word in words:
            candidate = f"{current} {word}" if current else word
            if not current or measure(font, candidate, letter_spacing) <= max_width:
                current = candidate
            else:
                lines.append(current)
                current = word
        lines.append(current)
    return lines


def effects_for(style: TextStyle) -> TextEffects:
    return TextEffects(
        shadow=Shadow() if style.shadow else None,
        outline=Outline() if style.outline else None,
        gradient=GradientFill() if style.gradient_fill else None,
    )


def layout_text(
    spec: TextSpec,
    anchor: PixelPoint,
    canvas: CanvasSize,
    at_time: Optional[float] = None,
    fonts_dir: Optional[Path] = None,
) -> TextBlock:
    """
    Wrap and position a text spec so the block is centered on `anchor`.

    `at_time` selects an animation instant in seconds; None renders the
    settled frame.
    """
    style = spec.style
    if style.font_size <= 0:
        raise LayoutError(f"font size must be positive, got {style.font_size}")
    if style.line_height <= 0:
        raise LayoutError(f"line height must be positive, got {style.line_height}")

    font = resolve_font(style.font_family, style.font_weight, style.font_size, fonts_dir)
    max_width = canvas.width * spec.max_width_percent / 100.0
    wrapped = wrap_text(spec.content, font, max_width, style.letter_spacing)
    widths = [measure(font, line, style.letter_spacing) for line in wrapped]

    advance = style.font_size * style.line_height
    block_width = max(widths) if widths else 0.0
    block_height = advance * len(wrapped)
    left = anchor.x - block_width / 2
    top = anchor.y - block_height / 2

    ascent, descent = font.getmetrics()
    half_leading = (advance - (ascent + descent)) / 2

    align = style.text_align if style.text_align in TEXT_ALIGNMENTS else "center"
    lines: List[TextLine] = []
    for index, (text, width) in enumerate(zip(wrapped, widths)):
        gap = 0.0
        if align == "left":
            start = left
        elif align == "right":
            start = left + block_width - width
        elif align == "justify":
            start = left
            gaps = text.count(" ")
            is_last = index == len(wrapped) - 1 or not wrapped[index + 1]
            if gaps and not is_last:
                gap = (block_width - width) / gaps
        else:
            start = left + (block_width - width) / 2
        lines.append(
            TextLine(
                text=text,
                start_x=start,
                baseline_y=top + index * advance + half_leading + ascent,
                width=width,
                word_gap=gap,
            )
        )

    box = PixelRect(
        x=round_half_away(left),
        y=round_half_away(top),
        width=round_half_away(block_width),
        height=round_half_away(block_height),
    )
    return TextBlock(
        lines=lines,
        bounding_box=box,
        font=font,
        style=style,
        effects=effects_for(style),
        frame=animation_frame(style.animation, at_time),
        line_advance=advance,
    )


# CSS keyframes of the editor animations, applied per segment with ease-in-out.
# Translations are fractions of the block size.
KEYFRAMES = {
    "fadeIn": [(0.0, {"opacity": 0.0}), (1.0, {"opacity": 1.0})],
    "slideInUp": [(0.0, {"dy": 1.0, "opacity": 0.0}), (1.0, {"dy": 0.0, "opacity": 1.0})],
    "slideInLeft": [(0.0, {"dx": -1.0, "opacity": 0.0}), (1.0, {"dx": 0.0, "opacity": 1.0})],
    "slideInRight": [(0.0, {"dx": 1.0, "opacity": 0.0}), (1.0, {"dx": 0.0, "opacity": 1.0})],
    "bounceIn": [
        (0.0, {"scale": 0.3, "opacity": 0.0}),
        (0.5, {"scale": 1.05}),
        (0.7, {"scale": 0.9}),
        (1.0, {"scale": 1.0, "opacity": 1.0}),
    ],
    "zoomIn": [(0.0, {"scale": 0.0, "opacity": 0.0}), (1.0, {"scale": 1.0, "opacity": 1.0})],
    "pulse": [(0.0, {"scale": 1.0}), (0.5, {"scale": 1.1}), (1.0, {"scale": 1.0})],
    "typewriter": [(0.0, {"reveal": 0.0}), (1.0, {"reveal": 1.0})],
}


def animation_frame(kind: str, at_time: Optional[float]) -> AnimationFrame:
    """
    Resolve an animation to a single frame.

    Static export passes `at_time=None` and always gets the settled frame.
    Times at or past the duration also settle; unknown kinds are ignored.
    """
    keyframes = KEYFRAMES.get(kind or "none")
    if at_time is None or keyframes is None or at_time >= ANIMATION_DURATION:
        return SETTLED_FRAME
    progress = max(0.0, at_time) / ANIMATION_DURATION

    values = {}
    for prop, default in (("opacity", 1.0), ("dx", 0.0), ("dy", 0.0), ("scale", 1.0), ("reveal", 1.0)):
        values[prop] = _interpolate(keyframes, prop, progress, default)
    return AnimationFrame(**values)


def _interpolate(keyframes: Sequence, prop: str, progress: float, default: float) -> float:
    # Keyframes that do not mention `prop` are skipped, as CSS does.
    stops = [(offset, props[prop]) for offset, props in keyframes if prop in props]
    if not stops:
        return default
    if progress <= stops[0][0]:
        return stops[0][1]
    for (start, a), (end, b) in zip(stops, stops[1:]):
        if start <= progress <= end:
            local = (progress - start) / (end - start) if end > start else 1.0
            return a + (b - a) * ease_in_out(local)
    return stops[-1][1]


def ease_in_out(t: float) -> float:
    """CSS `ease-in-out`, cubic-bezier(0.42, 0, 0.58, 1)."""
    return _cubic_bezier(0.42, 0.0, 0.58, 1.0, t)


def _cubic_bezier(x1: float, y1: float, x2: float, y2: float, t: float) -> float:
    if t <= 0.0:
        return 0.0
    if t >= 1.0:
        return 1.0

    def coord(u: float, p1: float, p2: float) -> float:
        return 3 * (1 - u) ** 2 * u * p1 + 3 * (1 - u) * u ** 2 * p2 + u ** 3

    lo, hi = 0.0, 1.0
    u = t
    for _ in range(40):
        u = (lo + hi) / 2
        if coord(u, x1, x2) < t:
            lo = u
        else:
            hi = u
    return coord(u, y1, y2)


def rejoin(lines: Iterable[str]) -> str:
    """Join wrapped lines back into one paragraph."""
    return " ".join(line for line in lines if line)
