"""
Vector geometry for shapes, icons and decorations.

Every primitive is a fixed set of parts defined in a unit box and scaled to
the element's resolved pixel bounds. Names outside the catalog fall back to
a default primitive of the same kind and log a warning.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Dict, Sequence, Tuple

from .document import DesignElement, ElementKind
from .geometry import PixelRect


logger = logging.getLogger(__name__)


class Shape(enum.Enum):
    RECTANGLE = "rectangle"
    CIRCLE = "circle"
    TRIANGLE = "triangle"
    DIAMOND = "diamond"
    STAR = "star"
    ARROW = "arrow"


class Icon(enum.Enum):
    CHART = "chart"
    TRENDING = "trending"
    USERS = "users"
    CART = "cart"
    TARGET = "target"
    SHIELD = "shield"
    STAR = "star"
    HEART = "heart"
    FACEBOOK = "facebook"
    INSTAGRAM = "instagram"
    TWITTER = "twitter"
    LINKEDIN = "linkedin"


class Decoration(enum.Enum):
    SPARKLE = "sparkle"
    BURST = "burst"
    RIBBON = "ribbon"
    DOT = "dot"


class PartKind(enum.Enum):
    POLYGON = "polygon"
    ELLIPSE = "ellipse"
    RECT = "rect"
    ROUNDED_RECT = "rounded_rect"


@dataclass(frozen=True)
class Part:
    """
    One drawable piece of a primitive.

    `points` are (x, y) pairs: the polygon vertices, or the two corners of
    the box for ellipses and rects. `knockout` parts erase what was drawn
    before them inside the same primitive.
    """

    kind: PartKind
    points: Tuple[Tuple[float, float], ...]
    alpha: float = 1.0
    knockout: bool = False
    stroked: bool = True
    radius: float = 0.0


@dataclass(frozen=True)
class DrawInstruction:
    element_id: str
    kind: ElementKind
    name: str
    bounds: PixelRect
    parts: Tuple[Part, ...]
    fill: str
    stroke: str
    stroke_width: float
    opacity: float
    rotation: float
    fallback: bool = False


def _poly(points: Sequence[Tuple[float, float]], scale: float, **kw) -> Part:
    return Part(PartKind.POLYGON, tuple((x / scale, y / scale) for x, y in points), **kw)


def _oval(x0: float, y0: float, x1: float, y1: float, scale: float, **kw) -> Part:
    return Part(PartKind.ELLIPSE, ((x0 / scale, y0 / scale), (x1 / scale, y1 / scale)), **kw)


def _box(x0: float, y0: float, x1: float, y1: float, scale: float, **kw) -> Part:
    return Part(PartKind.RECT, ((x0 / scale, y0 / scale), (x1 / scale, y1 / scale)), **kw)


def _rounded(x0: float, y0: float, x1: float, y1: float, scale: float, radius: float, **kw) -> Part:
    return Part(
        PartKind.ROUNDED_RECT,
        ((x0 / scale, y0 / scale), (x1 / scale, y1 / scale)),
        radius=radius,
        **kw,
    )


SHAPES: Dict[Shape, Tuple[Part, ...]] = {
    Shape.RECTANGLE: (_box(0, 0, 1, 1, 1),),
    Shape.CIRCLE: (_oval(0, 0, 1, 1, 1),),
    Shape.TRIANGLE: (_poly([(50, 0), (100, 100), (0, 100)], 100),),
    Shape.DIAMOND: (_poly([(50, 0), (100, 50), (50, 100), (0, 50)], 100),),
    Shape.STAR: (
        _poly(
            [(50, 5), (60, 35), (95, 35), (68, 57), (78, 91),
             (50, 70), (22, 91), (32, 57), (5, 35), (40, 35)],
            100,
        ),
    ),
    Shape.ARROW: (
        _poly(
            [(10, 40), (60, 40), (60, 25), (90, 50), (60, 75), (60, 60), (10, 60)],
            100,
        ),
    ),
}

# Icons are drawn on a 24-unit grid and carry no stroke.
ICONS: Dict[Icon, Tuple[Part, ...]] = {
    Icon.CHART: (
        _box(3, 3, 11, 13, 24, stroked=False),
        _box(3, 15, 11, 21, 24, stroked=False),
        _box(13, 11, 21, 21, 24, stroked=False),
        _box(13, 3, 21, 9, 24, stroked=False),
    ),
    Icon.TRENDING: (
        _poly(
            [(16, 6), (18.29, 8.29), (13.41, 13.17), (9.41, 9.17), (2, 16.59), (3.41, 18),
             (9.41, 12), (13.41, 16), (19.71, 9.71), (22, 12), (22, 6)],
            24,
            stroked=False,
        ),
    ),
    Icon.USERS: (
        _oval(5.5, 3.5, 12.5, 10.5, 24, stroked=False),
        _poly([(3, 21), (3, 17), (6, 13), (12, 13), (15, 17), (15, 21)], 24, stroked=False),
        _oval(15, 4, 21, 10, 24, stroked=False),
        _poly([(16, 21), (16, 16), (14.5, 12.5), (21, 12.5), (23, 16), (23, 21)], 24, stroked=False),
    ),
    Icon.CART: (
        _poly(
            [(1, 2), (4.3, 2), (5.2, 4), (21.7, 4), (17.3, 12), (8.1, 13), (7.2, 15),
             (19, 15), (19, 17), (5, 17), (5, 15), (6.6, 11.6), (3, 4), (1, 4)],
            24,
            stroked=False,
        ),
        _oval(5, 18, 9, 22, 24, stroked=False),
        _oval(15, 18, 19, 22, 24, stroked=False),
    ),
    Icon.TARGET: (
        _oval(2, 2, 22, 22, 24, stroked=False),
        _oval(4, 4, 20, 20, 24, knockout=True, stroked=False),
        _oval(9, 9, 15, 15, 24, stroked=False),
    ),
    Icon.SHIELD: (
        _poly([(12, 1), (21, 5), (21, 11), (19, 17), (12, 23), (5, 17), (3, 11), (3, 5)], 24, stroked=False),
    ),
    Icon.STAR: (
        _poly(
            [(12, 2), (15.09, 8.26), (22, 9.27), (17, 14.14), (18.18, 21.02),
             (12, 17.77), (5.82, 21.02), (7, 14.14), (2, 9.27), (8.91, 8.26)],
            24,
            stroked=False,
        ),
    ),
    Icon.HEART: (
        _oval(2, 3, 12.5, 13.5, 24, stroked=False),
        _oval(11.5, 3, 22, 13.5, 24, stroked=False),
        _poly([(2.6, 10.5), (12, 21.35), (21.4, 10.5), (12, 6)], 24, stroked=False),
    ),
    Icon.FACEBOOK: (
        _oval(0, 0, 24, 24, 24, stroked=False),
        _poly(
            [(13.9, 24), (13.9, 15.5), (16.7, 15.5), (17.2, 12), (13.9, 12), (13.9, 9.8),
             (14.2, 8.6), (15.8, 7.8), (17.4, 7.8), (17.4, 4.9), (14.7, 4.7), (11.6, 5.9),
             (10.1, 9.4), (10.1, 12), (7.1, 12), (7.1, 15.5), (10.1, 15.5), (10.1, 24)],
            24,
            knockout=True,
            stroked=False,
        ),
    ),
    Icon.INSTAGRAM: (
        _rounded(0, 0, 24, 24, 24, radius=0.3, stroked=False),
        _rounded(2.2, 2.2, 21.8, 21.8, 24, radius=0.25, knockout=True, stroked=False),
        _oval(5.8, 5.8, 18.2, 18.2, 24, stroked=False),
        _oval(8, 8, 16, 16, 24, knockout=True, stroked=False),
        _oval(17, 3.6, 20, 6.6, 24, stroked=False),
    ),
    Icon.TWITTER: (
        _poly([(2, 2), (8, 2), (22, 22), (16, 22)], 24, stroked=False),
        _poly([(19, 2), (22, 2), (5, 22), (2, 22)], 24, stroked=False),
    ),
    Icon.LINKEDIN: (
        _rounded(0, 0, 24, 24, 24, radius=0.1, stroked=False),
        _box(3.56, 9, 7.12, 20.45, 24, knockout=True, stroked=False),
        _oval(3.27, 3.3, 7.4, 7.43, 24, knockout=True, stroked=False),
        _poly(
            [(9.35, 9), (12.77, 9), (12.77, 10.56), (14.5, 9), (17, 8.7), (20.45, 11),
             (20.45, 20.45), (16.89, 20.45), (16.89, 14.9), (15, 11.85), (12.9, 14.8),
             (12.9, 20.45), (9.35, 20.45)],
            24,
            knockout=True,
            stroked=False,
        ),
    ),
}

DECORATIONS: Dict[Decoration, Tuple[Part, ...]] = {
    Decoration.SPARKLE: (
        _poly(
            [(50, 10), (55, 35), (80, 30), (60, 50), (85, 55), (60, 70), (80, 70), (55, 65),
             (50, 90), (45, 65), (20, 70), (40, 50), (15, 45), (40, 30), (20, 30), (45, 35)],
            100,
            alpha=0.8,
            stroked=False,
        ),
    ),
    Decoration.BURST: (
        _oval(20, 20, 80, 80, 100, alpha=0.6, stroked=False),
        _oval(30, 30, 70, 70, 100, alpha=0.8, stroked=False),
        _oval(40, 40, 60, 60, 100, stroked=False),
    ),
    Decoration.RIBBON: (
        _poly([(10, 30), (90, 30), (85, 50), (90, 70), (10, 70), (15, 50)], 100, alpha=0.9, stroked=False),
    ),
    Decoration.DOT: (_oval(0, 0, 1, 1, 1, alpha=0.7, stroked=False),),
}

_SHAPE_ALIASES = {"arrow-right": Shape.ARROW, "square": Shape.RECTANGLE}
_ICON_ALIASES = {
    "chart-bar": Icon.CHART,
    "trending-up": Icon.TRENDING,
    "shopping-cart": Icon.CART,
    "shield-check": Icon.SHIELD,
    "star-icon": Icon.STAR,
    "x": Icon.TWITTER,
}

DEFAULT_SHAPE = Shape.RECTANGLE
DEFAULT_ICON = Icon.STAR
DEFAULT_DECORATION = Decoration.DOT


def resolve_variant(kind: ElementKind, name: str):
    """
    Map a primitive name to its catalog member.

    Returns `(member, fallback)`; `fallback` is True when the name was not
    recognised and the kind's default was substituted.
    """
    key = (name or "").strip().lower()
    if kind is ElementKind.SHAPE:
        enum_cls, aliases, default = Shape, _SHAPE_ALIASES, DEFAULT_SHAPE
    elif kind is ElementKind.ICON:
        enum_cls, aliases, default = Icon, _ICON_ALIASES, DEFAULT_ICON
    elif kind is ElementKind.DECORATION:
        enum_cls, aliases, default = Decoration, {}, DEFAULT_DECORATION
    else:
        raise AssertionError(f"unhandled element kind {kind!r}")

    if key in aliases:
        return aliases[key], False
    try:
        return enum_cls(key), False
    except ValueError:
        return default, True


def parts_for(variant) -> Tuple[Part, ...]:
    if isinstance(variant, Shape):
        return SHAPES[variant]
    if isinstance(variant, Icon):
        return ICONS[variant]
    if isinstance(variant, Decoration):
        return DECORATIONS[variant]
    raise AssertionError(f"unhandled primitive {variant!r}")


def render_primitive(element: DesignElement, bounds: PixelRect) -> DrawInstruction:
    """
    Scale the element's catalog geometry into `bounds` (absolute pixels).

    Rotation is carried on the instruction and applied by the rasterizer
    about the bounds center, clockwise-positive.
    """
    variant, fallback = resolve_variant(element.kind, element.name)
    if fallback:
        logger.warning(
            "Unknown %s %r on element %s; drawing default %s",
            element.kind.value,
            element.name,
            element.id,
            variant.value,
        )

    parts = tuple(_scale_part(part, bounds) for part in parts_for(variant))
    return DrawInstruction(
        element_id=element.id,
        kind=element.kind,
        name=variant.value,
        bounds=bounds,
        parts=parts,
        fill=element.style.fill,
        stroke=element.style.stroke,
        stroke_width=element.style.stroke_width,
        opacity=element.opacity,
        rotation=element.rotation,
        fallback=fallback,
    )


def _scale_part(part: Part, bounds: PixelRect) -> Part:
    points = tuple(
        (bounds.x + x * bounds.width, bounds.y + y * bounds.height)
        for x, y in part.points
    )
    return Part(
        kind=part.kind,
        points=points,
        alpha=part.alpha,
        knockout=part.knockout,
        stroked=part.stroked,
        radius=part.radius * min(bounds.width, bounds.height),
    )
