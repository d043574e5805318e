"""
Geometry resolution: percentage placements to absolute pixels.

Every function here is total. Bad or missing input falls back to the
documented defaults instead of raising.
"""

import math
from dataclasses import dataclass
from typing import Any, Optional, Tuple


MIN_PERCENT = 2.0
MAX_PERCENT = 98.0
DEFAULT_PERCENT = 50.0
DEFAULT_ELEMENT_SIZE = 100


@dataclass(frozen=True)
class CanvasSize:
    width: int
    height: int

    @property
    def short_side(self) -> int:
        return min(self.width, self.height)

    def as_tuple(self) -> Tuple[int, int]:
        return (self.width, self.height)


@dataclass(frozen=True)
class PercentPoint:
    x: float = DEFAULT_PERCENT
    y: float = DEFAULT_PERCENT

    def clamped(self) -> "PercentPoint":
        return PercentPoint(clamp_percent(self.x), clamp_percent(self.y))


@dataclass(frozen=True)
class PixelPoint:
    x: int
    y: int


@dataclass(frozen=True)
class PixelRect:
    x: int = 0
    y: int = 0
    width: int = DEFAULT_ELEMENT_SIZE
    height: int = DEFAULT_ELEMENT_SIZE

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height


def round_half_away(value: float) -> int:
    """Round to the nearest integer, ties away from zero (2.5 -> 3, -2.5 -> -3)."""
    if value >= 0:
        return int(math.floor(value + 0.5))
    return -int(math.floor(-value + 0.5))


def coerce_number(value: Any, default: Optional[float]) -> Optional[float]:
    """Return `value` as a finite float, or `default` when it is not one."""
    if isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


def clamp_percent(value: Any) -> float:
    number = coerce_number(value, DEFAULT_PERCENT)
    return min(MAX_PERCENT, max(MIN_PERCENT, number))


def percent_to_pixels(percent: float, dimension: int) -> int:
    return round_half_away(percent / 100.0 * dimension)


def resolve_point(point: Optional[PercentPoint], canvas: CanvasSize) -> PixelPoint:
    """Clamp a percent point to the 2% margin and convert it to pixels."""
    point = (point or PercentPoint()).clamped()
    return PixelPoint(
        percent_to_pixels(point.x, canvas.width),
        percent_to_pixels(point.y, canvas.height),
    )


def resolve_rect(rect: Optional[PixelRect], canvas: CanvasSize) -> PixelRect:
    """
    Fit an absolute pixel rect inside the canvas.

    The origin is kept (only pulled back onto the canvas when it lies
    outside it); width and height shrink so the rect ends at the canvas edge.
    """
    rect = rect or PixelRect()
    x = min(max(0, round_half_away(coerce_number(rect.x, 0))), canvas.width)
    y = min(max(0, round_half_away(coerce_number(rect.y, 0))), canvas.height)
    width = max(0, round_half_away(coerce_number(rect.width, DEFAULT_ELEMENT_SIZE)))
    height = max(0, round_half_away(coerce_number(rect.height, DEFAULT_ELEMENT_SIZE)))
    return PixelRect(
        x=x,
        y=y,
        width=min(width, canvas.width - x),
        height=min(height, canvas.height - y),
    )


def resolve_percent_rect(
    x: float, y: float, width: float, height: float, canvas: CanvasSize
) -> PixelRect:
    """Convert a rect given entirely in percentages, then fit it to the canvas."""
    return resolve_rect(
        PixelRect(
            x=percent_to_pixels(coerce_number(x, 0), canvas.width),
            y=percent_to_pixels(coerce_number(y, 0), canvas.height),
            width=percent_to_pixels(coerce_number(width, 0), canvas.width),
            height=percent_to_pixels(coerce_number(height, 0), canvas.height),
        ),
        canvas,
    )


def snap_to_grid(x: float, y: float, grid: int = 20) -> Tuple[int, int]:
    if grid <= 0:
        return (round_half_away(x), round_half_away(y))
    return (round_half_away(x / grid) * grid, round_half_away(y / grid) * grid)
