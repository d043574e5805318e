"""
Design document model and loader for the persisted JSON shape.

The loader is forgiving: malformed positions, sizes and styles fall back
to defaults and are reported through `DesignDocument.warnings`. Only a
missing or invalid canvas is fatal.
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .errors import ValidationError
from .geometry import (
    DEFAULT_ELEMENT_SIZE,
    CanvasSize,
    PercentPoint,
    PixelRect,
    coerce_number,
)


logger = logging.getLogger(__name__)

DEFAULT_COLORS = ("#667eea", "#764ba2")
DEFAULT_OVERLAY_OPACITY = 0.4
DEFAULT_MAX_WIDTH_PERCENT = 90.0
DEFAULT_TEXT_BOX_Z_OFFSET = 60
DEFAULT_ELEMENT_Z_OFFSET = 10
MAIN_TEXT_Z = 50


@dataclass
class TextStyle:
    font_family: str = "Inter"
    font_size: float = 24.0
    font_weight: str = "normal"
    color: str = "#ffffff"
    shadow: bool = False
    outline: bool = False
    gradient_fill: bool = False
    text_align: str = "center"
    line_height: float = 1.2
    letter_spacing: float = 0.0
    opacity: float = 1.0
    animation: str = "none"


@dataclass
class FillStrokeStyle:
    fill: str = "#667eea"
    stroke: str = "#4f46e5"
    stroke_width: float = 1.0


@dataclass
class SolidGradient:
    color_a: str = DEFAULT_COLORS[0]
    color_b: str = DEFAULT_COLORS[1]


@dataclass
class ImageBackground:
    url: str
    overlay_opacity: float = DEFAULT_OVERLAY_OPACITY
    description: Optional[str] = None
    photographer: Optional[str] = None


Background = Union[SolidGradient, ImageBackground]


@dataclass
class MainText:
    content: str
    style: TextStyle
    position: PercentPoint = field(default_factory=PercentPoint)


@dataclass
class TextBox:
    id: str
    content: str
    style: TextStyle = field(default_factory=TextStyle)
    position: PercentPoint = field(default_factory=PercentPoint)
    max_width_percent: float = DEFAULT_MAX_WIDTH_PERCENT
    z_index: Optional[int] = None


class ElementKind(enum.Enum):
    SHAPE = "shape"
    ICON = "icon"
    DECORATION = "decorative"


@dataclass
class DesignElement:
    id: str
    kind: ElementKind
    name: str
    geometry: PixelRect = field(default_factory=PixelRect)
    style: FillStrokeStyle = field(default_factory=FillStrokeStyle)
    opacity: float = 1.0
    rotation: float = 0.0


@dataclass
class DesignDocument:
    canvas: Optional[CanvasSize] = None
    colors: List[str] = field(default_factory=lambda: list(DEFAULT_COLORS))
    background_image: Optional[ImageBackground] = None
    main_text: Optional[MainText] = None
    text_boxes: List[TextBox] = field(default_factory=list)
    design_elements: List[DesignElement] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def gradient(self) -> SolidGradient:
        """Two-stop gradient built from `colors`, padded with the defaults."""
        first = self.colors[0] if len(self.colors) > 0 and self.colors[0] else DEFAULT_COLORS[0]
        second = self.colors[1] if len(self.colors) > 1 and self.colors[1] else DEFAULT_COLORS[1]
        return SolidGradient(first, second)

    @property
    def background(self) -> Background:
        return self.background_image or self.gradient


def require_canvas(canvas: Optional[CanvasSize]) -> CanvasSize:
    """Canvas size cannot be defaulted safely; reject anything not positive."""
    if canvas is None:
        raise ValidationError("canvas size is required")
    if not isinstance(canvas.width, int) or not isinstance(canvas.height, int):
        raise ValidationError(f"canvas size must be integer pixels, got {canvas!r}")
    if canvas.width <= 0 or canvas.height <= 0:
        raise ValidationError(f"canvas size must be positive, got {canvas.width}x{canvas.height}")
    return canvas


def parse_canvas(data: Any) -> Optional[CanvasSize]:
    if data is None:
        return None
    if isinstance(data, CanvasSize):
        return require_canvas(data)
    if not isinstance(data, dict):
        raise ValidationError(f"canvas must be an object with width/height, got {data!r}")
    try:
        width = int(data["width"])
        height = int(data["height"])
    except (KeyError, TypeError, ValueError) as exc:
        raise ValidationError(f"invalid canvas size {data!r}") from exc
    return require_canvas(CanvasSize(width, height))


def load_document(data: Dict[str, Any], canvas: Any = None) -> DesignDocument:
    """
    Build a `DesignDocument` from the exchanged JSON shape.

    `canvas` overrides any `canvas` key in `data`; neither is required here,
    the render path checks it with `require_canvas`.
    """
    if not isinstance(data, dict):
        raise ValidationError("design document must be a JSON object")

    warnings: List[str] = []
    doc = DesignDocument(
        canvas=parse_canvas(canvas if canvas is not None else data.get("canvas")),
        warnings=warnings,
    )

    colors = data.get("colors")
    if isinstance(colors, (list, tuple)) and colors:
        doc.colors = [str(c) for c in colors if c]
        if not doc.colors:
            doc.colors = list(DEFAULT_COLORS)

    image = data.get("backgroundImage")
    if isinstance(image, dict) and image.get("url"):
        doc.background_image = ImageBackground(
            url=str(image["url"]),
            overlay_opacity=_unit(
                image.get("overlayOpacity"), DEFAULT_OVERLAY_OPACITY, "backgroundImage.overlayOpacity", warnings
            ),
            description=image.get("description"),
            photographer=image.get("photographer"),
        )

    main_text = data.get("mainText")
    if main_text:
        style_data = data.get("textStyle") or {}
        doc.main_text = MainText(
            content=str(main_text),
            style=_text_style(style_data, _main_text_defaults(doc.canvas), warnings, "textStyle"),
            position=_position(style_data, warnings, "textStyle"),
        )

    seen_ids: Dict[str, int] = {}
    for index, raw in enumerate(data.get("designElements") or []):
        element = _design_element(raw, index, warnings)
        if element is not None:
            element.id = _unique_id(element.id, seen_ids, warnings)
            doc.design_elements.append(element)

    seen_ids = {}
    for index, raw in enumerate(data.get("textElements") or []):
        text_box = _text_box(raw, index, warnings)
        if text_box is not None:
            text_box.id = _unique_id(text_box.id, seen_ids, warnings)
            doc.text_boxes.append(text_box)

    for message in warnings:
        logger.warning("design document: %s", message)
    return doc


def to_dict(doc: DesignDocument) -> Dict[str, Any]:
    """Serialize back to the exchanged JSON shape."""
    data: Dict[str, Any] = {"colors": list(doc.colors)}
    if doc.canvas is not None:
        data["canvas"] = {"width": doc.canvas.width, "height": doc.canvas.height}
    if doc.background_image is not None:
        data["backgroundImage"] = {
            "url": doc.background_image.url,
            "overlayOpacity": doc.background_image.overlay_opacity,
            "description": doc.background_image.description,
            "photographer": doc.background_image.photographer,
        }
    else:
        data["backgroundImage"] = None
    if doc.main_text is not None:
        data["mainText"] = doc.main_text.content
        style = _style_dict(doc.main_text.style)
        style["x"] = doc.main_text.position.x
        style["y"] = doc.main_text.position.y
        data["textStyle"] = style
    data["designElements"] = [
        {
            "id": el.id,
            "type": el.kind.value,
            _NAME_KEYS[el.kind]: el.name,
            "x": el.geometry.x,
            "y": el.geometry.y,
            "width": el.geometry.width,
            "height": el.geometry.height,
            "fill": el.style.fill,
            "stroke": el.style.stroke,
            "strokeWidth": el.style.stroke_width,
            "opacity": el.opacity,
            "rotation": el.rotation,
        }
        for el in doc.design_elements
    ]
    text_elements = []
    for box in doc.text_boxes:
        entry = {"id": box.id, "content": box.content}
        entry.update(_style_dict(box.style))
        entry.update(
            {
                "x": box.position.x,
                "y": box.position.y,
                "maxWidthPercent": box.max_width_percent,
            }
        )
        if box.z_index is not None:
            entry["zIndex"] = box.z_index
        text_elements.append(entry)
    data["textElements"] = text_elements
    return data


_NAME_KEYS = {
    ElementKind.SHAPE: "shape",
    ElementKind.ICON: "icon",
    ElementKind.DECORATION: "element",
}


def _main_text_defaults(canvas: Optional[CanvasSize]) -> TextStyle:
    short_side = canvas.short_side if canvas is not None else 630
    return TextStyle(
        font_size=round(short_side * 0.08, 2),
        font_weight="bold",
        color="#FFFFFF",
    )


def _text_style(
    data: Dict[str, Any], defaults: TextStyle, warnings: List[str], where: str
) -> TextStyle:
    font_size = data.get("fontSize")
    if font_size is None:
        size = defaults.font_size
    else:
        # Explicit non-positive sizes are kept so layout can reject them.
        size = coerce_number(font_size, None)
        if size is None:
            size = defaults.font_size
            warnings.append(f"{where}.fontSize {font_size!r} is not a number; using {size}")

    line_height = coerce_number(data.get("lineHeight"), defaults.line_height)
    if line_height <= 0:
        warnings.append(f"{where}.lineHeight {line_height} must be positive; using {defaults.line_height}")
        line_height = defaults.line_height

    return TextStyle(
        font_family=str(data.get("fontFamily") or defaults.font_family),
        font_size=size,
        font_weight=str(data.get("fontWeight") or defaults.font_weight),
        color=str(data.get("color") or defaults.color),
        shadow=bool(data.get("shadow", defaults.shadow)),
        outline=bool(data.get("outline", defaults.outline)),
        gradient_fill=bool(data.get("gradient", defaults.gradient_fill)),
        text_align=str(data.get("textAlign") or defaults.text_align).lower(),
        line_height=line_height,
        letter_spacing=coerce_number(data.get("letterSpacing"), defaults.letter_spacing),
        opacity=_unit(data.get("opacity"), defaults.opacity, f"{where}.opacity", warnings),
        animation=str(data.get("animation") or defaults.animation),
    )


def _style_dict(style: TextStyle) -> Dict[str, Any]:
    return {
        "fontSize": style.font_size,
        "fontFamily": style.font_family,
        "fontWeight": style.font_weight,
        "color": style.color,
        "shadow": style.shadow,
        "outline": style.outline,
        "gradient": style.gradient_fill,
        "textAlign": style.text_align,
        "lineHeight": style.line_height,
        "letterSpacing": style.letter_spacing,
        "opacity": style.opacity,
        "animation": style.animation,
    }


def _position(data: Dict[str, Any], warnings: List[str], where: str) -> PercentPoint:
    point = PercentPoint(
        coerce_number(data.get("x"), 50.0),
        coerce_number(data.get("y"), 50.0),
    )
    clamped = point.clamped()
    if clamped != point:
        warnings.append(f"{where} position ({point.x}, {point.y}) clamped to ({clamped.x}, {clamped.y})")
    return clamped


def _design_element(raw: Any, index: int, warnings: List[str]) -> Optional[DesignElement]:
    if not isinstance(raw, dict):
        warnings.append(f"designElements[{index}] is not an object; skipped")
        return None

    try:
        kind = ElementKind(raw.get("type"))
    except ValueError:
        warnings.append(f"designElements[{index}] has unknown type {raw.get('type')!r}; drawn as a shape")
        kind = ElementKind.SHAPE

    name = raw.get(_NAME_KEYS[kind]) or ""
    return DesignElement(
        id=str(raw.get("id") or f"element-{index}"),
        kind=kind,
        name=str(name),
        geometry=PixelRect(
            x=coerce_number(raw.get("x"), 0),
            y=coerce_number(raw.get("y"), 0),
            width=coerce_number(raw.get("width"), DEFAULT_ELEMENT_SIZE),
            height=coerce_number(raw.get("height"), DEFAULT_ELEMENT_SIZE),
        ),
        style=FillStrokeStyle(
            fill=str(raw.get("fill") or raw.get("color") or FillStrokeStyle.fill),
            stroke=str(raw.get("stroke") or FillStrokeStyle.stroke),
            stroke_width=max(0.0, coerce_number(raw.get("strokeWidth"), FillStrokeStyle.stroke_width)),
        ),
        opacity=_unit(raw.get("opacity"), 1.0, f"designElements[{index}].opacity", warnings),
        rotation=coerce_number(raw.get("rotation"), 0.0),
    )


def _text_box(raw: Any, index: int, warnings: List[str]) -> Optional[TextBox]:
    if not isinstance(raw, dict):
        warnings.append(f"textElements[{index}] is not an object; skipped")
        return None

    where = f"textElements[{index}]"
    z_index = raw.get("zIndex")
    if z_index is not None:
        number = coerce_number(z_index, None)
        if number is None:
            warnings.append(f"{where}.zIndex {z_index!r} is not a number; using default stacking")
            z_index = None
        else:
            z_index = int(number)

    max_width = coerce_number(raw.get("maxWidthPercent"), DEFAULT_MAX_WIDTH_PERCENT)
    if not 0 < max_width <= 100:
        warnings.append(f"{where}.maxWidthPercent {max_width} out of range; using {DEFAULT_MAX_WIDTH_PERCENT}")
        max_width = DEFAULT_MAX_WIDTH_PERCENT

    return TextBox(
        id=str(raw.get("id") or f"text-{index}"),
        content=str(raw.get("content") or ""),
        style=_text_style(raw, TextStyle(), warnings, where),
        position=_position(raw, warnings, where),
        max_width_percent=max_width,
        z_index=z_index,
    )


def _unit(value: Any, default: float, where: str, warnings: List[str]) -> float:
    if value is None:
        return default
    number = coerce_number(value, None)
    if number is None:
        warnings.append(f"{where} {value!r} is not a number; using {default}")
        return default
    clamped = min(1.0, max(0.0, number))
    if clamped != number:
        warnings.append(f"{where} {value!r} outside [0, 1]; using {clamped}")
    return clamped


def _unique_id(candidate: str, seen: Dict[str, int], warnings: List[str]) -> str:
    if candidate not in seen:
        seen[candidate] = 1
        return candidate
    seen[candidate] += 1
    renamed = f"{candidate}-{seen[candidate]}"
    while renamed in seen:
        seen[candidate] += 1
        renamed = f"{candidate}-{seen[candidate]}"
    seen[renamed] = 1
    warnings.append(f"duplicate id {candidate!r} renamed to {renamed!r}")
    return renamed
