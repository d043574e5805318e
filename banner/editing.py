"""
In-place edits made by the interactive editor before a document is serialized.

Positions are always clamped to the 2%..98% band. Layer moves reorder the
`design_elements` list, which is what drives their stacking.
"""

import uuid
from dataclasses import replace
from typing import List, Optional

from .document import DesignDocument, DesignElement, TextBox, TextStyle
from .geometry import (
    DEFAULT_ELEMENT_SIZE,
    CanvasSize,
    PercentPoint,
    PixelRect,
)


LAYER_DIRECTIONS = ("up", "down", "top", "bottom")
ALIGNMENTS = (
    "left",
    "right",
    "top",
    "bottom",
    "center-horizontal",
    "center-vertical",
    "distribute-horizontal",
    "distribute-vertical",
)
DUPLICATE_OFFSET = 5.0
DUPLICATE_LIMIT = 90.0


def set_text_position(doc: DesignDocument, x: float, y: float) -> PercentPoint:
    """Move the main headline; returns the clamped position that was stored."""
    if doc.main_text is None:
        raise KeyError("document has no main text")
    doc.main_text.position = PercentPoint(x, y).clamped()
    return doc.main_text.position


def nudge_text(doc: DesignDocument, dx: float, dy: float) -> PercentPoint:
    if doc.main_text is None:
        raise KeyError("document has no main text")
    current = doc.main_text.position
    return set_text_position(doc, current.x + dx, current.y + dy)


def set_text_box_position(doc: DesignDocument, text_id: str, x: float, y: float) -> PercentPoint:
    box = find_text_box(doc, text_id)
    box.position = PercentPoint(x, y).clamped()
    return box.position


def find_text_box(doc: DesignDocument, text_id: str) -> TextBox:
    for box in doc.text_boxes:
        if box.id == text_id:
            return box
    raise KeyError(text_id)


def find_element(doc: DesignDocument, element_id: str) -> DesignElement:
    for element in doc.design_elements:
        if element.id == element_id:
            return element
    raise KeyError(element_id)


def add_element(doc: DesignDocument, element: DesignElement) -> DesignElement:
    if any(el.id == element.id for el in doc.design_elements):
        element.id = _new_id(element.id.split("-")[0] or "element")
    doc.design_elements.append(element)
    return element


def remove_element(doc: DesignDocument, element_id: str) -> None:
    doc.design_elements = [el for el in doc.design_elements if el.id != element_id]


def update_element(doc: DesignDocument, element_id: str, **changes) -> DesignElement:
    element = find_element(doc, element_id)
    for name, value in changes.items():
        if not hasattr(element, name) or name == "id":
            raise AttributeError(f"cannot update {name!r} on a design element")
        setattr(element, name, value)
    return element


def move_layer(doc: DesignDocument, element_id: str, direction: str) -> List[DesignElement]:
    """
    Reorder one design element within the stacking list.

    `up`/`down` swap with the neighbour, `top`/`bottom` move to the ends.
    Moves past either end are ignored.
    """
    if direction not in LAYER_DIRECTIONS:
        raise ValueError(f"unknown layer direction {direction!r}")

    elements = doc.design_elements
    current = elements.index(find_element(doc, element_id))
    target = current
    if direction == "up" and current < len(elements) - 1:
        target = current + 1
    elif direction == "down" and current > 0:
        target = current - 1
    elif direction == "top":
        target = len(elements) - 1
    elif direction == "bottom":
        target = 0

    if target != current:
        moved = elements.pop(current)
        elements.insert(target, moved)
    return elements


def add_text_box(doc: DesignDocument, content: str = "New Text", style: Optional[TextStyle] = None) -> TextBox:
    box = TextBox(
        id=_new_id("text"),
        content=content,
        style=style or TextStyle(shadow=True, letter_spacing=0.5),
        position=PercentPoint(50, 30),
        z_index=len(doc.text_boxes) + 10,
    )
    doc.text_boxes.append(box)
    return box


def remove_text_box(doc: DesignDocument, text_id: str) -> None:
    doc.text_boxes = [box for box in doc.text_boxes if box.id != text_id]


def duplicate_text_box(doc: DesignDocument, text_id: str) -> TextBox:
    source = find_text_box(doc, text_id)
    copy = replace(
        source,
        id=_new_id("text"),
        content=f"{source.content} Copy",
        style=replace(source.style),
        position=PercentPoint(
            min(DUPLICATE_LIMIT, source.position.x + DUPLICATE_OFFSET),
            min(DUPLICATE_LIMIT, source.position.y + DUPLICATE_OFFSET),
        ).clamped(),
        z_index=len(doc.text_boxes) + 10,
    )
    doc.text_boxes.append(copy)
    return copy


def align_elements(
    doc: DesignDocument, anchor_id: str, alignment: str, canvas: Optional[CanvasSize] = None
) -> List[DesignElement]:
    """
    Align every other design element to the anchor element's box.

    The distribute modes spread the other elements evenly across the canvas
    and need `canvas` (or `doc.canvas`).
    """
    if alignment not in ALIGNMENTS:
        raise ValueError(f"unknown alignment {alignment!r}")

    anchor = find_element(doc, anchor_id)
    others = [el for el in doc.design_elements if el.id != anchor_id]
    if not others:
        return doc.design_elements

    canvas = canvas or doc.canvas
    if alignment.startswith("distribute") and canvas is None:
        raise ValueError("distribute alignment needs a canvas size")

    a = anchor.geometry
    for position, element in enumerate(others, start=1):
        g = element.geometry
        x, y = g.x, g.y
        if alignment == "left":
            x = a.x
        elif alignment == "right":
            x = a.x + _size(a.width) - _size(g.width)
        elif alignment == "top":
            y = a.y
        elif alignment == "bottom":
            y = a.y + _size(a.height) - _size(g.height)
        elif alignment == "center-horizontal":
            x = a.x + (_size(a.width) - _size(g.width)) / 2
        elif alignment == "center-vertical":
            y = a.y + (_size(a.height) - _size(g.height)) / 2
        elif alignment == "distribute-horizontal":
            x = (canvas.width - _size(g.width)) / (len(others) + 1) * position
        elif alignment == "distribute-vertical":
            y = (canvas.height - _size(g.height)) / (len(others) + 1) * position
        element.geometry = PixelRect(x=x, y=y, width=g.width, height=g.height)
    return doc.design_elements


def _size(value) -> float:
    return value or DEFAULT_ELEMENT_SIZE


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:9]}"
