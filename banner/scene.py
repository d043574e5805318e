"""
Scene assembly: turns a design document into an ordered list of draw
operations for one canvas size.

Stacking (lowest first): background, then foreground items sorted by z.
Design elements sit at index+10, text boxes at their explicit zIndex or
index+60, the main headline at 50. Equal z keeps insertion order, so the
later item is drawn on top.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple, Union

from PIL import Image

from .assets import ImageFetcher, cover_image
from .document import (
    DEFAULT_ELEMENT_Z_OFFSET,
    DEFAULT_TEXT_BOX_Z_OFFSET,
    MAIN_TEXT_Z,
    DesignDocument,
    require_canvas,
)
from .errors import ResourceFetchError
from .geometry import CanvasSize, resolve_point, resolve_rect
from .primitives import DrawInstruction, render_primitive
from .text import TextBlock, TextSpec, layout_text


logger = logging.getLogger(__name__)

BACKGROUND_ANGLE = 135.0
BACKGROUND_Z = 0


@dataclass(frozen=True)
class GradientBackgroundOp:
    color_a: str
    color_b: str
    angle: float = BACKGROUND_ANGLE
    z: int = BACKGROUND_Z


@dataclass(frozen=True)
class ImageBackgroundOp:
    image: Image.Image
    source_url: str
    z: int = BACKGROUND_Z


@dataclass(frozen=True)
class OverlayOp:
    opacity: float
    color: Tuple[int, int, int] = (0, 0, 0)
    z: int = BACKGROUND_Z


@dataclass(frozen=True)
class PrimitiveOp:
    instruction: DrawInstruction
    z: int


@dataclass(frozen=True)
class TextOp:
    source_id: str
    block: TextBlock
    z: int


DrawOp = Union[GradientBackgroundOp, ImageBackgroundOp, OverlayOp, PrimitiveOp, TextOp]


@dataclass
class SceneGraph:
    canvas: CanvasSize
    operations: List[DrawOp] = field(default_factory=list)
    degraded: bool = False
    warnings: List[str] = field(default_factory=list)

    @property
    def background(self) -> DrawOp:
        return self.operations[0]

    @property
    def foreground(self) -> List[DrawOp]:
        return [op for op in self.operations if isinstance(op, (PrimitiveOp, TextOp))]


def assemble(
    doc: DesignDocument,
    canvas: Optional[CanvasSize] = None,
    fetcher: Optional[ImageFetcher] = None,
    at_time: Optional[float] = None,
    fonts_dir: Optional[Path] = None,
) -> SceneGraph:
    """
    Build the scene graph for `doc` without mutating it.

    A background image that cannot be fetched is replaced by the document's
    gradient; the scene is then marked degraded and the reason recorded.
    `LayoutError` from the text layer propagates.
    """
    canvas = require_canvas(canvas or doc.canvas)
    scene = SceneGraph(canvas=canvas)

    scene.operations.extend(_background_ops(doc, canvas, fetcher, scene))

    foreground: List[Union[PrimitiveOp, TextOp]] = []
    for index, element in enumerate(doc.design_elements):
        bounds = resolve_rect(element.geometry, canvas)
        instruction = render_primitive(element, bounds)
        if instruction.fallback:
            scene.warnings.append(
                f"element {element.id}: unknown {element.kind.value} {element.name!r}, drew {instruction.name}"
            )
        foreground.append(PrimitiveOp(instruction, z=index + DEFAULT_ELEMENT_Z_OFFSET))

    for index, box in enumerate(doc.text_boxes):
        if not box.content.strip():
            continue
        block = layout_text(
            TextSpec(box.content, box.style, box.max_width_percent),
            resolve_point(box.position, canvas),
            canvas,
            at_time=at_time,
            fonts_dir=fonts_dir,
        )
        z = box.z_index if box.z_index is not None else index + DEFAULT_TEXT_BOX_Z_OFFSET
        foreground.append(TextOp(box.id, block, z=z))

    if doc.main_text is not None and doc.main_text.content.strip():
        block = layout_text(
            TextSpec(doc.main_text.content, doc.main_text.style),
            resolve_point(doc.main_text.position, canvas),
            canvas,
            at_time=at_time,
            fonts_dir=fonts_dir,
        )
        foreground.append(TextOp("mainText", block, z=MAIN_TEXT_Z))

    # sorted() is stable: equal z keeps insertion order.
    scene.operations.extend(sorted(foreground, key=lambda op: op.z))
    return scene


def _background_ops(
    doc: DesignDocument,
    canvas: CanvasSize,
    fetcher: Optional[ImageFetcher],
    scene: SceneGraph,
) -> List[DrawOp]:
    gradient = doc.gradient
    image_bg = doc.background_image
    if image_bg is None:
        return [GradientBackgroundOp(gradient.color_a, gradient.color_b)]

    if fetcher is None:
        reason = f"no image fetcher configured for {image_bg.url}"
    else:
        try:
            image = cover_image(fetcher(image_bg.url), canvas)
        except ResourceFetchError as exc:
            reason = str(exc)
        else:
            return [
                ImageBackgroundOp(image, image_bg.url),
                OverlayOp(opacity=image_bg.overlay_opacity),
            ]

    logger.warning("Background image dropped, using gradient: %s", reason)
    scene.degraded = True
    scene.warnings.append(f"background image dropped: {reason}")
    return [GradientBackgroundOp(gradient.color_a, gradient.color_b)]
