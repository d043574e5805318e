"""
Banner rendering package: design document in, PNG out.

Modules:
- geometry: percent/pixel coordinate resolution
- document: design document model and JSON loader
- editing: in-place editor mutations (positions, layers, alignment)
- primitives: shape, icon and decoration geometry
- text: font resolution, word wrap and text block layout
- assets: background image fetch and cover-crop
- scene: scene graph assembly and stacking order
- render: Pillow rasterizer and the backend pool
- exporter: PNG encoding and atomic persistence
- core: `BannerGenerator`, the render-request entry point
- suggestions: LLM design suggestions with static fallback
"""

from .core import BannerGenerator, BannerResult
from .errors import (
    BannerError,
    BannerGenerationFailed,
    LayoutError,
    RenderBackendError,
    RenderTimeout,
    ResourceFetchError,
    ValidationError,
)

__all__ = [
    "BannerError",
    "BannerGenerationFailed",
    "BannerGenerator",
    "BannerResult",
    "LayoutError",
    "RenderBackendError",
    "RenderTimeout",
    "ResourceFetchError",
    "ValidationError",
]
