import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .assets import HttpImageFetcher, ImageFetcher
from .config import Settings
from .document import load_document, require_canvas
from .errors import BannerGenerationFailed, RenderBackendError
from .exporter import export, persist
from .render import BackendPool
from .scene import assemble


logger = logging.getLogger(__name__)


@dataclass
class BannerResult:
    image_path: str
    filename: str
    width: int
    height: int
    degraded: bool = False
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "imagePath": self.image_path,
            "filename": self.filename,
            "width": self.width,
            "height": self.height,
            "degraded": self.degraded,
            "warnings": list(self.warnings),
        }


class BannerGenerator:
    """
    Entry point used by the HTTP layer: design JSON + canvas size in,
    a stored PNG reference out.

    - load and repair the design document
    - assemble the scene (fetching the background image if any)
    - rasterize on a pooled backend, bounded by the render timeout
    - persist atomically under the banners directory

    Backend failures and timeouts are reported as `BannerGenerationFailed`.
    `LayoutError` and canvas `ValidationError` reach the caller unchanged.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        pool: Optional[BackendPool] = None,
        fetcher: Optional[ImageFetcher] = None,
    ) -> None:
        self.settings = settings or Settings.from_env()
        self.pool = pool or BackendPool(
            size=self.settings.pool_size,
            acquire_timeout=self.settings.pool_acquire_timeout,
        )
        self.fetcher = fetcher or HttpImageFetcher(
            timeout=self.settings.fetch_timeout,
            local_root=self.settings.local_image_root,
        )
        self.settings.output_dir.mkdir(parents=True, exist_ok=True)

    def generate(
        self,
        design: Dict[str, Any],
        canvas_size: Any,
        at_time: Optional[float] = None,
    ) -> BannerResult:
        doc = load_document(design, canvas=canvas_size)
        canvas = require_canvas(doc.canvas)

        scene = assemble(
            doc,
            canvas,
            fetcher=self.fetcher,
            at_time=at_time,
            fonts_dir=self.settings.fonts_dir,
        )

        try:
            result = export(
                scene,
                canvas,
                lambda s: self.pool.render(s, timeout=self.settings.render_timeout),
            )
            stored = persist(
                result,
                self.settings.output_dir,
                url_prefix=self.settings.url_prefix,
                mode=self.settings.filename_mode,
            )
        except RenderBackendError as exc:
            logger.error("Banner generation failed: %s", exc)
            raise BannerGenerationFailed("Failed to generate banner") from exc
        except OSError as exc:
            logger.error("Could not store banner: %s", exc)
            raise BannerGenerationFailed("Failed to generate banner") from exc

        if scene.degraded:
            logger.warning("Banner %s rendered with fallbacks: %s", stored.filename, "; ".join(scene.warnings))
        return BannerResult(
            image_path=stored.url,
            filename=stored.filename,
            width=stored.width,
            height=stored.height,
            degraded=scene.degraded,
            warnings=doc.warnings + scene.warnings,
        )

    def close(self) -> None:
        self.pool.close()

    def __enter__(self) -> "BannerGenerator":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
