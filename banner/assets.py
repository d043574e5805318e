import io
import logging
import struct
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import unquote, urlparse

import requests
from PIL import Image, ImageOps

from .errors import ResourceFetchError
from .geometry import CanvasSize


logger = logging.getLogger(__name__)

ImageFetcher = Callable[[str], Image.Image]

USER_AGENT = "banner-renderer/1.0"

# What Pillow raises for corrupt or truncated image data, on open or on load.
DECODE_ERRORS = (
    OSError,
    SyntaxError,
    ValueError,
    EOFError,
    IndexError,
    TypeError,
    struct.error,
    Image.DecompressionBombError,
)


class HttpImageFetcher:
    """
    Fetch background images over HTTP(S).

    Design documents come from users, so local paths and file:// URLs are
    refused unless `local_root` is given. Then only files under that
    directory are read.

    Any failure (network, status code, refused path, undecodable bytes) is
    raised as `ResourceFetchError` so the scene can fall back to the gradient.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
        local_root: Optional[Path] = None,
    ) -> None:
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", USER_AGENT)
        self.local_root = Path(local_root).resolve() if local_root is not None else None

    def __call__(self, url: str) -> Image.Image:
        parsed = urlparse(url)
        if parsed.scheme in ("http", "https"):
            data = self._download(url)
        elif parsed.scheme in ("", "file"):
            data = self._read_local(Path(unquote(parsed.path) if parsed.scheme == "file" else url))
        else:
            raise ResourceFetchError(f"unsupported image URL scheme {parsed.scheme!r}")
        return decode_image(data, url)

    def _download(self, url: str) -> bytes:
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise ResourceFetchError(f"could not fetch {url}: {exc}") from exc
        return response.content

    def _read_local(self, path: Path) -> bytes:
        if self.local_root is None:
            raise ResourceFetchError(f"local image paths are disabled: {path}")
        resolved = (path if path.is_absolute() else self.local_root / path).resolve()
        try:
            resolved.relative_to(self.local_root)
        except ValueError:
            raise ResourceFetchError(f"{path} is outside {self.local_root}") from None
        try:
            return resolved.read_bytes()
        except OSError as exc:
            raise ResourceFetchError(f"could not read {path}: {exc}") from exc


def decode_image(data: bytes, source: str = "<bytes>") -> Image.Image:
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
        return img.convert("RGB")
    except DECODE_ERRORS as exc:
        raise ResourceFetchError(f"could not decode image from {source}: {exc}") from exc


def cover_image(img: Image.Image, canvas: CanvasSize) -> Image.Image:
    """
    Scale to cover the canvas while keeping the aspect ratio, center-cropping
    whatever overflows.
    """
    return ImageOps.fit(
        img.convert("RGB"),
        canvas.as_tuple(),
        method=Image.LANCZOS,
        centering=(0.5, 0.5),
    )
