import contextlib
import hashlib
import io
import logging
import os
import secrets
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from PIL import Image

from .config import FILENAME_MODES
from .errors import RenderBackendError
from .geometry import CanvasSize
from .scene import SceneGraph


logger = logging.getLogger(__name__)

PNG_COMPRESS_LEVEL = 6

Renderer = Callable[[SceneGraph], Image.Image]


@dataclass(frozen=True)
class ExportResult:
    png: bytes
    width: int
    height: int


@dataclass(frozen=True)
class StoredBanner:
    filename: str
    path: Path
    url: str
    width: int
    height: int


def encode_png(img: Image.Image) -> bytes:
    """
    Encode without metadata chunks and with a fixed compression level so the
    same pixels always produce the same bytes.
    """
    buffer = io.BytesIO()
    img.convert("RGB").save(buffer, format="PNG", optimize=False, compress_level=PNG_COMPRESS_LEVEL)
    return buffer.getvalue()


def export(scene: SceneGraph, canvas: CanvasSize, renderer: Renderer) -> ExportResult:
    """
    Rasterize `scene` with `renderer` and encode it as PNG.

    The bitmap must match `canvas` exactly; anything else is a backend fault.
    """
    if scene.canvas != canvas:
        raise RenderBackendError(
            f"scene was assembled for {scene.canvas.width}x{scene.canvas.height}, "
            f"export requested {canvas.width}x{canvas.height}"
        )
    img = renderer(scene)
    if img.size != canvas.as_tuple():
        raise RenderBackendError(
            f"backend produced {img.size[0]}x{img.size[1]}, expected {canvas.width}x{canvas.height}"
        )
    return ExportResult(png=encode_png(img), width=canvas.width, height=canvas.height)


def banner_filename(png: bytes, mode: str = "timestamp", now: Optional[float] = None) -> str:
    """
    Collision-resistant file name: `banner_<millis>_<random>.png`, or
    `banner_<sha256 prefix>.png` in hash mode.
    """
    if mode == "hash":
        return f"banner_{hashlib.sha256(png).hexdigest()[:32]}.png"
    if mode != "timestamp":
        raise ValueError(f"unknown filename mode {mode!r}; expected one of {FILENAME_MODES}")
    millis = int((time.time() if now is None else now) * 1000)
    return f"banner_{millis}_{secrets.token_hex(5)[:9]}.png"


def persist(
    result: ExportResult,
    output_dir: Path,
    url_prefix: str = "/banners",
    mode: str = "timestamp",
) -> StoredBanner:
    """
    Write the PNG atomically: a temp file in the target directory is renamed
    into place, and removed again if anything fails before the rename.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    filename = banner_filename(result.png, mode)
    target = output_dir / filename

    fd, tmp_name = tempfile.mkstemp(prefix=".banner_", suffix=".tmp", dir=str(output_dir))
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(result.png)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, target)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp_name)
        raise

    logger.info("Saved banner %s (%dx%d, %d bytes)", filename, result.width, result.height, len(result.png))
    return StoredBanner(
        filename=filename,
        path=target,
        url=f"{url_prefix.rstrip('/')}/{filename}",
        width=result.width,
        height=result.height,
    )

