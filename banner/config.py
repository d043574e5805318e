import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from .errors import ValidationError
from .geometry import CanvasSize


FILENAME_MODES = ("timestamp", "hash")

PLATFORM_SPECS: Dict[str, Dict[str, Dict]] = {
    "instagram": {
        "post": {"width": 1080, "height": 1080, "name": "Instagram Post"},
        "story": {"width": 1080, "height": 1920, "name": "Instagram Story"},
    },
    "linkedin": {
        "post": {"width": 1200, "height": 627, "name": "LinkedIn Post"},
    },
    "twitter": {
        "post": {"width": 1200, "height": 675, "name": "Twitter/X Post"},
    },
    "facebook": {
        "post": {"width": 1200, "height": 630, "name": "Facebook Post"},
    },
}

DEFAULT_CANVAS = CanvasSize(1200, 630)


def canvas_for_platform(platform: Optional[str], format: str = "post") -> CanvasSize:
    """
    Look up the canvas size of a platform format, falling back to the
    1200x630 default when the platform or format is unknown.
    """
    spec = PLATFORM_SPECS.get((platform or "").lower(), {}).get(format)
    if not spec:
        return DEFAULT_CANVAS
    return CanvasSize(spec["width"], spec["height"])


@dataclass
class Settings:
    output_dir: Path = Path("public/banners")
    url_prefix: str = "/banners"
    fonts_dir: Path = Path("fonts")
    render_timeout: float = 30.0
    fetch_timeout: float = 10.0
    pool_size: int = 2
    pool_acquire_timeout: float = 30.0
    filename_mode: str = "timestamp"
    local_image_root: Optional[Path] = None
    openai_api_key: Optional[str] = None
    suggestion_model: str = "gpt-4o-mini"

    def __post_init__(self) -> None:
        if self.filename_mode not in FILENAME_MODES:
            raise ValidationError(
                f"unknown filename mode {self.filename_mode!r}; expected one of {FILENAME_MODES}"
            )

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from the process environment.

        Call `dotenv.load_dotenv()` first if values live in a `.env` file.
        Malformed values raise `ValidationError` naming the variable.
        """
        env = os.environ
        local_root = env.get("BANNER_LOCAL_IMAGE_ROOT")
        return cls(
            output_dir=Path(env.get("BANNER_OUTPUT_DIR", "public/banners")),
            url_prefix=env.get("BANNER_URL_PREFIX", "/banners").rstrip("/"),
            fonts_dir=Path(env.get("BANNER_FONTS_DIR", "fonts")),
            render_timeout=_env_number("BANNER_RENDER_TIMEOUT", 30.0, float),
            fetch_timeout=_env_number("BANNER_FETCH_TIMEOUT", 10.0, float),
            pool_size=max(1, _env_number("BANNER_POOL_SIZE", 2, int)),
            pool_acquire_timeout=_env_number("BANNER_POOL_ACQUIRE_TIMEOUT", 30.0, float),
            filename_mode=env.get("BANNER_FILENAME_MODE", "timestamp"),
            local_image_root=Path(local_root) if local_root else None,
            openai_api_key=env.get("OPENAI_API_KEY") or None,
            suggestion_model=env.get("BANNER_SUGGESTION_MODEL", "gpt-4o-mini"),
        )


def _env_number(name: str, default, kind):
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return kind(raw.strip())
    except ValueError:
        raise ValidationError(f"{name} must be a {kind.__name__}, got {raw!r}") from None
