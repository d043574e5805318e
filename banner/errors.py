class BannerError(Exception):
    """Base class for every error raised by the banner package."""


class ValidationError(BannerError):
    """Malformed design document that cannot be repaired with defaults."""


class ResourceFetchError(BannerError):
    """An external resource (background image) could not be fetched."""


class LayoutError(BannerError):
    """Text could not be laid out, e.g. non-positive font size."""


class RenderBackendError(BannerError):
    """The rasterization backend failed or is unavailable."""


class RenderTimeout(RenderBackendError):
    """The rasterization backend did not finish within its time bound."""


class BackendPoolExhausted(RenderTimeout):
    """No backend instance became free before the acquire timeout."""


class BannerGenerationFailed(BannerError):
    """
    Single failure kind reported to callers of `BannerGenerator.generate`.

    The original backend error is kept as `__cause__`.
    """
