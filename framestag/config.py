"""Process-wide settings."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """FrameStag settings, overridable through ``FRAMESTAG_*`` environment variables."""

    # Encoding
    JPEG_QUALITY: int = 95  # Pillow quality, equals 0.95 on a canvas
    SUPERSAMPLE: int = 4  # Render scale of resvg shape masks before downscaling
    MAX_CANVAS_PIXELS: int = 16384 * 16384  # Largest working surface we allocate

    # Execution
    PREVIEW_DEBOUNCE_S: float = 0.15  # Settle time before an interactive re-render
    WORKER_POLL_INTERVAL_S: float = 0.1  # Pending-set poll interval of the bulk shell

    # Export
    ARCHIVE_NAME: str = "framed_images.zip"
    ARCHIVE_COMPRESSION_LEVEL: int = 6
    FILENAME_MAX_LENGTH: int = 100

    # CLI
    LOG_LEVEL: str = "WARNING"

    model_config = {"env_prefix": "FRAMESTAG_"}


settings = Settings()
