"""Resize backends: Pillow in-process, or ImageMagick as a subprocess."""

import logging
import subprocess
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from assetscale.core.config import Settings
from assetscale.services.downscaler.base import ImageResizer
from assetscale.services.downscaler.exceptions import ResizeError

logger = logging.getLogger(__name__)


class PillowResizer(ImageResizer):
    """Resize with Pillow, writing the output in the source format.

    EXIF (including the orientation tag) and ICC data are carried over, as
    ImageMagick does, so both backends publish the same-looking image.
    """

    def __init__(self, resample: int = Image.Resampling.LANCZOS):
        self.resample = resample

    def resize(self, source: Path, destination: Path, target_height: int) -> Path:
        try:
            with Image.open(source) as img:
                image_format = img.format
                width, height = img.size
                target_width = max(1, round(width * target_height / height))

                metadata = {key: img.info[key] for key in ("exif", "icc_profile") if img.info.get(key)}

                resized = img.resize((target_width, target_height), self.resample)
                destination.parent.mkdir(parents=True, exist_ok=True)
                resized.save(destination, format=image_format, **metadata)
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            logger.error(
                "Pillow resize failed",
                extra={"source": str(source), "error": str(e)},
            )
            raise ResizeError(f"Failed to resize {source.name}: {e}") from e

        logger.info(
            "Image resized",
            extra={
                "backend": self.get_backend_name(),
                "original_size": f"{width}x{height}",
                "scaled_size": f"{target_width}x{target_height}",
            },
        )
        return destination

    def get_backend_name(self) -> str:
        return "pillow"


class ImageMagickResizer(ImageResizer):
    """Resize by spawning ImageMagick's convert: ``convert src -resize x<h> dst``."""

    def __init__(self, binary: str = "convert", timeout: int = 30):
        self.binary = binary
        self.timeout = timeout

    def resize(self, source: Path, destination: Path, target_height: int) -> Path:
        cmd = [
            self.binary,
            str(source),
            "-resize",
            f"x{target_height}",
            str(destination),
        ]
        destination.parent.mkdir(parents=True, exist_ok=True)

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            logger.error(
                "ImageMagick resize timeout",
                extra={"source": str(source), "timeout": self.timeout},
            )
            raise ResizeError(f"Resize timed out after {self.timeout} seconds") from e
        except FileNotFoundError as e:
            raise ResizeError(f"ImageMagick binary not found: {self.binary}") from e

        if result.returncode != 0:
            logger.error(
                "ImageMagick resize failed",
                extra={
                    "source": str(source),
                    "returncode": result.returncode,
                    "stderr": result.stderr,
                },
            )
            raise ResizeError(f"convert exited with {result.returncode}: {result.stderr.strip()}")

        logger.info(
            "Image resized",
            extra={"backend": self.get_backend_name(), "target_height": target_height},
        )
        return destination

    def get_backend_name(self) -> str:
        return "imagemagick"


def create_resizer(settings: Settings) -> ImageResizer:
    """Build the resize backend named by RESIZE_BACKEND."""
    backend = settings.RESIZE_BACKEND.lower()
    if backend == "pillow":
        return PillowResizer()
    if backend == "imagemagick":
        return ImageMagickResizer(
            binary=settings.IMAGEMAGICK_BINARY,
            timeout=settings.RESIZE_TIMEOUT_SECONDS,
        )
    raise ValueError(f"Unknown RESIZE_BACKEND: {settings.RESIZE_BACKEND}")
