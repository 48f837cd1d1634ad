"""Image metrics for downloaded originals."""

import logging
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from assetscale.services.downscaler.exceptions import ImageDecodeError
from assetscale.services.downscaler.models import Dimensions

logger = logging.getLogger(__name__)


def read_dimensions(path: Path) -> Dimensions:
    """Read pixel dimensions from an image header without decoding pixel data.

    Raises:
        ImageDecodeError: If the file is not a recognizable raster image, or
            exceeds Pillow's decompression bomb limit
    """
    try:
        with Image.open(path) as img:
            width, height = img.size
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        logger.error(
            "Failed to read image dimensions",
            extra={"file_path": str(path), "error": str(e)},
        )
        raise ImageDecodeError(f"Not a decodable image: {path.name}") from e

    return Dimensions(width=width, height=height)


def file_size(path: Path) -> int:
    """Size of a local file in bytes."""
    return path.stat().st_size
