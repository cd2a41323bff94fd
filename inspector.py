"""Image decoding for structural metadata and corruption checks."""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from PIL import Image as PILImage, ImageOps

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImageAnalysis:
    width: Optional[int]
    height: Optional[int]
    is_corrupted: bool


CORRUPTED = ImageAnalysis(width=None, height=None, is_corrupted=True)


def read_image_meta(path: Path) -> tuple[int, int]:
    """Fully decode the image and return its oriented dimensions."""
    with PILImage.open(path) as im:
        im.load()
        oriented = ImageOps.exif_transpose(im)
        return oriented.width, oriented.height


def analyze(path: Union[str, Path]) -> ImageAnalysis:
    """Inspect a file. Never raises; any failure reads as corrupted."""
    try:
        w, h = read_image_meta(Path(path))
    except Exception as exc:
        logger.info("Could not decode %s: %s", path, exc)
        return CORRUPTED
    return ImageAnalysis(width=w, height=h, is_corrupted=False)
