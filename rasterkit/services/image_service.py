from __future__ import annotations
from pathlib import Path
from typing import Iterable, List, Mapping, Union
import logging
import os

from dotenv import load_dotenv
from PIL import Image as PILImage

from ..models.raster_image import RasterImage
from ..models.codec_result import CodecErrorKind, CodecResult, PixmapError
from ..repositories.pixmap_repository import PixmapRepository, OVERFLOW_MODES

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class ImageService:
    """
    Load/save front door for RasterImage objects.
    Recoverable codec failures never raise out of here: they are logged
    and come back as a CodecResult, an empty image, or False.
    """

    def __init__(self,
                 overflow: str | None = None,
                 legacy_square_text: bool | None = None):
        """
        Args:
            overflow: "wrap" or "clamp" for channels outside 0..254 on save
                (defaults to RASTER_OVERFLOW_MODE, then "wrap").
            legacy_square_text: read P2/P3 files as width x width
                (defaults to RASTER_LEGACY_SQUARE_TEXT=1).
        """
        self.overflow = overflow or os.getenv("RASTER_OVERFLOW_MODE", "wrap")
        if self.overflow not in OVERFLOW_MODES:
            raise ValueError(f"overflow must be one of {OVERFLOW_MODES}, got {self.overflow!r}")

        if legacy_square_text is None:
            legacy_square_text = os.getenv("RASTER_LEGACY_SQUARE_TEXT", "0") == "1"
        self.legacy_square_text = legacy_square_text

        self.pixmap_repository = PixmapRepository()

    # ─── Result-returning API ─────────────────────────────────────
    def decode(self, path: Union[str, Path]) -> CodecResult:
        path = Path(path)
        try:
            image = self.pixmap_repository.read(path, legacy_square_text=self.legacy_square_text)
        except PixmapError as err:
            logger.error(str(err))
            return CodecResult(RasterImage(), path, err.kind, str(err))
        return CodecResult(image, path)

    def encode(self, image: RasterImage, path: Union[str, Path]) -> CodecResult:
        path = Path(path)
        try:
            self.pixmap_repository.write(image, path, overflow=self.overflow)
        except PixmapError as err:
            logger.error(str(err))
            return CodecResult(image, path, err.kind, str(err))
        return CodecResult(image, path)

    # ─── Sentinel API ─────────────────────────────────────────────
    def load(self, path: Union[str, Path]) -> RasterImage:
        """Load one image; an empty image means it could not be read."""
        return self.decode(path).image

    def save(self, image: RasterImage, path: Union[str, Path]) -> bool:
        return self.encode(image, path).ok

    def load_many(self, paths: Iterable[Union[str, Path]]) -> List[RasterImage]:
        return [self.load(p) for p in paths]

    def save_many(self, outputs: Mapping[Union[str, Path], RasterImage]) -> List[Path]:
        """Save every image; returns the paths that were actually written."""
        return [Path(p) for p, img in outputs.items() if self.save(img, p)]

    # ─── Pillow bridge ────────────────────────────────────────────
    def to_pil_image(self, image: RasterImage) -> PILImage.Image:
        """
        Convert to an 8-bit RGB PIL image.
        Channels are truncated and clamped, unlike the P6 writer.
        """
        if image.is_empty:
            raise ValueError("Can't convert an empty image")
        return PILImage.fromarray(self.pixmap_repository.to_bytes(image.pixels, "clamp"))

    def save_preview(self, image: RasterImage, path: Union[str, Path]) -> bool:
        """
        Write a preview in whatever format Pillow infers from the suffix.
        """
        path = Path(path)
        if image.is_empty:
            logger.error(f"{CodecErrorKind.EMPTY_IMAGE.value}: can't preview an empty image: {path}")
            return False
        try:
            self.to_pil_image(image).save(path)
        except (OSError, ValueError) as err:
            logger.error(f"Can't write preview {path}: {err}")
            return False
        return True
