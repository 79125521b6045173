from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .raster_image import RasterImage


class CodecErrorKind(Enum):
    FILE_OPEN = "file_open"
    UNRECOGNIZED_FORMAT = "unrecognized_format"
    MALFORMED_DATA = "malformed_data"
    EMPTY_IMAGE = "empty_image"


class PixmapError(Exception):
    """
    Recoverable codec failure. Raised inside the repository layer only;
    the service turns it into a CodecResult plus a log line.
    """

    def __init__(self, kind: CodecErrorKind, message: str, path: Path | None = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.path = path

    def __str__(self) -> str:
        if self.path is None:
            return self.message
        return f"{self.message}: {self.path}"


@dataclass
class CodecResult:
    """
    Outcome of one decode or encode call.
    On failure `image` is the empty sentinel (decode) or the image that
    was not written (encode), and `error` names what went wrong.
    """
    image: RasterImage
    path: Path | None = None
    error: CodecErrorKind | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
