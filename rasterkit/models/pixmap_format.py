from __future__ import annotations
from enum import Enum

from .codec_result import CodecErrorKind, PixmapError


class PixmapFormat(Enum):
    """The four pixel-map variants we read. Only P6 is ever written."""
    P2 = "P2"   # plain text, grayscale
    P3 = "P3"   # plain text, full colour
    P5 = "P5"   # binary, grayscale
    P6 = "P6"   # binary, full colour

    @classmethod
    def from_tag(cls, tag: str) -> PixmapFormat:
        try:
            return cls(tag)
        except ValueError:
            raise PixmapError(
                CodecErrorKind.UNRECOGNIZED_FORMAT,
                f"Can't read input file: unknown P identifier {tag!r}",
            ) from None

    @property
    def is_binary(self) -> bool:
        return self in (PixmapFormat.P5, PixmapFormat.P6)

    @property
    def is_grayscale(self) -> bool:
        return self in (PixmapFormat.P2, PixmapFormat.P5)

    @property
    def channels(self) -> int:
        return 1 if self.is_grayscale else 3
