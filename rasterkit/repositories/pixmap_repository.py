from __future__ import annotations
from pathlib import Path
from typing import Union, Tuple
import logging

import numpy as np

from ..models.raster_image import RasterImage, DTYPE
from ..models.pixmap_format import PixmapFormat
from ..models.codec_result import CodecErrorKind, PixmapError

logger = logging.getLogger(__name__)

_WHITESPACE = b" \t\n\r\v\f"
OVERFLOW_MODES = ("wrap", "clamp")


class _HeaderReader:
    """
    Cursor over the raw file bytes.
    Yields whitespace-separated header tokens; '#' starts a comment
    that runs to the end of the line.
    """

    def __init__(self, data: bytes):
        self.data = data
        self.pos = 0

    def token(self) -> bytes:
        data, n = self.data, len(self.data)
        while self.pos < n:
            c = data[self.pos:self.pos + 1]
            if c in _WHITESPACE:
                self.pos += 1
            elif c == b"#":
                end = data.find(b"\n", self.pos)
                self.pos = n if end < 0 else end + 1
            else:
                break

        start = self.pos
        while self.pos < n:
            c = data[self.pos:self.pos + 1]
            if c in _WHITESPACE or c == b"#":
                break
            self.pos += 1

        if start == self.pos:
            raise PixmapError(CodecErrorKind.MALFORMED_DATA, "Unexpected end of header")
        return data[start:self.pos]

    def integer(self, field: str) -> int:
        tok = self.token()
        if not tok.isdigit():
            raise PixmapError(
                CodecErrorKind.MALFORMED_DATA,
                f"Bad {field} in header: {tok[:16]!r}",
            )
        return int(tok)

    def skip_single_whitespace(self) -> None:
        """Binary payload starts after exactly one whitespace byte."""
        c = self.data[self.pos:self.pos + 1]
        if not c or c not in _WHITESPACE:
            raise PixmapError(CodecErrorKind.MALFORMED_DATA, "Missing separator before pixel data")
        self.pos += 1

    def rest(self) -> bytes:
        return self.data[self.pos:]


class PixmapRepository:
    """
    File I/O for the P2/P3/P5/P6 pixel-map family.
    Every failure is raised as PixmapError; callers that want the
    sentinel-plus-diagnostic behaviour go through ImageService.
    """

    # ─── Decode ───────────────────────────────────────────────────
    @staticmethod
    def read(path: Union[str, Path], *, legacy_square_text: bool = False) -> RasterImage:
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as err:
            raise PixmapError(CodecErrorKind.FILE_OPEN, "Can't open input file", path) from err

        try:
            return PixmapRepository.decode_bytes(data, legacy_square_text=legacy_square_text)
        except PixmapError as err:
            err.path = path
            raise

    @staticmethod
    def decode_bytes(data: bytes, *, legacy_square_text: bool = False) -> RasterImage:
        """
        Decode a complete pixel-map file held in memory.

        Args:
            data: raw file contents.
            legacy_square_text: for P2/P3, ignore the height token and use
                the width for both dimensions (old tool behaviour).

        Returns:
            RasterImage with byte/sample values copied unnormalised into
            float channels.
        """
        reader = _HeaderReader(data)
        fmt = PixmapFormat.from_tag(reader.token().decode("ascii", errors="replace"))
        width, height, maxval = PixmapRepository._read_dimensions(reader)

        if legacy_square_text and not fmt.is_binary:
            height = width

        logger.debug(f"Decoding {fmt.value} image {width}x{height} (maxval {maxval})")

        decoder = _DECODERS[fmt]
        samples = decoder(reader, width * height * fmt.channels)
        if fmt.is_grayscale:
            return RasterImage.from_array(samples.reshape(height, width))
        return RasterImage(width, height, samples.reshape(height, width, 3).astype(DTYPE))

    @staticmethod
    def _read_dimensions(reader: _HeaderReader) -> Tuple[int, int, int]:
        width = reader.integer("width")
        height = reader.integer("height")
        maxval = reader.integer("maxval")
        if not 0 < maxval <= 255:
            raise PixmapError(
                CodecErrorKind.MALFORMED_DATA,
                f"Unsupported maxval {maxval}; only 8-bit samples are read",
            )
        return width, height, maxval

    @staticmethod
    def _binary_samples(reader: _HeaderReader, count: int) -> np.ndarray:
        reader.skip_single_whitespace()
        body = reader.rest()
        if len(body) < count:
            raise PixmapError(
                CodecErrorKind.MALFORMED_DATA,
                f"Truncated pixel data: expected {count} bytes, got {len(body)}",
            )
        return np.frombuffer(body, dtype=np.uint8, count=count)

    @staticmethod
    def _plain_samples(reader: _HeaderReader, count: int) -> np.ndarray:
        tokens = []
        for _ in range(count):
            try:
                tokens.append(reader.integer("sample"))
            except PixmapError as err:
                raise PixmapError(
                    CodecErrorKind.MALFORMED_DATA,
                    f"Bad or missing sample #{len(tokens)} of {count} ({err.message})",
                ) from None
        return np.array(tokens, dtype=DTYPE)

    # ─── Encode ───────────────────────────────────────────────────
    @staticmethod
    def write(image: RasterImage, path: Union[str, Path], *, overflow: str = "wrap") -> Path:
        path = Path(path)
        data = PixmapRepository.encode_bytes(image, overflow=overflow)
        try:
            with open(path, "wb") as fh:
                fh.write(data)
        except OSError as err:
            raise PixmapError(CodecErrorKind.FILE_OPEN, "Can't open output file", path) from err
        return path

    @staticmethod
    def encode_bytes(image: RasterImage, *, overflow: str = "wrap") -> bytes:
        """
        Serialise as binary P6 with maxval 255.

        overflow="wrap" truncates each channel to an integer and reduces it
        modulo 255, so 255 becomes 0 and 305 becomes 50. overflow="clamp"
        saturates into 0..255 instead.
        """
        if overflow not in OVERFLOW_MODES:
            raise ValueError(f"overflow must be one of {OVERFLOW_MODES}, got {overflow!r}")
        if image.is_empty:
            raise PixmapError(CodecErrorKind.EMPTY_IMAGE, "Can't save an empty image")

        header = f"P6\n{image.width} {image.height}\n255\n".encode("ascii")
        return header + PixmapRepository.to_bytes(image.pixels, overflow).tobytes()

    @staticmethod
    def to_bytes(pixels: np.ndarray, overflow: str = "wrap") -> np.ndarray:
        truncated = np.trunc(np.nan_to_num(pixels, nan=0.0, posinf=0.0, neginf=0.0))
        if overflow == "wrap":
            out = np.mod(truncated, 255.0)
        else:
            out = np.clip(truncated, 0.0, 255.0)
        return out.astype(np.uint8)


_DECODERS = {
    PixmapFormat.P2: PixmapRepository._plain_samples,
    PixmapFormat.P3: PixmapRepository._plain_samples,
    PixmapFormat.P5: PixmapRepository._binary_samples,
    PixmapFormat.P6: PixmapRepository._binary_samples,
}
