from __future__ import annotations
from dataclasses import dataclass, field
from numbers import Real
from typing import Union

import numpy as np

from .rgb import Rgb, BLACK

DTYPE = np.float32

PixelValue = Union[Rgb, tuple, list, np.ndarray]


@dataclass(eq=False)
class RasterImage:
    """
    Dense RGB raster: `pixels` has shape (H, W, 3), dtype float32, row-major.
    Channel values are nominally 0-255 but are never clamped here.

    width == 0 or height == 0 is the empty state; then both are 0 and
    `pixels` is None.
    """
    width: int = 0
    height: int = 0
    pixels: np.ndarray | None = field(default=None, repr=False)

    def __post_init__(self):
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Negative image size {self.width}x{self.height}")

        if self.width == 0 or self.height == 0:
            self.width = self.height = 0
            self.pixels = None
            return

        if self.pixels is None:
            self.pixels = np.zeros((self.height, self.width, 3), dtype=DTYPE)
            return

        # Adopts the array as-is when it already has the right layout.
        pixels = np.ascontiguousarray(self.pixels, dtype=DTYPE)
        if pixels.shape != (self.height, self.width, 3):
            raise ValueError(
                f"Pixel buffer shape {pixels.shape} does not match "
                f"{self.width}x{self.height} RGB image"
            )
        self.pixels = pixels

    # ─── Construction ─────────────────────────────────────────────
    @classmethod
    def empty(cls) -> RasterImage:
        return cls()

    @classmethod
    def blank(cls, width: int, height: int, fill: Rgb = BLACK) -> RasterImage:
        """Allocate width x height pixels, every one set to `fill`."""
        img = cls(width, height)
        if img.pixels is not None:
            img.pixels[...] = _as_triple(fill)
        return img

    @classmethod
    def from_array(cls, array) -> RasterImage:
        """
        Build an image from an (H, W, 3) or (H, W) array-like.
        The data is always copied; a 2-D array is replicated across r, g, b.
        """
        arr = np.array(array, dtype=DTYPE)
        if arr.ndim == 2:
            arr = np.repeat(arr[:, :, np.newaxis], 3, axis=2)
        if arr.ndim != 3 or arr.shape[2] != 3:
            raise ValueError(f"Expected (H, W, 3) or (H, W) array, got shape {arr.shape}")
        height, width = arr.shape[:2]
        return cls(width, height, arr)

    def copy(self) -> RasterImage:
        """Deep copy: the new image gets its own buffer."""
        if self.pixels is None:
            return RasterImage()
        return RasterImage(self.width, self.height, self.pixels.copy())

    def move(self) -> RasterImage:
        """
        Hand the buffer over to a new image and leave this one empty.
        No pixel data is copied.
        """
        moved = RasterImage(self.width, self.height, self.pixels)
        self.width = self.height = 0
        self.pixels = None
        return moved

    def __copy__(self) -> RasterImage:
        return self.copy()

    def __deepcopy__(self, memo) -> RasterImage:
        return self.copy()

    # ─── Element access ───────────────────────────────────────────
    @property
    def is_empty(self) -> bool:
        return self.pixels is None

    def __len__(self) -> int:
        return self.width * self.height

    def at(self, x: int, y: int) -> np.ndarray:
        """
        Writable view of the pixel at column x, row y.
        Out-of-range coordinates are a caller bug and fail the assertion.
        """
        assert 0 <= x < self.width and 0 <= y < self.height, \
            f"pixel ({x}, {y}) outside {self.width}x{self.height} image"
        return self.pixels[y, x]

    def pixel(self, x: int, y: int) -> Rgb:
        r, g, b = self.at(x, y)
        return Rgb(float(r), float(g), float(b))

    def flat(self) -> np.ndarray:
        """(W*H, 3) view over the buffer in row-major order."""
        if self.pixels is None:
            return np.empty((0, 3), dtype=DTYPE)
        return self.pixels.reshape(-1, 3)

    def __getitem__(self, i: int) -> np.ndarray:
        return self.flat()[i]

    def __setitem__(self, i: int, value: PixelValue) -> None:
        self.flat()[i] = _as_triple(value)

    def fill(self, color: Rgb) -> RasterImage:
        if self.pixels is not None:
            self.pixels[...] = _as_triple(color)
        return self

    # ─── Comparison ───────────────────────────────────────────────
    def __eq__(self, other) -> bool:
        if not isinstance(other, RasterImage):
            return NotImplemented
        if (self.width, self.height) != (other.width, other.height):
            return False
        if self.pixels is None:
            return other.pixels is None
        return bool(np.array_equal(self.pixels, other.pixels))

    def allclose(self, other: RasterImage, atol: float = 1e-3) -> bool:
        if (self.width, self.height) != (other.width, other.height):
            return False
        if self.pixels is None:
            return True
        return bool(np.allclose(self.pixels, other.pixels, atol=atol))

    # ─── In-place operators ───────────────────────────────────────
    def __iadd__(self, other: RasterImage) -> RasterImage:
        """Averaging add: every channel becomes (self + other) / 2."""
        if not isinstance(other, RasterImage):
            return NotImplemented
        self._require_same_size(other)
        if self.pixels is not None:
            self.pixels += other.pixels
            self.pixels *= 0.5
        return self

    def __isub__(self, other: RasterImage) -> RasterImage:
        """Channel-wise subtraction clamped at zero."""
        if not isinstance(other, RasterImage):
            return NotImplemented
        self._require_same_size(other)
        if self.pixels is not None:
            np.subtract(self.pixels, other.pixels, out=self.pixels)
            np.maximum(self.pixels, 0.0, out=self.pixels)
        return self

    # ─── Value operators (never mutate operands) ──────────────────
    def __add__(self, other: RasterImage) -> RasterImage:
        """True, unclamped channel sum."""
        if not isinstance(other, RasterImage):
            return NotImplemented
        self._require_same_size(other)
        if self.pixels is None:
            return RasterImage()
        return RasterImage(self.width, self.height, self.pixels + other.pixels)

    def __sub__(self, other: RasterImage) -> RasterImage:
        if not isinstance(other, RasterImage):
            return NotImplemented
        self._require_same_size(other)
        if self.pixels is None:
            return RasterImage()
        return RasterImage(self.width, self.height,
                           np.maximum(self.pixels - other.pixels, 0.0))

    def __mul__(self, scale: float) -> RasterImage:
        if not isinstance(scale, Real):
            return NotImplemented
        if self.pixels is None:
            return RasterImage()
        return RasterImage(self.width, self.height,
                           (self.pixels * float(scale)).astype(DTYPE, copy=False))

    __rmul__ = __mul__

    # numpy scalars on the left defer to __rmul__ instead of iterating pixels.
    __array_ufunc__ = None

    # ─── Derived images ───────────────────────────────────────────
    @staticmethod
    def gamma_correct(image: RasterImage, gamma: float) -> RasterImage:
        """out = 255 * (in / 255) ** gamma, channel by channel."""
        if image.pixels is None:
            return RasterImage()
        corrected = 255.0 * np.power(image.pixels / 255.0, gamma)
        return RasterImage(image.width, image.height, corrected.astype(DTYPE, copy=False))

    @staticmethod
    def alpha_composite(foreground: RasterImage,
                        background: RasterImage,
                        alpha: float) -> RasterImage:
        """Linear blend fg * alpha + bg * (1 - alpha), unclamped."""
        return foreground * alpha + background * (1.0 - alpha)

    # ─── private helpers ──────────────────────────────────────────
    def _require_same_size(self, other: RasterImage) -> None:
        if (self.width, self.height) != (other.width, other.height):
            raise ValueError(
                f"Image size mismatch: {self.width}x{self.height} "
                f"vs {other.width}x{other.height}"
            )


def _as_triple(value: PixelValue):
    if isinstance(value, Rgb):
        return value.as_tuple()
    return value
