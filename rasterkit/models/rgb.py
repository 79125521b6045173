from __future__ import annotations
from dataclasses import dataclass
from typing import Iterator


@dataclass(frozen=True)
class Rgb:
    """
    One pixel as three float channel intensities.
    Nominally 0-255, but never clamped here.
    """
    r: float = 0.0
    g: float = 0.0
    b: float = 0.0

    @classmethod
    def gray(cls, c: float) -> Rgb:
        return cls(c, c, c)

    def __iter__(self) -> Iterator[float]:
        yield self.r
        yield self.g
        yield self.b

    def as_tuple(self):
        return (self.r, self.g, self.b)


BLACK = Rgb.gray(0.0)
WHITE = Rgb.gray(255.0)
RED   = Rgb(255.0, 0.0, 0.0)
GREEN = Rgb(0.0, 255.0, 0.0)
BLUE  = Rgb(0.0, 0.0, 255.0)
