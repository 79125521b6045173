# pipeline/arithmetic_demo.py
from __future__ import annotations
from pathlib import Path
import os
import logging
from typing import Dict, Sequence, Tuple

from dotenv import load_dotenv

from ..models.raster_image import RasterImage
from ..services.image_service import ImageService

logger = logging.getLogger(__name__)

# ------------------------------------------------------------------
# env‑vars
load_dotenv()
OUTPUT_DIR     = os.getenv("RASTER_OUTPUT_DIR", ".")
OUTPUT_EXT     = ".ppm"                                       # P6 only
WRITE_PREVIEWS = os.getenv("RASTER_WRITE_PREVIEWS", "0") == "1"


def _env_float(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _env_floats(name: str, default: str) -> Tuple[float, ...]:
    raw = os.getenv(name, default)
    try:
        return tuple(float(v) for v in raw.split(","))
    except ValueError:
        raise ValueError(f"{name} must be comma-separated numbers, got {raw!r}") from None


# ------------------------------------------------------------------
def derive_images(
    first: RasterImage,
    second: RasterImage,
    *,
    scale: float | None             = None,
    gamma: float | None             = None,
    alphas: Sequence[float] | None  = None,
) -> Dict[str, RasterImage]:
    """
    Every derived image of the demo, keyed by output name.
    Unset parameters come from RASTER_SCALE, RASTER_GAMMA and RASTER_ALPHAS.
    Neither input is modified; AddAssign works on a copy of *first*.
    """
    if scale is None:
        scale = _env_float("RASTER_SCALE", "1.3")
    if gamma is None:
        gamma = _env_float("RASTER_GAMMA", "0.5")
    if alphas is None:
        alphas = _env_floats("RASTER_ALPHAS", "0.85,0.5")

    added = first + second
    derived = {
        "Add": added,
        "subtract": first - second,
        f"times{round(scale * 100)}": first * scale,
        "gamma": RasterImage.gamma_correct(added, gamma),
    }
    for alpha in alphas:
        derived[f"alpha{round(alpha * 100)}"] = RasterImage.alpha_composite(first, second, alpha)

    averaged = first.copy()
    averaged += second
    derived["AddAssign"] = averaged
    return derived


def run_arithmetic_demo(
    first_path: str | Path,
    second_path: str | Path,
    output_dir: str | Path   = OUTPUT_DIR,
    *,
    scale: float | None             = None,
    gamma: float | None             = None,
    alphas: Sequence[float] | None  = None,
    image_service: ImageService | None = None,
    write_previews: bool     = WRITE_PREVIEWS,
) -> Dict[str, Path]:
    """
    Load two images, derive the arithmetic results and write each one
    as <output_dir>/<name>.ppm.

    Returns {name: path} for the files actually written; {} when an
    input could not be loaded or the two sizes differ.
    """
    image_service = image_service or ImageService()

    first = image_service.load(first_path)
    second = image_service.load(second_path)
    if first.is_empty or second.is_empty:
        logger.error("Input image missing or unreadable, nothing to do")
        return {}
    if (first.width, first.height) != (second.width, second.height):
        logger.error(
            f"Input sizes differ: {first.width}x{first.height} vs "
            f"{second.width}x{second.height}"
        )
        return {}

    derived = derive_images(first, second, scale=scale, gamma=gamma, alphas=alphas)

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    written: Dict[str, Path] = {}
    for name, image in derived.items():
        out_path = output_dir / f"{name}{OUTPUT_EXT}"
        if image_service.save(image, out_path):
            written[name] = out_path
        if write_previews:
            image_service.save_preview(image, out_path.with_suffix(".png"))

    logger.info(f"Wrote {len(written)}/{len(derived)} images to {output_dir}")
    return written
