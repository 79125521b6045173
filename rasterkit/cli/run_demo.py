import os
import sys
import logging
from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from ..pipeline.arithmetic_demo import run_arithmetic_demo

logger = logging.getLogger(__name__)

INPUT_A = os.getenv("RASTER_INPUT_A", "./images/Mandrill.ppm")
INPUT_B = os.getenv("RASTER_INPUT_B", "./images/tandon_stacked_color.ppm")


def main() -> int:
    """
    Run the arithmetic demo on the two configured inputs.
    Failures only show up in the log; the exit status is always 0.
    """
    # --- Centralized Logging Configuration ---
    logging.basicConfig(
        level=getattr(logging, os.getenv("RASTER_LOG_LEVEL", "INFO").upper(), logging.INFO),
        format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
        datefmt='%H:%M:%S'
    )

    logger.info("Start program")
    try:
        written = run_arithmetic_demo(INPUT_A, INPUT_B)
    except Exception:
        logger.exception("Error while running the arithmetic demo")
        return 0

    for name, path in written.items():
        logger.info(f"  {name:<10} -> {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
