"""Render configuration and Taichi runtime setup.

The renderer runs on Taichi's CPU backend in double precision. The number of
worker threads is fixed when Taichi is initialized and cannot change for the
lifetime of the process, so ``init_taichi`` must be called exactly once, before
any module declaring Taichi fields is imported.

Example:
    >>> from pathtracer.config import RenderConfig, init_taichi
    >>> config = RenderConfig(width=200, samples_per_pixel=10, num_workers=8)
    >>> init_taichi(config)
    >>> from pathtracer.core.progressive import ProgressiveRenderer
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import taichi as ti

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_initialized = False


@dataclass
class RenderConfig:
    """Parameters for a render.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels. Derived from ``aspect_ratio`` when None.
        aspect_ratio: Width divided by height, also used for the camera.
        samples_per_pixel: Number of jittered samples averaged per pixel.
        max_depth: Maximum number of bounces per path.
        num_workers: Size of the CPU worker pool.
        seed: Seed for the per-scanline random streams and scene layout.
        batch_size: Samples per pixel rendered between progress reports.
        output: Output image path (``.ppm`` writes plain text, anything else
            goes through Pillow).
        log_level: Logging level name.
    """

    width: int = 400
    height: int | None = None
    aspect_ratio: float = 3.0 / 2.0
    samples_per_pixel: int = 5
    max_depth: int = 50
    num_workers: int = 4
    seed: int = 0
    batch_size: int = 1
    output: str = "output.png"
    log_level: str = "INFO"

    @property
    def image_height(self) -> int:
        """Image height, derived from the aspect ratio if not given."""
        if self.height is not None:
            return self.height
        return int(self.width / self.aspect_ratio)

    def validate(self) -> None:
        """Check the configuration for values the renderer cannot handle.

        Raises:
            ValueError: If any parameter is out of range.
        """
        # image_height divides by the aspect ratio
        if self.aspect_ratio <= 0.0:
            raise ValueError(f"aspect_ratio must be positive, got {self.aspect_ratio}")
        if self.width < 2 or self.image_height < 2:
            raise ValueError(
                f"Image must be at least 2x2 pixels, got {self.width}x{self.image_height}"
            )
        if self.samples_per_pixel <= 0:
            raise ValueError(
                f"samples_per_pixel must be positive, got {self.samples_per_pixel}"
            )
        if self.max_depth < 0:
            raise ValueError(f"max_depth must be non-negative, got {self.max_depth}")
        if self.num_workers <= 0:
            raise ValueError(f"num_workers must be positive, got {self.num_workers}")
        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")


def init_taichi(config: RenderConfig | None = None) -> None:
    """Initialize the Taichi runtime for CPU rendering.

    Subsequent calls are ignored: re-initializing Taichi would invalidate every
    field already declared by the renderer modules.

    Args:
        config: Render configuration. Only ``num_workers`` and ``seed`` are used.
    """
    global _initialized

    if _initialized:
        logger.debug("Taichi already initialized, ignoring init_taichi()")
        return

    config = config or RenderConfig()
    ti.init(
        arch=ti.cpu,
        default_fp=ti.f64,
        cpu_max_num_threads=config.num_workers,
        random_seed=config.seed,
    )
    _initialized = True
    logger.info("Taichi initialized on CPU with %d worker threads", config.num_workers)


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for command line use.

    Args:
        level: Logging level name such as "DEBUG" or "INFO".
    """
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
