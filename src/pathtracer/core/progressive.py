"""Progressive renderer for iterative sample accumulation.

This module provides a wrapper around the core integrator that supports:
- Progressive rendering that refines over time
- Batch rendering (multiple SPP per pass)
- Progress callbacks and a generator interface
- Seeded, reproducible random streams
- Streaming finished pixels as (x, y, color) results

Example:
    >>> from pathtracer.config import RenderConfig, init_taichi
    >>> init_taichi(RenderConfig(num_workers=4))
    >>> from pathtracer.core.progressive import ProgressiveRenderer
    >>> from pathtracer.camera.thin_lens import setup_camera
    >>> from pathtracer.scene.random_spheres import create_random_scene, create_default_camera
    >>>
    >>> scene = create_random_scene(seed=1)
    >>> setup_camera(create_default_camera())
    >>>
    >>> renderer = ProgressiveRenderer(400, 266, max_depth=50, seed=1)
    >>> renderer.render(10)  # Render 10 SPP
    >>> framebuffer = renderer.get_framebuffer()
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Generator, Iterator
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt

from pathtracer.camera.thin_lens import ThinLensCamera, setup_camera
from pathtracer.core.integrator import (
    MAX_DEPTH,
    clear_render_target,
    get_color_sums_numpy,
    get_framebuffer,
    get_total_samples,
    render_image,
    setup_render_target,
)
from pathtracer.core.sampling import seed_rng
from pathtracer.image.export import save_image

if TYPE_CHECKING:
    from pathtracer.scene.manager import SceneManager

logger = logging.getLogger(__name__)

# Callback receives (current_samples, total_target_samples)
ProgressCallback = Callable[[int, int], None]


class ProgressiveRenderer:
    """A progressive renderer that accumulates samples over time.

    The renderer owns the image size, path depth and seed, and delegates to
    the global integrator buffers (which are Taichi fields). The scene and
    camera are whatever was last set up; they must not change while a pass
    is running.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        max_depth: Maximum number of bounces per path.
        seed: Seed of the per-scanline random streams.
    """

    def __init__(self, width: int, height: int, max_depth: int = MAX_DEPTH, seed: int = 0) -> None:
        """Initialize the progressive renderer.

        Args:
            width: Image width in pixels (2 to 2048).
            height: Image height in pixels (2 to 2048).
            max_depth: Maximum number of bounces per path.
            seed: Seed for the random streams.

        Raises:
            ValueError: If dimensions are out of range or max_depth is negative.
        """
        if max_depth < 0:
            raise ValueError(f"max_depth must be non-negative, got {max_depth}")

        self._width = width
        self._height = height
        self._max_depth = max_depth
        self._seed = seed
        setup_render_target(width, height)
        seed_rng(seed)

    @property
    def width(self) -> int:
        """Get the image width."""
        return self._width

    @property
    def height(self) -> int:
        """Get the image height."""
        return self._height

    @property
    def max_depth(self) -> int:
        """Get the maximum path depth."""
        return self._max_depth

    @property
    def seed(self) -> int:
        """Get the random seed."""
        return self._seed

    @property
    def sample_count(self) -> int:
        """Get the current number of accumulated samples per pixel."""
        return get_total_samples()

    def reset(self, seed: int | None = None) -> None:
        """Clear the accumulated image and restart the random streams.

        Args:
            seed: New seed. Keeps the current seed when None.
        """
        if seed is not None:
            self._seed = seed
        clear_render_target()
        seed_rng(self._seed)

    def resize(self, width: int, height: int) -> None:
        """Resize the render target and reset the accumulator.

        Raises:
            ValueError: If dimensions are out of range.
        """
        setup_render_target(width, height)
        self._width = width
        self._height = height
        seed_rng(self._seed)

    def render(
        self,
        num_samples: int = 1,
        batch_size: int = 1,
        callback: ProgressCallback | None = None,
    ) -> None:
        """Render samples progressively with optional progress callback.

        Accumulates the specified number of samples into the existing buffer.
        Can be called multiple times to continue refining the image.

        Args:
            num_samples: Total number of samples per pixel to add.
            batch_size: Samples per pixel rendered in each pass.
            callback: Called after each pass with
                (current_total_samples, target_total_samples).

        Raises:
            ValueError: If batch_size is not positive.
        """
        for current, target in self.render_progressive(num_samples, batch_size):
            if callback is not None:
                callback(current, target)

    def render_progressive(
        self,
        num_samples: int = 1,
        batch_size: int = 1,
    ) -> Generator[tuple[int, int], None, None]:
        """Render samples progressively, yielding progress after each pass.

        Args:
            num_samples: Total number of samples per pixel to add.
            batch_size: Samples per pixel rendered in each pass.

        Yields:
            Tuple of (current_total_samples, target_total_samples).

        Raises:
            ValueError: If batch_size is not positive.
        """
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        if num_samples <= 0:
            return

        target_samples = self.sample_count + num_samples

        remaining = num_samples
        while remaining > 0:
            batch = min(batch_size, remaining)
            render_image(batch, self._max_depth)
            remaining -= batch
            current = self.sample_count
            logger.debug("Accumulated %d/%d samples per pixel", current, target_samples)
            yield (current, target_samples)

    def get_image_numpy(self) -> npt.NDArray[np.float64]:
        """Get the averaged linear image as a NumPy array.

        Returns:
            Array of shape (height, width, 3), rows top to bottom, not gamma
            corrected or clamped. All zeros before the first pass.
        """
        sums = get_color_sums_numpy()
        samples = self.sample_count
        if samples == 0:
            return np.zeros_like(sums)
        return sums / samples

    def get_framebuffer(self) -> npt.NDArray[np.uint8]:
        """Get the finalized 8-bit image of shape (height, width, 3)."""
        return get_framebuffer()

    def iter_pixels(self) -> Iterator[tuple[int, int, tuple[int, int, int]]]:
        """Yield every finished pixel as (x, y, (r, g, b)).

        Pixels come row-major, top row first; y = 0 is the top row.
        """
        framebuffer = self.get_framebuffer()
        for y in range(self._height):
            for x in range(self._width):
                r, g, b = framebuffer[y, x]
                yield x, y, (int(r), int(g), int(b))

    def save_image(self, filepath: str | Path) -> None:
        """Save the finalized image (PPM for ``.ppm``, otherwise Pillow)."""
        save_image(self.get_framebuffer(), filepath)

    def __repr__(self) -> str:
        return (
            f"ProgressiveRenderer(width={self.width}, height={self.height}, "
            f"max_depth={self.max_depth}, seed={self.seed}, samples={self.sample_count})"
        )


def render(
    camera: ThinLensCamera,
    scene: SceneManager,
    width: int,
    height: int,
    samples_per_pixel: int,
    max_depth: int = MAX_DEPTH,
    *,
    seed: int = 0,
    batch_size: int | None = None,
    callback: ProgressCallback | None = None,
) -> npt.NDArray[np.uint8]:
    """Render a scene from a camera into an 8-bit framebuffer.

    Args:
        camera: Camera configuration; it is set up before rendering.
        scene: The scene to render. Its spheres and materials must already be
            loaded into the scene registries, as SceneManager does.
        width: Image width in pixels.
        height: Image height in pixels.
        samples_per_pixel: Samples averaged per pixel.
        max_depth: Maximum number of bounces per path.
        seed: Seed for the random streams.
        batch_size: Samples per pass; everything in one pass when None.
        callback: Optional progress callback, see ProgressiveRenderer.render.

    Returns:
        uint8 array of shape (height, width, 3), rows top to bottom.

    Raises:
        ValueError: If the camera or any parameter is invalid.
        IncompleteRenderError: If a pass did not complete every pixel.
    """
    if samples_per_pixel <= 0:
        raise ValueError(f"samples_per_pixel must be positive, got {samples_per_pixel}")

    setup_camera(camera)
    renderer = ProgressiveRenderer(width, height, max_depth=max_depth, seed=seed)

    logger.info(
        "Rendering %dx%d, %d spp, depth %d, %d spheres",
        width,
        height,
        samples_per_pixel,
        max_depth,
        scene.get_sphere_count(),
    )
    renderer.render(samples_per_pixel, batch_size or samples_per_pixel, callback)
    return renderer.get_framebuffer()
