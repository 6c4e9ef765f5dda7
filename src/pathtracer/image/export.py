"""Image finalization and export.

Pixels are accumulated as color *sums*. Finalizing a pixel divides by the
sample count, applies gamma 2 (square root), clamps to [0, 0.999] and scales by
256, so every channel lands in 0..255 without a special case for 1.0.

Supported formats:
    - Plain-text PPM (P3), written directly
    - PNG and anything else Pillow can encode

Example:
    >>> import numpy as np
    >>> from pathtracer.image.export import quantize_colors, save_image
    >>> sums = np.full((2, 2, 3), 2.0)
    >>> framebuffer = quantize_colors(sums, samples_per_pixel=4)
    >>> save_image(framebuffer, "output.ppm")
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

logger = logging.getLogger(__name__)

# Channels are clamped below 1 before scaling so that 256 * value < 256
MAX_CHANNEL_VALUE = 0.999

PPM_EXTENSIONS = (".ppm",)


def quantize_colors(
    color_sums: npt.NDArray[np.floating],
    samples_per_pixel: int,
) -> npt.NDArray[np.uint8]:
    """Convert accumulated color sums to 8-bit channels.

    ``channel = int(256 * clamp(sqrt(sum / samples_per_pixel), 0, 0.999))``.
    NaN channels become 0.

    Args:
        color_sums: Array of shape (..., 3) holding per-pixel color sums.
        samples_per_pixel: Number of samples summed into each pixel.

    Returns:
        uint8 array with the same shape as ``color_sums``.

    Raises:
        ValueError: If samples_per_pixel is not positive.
    """
    if samples_per_pixel <= 0:
        raise ValueError(f"samples_per_pixel must be positive, got {samples_per_pixel}")

    averaged = np.asarray(color_sums, dtype=np.float64) / float(samples_per_pixel)
    # Negative averages clamp to 0 before the square root
    gamma_corrected = np.sqrt(np.maximum(averaged, 0.0))
    gamma_corrected = np.nan_to_num(gamma_corrected, nan=0.0, posinf=MAX_CHANNEL_VALUE)
    clamped = np.clip(gamma_corrected, 0.0, MAX_CHANNEL_VALUE)
    return (256.0 * clamped).astype(np.uint8)


def format_ppm(framebuffer: npt.NDArray[np.uint8]) -> str:
    """Encode a framebuffer as plain-text PPM.

    Args:
        framebuffer: uint8 array of shape (height, width, 3), rows ordered top
            to bottom.

    Returns:
        The PPM document: ``P3`` header, ``width height``, ``255``, then one
        ``r g b`` line per pixel in row-major order.

    Raises:
        ValueError: If the array is not (height, width, 3).
    """
    if framebuffer.ndim != 3 or framebuffer.shape[2] != 3:
        raise ValueError(f"Expected a (height, width, 3) array, got shape {framebuffer.shape}")

    height, width, _ = framebuffer.shape
    lines = ["P3", f"{width} {height}", "255"]
    for r, g, b in framebuffer.reshape(-1, 3):
        lines.append(f"{r} {g} {b}")
    return "\n".join(lines) + "\n"


def save_ppm(framebuffer: npt.NDArray[np.uint8], filepath: str | Path) -> None:
    """Write a framebuffer as a plain-text PPM file."""
    Path(filepath).write_text(format_ppm(framebuffer))


def save_png(framebuffer: npt.NDArray[np.uint8], filepath: str | Path) -> None:
    """Write a framebuffer through Pillow; the format follows the file extension."""
    # A contiguous (height, width, 3) uint8 array is read as RGB
    pil_image = PILImage.fromarray(np.ascontiguousarray(framebuffer, dtype=np.uint8))
    pil_image.save(filepath)


def save_image(framebuffer: npt.NDArray[np.uint8], filepath: str | Path) -> None:
    """Write a framebuffer, choosing the encoder from the file extension.

    ``.ppm`` files are written as plain text, every other extension goes
    through Pillow.
    """
    path = Path(filepath)
    if path.suffix.lower() in PPM_EXTENSIONS:
        save_ppm(framebuffer, path)
    else:
        save_png(framebuffer, path)
    logger.info("Wrote %dx%d image to %s", framebuffer.shape[1], framebuffer.shape[0], path)


def compute_rmse(
    image_a: npt.NDArray[np.floating],
    image_b: npt.NDArray[np.floating],
) -> float:
    """Compute root mean squared error between two images.

    Args:
        image_a: First image array.
        image_b: Second image array (must have same shape as image_a).

    Returns:
        RMSE value (lower is more similar).

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Image shapes must match: {image_a.shape} vs {image_b.shape}")

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
