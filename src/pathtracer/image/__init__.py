"""Image module: framebuffer finalization and file output."""

from .export import (
    compute_rmse,
    format_ppm,
    quantize_colors,
    save_image,
    save_png,
    save_ppm,
)

__all__ = [
    "quantize_colors",
    "format_ppm",
    "save_ppm",
    "save_png",
    "save_image",
    "compute_rmse",
]
