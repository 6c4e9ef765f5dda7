"""Camera module for primary ray generation.

Components:
    thin_lens: Look-at camera with vertical field of view and a thin lens
        for depth of field (aperture 0 gives a pinhole camera)
"""

from .thin_lens import (
    ThinLensCamera,
    get_camera_info,
    get_ray,
    get_ray_jittered,
    sample_ray,
    setup_camera,
)

__all__ = [
    "ThinLensCamera",
    "setup_camera",
    "get_ray",
    "get_ray_jittered",
    "get_camera_info",
    "sample_ray",
]
