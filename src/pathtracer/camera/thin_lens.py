"""Thin-lens camera model with depth of field.

The camera builds an orthonormal basis (u, v, w) from the view parameters:
- w: points from lookat toward lookfrom (opposite view direction)
- u: points right in the image plane
- v: points up in the image plane

The viewport is placed on the plane of perfect focus, ``focus_dist`` in front
of the camera. Ray origins are jittered across a disk-shaped lens of radius
``aperture / 2``, so only geometry near the focus plane is sharp. An aperture
of 0 reduces the model to a pinhole camera.

The basis is computed host-side with NumPy and stored in Taichi fields; ray
generation is a Taichi function called by the render kernels.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from pathtracer.camera.thin_lens import ThinLensCamera, setup_camera
    >>> camera = ThinLensCamera(
    ...     lookfrom=(13.0, 2.0, 3.0),
    ...     lookat=(0.0, 0.0, 0.0),
    ...     vup=(0.0, 1.0, 0.0),
    ...     vfov=20.0,
    ...     aspect_ratio=3.0 / 2.0,
    ...     aperture=0.1,
    ...     focus_dist=10.0,
    ... )
    >>> setup_camera(camera)
"""

import logging
import math
from dataclasses import dataclass

import numpy as np
import taichi as ti

from pathtracer.core.ray import Ray, make_ray
from pathtracer.core.sampling import random_f64, random_in_unit_disk
from pathtracer.core.vector import to_tuple, vec3

logger = logging.getLogger(__name__)

# Vectors shorter than this are treated as degenerate during setup
_DEGENERATE_EPSILON = 1e-12


@dataclass
class ThinLensCamera:
    """Configuration for a thin-lens (depth of field) camera.

    Attributes:
        lookfrom: Camera position in world space (x, y, z).
        lookat: Point the camera is looking at in world space (x, y, z).
        vup: Up direction vector for camera orientation (typically (0, 1, 0)).
        vfov: Vertical field of view in degrees.
        aspect_ratio: Width divided by height of the output image.
        aperture: Lens diameter. 0 gives a pinhole camera.
        focus_dist: Distance from the lens to the plane in perfect focus.
    """

    lookfrom: tuple[float, float, float]
    lookat: tuple[float, float, float]
    vup: tuple[float, float, float]
    vfov: float
    aspect_ratio: float
    aperture: float = 0.0
    focus_dist: float = 1.0


# =============================================================================
# Taichi Fields for Camera State
# =============================================================================

_camera_origin = ti.Vector.field(3, dtype=ti.f64, shape=())

# Orthonormal basis vectors
_camera_u = ti.Vector.field(3, dtype=ti.f64, shape=())  # Right
_camera_v = ti.Vector.field(3, dtype=ti.f64, shape=())  # Up
_camera_w = ti.Vector.field(3, dtype=ti.f64, shape=())  # Backward

# Viewport on the focus plane
_viewport_horizontal = ti.Vector.field(3, dtype=ti.f64, shape=())
_viewport_vertical = ti.Vector.field(3, dtype=ti.f64, shape=())
_lower_left_corner = ti.Vector.field(3, dtype=ti.f64, shape=())

_lens_radius = ti.field(dtype=ti.f64, shape=())


def _validate(camera: ThinLensCamera) -> None:
    if not 0.0 < camera.vfov < 180.0:
        raise ValueError(f"vfov must be in (0, 180) degrees, got {camera.vfov}")
    if camera.aspect_ratio <= 0.0:
        raise ValueError(f"aspect_ratio must be positive, got {camera.aspect_ratio}")
    if camera.aperture < 0.0:
        raise ValueError(f"aperture must be non-negative, got {camera.aperture}")
    if camera.focus_dist <= 0.0:
        raise ValueError(f"focus_dist must be positive, got {camera.focus_dist}")


def setup_camera(camera: ThinLensCamera) -> None:
    """Initialize camera state from configuration.

    Must be called before rendering, from Python (not inside a kernel).

    Args:
        camera: Camera configuration.

    Raises:
        ValueError: If lookfrom equals lookat, vup is parallel to the view
            direction, or any scalar parameter is out of range.
    """
    _validate(camera)

    theta = math.radians(camera.vfov)
    h = math.tan(theta / 2.0)
    viewport_height = 2.0 * h
    viewport_width = camera.aspect_ratio * viewport_height

    lookfrom = np.array(camera.lookfrom, dtype=np.float64)
    lookat = np.array(camera.lookat, dtype=np.float64)
    vup = np.array(camera.vup, dtype=np.float64)

    w = lookfrom - lookat
    w_norm = np.linalg.norm(w)
    if w_norm < _DEGENERATE_EPSILON:
        raise ValueError("lookfrom and lookat must be different points")
    w = w / w_norm

    u = np.cross(vup, w)
    u_norm = np.linalg.norm(u)
    if u_norm < _DEGENERATE_EPSILON:
        raise ValueError("vup must not be parallel to the view direction")
    u = u / u_norm

    v = np.cross(w, u)

    horizontal = camera.focus_dist * viewport_width * u
    vertical = camera.focus_dist * viewport_height * v
    lower_left = lookfrom - horizontal / 2.0 - vertical / 2.0 - camera.focus_dist * w

    _camera_origin[None] = lookfrom.tolist()
    _camera_u[None] = u.tolist()
    _camera_v[None] = v.tolist()
    _camera_w[None] = w.tolist()
    _viewport_horizontal[None] = horizontal.tolist()
    _viewport_vertical[None] = vertical.tolist()
    _lower_left_corner[None] = lower_left.tolist()
    _lens_radius[None] = camera.aperture / 2.0

    logger.debug(
        "Camera at %s looking at %s (vfov=%.1f, aperture=%.3f, focus=%.2f)",
        camera.lookfrom,
        camera.lookat,
        camera.vfov,
        camera.aperture,
        camera.focus_dist,
    )


# =============================================================================
# Ray Generation
# =============================================================================


@ti.func
def get_ray(s: ti.f64, t: ti.f64, lane: ti.i32) -> Ray:
    """Generate a ray through normalized image coordinates (s, t).

    s = 0 is the left edge and t = 0 the bottom edge of the image. The ray
    starts at a random point on the lens and passes through the point (s, t)
    of the focus-plane viewport. The direction is not normalized.

    Args:
        s: Horizontal coordinate in [0, 1] (left to right).
        t: Vertical coordinate in [0, 1] (bottom to top).
        lane: Random stream used for the lens sample.
    """
    rd = _lens_radius[None] * random_in_unit_disk(lane)
    offset = _camera_u[None] * rd.x + _camera_v[None] * rd.y

    origin = _camera_origin[None] + offset
    direction = (
        _lower_left_corner[None]
        + s * _viewport_horizontal[None]
        + t * _viewport_vertical[None]
        - origin
    )
    return make_ray(origin, direction)


@ti.func
def get_ray_jittered(
    pixel_i: ti.i32, pixel_j: ti.i32, width: ti.i32, height: ti.i32, lane: ti.i32
) -> Ray:
    """Generate a ray with a random sub-pixel offset for anti-aliasing.

    Pixel (0, 0) is the bottom-left pixel. Coordinates are normalized by
    (width - 1) and (height - 1) so the last pixel column and row land on the
    viewport's far edges.
    """
    s = (ti.cast(pixel_i, ti.f64) + random_f64(lane)) / ti.cast(width - 1, ti.f64)
    t = (ti.cast(pixel_j, ti.f64) + random_f64(lane)) / ti.cast(height - 1, ti.f64)
    return get_ray(s, t, lane)


_sampled_ray = Ray.field(shape=())


@ti.kernel
def _sample_ray_kernel(s: ti.f64, t: ti.f64, lane: ti.i32):
    # Single iteration keeps the lens rejection loop inside one task
    for _ in range(1):
        _sampled_ray[None] = get_ray(s, t, lane)


def sample_ray(s: float, t: float, lane: int = 0) -> tuple[tuple[float, ...], tuple[float, ...]]:
    """Generate one camera ray from Python.

    Returns:
        Tuple of (origin, direction) as float tuples.
    """
    _sample_ray_kernel(s, t, lane)
    origin = to_tuple(_sampled_ray.origin[None])
    direction = to_tuple(_sampled_ray.direction[None])
    return origin, direction


def get_camera_info() -> dict[str, object]:
    """Get current camera state for debugging.

    Returns:
        Dictionary with origin, u, v, w, horizontal, vertical, lower_left and
        lens_radius.
    """
    return {
        "origin": to_tuple(_camera_origin[None]),
        "u": to_tuple(_camera_u[None]),
        "v": to_tuple(_camera_v[None]),
        "w": to_tuple(_camera_w[None]),
        "horizontal": to_tuple(_viewport_horizontal[None]),
        "vertical": to_tuple(_viewport_vertical[None]),
        "lower_left": to_tuple(_lower_left_corner[None]),
        "lens_radius": float(_lens_radius[None]),
    }
