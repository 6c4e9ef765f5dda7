"""Recursive color integrator and the parallel render pass.

``ray_color`` estimates the light arriving along a ray. Each path is in one of
four states:

    Active(depth) -> SkyColor | Absorbed | DepthExhausted

An active path with depth left is intersected with the scene over
``[T_MIN, T_MAX]``. A miss returns the sky gradient weighted by the product of
every attenuation collected so far. A hit is scattered by the surface material;
absorption ends the path in black, otherwise the attenuation is multiplied in
and the path continues from the hit point with one less bounce. Running out of
depth also yields black, so absorption and depth exhaustion look the same in
the output.

The recursion is written as an explicit loop over the running attenuation
product, which gives the same result as the recursive form.

Rendering distributes scanlines over Taichi's CPU worker pool: the outermost
loop of the render kernel runs in parallel, one scanline per task. Scanline
``j`` draws its random numbers from RNG lane ``j``, and each pixel's color sum
is written only by its own scanline, so no locking is needed and the result
does not depend on thread scheduling. Every finished pixel bumps an atomic
counter; after the pass the host checks that exactly width x height pixels
were reported.

Example:
    >>> from pathtracer.config import RenderConfig, init_taichi
    >>> init_taichi(RenderConfig(num_workers=4))
    >>> from pathtracer.core.integrator import render_image, setup_render_target, get_framebuffer
    >>> from pathtracer.scene.random_spheres import create_three_spheres_scene
    >>> from pathtracer.scene.random_spheres import create_three_spheres_camera
    >>> from pathtracer.camera.thin_lens import setup_camera
    >>> scene = create_three_spheres_scene()
    >>> setup_camera(create_three_spheres_camera(aspect_ratio=2.0))
    >>> setup_render_target(200, 100)
    >>> render_image(samples_per_pixel=10, max_depth=50)
    >>> framebuffer = get_framebuffer()
"""

import logging
import math

import numpy as np
import numpy.typing as npt
import taichi as ti

from pathtracer.camera.thin_lens import get_ray_jittered
from pathtracer.core.ray import Ray, make_ray
from pathtracer.core.sampling import MAX_RNG_LANES
from pathtracer.core.vector import as_vec3, unit_vector, vec3
from pathtracer.image.export import quantize_colors
from pathtracer.materials.dielectric import get_dielectric_ir, scatter_dielectric
from pathtracer.materials.lambertian import get_lambertian_albedo, scatter_lambertian
from pathtracer.materials.metal import get_metal_albedo, get_metal_fuzz, scatter_metal
from pathtracer.scene.intersection import intersect_scene
from pathtracer.scene.manager import (
    MaterialType,
    get_material_type,
    get_material_slot,
)

logger = logging.getLogger(__name__)

# =============================================================================
# Rendering Constants
# =============================================================================

# Default maximum number of bounces per path
MAX_DEPTH = 50

# Intersection interval; T_MIN keeps scattered rays off their own surface
T_MIN = 0.001
T_MAX = 1e30

# Sky gradient endpoints (horizon and zenith)
SKY_HORIZON_COLOR = (1.0, 1.0, 1.0)
SKY_ZENITH_COLOR = (0.5, 0.7, 1.0)


class IncompleteRenderError(RuntimeError):
    """The render pass did not report a result for every pixel."""


# =============================================================================
# Render Target (Image Buffer)
# =============================================================================

# Preallocated to the maximum size so kernels never recompile on resize
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

# The smallest image: pixel coordinates are normalized by (size - 1)
MIN_IMAGE_SIZE = 2

assert MAX_IMAGE_HEIGHT <= MAX_RNG_LANES

_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Per-pixel color sums, indexed (i, j) with j = 0 at the bottom row
_color_sums = ti.Vector.field(3, dtype=ti.f64, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))
_sample_count = ti.field(dtype=ti.i32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

# Number of pixels finished during the current pass
_pixels_completed = ti.field(dtype=ti.i32, shape=())

_render_target_initialized = ti.field(dtype=ti.i32, shape=())

# Scratch result for single-ray queries from Python
_traced_color = ti.Vector.field(3, dtype=ti.f64, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Set the active image size and clear the buffers.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.

    Raises:
        ValueError: If either dimension is below MIN_IMAGE_SIZE or above the
            preallocated maximum.
    """
    if width < MIN_IMAGE_SIZE or height < MIN_IMAGE_SIZE:
        raise ValueError(
            f"Image dimensions ({width}x{height}) must be at least "
            f"{MIN_IMAGE_SIZE}x{MIN_IMAGE_SIZE}"
        )
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1

    clear_render_target()


def clear_render_target() -> None:
    """Clear the color sums and sample counts."""
    _color_sums.fill(0.0)
    _sample_count.fill(0)
    _pixels_completed[None] = 0


def get_image_dimensions() -> tuple[int, int]:
    """Get the current render target dimensions as (width, height)."""
    return int(_image_width[None]), int(_image_height[None])


def _check_render_target_initialized() -> None:
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


def _check_lane(lane: int) -> None:
    if not 0 <= lane < MAX_RNG_LANES:
        raise ValueError(f"lane must be in [0, {MAX_RNG_LANES}), got {lane}")


# =============================================================================
# Material Dispatch
# =============================================================================


@ti.func
def _scatter_material(
    material_id: ti.i32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
    lane: ti.i32,
):
    """Dispatch to the scattering function of the hit material.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter). Unknown
        material IDs absorb the ray.
    """
    mat_type = get_material_type(material_id)
    slot = get_material_slot(material_id)

    scattered_direction = vec3(0.0, 0.0, 0.0)
    attenuation = vec3(0.0, 0.0, 0.0)
    did_scatter = 0

    if mat_type == int(MaterialType.LAMBERTIAN):
        albedo = get_lambertian_albedo(slot)
        scattered_direction, attenuation, did_scatter = scatter_lambertian(albedo, normal, lane)

    elif mat_type == int(MaterialType.METAL):
        albedo = get_metal_albedo(slot)
        fuzz = get_metal_fuzz(slot)
        scattered_direction, attenuation, did_scatter = scatter_metal(
            albedo, fuzz, incident_direction, normal, lane
        )

    elif mat_type == int(MaterialType.DIELECTRIC):
        ir = get_dielectric_ir(slot)
        scattered_direction, attenuation, did_scatter = scatter_dielectric(
            ir, incident_direction, normal, front_face, lane
        )

    return scattered_direction, attenuation, did_scatter


# =============================================================================
# Path Tracing Core
# =============================================================================


@ti.func
def _sky_color(direction: vec3) -> vec3:
    """Vertical white-to-blue gradient seen by rays that escape the scene."""
    t = 0.5 * (unit_vector(direction).y + 1.0)
    horizon = vec3(SKY_HORIZON_COLOR[0], SKY_HORIZON_COLOR[1], SKY_HORIZON_COLOR[2])
    zenith = vec3(SKY_ZENITH_COLOR[0], SKY_ZENITH_COLOR[1], SKY_ZENITH_COLOR[2])
    return (1.0 - t) * horizon + t * zenith


@ti.func
def ray_color(ray: Ray, max_depth: ti.i32, lane: ti.i32) -> vec3:
    """Estimate the color seen along a ray.

    Args:
        ray: The ray to follow.
        max_depth: Number of bounces allowed; 0 or less returns black.
        lane: Random stream used for scattering.

    Returns:
        The radiance estimate (never clamped here).
    """
    color = vec3(0.0, 0.0, 0.0)
    attenuation_product = vec3(1.0, 1.0, 1.0)
    origin = ray.origin
    direction = ray.direction
    depth = max_depth

    active = 1
    while active == 1:
        if depth <= 0:
            # Depth exhausted
            active = 0
        else:
            rec = intersect_scene(make_ray(origin, direction), T_MIN, T_MAX)

            if rec.hit == 0:
                color = attenuation_product * _sky_color(direction)
                active = 0
            else:
                scattered_direction, attenuation, did_scatter = _scatter_material(
                    rec.material_id, direction, rec.normal, rec.front_face, lane
                )

                if did_scatter == 0:
                    # Absorbed
                    active = 0
                else:
                    attenuation_product *= attenuation
                    origin = rec.point
                    direction = scattered_direction
                    depth -= 1

    return color


@ti.func
def _sample_pixel(
    pixel_i: ti.i32,
    pixel_j: ti.i32,
    width: ti.i32,
    height: ti.i32,
    samples: ti.i32,
    max_depth: ti.i32,
    lane: ti.i32,
) -> vec3:
    """Sum ``samples`` jittered camera paths through one pixel."""
    pixel_sum = vec3(0.0, 0.0, 0.0)
    for _ in range(samples):
        ray = get_ray_jittered(pixel_i, pixel_j, width, height, lane)
        pixel_sum += ray_color(ray, max_depth, lane)
    return pixel_sum


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_pass(width: ti.i32, height: ti.i32, samples: ti.i32, max_depth: ti.i32):
    """Add ``samples`` paths to every pixel.

    Only the outermost loop is parallel: each scanline is one task on the
    worker pool and walks its pixels serially.
    """
    for j in range(height):
        for i in range(width):
            _color_sums[i, j] += _sample_pixel(i, j, width, height, samples, max_depth, j)
            _sample_count[i, j] += samples
            ti.atomic_add(_pixels_completed[None], 1)


@ti.kernel
def _render_single_pixel(
    pixel_i: ti.i32,
    pixel_j: ti.i32,
    width: ti.i32,
    height: ti.i32,
    samples: ti.i32,
    max_depth: ti.i32,
):
    for _ in range(1):
        _traced_color[None] = _sample_pixel(
            pixel_i, pixel_j, width, height, samples, max_depth, pixel_j
        )


@ti.kernel
def _trace_ray_kernel(origin: vec3, direction: vec3, max_depth: ti.i32, lane: ti.i32):
    for _ in range(1):
        _traced_color[None] = ray_color(make_ray(origin, direction), max_depth, lane)


# =============================================================================
# Public Rendering API
# =============================================================================


def sky_color(direction) -> tuple[float, float, float]:
    """Sky gradient for a direction, computed in Python.

    Args:
        direction: Any non-zero 3-element direction.

    Returns:
        (R, G, B) blend of white at y = -1 and light blue at y = +1.
    """
    d = np.asarray(direction, dtype=np.float64)
    t = 0.5 * (d[1] / math.sqrt(float(np.dot(d, d))) + 1.0)
    return tuple(
        (1.0 - t) * h + t * z for h, z in zip(SKY_HORIZON_COLOR, SKY_ZENITH_COLOR)
    )


def trace_ray(
    origin,
    direction,
    max_depth: int = MAX_DEPTH,
    lane: int = 0,
) -> tuple[float, float, float]:
    """Compute the color of a single ray against the current scene.

    Args:
        origin: Ray origin as a 3-element sequence.
        direction: Ray direction as a 3-element sequence (need not be unit).
        max_depth: Maximum number of bounces.
        lane: Random stream to draw from.

    Returns:
        Tuple of (R, G, B) radiance.
    """
    _check_lane(lane)
    _trace_ray_kernel(as_vec3(origin), as_vec3(direction), max_depth, lane)
    color = _traced_color[None]
    return (float(color[0]), float(color[1]), float(color[2]))


def render_pixel(
    pixel_i: int,
    pixel_j: int,
    samples: int = 1,
    max_depth: int = MAX_DEPTH,
) -> tuple[float, float, float]:
    """Sum ``samples`` paths through a single pixel.

    Uses the same random lane as the render pass (the pixel's scanline).
    Nothing is written to the render target.

    Args:
        pixel_i: Pixel x-coordinate (0 = left).
        pixel_j: Pixel y-coordinate (0 = bottom).
        samples: Number of paths to sum.
        max_depth: Maximum number of bounces per path.

    Returns:
        Tuple of (R, G, B) color sums.

    Raises:
        RuntimeError: If render target has not been set up.
        ValueError: If the pixel lies outside the image.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()
    if not (0 <= pixel_i < width and 0 <= pixel_j < height):
        raise ValueError(f"Pixel ({pixel_i}, {pixel_j}) is outside the {width}x{height} image")

    _render_single_pixel(pixel_i, pixel_j, width, height, samples, max_depth)
    color = _traced_color[None]
    return (float(color[0]), float(color[1]), float(color[2]))


def render_image(samples_per_pixel: int = 1, max_depth: int = MAX_DEPTH) -> None:
    """Run one parallel render pass over the whole image.

    Adds ``samples_per_pixel`` paths to every pixel's color sum. Can be called
    repeatedly to keep refining the image.

    Args:
        samples_per_pixel: Number of paths per pixel in this pass.
        max_depth: Maximum number of bounces per path.

    Raises:
        RuntimeError: If render target has not been set up.
        ValueError: If samples_per_pixel is not positive.
        IncompleteRenderError: If the pass did not complete every pixel.
    """
    _check_render_target_initialized()
    if samples_per_pixel <= 0:
        raise ValueError(f"samples_per_pixel must be positive, got {samples_per_pixel}")

    width, height = get_image_dimensions()

    _pixels_completed[None] = 0
    _render_pass(width, height, samples_per_pixel, max_depth)

    completed = int(_pixels_completed[None])
    expected = width * height
    if completed != expected:
        raise IncompleteRenderError(
            f"Render pass reported {completed} pixels, expected {expected}"
        )

    logger.debug(
        "Rendered pass of %d spp over %dx%d pixels", samples_per_pixel, width, height
    )


def get_total_samples() -> int:
    """Number of samples accumulated per pixel so far.

    Every pass adds the same count to every pixel, so pixel (0, 0) is
    representative.
    """
    _check_render_target_initialized()
    return int(_sample_count[0, 0])


def get_color_sums_numpy() -> npt.NDArray[np.float64]:
    """Get the accumulated color sums as a NumPy array.

    Returns:
        Array of shape (height, width, 3), rows ordered top to bottom.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()
    sums = _color_sums.to_numpy()[:width, :height, :]

    # (width, height, 3) with j = 0 at the bottom -> image row order
    sums = np.transpose(sums, (1, 0, 2))
    return np.ascontiguousarray(np.flipud(sums))


def get_framebuffer() -> npt.NDArray[np.uint8]:
    """Finalize the accumulated sums into an 8-bit RGB framebuffer.

    Returns:
        uint8 array of shape (height, width, 3), rows top to bottom. All zeros
        if nothing has been rendered yet.
    """
    sums = get_color_sums_numpy()
    samples = get_total_samples()
    if samples == 0:
        return np.zeros(sums.shape, dtype=np.uint8)
    return quantize_colors(sums, samples)
