"""Scene-level ray intersection.

Spheres are stored in Taichi fields (structure-of-arrays). The scene is
append-only while it is being built and read-only while rendering, when every
worker thread reads the same fields.

``intersect_scene`` is a brute-force linear scan: each sphere is tested in turn
and the search interval shrinks to the closest hit found so far. Its cost is
proportional to the number of spheres for every ray.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from pathtracer.scene.intersection import add_sphere, clear_scene, query_scene
    >>> clear_scene()
    >>> add_sphere((0.0, 0.0, -5.0), 1.0, material_id=0)
    >>> query_scene((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))["t"]
    4.0
"""

from typing import Any

import taichi as ti

from pathtracer.core.ray import Ray
from pathtracer.core.vector import as_vec3, to_tuple, vec3
from pathtracer.geometry.sphere import HitRecord, Sphere, hit_sphere, make_miss_record

# Maximum number of spheres supported in the scene
MAX_SPHERES = 4096

# Default search interval used by host-side queries
DEFAULT_T_MIN = 0.001
DEFAULT_T_MAX = 1e30

sphere_centers = ti.Vector.field(3, dtype=ti.f64, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f64, shape=MAX_SPHERES)
sphere_material_ids = ti.field(dtype=ti.i32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Remove all spheres from the scene.

    Only the count is reset; stale field data is overwritten by new spheres.
    """
    num_spheres[None] = 0


def add_sphere(center, radius: float, material_id: int = 0) -> int:
    """Append a sphere to the scene.

    Args:
        center: The center point as any 3-element sequence or vec3.
        radius: The radius of the sphere.
        material_id: The material ID to associate with this sphere.

    Returns:
        The index of the added sphere.

    Raises:
        RuntimeError: If the maximum number of spheres is exceeded.
    """
    idx = num_spheres[None]
    if idx >= MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")
    sphere_centers[idx] = as_vec3(center)
    sphere_radii[idx] = radius
    sphere_material_ids[idx] = material_id
    num_spheres[None] = idx + 1
    return idx


def get_sphere_count() -> int:
    """Get the number of spheres in the scene."""
    return int(num_spheres[None])


@ti.func
def get_sphere(index: ti.i32) -> Sphere:
    """Load a stored sphere."""
    return Sphere(
        center=sphere_centers[index],
        radius=sphere_radii[index],
        material_id=sphere_material_ids[index],
    )


@ti.func
def intersect_scene(ray: Ray, t_min: ti.f64, t_max: ti.f64) -> HitRecord:
    """Find the closest intersection of a ray with every sphere in the scene.

    Args:
        ray: The ray to test.
        t_min: Smallest accepted ray parameter.
        t_max: Largest accepted ray parameter.

    Returns:
        The HitRecord of the closest hit, or a miss record (hit == 0,
        material_id == -1) if nothing was hit.
    """
    closest_so_far = t_max
    result = make_miss_record()

    for i in range(num_spheres[None]):
        rec = hit_sphere(ray, get_sphere(i), t_min, closest_so_far)
        if rec.hit == 1:
            closest_so_far = rec.t
            result = rec

    return result


_query_result = HitRecord.field(shape=())


@ti.kernel
def _query_scene_kernel(origin: vec3, direction: vec3, t_min: ti.f64, t_max: ti.f64):
    # Wrapping loop keeps the sphere scan serial inside a single task
    for _ in range(1):
        _query_result[None] = intersect_scene(Ray(origin=origin, direction=direction), t_min, t_max)


def query_scene(
    origin,
    direction,
    t_min: float = DEFAULT_T_MIN,
    t_max: float = DEFAULT_T_MAX,
) -> dict[str, Any]:
    """Intersect a single ray with the scene from Python.

    Useful for debugging scenes and for tests; rendering never goes through
    this function.

    Args:
        origin: Ray origin as a 3-element sequence.
        direction: Ray direction as a 3-element sequence.
        t_min: Smallest accepted ray parameter.
        t_max: Largest accepted ray parameter.

    Returns:
        Dictionary with hit (bool), t, point, normal, front_face (bool) and
        material_id.
    """
    _query_scene_kernel(as_vec3(origin), as_vec3(direction), t_min, t_max)
    return {
        "hit": bool(_query_result.hit[None]),
        "t": float(_query_result.t[None]),
        "point": to_tuple(_query_result.point[None]),
        "normal": to_tuple(_query_result.normal[None]),
        "front_face": bool(_query_result.front_face[None]),
        "material_id": int(_query_result.material_id[None]),
    }
