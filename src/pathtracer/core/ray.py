"""Ray data structure.

A ray is an origin point plus a direction, parameterized by a scalar ``t``.
The direction is not required to be normalized; routines that need a unit
direction (reflection, refraction, the sky gradient) normalize it themselves.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from pathtracer.core.ray import Ray, ray_at, vec3
    >>> @ti.kernel
    ... def point() -> vec3:
    ...     ray = Ray(origin=vec3(0.0, 0.0, 0.0), direction=vec3(0.0, 0.0, -1.0))
    ...     return ray_at(ray, 5.0)  # (0, 0, -5)
"""

import taichi as ti

from pathtracer.core.vector import vec3


@ti.dataclass
class Ray:
    """A ray with an origin point and direction vector.

    Attributes:
        origin: The starting point of the ray.
        direction: The direction of travel (any non-zero length).
    """

    origin: vec3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: ti.f64) -> vec3:
    """Point at parameter t along the ray: origin + t * direction."""
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray inside a Taichi function or kernel."""
    return Ray(origin=origin, direction=direction)
