"""Core rendering module.

Components:
    vector: Double-precision vector algebra (dot, cross, reflect, refract, ...)
    sampling: Per-lane random streams and Monte Carlo sampling helpers
    ray: Ray data structure
    integrator: Recursive color integrator and the parallel render pass
    progressive: Progressive renderer and the one-call ``render`` entry point

Vector math and rays are plain Taichi functions and declare no fields.
``sampling``, ``integrator`` and ``progressive`` declare Taichi fields, so they
are not imported here: import them directly once Taichi has been initialized.
"""

from .ray import Ray, make_ray, ray_at
from .vector import (
    NEAR_ZERO_EPSILON,
    as_vec3,
    cross,
    dot,
    length,
    length_squared,
    near_zero,
    reflect,
    refract,
    schlick_reflectance,
    to_tuple,
    unit_vector,
    vec3,
)

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "vec3",
    "as_vec3",
    "to_tuple",
    "dot",
    "cross",
    "length",
    "length_squared",
    "unit_vector",
    "near_zero",
    "reflect",
    "refract",
    "schlick_reflectance",
    "NEAR_ZERO_EPSILON",
]
