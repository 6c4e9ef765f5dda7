"""Lambertian (ideal diffuse) material.

The scattered direction is the surface normal plus a random unit vector, which
distributes outgoing rays with a cos(theta) density over the hemisphere. When
the random vector almost exactly cancels the normal the sum is degenerate, and
the normal itself is used instead. Lambertian surfaces always scatter and
attenuate by their albedo.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from pathtracer.materials.lambertian import scatter_lambertian
    >>> # Inside a kernel:
    >>> # direction, attenuation, did_scatter = scatter_lambertian(albedo, normal, lane)
"""

import taichi as ti

from pathtracer.core.sampling import random_unit_vector
from pathtracer.core.vector import near_zero, vec3


@ti.func
def lambertian_direction(normal: vec3, random_vector: vec3) -> vec3:
    """Offset the normal by a unit vector, falling back to the normal if they cancel."""
    direction = normal + random_vector
    if near_zero(direction):
        direction = normal
    return direction


@ti.func
def scatter_lambertian(albedo: vec3, normal: vec3, lane: ti.i32):
    """Scatter a ray off a diffuse surface.

    Args:
        albedo: The diffuse reflectance color.
        normal: Unit surface normal facing the incoming ray.
        lane: Random stream to draw from.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter); the
        attenuation is the albedo and did_scatter is always 1.
    """
    scattered_direction = lambertian_direction(normal, random_unit_vector(lane))
    did_scatter = 1
    return scattered_direction, albedo, did_scatter


# =============================================================================
# Material Field Storage
# =============================================================================

MAX_LAMBERTIAN_MATERIALS = 1024

lambertian_albedos = ti.Vector.field(3, dtype=ti.f64, shape=MAX_LAMBERTIAN_MATERIALS)
num_lambertian_materials = ti.field(dtype=ti.i32, shape=())


def clear_lambertian_materials() -> None:
    """Forget all Lambertian materials (field data is overwritten on reuse)."""
    num_lambertian_materials[None] = 0


def add_lambertian_material(albedo: tuple[float, float, float]) -> int:
    """Add a Lambertian material to the registry.

    Args:
        albedo: Diffuse reflectance as (R, G, B), each component in [0, 1].

    Returns:
        The index of the material within the Lambertian registry.

    Raises:
        RuntimeError: If the registry is full.
        ValueError: If any albedo component is outside [0, 1].
    """
    for i, component in enumerate(albedo):
        if component < 0.0 or component > 1.0:
            raise ValueError(
                f"Albedo component {i} = {component} is outside [0, 1]. "
                "This would violate energy conservation."
            )

    idx = num_lambertian_materials[None]
    if idx >= MAX_LAMBERTIAN_MATERIALS:
        raise RuntimeError(
            f"Maximum number of Lambertian materials ({MAX_LAMBERTIAN_MATERIALS}) exceeded"
        )

    lambertian_albedos[idx] = vec3(albedo[0], albedo[1], albedo[2])
    num_lambertian_materials[None] = idx + 1
    return idx


def get_lambertian_material_count() -> int:
    """Get the number of Lambertian materials in the registry."""
    return int(num_lambertian_materials[None])


@ti.func
def get_lambertian_albedo(material_idx: ti.i32) -> vec3:
    """Albedo of a registered Lambertian material."""
    return lambertian_albedos[material_idx]
