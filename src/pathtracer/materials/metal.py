"""Metal (specular reflective) material with optional fuzz.

A perfect metal reflects the unit incoming direction about the normal:

    R = I - 2(I . N)N

Fuzzy metals add ``fuzz * random_in_unit_sphere()`` to the mirror direction.
Large fuzz can push the result below the surface; such rays are absorbed.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from pathtracer.materials.metal import scatter_metal
    >>> # Inside a kernel:
    >>> # direction, attenuation, did_scatter = scatter_metal(
    >>> #     albedo, fuzz, incident_dir, normal, lane
    >>> # )
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.sampling import random_in_unit_sphere
from pathtracer.core.vector import reflect, unit_vector, vec3


@ti.func
def scatter_metal(
    albedo: vec3,
    fuzz: ti.f64,
    incident_direction: vec3,
    normal: vec3,
    lane: ti.i32,
):
    """Reflect a ray off a metal surface.

    Args:
        albedo: The reflective color.
        fuzz: Roughness in [0, 1].
        incident_direction: Incoming ray direction (any length).
        normal: Unit surface normal facing the incoming ray.
        lane: Random stream to draw from.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter) where
        did_scatter is 0 if the fuzzed direction points into the surface.
    """
    reflected = reflect(unit_vector(incident_direction), normal)
    scattered_direction = reflected + fuzz * random_in_unit_sphere(lane)

    did_scatter = 0
    if tm.dot(scattered_direction, normal) > 0.0:
        did_scatter = 1

    return scattered_direction, albedo, did_scatter


# =============================================================================
# Material Field Storage
# =============================================================================

MAX_METAL_MATERIALS = 1024

metal_albedos = ti.Vector.field(3, dtype=ti.f64, shape=MAX_METAL_MATERIALS)
metal_fuzz = ti.field(dtype=ti.f64, shape=MAX_METAL_MATERIALS)
num_metal_materials = ti.field(dtype=ti.i32, shape=())


def clear_metal_materials() -> None:
    """Forget all metal materials (field data is overwritten on reuse)."""
    num_metal_materials[None] = 0


def add_metal_material(albedo: tuple[float, float, float], fuzz: float = 0.0) -> int:
    """Add a metal material to the registry.

    Args:
        albedo: Reflective color as (R, G, B), each component in [0, 1].
        fuzz: Roughness in [0, 1].

    Returns:
        The index of the material within the metal registry.

    Raises:
        RuntimeError: If the registry is full.
        ValueError: If any albedo component or the fuzz is outside [0, 1].
    """
    for i, component in enumerate(albedo):
        if component < 0.0 or component > 1.0:
            raise ValueError(
                f"Albedo component {i} = {component} is outside [0, 1]. "
                "This would violate energy conservation."
            )

    if fuzz < 0.0 or fuzz > 1.0:
        raise ValueError(f"Fuzz {fuzz} is outside [0, 1]")

    idx = num_metal_materials[None]
    if idx >= MAX_METAL_MATERIALS:
        raise RuntimeError(f"Maximum number of metal materials ({MAX_METAL_MATERIALS}) exceeded")

    metal_albedos[idx] = vec3(albedo[0], albedo[1], albedo[2])
    metal_fuzz[idx] = fuzz
    num_metal_materials[None] = idx + 1
    return idx


def get_metal_material_count() -> int:
    """Get the number of metal materials in the registry."""
    return int(num_metal_materials[None])


@ti.func
def get_metal_albedo(material_idx: ti.i32) -> vec3:
    """Albedo of a registered metal material."""
    return metal_albedos[material_idx]


@ti.func
def get_metal_fuzz(material_idx: ti.i32) -> ti.f64:
    """Fuzz of a registered metal material."""
    return metal_fuzz[material_idx]
