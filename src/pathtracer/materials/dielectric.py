"""Dielectric (glass/water) material.

Key physics:
    - Snell's law for refraction: n1 * sin(theta1) = n2 * sin(theta2)
    - Total internal reflection when refraction_ratio * sin(theta) > 1
    - Schlick's approximation to choose between reflection and refraction

Dielectrics never absorb: the attenuation is always white and the ray always
continues, either reflected or refracted.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from pathtracer.materials.dielectric import scatter_dielectric
    >>> # Inside a kernel:
    >>> # direction, attenuation, did_scatter = scatter_dielectric(
    >>> #     ir, incident_dir, normal, front_face, lane
    >>> # )
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.sampling import random_f64
from pathtracer.core.vector import reflect, refract, schlick_reflectance, unit_vector, vec3


@ti.func
def refraction_ratio_for(ir: ti.f64, front_face: ti.i32) -> ti.f64:
    """Ratio of indices across the surface: 1/ir entering, ir leaving."""
    ratio = ir
    if front_face == 1:
        ratio = 1.0 / ir
    return ratio


@ti.func
def cannot_refract(ir: ti.f64, incident_direction: vec3, normal: vec3, front_face: ti.i32) -> ti.i32:
    """Return 1 if the ray is totally internally reflected."""
    refraction_ratio = refraction_ratio_for(ir, front_face)
    unit_direction = unit_vector(incident_direction)
    cos_theta = tm.min(tm.dot(-unit_direction, normal), 1.0)
    sin_theta = ti.sqrt(1.0 - cos_theta * cos_theta)
    return refraction_ratio * sin_theta > 1.0


@ti.func
def scatter_dielectric(
    ir: ti.f64,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
    lane: ti.i32,
):
    """Reflect or refract a ray at a dielectric boundary.

    Args:
        ir: Index of refraction of the material.
        incident_direction: Incoming ray direction (any length).
        normal: Unit surface normal facing the incoming ray.
        front_face: 1 if the ray arrives from outside the material.
        lane: Random stream to draw from.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter); the
        attenuation is white and did_scatter is always 1.
    """
    attenuation = vec3(1.0, 1.0, 1.0)
    refraction_ratio = refraction_ratio_for(ir, front_face)

    unit_direction = unit_vector(incident_direction)
    cos_theta = tm.min(tm.dot(-unit_direction, normal), 1.0)

    scattered_direction = vec3(0.0, 0.0, 0.0)
    if cannot_refract(ir, incident_direction, normal, front_face) or schlick_reflectance(
        cos_theta, ir
    ) > random_f64(lane):
        scattered_direction = reflect(unit_direction, normal)
    else:
        scattered_direction = refract(unit_direction, normal, refraction_ratio)

    did_scatter = 1
    return scattered_direction, attenuation, did_scatter


# =============================================================================
# Material Field Storage
# =============================================================================

MAX_DIELECTRIC_MATERIALS = 1024

dielectric_irs = ti.field(dtype=ti.f64, shape=MAX_DIELECTRIC_MATERIALS)
num_dielectric_materials = ti.field(dtype=ti.i32, shape=())


def clear_dielectric_materials() -> None:
    """Forget all dielectric materials (field data is overwritten on reuse)."""
    num_dielectric_materials[None] = 0


def add_dielectric_material(ir: float = 1.5) -> int:
    """Add a dielectric material to the registry.

    Args:
        ir: Index of refraction, must be positive.

    Returns:
        The index of the material within the dielectric registry.

    Raises:
        RuntimeError: If the registry is full.
        ValueError: If the index of refraction is not positive.
    """
    if ir <= 0.0:
        raise ValueError(f"Index of refraction must be positive, got {ir}")

    idx = num_dielectric_materials[None]
    if idx >= MAX_DIELECTRIC_MATERIALS:
        raise RuntimeError(
            f"Maximum number of dielectric materials ({MAX_DIELECTRIC_MATERIALS}) exceeded"
        )

    dielectric_irs[idx] = ir
    num_dielectric_materials[None] = idx + 1
    return idx


def get_dielectric_material_count() -> int:
    """Get the number of dielectric materials in the registry."""
    return int(num_dielectric_materials[None])


@ti.func
def get_dielectric_ir(material_idx: ti.i32) -> ti.f64:
    """Index of refraction of a registered dielectric material."""
    return dielectric_irs[material_idx]
