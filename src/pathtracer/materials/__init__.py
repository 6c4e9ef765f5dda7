"""Materials module: scattering models.

Components:
    lambertian: Ideal diffuse reflection
    metal: Mirror reflection perturbed by fuzz
    dielectric: Glass-like refraction with Schlick reflectance

Every material follows the same scattering contract, implemented as a Taichi
function:

    scattered_direction, attenuation, did_scatter = scatter_*(..., lane)

``did_scatter == 0`` means the ray was absorbed. Material parameters live in
per-type registries (Taichi fields) that are written during scene setup and
only read while rendering, so all workers share them without locking.
"""

from .dielectric import (
    add_dielectric_material,
    cannot_refract,
    clear_dielectric_materials,
    get_dielectric_ir,
    get_dielectric_material_count,
    refraction_ratio_for,
    scatter_dielectric,
)
from .lambertian import (
    add_lambertian_material,
    clear_lambertian_materials,
    get_lambertian_albedo,
    get_lambertian_material_count,
    lambertian_direction,
    scatter_lambertian,
)
from .metal import (
    add_metal_material,
    clear_metal_materials,
    get_metal_albedo,
    get_metal_fuzz,
    get_metal_material_count,
    scatter_metal,
)

__all__ = [
    # Lambertian
    "scatter_lambertian",
    "lambertian_direction",
    "add_lambertian_material",
    "clear_lambertian_materials",
    "get_lambertian_albedo",
    "get_lambertian_material_count",
    # Metal
    "scatter_metal",
    "add_metal_material",
    "clear_metal_materials",
    "get_metal_albedo",
    "get_metal_fuzz",
    "get_metal_material_count",
    # Dielectric
    "scatter_dielectric",
    "cannot_refract",
    "refraction_ratio_for",
    "add_dielectric_material",
    "clear_dielectric_materials",
    "get_dielectric_ir",
    "get_dielectric_material_count",
]
