"""Scene module: sphere storage, material bookkeeping and demo scenes.

Components:
    intersection: Sphere storage in Taichi fields and the closest-hit scan
    manager: Unified scene manager coordinating spheres and materials
    random_spheres: The random-spheres cover scene and a small test scene

Scene data is laid out structure-of-arrays in Taichi fields. It is written
from Python while the scene is built and only read by the render kernels.
"""

from .intersection import (
    MAX_SPHERES,
    add_sphere,
    clear_scene,
    get_sphere_count,
    intersect_scene,
    query_scene,
)
from .manager import (
    MAX_MATERIALS,
    MaterialInfo,
    MaterialType,
    SceneConfig,
    SceneManager,
    SphereInfo,
    get_material_slot,
    get_material_type,
)
from .random_spheres import (
    create_default_camera,
    create_random_scene,
    create_three_spheres_camera,
    create_three_spheres_scene,
)

__all__ = [
    # Intersection module
    "add_sphere",
    "clear_scene",
    "get_sphere_count",
    "intersect_scene",
    "query_scene",
    "MAX_SPHERES",
    # Manager module
    "SceneManager",
    "MaterialType",
    "MaterialInfo",
    "SphereInfo",
    "SceneConfig",
    "MAX_MATERIALS",
    "get_material_type",
    "get_material_slot",
    # Demo scenes
    "create_random_scene",
    "create_default_camera",
    "create_three_spheres_scene",
    "create_three_spheres_camera",
]
