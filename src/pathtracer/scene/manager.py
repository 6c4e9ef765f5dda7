"""Scene building: one material-id space over the per-type registries.

Each material type keeps its own registry (``pathtracer.materials``), so a
material is really a (type, slot) pair. The scene hands out a single integer
id per material instead and records the pair in two Taichi fields, which the
integrator reads to pick the scattering function for a hit. Spheres carry the
id only; any number of spheres may share a material.

Scenes can be described as plain data::

    {
        "materials": [{"type": "metal", "albedo": [0.8, 0.6, 0.2], "fuzz": 0.0}],
        "spheres": [{"center": [1, 0, -1], "radius": 0.5, "material_id": 0}],
    }

which ``SceneManager.to_dict`` produces and ``from_dict`` / ``load_json``
accept. Sphere ``material_id`` values index the materials list.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from pathtracer.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> glass = scene.add_dielectric_material(ir=1.5)
    >>> scene.add_sphere(center=(0, 0, -1), radius=0.5, material_id=glass)
    0
"""

import json
import logging
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Any

import taichi as ti

from pathtracer.materials.dielectric import add_dielectric_material, clear_dielectric_materials
from pathtracer.materials.lambertian import add_lambertian_material, clear_lambertian_materials
from pathtracer.materials.metal import add_metal_material, clear_metal_materials
from pathtracer.scene.intersection import MAX_SPHERES, add_sphere, clear_scene, get_sphere_count

logger = logging.getLogger(__name__)


class MaterialType(IntEnum):
    """Surface models a sphere can have. Values are stored in kernel fields."""

    LAMBERTIAN = 0
    METAL = 1
    DIELECTRIC = 2


# Parameters filled in when a scene description leaves them out
MATERIAL_DEFAULTS: dict[MaterialType, dict[str, Any]] = {
    MaterialType.LAMBERTIAN: {"albedo": (0.5, 0.5, 0.5)},
    MaterialType.METAL: {"albedo": (0.8, 0.8, 0.8), "fuzz": 0.0},
    MaterialType.DIELECTRIC: {"ir": 1.5},
}

# One slot per sphere in the largest scenes
MAX_MATERIALS = 3072

_material_kind = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
_material_slot = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
_material_count = ti.field(dtype=ti.i32, shape=())


def _clear_material_tracking() -> None:
    _material_count[None] = 0


@ti.func
def get_material_type(material_id: ti.i32) -> ti.i32:
    """MaterialType value of a material, or -1 for an unknown id."""
    kind = -1
    if 0 <= material_id < _material_count[None]:
        kind = _material_kind[material_id]
    return kind


@ti.func
def get_material_slot(material_id: ti.i32) -> ti.i32:
    """Index of a material inside its type's registry, or -1 for an unknown id."""
    slot = -1
    if 0 <= material_id < _material_count[None]:
        slot = _material_slot[material_id]
    return slot


def _as_triple(values, name: str) -> tuple[float, float, float]:
    if len(values) != 3:
        raise ValueError(f"{name} must have 3 components, got {len(values)}")
    return (float(values[0]), float(values[1]), float(values[2]))


def _plain(value: Any) -> Any:
    return list(value) if isinstance(value, tuple) else value


@dataclass
class MaterialInfo:
    """Host-side record of a registered material.

    Attributes:
        material_id: Id shared by every material type.
        kind: The material's type.
        slot: Index inside the type's own registry.
        params: Constructor parameters, used to describe the scene.
    """

    material_id: int
    kind: MaterialType
    slot: int
    params: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        entry: dict[str, Any] = {"type": self.kind.name.lower()}
        entry.update((key, _plain(value)) for key, value in self.params.items())
        return entry


@dataclass
class SphereInfo:
    sphere_index: int
    center: tuple[float, float, float]
    radius: float
    material_id: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "center": list(self.center),
            "radius": self.radius,
            "material_id": self.material_id,
        }


@dataclass
class SceneConfig:
    """Plain-data scene description (lists of JSON-able dicts)."""

    materials: list[dict[str, Any]] = field(default_factory=list)
    spheres: list[dict[str, Any]] = field(default_factory=list)


class SceneManager:
    """Builds the one live scene held in the global Taichi registries.

    Constructing a manager, or calling ``clear``, empties the sphere storage
    and every material registry, so there is only ever one scene per process.

    Attributes:
        materials: MaterialInfo for every material, indexed by material id.
        spheres: SphereInfo for every sphere, in insertion order.

    Example:
        >>> scene = SceneManager()
        >>> ground = scene.add_lambertian_material(albedo=(0.8, 0.8, 0.0))
        >>> scene.add_sphere((0, -100.5, -1), 100, ground)
        >>> scene.add_metal_sphere((1, 0, -1), 0.5, albedo=(0.8, 0.6, 0.2), fuzz=0.3)
    """

    def __init__(self) -> None:
        self.materials: list[MaterialInfo] = []
        self.spheres: list[SphereInfo] = []
        self.clear()

    def clear(self) -> None:
        """Remove every sphere and material."""
        clear_scene()
        clear_lambertian_materials()
        clear_metal_materials()
        clear_dielectric_materials()
        _clear_material_tracking()
        self.materials.clear()
        self.spheres.clear()

    # -------------------------------------------------------------------------
    # Materials
    # -------------------------------------------------------------------------

    def _track(self, kind: MaterialType, slot: int, params: dict[str, Any]) -> int:
        material_id = int(_material_count[None])
        if material_id >= MAX_MATERIALS:
            raise RuntimeError(f"Scene already holds the maximum of {MAX_MATERIALS} materials")

        _material_kind[material_id] = int(kind)
        _material_slot[material_id] = slot
        _material_count[None] = material_id + 1

        self.materials.append(MaterialInfo(material_id, kind, slot, params))
        return material_id

    def add_material(self, kind: MaterialType, **params: Any) -> int:
        """Register a material of any type; missing parameters take defaults.

        Raises:
            RuntimeError: If a registry or the id space is full.
            ValueError: If a parameter is out of range.
        """
        merged = {**MATERIAL_DEFAULTS[kind], **params}
        if kind == MaterialType.LAMBERTIAN:
            return self.add_lambertian_material(merged["albedo"])
        if kind == MaterialType.METAL:
            return self.add_metal_material(merged["albedo"], merged["fuzz"])
        return self.add_dielectric_material(merged["ir"])

    def add_lambertian_material(self, albedo: tuple[float, float, float]) -> int:
        """Register a diffuse material and return its id.

        Raises:
            ValueError: If any albedo component is outside [0, 1].
        """
        albedo = _as_triple(albedo, "albedo")
        slot = add_lambertian_material(albedo)
        return self._track(MaterialType.LAMBERTIAN, slot, {"albedo": albedo})

    def add_metal_material(self, albedo: tuple[float, float, float], fuzz: float = 0.0) -> int:
        """Register a metal and return its id. ``fuzz = 0`` is a perfect mirror.

        Raises:
            ValueError: If the albedo or fuzz is outside [0, 1].
        """
        albedo = _as_triple(albedo, "albedo")
        fuzz = float(fuzz)
        slot = add_metal_material(albedo, fuzz)
        return self._track(MaterialType.METAL, slot, {"albedo": albedo, "fuzz": fuzz})

    def add_dielectric_material(self, ir: float = 1.5) -> int:
        """Register a clear dielectric (1.33 water, 1.5 glass, 2.4 diamond).

        Raises:
            ValueError: If the index of refraction is not positive.
        """
        ir = float(ir)
        slot = add_dielectric_material(ir)
        return self._track(MaterialType.DIELECTRIC, slot, {"ir": ir})

    def get_material_count(self) -> int:
        return int(_material_count[None])

    def get_material_info(self, material_id: int) -> MaterialInfo | None:
        """Record of a material, or None for an unknown id."""
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    def get_material_kind(self, material_id: int) -> MaterialType | None:
        """Host-side counterpart of the ``get_material_type`` kernel lookup."""
        info = self.get_material_info(material_id)
        return None if info is None else info.kind

    # -------------------------------------------------------------------------
    # Spheres
    # -------------------------------------------------------------------------

    def add_sphere(self, center: tuple[float, float, float], radius: float, material_id: int) -> int:
        """Add a sphere using an already registered material.

        Returns:
            The sphere's index in the scene.

        Raises:
            RuntimeError: If the sphere storage is full.
            ValueError: If the material id is unknown or the radius is not
                positive.
        """
        if not 0 <= material_id < self.get_material_count():
            raise ValueError(f"Invalid material_id: {material_id}")
        if radius <= 0.0:
            raise ValueError(f"Sphere radius must be positive, got {radius}")

        center = _as_triple(center, "center")
        radius = float(radius)
        sphere_index = add_sphere(center, radius, material_id)
        self.spheres.append(SphereInfo(sphere_index, center, radius, material_id))
        return sphere_index

    def add_lambertian_sphere(self, center, radius: float, albedo) -> tuple[int, int]:
        """Add a sphere with its own diffuse material; returns (sphere, material) ids."""
        material_id = self.add_lambertian_material(albedo)
        return self.add_sphere(center, radius, material_id), material_id

    def add_metal_sphere(self, center, radius: float, albedo, fuzz: float = 0.0) -> tuple[int, int]:
        """Add a sphere with its own metal material; returns (sphere, material) ids."""
        material_id = self.add_metal_material(albedo, fuzz)
        return self.add_sphere(center, radius, material_id), material_id

    def add_dielectric_sphere(self, center, radius: float, ir: float = 1.5) -> tuple[int, int]:
        """Add a sphere with its own dielectric material; returns (sphere, material) ids."""
        material_id = self.add_dielectric_material(ir)
        return self.add_sphere(center, radius, material_id), material_id

    def get_sphere_count(self) -> int:
        return get_sphere_count()

    # -------------------------------------------------------------------------
    # Scene descriptions
    # -------------------------------------------------------------------------

    def to_config(self) -> SceneConfig:
        return SceneConfig(
            materials=[info.to_dict() for info in self.materials],
            spheres=[info.to_dict() for info in self.spheres],
        )

    def from_config(self, config: SceneConfig) -> None:
        """Replace the scene with the one described by ``config``.

        The scene is left unchanged when any entry is rejected.

        Raises:
            RuntimeError: If the description overflows a registry.
            ValueError: If a material type is unknown or any entry is invalid.
        """
        previous = self.to_config()
        try:
            self._load_config(config)
        except (ValueError, RuntimeError):
            self._load_config(previous)
            raise

        logger.debug(
            "Loaded scene with %d materials and %d spheres", len(self.materials), len(self.spheres)
        )

    def _load_config(self, config: SceneConfig) -> None:
        self.clear()

        for entry in config.materials:
            params = dict(entry)
            type_name = str(params.pop("type", "")).upper()
            try:
                kind = MaterialType[type_name]
            except KeyError:
                raise ValueError(f"Unknown material type: {type_name.lower()!r}") from None
            self.add_material(kind, **params)

        for entry in config.spheres:
            try:
                center, radius, material_id = entry["center"], entry["radius"], entry["material_id"]
            except KeyError as e:
                raise ValueError(f"Sphere entry is missing {e}") from None
            self.add_sphere(center, radius, material_id)

    def to_dict(self) -> dict[str, Any]:
        config = self.to_config()
        return {"materials": config.materials, "spheres": config.spheres}

    def from_dict(self, data: dict[str, Any]) -> None:
        self.from_config(
            SceneConfig(materials=data.get("materials", []), spheres=data.get("spheres", []))
        )

    def save_json(self, path: str | Path) -> None:
        path = Path(path)
        path.write_text(json.dumps(self.to_dict(), indent=2))
        logger.info("Saved scene description to %s", path)

    def load_json(self, path: str | Path) -> None:
        """Replace the scene with a JSON scene description.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the file is not a JSON object or describes an
                invalid scene.
        """
        path = Path(path)
        try:
            data = json.loads(path.read_text())
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid scene file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Invalid scene file {path}: expected a JSON object")
        self.from_dict(data)
        logger.info("Loaded scene description from %s", path)

    @staticmethod
    def get_max_spheres() -> int:
        return MAX_SPHERES

    @staticmethod
    def get_max_materials() -> int:
        return MAX_MATERIALS
