"""Demo scenes: the random-spheres cover scene and a small fixed scene.

The random scene is a large grey ground sphere covered by a 22 x 22 grid of
small jittered spheres with randomly chosen materials, plus three large
feature spheres (glass, diffuse brown and polished metal). Layout randomness
comes from a NumPy generator seeded by the caller, so the same seed always
builds the same scene.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from pathtracer.scene.random_spheres import create_random_scene, create_default_camera
    >>> scene = create_random_scene(seed=7)
    >>> camera = create_default_camera(aspect_ratio=3.0 / 2.0)
"""

import logging

import numpy as np

from pathtracer.camera.thin_lens import ThinLensCamera
from pathtracer.scene.manager import SceneManager

logger = logging.getLogger(__name__)

# Ground
GROUND_CENTER = (0.0, -1000.0, 0.0)
GROUND_RADIUS = 1000.0
GROUND_ALBEDO = (0.5, 0.5, 0.5)

# Grid of small spheres, a and b in [GRID_MIN, GRID_MAX)
GRID_MIN = -11
GRID_MAX = 11
SMALL_RADIUS = 0.2
JITTER = 0.9

# Small spheres closer than this to KEEP_CLEAR_POINT are skipped
KEEP_CLEAR_POINT = np.array([4.0, 0.2, 0.0])
KEEP_CLEAR_DISTANCE = 0.9

# Material choice thresholds on a uniform draw
DIFFUSE_PROBABILITY = 0.8
METAL_PROBABILITY = 0.95

GLASS_IR = 1.5


def create_random_scene(seed: int | None = None, scene: SceneManager | None = None) -> SceneManager:
    """Build the random-spheres scene.

    Args:
        seed: Seed for the layout generator. None draws fresh OS entropy.
        scene: Scene to fill. A new SceneManager is created when omitted; an
            existing one is cleared first.

    Returns:
        The populated SceneManager.
    """
    rng = np.random.default_rng(seed)
    if scene is None:
        scene = SceneManager()
    else:
        scene.clear()

    scene.add_lambertian_sphere(GROUND_CENTER, GROUND_RADIUS, GROUND_ALBEDO)

    for a in range(GRID_MIN, GRID_MAX):
        for b in range(GRID_MIN, GRID_MAX):
            choose_mat = rng.random()
            center = np.array(
                [a + JITTER * rng.random(), SMALL_RADIUS, b + JITTER * rng.random()]
            )

            if np.linalg.norm(center - KEEP_CLEAR_POINT) <= KEEP_CLEAR_DISTANCE:
                continue

            center_tuple = (float(center[0]), float(center[1]), float(center[2]))
            if choose_mat < DIFFUSE_PROBABILITY:
                albedo = rng.random(3) * rng.random(3)
                scene.add_lambertian_sphere(center_tuple, SMALL_RADIUS, tuple(albedo.tolist()))
            elif choose_mat < METAL_PROBABILITY:
                albedo = rng.uniform(0.5, 1.0, 3)
                fuzz = float(rng.uniform(0.0, 0.5))
                scene.add_metal_sphere(center_tuple, SMALL_RADIUS, tuple(albedo.tolist()), fuzz)
            else:
                scene.add_dielectric_sphere(center_tuple, SMALL_RADIUS, GLASS_IR)

    scene.add_dielectric_sphere((0.0, 1.0, 0.0), 1.0, GLASS_IR)
    scene.add_lambertian_sphere((-4.0, 1.0, 0.0), 1.0, (0.4, 0.2, 0.1))
    scene.add_metal_sphere((4.0, 1.0, 0.0), 1.0, (0.7, 0.6, 0.5), 0.0)

    logger.info(
        "Built random scene: %d spheres, %d materials (seed=%s)",
        scene.get_sphere_count(),
        scene.get_material_count(),
        seed,
    )
    return scene


def create_default_camera(aspect_ratio: float = 3.0 / 2.0) -> ThinLensCamera:
    """Camera framing the random scene from above and to the side."""
    return ThinLensCamera(
        lookfrom=(13.0, 2.0, 3.0),
        lookat=(0.0, 0.0, 0.0),
        vup=(0.0, 1.0, 0.0),
        vfov=20.0,
        aspect_ratio=aspect_ratio,
        aperture=0.1,
        focus_dist=10.0,
    )


def create_three_spheres_scene(scene: SceneManager | None = None) -> SceneManager:
    """Ground plus a diffuse, a glass and a metal sphere in a row.

    Small enough to render in a fraction of a second, for tests and quick
    previews. Pair it with ``create_three_spheres_camera``.
    """
    if scene is None:
        scene = SceneManager()
    else:
        scene.clear()

    scene.add_lambertian_sphere((0.0, -100.5, -1.0), 100.0, (0.8, 0.8, 0.0))
    scene.add_lambertian_sphere((0.0, 0.0, -1.0), 0.5, (0.1, 0.2, 0.5))
    scene.add_dielectric_sphere((-1.0, 0.0, -1.0), 0.5, GLASS_IR)
    scene.add_metal_sphere((1.0, 0.0, -1.0), 0.5, (0.8, 0.6, 0.2), 0.0)
    return scene


def create_three_spheres_camera(aspect_ratio: float = 16.0 / 9.0) -> ThinLensCamera:
    """Pinhole camera looking down -z at the three-spheres scene."""
    return ThinLensCamera(
        lookfrom=(0.0, 0.0, 0.0),
        lookat=(0.0, 0.0, -1.0),
        vup=(0.0, 1.0, 0.0),
        vfov=90.0,
        aspect_ratio=aspect_ratio,
        aperture=0.0,
        focus_dist=1.0,
    )
