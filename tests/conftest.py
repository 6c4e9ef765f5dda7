"""Pytest configuration for path tracer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest

# Worker pool size used by the whole test session
TEST_NUM_WORKERS = 4


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Taichi can only be initialized once per process; re-initializing would
    invalidate every field the renderer modules have declared.
    """
    from pathtracer.config import RenderConfig, init_taichi

    init_taichi(RenderConfig(num_workers=TEST_NUM_WORKERS, seed=42))
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear scene, material and render target state around each test."""
    # Imported here so Taichi is initialized before fields are declared
    from pathtracer.core.integrator import clear_render_target
    from pathtracer.core.sampling import seed_rng
    from pathtracer.materials.dielectric import clear_dielectric_materials
    from pathtracer.materials.lambertian import clear_lambertian_materials
    from pathtracer.materials.metal import clear_metal_materials
    from pathtracer.scene.intersection import clear_scene
    from pathtracer.scene.manager import _clear_material_tracking

    def _clear_all():
        clear_scene()
        clear_lambertian_materials()
        clear_metal_materials()
        clear_dielectric_materials()
        _clear_material_tracking()
        clear_render_target()
        seed_rng(42)

    _clear_all()
    yield
    _clear_all()


@pytest.fixture
def three_spheres_camera():
    """Camera looking down -z at the three-spheres scene, already set up."""
    from pathtracer.camera.thin_lens import setup_camera
    from pathtracer.scene.random_spheres import create_three_spheres_camera

    camera = create_three_spheres_camera(aspect_ratio=1.0)
    setup_camera(camera)
    return camera
