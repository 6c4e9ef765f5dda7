"""Tests for the color integrator and the parallel render pass.

Tests cover:
- Sky gradient at the zenith, nadir and horizon
- Depth exhaustion and empty scenes
- Absorption and attenuation along a path
- Render target validation and the pixel completion check
- Reproducibility for a fixed seed and convergence across seeds
"""

import numpy as np
import pytest


class TestSkyColor:
    """Tests for the background gradient."""

    def test_gradient_endpoints(self):
        """Straight up is light blue, straight down is white."""
        from pathtracer.core.integrator import sky_color

        assert sky_color((0.0, 1.0, 0.0)) == pytest.approx((0.5, 0.7, 1.0))
        assert sky_color((0.0, -1.0, 0.0)) == pytest.approx((1.0, 1.0, 1.0))
        assert sky_color((1.0, 0.0, 0.0)) == pytest.approx((0.75, 0.85, 1.0))

    def test_direction_length_does_not_matter(self):
        """Only the direction's orientation affects the sky color."""
        from pathtracer.core.integrator import sky_color

        assert sky_color((0.0, 5.0, 0.0)) == pytest.approx(sky_color((0.0, 1.0, 0.0)))

    def test_trace_ray_matches_python_sky(self):
        """An empty scene returns the sky for every direction."""
        from pathtracer.core.integrator import sky_color, trace_ray

        for direction in [(0.0, 1.0, 0.0), (0.3, -0.2, -1.0), (-1.0, 0.5, 0.2)]:
            assert trace_ray((0.0, 0.0, 0.0), direction) == pytest.approx(sky_color(direction))

    def test_missed_ray_in_populated_scene_is_sky(self):
        """Rays that miss every sphere return exactly the sky color."""
        from pathtracer.core.integrator import sky_color, trace_ray
        from pathtracer.scene.random_spheres import create_three_spheres_scene

        create_three_spheres_scene()

        # Upward from between the spheres, clear of all of them
        for direction in [(0.0, 1.0, 0.0), (0.3, 1.0, 0.2), (-0.5, 1.0, -0.1), (0.0, 0.2, 1.0)]:
            assert trace_ray((0.0, 0.0, 0.0), direction) == pytest.approx(sky_color(direction), abs=1e-12)


class TestRayColor:
    """Tests for ray_color through trace_ray."""

    def test_depth_zero_is_black(self):
        """With no bounces allowed every path is black, even toward the sky."""
        from pathtracer.core.integrator import trace_ray

        assert trace_ray((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), max_depth=0) == (0.0, 0.0, 0.0)

    def test_mirror_attenuates_sky(self):
        """A perfect mirror returns the reflected sky times its albedo."""
        from pathtracer.core.integrator import sky_color, trace_ray
        from pathtracer.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_metal_sphere((0.0, 0.0, -5.0), 1.0, (0.5, 0.25, 1.0), 0.0)

        # Head-on hit reflects straight back along +z
        color = trace_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        back = sky_color((0.0, 0.0, 1.0))
        assert color == pytest.approx((0.5 * back[0], 0.25 * back[1], 1.0 * back[2]))

    def test_mirror_needs_a_second_bounce(self):
        """Depth 1 is exhausted at the mirror, so the result is black."""
        from pathtracer.core.integrator import trace_ray
        from pathtracer.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_metal_sphere((0.0, 0.0, -5.0), 1.0, (1.0, 1.0, 1.0), 0.0)

        assert trace_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), max_depth=1) == (0.0, 0.0, 0.0)
        assert trace_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), max_depth=2) != (0.0, 0.0, 0.0)

    def test_black_lambertian_absorbs_everything(self):
        """A zero-albedo surface contributes nothing."""
        from pathtracer.core.integrator import trace_ray
        from pathtracer.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_lambertian_sphere((0.0, 0.0, -5.0), 1.0, (0.0, 0.0, 0.0))

        for lane in range(8):
            assert trace_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), lane=lane) == (0.0, 0.0, 0.0)

    def test_trace_ray_lane_validation(self):
        """Lanes outside the stream table are rejected."""
        from pathtracer.core.integrator import trace_ray
        from pathtracer.core.sampling import MAX_RNG_LANES

        with pytest.raises(ValueError, match="lane"):
            trace_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), lane=MAX_RNG_LANES)


class TestRenderTarget:
    """Tests for render target setup and validation."""

    @pytest.mark.parametrize("width,height", [(1, 10), (10, 1), (0, 0), (4096, 10), (10, 4096)])
    def test_invalid_dimensions(self, width, height):
        """Sizes outside [2, 2048] are rejected."""
        from pathtracer.core.integrator import setup_render_target

        with pytest.raises(ValueError, match="Image dimensions"):
            setup_render_target(width, height)

    def test_setup_records_dimensions(self):
        """The active size is reported back."""
        from pathtracer.core.integrator import get_image_dimensions, setup_render_target

        setup_render_target(12, 7)
        assert get_image_dimensions() == (12, 7)

    def test_render_before_setup(self):
        """Rendering without a target raises RuntimeError."""
        from pathtracer.core import integrator

        previous = integrator._render_target_initialized[None]
        integrator._render_target_initialized[None] = 0
        try:
            with pytest.raises(RuntimeError, match="Render target not set up"):
                integrator.render_image(1)
        finally:
            integrator._render_target_initialized[None] = previous

    def test_non_positive_samples(self):
        """A pass must add at least one sample."""
        from pathtracer.core.integrator import render_image, setup_render_target

        setup_render_target(4, 4)
        with pytest.raises(ValueError, match="samples_per_pixel"):
            render_image(0)

    def test_render_pixel_bounds(self):
        """render_pixel rejects pixels outside the image."""
        from pathtracer.core.integrator import render_pixel, setup_render_target

        setup_render_target(4, 4)
        with pytest.raises(ValueError, match="outside"):
            render_pixel(4, 0)


class TestRenderPass:
    """Tests for the parallel render pass."""

    def test_every_pixel_completed(self, three_spheres_camera):
        """A pass reports every pixel and adds samples uniformly."""
        from pathtracer.core import integrator
        from pathtracer.scene.random_spheres import create_three_spheres_scene

        create_three_spheres_scene()
        integrator.setup_render_target(16, 12)
        integrator.render_image(samples_per_pixel=2)
        integrator.render_image(samples_per_pixel=3)

        assert integrator._pixels_completed[None] == 16 * 12
        assert integrator.get_total_samples() == 5
        counts = integrator._sample_count.to_numpy()[:16, :12]
        assert np.all(counts == 5)

    def test_framebuffer_shape_and_type(self, three_spheres_camera):
        """The framebuffer is (height, width, 3) uint8."""
        from pathtracer.core.integrator import get_framebuffer, render_image, setup_render_target
        from pathtracer.scene.random_spheres import create_three_spheres_scene

        create_three_spheres_scene()
        setup_render_target(10, 6)
        assert not get_framebuffer().any()

        render_image(samples_per_pixel=2)
        framebuffer = get_framebuffer()
        assert framebuffer.shape == (6, 10, 3)
        assert framebuffer.dtype == np.uint8
        assert framebuffer.any()

    def test_sky_rows_are_top_first(self, three_spheres_camera):
        """The top row of an empty scene is bluer than the bottom row."""
        from pathtracer.core.integrator import get_color_sums_numpy, render_image, setup_render_target

        setup_render_target(8, 8)
        render_image(samples_per_pixel=1)
        sums = get_color_sums_numpy()

        # Red falls off toward the zenith
        assert sums[0, :, 0].mean() < sums[-1, :, 0].mean()

    def test_same_seed_is_reproducible(self, three_spheres_camera):
        """Two renders with the same seed produce identical sums."""
        from pathtracer.core.integrator import (
            clear_render_target,
            get_color_sums_numpy,
            render_image,
            setup_render_target,
        )
        from pathtracer.core.sampling import seed_rng
        from pathtracer.scene.random_spheres import create_three_spheres_scene

        create_three_spheres_scene()
        setup_render_target(16, 16)

        seed_rng(7)
        render_image(samples_per_pixel=4)
        first = get_color_sums_numpy()

        clear_render_target()
        seed_rng(7)
        render_image(samples_per_pixel=4)
        second = get_color_sums_numpy()

        np.testing.assert_array_equal(first, second)

    def test_render_pixel_matches_first_column(self, three_spheres_camera):
        """render_pixel draws from the same stream as the pass for its scanline."""
        from pathtracer.core.integrator import (
            get_color_sums_numpy,
            render_image,
            render_pixel,
            setup_render_target,
        )
        from pathtracer.core.sampling import seed_rng
        from pathtracer.scene.random_spheres import create_three_spheres_scene

        create_three_spheres_scene()
        setup_render_target(8, 8)

        seed_rng(3)
        single = render_pixel(0, 5, samples=4)

        seed_rng(3)
        render_image(samples_per_pixel=4)
        sums = get_color_sums_numpy()

        # Scanline j = 5 is row 8 - 1 - 5 from the top
        assert single == pytest.approx(tuple(sums[2, 0]), rel=1e-9, abs=1e-12)

    def test_different_seeds_converge(self, three_spheres_camera):
        """Independent seeds give images that agree within noise."""
        from pathtracer.core.integrator import (
            clear_render_target,
            get_color_sums_numpy,
            render_image,
            setup_render_target,
        )
        from pathtracer.core.sampling import seed_rng
        from pathtracer.image.export import compute_rmse
        from pathtracer.scene.random_spheres import create_three_spheres_scene

        create_three_spheres_scene()
        setup_render_target(16, 16)
        spp = 64

        seed_rng(1)
        render_image(samples_per_pixel=spp)
        first = get_color_sums_numpy() / spp

        clear_render_target()
        seed_rng(2)
        render_image(samples_per_pixel=spp)
        second = get_color_sums_numpy() / spp

        assert not np.array_equal(first, second)
        assert compute_rmse(first, second) < 0.15
