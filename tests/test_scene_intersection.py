"""Tests for scene sphere storage and closest-hit queries."""

import pytest


class TestSphereStorage:
    """Tests for add_sphere, clear_scene and get_sphere_count."""

    def test_add_and_count(self):
        """Each added sphere gets the next index."""
        from pathtracer.scene.intersection import add_sphere, get_sphere_count

        assert get_sphere_count() == 0
        assert add_sphere((0.0, 0.0, -1.0), 0.5, 0) == 0
        assert add_sphere((1.0, 0.0, -1.0), 0.5, 1) == 1
        assert get_sphere_count() == 2

    def test_clear_scene(self):
        """clear_scene empties the scene."""
        from pathtracer.scene.intersection import add_sphere, clear_scene, get_sphere_count

        add_sphere((0.0, 0.0, -1.0), 0.5, 0)
        clear_scene()
        assert get_sphere_count() == 0

    def test_capacity_exceeded(self):
        """Adding past MAX_SPHERES raises RuntimeError."""
        from pathtracer.scene import intersection

        intersection.num_spheres[None] = intersection.MAX_SPHERES
        with pytest.raises(RuntimeError, match="Maximum number of spheres"):
            intersection.add_sphere((0.0, 0.0, 0.0), 1.0, 0)


class TestQueryScene:
    """Tests for intersect_scene through query_scene."""

    def test_empty_scene_misses(self):
        """With no spheres every ray misses."""
        from pathtracer.scene.intersection import query_scene

        rec = query_scene((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        assert rec["hit"] is False
        assert rec["material_id"] == -1

    def test_single_sphere_hit(self):
        """A ray toward a sphere at distance 5 with radius 1 hits at t = 4."""
        from pathtracer.scene.intersection import add_sphere, query_scene

        add_sphere((0.0, 0.0, -5.0), 1.0, 2)
        rec = query_scene((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))

        assert rec["hit"] is True
        assert rec["t"] == pytest.approx(4.0)
        assert rec["normal"] == pytest.approx((0.0, 0.0, 1.0))
        assert rec["front_face"] is True
        assert rec["material_id"] == 2

    def test_closest_hit_wins_regardless_of_order(self):
        """The nearest sphere is reported even when added last."""
        from pathtracer.scene.intersection import add_sphere, query_scene

        add_sphere((0.0, 0.0, -10.0), 1.0, 0)
        add_sphere((0.0, 0.0, -5.0), 1.0, 1)
        add_sphere((0.0, 0.0, -3.0), 0.5, 2)

        rec = query_scene((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        assert rec["material_id"] == 2
        assert rec["t"] == pytest.approx(2.5)

    def test_t_min_excludes_near_hits(self):
        """Hits below t_min are ignored, so the next surface is found."""
        from pathtracer.scene.intersection import add_sphere, query_scene

        add_sphere((0.0, 0.0, -5.0), 1.0, 0)
        rec = query_scene((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), t_min=4.5)

        assert rec["hit"] is True
        assert rec["t"] == pytest.approx(6.0)
        assert rec["front_face"] is False

    def test_t_max_limits_search(self):
        """Spheres beyond t_max are not hit."""
        from pathtracer.scene.intersection import add_sphere, query_scene

        add_sphere((0.0, 0.0, -5.0), 1.0, 0)
        rec = query_scene((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), t_max=3.0)
        assert rec["hit"] is False
