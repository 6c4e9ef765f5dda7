"""Unit tests for sphere intersection.

Tests cover:
- Ray hitting sphere from outside (front face)
- Ray missing sphere
- Ray starting inside sphere (back face)
- Range limits on t
- Non-normalized ray directions
"""

import taichi as ti


class TestSphereBasics:
    """Tests for Sphere dataclass and basic operations."""

    def test_make_sphere(self):
        """make_sphere stores center, radius and material."""
        from pathtracer.core.vector import vec3
        from pathtracer.geometry.sphere import make_sphere

        center_result = ti.Vector.field(3, dtype=ti.f64, shape=())
        radius_result = ti.field(dtype=ti.f64, shape=())
        material_result = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            sphere = make_sphere(vec3(1.0, 2.0, 3.0), 0.5, 7)
            center_result[None] = sphere.center
            radius_result[None] = sphere.radius
            material_result[None] = sphere.material_id

        test_kernel()
        c = center_result[None]
        assert (c[0], c[1], c[2]) == (1.0, 2.0, 3.0)
        assert radius_result[None] == 0.5
        assert material_result[None] == 7

    def test_miss_record(self):
        """A miss record has hit 0 and material -1."""
        from pathtracer.geometry.sphere import make_miss_record

        hit = ti.field(dtype=ti.i32, shape=())
        material_id = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            rec = make_miss_record()
            hit[None] = rec.hit
            material_id[None] = rec.material_id

        test_kernel()
        assert hit[None] == 0
        assert material_id[None] == -1


class TestSphereIntersection:
    """Tests for ray-sphere intersection."""

    def test_hit_sphere_direct_hit(self):
        """Ray from origin along -z hits the sphere at (0,0,-5) r=1 at t=4."""
        from pathtracer.core.ray import make_ray
        from pathtracer.core.vector import vec3
        from pathtracer.geometry.sphere import Sphere, hit_sphere

        hit = ti.field(dtype=ti.i32, shape=())
        t_val = ti.field(dtype=ti.f64, shape=())
        point = ti.Vector.field(3, dtype=ti.f64, shape=())
        normal = ti.Vector.field(3, dtype=ti.f64, shape=())
        front_face = ti.field(dtype=ti.i32, shape=())
        material_id = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_ray(vec3(0.0, 0.0, 0.0), vec3(0.0, 0.0, -1.0))
            sphere = Sphere(center=vec3(0.0, 0.0, -5.0), radius=1.0, material_id=3)
            rec = hit_sphere(ray, sphere, 0.001, 1e30)
            hit[None] = rec.hit
            t_val[None] = rec.t
            point[None] = rec.point
            normal[None] = rec.normal
            front_face[None] = rec.front_face
            material_id[None] = rec.material_id

        test_kernel()
        assert hit[None] == 1
        assert abs(t_val[None] - 4.0) < 1e-12
        p = point[None]
        assert abs(p[2] + 4.0) < 1e-12
        n = normal[None]
        assert abs(n[0]) < 1e-12
        assert abs(n[1]) < 1e-12
        assert abs(n[2] - 1.0) < 1e-12
        assert front_face[None] == 1
        assert material_id[None] == 3

    def test_hit_sphere_miss(self):
        """A ray passing beside the sphere misses."""
        from pathtracer.core.ray import make_ray
        from pathtracer.core.vector import vec3
        from pathtracer.geometry.sphere import Sphere, hit_sphere

        hit = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_ray(vec3(5.0, 0.0, 0.0), vec3(0.0, 0.0, -1.0))
            sphere = Sphere(center=vec3(0.0, 0.0, -5.0), radius=1.0, material_id=0)
            hit[None] = hit_sphere(ray, sphere, 0.001, 1e30).hit

        test_kernel()
        assert hit[None] == 0

    def test_hit_sphere_from_inside(self):
        """From the center the far root is used and the normal is flipped."""
        from pathtracer.core.ray import make_ray
        from pathtracer.core.vector import vec3
        from pathtracer.geometry.sphere import Sphere, hit_sphere

        hit = ti.field(dtype=ti.i32, shape=())
        t_val = ti.field(dtype=ti.f64, shape=())
        normal = ti.Vector.field(3, dtype=ti.f64, shape=())
        front_face = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_ray(vec3(0.0, 0.0, 0.0), vec3(0.0, 0.0, 1.0))
            sphere = Sphere(center=vec3(0.0, 0.0, 0.0), radius=2.0, material_id=0)
            rec = hit_sphere(ray, sphere, 0.001, 1e30)
            hit[None] = rec.hit
            t_val[None] = rec.t
            normal[None] = rec.normal
            front_face[None] = rec.front_face

        test_kernel()
        assert hit[None] == 1
        assert abs(t_val[None] - 2.0) < 1e-12
        # Outward normal is +z; flipped to face the ray
        assert abs(normal[None][2] + 1.0) < 1e-12
        assert front_face[None] == 0

    def test_hit_sphere_respects_t_max(self):
        """Roots beyond t_max are rejected."""
        from pathtracer.core.ray import make_ray
        from pathtracer.core.vector import vec3
        from pathtracer.geometry.sphere import Sphere, hit_sphere

        hit = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_ray(vec3(0.0, 0.0, 0.0), vec3(0.0, 0.0, -1.0))
            sphere = Sphere(center=vec3(0.0, 0.0, -5.0), radius=1.0, material_id=0)
            hit[None] = hit_sphere(ray, sphere, 0.001, 3.5).hit

        test_kernel()
        assert hit[None] == 0

    def test_hit_sphere_far_root_when_near_root_below_t_min(self):
        """If the near root is below t_min the far root is reported."""
        from pathtracer.core.ray import make_ray
        from pathtracer.core.vector import vec3
        from pathtracer.geometry.sphere import Sphere, hit_sphere

        hit = ti.field(dtype=ti.i32, shape=())
        t_val = ti.field(dtype=ti.f64, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_ray(vec3(0.0, 0.0, 0.0), vec3(0.0, 0.0, -1.0))
            sphere = Sphere(center=vec3(0.0, 0.0, -5.0), radius=1.0, material_id=0)
            rec = hit_sphere(ray, sphere, 4.5, 1e30)
            hit[None] = rec.hit
            t_val[None] = rec.t

        test_kernel()
        assert hit[None] == 1
        assert abs(t_val[None] - 6.0) < 1e-12

    def test_hit_sphere_unnormalized_direction(self):
        """t scales with the direction length; the hit point does not."""
        from pathtracer.core.ray import make_ray
        from pathtracer.core.vector import vec3
        from pathtracer.geometry.sphere import Sphere, hit_sphere

        t_val = ti.field(dtype=ti.f64, shape=())
        point = ti.Vector.field(3, dtype=ti.f64, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_ray(vec3(0.0, 0.0, 0.0), vec3(0.0, 0.0, -2.0))
            sphere = Sphere(center=vec3(0.0, 0.0, -5.0), radius=1.0, material_id=0)
            rec = hit_sphere(ray, sphere, 0.001, 1e30)
            t_val[None] = rec.t
            point[None] = rec.point

        test_kernel()
        assert abs(t_val[None] - 2.0) < 1e-12
        assert abs(point[None][2] + 4.0) < 1e-12


class TestSetFaceNormal:
    """Tests for set_face_normal."""

    def test_back_face_flips_normal(self):
        """A ray travelling along the outward normal gets the flipped normal."""
        from pathtracer.core.ray import make_ray
        from pathtracer.core.vector import vec3
        from pathtracer.geometry.sphere import make_miss_record, set_face_normal

        normal = ti.Vector.field(3, dtype=ti.f64, shape=())
        front_face = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_ray(vec3(0.0, 0.0, 0.0), vec3(0.0, 1.0, 0.0))
            rec = set_face_normal(make_miss_record(), ray, vec3(0.0, 1.0, 0.0))
            normal[None] = rec.normal
            front_face[None] = rec.front_face

        test_kernel()
        assert front_face[None] == 0
        assert abs(normal[None][1] + 1.0) < 1e-12
