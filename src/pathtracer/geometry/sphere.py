"""Sphere primitive and ray-sphere intersection.

The intersection solves ``|origin + t * direction - center|^2 = radius^2``,
which expands to the quadratic

    a*t^2 + 2*half_b*t + c = 0

with ``a = |direction|^2``, ``half_b = (origin - center) . direction`` and
``c = |origin - center|^2 - radius^2``. A negative discriminant is an ordinary
miss. The nearer root wins when it lies in ``[t_min, t_max]``; otherwise the
farther root is tried. ``t_min`` is normally a small positive epsilon so a ray
leaving a surface does not immediately hit that same surface again.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from pathtracer.geometry.sphere import Sphere, hit_sphere
    >>> from pathtracer.core.ray import Ray
    >>> # Inside a kernel:
    >>> # rec = hit_sphere(ray, Sphere(center=c, radius=1.0, material_id=0), 0.001, 1e30)
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import Ray, ray_at
from pathtracer.core.vector import length_squared, vec3


@ti.dataclass
class Sphere:
    """A sphere with its material.

    Attributes:
        center: The center point of the sphere.
        radius: The radius of the sphere (positive).
        material_id: Index of the sphere's material in the scene registry.
            Several spheres may share one material.
    """

    center: vec3
    radius: ti.f64
    material_id: ti.i32


@ti.dataclass
class HitRecord:
    """Record of a ray-primitive intersection.

    Attributes:
        hit: 1 if the ray hit something, 0 otherwise. The remaining fields are
            only meaningful when hit == 1.
        t: Ray parameter of the intersection.
        point: The intersection point.
        normal: Unit surface normal, always facing against the incoming ray.
        front_face: 1 if the geometric outward normal already faced against
            the ray (ray arrived from outside), 0 if it had to be flipped.
        material_id: Material of the primitive that was hit, -1 on a miss.
    """

    hit: ti.i32
    t: ti.f64
    point: vec3
    normal: vec3
    front_face: ti.i32
    material_id: ti.i32


@ti.func
def make_miss_record() -> HitRecord:
    """A HitRecord meaning "no intersection"."""
    return HitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        front_face=0,
        material_id=-1,
    )


@ti.func
def set_face_normal(rec: HitRecord, ray: Ray, outward_normal: vec3) -> HitRecord:
    """Orient the normal against the incoming ray and record which face was hit.

    This is the single place face orientation is resolved; every primitive
    calls it before reporting a hit.

    Args:
        rec: The record to update.
        ray: The incoming ray.
        outward_normal: Unit geometric normal pointing out of the primitive.

    Returns:
        A copy of ``rec`` with ``normal`` and ``front_face`` set.
    """
    front_face = 0
    normal = -outward_normal
    if tm.dot(ray.direction, outward_normal) < 0.0:
        front_face = 1
        normal = outward_normal

    return HitRecord(
        hit=rec.hit,
        t=rec.t,
        point=rec.point,
        normal=normal,
        front_face=front_face,
        material_id=rec.material_id,
    )


@ti.func
def hit_sphere(ray: Ray, sphere: Sphere, t_min: ti.f64, t_max: ti.f64) -> HitRecord:
    """Intersect a ray with a sphere.

    Args:
        ray: The ray to test (direction need not be normalized).
        sphere: The sphere to test against.
        t_min: Smallest accepted ray parameter.
        t_max: Largest accepted ray parameter.

    Returns:
        A HitRecord; check its ``hit`` field.
    """
    rec = make_miss_record()

    oc = ray.origin - sphere.center
    a = length_squared(ray.direction)
    half_b = tm.dot(oc, ray.direction)
    c = length_squared(oc) - sphere.radius * sphere.radius
    discriminant = half_b * half_b - a * c

    if discriminant >= 0.0:
        sqrt_d = ti.sqrt(discriminant)

        # Nearest root inside the accepted range
        root = (-half_b - sqrt_d) / a
        valid = 1
        if root < t_min or t_max < root:
            root = (-half_b + sqrt_d) / a
            if root < t_min or t_max < root:
                valid = 0

        if valid == 1:
            point = ray_at(ray, root)
            outward_normal = (point - sphere.center) / sphere.radius
            rec = HitRecord(
                hit=1,
                t=root,
                point=point,
                normal=outward_normal,
                front_face=1,
                material_id=sphere.material_id,
            )
            rec = set_face_normal(rec, ray, outward_normal)

    return rec


@ti.func
def make_sphere(center: vec3, radius: ti.f64, material_id: ti.i32) -> Sphere:
    """Create a sphere inside a Taichi function or kernel."""
    return Sphere(center=center, radius=radius, material_id=material_id)
