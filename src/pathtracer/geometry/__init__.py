"""Geometry module: the sphere primitive.

Spheres are the only primitive. Intersection routines are Taichi functions
(``@ti.func``) called from the render kernels; they follow the pattern

    rec = hit_sphere(ray, sphere, t_min, t_max)

and report the result through a ``HitRecord`` whose normal always faces
against the incoming ray.
"""

from .sphere import HitRecord, Sphere, hit_sphere, make_miss_record, make_sphere, set_face_normal

__all__ = [
    "Sphere",
    "HitRecord",
    "hit_sphere",
    "make_sphere",
    "make_miss_record",
    "set_face_normal",
]
