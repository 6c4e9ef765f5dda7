"""Double-precision vector algebra for the path tracer.

``vec3`` is used interchangeably for points, directions and colors. Colors are
intended to lie in [0, 1] but are never clamped here. Arithmetic (add, subtract,
negate, scalar multiply/divide, component-wise multiply for albedo tinting) is
provided by Taichi's vector operators; this module adds the geometric helpers
the tracer needs on top of them.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from pathtracer.core.vector import reflect, vec3
    >>> @ti.kernel
    ... def mirror() -> vec3:
    ...     return reflect(vec3(1.0, -1.0, 0.0), vec3(0.0, 1.0, 0.0))
    >>> mirror()  # (1, 1, 0)
"""

import taichi as ti
import taichi.math as tm

# 3-component double-precision vector
vec3 = ti.types.vector(3, ti.f64)

# Threshold below which every component counts as zero
NEAR_ZERO_EPSILON = 1e-8


def as_vec3(values) -> "ti.Vector":
    """Build a vec3 from any 3-element Python sequence (host-side helper)."""
    return vec3(float(values[0]), float(values[1]), float(values[2]))


def to_tuple(v) -> tuple[float, float, float]:
    """Convert a vec3 read from a field back to a float tuple (host-side helper)."""
    return (float(v[0]), float(v[1]), float(v[2]))


@ti.func
def dot(a: vec3, b: vec3) -> ti.f64:
    """Dot product a . b."""
    return tm.dot(a, b)


@ti.func
def cross(a: vec3, b: vec3) -> vec3:
    """Cross product a x b."""
    return tm.cross(a, b)


@ti.func
def length_squared(v: vec3) -> ti.f64:
    """Squared Euclidean length, avoids the square root."""
    return tm.dot(v, v)


@ti.func
def length(v: vec3) -> ti.f64:
    """Euclidean length."""
    return ti.sqrt(length_squared(v))


@ti.func
def unit_vector(v: vec3) -> vec3:
    """Scale v to unit length.

    The caller must guarantee v is not zero-length; no guard is applied here.
    """
    return v / length(v)


@ti.func
def near_zero(v: vec3) -> ti.i32:
    """Return 1 if every component is smaller than NEAR_ZERO_EPSILON in magnitude.

    Used to reject degenerate scatter directions.
    """
    s = NEAR_ZERO_EPSILON
    return ti.abs(v.x) < s and ti.abs(v.y) < s and ti.abs(v.z) < s


@ti.func
def reflect(v: vec3, n: vec3) -> vec3:
    """Mirror v about the unit normal n: v - 2(v . n)n."""
    return v - 2.0 * tm.dot(v, n) * n


@ti.func
def refract(uv: vec3, n: vec3, etai_over_etat: ti.f64) -> vec3:
    """Refract the unit direction uv through a surface with unit normal n.

    Splits the transmitted direction into components perpendicular and
    parallel to the normal (Snell's law). ``cos_theta`` is clamped to 1 so
    rounding can never push the square root out of its domain.

    Args:
        uv: Incoming unit direction.
        n: Unit normal on the side of the incoming ray.
        etai_over_etat: Ratio of refractive indices, incident over transmitted.

    Returns:
        The refracted direction.
    """
    cos_theta = tm.min(tm.dot(-uv, n), 1.0)
    r_out_perp = etai_over_etat * (uv + cos_theta * n)
    r_out_parallel = -ti.sqrt(ti.abs(1.0 - length_squared(r_out_perp))) * n
    return r_out_perp + r_out_parallel


@ti.func
def schlick_reflectance(cosine: ti.f64, ref_idx: ti.f64) -> ti.f64:
    """Schlick's polynomial approximation of Fresnel reflectance.

    Args:
        cosine: Cosine of the angle between the incoming direction and normal.
        ref_idx: Refractive index used for the normal-incidence reflectance r0.

    Returns:
        r0 + (1 - r0)(1 - cosine)^5 with r0 = ((1 - ref_idx) / (1 + ref_idx))^2.
    """
    r0 = (1.0 - ref_idx) / (1.0 + ref_idx)
    r0 = r0 * r0
    return r0 + (1.0 - r0) * ((1.0 - cosine) ** 5)
