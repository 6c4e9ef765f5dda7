"""Independent random streams and Monte Carlo sampling helpers.

Every unit of parallel work owns a *lane*: a private 32-bit generator state
stored in a Taichi field. During rendering one lane belongs to one scanline, so
worker threads never share generator state and the sequence of numbers a
scanline sees does not depend on which thread happens to run it. Reseeding with
the same seed reproduces every stream exactly.

Each lane is a 32-bit linear congruential generator whose output goes through
the PCG xorshift-multiply permutation to hide the weak low bits of the LCG.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from pathtracer.core.sampling import seed_rng, random_unit_vector, vec3
    >>> seed_rng(1234)
    >>> @ti.kernel
    ... def sample() -> vec3:
    ...     return random_unit_vector(0)
    >>> sample()
"""

import taichi as ti

from pathtracer.core.vector import length, length_squared, vec3

# Maximum number of independent streams (one per scanline while rendering)
MAX_RNG_LANES = 4096

# Rejection sampling retries before falling back to the origin. Each trial is
# rejected with probability ~0.48 (sphere) or ~0.21 (disk).
MAX_REJECTION_TRIES = 64

_LCG_MULTIPLIER = 1664525
_LCG_INCREMENT = 1013904223
_PERMUTE_MULTIPLIER = 277803737
_INV_U32_RANGE = 1.0 / 4294967296.0

_rng_state = ti.field(dtype=ti.u32, shape=MAX_RNG_LANES)


@ti.func
def _permute(state: ti.u32) -> ti.u32:
    """PCG RXS-M-XS output permutation (a bijection on 32-bit words)."""
    word = ((state >> ((state >> ti.u32(28)) + ti.u32(4))) ^ state) * ti.u32(
        _PERMUTE_MULTIPLIER
    )
    return (word >> ti.u32(22)) ^ word


@ti.kernel
def _seed_lanes(seed: ti.u32):
    for lane in range(MAX_RNG_LANES):
        lane_word = _permute(ti.cast(lane, ti.u32) + ti.u32(_LCG_INCREMENT))
        _rng_state[lane] = _permute(lane_word ^ seed)


def seed_rng(seed: int) -> None:
    """Reseed every random lane.

    Lane states are derived from (seed, lane index) so that streams are
    distinct across lanes and identical across runs with the same seed.

    Args:
        seed: Any integer; only the low 32 bits are used.
    """
    _seed_lanes(seed & 0xFFFFFFFF)


def get_lane_state(lane: int) -> int:
    """Return the raw generator state of a lane (for debugging and tests)."""
    if not 0 <= lane < MAX_RNG_LANES:
        raise ValueError(f"lane must be in [0, {MAX_RNG_LANES}), got {lane}")
    return int(_rng_state[lane])


@ti.func
def random_u32(lane: ti.i32) -> ti.u32:
    """Advance a lane and return its next 32-bit output."""
    state = _rng_state[lane] * ti.u32(_LCG_MULTIPLIER) + ti.u32(_LCG_INCREMENT)
    _rng_state[lane] = state
    return _permute(state)


@ti.func
def random_f64(lane: ti.i32) -> ti.f64:
    """Uniform random number in [0, 1)."""
    return ti.cast(random_u32(lane), ti.f64) * _INV_U32_RANGE


@ti.func
def random_range(lane: ti.i32, lo: ti.f64, hi: ti.f64) -> ti.f64:
    """Uniform random number in [lo, hi)."""
    return lo + (hi - lo) * random_f64(lane)


@ti.func
def random_in_unit_sphere(lane: ti.i32) -> vec3:
    """Uniform random point strictly inside the unit ball.

    Rejection-samples the cube [-1, 1]^3. Falls back to the origin if every
    one of MAX_REJECTION_TRIES trials was rejected.
    """
    p = vec3(0.0, 0.0, 0.0)
    found = 0
    tries = 0
    while found == 0 and tries < MAX_REJECTION_TRIES:
        candidate = vec3(
            random_range(lane, -1.0, 1.0),
            random_range(lane, -1.0, 1.0),
            random_range(lane, -1.0, 1.0),
        )
        if length_squared(candidate) < 1.0:
            p = candidate
            found = 1
        tries += 1
    return p


@ti.func
def random_unit_vector(lane: ti.i32) -> vec3:
    """Random unit vector, uniformly distributed over the sphere."""
    p = random_in_unit_sphere(lane)
    result = vec3(0.0, 0.0, 1.0)
    p_length = length(p)
    if p_length > 0.0:
        result = p / p_length
    return result


@ti.func
def random_on_hemisphere(lane: ti.i32, normal: vec3) -> vec3:
    """Random unit vector in the hemisphere around ``normal``."""
    on_sphere = random_unit_vector(lane)
    result = on_sphere
    if on_sphere.dot(normal) <= 0.0:
        result = -on_sphere
    return result


@ti.func
def random_in_unit_disk(lane: ti.i32) -> vec3:
    """Uniform random point (x, y, 0) strictly inside the unit disk.

    Used for thin-lens aperture sampling. Falls back to the origin after
    MAX_REJECTION_TRIES rejected trials.
    """
    p = vec3(0.0, 0.0, 0.0)
    found = 0
    tries = 0
    while found == 0 and tries < MAX_REJECTION_TRIES:
        candidate = vec3(random_range(lane, -1.0, 1.0), random_range(lane, -1.0, 1.0), 0.0)
        if length_squared(candidate) < 1.0:
            p = candidate
            found = 1
        tries += 1
    return p
