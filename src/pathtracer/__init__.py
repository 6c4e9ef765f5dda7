"""CPU path tracer built on Taichi.

This package renders scenes of spheres with Monte Carlo path tracing:
- Lambertian, metal (fuzzy reflection) and dielectric (glass) materials
- Thin-lens camera with depth of field
- Parallel per-scanline rendering on a fixed-size CPU worker pool
- Deterministic per-scanline random streams

Subpackages:
    core: Vector math, random sampling, rays, the color integrator and renderer
    geometry: Sphere primitive and hit records
    materials: Scattering models
    scene: Scene storage, material registry and demo scenes
    camera: Thin-lens camera ray generation
    image: Framebuffer quantization and image file output

Taichi must be initialized (see ``pathtracer.config.init_taichi``) before any
module that declares Taichi fields is imported.
"""

__version__ = "0.1.0"
