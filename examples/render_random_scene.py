#!/usr/bin/env python3
"""Render the random-spheres scene (or another scene) to an image file.

Builds a scene, sets up the thin-lens camera and renders progressively on a
fixed-size CPU worker pool, logging progress after every pass.

Usage:
    python -m examples.render_random_scene [options]

Options:
    --width WIDTH         Image width in pixels (default: 400)
    --height HEIGHT       Image height in pixels (default: width / 1.5)
    --samples SAMPLES     Number of samples per pixel (default: 5)
    --max-depth DEPTH     Maximum bounces per path (default: 50)
    --workers N           Worker threads (default: 4)
    --seed SEED           Seed for scene layout and sampling (default: 0)
    --batch-size SIZE     Samples per progress update (default: 1)
    --output OUTPUT       Output file, .ppm or any Pillow format (default: output.png)
    --scene SCENE         "random", "three" or a path to a JSON scene file
    --quiet               Only log warnings and errors

Example:
    python -m examples.render_random_scene --width 200 --samples 20 --output spheres.ppm
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

from pathtracer.config import RenderConfig, configure_logging, init_taichi

logger = logging.getLogger("render_random_scene")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    defaults = RenderConfig()
    parser = argparse.ArgumentParser(
        description="Render a sphere scene with Monte Carlo path tracing.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--width",
        type=int,
        default=defaults.width,
        help=f"Image width in pixels (default: {defaults.width})",
    )
    parser.add_argument(
        "--height",
        type=int,
        default=None,
        help="Image height in pixels (default: width / aspect ratio)",
    )
    parser.add_argument(
        "--samples",
        type=int,
        default=defaults.samples_per_pixel,
        help=f"Number of samples per pixel (default: {defaults.samples_per_pixel})",
    )
    parser.add_argument(
        "--max-depth",
        type=int,
        default=defaults.max_depth,
        help=f"Maximum bounces per path (default: {defaults.max_depth})",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=defaults.num_workers,
        help=f"Worker threads (default: {defaults.num_workers})",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=defaults.seed,
        help=f"Seed for scene layout and sampling (default: {defaults.seed})",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=defaults.batch_size,
        help=f"Samples per progress update (default: {defaults.batch_size})",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=defaults.output,
        help=f"Output file path (default: {defaults.output})",
    )
    parser.add_argument(
        "--scene",
        type=str,
        default="random",
        help='"random", "three" or a path to a JSON scene file (default: random)',
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Only log warnings and errors",
    )
    return parser.parse_args(argv)


def config_from_args(args: argparse.Namespace) -> RenderConfig:
    """Build and validate a RenderConfig from parsed arguments."""
    config = RenderConfig(
        width=args.width,
        height=args.height,
        samples_per_pixel=args.samples,
        max_depth=args.max_depth,
        num_workers=args.workers,
        seed=args.seed,
        batch_size=args.batch_size,
        output=args.output,
        log_level="WARNING" if args.quiet else "INFO",
    )
    config.validate()
    return config


def build_scene(scene_name: str, config: RenderConfig):
    """Create the requested scene and a camera framing it.

    Returns:
        Tuple of (scene, camera).
    """
    # Lazy imports: these modules declare Taichi fields
    from pathtracer.scene.manager import SceneManager
    from pathtracer.scene.random_spheres import (
        create_default_camera,
        create_random_scene,
        create_three_spheres_camera,
        create_three_spheres_scene,
    )

    aspect_ratio = config.width / config.image_height

    if scene_name == "random":
        return create_random_scene(seed=config.seed), create_default_camera(aspect_ratio)
    if scene_name == "three":
        return create_three_spheres_scene(), create_three_spheres_camera(aspect_ratio)

    scene_path = Path(scene_name)
    if not scene_path.is_file():
        raise ValueError(f'Unknown scene "{scene_name}": not "random", "three" or a file')
    scene = SceneManager()
    scene.load_json(scene_path)
    return scene, create_default_camera(aspect_ratio)


def render_scene(config: RenderConfig, scene_name: str = "random") -> Path:
    """Render a scene and save it to ``config.output``.

    Returns:
        Path to the saved image file.
    """
    from pathtracer.camera.thin_lens import setup_camera
    from pathtracer.core.progressive import ProgressiveRenderer

    scene, camera = build_scene(scene_name, config)
    setup_camera(camera)

    width, height = config.width, config.image_height
    renderer = ProgressiveRenderer(width, height, max_depth=config.max_depth, seed=config.seed)

    logger.info(
        "Rendering %dx%d, %d spp, depth %d, %d workers, %d spheres",
        width,
        height,
        config.samples_per_pixel,
        config.max_depth,
        config.num_workers,
        scene.get_sphere_count(),
    )

    start_time = time.time()

    def progress_callback(current: int, target: int) -> None:
        elapsed = time.time() - start_time
        progress_pct = (current / target) * 100 if target > 0 else 0
        samples_per_sec = current / elapsed if elapsed > 0 else 0
        logger.info(
            "Progress: %d/%d samples (%.1f%%) - %.2f spp/s",
            current,
            target,
            progress_pct,
            samples_per_sec,
        )

    renderer.render(
        num_samples=config.samples_per_pixel,
        batch_size=config.batch_size,
        callback=progress_callback,
    )

    output_file = Path(config.output)
    renderer.save_image(output_file)

    logger.info("Saved to %s in %.2fs", output_file.absolute(), time.time() - start_time)
    return output_file


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    configure_logging("WARNING" if args.quiet else "INFO")

    try:
        config = config_from_args(args)
        init_taichi(config)
        render_scene(config, args.scene)
        return 0
    except (ValueError, RuntimeError, OSError) as e:
        logger.error("Render failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
