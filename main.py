#!/usr/bin/env python3
"""
Correspondence Depth Slicing - Main Entry Point
===============================================

Estimates a depth map for a main photo from approximate correspondences in
a reference photo of the same scene, splits it into depth zones and cuts
out foreground or custom depth slices.

Author: Sumesh Thakur (sumeshthkr@gmail.com)

Usage:
    python main.py --main main.jpg --reference sub.jpg --output outputs/
    python main.py --main main.jpg --reference sub.jpg --output outputs/ --foreground
    python main.py --main main.jpg --reference sub.jpg --output outputs/ --slice 0 90

References:
- OpenCV Python Tutorials: https://docs.opencv.org/4.x/d6/d00/tutorial_py_root.html
"""

import argparse
import logging
import sys
from functools import partial
from pathlib import Path

import cv2

from depthslice.config import (
    PipelineConfig,
    load_config_from_json,
    create_default_config,
    validate_config,
)
from depthslice.image_input import open_image_pair, load_bgra, save_image
from depthslice.pipeline import DepthEstimator, DepthResult
from depthslice.tiling import grid_tiles
from depthslice.depth_image import DepthImage
from depthslice.visualization import (
    colorize_depth,
    colorize_field,
    create_zone_overlay,
    create_visualization_grid,
    add_depth_stats_overlay,
)


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Correspondence-based depth estimation and depth slicing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Estimate depth and save the maps
    python main.py --main main.jpg --reference sub.jpg --output outputs/
    
    # Cut out the foreground
    python main.py --main main.jpg --reference sub.jpg --output outputs/ --foreground
    
    # Use a fixed 16px grid instead of the quadtree tiler
    python main.py --main main.jpg --reference sub.jpg --output outputs/ --grid 16

Author: Sumesh Thakur (sumeshthkr@gmail.com)
        """,
    )

    # Inputs
    parser.add_argument("--main", type=str, required=True, help="Path to the main photo")
    parser.add_argument(
        "--reference", type=str, required=True, help="Path to the reference photo"
    )
    parser.add_argument(
        "--config", type=str, help="Path to pipeline configuration JSON file"
    )
    parser.add_argument(
        "--color",
        action="store_true",
        help="Match on BGR pixels instead of grayscale",
    )
    parser.add_argument(
        "--downsample",
        type=float,
        default=1.0,
        help="Downsample factor for performance (default: 1.0 = no downsampling)",
    )

    # Matching
    parser.add_argument(
        "--max-radius", type=int, help="Search radius in reference pixels (default: auto)"
    )
    parser.add_argument(
        "--precision", type=int, help="Pixel tolerance (default: estimated from the image)"
    )
    parser.add_argument(
        "--grid",
        type=int,
        metavar="BLOCK",
        help="Tile with a fixed BLOCK x BLOCK grid instead of the quadtree",
    )
    parser.add_argument(
        "--workers", type=int, help="Number of worker threads (default: 8)"
    )

    # Post-processing and segmentation
    parser.add_argument(
        "--smoothing", type=int, help="Median smoothing kernel width (default: off)"
    )
    parser.add_argument("--invert", action="store_true", help="Invert the depth map")
    parser.add_argument("--zones", type=int, help="Number of depth zones (default: 2)")

    # Output
    parser.add_argument(
        "--output", type=str, help="Output directory for saving results"
    )
    parser.add_argument(
        "--foreground", action="store_true", help="Save a cut-out of the nearest zone"
    )
    parser.add_argument(
        "--slice",
        nargs=2,
        type=int,
        metavar=("FROM", "TO"),
        help="Save a cut-out of the pixels with 8-bit depth in [FROM, TO]",
    )
    parser.add_argument(
        "--show", action="store_true", help="Display the visualization grid"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log pipeline progress"
    )

    return parser.parse_args(argv)


def setup_config(args) -> PipelineConfig:
    """Load or create pipeline configuration and apply command line overrides."""
    if args.config:
        print(f"Loading configuration from: {args.config}")
        config = load_config_from_json(args.config)
    else:
        print("Using default pipeline configuration")
        config = create_default_config()

    overrides = {
        "max_radius": args.max_radius,
        "pixel_precision": args.precision,
        "workers": args.workers,
        "smoothing_kernel": args.smoothing,
        "zones": args.zones,
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(config, name, value)
    if args.invert:
        config.invert = True
    config.show_progress = args.verbose

    validate_config(config)
    return config


def print_summary(result: DepthResult) -> None:
    """Print a short report of a pipeline run."""
    print("\nResults:")
    print("-" * 40)
    print(f"  Tiles: {len(result.tiles)}")
    print(f"  Precision: {result.precision}")
    print(f"  Search radius: {result.max_radius} px")
    print(f"  Matched pixels: {result.coverage * 100:.1f}%")
    print(f"  Time: {result.computation_time_ms:.1f} ms")
    for index, zone in enumerate(result.zones):
        print(f"  Zone {index}: [{zone.low}, {zone.high}] ({zone.count} px)")
    print()


def save_outputs(args, result: DepthResult, pair) -> None:
    """Write depth maps, visualizations and requested cut-outs."""
    output_dir = Path(args.output)
    output_dir.mkdir(parents=True, exist_ok=True)

    save_image(output_dir / "depth.png", result.depth8)
    save_image(output_dir / "depth_color.png", colorize_depth(result.depth8))
    save_image(output_dir / "depth_raw.png", colorize_field(result.raw))
    save_image(
        output_dir / "zones.png",
        create_zone_overlay(pair.main, result.depth8, result.zones),
    )
    print(f"Saved depth maps to {output_dir}")

    if not (args.foreground or args.slice):
        return

    # Cut-outs are made on the full-resolution colour photo
    depth_image = DepthImage(load_bgra(args.main))
    depth_image.load_depth_resized(result.depth8)

    if args.foreground:
        depth_image.select_foreground().save(str(output_dir / "foreground.png"))
        print("Saved foreground cut-out")
    if args.slice:
        low, high = args.slice
        depth_image.slice(low, high).save(str(output_dir / f"slice_{low}_{high}.png"))
        print(f"Saved slice [{low}, {high}]")


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    # Print header
    print("=" * 60)
    print("  Correspondence Depth Slicing")
    print("=" * 60)
    print()

    try:
        config = setup_config(args)
        pair = open_image_pair(
            args.main,
            args.reference,
            grayscale=not args.color,
            downsample_factor=args.downsample,
        )
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    print(f"Main image: {pair.main.shape[1]}x{pair.main.shape[0]}")
    print(f"Reference image: {pair.reference.shape[1]}x{pair.reference.shape[0]}")
    print("Processing...")

    estimator = DepthEstimator(config)
    discretizer = partial(grid_tiles, block_size=args.grid) if args.grid else None
    result = estimator.compute_depth(pair.main, pair.reference, discretizer)

    print_summary(result)

    if args.output:
        save_outputs(args, result, pair)

    if args.show:
        grid = create_visualization_grid(
            pair.main, pair.reference, result.raw, result.depth8, result.zones
        )
        grid = add_depth_stats_overlay(grid, result.raw, result.depth8, result.zones)

        # Resize if too large
        max_height = 900
        if grid.shape[0] > max_height:
            scale = max_height / grid.shape[0]
            grid = cv2.resize(grid, None, fx=scale, fy=scale)

        cv2.imshow("Correspondence Depth", grid)
        cv2.waitKey(0)
        cv2.destroyAllWindows()

    print("Done!")


if __name__ == "__main__":
    main()
