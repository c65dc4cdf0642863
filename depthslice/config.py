"""
Pipeline Configuration Module
=============================

Handles loading and validation of the correspondence depth pipeline
parameters. Supports JSON configuration files or programmatic defaults.

Author: Sumesh Thakur (sumeshthkr@gmail.com)

References:
- OpenCV depth map tutorial: https://docs.opencv.org/4.x/dd/d53/tutorial_py_depthmap.html
"""

import json
from dataclasses import dataclass, asdict, fields
from typing import Optional
from pathlib import Path

from .search import FloorPolicy


@dataclass
class PipelineConfig:
    """
    Stores the tunable parameters of the depth pipeline.
    
    Attributes:
        max_radius: Ring search radius in reference pixels (None = 1/20 of the larger side)
        pixel_precision: Explicit per-channel pixel tolerance (None = estimate from the image)
        pixel_precision_percent: Percentile used to derive the pixel tolerance
        depth_precision: Largest score difference the discretizer treats as equal
        min_distance: Matches closer than this are handled by floor_policy (0 = off)
        floor_policy: "discard" drops floored matches, "clamp" raises them to min_distance
        smoothing_kernel: Median window width for the smoothing stage (< 3 = off)
        gap_fill_radius: Largest ring examined while gap filling (None = min(H, W))
        zones: Number of depth zones for segmentation
        invert: Invert the normalized depth so near and far swap
        workers: Number of worker threads for the chunked stages
        min_tile_size: Regions at or below this side length are never split
        max_split_depth: Maximum quadtree subdivision depth
        brightness_tolerance: Relative brightness gap below which images are left alone
        show_progress: Show a progress bar while matching tiles
    """
    max_radius: Optional[int] = None
    pixel_precision: Optional[int] = None
    pixel_precision_percent: float = 0.03
    depth_precision: int = 20
    min_distance: int = 0
    floor_policy: str = FloorPolicy.DISCARD.value
    smoothing_kernel: int = 0
    gap_fill_radius: Optional[int] = None
    zones: int = 2
    invert: bool = False
    workers: int = 8
    min_tile_size: int = 15
    max_split_depth: int = 20
    brightness_tolerance: float = 0.34
    show_progress: bool = False

    def __post_init__(self):
        validate_config(self)

    @property
    def policy(self) -> FloorPolicy:
        return FloorPolicy(self.floor_policy)

    def search_radius(self, reference_max_side: int) -> int:
        """
        Resolve the search radius for a reference image.
        
        Args:
            reference_max_side: Larger side of the reference image in pixels
            
        Returns:
            Configured radius, or 1/20 of the reference's larger side (at least 1)
        """
        if self.max_radius is not None:
            return self.max_radius
        return max(1, reference_max_side // 20)


def validate_config(config: PipelineConfig) -> None:
    """
    Check parameter ranges.
    
    Raises:
        ValueError: If any parameter is out of range
    """
    if config.max_radius is not None and config.max_radius < 0:
        raise ValueError("max_radius must be non-negative")
    if config.pixel_precision is not None and config.pixel_precision < 0:
        raise ValueError("pixel_precision must be non-negative")
    if not 0.0 <= config.pixel_precision_percent <= 1.0:
        raise ValueError("pixel_precision_percent must be in [0.0, 1.0]")
    if config.depth_precision < 0:
        raise ValueError("depth_precision must be non-negative")
    if config.min_distance < 0:
        raise ValueError("min_distance must be non-negative")
    if config.floor_policy not in {p.value for p in FloorPolicy}:
        raise ValueError(f"Unknown floor_policy: {config.floor_policy}")
    if config.smoothing_kernel < 0:
        raise ValueError("smoothing_kernel must be non-negative")
    if config.gap_fill_radius is not None and config.gap_fill_radius < 1:
        raise ValueError("gap_fill_radius must be at least 1")
    if not 0 <= config.zones <= 255:
        raise ValueError("zones must be in [0, 255]")
    if config.workers < 1:
        raise ValueError("workers must be at least 1")
    if config.min_tile_size < 1:
        raise ValueError("min_tile_size must be at least 1")
    if config.max_split_depth < 0:
        raise ValueError("max_split_depth must be non-negative")
    if config.brightness_tolerance < 0:
        raise ValueError("brightness_tolerance must be non-negative")


def load_config_from_json(config_path: str) -> PipelineConfig:
    """
    Load pipeline configuration from a JSON file.
    
    The JSON file holds a flat object whose keys are PipelineConfig
    field names; omitted keys keep their defaults.
    
    Args:
        config_path: Path to the JSON configuration file
        
    Returns:
        PipelineConfig object with loaded parameters
        
    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config file is invalid
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")
    
    with open(path, 'r') as f:
        data = json.load(f)
    
    if not isinstance(data, dict):
        raise ValueError("Configuration root must be a JSON object")
    
    # Reject typos instead of silently ignoring them
    known_fields = {f.name for f in fields(PipelineConfig)}
    for key in data:
        if key not in known_fields:
            raise ValueError(f"Unknown field in config: {key}")
    
    return PipelineConfig(**data)


def create_default_config(
    max_radius: Optional[int] = None,
    depth_precision: int = 20,
    zones: int = 2,
    workers: int = 8
) -> PipelineConfig:
    """
    Create a default pipeline configuration with reasonable parameters.
    
    Args:
        max_radius: Search radius (None = derive from the reference size)
        depth_precision: Score tolerance for the discretizer
        zones: Number of depth zones
        workers: Worker thread count
        
    Returns:
        PipelineConfig with default parameters
    """
    return PipelineConfig(
        max_radius=max_radius,
        depth_precision=depth_precision,
        zones=zones,
        workers=workers
    )


def save_config_to_json(config: PipelineConfig, output_path: str) -> None:
    """
    Save pipeline configuration to a JSON file.
    
    Args:
        config: PipelineConfig object to save
        output_path: Path for the output JSON file
    """
    with open(output_path, 'w') as f:
        json.dump(asdict(config), f, indent=4)
