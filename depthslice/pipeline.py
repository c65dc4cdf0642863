"""
Depth Estimation Pipeline
=========================

Runs the full correspondence depth pipeline on a main/reference photo pair:

    brightness match -> pixel tolerance -> tiling -> depth field
    -> gap fill -> smoothing -> resolve -> normalize -> (invert) -> 8-bit
    -> depth zones

Every intermediate array is kept on the result for inspection.

Author: Sumesh Thakur (sumeshthkr@gmail.com)

References:
- OpenCV depth map tutorial: https://docs.opencv.org/4.x/dd/d53/tutorial_py_depthmap.html
"""

import logging
import time
import numpy as np
from dataclasses import dataclass, field
from typing import List, Optional

from .config import PipelineConfig
from .structures import Dimensions, DepthField, Tile, Zone
from .builder import build_depth_field
from .hooks import DepthScorer, DepthChecker
from .tiling import Discretizer, quadtree_tiles
from .postprocess import (
    gap_fill,
    smooth,
    replace_unresolved,
    normalize,
    invert,
    to_luma8,
    DEPTH_MAX,
)
from .preparations import normalize_brightness, estimate_precision
from .segmenter import depth_split

logger = logging.getLogger(__name__)


@dataclass
class DepthResult:
    """
    Container for depth estimation results.
    
    Attributes:
        tiles: Tiling of the main image used for matching
        raw: Depth field straight from the builder
        filled: Depth field after gap filling
        smoothed: Depth field after smoothing
        resolved: Dense depth with remaining gaps set to 0
        normalized: Depth stretched to [0, DEPTH_MAX] (inverted if requested)
        depth8: normalized quantized to 8 bits
        zones: Depth zones of depth8
        precision: Pixel tolerance used for matching
        max_radius: Search radius used for matching
        computation_time_ms: Time taken for computation
    """
    tiles: List[Tile]
    raw: DepthField
    filled: DepthField
    smoothed: DepthField
    resolved: np.ndarray
    normalized: np.ndarray
    depth8: np.ndarray
    zones: List[Zone] = field(default_factory=list)
    precision: object = None
    max_radius: int = 0
    computation_time_ms: float = 0.0
    
    @property
    def coverage(self) -> float:
        """Fraction of pixels that got a direct correspondence."""
        if self.raw.resolved.size == 0:
            return 0.0
        return float(np.count_nonzero(self.raw.resolved)) / self.raw.resolved.size


class DepthEstimator:
    """
    Correspondence-based depth estimator.
    
    The tiling engine is pluggable: pass any Discretizer to compute_depth,
    otherwise the built-in quadtree driven by DepthScorer / DepthChecker
    is used.
    """
    
    def __init__(self, config: Optional[PipelineConfig] = None):
        self.config = config or PipelineConfig()
    
    def resolve_precision(self, main: np.ndarray):
        """Configured pixel tolerance, or one estimated from the main image."""
        if self.config.pixel_precision is not None:
            return self.config.pixel_precision
        return estimate_precision(main, self.config.pixel_precision_percent)
    
    def tile(self, main: np.ndarray, reference: np.ndarray, precision, max_radius: int) -> List[Tile]:
        """Tile the main image with the quadtree discretizer."""
        scorer = DepthScorer(
            reference,
            Dimensions.of(main),
            precision,
            max_radius=max_radius,
            min_distance=self.config.min_distance,
            floor_policy=self.config.policy,
        )
        checker = DepthChecker(self.config.depth_precision)
        return quadtree_tiles(
            main,
            scorer,
            checker,
            min_size=self.config.min_tile_size,
            max_depth=self.config.max_split_depth,
        )
    
    def compute_depth(
        self,
        main: np.ndarray,
        reference: np.ndarray,
        discretizer: Optional[Discretizer] = None
    ) -> DepthResult:
        """
        Compute the depth of ``main`` from correspondences in ``reference``.
        
        Args:
            main: Main image, (H, W) or (H, W, C)
            reference: Reference image with the same channel layout
            discretizer: Optional tiling engine (default: quadtree)
            
        Returns:
            DepthResult with every intermediate stage
            
        Raises:
            ValueError: If the images have different channel layouts or are empty
        """
        main = np.asarray(main)
        reference = np.asarray(reference)
        if main.ndim not in (2, 3) or main.shape[2:] != reference.shape[2:]:
            raise ValueError(
                f"Main {main.shape} and reference {reference.shape} must share a channel layout"
            )
        if main.size == 0 or reference.size == 0:
            raise ValueError("Images must not be empty")
        
        cfg = self.config
        start_time = time.perf_counter()
        
        main = normalize_brightness(main, reference, cfg.brightness_tolerance)
        precision = self.resolve_precision(main)
        max_radius = cfg.search_radius(Dimensions.of(reference).max_side)
        logger.info("Precision: %s, search radius: %d", precision, max_radius)
        
        if discretizer is None:
            tiles = self.tile(main, reference, precision, max_radius)
        else:
            tiles = discretizer(main)
        logger.info("Tiled main image into %d tiles", len(tiles))
        
        raw = build_depth_field(
            tiles,
            Dimensions.of(main),
            reference,
            max_radius,
            precision,
            min_distance=cfg.min_distance,
            floor_policy=cfg.policy,
            workers=cfg.workers,
            show_progress=cfg.show_progress,
        )
        filled = gap_fill(raw, cfg.gap_fill_radius, cfg.workers)
        smoothed = smooth(filled, cfg.smoothing_kernel, cfg.workers)
        resolved = replace_unresolved(smoothed)
        
        normalized = normalize(resolved, DEPTH_MAX, cfg.workers)
        if cfg.invert:
            normalized = invert(normalized, DEPTH_MAX, cfg.workers)
        depth8 = to_luma8(normalized)
        zones = depth_split(depth8, cfg.zones)
        
        computation_time_ms = (time.perf_counter() - start_time) * 1000
        logger.info("Depth computed in %.1f ms", computation_time_ms)
        
        return DepthResult(
            tiles=tiles,
            raw=raw,
            filled=filled,
            smoothed=smoothed,
            resolved=resolved,
            normalized=normalized,
            depth8=depth8,
            zones=zones,
            precision=precision,
            max_radius=max_radius,
            computation_time_ms=computation_time_ms,
        )
