"""
Depth Segmentation Module
=========================

Clusters the 8-bit depth histogram into contiguous value zones (1-D
k-means with a hard iteration cap) and builds inclusion masks from zone
bounds, e.g. a foreground mask from the nearest zone.

Author: Sumesh Thakur (sumeshthkr@gmail.com)

References:
- Lloyd's algorithm: S. Lloyd, "Least squares quantization in PCM",
  IEEE Transactions on Information Theory, 1982
"""

import logging
import numpy as np
from typing import List, Optional

from .structures import Zone

logger = logging.getLogger(__name__)

MAX_ITERATIONS = 100
LEVELS = 256


def _samples(depth: np.ndarray) -> np.ndarray:
    samples = np.asarray(depth).reshape(-1)
    if samples.size and not np.issubdtype(samples.dtype, np.integer):
        raise ValueError(f"Depth must hold integer samples, got {samples.dtype}")
    if samples.size and (samples.min() < 0 or samples.max() >= LEVELS):
        raise ValueError("Depth must be quantized to 8 bits (values in [0, 255])")
    return samples.astype(np.int64)


def initial_centroids(low: int, high: int, zones: int) -> np.ndarray:
    """Evenly spaced centroids across the observed [low, high] range."""
    steps = np.arange(zones, dtype=np.int64)
    return low + (high - low) * steps // (zones - 1)


def _assign(levels: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """Index of the nearest centroid per level; ties go to the lower centroid."""
    gaps = np.abs(levels[:, None] - centroids[None, :])
    return np.argmin(gaps, axis=1)


def depth_split(
    depth: np.ndarray,
    zones: int,
    max_iterations: int = MAX_ITERATIONS
) -> List[Zone]:
    """
    Cluster 8-bit depth samples into ``zones`` contiguous value ranges.
    
    Centroids start evenly spaced over the observed [min, max] range. Each
    iteration assigns every sample to its nearest centroid, moves each
    centroid to the integer mean of its samples (empty clusters keep their
    centroid) and sorts the result. The loop stops when the sorted set no
    longer changes, or after ``max_iterations`` rounds.
    
    Args:
        depth: uint8 depth array (any shape)
        zones: Number of zones requested
        max_iterations: Iteration cap
        
    Returns:
        One Zone per centroid in ascending order, holding the observed
        [min, max] and the count of its samples. Fewer than two zones yields
        a single open zone covering everything.
    """
    samples = _samples(depth)
    if zones < 2:
        return [Zone(None, None, int(samples.size))]
    if samples.size == 0:
        return [Zone(None, None, 0) for _ in range(zones)]
    
    # Work on the histogram: 256 levels instead of every pixel
    histogram = np.bincount(samples, minlength=LEVELS)
    levels = np.flatnonzero(histogram)
    weights = histogram[levels]
    
    centroids = initial_centroids(int(levels[0]), int(levels[-1]), zones)
    converged = False
    for iteration in range(max_iterations):
        labels = _assign(levels, centroids)
        updated = centroids.copy()
        for k in range(zones):
            member = labels == k
            total = int(weights[member].sum())
            if total:
                updated[k] = int((levels[member] * weights[member]).sum()) // total
        updated.sort()
        if np.array_equal(updated, centroids):
            converged = True
            logger.debug("Depth split converged after %d iterations", iteration + 1)
            break
        centroids = updated
    
    if not converged:
        logger.warning("Depth split stopped after %d iterations without converging", max_iterations)
    
    labels = _assign(levels, centroids)
    result = []
    for k in range(zones):
        member = labels == k
        if not member.any():
            result.append(Zone(None, None, 0))
            continue
        result.append(Zone(
            int(levels[member].min()),
            int(levels[member].max()),
            int(weights[member].sum()),
        ))
    return result


def slice_mask(
    depth: np.ndarray,
    low: Optional[int] = None,
    high: Optional[int] = None
) -> np.ndarray:
    """
    Boolean inclusion mask where low <= depth <= high.
    
    Open ends default to the minimum and maximum of the depth dtype.
    """
    depth = np.asarray(depth)
    if np.issubdtype(depth.dtype, np.integer):
        info = np.iinfo(depth.dtype)
        type_min, type_max = info.min, info.max
    else:
        type_min, type_max = -np.inf, np.inf
    low = type_min if low is None else low
    high = type_max if high is None else high
    return (depth >= low) & (depth <= high)


def select_foreground(depth: np.ndarray, max_iterations: int = MAX_ITERATIONS) -> np.ndarray:
    """
    Mask of the first (lowest-valued) zone of a two-zone split.
    
    Args:
        depth: uint8 depth array
        max_iterations: Iteration cap for the split
        
    Returns:
        Boolean mask, True inside the foreground zone
    """
    zones = depth_split(depth, 2, max_iterations)
    for zone in zones:
        if not zone.is_empty:
            return slice_mask(depth, zone.low, zone.high)
    return slice_mask(depth)
