"""
Correspondence Search Module
============================

Finds the nearest cell of a target pixel array whose value matches a probe
within a per-channel tolerance, scanning square rings of growing radius
around an expected (guess) position.

The policy is first-match, not best-match: rings are visited in a fixed
order and the first acceptable cell ends the search. Its distance to the
guess is the correspondence signal (a disparity proxy) for the probe.

Author: Sumesh Thakur (sumeshthkr@gmail.com)

References:
- Block Matching: K. Konolige, "Small Vision Systems: Hardware and Implementation",
  Robotics Research, 1997
- Chebyshev rings: https://en.wikipedia.org/wiki/Chebyshev_distance
"""

import math
import numpy as np
from enum import Enum
from typing import Optional, Tuple

from .structures import Position, Dimensions, Match


class FloorPolicy(Enum):
    """
    What to do with a match closer than the configured minimum distance.
    
    DISCARD: report no match (near-zero disparity treated as noise)
    CLAMP: keep the match but raise its distance to the floor
    """
    DISCARD = "discard"
    CLAMP = "clamp"


def relative_pos(position: Position, size: Dimensions, size_to: Dimensions) -> Position:
    """
    Proportionally remap a position from one raster into another.
    
    guess.x = floor(x * to.width / from.width), same for y.
    
    Args:
        position: Position in the source raster
        size: Dimensions of the source raster
        size_to: Dimensions of the destination raster
        
    Returns:
        Position in the destination raster
    """
    return Position(
        x=position.x * size_to.width // size.width,
        y=position.y * size_to.height // size.height,
    )


def point_distance(first: Position, second: Position) -> int:
    """Euclidean distance between two positions, rounded down."""
    dx = first.x - second.x
    dy = first.y - second.y
    return math.isqrt(dx * dx + dy * dy)


def ring_coordinates(guess: Position, radius: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Cells on the perimeter of the square of half-width ``radius`` around ``guess``.
    
    Visiting order: row y - r, row y + r (each swept x - r .. x + r), then
    column x - r, column x + r (each swept y - r .. y + r). Corner cells
    show up in both a row and a column sweep; that is harmless for a
    first-match scan.
    
    Returns:
        (xs, ys) int64 arrays in visiting order, possibly out of bounds
    """
    if radius == 0:
        return np.array([guess.x], dtype=np.int64), np.array([guess.y], dtype=np.int64)
    
    span_x = np.arange(guess.x - radius, guess.x + radius + 1, dtype=np.int64)
    span_y = np.arange(guess.y - radius, guess.y + radius + 1, dtype=np.int64)
    n = span_x.size
    
    xs = np.concatenate([
        span_x,
        span_x,
        np.full(n, guess.x - radius, dtype=np.int64),
        np.full(n, guess.x + radius, dtype=np.int64),
    ])
    ys = np.concatenate([
        np.full(n, guess.y - radius, dtype=np.int64),
        np.full(n, guess.y + radius, dtype=np.int64),
        span_y,
        span_y,
    ])
    return xs, ys


def _channels(value, target: np.ndarray, name: str) -> np.ndarray:
    """Probe/precision as signed int64 matching the target's channel layout."""
    array = np.asarray(value, dtype=np.int64)
    if target.ndim == 2:
        if array.ndim != 0:
            raise ValueError(f"{name} must be a scalar for a single-channel target")
        return array
    channels = target.shape[2]
    if array.ndim == 0:
        return np.full(channels, int(array), dtype=np.int64)
    if array.shape != (channels,):
        raise ValueError(
            f"{name} must have {channels} channels, got shape {array.shape}"
        )
    return array


def search(
    probe,
    target: np.ndarray,
    guess: Position,
    max_radius: int,
    precision,
    min_distance: int = 0,
    floor_policy: FloorPolicy = FloorPolicy.DISCARD
) -> Optional[Match]:
    """
    Find the first cell matching ``probe`` on rings of radius 0 .. max_radius - 1.
    
    A cell matches when the absolute difference of every channel is at most
    the corresponding ``precision`` channel. The search gives up early as
    soon as a whole ring lies outside the target array.
    
    Args:
        probe: Value to look for (scalar or channel vector)
        target: (H, W) or (H, W, C) array to search in
        guess: Expected match location in target coordinates
        max_radius: Number of rings to try (0 means none)
        precision: Per-channel tolerance (same shape as probe)
        min_distance: Matches closer than this are floored (0 disables)
        floor_policy: Discard or clamp floored matches
        
    Returns:
        Match with the floored Euclidean distance and matched position,
        or None if nothing matched
        
    Raises:
        ValueError: If the target is not 2-D/3-D or probe/precision shapes disagree
    """
    target = np.asarray(target)
    if target.ndim not in (2, 3):
        raise ValueError(f"Target must be (H, W) or (H, W, C), got shape {target.shape}")
    if max_radius < 0:
        raise ValueError("max_radius must be non-negative")
    
    probe_v = _channels(probe, target, "probe")
    precision_v = _channels(precision, target, "precision")
    height, width = target.shape[:2]
    
    for radius in range(max_radius):
        xs, ys = ring_coordinates(guess, radius)
        inside = (xs >= 0) & (xs < width) & (ys >= 0) & (ys < height)
        if not inside.any():
            # Larger rings only move further away from the array
            return None
        xs = xs[inside]
        ys = ys[inside]
        
        diff = np.abs(target[ys, xs].astype(np.int64) - probe_v)
        accepted = diff <= precision_v
        if accepted.ndim == 2:
            accepted = accepted.all(axis=1)
        
        hits = np.flatnonzero(accepted)
        if hits.size:
            first = hits[0]
            position = Position(int(xs[first]), int(ys[first]))
            return _apply_floor(
                Match(point_distance(guess, position), position),
                min_distance,
                floor_policy,
            )
    return None


def _apply_floor(
    match: Match,
    min_distance: int,
    floor_policy: FloorPolicy
) -> Optional[Match]:
    if match.distance >= min_distance:
        return match
    if floor_policy == FloorPolicy.CLAMP:
        return Match(min_distance, match.position)
    return None
