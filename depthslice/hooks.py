"""
Discretizer Plugin Hooks
========================

The block discretizer that cuts the main image into homogeneous tiles is
pluggable. It calls back into this package through two small capability
contracts:

- TileScorer.score(data, position, size) -> int: correspondence distance
  of the tile's top-left pixel (0 when nothing matched)
- ScoreEquality.equal(left, right) -> bool: homogeneity predicate used to
  decide whether neighbouring tiles belong together

Author: Sumesh Thakur (sumeshthkr@gmail.com)
"""

import numpy as np
from typing import Optional, Protocol

from .structures import Position, Dimensions
from .search import search, relative_pos, FloorPolicy


class TileScorer(Protocol):
    """Maps a tile of the main image to a scalar merge criterion."""
    
    def score(self, data: np.ndarray, position: Position, size: Dimensions) -> int:
        ...


class ScoreEquality(Protocol):
    """Decides whether two tile scores are close enough to merge."""
    
    def equal(self, left: int, right: int) -> bool:
        ...


class DepthScorer:
    """
    Scores tiles by their correspondence distance in a reference image.
    
    The tile's top-left position is remapped proportionally from main-image
    coordinates into the reference image and the ring search is run from
    there with the tile's top-left pixel as probe.
    """
    
    def __init__(
        self,
        reference: np.ndarray,
        main_size: Dimensions,
        precision,
        max_radius: Optional[int] = None,
        min_distance: int = 0,
        floor_policy: FloorPolicy = FloorPolicy.DISCARD
    ):
        """
        Args:
            reference: Reference pixel array (H, W) or (H, W, C)
            main_size: Dimensions of the main image
            precision: Per-channel pixel tolerance
            max_radius: Search radius (None = 1/20 of the reference's larger side)
            min_distance: Search distance floor (0 = off)
            floor_policy: Discard or clamp floored matches
        """
        self.reference = np.asarray(reference)
        self.reference_size = Dimensions.of(self.reference)
        self.main_size = main_size
        self.precision = precision
        if max_radius is None:
            max_radius = max(1, self.reference_size.max_side // 20)
        self.max_radius = max_radius
        self.min_distance = min_distance
        self.floor_policy = floor_policy
    
    def score(self, data: np.ndarray, position: Position, size: Dimensions) -> int:
        guess = relative_pos(position, self.main_size, self.reference_size)
        match = search(
            data[position.y, position.x],
            self.reference,
            guess,
            self.max_radius,
            self.precision,
            min_distance=self.min_distance,
            floor_policy=self.floor_policy,
        )
        return 0 if match is None else match.distance


class DepthChecker:
    """Scores are equal if both are 0 or they differ by at most ``precision``."""
    
    def __init__(self, precision: int):
        self.precision = precision
    
    def equal(self, left: int, right: int) -> bool:
        if left == 0 and right == 0:
            return True
        return abs(int(left) - int(right)) <= self.precision
