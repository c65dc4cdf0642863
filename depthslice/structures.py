"""
Core Data Structures
====================

Value types shared by the correspondence search, the depth field builder,
the post-processing stages and the segmenter.

Author: Sumesh Thakur (sumeshthkr@gmail.com)
"""

import numpy as np
from dataclasses import dataclass
from typing import Any, Optional, Tuple


@dataclass(frozen=True)
class Position:
    """Integer (x, y) coordinate in a raster."""
    x: int
    y: int

    def as_xy(self) -> Tuple[int, int]:
        return (self.x, self.y)


@dataclass(frozen=True)
class Dimensions:
    """Integer (width, height) of a raster."""
    width: int
    height: int

    @classmethod
    def of(cls, array: np.ndarray) -> "Dimensions":
        """Dimensions of an (H, W) or (H, W, C) array."""
        return cls(width=int(array.shape[1]), height=int(array.shape[0]))

    @property
    def shape(self) -> Tuple[int, int]:
        """Numpy-style (rows, cols) shape."""
        return (self.height, self.width)

    @property
    def max_side(self) -> int:
        return max(self.width, self.height)


@dataclass(frozen=True)
class Tile:
    """
    Rectangular homogeneous block of an image.

    Attributes:
        position: Top-left corner in image coordinates
        size: Width and height of the block
        value: Representative pixel value (scalar or channel vector)

    Tiles produced for one image form a gap-free, non-overlapping
    partition of its pixel grid.
    """
    position: Position
    size: Dimensions
    value: Any

    @property
    def rows(self) -> slice:
        return slice(self.position.y, self.position.y + self.size.height)

    @property
    def cols(self) -> slice:
        return slice(self.position.x, self.position.x + self.size.width)

    @property
    def area(self) -> int:
        return self.size.width * self.size.height


@dataclass(frozen=True)
class Match:
    """Result of a successful correspondence search."""
    distance: int
    position: Position


@dataclass(frozen=True)
class Zone:
    """
    Inclusive range of depth sample values belonging to one cluster.

    Attributes:
        low: Smallest sample assigned to the cluster (None = open end)
        high: Largest sample assigned to the cluster (None = open end)
        count: Number of samples assigned to the cluster

    A zone with both ends None and a zero count is an empty cluster; the
    single zone returned for fewer than two requested zones has both ends
    None and covers everything.
    """
    low: Optional[int]
    high: Optional[int]
    count: int = 0

    @property
    def is_empty(self) -> bool:
        return self.count == 0 and self.low is None and self.high is None

    def as_tuple(self) -> Tuple[Optional[int], Optional[int]]:
        return (self.low, self.high)


@dataclass
class DepthField:
    """
    Dense depth array where every cell may still be unresolved.

    Attributes:
        values: uint32 array of shape (H, W); only meaningful where resolved
        resolved: bool array of shape (H, W); False means no correspondence yet

    Unresolved cells always hold 0 in ``values`` but that 0 is never read
    as a depth: ``resolved`` is the only source of truth.
    """
    values: np.ndarray
    resolved: np.ndarray

    def __post_init__(self):
        if self.values.ndim != 2:
            raise ValueError(f"Depth values must be 2-D, got shape {self.values.shape}")
        if self.values.shape != self.resolved.shape:
            raise ValueError(
                f"Resolved mask shape {self.resolved.shape} does not match "
                f"values shape {self.values.shape}"
            )

    @classmethod
    def empty(cls, size: Dimensions) -> "DepthField":
        """Create a field of the given size with every cell unresolved."""
        return cls(
            values=np.zeros(size.shape, dtype=np.uint32),
            resolved=np.zeros(size.shape, dtype=bool),
        )

    @classmethod
    def from_array(cls, array: np.ndarray) -> "DepthField":
        """
        Wrap a fully resolved depth array.
        
        Raises:
            ValueError: If a value does not fit in uint32
        """
        array = np.asarray(array)
        if array.size and (array.min() < 0 or array.max() > np.iinfo(np.uint32).max):
            raise ValueError("Depth values must lie in the uint32 range")
        values = array.astype(np.uint32)
        return cls(values=values, resolved=np.ones(values.shape, dtype=bool))

    @classmethod
    def from_optional(cls, rows) -> "DepthField":
        """Build a field from nested lists where None marks unresolved cells."""
        resolved = np.array([[v is not None for v in row] for row in rows], dtype=bool)
        values = np.array(
            [[0 if v is None else v for v in row] for row in rows], dtype=np.uint32
        )
        return cls(values=values, resolved=resolved)

    def to_optional(self) -> list:
        """Nested lists with None for unresolved cells (handy for debugging)."""
        return [
            [int(v) if ok else None for v, ok in zip(row_v, row_ok)]
            for row_v, row_ok in zip(self.values, self.resolved)
        ]

    def copy(self) -> "DepthField":
        return DepthField(values=self.values.copy(), resolved=self.resolved.copy())

    @property
    def shape(self) -> Tuple[int, int]:
        return self.values.shape

    @property
    def dimensions(self) -> Dimensions:
        return Dimensions.of(self.values)

    @property
    def is_complete(self) -> bool:
        return bool(self.resolved.all())

    @property
    def unresolved_count(self) -> int:
        return int(self.resolved.size - np.count_nonzero(self.resolved))
