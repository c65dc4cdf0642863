"""
Reference Discretizers
======================

Two simple discretizers that cut an image into a gap-free,
non-overlapping list of tiles:

- grid_tiles: fixed-size blocks, each carrying its mean value
- quadtree_tiles: recursive quartering driven by a TileScorer /
  ScoreEquality pair; a region stops splitting once its four quarters
  score as equal or it reaches the minimum size or maximum depth

Any other engine can be plugged into the pipeline through the
Discretizer protocol.

Author: Sumesh Thakur (sumeshthkr@gmail.com)

References:
- Quadtree decomposition: R. Finkel and J. Bentley, "Quad trees: a data
  structure for retrieval on composite keys", Acta Informatica, 1974
"""

import numpy as np
from typing import List, Protocol

from .structures import Position, Dimensions, Tile
from .hooks import TileScorer, ScoreEquality


class Discretizer(Protocol):
    """Produces the tiling of a main image."""
    
    def __call__(self, pixels: np.ndarray) -> List[Tile]:
        ...


def pixel_value(pixel):
    """Plain Python value for a pixel: int for scalars, tuple for channel vectors."""
    array = np.asarray(pixel)
    if array.ndim == 0:
        return int(array)
    return tuple(int(v) for v in array)


def grid_tiles(pixels: np.ndarray, block_size: int) -> List[Tile]:
    """
    Cut an image into square blocks (edge blocks may be smaller).
    
    Args:
        pixels: (H, W) or (H, W, C) image
        block_size: Side length of the blocks
        
    Returns:
        Row-major list of tiles carrying the (floored) mean of their block
    """
    if block_size < 1:
        raise ValueError("block_size must be at least 1")
    pixels = np.asarray(pixels)
    height, width = pixels.shape[:2]
    tiles = []
    for y in range(0, height, block_size):
        for x in range(0, width, block_size):
            block = pixels[y:y + block_size, x:x + block_size]
            mean = block.reshape(-1, *pixels.shape[2:]).mean(axis=0)
            tiles.append(Tile(
                position=Position(x, y),
                size=Dimensions(width=block.shape[1], height=block.shape[0]),
                value=pixel_value(np.floor(mean)),
            ))
    return tiles


def _quarters(position: Position, size: Dimensions):
    left_w = size.width // 2
    top_h = size.height // 2
    for dy, h in ((0, top_h), (top_h, size.height - top_h)):
        for dx, w in ((0, left_w), (left_w, size.width - left_w)):
            if w > 0 and h > 0:
                yield Position(position.x + dx, position.y + dy), Dimensions(width=w, height=h)


def quadtree_tiles(
    pixels: np.ndarray,
    scorer: TileScorer,
    checker: ScoreEquality,
    min_size: int = 15,
    max_depth: int = 20
) -> List[Tile]:
    """
    Recursively quarter an image until each region is homogeneous.
    
    Args:
        pixels: (H, W) or (H, W, C) image
        scorer: Tile score callback
        checker: Score equality predicate
        min_size: Regions whose smaller side is at most this are not split
        max_depth: Maximum number of subdivisions
        
    Returns:
        Tiles sorted row-major by their top-left corner, each carrying its
        top-left pixel value
    """
    pixels = np.asarray(pixels)
    tiles = []
    pending = [(Position(0, 0), Dimensions.of(pixels), 0)]
    
    while pending:
        position, size, depth = pending.pop()
        if size.width == 0 or size.height == 0:
            continue
        
        leaf = min(size.width, size.height) <= min_size or depth >= max_depth
        if not leaf:
            children = list(_quarters(position, size))
            scores = [scorer.score(pixels, pos, dims) for pos, dims in children]
            leaf = all(checker.equal(scores[0], other) for other in scores[1:])
        
        if leaf:
            tiles.append(Tile(position, size, pixel_value(pixels[position.y, position.x])))
        else:
            pending.extend((pos, dims, depth + 1) for pos, dims in children)
    
    tiles.sort(key=lambda tile: (tile.position.y, tile.position.x))
    return tiles
