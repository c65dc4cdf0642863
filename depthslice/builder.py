"""
Depth Field Builder
===================

Expands block-level correspondences into a dense per-pixel depth field.
Each tile of the main image is matched against the reference image with
the ring search, and the resulting distance is replicated over every
pixel the tile covers.

Author: Sumesh Thakur (sumeshthkr@gmail.com)
"""

import logging
import time
import numpy as np
from typing import Sequence, Tuple
from tqdm import tqdm

from .structures import Tile, Dimensions, DepthField
from .search import search, relative_pos, FloorPolicy
from .parallel import run_chunked, chunk_ranges, DEFAULT_WORKERS
from .postprocess import smooth_sequence

logger = logging.getLogger(__name__)


def _check_tiles(tiles: Sequence[Tile], main_size: Dimensions) -> None:
    for tile in tiles:
        x, y = tile.position.as_xy()
        if (
            x < 0 or y < 0
            or tile.size.width < 0 or tile.size.height < 0
            or x + tile.size.width > main_size.width
            or y + tile.size.height > main_size.height
        ):
            raise ValueError(f"Tile at {tile.position} with size {tile.size} lies outside {main_size}")


def compute_tile_distances(
    tiles: Sequence[Tile],
    main_size: Dimensions,
    target: np.ndarray,
    max_radius: int,
    precision,
    min_distance: int = 0,
    floor_policy: FloorPolicy = FloorPolicy.DISCARD,
    workers: int = DEFAULT_WORKERS,
    show_progress: bool = False
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Run the correspondence search for every tile.
    
    Tiles are split into contiguous chunks, one per worker; each worker
    writes only its own slice of the output arrays.
    
    Args:
        tiles: Tiles of the main image
        main_size: Dimensions of the main image
        target: Reference pixel array
        max_radius: Ring search radius
        precision: Per-channel pixel tolerance
        min_distance: Search distance floor (0 = off)
        floor_policy: Discard or clamp floored matches
        workers: Number of worker threads
        show_progress: Show a progress bar for the last chunk
        
    Returns:
        (distances, found): uint32 distances per tile and a bool mask of
        tiles that found a match
    """
    target = np.asarray(target)
    target_size = Dimensions.of(target)
    distances = np.zeros(len(tiles), dtype=np.uint32)
    found = np.zeros(len(tiles), dtype=bool)
    last_chunk = len(chunk_ranges(len(tiles), workers)) - 1
    
    def worker(chunk_index: int, start: int, stop: int) -> None:
        indices = range(start, stop)
        if show_progress and chunk_index == last_chunk:
            indices = tqdm(indices, desc="Matching tiles", leave=False)
        for i in indices:
            tile = tiles[i]
            guess = relative_pos(tile.position, main_size, target_size)
            match = search(
                tile.value, target, guess, max_radius, precision,
                min_distance=min_distance, floor_policy=floor_policy
            )
            if match is not None:
                distances[i] = match.distance
                found[i] = True
    
    start_time = time.perf_counter()
    run_chunked(len(tiles), worker, workers)
    logger.info(
        "Found distances for %d/%d tiles, elapsed: %.3fs",
        int(found.sum()), len(tiles), time.perf_counter() - start_time
    )
    return distances, found


def paint_tiles(
    tiles: Sequence[Tile],
    distances: np.ndarray,
    found: np.ndarray,
    main_size: Dimensions,
    workers: int = DEFAULT_WORKERS
) -> DepthField:
    """
    Replicate per-tile distances over each tile's footprint.
    
    Tiles without a match leave their cells unresolved. Because tiles
    partition the image, every cell is written by at most one worker.
    """
    field = DepthField.empty(main_size)
    
    def worker(_chunk_index: int, start: int, stop: int) -> None:
        for i in range(start, stop):
            if not found[i]:
                continue
            tile = tiles[i]
            field.values[tile.rows, tile.cols] = distances[i]
            field.resolved[tile.rows, tile.cols] = True
    
    run_chunked(len(tiles), worker, workers)
    return field


def build_depth_field(
    tiles: Sequence[Tile],
    main_size: Dimensions,
    target: np.ndarray,
    max_radius: int,
    precision,
    min_distance: int = 0,
    floor_policy: FloorPolicy = FloorPolicy.DISCARD,
    smoothing: int = 0,
    workers: int = DEFAULT_WORKERS,
    show_progress: bool = False
) -> DepthField:
    """
    Build a dense depth field from a tiling of the main image.
    
    Args:
        tiles: Gap-free, non-overlapping tiles of the main image
        main_size: Dimensions of the main image
        target: Reference pixel array
        max_radius: Ring search radius
        precision: Per-channel pixel tolerance
        min_distance: Search distance floor (0 = off)
        floor_policy: Discard or clamp floored matches
        smoothing: Median kernel applied to the per-tile distance sequence
            before expansion (< 3 = off)
        workers: Number of worker threads
        show_progress: Show a progress bar while matching
        
    Returns:
        DepthField of ``main_size``; cells of unmatched tiles stay unresolved
        
    Raises:
        ValueError: If a tile lies outside the main image
    """
    tiles = list(tiles)
    _check_tiles(tiles, main_size)
    
    distances, found = compute_tile_distances(
        tiles, main_size, target, max_radius, precision,
        min_distance=min_distance, floor_policy=floor_policy,
        workers=workers, show_progress=show_progress
    )
    
    if smoothing >= 3:
        start_time = time.perf_counter()
        distances, found = smooth_sequence(distances, found, smoothing, workers)
        logger.info("Smoothed tile distances, elapsed: %.3fs", time.perf_counter() - start_time)
    
    return paint_tiles(tiles, distances, found, main_size, workers)
