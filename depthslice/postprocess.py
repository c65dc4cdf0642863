"""
Depth Post-Processing Module
============================

Turns a sparse depth field into a clean dense one. Four independent stages,
each returning a new array and leaving its input untouched:

1. gap_fill  - fill unresolved cells with the lower median of the nearest ring
2. smooth    - windowed median over the row-major cell sequence
3. normalize - stretch resolved values to the full [0, MAX] range
4. invert    - MAX - v, swapping near and far

Author: Sumesh Thakur (sumeshthkr@gmail.com)

References:
- Median filter: https://en.wikipedia.org/wiki/Median_filter
- numpy sliding_window_view: https://numpy.org/doc/stable/reference/generated/numpy.lib.stride_tricks.sliding_window_view.html
"""

import logging
import numpy as np
from numpy.lib.stride_tricks import sliding_window_view
from typing import Optional, Tuple, Union

from .structures import DepthField
from .parallel import run_chunked, DEFAULT_WORKERS

logger = logging.getLogger(__name__)

# Ceiling of the resolved depth range (full uint32)
DEPTH_MAX = int(np.iinfo(np.uint32).max)

DepthLike = Union[DepthField, np.ndarray]


def _split(depth: DepthLike) -> Tuple[np.ndarray, np.ndarray, bool]:
    """Values, resolved mask and whether the input was a DepthField."""
    if isinstance(depth, DepthField):
        return depth.values, depth.resolved, True
    values = np.asarray(depth)
    if values.ndim != 2:
        raise ValueError(f"Depth must be 2-D, got shape {values.shape}")
    return values, np.ones(values.shape, dtype=bool), False


def _join(values: np.ndarray, resolved: np.ndarray, is_field: bool) -> DepthLike:
    if is_field:
        return DepthField(values=values, resolved=resolved)
    return values


def _ring_values(field: DepthField, y: int, x: int, radius: int) -> np.ndarray:
    """Resolved values on the square ring of half-width ``radius`` around (x, y)."""
    height, width = field.shape
    x0, x1 = max(0, x - radius), min(width, x + radius + 1)
    # Columns skip the corner rows, which the row slices already cover
    y0, y1 = max(0, y - radius + 1), min(height, y + radius)
    
    parts = []
    if y - radius >= 0:
        row = slice(x0, x1)
        parts.append(field.values[y - radius, row][field.resolved[y - radius, row]])
    if y + radius < height:
        row = slice(x0, x1)
        parts.append(field.values[y + radius, row][field.resolved[y + radius, row]])
    if x - radius >= 0 and y0 < y1:
        col = slice(y0, y1)
        parts.append(field.values[col, x - radius][field.resolved[col, x - radius]])
    if x + radius < width and y0 < y1:
        col = slice(y0, y1)
        parts.append(field.values[col, x + radius][field.resolved[col, x + radius]])
    
    if not parts:
        return np.empty(0, dtype=field.values.dtype)
    return np.concatenate(parts)


def gap_fill(
    field: DepthField,
    max_radius: Optional[int] = None,
    workers: int = DEFAULT_WORKERS
) -> DepthField:
    """
    Fill unresolved cells from their nearest resolved neighbours.
    
    For every unresolved cell, rings of radius 1, 2, ... are examined until
    one holds at least one resolved value; the cell receives the lower
    median (sorted ascending, index (n - 1) // 2) of that ring. Reads go to
    the input snapshot and writes to a new field, so a fill never feeds
    another fill within the same call.
    
    Args:
        field: Depth field to fill
        max_radius: Largest ring examined (default min(H, W))
        workers: Number of worker threads
        
    Returns:
        New DepthField. Cells with no resolved value within reach (an
        entirely empty field, or on a 1 x N strip any hole more than one
        cell from a resolved value) stay unresolved. The pipeline later
        resolves those with replace_unresolved, so in its output a 0 can be
        a placeholder rather than a measured depth. Pass a larger
        max_radius to reach further.
    """
    out = field.copy()
    if field.is_complete or not field.resolved.any():
        return out
    
    height, width = field.shape
    limit = max_radius if max_radius is not None else min(height, width)
    if limit < 1:
        raise ValueError("max_radius must be at least 1")
    
    holes = np.argwhere(~field.resolved)
    
    def worker(_chunk_index: int, start: int, stop: int) -> None:
        for y, x in holes[start:stop]:
            for radius in range(1, limit + 1):
                found = _ring_values(field, int(y), int(x), radius)
                if found.size:
                    found = np.sort(found)
                    out.values[y, x] = found[(found.size - 1) // 2]
                    out.resolved[y, x] = True
                    break
    
    run_chunked(len(holes), worker, workers)
    logger.debug(
        "Gap fill resolved %d of %d cells",
        len(holes) - out.unresolved_count, len(holes)
    )
    return out


def smooth_sequence(
    values: np.ndarray,
    resolved: np.ndarray,
    kernel: int,
    workers: int = DEFAULT_WORKERS
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Windowed median over a 1-D sequence of optional values.
    
    The window for position i is the half-open range
    [max(0, i - kernel // 2), min(len, i + kernel // 2)), so edge windows
    are smaller and never wrap. Only resolved samples take part; the result
    is the median element sorted[n // 2]. A window with no resolved samples
    leaves the position unchanged.
    
    Args:
        values: 1-D array of values
        resolved: 1-D bool mask of valid samples
        kernel: Window width (< 3 disables smoothing)
        workers: Number of worker threads
        
    Returns:
        (values, resolved) as new arrays
    """
    if kernel < 0:
        raise ValueError("kernel must be non-negative")
    out_values = values.copy()
    out_resolved = resolved.copy()
    if kernel < 3 or values.size == 0:
        return out_values, out_resolved
    
    half = kernel // 2
    samples = np.where(resolved, values.astype(np.float64), np.nan)
    # Row i of the view covers samples[i - half:i + half]
    windows = sliding_window_view(
        np.pad(samples, half, constant_values=np.nan), 2 * half
    )[:values.size]
    
    def worker(_chunk_index: int, start: int, stop: int) -> None:
        chunk = windows[start:stop]
        counts = np.count_nonzero(~np.isnan(chunk), axis=1)
        # NaN sorts last, so the valid samples come first
        ordered = np.sort(chunk, axis=1)
        picks = np.take_along_axis(ordered, (counts // 2)[:, None], axis=1)[:, 0]
        has_samples = counts > 0
        target = out_values[start:stop]
        target[has_samples] = picks[has_samples].astype(values.dtype)
        out_resolved[start:stop] |= has_samples
    
    run_chunked(values.size, worker, workers)
    return out_values, out_resolved


def smooth(field: DepthLike, kernel: int, workers: int = DEFAULT_WORKERS) -> DepthLike:
    """
    Median-smooth a depth field along its row-major cell sequence.
    
    See smooth_sequence for the window and median rules.
    
    Args:
        field: DepthField or resolved depth array
        kernel: Window width (< 3 returns an unchanged copy)
        workers: Number of worker threads
        
    Returns:
        New array of the same kind and shape
    """
    values, resolved, is_field = _split(field)
    flat_values, flat_resolved = smooth_sequence(
        values.reshape(-1), resolved.reshape(-1), kernel, workers
    )
    return _join(
        flat_values.reshape(values.shape),
        flat_resolved.reshape(values.shape),
        is_field,
    )


def _map_resolved(values: np.ndarray, resolved: np.ndarray, fn, workers: int) -> np.ndarray:
    """Apply ``fn`` chunk-wise to the resolved cells of ``values``."""
    flat_values = values.reshape(-1)
    flat_resolved = resolved.reshape(-1)
    out = flat_values.astype(np.uint32)
    
    def worker(_chunk_index: int, start: int, stop: int) -> None:
        mask = flat_resolved[start:stop]
        chunk = out[start:stop]
        chunk[mask] = fn(flat_values[start:stop][mask])
    
    run_chunked(flat_values.size, worker, workers)
    return out.reshape(values.shape)


def normalize(
    depth: DepthLike,
    max_value: int = DEPTH_MAX,
    workers: int = DEFAULT_WORKERS
) -> DepthLike:
    """
    Stretch resolved values to the full [0, max_value] range ("broaden").
    
    v -> (v - lo) * max_value // (hi - lo) in exact integer arithmetic, where
    lo and hi are the smallest and largest resolved values, so hi always
    lands on max_value. A uniform field (hi == lo) maps to all zeros.
    
    Args:
        depth: DepthField or resolved depth array
        max_value: Ceiling of the output range (at most DEPTH_MAX)
        workers: Number of worker threads
        
    Returns:
        New uint32 array of the same kind and shape
        
    Raises:
        ValueError: If a resolved value lies outside [0, DEPTH_MAX]
    """
    if not 0 < max_value <= DEPTH_MAX:
        raise ValueError(f"max_value must be in (0, {DEPTH_MAX}]")
    values, resolved, is_field = _split(depth)
    if not resolved.any():
        return _join(values.astype(np.uint32), resolved.copy(), is_field)
    
    lo = int(values[resolved].min())
    hi = int(values[resolved].max())
    if lo < 0 or hi > DEPTH_MAX:
        raise ValueError(f"Depth values must lie in [0, {DEPTH_MAX}] to normalize")
    span = hi - lo
    if span == 0:
        logger.debug("Uniform depth field (%d), normalizing to zeros", lo)
    
    def stretch(chunk: np.ndarray) -> np.ndarray:
        if span == 0:
            return np.zeros(chunk.shape, dtype=np.uint32)
        # Both factors fit in 32 bits, so the product fits in uint64
        shifted = (chunk.astype(np.int64) - lo).astype(np.uint64)
        return (shifted * np.uint64(max_value) // np.uint64(span)).astype(np.uint32)
    
    out = _map_resolved(values, resolved, stretch, workers)
    return _join(out, resolved.copy(), is_field)


def invert(
    depth: DepthLike,
    max_value: int = DEPTH_MAX,
    workers: int = DEFAULT_WORKERS
) -> DepthLike:
    """
    Invert resolved values: v -> max_value - v.
    
    Args:
        depth: DepthField or resolved depth array
        max_value: Ceiling of the value range
        workers: Number of worker threads
        
    Returns:
        New uint32 array of the same kind and shape
        
    Raises:
        ValueError: If a resolved value exceeds max_value
    """
    if not 0 <= max_value <= DEPTH_MAX:
        raise ValueError(f"max_value must be in [0, {DEPTH_MAX}]")
    values, resolved, is_field = _split(depth)
    if resolved.any():
        values_seen = values[resolved]
        if int(values_seen.max()) > max_value or int(values_seen.min()) < 0:
            raise ValueError(f"Depth values must lie in [0, {max_value}] to invert")
    
    out = _map_resolved(
        values,
        resolved,
        lambda chunk: (max_value - chunk.astype(np.int64)).astype(np.uint32),
        workers,
    )
    return _join(out, resolved.copy(), is_field)


def replace_unresolved(field: DepthField, default: int = 0) -> np.ndarray:
    """
    Resolve every remaining gap with ``default``.
    
    Returns:
        uint32 array with no unresolved cells
    """
    return np.where(field.resolved, field.values, default).astype(np.uint32)


def to_luma8(depth: np.ndarray, max_value: int = DEPTH_MAX) -> np.ndarray:
    """
    Quantize a resolved depth array to 8 bits: v * 255 // max_value.
    
    Args:
        depth: Resolved depth array with values in [0, max_value]
        max_value: Ceiling of the input range
        
    Returns:
        uint8 array of the same shape
    """
    if max_value <= 0:
        raise ValueError("max_value must be positive")
    values = np.asarray(depth).astype(np.uint64)
    return np.minimum(values * 255 // max_value, 255).astype(np.uint8)
