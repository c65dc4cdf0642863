"""
Chunked Parallel Execution
==========================

Splits an index range into contiguous chunks, one per worker, and runs a
callback on each chunk in a thread pool. Each callback owns the output
slice for its chunk, so no two workers ever write the same cell.

Author: Sumesh Thakur (sumeshthkr@gmail.com)

References:
- concurrent.futures: https://docs.python.org/3/library/concurrent.futures.html
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Tuple

DEFAULT_WORKERS = 8


def chunk_ranges(length: int, workers: int = DEFAULT_WORKERS) -> List[Tuple[int, int]]:
    """
    Split ``range(length)`` into contiguous half-open chunks.
    
    Chunk size is ``1 + length // workers`` so there are never more than
    ``workers`` chunks and the last one may be shorter.
    
    Args:
        length: Number of items
        workers: Number of workers
        
    Returns:
        List of (start, stop) pairs covering the range exactly once
    """
    if workers < 1:
        raise ValueError("workers must be at least 1")
    if length <= 0:
        return []
    chunk_size = 1 + length // workers
    return [(start, min(start + chunk_size, length)) for start in range(0, length, chunk_size)]


def run_chunked(
    length: int,
    worker: Callable[[int, int, int], None],
    workers: int = DEFAULT_WORKERS
) -> None:
    """
    Run ``worker(chunk_index, start, stop)`` over every chunk of ``range(length)``.
    
    Blocks until all chunks are done. Exceptions raised by a worker are
    re-raised in the caller.
    
    Args:
        length: Number of items
        worker: Callback owning the [start, stop) slice of the output
        workers: Number of worker threads
    """
    ranges = chunk_ranges(length, workers)
    if len(ranges) <= 1:
        # Not worth a pool
        for index, (start, stop) in enumerate(ranges):
            worker(index, start, stop)
        return
    
    with ThreadPoolExecutor(max_workers=len(ranges)) as executor:
        futures = [
            executor.submit(worker, index, start, stop)
            for index, (start, stop) in enumerate(ranges)
        ]
        for future in futures:
            future.result()
