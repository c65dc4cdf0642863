"""
Image Preparation Module
========================

Helpers run before correspondence matching: bringing the main image's
brightness in line with the reference, deriving a pixel tolerance from
image statistics and converting 16-bit images to 8 bits.

Author: Sumesh Thakur (sumeshthkr@gmail.com)
"""

import logging
import math
import numpy as np
from typing import Tuple, Union

logger = logging.getLogger(__name__)


def estimate_precision_luma(image: np.ndarray, percent: float) -> int:
    """
    Pixel tolerance for a single-channel image.
    
    Takes the value found at ``percent`` of the way through the sorted
    pixel values.
    
    Args:
        image: (H, W) image
        percent: Position in the sorted values, in [0.0, 1.0]
        
    Returns:
        Tolerance in the image's value units
        
    Raises:
        ValueError: If percent is out of range or the image is empty
    """
    if not 0.0 <= percent <= 1.0:
        raise ValueError(f"Wrong percent value: {percent}, should be in [0.0, 1.0]")
    pixels = np.sort(np.asarray(image).reshape(-1))
    if pixels.size == 0:
        raise ValueError("Cannot estimate precision of an empty image")
    index = min(int(pixels.size * percent), pixels.size - 1)
    return int(pixels[index])


def estimate_precision_rgb(image: np.ndarray, percent: float) -> Tuple[int, ...]:
    """
    Per-channel pixel tolerance for a multi-channel image.
    
    Mean absolute difference between successive pixels in row-major order,
    scaled by ``percent`` and rounded up.
    
    Args:
        image: (H, W, C) image
        percent: Scale factor, in [0.0, 2.0]
        
    Returns:
        Tuple with one tolerance per channel
    """
    if not 0.0 <= percent <= 2.0:
        raise ValueError(f"Wrong percent value: {percent}, should be in [0.0, 2.0]")
    image = np.asarray(image)
    if image.ndim != 3:
        raise ValueError(f"Expected (H, W, C) image, got shape {image.shape}")
    pixels = image.reshape(-1, image.shape[2]).astype(np.int64)
    if pixels.shape[0] == 0:
        raise ValueError("Cannot estimate precision of an empty image")
    # The first pixel is compared with itself, as if the scan started on it
    steps = np.abs(np.diff(pixels, axis=0)).sum(axis=0)
    means = steps / pixels.shape[0]
    return tuple(int(math.ceil(m * percent)) for m in means)


def estimate_precision(image: np.ndarray, percent: float) -> Union[int, Tuple[int, ...]]:
    """Dispatch to the luma or rgb estimator based on the image layout."""
    if np.asarray(image).ndim == 2:
        return estimate_precision_luma(image, percent)
    return estimate_precision_rgb(image, percent)


def normalize_brightness(
    main: np.ndarray,
    reference: np.ndarray,
    tolerance: float = 0.34
) -> np.ndarray:
    """
    Scale the main image so its per-channel mean matches the reference.
    
    Images whose per-channel brightness ratios are all within
    ``tolerance`` of 1.0 are returned unchanged (as a copy).
    
    Args:
        main: Main image, (H, W) or (H, W, C)
        reference: Reference image with the same channel layout
        tolerance: Relative brightness gap that is left alone
        
    Returns:
        New image with the main image's dtype
    """
    main = np.asarray(main)
    reference = np.asarray(reference)
    if main.shape[2:] != reference.shape[2:]:
        raise ValueError("Main and reference images must have the same channel layout")
    
    axes = (0, 1)
    main_mean = main.astype(np.float64).mean(axis=axes)
    ref_mean = reference.astype(np.float64).mean(axis=axes)
    # A black channel cannot be rescaled
    ratio = np.where(main_mean > 0, ref_mean / np.where(main_mean > 0, main_mean, 1.0), 1.0)
    
    if np.all(np.abs(1.0 - ratio) < tolerance):
        logger.debug("No need to change brightness (ratio %s)", np.round(ratio, 3))
        return main.copy()
    
    logger.info("Rescaling main image brightness by %s", np.round(ratio, 3))
    info = np.iinfo(main.dtype) if np.issubdtype(main.dtype, np.integer) else None
    scaled = main.astype(np.float64) * ratio
    if info is not None:
        scaled = np.clip(np.floor(scaled), info.min, info.max)
    return scaled.astype(main.dtype)


def to_8bit(image: np.ndarray) -> np.ndarray:
    """Convert a 16-bit image to 8 bits by dropping the low byte."""
    image = np.asarray(image)
    if image.dtype == np.uint8:
        return image.copy()
    if image.dtype != np.uint16:
        raise ValueError(f"Expected uint8 or uint16 image, got {image.dtype}")
    return (image >> 8).astype(np.uint8)


def to_16bit(image: np.ndarray) -> np.ndarray:
    """Widen an 8-bit image to 16 bits (0..255 -> 0..65535)."""
    image = np.asarray(image)
    if image.dtype == np.uint16:
        return image.copy()
    if image.dtype != np.uint8:
        raise ValueError(f"Expected uint8 or uint16 image, got {image.dtype}")
    return image.astype(np.uint16) * 257
