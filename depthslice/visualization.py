"""
Visualization Module
====================

Renders pipeline results for inspection:
- Colorized 8-bit depth maps and raw depth fields (unresolved cells in black)
- Depth zone overlays
- A summary grid of main image, reference image, depth and zones
- Depth statistics text overlay

Author: Sumesh Thakur (sumeshthkr@gmail.com)

References:
- Google AI Blog - "Turbo, An Improved Rainbow Colormap"
  https://ai.googleblog.com/2019/08/turbo-improved-rainbow-colormap-for.html
- OpenCV colormaps: https://docs.opencv.org/4.x/d3/d50/group__imgproc__colormap.html
"""

import cv2
import numpy as np
from typing import List, Tuple

from .structures import DepthField, Zone
from .segmenter import slice_mask
from .preparations import to_8bit


def to_display(image: np.ndarray) -> np.ndarray:
    """Convert a grayscale/BGR/BGRA image of 8 or 16 bits into 8-bit BGR."""
    if image.dtype == np.uint16:
        image = to_8bit(image)
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    return image.copy()


def colorize_depth(depth8: np.ndarray) -> np.ndarray:
    """
    Apply the TURBO colormap to an 8-bit depth map.
    
    Args:
        depth8: uint8 depth map
        
    Returns:
        Colorized depth map (BGR format)
    """
    return cv2.applyColorMap(depth8.astype(np.uint8), cv2.COLORMAP_TURBO)


def colorize_field(field: DepthField) -> np.ndarray:
    """
    Colorize a depth field, painting unresolved cells black.
    
    Resolved values are stretched between their own min and max.
    """
    colorized = np.zeros(field.shape + (3,), dtype=np.uint8)
    if not field.resolved.any():
        return colorized
    
    values = field.values.astype(np.float64)
    lo = values[field.resolved].min()
    hi = values[field.resolved].max()
    span = hi - lo if hi > lo else 1.0
    normalized = np.clip((values - lo) / span, 0, 1)
    colorized = cv2.applyColorMap((normalized * 255).astype(np.uint8), cv2.COLORMAP_TURBO)
    colorized[~field.resolved] = [0, 0, 0]  # Black for unresolved
    return colorized


def zone_colors(count: int) -> List[Tuple[int, int, int]]:
    """Distinct BGR colours sampled along the TURBO colormap."""
    if count <= 0:
        return []
    samples = np.linspace(0, 255, count).astype(np.uint8).reshape(-1, 1)
    colors = cv2.applyColorMap(samples, cv2.COLORMAP_TURBO).reshape(-1, 3)
    return [tuple(int(c) for c in color) for color in colors]


def create_zone_overlay(
    image: np.ndarray,
    depth8: np.ndarray,
    zones: List[Zone],
    alpha: float = 0.5
) -> np.ndarray:
    """
    Tint each depth zone of an image with its own colour.
    
    Args:
        image: Original image (grayscale, BGR or BGRA; 8 or 16 bits)
        depth8: uint8 depth map
        zones: Zones from depth_split
        alpha: Blending factor (0 = only image, 1 = only zone colours)
        
    Returns:
        Blended image (BGR format)
    """
    base = to_display(image)
    if depth8.shape[:2] != base.shape[:2]:
        depth8 = cv2.resize(depth8, (base.shape[1], base.shape[0]), interpolation=cv2.INTER_NEAREST)
    
    tint = base.copy()
    for zone, color in zip(zones, zone_colors(len(zones))):
        if zone.is_empty:
            continue
        tint[slice_mask(depth8, zone.low, zone.high)] = color
    
    return cv2.addWeighted(base, 1 - alpha, tint, alpha, 0)


def create_depth_overlay(image: np.ndarray, depth8: np.ndarray, alpha: float = 0.5) -> np.ndarray:
    """
    Overlay colorized depth on original image.
    
    Args:
        image: Original image
        depth8: uint8 depth map
        alpha: Blending factor (0 = only image, 1 = only depth)
        
    Returns:
        Blended image with depth overlay
    """
    base = to_display(image)
    
    # Ensure same size
    if depth8.shape[:2] != base.shape[:2]:
        depth8 = cv2.resize(depth8, (base.shape[1], base.shape[0]))
    
    return cv2.addWeighted(base, 1 - alpha, colorize_depth(depth8), alpha, 0)


def create_visualization_grid(
    main_img: np.ndarray,
    reference_img: np.ndarray,
    raw: DepthField,
    depth8: np.ndarray,
    zones: List[Zone]
) -> np.ndarray:
    """
    Create a grid of all visualizations for display.
    
    Layout:
    +----------------+----------------+
    |   Main Image   | Reference Image|
    +----------------+----------------+
    |   Raw Field    |  Final Depth   |
    +----------------+----------------+
    |  Zone Overlay  |  Depth Overlay |
    +----------------+----------------+
    
    Returns:
        Combined visualization image (BGR format)
    """
    main_display = to_display(main_img)
    h, w = main_display.shape[:2]
    
    reference_display = to_display(reference_img)
    if reference_display.shape[:2] != (h, w):
        reference_display = cv2.resize(reference_display, (w, h))
    
    row1 = np.hstack([main_display, reference_display])
    row2 = np.hstack([colorize_field(raw), colorize_depth(depth8)])
    row3 = np.hstack([
        create_zone_overlay(main_display, depth8, zones),
        create_depth_overlay(main_display, depth8),
    ])
    return np.vstack([row1, row2, row3])


def add_depth_stats_overlay(
    image: np.ndarray,
    raw: DepthField,
    depth8: np.ndarray,
    zones: List[Zone]
) -> np.ndarray:
    """
    Add depth statistics overlay to image.
    
    Shows match coverage, raw distance range and the zone bounds.
    """
    result = image.copy()
    
    stats = []
    coverage = np.count_nonzero(raw.resolved) / max(1, raw.resolved.size) * 100
    stats.append(f"Matched pixels: {coverage:.1f}%")
    if raw.resolved.any():
        matched = raw.values[raw.resolved]
        stats.append(
            f"Distance: min={matched.min()}, max={matched.max()}, median={np.median(matched):.1f}px"
        )
    else:
        stats.append("Distance: No matches")
    stats.append(f"Depth8: min={depth8.min()}, max={depth8.max()}")
    for index, zone in enumerate(zones):
        stats.append(f"Zone {index}: [{zone.low}, {zone.high}] ({zone.count} px)")
    
    # Draw stats on image
    y_offset = 30
    for i, stat in enumerate(stats):
        # Draw background rectangle for readability
        text_size = cv2.getTextSize(stat, cv2.FONT_HERSHEY_SIMPLEX, 0.5, 1)[0]
        cv2.rectangle(result, (5, y_offset + i * 20 - 15),
                     (15 + text_size[0], y_offset + i * 20 + 5), (0, 0, 0), -1)
        cv2.putText(result, stat, (10, y_offset + i * 20),
                   cv2.FONT_HERSHEY_SIMPLEX, 0.5, (0, 255, 0), 1)
    
    return result
