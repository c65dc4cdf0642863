"""
Correspondence Depth Slicing
============================

Estimates a per-pixel depth (disparity) map for a main photo by searching
for approximate correspondences in a second reference photo of the same
scene, then cleans the sparse result into a dense depth field that can be
clustered into zones and used for foreground/background masking.

Author: Sumesh Thakur (sumeshthkr@gmail.com)

Why did the depth map refuse to pick a side?
It only ever saw things in zones! 🎭📸

References:
- Block matching: K. Konolige, "Small Vision Systems: Hardware and Implementation", 1997
- Lloyd's algorithm: S. Lloyd, "Least squares quantization in PCM", IEEE TIT, 1982
- OpenCV image processing: https://docs.opencv.org/4.x/d2/d96/tutorial_py_table_of_contents_imgproc.html
"""

from .structures import Position, Dimensions, Tile, Zone, Match, DepthField
from .search import search, relative_pos, point_distance, FloorPolicy
from .builder import build_depth_field
from .postprocess import (
    gap_fill,
    smooth,
    normalize,
    invert,
    replace_unresolved,
    to_luma8,
    DEPTH_MAX,
)
from .segmenter import depth_split, slice_mask, select_foreground

__version__ = "1.0.0"
__author__ = "Sumesh Thakur"
__email__ = "sumeshthkr@gmail.com"

__all__ = [
    "Position",
    "Dimensions",
    "Tile",
    "Zone",
    "Match",
    "DepthField",
    "search",
    "relative_pos",
    "point_distance",
    "FloorPolicy",
    "build_depth_field",
    "gap_fill",
    "smooth",
    "normalize",
    "invert",
    "replace_unresolved",
    "to_luma8",
    "DEPTH_MAX",
    "depth_split",
    "slice_mask",
    "select_foreground",
]
