"""
Depth and Mask Images
=====================

Containers pairing a BGRA photo with either an 8-bit depth map
(DepthImage) or an 8-bit inclusion mask (MaskImage). A DepthImage is
sliced into MaskImages by depth range; masks can then be combined and
applied for compositing.

Loading a depth map or mask comes in two flavours that are never mixed:
strict (sizes must match, otherwise ValueError and nothing changes) and
resized (the buffer is rescaled to the image).

Author: Sumesh Thakur (sumeshthkr@gmail.com)
"""

import cv2
import numpy as np
from typing import List, Optional

from .structures import Position, Dimensions, Zone
from .segmenter import depth_split, slice_mask
from .postprocess import invert
from .image_input import load_bgra, load_gray8, save_image

MASK_TRUE = 255
MASK_FALSE = 0


def _check_bgra(image: np.ndarray) -> np.ndarray:
    image = np.asarray(image)
    if image.ndim != 3 or image.shape[2] != 4 or image.dtype != np.uint8:
        raise ValueError(f"Expected uint8 BGRA image (H, W, 4), got {image.dtype} {image.shape}")
    return image


def _check_plane(plane: np.ndarray, name: str) -> np.ndarray:
    plane = np.asarray(plane)
    if plane.ndim != 2 or plane.dtype != np.uint8:
        raise ValueError(f"{name} must be a uint8 (H, W) array, got {plane.dtype} {plane.shape}")
    return plane


def _resize(plane: np.ndarray, size: Dimensions, interpolation: int) -> np.ndarray:
    return cv2.resize(plane, (size.width, size.height), interpolation=interpolation)


class MaskImage:
    """
    A BGRA image with an inclusion mask.
    
    Mask cells are MASK_TRUE (included) or MASK_FALSE (excluded).
    """
    
    def __init__(self, image: np.ndarray, mask: Optional[np.ndarray] = None):
        self.image = _check_bgra(image).copy()
        if mask is None:
            self.mask = np.full(self.image.shape[:2], MASK_TRUE, dtype=np.uint8)
        else:
            self.mask = np.empty(self.image.shape[:2], dtype=np.uint8)
            self.load_mask(mask)
    
    @classmethod
    def open(cls, image_path: str) -> "MaskImage":
        return cls(load_bgra(image_path))
    
    @property
    def width(self) -> int:
        return int(self.image.shape[1])
    
    @property
    def height(self) -> int:
        return int(self.image.shape[0])
    
    @property
    def dimensions(self) -> Dimensions:
        return Dimensions(self.width, self.height)
    
    def load_mask(self, mask: np.ndarray) -> None:
        """
        Replace the mask with one of exactly the image's size.
        
        Raises:
            ValueError: If the sizes don't match (the mask is left untouched)
        """
        mask = _check_plane(mask, "mask")
        if mask.shape != self.mask.shape:
            raise ValueError(f"Sizes don't match: mask {mask.shape} vs image {self.mask.shape}")
        self.mask = mask.copy()
    
    def load_mask_resized(self, mask: np.ndarray) -> None:
        """Replace the mask, rescaling it to the image's size first."""
        mask = _check_plane(mask, "mask")
        if mask.shape != self.mask.shape:
            # Nearest neighbour keeps the mask binary
            mask = _resize(mask, self.dimensions, cv2.INTER_NEAREST)
        self.mask = mask.copy()
    
    def load_mask_from_file(self, mask_path: str, resize: bool = False) -> None:
        mask = load_gray8(mask_path)
        if resize:
            self.load_mask_resized(mask)
        else:
            self.load_mask(mask)
    
    def _other_mask(self, other: "MaskImage") -> np.ndarray:
        if other.mask.shape == self.mask.shape:
            return other.mask
        return _resize(other.mask, self.dimensions, cv2.INTER_NEAREST)
    
    def mask_copy(self, other: "MaskImage") -> None:
        self.load_mask_resized(other.mask)
    
    def mask_and(self, other: "MaskImage") -> None:
        both = (self.mask == MASK_TRUE) & (self._other_mask(other) == MASK_TRUE)
        self.mask = np.where(both, MASK_TRUE, MASK_FALSE).astype(np.uint8)
    
    def mask_or(self, other: "MaskImage") -> None:
        either = (self.mask == MASK_TRUE) | (self._other_mask(other) == MASK_TRUE)
        self.mask = np.where(either, MASK_TRUE, MASK_FALSE).astype(np.uint8)
    
    def mask_not(self) -> None:
        self.mask = (MASK_TRUE - self.mask).astype(np.uint8)
    
    def mask_reset(self) -> None:
        self.mask = np.full(self.image.shape[:2], MASK_TRUE, dtype=np.uint8)
    
    def apply_mask(self) -> None:
        """Clear every excluded pixel to transparent black."""
        self.image[self.mask == MASK_FALSE] = 0
    
    def image_brightness(self, value: int) -> None:
        """Add ``value`` to the colour channels of included pixels (alpha untouched)."""
        included = self.mask == MASK_TRUE
        colour = self.image[..., :3].astype(np.int32)
        colour[included] += value
        self.image[..., :3] = np.clip(colour, 0, 255).astype(np.uint8)
    
    def image_replace(self, other: "MaskImage", start_point: Position) -> None:
        """
        Paste ``other``'s pixels with their top-left at ``start_point``,
        only where this image's mask is set.
        """
        x0, y0 = start_point.as_xy()
        y1 = min(y0 + other.height, self.height)
        x1 = min(x0 + other.width, self.width)
        if x0 >= x1 or y0 >= y1:
            return
        region = self.image[y0:y1, x0:x1]
        included = self.mask[y0:y1, x0:x1] == MASK_TRUE
        region[included] = other.image[:y1 - y0, :x1 - x0][included]
    
    def resize(self, to: Dimensions) -> None:
        self.image = _resize(self.image, to, cv2.INTER_LINEAR)
        self.mask = _resize(self.mask, to, cv2.INTER_NEAREST)
    
    def save(self, path: str) -> None:
        save_image(path, self.image)


class DepthImage:
    """
    A BGRA image with an 8-bit depth map of the same size.
    
    A fresh DepthImage has an all-zero depth map.
    """
    
    def __init__(self, image: np.ndarray, depth: Optional[np.ndarray] = None):
        self.image = _check_bgra(image).copy()
        self.depth = np.zeros(self.image.shape[:2], dtype=np.uint8)
        if depth is not None:
            self.load_depth(depth)
    
    @classmethod
    def open(cls, image_path: str) -> "DepthImage":
        return cls(load_bgra(image_path))
    
    @property
    def width(self) -> int:
        return int(self.image.shape[1])
    
    @property
    def height(self) -> int:
        return int(self.image.shape[0])
    
    @property
    def dimensions(self) -> Dimensions:
        return Dimensions(self.width, self.height)
    
    def load_depth(self, depth: np.ndarray) -> None:
        """
        Replace the depth map with one of exactly the image's size.
        
        Raises:
            ValueError: If the sizes don't match (the depth map is left untouched)
        """
        depth = _check_plane(depth, "depth")
        if depth.shape != self.depth.shape:
            raise ValueError(f"Sizes don't match: depth {depth.shape} vs image {self.depth.shape}")
        self.depth = depth.copy()
    
    def load_depth_resized(self, depth: np.ndarray) -> None:
        """Replace the depth map, rescaling it to the image's size first."""
        depth = _check_plane(depth, "depth")
        if depth.shape != self.depth.shape:
            depth = _resize(depth, self.dimensions, cv2.INTER_LINEAR)
        self.depth = depth.copy()
    
    def load_depth_from_file(self, depth_path: str, resize: bool = False) -> None:
        depth = load_gray8(depth_path)
        if resize:
            self.load_depth_resized(depth)
        else:
            self.load_depth(depth)
    
    def resize(self, to: Dimensions) -> None:
        self.image = _resize(self.image, to, cv2.INTER_LINEAR)
        self.depth = _resize(self.depth, to, cv2.INTER_LINEAR)
    
    def depth_split(self, zones: int) -> List[Zone]:
        return depth_split(self.depth, zones)
    
    def invert_depth(self) -> None:
        self.depth = invert(self.depth, max_value=255).astype(np.uint8)
    
    def slice(self, low: Optional[int] = None, high: Optional[int] = None) -> MaskImage:
        """
        Cut out the pixels whose depth lies in [low, high].
        
        Returns:
            MaskImage with the mask applied (excluded pixels cleared)
        """
        included = slice_mask(self.depth, low, high)
        result = MaskImage(
            self.image,
            np.where(included, MASK_TRUE, MASK_FALSE).astype(np.uint8),
        )
        result.apply_mask()
        return result
    
    def select_foreground(self) -> MaskImage:
        """Slice out the first zone of a two-zone depth split."""
        for zone in self.depth_split(2):
            if not zone.is_empty:
                return self.slice(zone.low, zone.high)
        return self.slice()
