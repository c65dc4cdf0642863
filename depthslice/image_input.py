"""
Image Input Module
==================

Loads the main/reference photo pair and writes depth and mask images.
All arrays follow OpenCV conventions (BGR / BGRA channel order).

Author: Sumesh Thakur (sumeshthkr@gmail.com)

References:
- OpenCV imread: https://docs.opencv.org/4.x/d4/da8/group__imgcodecs.html
"""

import logging
import cv2
import numpy as np
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from .preparations import to_16bit

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass
class ImagePair:
    """
    Container for a main photo and its reference photo.
    
    Attributes:
        main: Main image; depth is estimated for its pixels
        reference: Second photo of the same scene searched for correspondences
        main_path: Where the main image was loaded from
        reference_path: Where the reference image was loaded from
    """
    main: np.ndarray
    reference: np.ndarray
    main_path: str = ""
    reference_path: str = ""


def _read(path: PathLike, flags: int) -> np.ndarray:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Image file not found: {path}")
    image = cv2.imread(str(path), flags)
    if image is None:
        raise ValueError(f"Failed to open image: {path}")
    return image


def load_image(path: PathLike, grayscale: bool = True) -> np.ndarray:
    """
    Load an image as 16-bit, grayscale (H, W) or BGR (H, W, 3).
    
    8-bit files are widened to 16 bits so tolerances are comparable
    across inputs.
    
    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If OpenCV cannot decode it
    """
    color_flag = cv2.IMREAD_GRAYSCALE if grayscale else cv2.IMREAD_COLOR
    image = _read(path, cv2.IMREAD_ANYDEPTH | color_flag)
    if image.dtype == np.uint8:
        image = to_16bit(image)
    elif image.dtype != np.uint16:
        image = cv2.normalize(image, None, 0, 65535, cv2.NORM_MINMAX).astype(np.uint16)
    return image


def load_bgra(path: PathLike) -> np.ndarray:
    """Load an image as 8-bit BGRA (H, W, 4)."""
    image = _read(path, cv2.IMREAD_UNCHANGED)
    if image.dtype != np.uint8:
        image = cv2.convertScaleAbs(image, alpha=255.0 / max(1, int(image.max())))
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGRA)
    if image.shape[2] == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2BGRA)
    return image


def load_gray8(path: PathLike) -> np.ndarray:
    """Load an image as 8-bit grayscale (H, W), e.g. a saved depth map or mask."""
    return _read(path, cv2.IMREAD_GRAYSCALE)


def downsample(image: np.ndarray, factor: float) -> np.ndarray:
    """Shrink an image by ``factor`` (1.0 = unchanged)."""
    if factor <= 1.0:
        return image
    height, width = image.shape[:2]
    size = (max(1, int(width / factor)), max(1, int(height / factor)))
    return cv2.resize(image, size, interpolation=cv2.INTER_AREA)


def open_image_pair(
    main_path: PathLike,
    reference_path: PathLike,
    grayscale: bool = True,
    downsample_factor: float = 1.0
) -> ImagePair:
    """
    Convenience function to load a main/reference pair.
    
    Args:
        main_path: Path to the main photo
        reference_path: Path to the reference photo
        grayscale: Load as single-channel images
        downsample_factor: Factor to downsample both images (1.0 = no downsampling)
        
    Returns:
        ImagePair with 16-bit images
    """
    main = downsample(load_image(main_path, grayscale), downsample_factor)
    reference = downsample(load_image(reference_path, grayscale), downsample_factor)
    logger.info(
        "Loaded main %s and reference %s",
        main.shape[:2], reference.shape[:2]
    )
    return ImagePair(main, reference, str(main_path), str(reference_path))


def save_image(path: PathLike, image: np.ndarray) -> None:
    """
    Write an image, creating parent directories as needed.
    
    Raises:
        ValueError: If OpenCV cannot encode the image
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    if not cv2.imwrite(str(path), image):
        raise ValueError(f"Failed to save image: {path}")
