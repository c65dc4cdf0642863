"""
Unit tests for depth and mask images.
Author: Sumesh Thakur (sumeshthkr@gmail.com)
"""

import pytest
import numpy as np
import cv2
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from depthslice.structures import Position, Dimensions
from depthslice.depth_image import DepthImage, MaskImage, MASK_TRUE, MASK_FALSE


@pytest.fixture
def bgra():
    """4x4 BGRA image with distinct colours per pixel."""
    image = np.zeros((4, 4, 4), dtype=np.uint8)
    image[..., 0] = np.arange(16, dtype=np.uint8).reshape(4, 4) + 1
    image[..., 3] = 255
    return image


@pytest.fixture
def depth():
    """Near left half, far right half."""
    plane = np.zeros((4, 4), dtype=np.uint8)
    plane[:, :2] = 20
    plane[:, 2:] = 220
    return plane


class TestDepthImage:
    """Tests for DepthImage."""
    
    def test_fresh_depth_is_zero(self, bgra):
        """Test a new depth image has an all-zero depth map."""
        image = DepthImage(bgra)
        assert image.depth.shape == (4, 4)
        assert np.all(image.depth == 0)
        assert image.dimensions == Dimensions(4, 4)
    
    def test_strict_load_rejects_mismatch(self, bgra, depth):
        """Test a wrongly sized depth map raises and changes nothing."""
        image = DepthImage(bgra, depth)
        with pytest.raises(ValueError):
            image.load_depth(np.zeros((2, 2), dtype=np.uint8))
        assert np.array_equal(image.depth, depth)
    
    def test_resized_load(self, bgra):
        """Test the resized load rescales to the image size."""
        image = DepthImage(bgra)
        image.load_depth_resized(np.full((2, 2), 77, dtype=np.uint8))
        assert image.depth.shape == (4, 4)
        assert np.all(image.depth == 77)
    
    def test_rejects_non_bgra(self):
        """Test images need four 8-bit channels."""
        with pytest.raises(ValueError):
            DepthImage(np.zeros((4, 4, 3), dtype=np.uint8))
    
    def test_depth_split(self, bgra, depth):
        """Test zones of the stored depth map."""
        zones = DepthImage(bgra, depth).depth_split(2)
        assert [z.as_tuple() for z in zones] == [(20, 20), (220, 220)]
    
    def test_invert_depth(self, bgra, depth):
        """Test 8-bit inversion."""
        image = DepthImage(bgra, depth)
        image.invert_depth()
        assert image.depth.dtype == np.uint8
        assert np.all(image.depth[:, :2] == 235)
        assert np.all(image.depth[:, 2:] == 35)
    
    def test_slice(self, bgra, depth):
        """Test slicing clears pixels outside the range."""
        sliced = DepthImage(bgra, depth).slice(200, None)
        
        assert isinstance(sliced, MaskImage)
        assert np.all(sliced.mask[:, 2:] == MASK_TRUE)
        assert np.all(sliced.mask[:, :2] == MASK_FALSE)
        assert np.all(sliced.image[:, :2] == 0)
        assert np.array_equal(sliced.image[:, 2:], bgra[:, 2:])
    
    def test_select_foreground(self, bgra, depth):
        """Test the foreground is the nearest zone."""
        foreground = DepthImage(bgra, depth).select_foreground()
        assert np.all(foreground.mask[:, :2] == MASK_TRUE)
        assert np.all(foreground.mask[:, 2:] == MASK_FALSE)
    
    def test_resize(self, bgra, depth):
        """Test resizing keeps image and depth aligned."""
        image = DepthImage(bgra, depth)
        image.resize(Dimensions(8, 6))
        assert image.image.shape == (6, 8, 4)
        assert image.depth.shape == (6, 8)
    
    def test_file_round_trip(self, tmp_path, bgra, depth):
        """Test opening an image and loading a depth map from disk."""
        cv2.imwrite(str(tmp_path / "photo.png"), bgra)
        cv2.imwrite(str(tmp_path / "depth.png"), depth)
        
        image = DepthImage.open(str(tmp_path / "photo.png"))
        image.load_depth_from_file(str(tmp_path / "depth.png"))
        assert np.array_equal(image.depth, depth)


class TestMaskImage:
    """Tests for MaskImage."""
    
    def test_default_mask(self, bgra):
        """Test a new mask includes everything."""
        assert np.all(MaskImage(bgra).mask == MASK_TRUE)
    
    def test_strict_mask_load(self, bgra):
        """Test a wrongly sized mask raises and changes nothing."""
        image = MaskImage(bgra)
        with pytest.raises(ValueError):
            image.load_mask(np.zeros((3, 3), dtype=np.uint8))
        assert np.all(image.mask == MASK_TRUE)
    
    def test_resized_mask_stays_binary(self, bgra):
        """Test nearest-neighbour rescaling keeps mask values binary."""
        image = MaskImage(bgra)
        image.load_mask_resized(np.array([[255, 0], [0, 255]], dtype=np.uint8))
        assert set(np.unique(image.mask)) <= {MASK_TRUE, MASK_FALSE}
        assert image.mask[0, 0] == MASK_TRUE
        assert image.mask[0, 3] == MASK_FALSE
    
    def test_mask_logic(self, bgra):
        """Test and / or / not on masks."""
        left = np.zeros((4, 4), dtype=np.uint8)
        left[:, :2] = MASK_TRUE
        top = np.zeros((4, 4), dtype=np.uint8)
        top[:2] = MASK_TRUE
        
        both = MaskImage(bgra, left)
        both.mask_and(MaskImage(bgra, top))
        assert np.count_nonzero(both.mask) == 4
        
        either = MaskImage(bgra, left)
        either.mask_or(MaskImage(bgra, top))
        assert np.count_nonzero(either.mask) == 12
        
        either.mask_not()
        assert np.count_nonzero(either.mask) == 4
        assert np.all(either.mask[2:, 2:] == MASK_TRUE)
        
        either.mask_reset()
        assert np.all(either.mask == MASK_TRUE)
    
    def test_mask_copy_resizes(self, bgra):
        """Test copying a mask from a differently sized image."""
        small = MaskImage(np.zeros((2, 2, 4), dtype=np.uint8), np.zeros((2, 2), dtype=np.uint8))
        image = MaskImage(bgra)
        image.mask_copy(small)
        assert image.mask.shape == (4, 4)
        assert np.all(image.mask == MASK_FALSE)
    
    def test_apply_mask(self, bgra):
        """Test excluded pixels are cleared to transparent black."""
        mask = np.full((4, 4), MASK_TRUE, dtype=np.uint8)
        mask[0, 0] = MASK_FALSE
        image = MaskImage(bgra, mask)
        image.apply_mask()
        assert np.all(image.image[0, 0] == 0)
        assert np.array_equal(image.image[1:], bgra[1:])
    
    def test_image_brightness(self, bgra):
        """Test brightness only touches included colour channels."""
        mask = np.full((4, 4), MASK_FALSE, dtype=np.uint8)
        mask[0, 0] = MASK_TRUE
        image = MaskImage(bgra, mask)
        image.image_brightness(300)
        assert image.image[0, 0, 0] == 255
        assert image.image[0, 0, 3] == 255
        assert image.image[1, 1, 0] == bgra[1, 1, 0]
    
    def test_image_replace(self, bgra):
        """Test pasting is clipped to the image and limited to the mask."""
        mask = np.full((4, 4), MASK_TRUE, dtype=np.uint8)
        mask[3, 3] = MASK_FALSE
        image = MaskImage(bgra, mask)
        patch = MaskImage(np.full((3, 3, 4), 200, dtype=np.uint8))
        
        image.image_replace(patch, Position(2, 2))
        assert np.all(image.image[2, 2] == 200)
        assert np.all(image.image[2, 3] == 200)
        assert np.array_equal(image.image[3, 3], bgra[3, 3])
        assert np.array_equal(image.image[:2], bgra[:2])
    
    def test_save(self, tmp_path, bgra):
        """Test saving writes a file."""
        path = tmp_path / "mask.png"
        MaskImage(bgra).save(str(path))
        assert path.exists()
