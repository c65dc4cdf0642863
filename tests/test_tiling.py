"""
Unit tests for the discretizer hooks and reference discretizers.
Author: Sumesh Thakur (sumeshthkr@gmail.com)
"""

import pytest
import numpy as np
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from depthslice.structures import Position, Dimensions
from depthslice.hooks import DepthScorer, DepthChecker
from depthslice.tiling import grid_tiles, quadtree_tiles, pixel_value


class PositionScorer:
    """Scores a tile by where it is, so no two tiles ever look alike."""
    
    def score(self, data, position, size):
        return position.x + 1000 * position.y


class NeverEqual:
    def equal(self, left, right):
        return False


class AlwaysEqual:
    def equal(self, left, right):
        return True


def assert_partition(tiles, shape):
    """Every pixel is covered by exactly one tile."""
    cover = np.zeros(shape, dtype=np.int32)
    for tile in tiles:
        cover[tile.rows, tile.cols] += 1
    assert np.all(cover == 1)


@pytest.fixture
def reference():
    """3x3 reference array holding 0..8."""
    return np.arange(9, dtype=np.uint16).reshape(3, 3)


class TestHooks:
    """Tests for DepthScorer and DepthChecker."""
    
    def test_score_exact_match(self, reference):
        """Test a pixel found at its guess scores 0."""
        scorer = DepthScorer(reference, Dimensions(3, 3), 0, max_radius=2)
        assert scorer.score(reference, Position(1, 1), Dimensions(1, 1)) == 0
    
    def test_score_distance(self, reference):
        """Test the score is the ring distance of the tile's top-left pixel."""
        main = reference.copy()
        main[0, 0] = 1
        scorer = DepthScorer(reference, Dimensions(3, 3), 0, max_radius=2)
        assert scorer.score(main, Position(0, 0), Dimensions(2, 2)) == 1
    
    def test_score_no_match(self, reference):
        """Test a failed search scores 0."""
        main = np.full((3, 3), 500, dtype=np.uint16)
        scorer = DepthScorer(reference, Dimensions(3, 3), 0, max_radius=2)
        assert scorer.score(main, Position(2, 2), Dimensions(1, 1)) == 0
    
    def test_default_radius(self):
        """Test the radius defaults to 1/20 of the reference's larger side."""
        scorer = DepthScorer(np.zeros((40, 60), dtype=np.uint16), Dimensions(60, 40), 0)
        assert scorer.max_radius == 3
        small = DepthScorer(np.zeros((4, 6), dtype=np.uint16), Dimensions(6, 4), 0)
        assert small.max_radius == 1
    
    def test_checker(self):
        """Test scores within the precision are equal."""
        checker = DepthChecker(5)
        assert checker.equal(0, 0)
        assert checker.equal(3, 8)
        assert checker.equal(8, 3)
        assert checker.equal(0, 5)
        assert not checker.equal(3, 9)
    
    def test_checker_zero_precision(self):
        """Test zero precision only accepts identical scores."""
        checker = DepthChecker(0)
        assert checker.equal(0, 0)
        assert checker.equal(2, 2)
        assert not checker.equal(2, 3)


class TestGridTiles:
    """Tests for the fixed grid discretizer."""
    
    def test_edge_blocks(self):
        """Test edge blocks shrink to fit."""
        pixels = np.arange(25, dtype=np.uint16).reshape(5, 5)
        tiles = grid_tiles(pixels, 2)
        
        assert len(tiles) == 9
        assert_partition(tiles, pixels.shape)
        assert tiles[0].value == 3
        assert tiles[-1].size == Dimensions(1, 1)
        assert tiles[-1].value == 24
    
    def test_multichannel_value(self):
        """Test channel vectors are averaged per channel."""
        pixels = np.zeros((2, 2, 3), dtype=np.uint8)
        pixels[0, 0] = (4, 8, 12)
        tiles = grid_tiles(pixels, 2)
        assert tiles[0].value == (1, 2, 3)
    
    def test_invalid_block(self):
        """Test a zero block size raises."""
        with pytest.raises(ValueError):
            grid_tiles(np.zeros((2, 2)), 0)


class TestQuadtreeTiles:
    """Tests for the quadtree discretizer."""
    
    def test_split_to_min_size(self):
        """Test regions stop splitting at the minimum size."""
        pixels = np.zeros((32, 32), dtype=np.uint16)
        tiles = quadtree_tiles(pixels, PositionScorer(), NeverEqual(), min_size=8)
        
        assert len(tiles) == 16
        assert all(tile.size == Dimensions(8, 8) for tile in tiles)
        assert_partition(tiles, pixels.shape)
    
    def test_max_depth(self):
        """Test the depth cap stops splitting."""
        pixels = np.zeros((32, 32), dtype=np.uint16)
        tiles = quadtree_tiles(pixels, PositionScorer(), NeverEqual(), min_size=1, max_depth=1)
        assert len(tiles) == 4
    
    def test_homogeneous_image(self):
        """Test equal quarter scores keep the region whole."""
        pixels = np.zeros((32, 32), dtype=np.uint16)
        tiles = quadtree_tiles(pixels, PositionScorer(), AlwaysEqual(), min_size=4)
        assert len(tiles) == 1
        assert tiles[0].size == Dimensions(32, 32)
    
    def test_odd_sizes_partition(self):
        """Test uneven halves still cover every pixel once."""
        pixels = np.arange(33 * 17, dtype=np.uint16).reshape(17, 33)
        tiles = quadtree_tiles(pixels, PositionScorer(), NeverEqual(), min_size=3)
        
        assert_partition(tiles, pixels.shape)
        keys = [(t.position.y, t.position.x) for t in tiles]
        assert keys == sorted(keys)
    
    def test_tile_value_is_top_left(self):
        """Test each leaf carries its top-left pixel."""
        pixels = np.arange(64, dtype=np.uint16).reshape(8, 8)
        tiles = quadtree_tiles(pixels, PositionScorer(), NeverEqual(), min_size=2)
        for tile in tiles:
            assert tile.value == pixel_value(pixels[tile.position.y, tile.position.x])
    
    def test_with_depth_hooks(self):
        """Test the depth hooks drive the quadtree on a uniform image."""
        pixels = np.zeros((16, 16), dtype=np.uint16)
        scorer = DepthScorer(np.zeros((16, 16), dtype=np.uint16), Dimensions(16, 16), 0)
        tiles = quadtree_tiles(pixels, scorer, DepthChecker(0), min_size=2)
        assert len(tiles) == 1
