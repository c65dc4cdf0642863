"""
Unit tests for depth post-processing.
Author: Sumesh Thakur (sumeshthkr@gmail.com)
"""

import pytest
import numpy as np
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from depthslice.structures import DepthField
from depthslice.postprocess import (
    gap_fill,
    smooth,
    smooth_sequence,
    normalize,
    invert,
    replace_unresolved,
    to_luma8,
    DEPTH_MAX,
)

N = None


class TestGapFill:
    """Tests for gap filling."""
    
    def test_fill_from_nearest_ring(self):
        """Test every hole takes the lower median of its first non-empty ring."""
        field = DepthField.from_optional([
            [1, N, 3],
            [N, N, N],
            [7, N, 9],
        ])
        filled = gap_fill(field)
        
        assert filled.to_optional() == [
            [1, 1, 3],
            [1, 3, 3],
            [7, 7, 9],
        ]
    
    def test_input_untouched(self):
        """Test gap filling returns a new field."""
        field = DepthField.from_optional([[4, N]])
        gap_fill(field)
        assert field.to_optional() == [[4, N]]
    
    def test_reads_from_snapshot(self):
        """Test a freshly filled cell never feeds another fill."""
        field = DepthField.from_optional([[5, N, N, N, N]])
        # Default reach is min(H, W) = 1
        filled = gap_fill(field)
        assert filled.to_optional() == [[5, 5, N, N, N]]
    
    def test_larger_radius(self):
        """Test a wider reach fills distant cells from the original values."""
        field = DepthField.from_optional([[5, N, N, N, 9]])
        filled = gap_fill(field, max_radius=4)
        assert filled.to_optional() == [[5, 5, 5, 9, 9]]
    
    def test_strip_reach(self):
        """Test holes out of reach on a 1 x N strip stay unresolved until replaced."""
        field = DepthField.from_optional([[5, N, N, N]])
        filled = gap_fill(field)
        assert filled.to_optional() == [[5, 5, N, N]]
        assert replace_unresolved(filled).tolist() == [[5, 5, 0, 0]]
        assert gap_fill(field, max_radius=3).to_optional() == [[5, 5, 5, 5]]
    
    def test_all_unresolved(self):
        """Test an empty field stays empty."""
        field = DepthField.from_optional([[N, N], [N, N]])
        filled = gap_fill(field)
        assert filled.unresolved_count == 4
    
    def test_complete_field_unchanged(self):
        """Test a complete field is copied as is."""
        field = DepthField.from_optional([[1, 2], [3, 4]])
        filled = gap_fill(field)
        assert filled.to_optional() == [[1, 2], [3, 4]]
        assert filled.values is not field.values
    
    def test_invalid_radius(self):
        """Test a zero reach raises."""
        field = DepthField.from_optional([[1, N]])
        with pytest.raises(ValueError):
            gap_fill(field, max_radius=0)


class TestSmooth:
    """Tests for windowed median smoothing."""
    
    def test_median_window(self):
        """Test the half-open window [i - k//2, i + k//2) and its clipped edges."""
        depth = np.array([[1, 9, 2, 8, 3]], dtype=np.uint32)
        assert smooth(depth, 3).tolist() == [[1, 9, 9, 8, 8]]
    
    def test_row_major_sequence(self):
        """Test the window runs across row boundaries."""
        depth = np.array([[1, 9], [2, 8]], dtype=np.uint32)
        assert smooth(depth, 3).tolist() == [[1, 9], [9, 8]]
    
    def test_upper_end_excluded(self):
        """Test the cell at i + k//2 is not part of the window of i."""
        depth = np.array([[0, 7, 7]], dtype=np.uint32)
        assert smooth(depth, 3).tolist() == [[0, 7, 7]]
    
    def test_fills_holes_with_neighbours(self):
        """Test unresolved cells inside a populated window get a value."""
        field = DepthField.from_optional([[4, N, 6]])
        assert smooth(field, 3).to_optional() == [[4, 4, 6]]
    
    def test_empty_window_unchanged(self):
        """Test cells with no resolved samples in reach stay unresolved."""
        field = DepthField.from_optional([[N, N, N, 5]])
        assert smooth(field, 3).to_optional() == [[N, N, N, 5]]
    
    def test_small_kernel_is_noop(self):
        """Test kernels below 3 leave the field alone."""
        depth = np.array([[1, 9, 2]], dtype=np.uint32)
        for kernel in (0, 1, 2):
            assert smooth(depth, kernel).tolist() == [[1, 9, 2]]
    
    def test_negative_kernel(self):
        """Test a negative kernel raises."""
        with pytest.raises(ValueError):
            smooth(np.zeros((2, 2), dtype=np.uint32), -1)
    
    def test_workers_do_not_change_result(self):
        """Test chunked smoothing matches single-threaded smoothing."""
        rng = np.random.default_rng(0)
        depth = rng.integers(0, 1000, size=(17, 23)).astype(np.uint32)
        single = smooth(depth, 5, workers=1)
        many = smooth(depth, 5, workers=6)
        assert np.array_equal(single, many)
    
    def test_sequence(self):
        """Test the 1-D helper used for tile sequences."""
        values, resolved = smooth_sequence(
            np.array([0, 1, 1, 0], dtype=np.uint32),
            np.array([True, True, True, False]),
            3,
        )
        assert values.tolist() == [0, 1, 1, 1]
        assert resolved.all()


class TestNormalize:
    """Tests for range normalization."""
    
    def test_stretch(self):
        """Test values are stretched and rounded down."""
        depth = np.array([[0, 5], [10, 10]], dtype=np.uint32)
        assert normalize(depth, 255).tolist() == [[0, 127], [255, 255]]
    
    def test_full_range(self):
        """Test the default ceiling is the full uint32 range."""
        depth = np.array([[3, 7]], dtype=np.uint32)
        out = normalize(depth)
        assert out.dtype == np.uint32
        assert out.tolist() == [[0, DEPTH_MAX]]
    
    def test_top_lands_on_ceiling(self):
        """Test the largest value maps exactly to DEPTH_MAX for any range."""
        for delta in range(1, 2000):
            depth = np.array([[0, delta]], dtype=np.uint32)
            assert normalize(depth).max() == DEPTH_MAX, delta
        for lo in (1, 12345, DEPTH_MAX - 37):
            depth = np.array([[lo, DEPTH_MAX]], dtype=np.uint32)
            assert normalize(depth).tolist() == [[0, DEPTH_MAX]], lo
    
    def test_exact_interior_values(self):
        """Test interior values are the floor of the exact integer ratio."""
        depth = np.array([[0, 1, 2, 3]], dtype=np.uint32)
        expected = [v * DEPTH_MAX // 3 for v in range(4)]
        assert normalize(depth).tolist() == [expected]
    
    def test_negative_values(self):
        """Test values outside the uint32 range are rejected."""
        with pytest.raises(ValueError):
            normalize(np.array([[-1, 5]], dtype=np.int64))
    
    def test_uniform_field(self):
        """Test a uniform field maps to zeros instead of dividing by zero."""
        depth = np.full((3, 3), 5, dtype=np.uint32)
        assert np.all(normalize(depth) == 0)
    
    def test_ignores_unresolved(self):
        """Test unresolved cells neither set the range nor change."""
        field = DepthField.from_optional([[10, N], [20, 30]])
        out = normalize(field, 100)
        assert out.to_optional() == [[0, N], [50, 100]]
    
    def test_invalid_ceiling(self):
        """Test ceilings outside the uint32 range raise."""
        with pytest.raises(ValueError):
            normalize(np.zeros((1, 1), dtype=np.uint32), 0)


class TestInvert:
    """Tests for depth inversion."""
    
    def test_invert(self):
        """Test v -> MAX - v."""
        depth = np.array([[0, 1, DEPTH_MAX]], dtype=np.uint32)
        assert invert(depth).tolist() == [[DEPTH_MAX, DEPTH_MAX - 1, 0]]
    
    def test_involution(self):
        """Test inverting twice restores the input."""
        depth = np.array([[0, 100], [200, 255]], dtype=np.uint32)
        assert np.array_equal(invert(invert(depth, 255), 255), depth)
    
    def test_value_above_ceiling(self):
        """Test values above the ceiling are rejected."""
        with pytest.raises(ValueError):
            invert(np.array([[300]], dtype=np.uint32), 255)
    
    def test_keeps_unresolved(self):
        """Test unresolved cells stay unresolved."""
        field = DepthField.from_optional([[N, 5]])
        assert invert(field, 10).to_optional() == [[N, 5]]


class TestResolve:
    """Tests for the final resolve and quantization helpers."""
    
    def test_replace_unresolved(self):
        """Test remaining gaps become 0."""
        field = DepthField.from_optional([[N, 5], [6, N]])
        out = replace_unresolved(field)
        assert out.dtype == np.uint32
        assert out.tolist() == [[0, 5], [6, 0]]
    
    def test_to_luma8(self):
        """Test quantization to 8 bits."""
        depth = np.array([[0, DEPTH_MAX // 2, DEPTH_MAX]], dtype=np.uint32)
        out = to_luma8(depth)
        assert out.dtype == np.uint8
        assert out.tolist() == [[0, 127, 255]]
