import pytest
import numpy as np
from GNNpy.core.errors import InvalidDimensionError
from GNNpy.utils import calculate_fan_in_fan_out, check_positive, glorot_normal, glorot_uniform, zeros

class TestFanInFanOut:
    """Test suite for the fan-in and fan-out calculation utility."""

    def test_matrix_dimensions(self):
        """Test fan-in and fan-out calculation for weight matrices.

        For (out, in) matrices:
        - fan_in is number of input features (second dimension)
        - fan_out is number of output features (first dimension)
        """
        weight = np.random.randn(100, 50)

        fan_in, fan_out = calculate_fan_in_fan_out(weight)

        assert fan_in == 50, "Fan-in should match input features"
        assert fan_out == 100, "Fan-out should match output features"

    def test_stacked_dimensions(self):
        """Test fan-in and fan-out for stacked filters such as Chebyshev weights.

        - fan_in = in * k
        - fan_out = out * k
        """
        weight = np.random.randn(8, 4, 3)

        fan_in, fan_out = calculate_fan_in_fan_out(weight)

        assert fan_in == 4 * 3
        assert fan_out == 8 * 3

    def test_1d_array_error(self):
        """Test that the function raises an error for 1D arrays."""
        with pytest.raises(ValueError) as exc_info:
            calculate_fan_in_fan_out(np.array([1, 2, 3]))

        assert "array.shape should have at least 2 dimensions" in str(exc_info.value)

    def test_scalar_error(self):
        with pytest.raises(ValueError):
            calculate_fan_in_fan_out(np.array(5))

    def test_zero_dimension(self):
        """Test handling of arrays with zero-sized dimensions."""
        fan_in, fan_out = calculate_fan_in_fan_out(np.zeros((10, 0)))

        assert fan_in == 0, "Fan-in should be zero for zero-dimensional input"
        assert fan_out == 10, "Fan-out should match output features"


class TestInitializers:
    """Tests for weight initializers"""

    def test_glorot_uniform_bound(self):
        np.random.seed(0)
        w = glorot_uniform(30, 20)
        bound = np.sqrt(6.0 / 50)
        assert w.shape == (30, 20)
        assert w.dtype == np.float64
        assert np.all(np.abs(w) <= bound)

    def test_glorot_uniform_stacked(self):
        w = glorot_uniform(4, 3, 2)
        assert w.shape == (4, 3, 2)
        assert np.all(np.abs(w) <= np.sqrt(6.0 / (6 + 8)))

    def test_glorot_normal_std(self):
        np.random.seed(0)
        w = glorot_normal(200, 300)
        assert w.shape == (200, 300)
        assert np.isclose(w.std(), np.sqrt(2.0 / 500), rtol=0.05)

    def test_dtype(self):
        assert glorot_uniform(2, 3, dtype=np.float32).dtype == np.float32
        assert glorot_normal(2, 3, dtype=np.float32).dtype == np.float32

    def test_vector_shape(self):
        assert glorot_uniform(5).shape == (5,)

    def test_zeros(self):
        b = zeros(4)
        assert b.shape == (4,)
        assert not b.any()


class TestCheckPositive:
    """Tests for the size validation shared by layer constructors"""

    def test_accepts_positive_integers(self):
        check_positive("Layer", in_channels=3, k=np.int64(2))

    @pytest.mark.parametrize("value", [0, -1, 2.0, True, None])
    def test_rejects(self, value):
        with pytest.raises(InvalidDimensionError) as exc:
            check_positive("Layer", size=value)
        assert exc.value.name == "size"
        assert exc.value.layer == "Layer"
