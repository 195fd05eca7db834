import operator
from typing import NamedTuple

import pytest
import numpy as np

from GNNpy.core.errors import BoundsViolationError, ShapeMismatchError
from GNNpy.ops import FILL_VALUES, gather, resolve_aggr, scatter


class Pair(NamedTuple):
    a: np.ndarray
    b: np.ndarray


class TestResolveAggr:
    """Tests for aggregator normalisation"""

    def test_names_and_aliases(self):
        assert resolve_aggr("add") == "add"
        assert resolve_aggr("sum") == "add"
        assert resolve_aggr("+") == "add"
        assert resolve_aggr("PROD") == "mul"
        assert resolve_aggr("*") == "mul"
        assert resolve_aggr("mean") == "mean"

    def test_callables(self):
        assert resolve_aggr(operator.add) == "add"
        assert resolve_aggr(np.sum) == "add"
        assert resolve_aggr(operator.mul) == "mul"
        assert resolve_aggr(max) == "max"
        assert resolve_aggr(np.minimum) == "min"
        assert resolve_aggr(np.mean) == "mean"

    def test_unknown(self):
        with pytest.raises(ValueError):
            resolve_aggr("median")
        with pytest.raises(ValueError):
            resolve_aggr(lambda a, b: a)


class TestGather:
    def test_columns(self):
        x = np.arange(6).reshape(2, 3)
        np.testing.assert_array_equal(gather(x, np.array([2, 0, 2])), [[2, 0, 2], [5, 3, 5]])

    def test_bundle(self):
        data = Pair(a=np.arange(3), b=np.arange(6).reshape(2, 3))
        out = gather(data, np.array([1]))
        assert isinstance(out, Pair)
        np.testing.assert_array_equal(out.a, [1])
        np.testing.assert_array_equal(out.b, [[1], [4]])


class TestScatter:
    """Tests for the segmented scatter-reduce"""

    index = np.array([0, 0, 2, 2])

    def test_add(self):
        src = np.array([[1.0, 2.0, 3.0, 4.0]])
        np.testing.assert_array_equal(scatter("add", src, self.index, 3), [[3.0, 0.0, 7.0]])

    def test_mean(self):
        src = np.array([[1.0, 2.0, 3.0, 4.0]])
        out = scatter("mean", src, self.index, 3)
        np.testing.assert_allclose(out, [[1.5, 0.0, 3.5]])
        assert np.all(np.isfinite(out))

    def test_mean_of_integers_is_float(self):
        out = scatter("mean", np.array([[1, 2, 3, 4]]), self.index, 3)
        assert out.dtype == np.float64
        np.testing.assert_allclose(out, [[1.5, 0.0, 3.5]])

    def test_max_fills_empty_with_zero(self):
        src = np.array([[-1.0, -5.0, 3.0, 4.0]])
        out = scatter("max", src, self.index, 3)
        np.testing.assert_array_equal(out, [[-1.0, 0.0, 4.0]])

    def test_min(self):
        src = np.array([[-1.0, -5.0, 3.0, 4.0]])
        out = scatter("min", src, self.index, 3)
        np.testing.assert_array_equal(out, [[-5.0, 0.0, 3.0]])

    def test_mul_fills_empty_with_one(self):
        src = np.array([[2.0, 3.0, 4.0, 5.0]])
        out = scatter("mul", src, self.index, 3)
        np.testing.assert_array_equal(out, [[6.0, 1.0, 20.0]])

    def test_fill_values(self):
        assert FILL_VALUES["mul"] == 1
        for name in ("add", "max", "min", "mean"):
            assert FILL_VALUES[name] == 0

    def test_no_edges(self):
        src = np.zeros((2, 0))
        index = np.zeros(0, dtype=int)
        np.testing.assert_array_equal(scatter("add", src, index, 3), np.zeros((2, 3)))
        np.testing.assert_array_equal(scatter("mul", src, index, 3), np.ones((2, 3)))

    def test_higher_rank(self):
        src = np.arange(16, dtype=np.float64).reshape(2, 2, 4)
        out = scatter("add", src, self.index, 3)
        assert out.shape == (2, 2, 3)
        np.testing.assert_array_equal(out[..., 0], src[..., 0] + src[..., 1])
        np.testing.assert_array_equal(out[..., 1], 0.0)

    def test_bundle(self):
        src = Pair(a=np.array([1.0, 2.0, 3.0, 4.0]), b=np.array([[1.0, 1.0, 1.0, 1.0]]))
        out = scatter("add", src, self.index, 3)
        assert isinstance(out, Pair)
        np.testing.assert_array_equal(out.a, [3.0, 0.0, 7.0])
        np.testing.assert_array_equal(out.b, [[2.0, 0.0, 2.0]])

    def test_order_independence(self):
        """Permuting the columns and the index together does not change the result"""
        rng = np.random.default_rng(0)
        src = rng.standard_normal((3, 20))
        index = rng.integers(0, 6, size=20)
        perm = rng.permutation(20)
        for aggr in ("add", "mean", "max", "min", "mul"):
            np.testing.assert_allclose(
                scatter(aggr, src, index, 7),
                scatter(aggr, src[:, perm], index[perm], 7),
                rtol=1e-12,
            )

    def test_out_of_bounds(self):
        with pytest.raises(BoundsViolationError) as exc:
            scatter("add", np.ones((1, 2)), np.array([0, 3]), 3)
        assert exc.value.index == 3
        assert exc.value.position == 1

    def test_column_mismatch(self):
        with pytest.raises(ShapeMismatchError):
            scatter("add", np.ones((1, 4)), np.array([0, 1, 2]), 3)
