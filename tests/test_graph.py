import pytest
import numpy as np
import scipy.sparse as sp

from GNNpy.core.errors import BoundsViolationError, ShapeMismatchError
from GNNpy.graph import FeaturedGraph, check_num_nodes


def cycle4(**kwargs):
    """Undirected 4-cycle 0-1-2-3-0 with every edge stored in both directions."""
    source = [0, 1, 2, 3, 1, 2, 3, 0]
    target = [1, 2, 3, 0, 0, 1, 2, 3]
    return FeaturedGraph(source, target, **kwargs)


class TestConstruction:
    """Tests for building and validating graphs"""

    def test_basic_properties(self):
        g = FeaturedGraph([0, 1, 2], [1, 2, 0])
        assert g.num_nodes == 3
        assert g.num_edges == 3
        source, target = g.edge_index()
        assert np.array_equal(source, [0, 1, 2])
        assert np.array_equal(target, [1, 2, 0])
        assert g.node_features is None
        assert g.edge_features is None

    def test_num_nodes_inference(self):
        """Node count comes from node features before the edge list"""
        x = np.zeros((2, 5))
        g = FeaturedGraph([0], [1], node_features=x)
        assert g.num_nodes == 5

        g = FeaturedGraph([0, 4], [1, 2])
        assert g.num_nodes == 5

        g = FeaturedGraph([], [], num_nodes=3)
        assert g.num_nodes == 3
        assert g.num_edges == 0

    def test_bounds_violation(self):
        with pytest.raises(BoundsViolationError) as exc:
            FeaturedGraph([0, 3], [1, 0], num_nodes=3)
        assert exc.value.index == 3
        assert exc.value.num_nodes == 3
        assert exc.value.position == 1

        with pytest.raises(IndexError):
            FeaturedGraph([0, -1], [1, 0], num_nodes=3)

    def test_mismatched_endpoints(self):
        with pytest.raises(ShapeMismatchError):
            FeaturedGraph([0, 1], [1])

    def test_misaligned_features(self):
        with pytest.raises(ShapeMismatchError):
            FeaturedGraph([0, 1], [1, 2], node_features=np.zeros((2, 2)), num_nodes=3)
        with pytest.raises(ShapeMismatchError):
            FeaturedGraph([0, 1], [1, 2], edge_features=np.zeros((1, 3)))

    def test_invalid_arguments(self):
        with pytest.raises(ValueError):
            FeaturedGraph([0], [1], graph_type="csc")
        with pytest.raises(TypeError):
            FeaturedGraph([0.5], [1])

    def test_immutability(self):
        """The graph keeps private read-only copies of its arrays"""
        source = np.array([0, 1])
        x = np.ones((2, 2))
        g = FeaturedGraph(source, [1, 0], node_features=x)

        source[0] = 1
        x[0, 0] = 5.0
        assert g.edge_index()[0][0] == 0
        assert g.node_features[0, 0] == 1.0

        with pytest.raises(ValueError):
            g.edge_index()[0][0] = 1
        with pytest.raises(ValueError):
            g.node_features[0, 0] = 2.0

    def test_repr(self):
        g = FeaturedGraph([0, 1], [1, 2], node_features=np.zeros((4, 3)))
        assert "num_nodes=3" in repr(g)
        assert "num_edges=2" in repr(g)
        assert "node_features=(4, 3)" in repr(g)


class TestDegreeAndTransforms:
    """Tests for degree queries and graph transforms"""

    def test_degree(self):
        g = FeaturedGraph([0, 0, 1], [1, 2, 2])
        assert np.array_equal(g.degree("out"), [2, 1, 0])
        assert np.array_equal(g.degree("in"), [0, 1, 2])
        assert g.degree(dtype=np.float32).dtype == np.float32

        with pytest.raises(ValueError):
            g.degree("both")

    def test_parallel_edges_count(self):
        g = FeaturedGraph([0, 0], [1, 1])
        assert np.array_equal(g.degree("in"), [0, 2])

    def test_add_self_loops_is_not_idempotent(self):
        g = cycle4()
        assert not g.has_self_loops()

        once = g.add_self_loops()
        assert once.num_edges == g.num_edges + g.num_nodes
        assert once.has_self_loops()

        twice = once.add_self_loops()
        assert twice.num_edges == g.num_edges + 2 * g.num_nodes

        # The original graph is untouched
        assert g.num_edges == 8

    def test_add_self_loops_pads_edge_features(self):
        e = np.array([[1.0, 2.0]])
        g = FeaturedGraph([0, 1], [1, 0], edge_features=e)
        looped = g.add_self_loops()
        np.testing.assert_array_equal(looped.edge_features, [[1.0, 2.0, 0.0, 0.0]])

    def test_remove_self_loops(self):
        e = np.array([[1.0, 2.0, 3.0]])
        g = FeaturedGraph([0, 1, 1], [0, 1, 0], edge_features=e)
        clean = g.remove_self_loops()
        assert clean.num_edges == 1
        assert not clean.has_self_loops()
        np.testing.assert_array_equal(clean.edge_features, [[3.0]])

    def test_with_features(self):
        g = FeaturedGraph([0, 1], [1, 0])
        x = np.ones((3, 2))
        g2 = g.with_node_features(x)
        assert g.node_features is None
        np.testing.assert_array_equal(g2.node_features, x)

        g3 = g2.with_edge_features(np.zeros((1, 2)))
        assert g3.edge_features.shape == (1, 2)
        np.testing.assert_array_equal(g3.node_features, x)


class TestMatrixOperators:
    """Tests for adjacency and Laplacian operators"""

    def test_adjacency_matrix(self):
        g = FeaturedGraph([0, 0, 1], [1, 1, 2])
        a = g.adjacency_matrix()
        assert sp.issparse(a)
        expected = np.array([[0, 2, 0], [0, 0, 1], [0, 0, 0]], dtype=np.float64)
        np.testing.assert_array_equal(a.toarray(), expected)

        dense = FeaturedGraph([0, 0, 1], [1, 1, 2], graph_type="dense").adjacency_matrix()
        assert isinstance(dense, np.ndarray)
        np.testing.assert_array_equal(dense, expected)

    def test_normalized_adjacency_with_self_loops(self):
        g = FeaturedGraph([0, 1], [1, 0], graph_type="dense")
        a_hat = g.normalized_adjacency(add_self_loops=True)
        np.testing.assert_allclose(a_hat, np.full((2, 2), 0.5))

    def test_normalized_adjacency_isolated_node(self):
        """Degree-0 nodes get zero rows and columns instead of NaN"""
        g = FeaturedGraph([0, 1], [1, 0], num_nodes=3, graph_type="dense")
        a_hat = g.normalized_adjacency()
        assert np.all(np.isfinite(a_hat))
        np.testing.assert_array_equal(a_hat[2], 0.0)
        np.testing.assert_array_equal(a_hat[:, 2], 0.0)

    def test_normalized_laplacian(self):
        g = cycle4(graph_type="dense")
        a = g.adjacency_matrix()
        np.testing.assert_allclose(g.normalized_laplacian(), np.eye(4) - a / 2)

    def test_scaled_laplacian_given_bound(self):
        g = cycle4()
        l_hat = g.scaled_laplacian(lambda_max=2.0)
        a = g.adjacency_matrix().toarray()
        np.testing.assert_allclose(l_hat.toarray(), -a / 2)

    def test_scaled_laplacian_computed_bound(self):
        """The largest eigenvalue of the 4-cycle Laplacian is exactly 2"""
        for graph_type in ("coo", "dense"):
            g = cycle4(graph_type=graph_type)
            l_hat = g.scaled_laplacian()
            if sp.issparse(l_hat):
                l_hat = l_hat.toarray()
            a = g.adjacency_matrix()
            if sp.issparse(a):
                a = a.toarray()
            np.testing.assert_allclose(l_hat, -a / 2, atol=1e-6)

    def test_scaled_laplacian_dtype(self):
        l_hat = cycle4(graph_type="dense").scaled_laplacian(np.float32, lambda_max=2.0)
        assert l_hat.dtype == np.float32

    def test_scaled_laplacian_invalid_bound(self):
        with pytest.raises(ValueError):
            cycle4().scaled_laplacian(lambda_max=0.0)


class TestCheckNumNodes:
    def test_matching(self):
        check_num_nodes(cycle4(), np.zeros((3, 4)))

    def test_mismatch(self):
        with pytest.raises(ShapeMismatchError) as exc:
            check_num_nodes(cycle4(), np.zeros((3, 5)), "GCNConv")
        assert exc.value.layer == "GCNConv"
        assert exc.value.expected == 4
        assert exc.value.actual == 5
