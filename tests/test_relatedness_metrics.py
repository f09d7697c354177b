"""
Tests for proximity, projections and community detection.

Run with: python -m pytest tests/test_relatedness_metrics.py -v
"""

import networkx as nx
import numpy as np
import pandas as pd
import pytest

from econcomplex import (
    InvalidInput, ProximityResult, RelatednessMetrics, balassa_index, detect_communities,
    projections, proximity
)


class TestProximity:
    """Tests for proximity()."""

    def test_identical_rows_have_maximal_proximity(self):
        result = proximity(np.array([[1.0, 1.0], [1.0, 1.0]]))

        assert result.proximity_country.iloc[0, 1] == 1.0
        assert result.proximity_country.iloc[1, 0] == 1.0

    def test_binary_values(self, nested_balassa):
        result = proximity(nested_balassa)
        phi_p = result.proximity_product

        # p0 (ubiquity 4) and p4 (ubiquity 1) co-occur only in c0
        assert phi_p.loc["p0", "p4"] == pytest.approx(0.25)
        # c0 (5 products) and c3 (1 product) share p0
        assert result.proximity_country.loc["c0", "c3"] == pytest.approx(0.2)

    def test_continuous_uses_minimum_overlap(self):
        result = proximity(np.array([[2.0, 0.0, 1.0], [1.0, 1.0, 1.0]]), compute="country")

        assert result.proximity_country.iloc[0, 1] == pytest.approx(2.0 / 3.0)

    @pytest.mark.parametrize("discrete", [True, False])
    def test_symmetric_bounded_no_diagonal(self, trade_table, discrete):
        result = proximity(balassa_index(trade_table, discrete=discrete))

        for phi in (result.proximity_country, result.proximity_product):
            values = phi.to_numpy()
            np.testing.assert_array_equal(values, values.T)
            np.testing.assert_array_equal(np.diag(values), 0)
            assert values.min() >= 0
            assert values.max() <= 1

    def test_labels(self, nested_balassa):
        result = proximity(nested_balassa)

        assert list(result.proximity_country.index) == ["c0", "c1", "c2", "c3"]
        assert list(result.proximity_product.columns) == ["p0", "p1", "p2", "p3", "p4"]

    def test_zero_row_gives_zero_proximity(self):
        result = proximity(np.array([[0.0, 0.0], [1.0, 1.0], [1.0, 0.0]]))

        np.testing.assert_array_equal(result.proximity_country.iloc[0].to_numpy(), 0)

    def test_compute_one_side(self, nested_balassa):
        result = proximity(nested_balassa, compute="product")

        assert result.proximity_country is None
        assert result.proximity_product.shape == (5, 5)

    def test_invalid_compute(self, nested_balassa):
        with pytest.raises(InvalidInput):
            proximity(nested_balassa, compute="countries")

    def test_cooccurrence(self, nested_balassa, nested_matrix):
        cooc = RelatednessMetrics(nested_balassa)._cooccurrence(rows=False)

        np.testing.assert_array_equal(cooc, nested_matrix.T @ nested_matrix)


class TestProjections:
    """Tests for projections()."""

    def test_full_projection(self, nested_balassa):
        prox = proximity(nested_balassa)
        result = projections(prox)
        G = result.network_product

        assert isinstance(G, nx.Graph)
        assert set(G.nodes) == {"p0", "p1", "p2", "p3", "p4"}
        assert nx.number_of_selfloops(G) == 0
        # every pair of products shares c0
        assert G.number_of_edges() == 10
        assert G["p0"]["p4"]["weight"] == pytest.approx(0.25)

    def test_threshold(self, nested_balassa):
        prox = proximity(nested_balassa)
        G = projections(prox, threshold=0.5, compute="product").network_product

        weights = [d["weight"] for _, _, d in G.edges(data=True)]
        assert all(w > 0.5 for w in weights)
        assert G.number_of_nodes() == 5

    def test_isolated_nodes_kept(self):
        prox = proximity(np.array([[0.0, 0.0], [1.0, 1.0], [1.0, 0.0]]))
        G = projections(prox, compute="country").network_country

        assert G.number_of_nodes() == 3
        assert G.degree[0] == 0

    def test_avg_links_backbone(self, nested_balassa):
        prox = proximity(nested_balassa)
        G = projections(prox, avg_links=2, compute="product").network_product

        assert nx.is_connected(G)
        assert G.number_of_edges() == 5

    def test_requires_proximity_result(self, nested_balassa):
        with pytest.raises(InvalidInput):
            projections(nested_balassa)

    def test_missing_side(self, nested_balassa):
        prox = proximity(nested_balassa, compute="country")
        with pytest.raises(InvalidInput):
            projections(prox, compute="product")

    def test_from_dataframe(self):
        phi = pd.DataFrame([[0, 0.4], [0.4, 0]], index=["a", "b"], columns=["a", "b"])
        G = projections(ProximityResult(proximity_country=phi), compute="country").network_country

        assert G["a"]["b"]["weight"] == pytest.approx(0.4)


class TestCommunities:
    """Tests for detect_communities()."""

    def test_louvain_is_seeded(self, trade_table):
        G = projections(proximity(balassa_index(trade_table)), compute="product").network_product

        first = detect_communities(G, method="louvain", seed=7)
        second = detect_communities(G, method="louvain", seed=7)

        assert first == second
        assert set().union(*first) == set(G.nodes)

    def test_fluid(self):
        G = nx.barbell_graph(4, 0)
        communities = detect_communities(G, method="fluid", k=2, seed=1)

        assert len(communities) == 2
        assert set().union(*communities) == set(G.nodes)

    def test_greedy(self):
        G = nx.barbell_graph(4, 0)
        communities = detect_communities(G, method="greedy")

        assert set().union(*communities) == set(G.nodes)

    def test_fluid_requires_k(self):
        with pytest.raises(InvalidInput):
            detect_communities(nx.path_graph(4), method="fluid")

    def test_fluid_requires_connected_graph(self):
        G = nx.Graph()
        G.add_nodes_from([1, 2])
        with pytest.raises(InvalidInput):
            detect_communities(G, method="fluid", k=1)

    def test_invalid_method(self):
        with pytest.raises(InvalidInput):
            detect_communities(nx.path_graph(3), method="girvan_newman")
