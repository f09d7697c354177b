import networkx as nx
import numpy as np
import pandas as pd
from dataclasses import dataclass
from typing import Any, Hashable, List, Optional, Set
from scipy.sparse import csr_matrix

from econcomplex.comparative_advantage import as_specialization_matrix
from econcomplex.config import COMMUNITY_METHODS, COMPUTE_OPTIONS, DEFAULT_THRESHOLD
from econcomplex.exceptions import InvalidInput
from econcomplex.matrix_processor import _check_real
from econcomplex.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, eq=False)
class ProximityResult:
    """
    Symmetric country-country and product-product proximity matrices, with
    a zero diagonal. A side that was not requested is None.
    """
    proximity_country: Optional[pd.DataFrame] = None
    proximity_product: Optional[pd.DataFrame] = None


@dataclass(frozen=True, eq=False)
class ProjectionResult:
    """
    Weighted undirected networks built from a ProximityResult.
    """
    network_country: Optional[nx.Graph] = None
    network_product: Optional[nx.Graph] = None


class RelatednessMetrics:
    """
    This class implements the relatedness methods of a country-product
    specialization matrix:
    - Cooccurrence matrix
    - Proximity matrix (Hidalgo et al. 2007), for binary and continuous input
    - Projection of a proximity matrix onto a weighted networkx graph,
      optionally trimmed to a spanning-tree backbone

    The input matrix is never modified.
    """

    def __init__(self, balassa: Any) -> None:
        """
        Parameters
        ----------
          - balassa : SpecializationMatrix
              Specialization matrix, binary or continuous. Dense or sparse
              matrices and tables are wrapped as-is.
        """
        self.balassa = as_specialization_matrix(balassa)

    ########################################
    ########## Internal Methods ############
    ########################################
    def _layer(self, rows: bool = True) -> csr_matrix:
        return self.balassa.matrix if rows else self.balassa.matrix.transpose().tocsr()

    def _cooccurrence(self, rows: bool = True) -> np.ndarray:
        """
        Sum over the other layer of min(M_i, M_j). For binary matrices this
        is the plain cooccurrence count A A^T.
        """
        A = self._layer(rows)
        if self.balassa.is_binary:
            return A.dot(A.T).toarray()

        dense = A.toarray()
        n = dense.shape[0]
        overlap = np.zeros((n, n))
        for i in range(n):
            overlap[i, i:] = np.minimum(dense[i], dense[i:]).sum(axis=1)
        return np.triu(overlap) + np.triu(overlap, 1).T

    def _proximity(self, rows: bool = True) -> np.ndarray:
        """
        Compute the proximity matrix of one layer of the bipartite network.
        Introduced by Hidalgo et al. (2007)

            phi_ij = sum_k min(M_ik, M_jk) / max(k_i, k_j)

        where k_i is the row sum of i. Zero denominators give 0 and the
        diagonal is set to 0.

        Parameters
        ----------
        - rows : bool, optional
            If True, compute proximity for row-layer (countries); if False,
            for column-layer (products).
        """
        A = self._layer(rows)
        cooc = self._cooccurrence(rows)
        totals = np.asarray(A.sum(axis=1)).ravel()

        denom = np.maximum.outer(totals, totals)
        proximity = np.zeros_like(cooc, dtype=float)
        np.divide(cooc, denom, out=proximity, where=denom > 0)
        # rounding in the continuous overlap can exceed the row sum by an ulp
        np.clip(proximity, 0.0, 1.0, out=proximity)

        # enforce exact symmetry and no self-loops
        proximity = np.triu(proximity, 1)
        proximity = proximity + proximity.T
        return proximity

    @staticmethod
    def mat_to_network(matrix: pd.DataFrame,
                       threshold: float = DEFAULT_THRESHOLD,
                       avg_links: Optional[float] = None) -> nx.Graph:
        """
        Convert a symmetric proximity matrix to a weighted NetworkX graph.

        Parameters:
            matrix: pd.DataFrame
                Square symmetric matrix; index labels become the nodes.
            threshold: float
                Only pairs with weight > threshold become edges.
            avg_links: float, optional
                If given, keep the maximum spanning tree and add the strongest
                remaining edges until the average degree reaches avg_links.
        Returns:
            nx.Graph: graph with a 'weight' attribute on every edge; every
            label is a node, isolated or not.
        """
        values = matrix.to_numpy(dtype=float)
        if values.ndim != 2 or values.shape[0] != values.shape[1]:
            raise InvalidInput(f"Proximity matrix must be square, got shape {values.shape}")
        node_names = list(matrix.index)

        G = nx.Graph()
        G.add_nodes_from(node_names)
        rows_idx, cols_idx = np.triu_indices(len(node_names), k=1)
        weights = values[rows_idx, cols_idx]
        keep = weights > threshold
        G.add_weighted_edges_from(
            (node_names[i], node_names[j], float(w))
            for i, j, w in zip(rows_idx[keep], cols_idx[keep], weights[keep])
        )

        if avg_links is None:
            return G

        backbone = nx.maximum_spanning_tree(G, weight="weight")
        target_edges = int(round(avg_links * G.number_of_nodes() / 2))
        remaining = sorted(
            ((u, v, d["weight"]) for u, v, d in G.edges(data=True) if not backbone.has_edge(u, v)),
            key=lambda edge: edge[2],
            reverse=True,
        )
        for u, v, w in remaining:
            if backbone.number_of_edges() >= target_edges:
                break
            backbone.add_edge(u, v, weight=w)

        logger.debug("Backbone with %d edges (%d in the thresholded graph)",
                     backbone.number_of_edges(), G.number_of_edges())
        return backbone

    ############################################
    ########    Projection wrappers    #########
    ############################################
    def get_proximity(self, compute: str = "both") -> ProximityResult:
        """
        Proximity matrices of countries and/or products as labeled DataFrames.

        Parameters:
            compute: str, one of 'both', 'country', 'product'
        """
        _check_compute(compute)
        logger.debug("Computing %s proximity for a %s matrix", compute, self.balassa.shape)

        proximity_country = proximity_product = None
        if compute in ("both", "country"):
            labels = list(self.balassa.row_labels)
            proximity_country = pd.DataFrame(self._proximity(rows=True), index=labels, columns=labels)
        if compute in ("both", "product"):
            labels = list(self.balassa.col_labels)
            proximity_product = pd.DataFrame(self._proximity(rows=False), index=labels, columns=labels)

        return ProximityResult(proximity_country=proximity_country, proximity_product=proximity_product)


def proximity(balassa: Any, compute: str = "both") -> ProximityResult:
    """
    Country-country and product-product proximity of a specialization matrix.
    """
    return RelatednessMetrics(balassa).get_proximity(compute=compute)


def projections(proximity_result: ProximityResult,
                threshold: float = DEFAULT_THRESHOLD,
                avg_links: Optional[float] = None,
                compute: str = "both") -> ProjectionResult:
    """
    Build weighted undirected networks from proximity matrices.

    Parameters
    ----------
      - proximity_result : ProximityResult
          Output of proximity().
      - threshold : float, default 0
          Edges are kept when their proximity is strictly above it.
      - avg_links : float, optional
          Target average degree of a maximum-spanning-tree backbone.
      - compute : str
          'both', 'country' or 'product'.

    Returns
    -------
      - ProjectionResult
    """
    if not isinstance(proximity_result, ProximityResult):
        raise InvalidInput(f"'proximity_result' must be a ProximityResult, got {type(proximity_result).__name__}")
    _check_compute(compute)
    threshold = _check_real("threshold", threshold)
    if avg_links is not None:
        avg_links = _check_real("avg_links", avg_links, positive=True)

    network_country = network_product = None
    if compute in ("both", "country"):
        if proximity_result.proximity_country is None:
            raise InvalidInput("Country proximity was not computed")
        network_country = RelatednessMetrics.mat_to_network(
            proximity_result.proximity_country, threshold=threshold, avg_links=avg_links)
    if compute in ("both", "product"):
        if proximity_result.proximity_product is None:
            raise InvalidInput("Product proximity was not computed")
        network_product = RelatednessMetrics.mat_to_network(
            proximity_result.proximity_product, threshold=threshold, avg_links=avg_links)

    return ProjectionResult(network_country=network_country, network_product=network_product)


def detect_communities(graph: nx.Graph,
                       method: str = "louvain",
                       seed: Optional[int] = None,
                       k: Optional[int] = None) -> List[Set[Hashable]]:
    """
    Community detection on a projected network, delegated to networkx.

    The random state is passed explicitly through ``seed``.

    Parameters
    ----------
      - graph : nx.Graph
      - method : str
          'louvain' (weighted), 'fluid' (asynchronous fluid communities,
          needs ``k`` and a connected graph) or 'greedy' (greedy modularity).
      - seed : int, optional
      - k : int, optional
          Number of communities for 'fluid'.

    Returns
    -------
      - list of sets
          Communities, largest first.
    """
    if not isinstance(graph, nx.Graph):
        raise InvalidInput("Input graph must be a NetworkX Graph object")
    if method not in COMMUNITY_METHODS:
        raise InvalidInput(f"Unsupported method '{method}', choose from {', '.join(COMMUNITY_METHODS)}")

    if method == "louvain":
        communities = nx.community.louvain_communities(graph, weight="weight", seed=seed)
    elif method == "fluid":
        if isinstance(k, bool) or not isinstance(k, (int, np.integer)) or k < 1:
            raise InvalidInput(f"'k' must be a positive integer for fluid communities, got {k!r}")
        if graph.number_of_nodes() == 0 or not nx.is_connected(graph):
            raise InvalidInput("Fluid communities require a connected graph")
        communities = nx.community.asyn_fluidc(graph, int(k), seed=seed)
    else:
        communities = nx.community.greedy_modularity_communities(graph, weight="weight")

    return sorted((set(c) for c in communities), key=len, reverse=True)


def _check_compute(compute: str) -> None:
    if compute not in COMPUTE_OPTIONS:
        raise InvalidInput(f"'compute' must be one of {', '.join(COMPUTE_OPTIONS)}, got {compute!r}")
