import numpy as np
import pandas as pd
import pytest

from econcomplex import SpecializationMatrix, balassa_index
from scipy.sparse import csr_matrix


@pytest.fixture
def nested_matrix():
    """Perfectly nested 4 x 5 binary matrix: c0 exports everything, c3 only p0."""
    return np.array([
        [1, 1, 1, 1, 1],
        [1, 1, 1, 1, 0],
        [1, 1, 0, 0, 0],
        [1, 0, 0, 0, 0],
    ], dtype=float)


@pytest.fixture
def nested_balassa(nested_matrix):
    return SpecializationMatrix(
        csr_matrix(nested_matrix),
        ("c0", "c1", "c2", "c3"),
        ("p0", "p1", "p2", "p3", "p4"),
    )


@pytest.fixture
def trade_table():
    rng = np.random.default_rng(42)
    countries = [f"C{i:02d}" for i in range(8)]
    products = [f"P{j:02d}" for j in range(12)]
    rows = []
    for c in countries:
        for p in products:
            if rng.random() < 0.7:
                rows.append((c, p, float(rng.integers(1, 1000))))
    return pd.DataFrame(rows, columns=["country", "product", "value"])


@pytest.fixture(scope="module")
def large_balassa():
    """600 x 40 specialization matrix with close second and third eigenvalues of Mcc."""
    return balassa_index(np.random.default_rng(3).random((600, 40)) ** 4)
