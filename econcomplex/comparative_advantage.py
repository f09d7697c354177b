import numpy as np
import pandas as pd
import scipy.sparse as sp
from dataclasses import dataclass
from typing import Any, List, Union
from scipy.sparse import csr_matrix

from econcomplex.config import (
    DEFAULT_COUNTRY, DEFAULT_CUTOFF, DEFAULT_DISCRETE, DEFAULT_PRODUCT, DEFAULT_VALUE
)
from econcomplex.exceptions import InvalidInput
from econcomplex.matrix_processor import LabeledMatrix, _check_real, _check_values, build_value_matrix
from econcomplex.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, eq=False)
class SpecializationMatrix(LabeledMatrix):
    """
    Balassa Index (revealed comparative advantage) of a value matrix.

    When ``discrete`` is True every entry is 0 or 1: 1 iff the raw ratio is
    at least ``cutoff``.
    """
    discrete: bool = DEFAULT_DISCRETE
    cutoff: float = DEFAULT_CUTOFF

    def __post_init__(self) -> None:
        super().__post_init__()
        _check_values(self.matrix)


def balassa_index(
        data: Union[LabeledMatrix, pd.DataFrame, np.ndarray, sp.spmatrix, List[Any]],
        discrete: bool = DEFAULT_DISCRETE,
        cutoff: float = DEFAULT_CUTOFF,
        country: str = DEFAULT_COUNTRY,
        product: str = DEFAULT_PRODUCT,
        value: str = DEFAULT_VALUE,
) -> SpecializationMatrix:
    """
    Compute the Balassa Index of a country-product relation.

        B_cp = (x_cp / sum_p x_cp) / (sum_c x_cp / sum_cp x_cp)

    A country is specialized in a product when it exports more than its
    "fair share", i.e. B_cp >= 1. Rows or columns summing to zero give 0.

    Parameters
    ----------
      - data : DataFrame, np.ndarray, sparse matrix, ValueMatrix or list of triples
          Tables are aggregated with build_value_matrix().
      - discrete : bool, default True
          Whether to convert the index to 0/1 values.
      - cutoff : float, default 1
          Threshold used for the discretization.
      - country, product, value : str
          Column selectors, used only for tabular input.

    Returns
    -------
      - SpecializationMatrix
          Same shape and labels as the value matrix.
    """
    if not isinstance(discrete, (bool, np.bool_)):
        raise InvalidInput(f"'discrete' must be True or False, got {type(discrete).__name__}")
    cutoff = _check_real("cutoff", cutoff)

    values = build_value_matrix(data, country=country, product=product, value=value)
    rca = compute_rca(values.matrix)

    if discrete:
        rca = binarize(rca, threshold=cutoff)

    return SpecializationMatrix(rca, values.row_labels, values.col_labels,
                                discrete=bool(discrete), cutoff=cutoff)


def compute_rca(mat: csr_matrix) -> csr_matrix:
    """
    RCA of a non-negative sparse matrix, with 0/0 defined as 0.
    """
    total = mat.sum()
    row_sums = np.asarray(mat.sum(axis=1)).ravel()
    col_sums = np.asarray(mat.sum(axis=0)).ravel()

    n_empty_rows = int(np.sum(row_sums == 0))
    n_empty_cols = int(np.sum(col_sums == 0))
    if n_empty_rows or n_empty_cols:
        logger.warning("%d all-zero rows and %d all-zero columns get a Balassa Index of 0",
                       n_empty_rows, n_empty_cols)

    # only stored entries are touched: their row and column sums are > 0
    coo = mat.tocoo()
    if coo.nnz == 0:
        return csr_matrix(mat.shape, dtype=float)
    col_share = col_sums / total
    data = (coo.data / row_sums[coo.row]) / col_share[coo.col]
    return csr_matrix((data, (coo.row, coo.col)), shape=mat.shape)


def binarize(mat: csr_matrix, threshold: float = DEFAULT_CUTOFF) -> csr_matrix:
    """
    Entries >= threshold become 1, the rest 0.
    """
    if threshold <= 0:
        # implicit zeros are above the threshold too
        return csr_matrix(np.ones(mat.shape))
    result = mat.tocsr(copy=True)
    result.data = np.where(result.data >= threshold, 1.0, 0.0)
    result.eliminate_zeros()
    return result


def as_specialization_matrix(data: Any) -> SpecializationMatrix:
    """
    Use ``data`` as an already computed specialization matrix.

    SpecializationMatrix objects are returned unchanged; anything accepted by
    build_value_matrix() is wrapped without recomputing the index.
    """
    if isinstance(data, SpecializationMatrix):
        return data
    values = build_value_matrix(data)
    return SpecializationMatrix(values.matrix, values.row_labels, values.col_labels,
                                discrete=values.is_binary, cutoff=DEFAULT_CUTOFF)
