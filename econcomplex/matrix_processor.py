import numpy as np
import pandas as pd
import scipy.sparse as sp
from dataclasses import dataclass
from numbers import Real
from typing import Any, Hashable, List, Optional, Sequence, Tuple, Union
from pandas.api.types import is_bool_dtype, is_numeric_dtype
from scipy.sparse import csr_matrix

from econcomplex.config import DEFAULT_COUNTRY, DEFAULT_PRODUCT, DEFAULT_VALUE
from econcomplex.exceptions import InvalidInput
from econcomplex.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, eq=False)
class LabeledMatrix:
    """
    Sparse country-product matrix carrying its row (country) and column
    (product) labels.

    The matrix is copied to CSR float64 on construction; engines never
    modify it in place and always return new objects.
    """
    matrix: csr_matrix
    row_labels: Tuple[Hashable, ...]
    col_labels: Tuple[Hashable, ...]

    def __post_init__(self) -> None:
        if not sp.issparse(self.matrix):
            raise InvalidInput(f"'matrix' must be a scipy sparse matrix, got {type(self.matrix).__name__}")
        mat = csr_matrix(self.matrix, dtype=float, copy=True)
        mat.eliminate_zeros()
        mat.sort_indices()
        rows = tuple(self.row_labels)
        cols = tuple(self.col_labels)
        if len(rows) != mat.shape[0] or len(cols) != mat.shape[1]:
            raise InvalidInput(
                f"Labels ({len(rows)}, {len(cols)}) do not match matrix shape {mat.shape}")
        object.__setattr__(self, "matrix", mat)
        object.__setattr__(self, "row_labels", rows)
        object.__setattr__(self, "col_labels", cols)

    @classmethod
    def from_frame(cls, df: pd.DataFrame, **kwargs) -> "LabeledMatrix":
        """
        Build from a wide (dense) frame: index = countries, columns = products.
        """
        if not isinstance(df, pd.DataFrame):
            raise InvalidInput("'df' must be a pandas DataFrame")
        arr = _numeric_array(df.to_numpy())
        return cls(csr_matrix(arr), tuple(df.index), tuple(df.columns), **kwargs)

    @property
    def shape(self) -> Tuple[int, int]:
        return self.matrix.shape

    @property
    def nnz(self) -> int:
        return self.matrix.nnz

    @property
    def is_binary(self) -> bool:
        return bool(np.all(self.matrix.data == 1.0))

    def row_sums(self) -> np.ndarray:
        return np.asarray(self.matrix.sum(axis=1)).ravel()

    def col_sums(self) -> np.ndarray:
        return np.asarray(self.matrix.sum(axis=0)).ravel()

    def toarray(self) -> np.ndarray:
        return self.matrix.toarray()

    def to_frame(self) -> pd.DataFrame:
        """
        Dense labeled copy (countries x products).
        """
        return pd.DataFrame(self.toarray(), index=list(self.row_labels), columns=list(self.col_labels))

    def to_records(self,
                   country: str = DEFAULT_COUNTRY,
                   product: str = DEFAULT_PRODUCT,
                   value: str = DEFAULT_VALUE) -> pd.DataFrame:
        """
        Long table with one row per nonzero (country, product) pair.
        """
        coo = self.matrix.tocoo()
        rows = _label_array(self.row_labels)
        cols = _label_array(self.col_labels)
        return pd.DataFrame({
            country: rows[coo.row],
            product: cols[coo.col],
            value: coo.data,
        })

    def equals(self, other: Any) -> bool:
        if not isinstance(other, LabeledMatrix):
            return False
        if self.shape != other.shape:
            return False
        if self.row_labels != other.row_labels or self.col_labels != other.col_labels:
            return False
        return (self.matrix != other.matrix).nnz == 0

    def __repr__(self) -> str:
        return f"{type(self).__name__}(shape={self.shape}, nnz={self.nnz})"


@dataclass(frozen=True, eq=False)
class ValueMatrix(LabeledMatrix):
    """
    Country x product matrix of non-negative values (e.g. export value).
    """

    def __post_init__(self) -> None:
        super().__post_init__()
        _check_values(self.matrix)


# -----------------------------
# Matrix Builder
# -----------------------------
def build_value_matrix(
        data: Union[LabeledMatrix, pd.DataFrame, np.ndarray, sp.spmatrix, List[Any]],
        country: str = DEFAULT_COUNTRY,
        product: str = DEFAULT_PRODUCT,
        value: str = DEFAULT_VALUE,
        row_labels: Optional[Sequence[Hashable]] = None,
        col_labels: Optional[Sequence[Hashable]] = None,
) -> ValueMatrix:
    """
    Convert tabular records or a (dense/sparse) matrix into a ValueMatrix.

    Parameters
    ----------
      - data : LabeledMatrix, pd.DataFrame, np.ndarray, sparse matrix or list of triples
          Tables hold one row per (country, product, value) record; duplicate
          pairs are summed and missing pairs are 0. Matrices are used as-is.
          Python lists and tuples are always read as records, never as a
          dense matrix: ``[[1, 2, 3]]`` is the triple (1, 2, 3). Pass
          np.asarray(rows) for a matrix written as nested lists.
      - country, product, value : str
          Column selectors for tabular input.
      - row_labels, col_labels : sequence, optional
          Labels for matrix input (default 0..n-1).

    Returns
    -------
      - ValueMatrix
          Rows and columns labelled with the sorted unique ids (tables) or
          the given labels (matrices).
    """
    _check_selectors(country, product, value)
    mat, rows, cols = _load_full(data, country, product, value, row_labels, col_labels)
    logger.debug("Built value matrix of shape %s with %d nonzero entries", mat.shape, mat.nnz)
    return ValueMatrix(mat, rows, cols)


# -----------------------------
# Internal Loading Helpers
# -----------------------------
def _load_full(data, country, product, value, row_labels, col_labels) -> Tuple[csr_matrix, list, list]:
    # identify and load input, returning matrix and labels
    if isinstance(data, LabeledMatrix):
        if row_labels is not None or col_labels is not None:
            raise InvalidInput("Labels cannot be overridden for an already labeled matrix")
        return data.matrix, list(data.row_labels), list(data.col_labels)
    if isinstance(data, pd.DataFrame):
        return _load_from_dataframe(data, country, product, value)
    if isinstance(data, (list, tuple)) and not isinstance(data, str):
        return _load_from_records(data, country, product, value)
    if sp.issparse(data) or isinstance(data, np.ndarray):
        mat = _load_from_other(data)
        rows = list(range(mat.shape[0])) if row_labels is None else list(row_labels)
        cols = list(range(mat.shape[1])) if col_labels is None else list(col_labels)
        if len(rows) != mat.shape[0] or len(cols) != mat.shape[1]:
            raise InvalidInput(
                f"Labels ({len(rows)}, {len(cols)}) do not match matrix shape {mat.shape}")
        return mat, rows, cols
    raise InvalidInput(
        f"'data' must be a DataFrame, a dense or sparse matrix or a list of records, "
        f"got {type(data).__name__}")


def _load_from_dataframe(df: pd.DataFrame, country: str, product: str, value: str) -> Tuple[csr_matrix, list, list]:
    missing = [col for col in (country, product, value) if col not in df.columns]
    if missing:
        raise InvalidInput(f"Missing required columns: {missing}")
    if is_bool_dtype(df[value]) or not is_numeric_dtype(df[value]):
        raise InvalidInput(f"Column '{value}' must be numeric")
    if df[value].isna().any():
        raise InvalidInput(f"Column '{value}' contains missing values")
    if df[[country, product]].isna().any().any():
        raise InvalidInput(f"Columns '{country}' and '{product}' must not contain missing ids")

    # aggregate duplicated pairs by sum
    agg = df.groupby([country, product], sort=False)[value].sum()
    try:
        rows = sorted(pd.unique(df[country]).tolist())
        cols = sorted(pd.unique(df[product]).tolist())
    except TypeError as e:
        raise InvalidInput(f"Country and product ids must be mutually comparable: {e}") from e

    row_idx = pd.Index(rows).get_indexer(agg.index.get_level_values(0))
    col_idx = pd.Index(cols).get_indexer(agg.index.get_level_values(1))
    mat = csr_matrix((agg.to_numpy(dtype=float), (row_idx, col_idx)), shape=(len(rows), len(cols)))
    return mat, rows, cols


def _load_from_records(records, country: str, product: str, value: str) -> Tuple[csr_matrix, list, list]:
    if all(isinstance(el, dict) for el in records):
        df = pd.DataFrame(list(records))
    elif all(isinstance(el, (tuple, list)) and len(el) == 3 for el in records):
        df = pd.DataFrame.from_records(list(records), columns=[country, product, value])
    else:
        raise InvalidInput("Records must all be (country, product, value) triples or all be dicts")
    if df.empty:
        df = pd.DataFrame({country: [], product: [], value: pd.Series([], dtype=float)})
    return _load_from_dataframe(df, country, product, value)


def _load_from_other(obj: Any) -> csr_matrix:
    if sp.issparse(obj):
        if obj.ndim != 2:
            raise InvalidInput("Sparse input must be 2-dimensional")
        if not np.issubdtype(obj.dtype, np.number) and obj.dtype != bool:
            raise InvalidInput(f"Matrix entries must be numeric, got {obj.dtype}")
        return csr_matrix(obj, dtype=float)
    arr = _numeric_array(obj)
    return csr_matrix(arr)


def _numeric_array(obj: Any) -> np.ndarray:
    arr = np.asarray(obj)
    if arr.ndim != 2:
        raise InvalidInput(f"Matrix input must be 2-dimensional, got {arr.ndim} dimension(s)")
    if arr.dtype == bool:
        return arr.astype(float)
    if not np.issubdtype(arr.dtype, np.number):
        try:
            return arr.astype(float)
        except (TypeError, ValueError) as e:
            raise InvalidInput(f"Matrix entries must be numeric: {e}") from e
    return arr.astype(float)


def _label_array(labels: Sequence[Hashable]) -> np.ndarray:
    # object array that keeps tuple labels as single elements
    arr = np.empty(len(labels), dtype=object)
    for i, lab in enumerate(labels):
        arr[i] = lab
    return arr


def _check_values(mat: csr_matrix) -> None:
    if not np.all(np.isfinite(mat.data)):
        raise InvalidInput("Values must be finite")
    if np.any(mat.data < 0):
        raise InvalidInput("Values must be non-negative")


def _check_selectors(*selectors) -> None:
    if not all(isinstance(s, str) for s in selectors):
        raise InvalidInput("'country', 'product' and 'value' must be of type str")


def _check_real(name: str, val: Any, positive: bool = False) -> float:
    if isinstance(val, (bool, np.bool_)) or not isinstance(val, Real):
        raise InvalidInput(f"'{name}' must be numeric, got {type(val).__name__}")
    if np.isnan(val):
        raise InvalidInput(f"'{name}' must not be NaN")
    if positive and val <= 0:
        raise InvalidInput(f"'{name}' must be positive, got {val}")
    return float(val)
