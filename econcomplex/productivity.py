import numpy as np
import pandas as pd
from dataclasses import dataclass
from typing import Any
from scipy.sparse import diags

from econcomplex.config import DEFAULT_COUNTRY, DEFAULT_PRODUCT, DEFAULT_VALUE
from econcomplex.exceptions import InvalidInput
from econcomplex.matrix_processor import build_value_matrix
from econcomplex.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, eq=False)
class ProductivityResult:
    """
    Productivity level of each country (EXPY) and product (PRODY).
    """
    productivity_level_country: pd.Series
    productivity_level_product: pd.Series


def productivity_levels(data: Any,
                        gdp_per_capita: pd.Series,
                        country: str = DEFAULT_COUNTRY,
                        product: str = DEFAULT_PRODUCT,
                        value: str = DEFAULT_VALUE) -> ProductivityResult:
    """
    Productivity levels of Hausmann, Hwang & Rodrik (2007).

        PRODY_p = sum_c (x_cp / X_c) / sum_c' (x_c'p / X_c') * Y_c
        EXPY_c  = sum_p (x_cp / X_c) * PRODY_p

    where X_c is the total exports of c and Y_c its GDP per capita.

    Parameters
    ----------
      - data : DataFrame, np.ndarray, sparse matrix, ValueMatrix or list of triples
          Export values, aggregated with build_value_matrix().
      - gdp_per_capita : pd.Series
          GDP per capita indexed by country; every country of ``data`` must
          be present.
      - country, product, value : str
          Column selectors, used only for tabular input.

    Returns
    -------
      - ProductivityResult
    """
    values = build_value_matrix(data, country=country, product=product, value=value)
    countries = list(values.row_labels)
    products = list(values.col_labels)

    if not isinstance(gdp_per_capita, pd.Series):
        raise InvalidInput(f"'gdp_per_capita' must be a pandas Series, got {type(gdp_per_capita).__name__}")
    missing = [c for c in countries if c not in gdp_per_capita.index]
    if missing:
        raise InvalidInput(f"GDP per capita missing for countries: {missing}")
    Y = pd.to_numeric(gdp_per_capita.loc[countries], errors="coerce").to_numpy(dtype=float)
    if not np.all(np.isfinite(Y)):
        raise InvalidInput("GDP per capita must be numeric and finite")

    exports = values.row_sums()
    inv_exports = np.zeros_like(exports)
    np.divide(1.0, exports, out=inv_exports, where=exports > 0)
    shares = diags(inv_exports).dot(values.matrix).tocsr()  # x_cp / X_c

    share_sums = np.asarray(shares.sum(axis=0)).ravel()
    prody = np.zeros(len(products))
    np.divide(shares.transpose().dot(Y), share_sums, out=prody, where=share_sums > 0)
    expy = shares.dot(prody)

    logger.debug("Computed productivity levels for %d countries and %d products", len(countries), len(products))
    return ProductivityResult(
        productivity_level_country=pd.Series(expy, index=countries, name="productivity_level_country"),
        productivity_level_product=pd.Series(prody, index=products, name="productivity_level_product"),
    )
