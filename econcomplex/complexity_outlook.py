import numpy as np
import pandas as pd
from dataclasses import dataclass
from typing import Any, Hashable, Sequence, Union

from econcomplex.comparative_advantage import as_specialization_matrix
from econcomplex.economic_fitness_complexity import ComplexityResult
from econcomplex.exceptions import InvalidInput
from econcomplex.relatedness_metrics import ProximityResult
from econcomplex.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, eq=False)
class OutlookResult:
    """
    Complexity outlook index (one value per country) and complexity outlook
    gain (country x product).
    """
    complexity_outlook_index: pd.Series
    complexity_outlook_gain: pd.DataFrame


class ComplexityOutlook:
    """
    Forward-looking metrics of a country's position in the product space.

    Given a binary specialization matrix M, a product proximity matrix B and
    the product complexity index PCI:

    - density:       d_cp = sum_p' M_cp' B_p'p / sum_p' B_p'p
    - outlook index: COI_c = sum_p (1 - M_cp) d_cp PCI_p
    - outlook gain:  COG_cp = (1 - M_cp) sum_p' (1 - M_cp') B_pp' PCI_p' / sum_p'' B_p'p''

    The index is the complexity of the products a country does not yet
    export, weighted by how close they are to its current exports; the gain
    is how much that index would grow by adding product p.
    """

    def __init__(self, balassa: Any,
                 proximity_product: Union[ProximityResult, pd.DataFrame, np.ndarray],
                 complexity_index_product: Union[ComplexityResult, pd.Series, np.ndarray, Sequence[float]]) -> None:
        """
        Parameters
        ----------
          - balassa : SpecializationMatrix
              Binary specialization matrix (countries x products).
          - proximity_product : ProximityResult, DataFrame or np.ndarray
              Product-product proximity. Labeled inputs are aligned to the
              products of ``balassa``.
          - complexity_index_product : ComplexityResult, Series or array
              Product complexity index.
        """
        self.balassa = as_specialization_matrix(balassa)
        if not self.balassa.is_binary:
            raise InvalidInput("Complexity outlook requires a discrete (0/1) specialization matrix")

        products = list(self.balassa.col_labels)
        self.M = self.balassa.toarray()
        self.B = self._align_proximity(proximity_product, products)
        self.pci = self._align_complexity(complexity_index_product, products)

    @staticmethod
    def _align_proximity(proximity_product, products: Sequence[Hashable]) -> np.ndarray:
        if isinstance(proximity_product, ProximityResult):
            proximity_product = proximity_product.proximity_product
            if proximity_product is None:
                raise InvalidInput("Product proximity was not computed")
        n = len(products)
        if isinstance(proximity_product, pd.DataFrame):
            missing = set(products) - set(proximity_product.index) | set(products) - set(proximity_product.columns)
            if missing or proximity_product.shape != (n, n):
                raise InvalidInput("Product proximity labels do not match the specialization matrix products")
            B = proximity_product.loc[products, products].to_numpy(dtype=float)
        else:
            B = np.asarray(proximity_product, dtype=float)
            if B.shape != (n, n):
                raise InvalidInput(f"Product proximity must have shape {(n, n)}, got {B.shape}")
        if not np.all(np.isfinite(B)) or np.any(B < 0):
            raise InvalidInput("Product proximity must be finite and non-negative")
        return B

    @staticmethod
    def _align_complexity(complexity_index_product, products: Sequence[Hashable]) -> np.ndarray:
        if isinstance(complexity_index_product, ComplexityResult):
            complexity_index_product = complexity_index_product.complexity_index_product
        n = len(products)
        if isinstance(complexity_index_product, pd.Series):
            missing = set(products) - set(complexity_index_product.index)
            if missing or len(complexity_index_product) != n:
                raise InvalidInput("Product complexity labels do not match the specialization matrix products")
            pci = complexity_index_product.loc[products].to_numpy(dtype=float)
        else:
            pci = np.asarray(complexity_index_product, dtype=float).ravel()
            if pci.shape != (n,):
                raise InvalidInput(f"Product complexity must have length {n}, got {pci.shape[0]}")
        if not np.all(np.isfinite(pci)):
            raise InvalidInput("Product complexity must be finite")
        return pci

    def get_density(self) -> np.ndarray:
        """
        Density M @ B normalized by the column sums of B.
        """
        MB = self.M @ self.B
        B_sum = self.B.sum(axis=0)
        density = np.zeros_like(MB)
        np.divide(MB, B_sum, out=density, where=B_sum > 0)
        return density

    def get_outlook_index(self) -> np.ndarray:
        density = self.get_density()
        return ((1 - self.M) * density * self.pci).sum(axis=1)

    def get_outlook_gain(self) -> np.ndarray:
        B_row = self.B.sum(axis=1)
        weight = np.zeros_like(self.pci)
        np.divide(self.pci, B_row, out=weight, where=B_row > 0)
        # X[p', p] = B[p', p] * PCI_p' / sum_p'' B[p', p'']
        X = self.B * weight[:, None]
        not_exported = 1 - self.M
        return not_exported * (not_exported @ X)

    def get_outlook(self) -> OutlookResult:
        countries = list(self.balassa.row_labels)
        products = list(self.balassa.col_labels)
        logger.debug("Computing complexity outlook for %d countries and %d products",
                     len(countries), len(products))
        return OutlookResult(
            complexity_outlook_index=pd.Series(self.get_outlook_index(), index=countries,
                                               name="complexity_outlook_index"),
            complexity_outlook_gain=pd.DataFrame(self.get_outlook_gain(), index=countries, columns=products),
        )


def density(balassa: Any, proximity_product: Union[ProximityResult, pd.DataFrame, np.ndarray]) -> pd.DataFrame:
    """
    Proximity-weighted share of each product's neighbours a country already exports.
    """
    balassa = as_specialization_matrix(balassa)
    n_products = balassa.shape[1]
    outlook = ComplexityOutlook(balassa, proximity_product, np.zeros(n_products))
    return pd.DataFrame(outlook.get_density(), index=list(balassa.row_labels), columns=list(balassa.col_labels))


def complexity_outlook(balassa: Any,
                       proximity_product: Union[ProximityResult, pd.DataFrame, np.ndarray],
                       complexity_index_product: Union[ComplexityResult, pd.Series, np.ndarray, Sequence[float]]
                       ) -> OutlookResult:
    """
    Complexity outlook index and gain. See ComplexityOutlook for the formulas.
    """
    return ComplexityOutlook(balassa, proximity_product, complexity_index_product).get_outlook()
