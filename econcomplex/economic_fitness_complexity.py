import numpy as np
import pandas as pd
from dataclasses import dataclass
from typing import Any, Optional, Tuple
from scipy.linalg import eig
from scipy.sparse import csr_matrix, diags
from scipy.sparse.linalg import ArpackError, eigs
from tqdm import trange

from econcomplex.comparative_advantage import as_specialization_matrix
from econcomplex.config import (
    COMPLEXITY_METHODS, DEFAULT_EXTREMALITY, DEFAULT_ITERATIONS, DEFAULT_METHOD,
    REFLECTIONS_MAX_ITERATIONS, REFLECTIONS_TOLERANCE
)
from econcomplex.exceptions import ConvergenceError, DegenerateInput, InvalidInput
from econcomplex.matrix_processor import _check_real
from econcomplex.utils.logging import get_logger

logger = get_logger(__name__)

# below this size the dense solver is used: ARPACK needs k < n - 1
_DENSE_EIG_SIZE = 500
_EIGS_SEED = 0


@dataclass(frozen=True, eq=False)
class ComplexityResult:
    """
    Country and product complexity indices (z-scored), with the degree
    vectors of the specialization matrix they were computed from.
    """
    complexity_index_country: pd.Series
    complexity_index_product: pd.Series
    method: str
    diversity: pd.Series
    ubiquity: pd.Series
    fitness: Optional[pd.Series] = None
    quality: Optional[pd.Series] = None


class EconomicComplexity:
    """
    This class implements the core methods for computing complexity indices
    from a country-product specialization matrix (typically binary and sparse).

    Main functionalities include:
    - Fitness and Complexity computation (Tacchella-2012), with extremality
    - Economic Complexity Index via the Method of Reflections (Hidalgo-2009),
      computed as a deflated power iteration
    - Economic Complexity Index via eigendecomposition (Cristelli-2013), with
      its sign aligned to the reflections result
    - Degree-based metrics: Diversification (country degree) and Ubiquity (product degree)

    The input matrix is never modified; every call returns new arrays.
    """

    def __init__(self, balassa: Any) -> None:
        """
        Parameters
        ----------
          - balassa : SpecializationMatrix
              Specialization matrix (ideally discrete). Dense or sparse
              matrices and tables are wrapped as-is.
        """
        self.balassa = as_specialization_matrix(balassa)
        self.shape = self.balassa.shape
        if not self.balassa.is_binary:
            logger.debug("Complexity measures computed on a continuous specialization matrix")

    ####################################
    ########  Internal Methods  ########
    ####################################
    @staticmethod
    def normalize(vector: np.ndarray, normalization: str = 'zscore') -> np.ndarray:
        """
        Normalize a numeric vector using a specified method.

        Parameters
        ----------
          - vector : np.ndarray
              The input array to normalize
          - normalization : str
              'mean' (divide by mean) or 'zscore' (standard score).

        Returns
        -------
          - np.ndarray
              The normalized array. Vectors with a null scale map to zeros.
        """
        vector = np.asarray(vector, dtype=float)
        if vector.size == 0:
            return vector.copy()
        if normalization == 'zscore':
            std = vector.std()
            if std == 0 or not np.isfinite(std):
                return np.zeros_like(vector)
            vec = (vector - vector.mean()) / std
            eps = np.finfo(float).eps
            vec[np.abs(vec) < eps] = 0.0
            return vec
        if normalization != 'mean':
            raise InvalidInput(f"Unknown normalization '{normalization}', choose 'mean' or 'zscore'")
        scale = vector.mean()
        if scale == 0:
            return np.zeros_like(vector)
        return vector / scale

    @staticmethod
    def _correlation(a: np.ndarray, b: np.ndarray) -> float:
        # Pearson correlation, 0 when either vector is constant
        if len(a) < 2 or np.std(a) == 0 or np.std(b) == 0:
            return 0.0
        return float(np.corrcoef(a, b)[0, 1])

    @staticmethod
    def _compute_diversification_ubiquity(matrix: csr_matrix) -> Tuple[np.ndarray, np.ndarray]:
        """
        Diversification is defined as the number of products per country (row sums),
        and ubiquity as the number of countries per product (column sums).
        """
        diversification = np.asarray(matrix.sum(axis=1)).ravel()
        ubiquity = np.asarray(matrix.sum(axis=0)).ravel()
        return diversification, ubiquity

    def _transition_matrices(self, matrix: csr_matrix) -> Tuple[csr_matrix, csr_matrix]:
        """
        Row-normalized Pcp = D^-1 M and Ppc = U^-1 M^T, with zero degrees
        mapped to zero rows.
        """
        diversification, ubiquity = self._compute_diversification_ubiquity(matrix)

        inverse_div = np.zeros_like(diversification, dtype=float)
        np.divide(1.0, diversification, out=inverse_div, where=diversification != 0)
        inverse_ubi = np.zeros_like(ubiquity, dtype=float)
        np.divide(1.0, ubiquity, out=inverse_ubi, where=ubiquity != 0)

        Pcp = diags(inverse_div).dot(matrix).tocsr()
        Ppc = diags(inverse_ubi).dot(matrix.transpose()).tocsr()
        return Pcp, Ppc

    def _fitness_complexity(self,
                            matrix: csr_matrix,
                            iterations: int = DEFAULT_ITERATIONS,
                            extremality: float = DEFAULT_EXTREMALITY,
                            tolerance: Optional[float] = None,
                            verbose: bool = False) -> Tuple[np.ndarray, np.ndarray]:
        """
        Compute country Fitness and product Complexity (quality) with the
        non-linear map of Tacchella et al. (2012):

            F_c = sum_p M_cp Q_p
            Q_p = 1 / (sum_c M_cp / F_c^g)^(1/g)     (g = extremality)

        Both vectors start from ones and are divided by their mean after each
        step. 1/0 terms are taken as 0.

        Parameters
        ----------
          - matrix : csr_matrix
              Country-product matrix.
          - iterations : int
              Iteration budget.
          - extremality : float
              Exponent g of the quality update (1 = original algorithm).
          - tolerance : float, optional
              Stop once the L1 change of both vectors is below it. If the
              budget runs out first a ConvergenceError is raised. When None the
              map runs exactly ``iterations`` times.
          - verbose : bool
              Show a progress bar.

        Returns
        -------
          - tuple
              Fitness and quality vectors at the last iteration.

        Reference
        ---------
          - Tacchella A. et al.,
            *A New Metrics for Countries' Fitness and Products' Complexity*, SciRep vol. 2, 723 (2012)
        """
        n_rows, n_cols = matrix.shape
        matrix_t = matrix.transpose().tocsr()

        fit = np.ones(n_rows)
        com = np.ones(n_cols)
        distance = np.inf

        loop = trange(iterations, desc="fitness") if verbose else range(iterations)
        for iterat in loop:
            fit_new = matrix.dot(com)

            # 1 / F_c^g for the quality update
            inv_fit = np.zeros(n_rows)
            np.divide(1.0, np.power(fit, extremality), out=inv_fit, where=fit > 0)
            com_sum = np.power(matrix_t.dot(inv_fit), 1.0 / extremality)
            com_new = np.zeros(n_cols)
            np.divide(1.0, com_sum, out=com_new, where=com_sum > 0)

            fit_new = self.normalize(fit_new, 'mean')
            com_new = self.normalize(com_new, 'mean')

            if not (np.all(np.isfinite(fit_new)) and np.all(np.isfinite(com_new))):
                raise ConvergenceError(
                    f"Fitness iteration produced non-finite values at iteration {iterat + 1}",
                    iterations=iterat + 1)

            distance = np.abs(fit_new - fit).sum() + np.abs(com_new - com).sum()
            fit, com = fit_new, com_new

            if tolerance is not None and distance < tolerance:
                logger.debug("Fitness converged after %d iterations (L1 change %.3e)", iterat + 1, distance)
                return fit, com

        if tolerance is not None:
            raise ConvergenceError(
                f"Fitness iteration did not converge within {iterations} iterations "
                f"(L1 change {distance:.3e} >= tolerance {tolerance:.3e})",
                iterations=iterations, distance=distance)

        logger.debug("Fitness stopped after %d iterations (L1 change %.3e)", iterations, distance)
        return fit, com

    def _method_of_reflections(self,
                               matrix: csr_matrix,
                               iterations: int = DEFAULT_ITERATIONS,
                               tolerance: Optional[float] = None) -> Tuple[np.ndarray, np.ndarray]:
        """
        Method of Reflections of Hidalgo & Hausmann (2009), run as a power
        iteration on Mcc = Pcp Ppc.

        Mcc is row-stochastic with the constant vector as its leading
        eigenvector; its left eigenvector is proportional to diversification.
        Projecting that component out at every step makes the iteration
        converge to the second eigenvector instead of the trivial one.
        Starting from diversification, the country index is oriented so that
        it correlates positively with diversification; the product index is
        the average country index of each product's exporters.

        The iteration always runs until the L1 change of the unit iterate is
        below ``tolerance`` (REFLECTIONS_TOLERANCE when None). Close second
        and third eigenvalues make it slow, so the cap is
        max(iterations, REFLECTIONS_MAX_ITERATIONS); reaching it logs a warning.

        Reference
        ---------
          - Hidalgo C. and Hausmann R., *The building blocks of economic complexity*, PNAS 26 (2009)
        """
        Pcp, Ppc = self._transition_matrices(matrix)
        diversification, _ = self._compute_diversification_ubiquity(matrix)

        weights = diversification / diversification.sum()
        tolerance = REFLECTIONS_TOLERANCE if tolerance is None else tolerance
        max_iterations = max(iterations, REFLECTIONS_MAX_ITERATIONS)

        noise = 1e3 * np.finfo(float).eps
        kc = diversification - weights.dot(diversification)
        if np.linalg.norm(kc) <= noise * np.linalg.norm(diversification):
            # regular matrix: only rounding noise is left after deflation
            kc = np.zeros_like(kc)
        converged = False
        distance = np.inf
        for iterat in range(max_iterations):
            norm = np.linalg.norm(kc)
            if norm == 0:
                converged = True
                break
            kc = kc / norm
            kc_new = Pcp.dot(Ppc.dot(kc))
            kc_new = kc_new - weights.dot(kc_new)

            new_norm = np.linalg.norm(kc_new)
            if new_norm <= noise:
                kc_new = np.zeros_like(kc_new)
                distance = 0.0
            else:
                distance = np.abs(kc_new / new_norm - kc).sum()
            kc = kc_new
            if distance < tolerance:
                logger.debug("Reflections converged after %d iterations", iterat + 1)
                converged = True
                break

        if not converged:
            logger.warning("Reflections did not converge within %d iterations (L1 change %.3e)",
                           max_iterations, distance)

        if self._correlation(kc, diversification) < 0:
            kc = -kc
        kp = Ppc.dot(kc)

        return self.normalize(kc, 'zscore'), self.normalize(kp, 'zscore')

    @staticmethod
    def _second_eigenvector(matrix: csr_matrix) -> np.ndarray:
        """
        Real part of the eigenvector associated with the second largest
        eigenvalue (by real part).
        """
        n = matrix.shape[0]
        if n < 2:
            return np.zeros(n)

        vals = vecs = None
        if n > _DENSE_EIG_SIZE:
            v0 = np.random.default_rng(_EIGS_SEED).random(n)
            try:
                vals, vecs = eigs(matrix, k=2, which='LR', v0=v0)  # 'LR' = Largest Real part
            except ArpackError as e:
                logger.warning("ARPACK failed (%s), falling back to the dense solver", e)
                vals = vecs = None
        if vals is None:
            vals, vecs = eig(matrix.toarray())

        order = np.argsort(-vals.real, kind='stable')
        return np.real(vecs[:, order[1]])

    def _eci_pci_from_eigs(self,
                           matrix: csr_matrix,
                           iterations: int = DEFAULT_ITERATIONS,
                           tolerance: Optional[float] = None) -> Tuple[np.ndarray, np.ndarray]:
        """
        Compute ECI and PCI from the second eigenvectors of the country-country
        (Mcc) and product-product (Mpp) matrices, Cristelli et al. (2013).

        Eigenvector signs are arbitrary: each index is flipped when it
        correlates negatively with the Method of Reflections result, which
        provides the canonical orientation.

        Reference
        ----------
          - Cristelli M. et al.,
            *Measuring the Intangibles: A Metrics for the Economic Complexity of Countries and Products*, PLoS ONE 8(8), 2013.
        """
        Pcp, Ppc = self._transition_matrices(matrix)

        Mcc = Pcp.dot(Ppc)  # country-country: (n_countries x n_countries)
        Mpp = Ppc.dot(Pcp)  # product-product: (n_products x n_products)

        eci = self._second_eigenvector(Mcc)
        pci = self._second_eigenvector(Mpp)

        ref_eci, ref_pci = self._method_of_reflections(matrix, iterations=iterations, tolerance=tolerance)
        if self._correlation(eci, ref_eci) < 0:
            eci = -eci
        if self._correlation(pci, ref_pci) < 0:
            pci = -pci

        return self.normalize(eci, 'zscore'), self.normalize(pci, 'zscore')

    ############################
    ########  Wrappers  ########
    ############################
    def get_diversification_ubiquity(self, aspandas: bool = False) -> tuple:
        """
        Diversification and ubiquity vectors, as arrays or labeled Series.
        """
        diversification, ubiquity = self._compute_diversification_ubiquity(self.balassa.matrix)
        if aspandas:
            div = pd.Series(diversification, index=list(self.balassa.row_labels), name="diversity")
            ubi = pd.Series(ubiquity, index=list(self.balassa.col_labels), name="ubiquity")
            return div, ubi
        return diversification, ubiquity

    def get_complexity_measures(self,
                                method: str = DEFAULT_METHOD,
                                iterations: int = DEFAULT_ITERATIONS,
                                extremality: float = DEFAULT_EXTREMALITY,
                                tolerance: Optional[float] = None,
                                verbose: bool = False) -> ComplexityResult:
        """
        Compute the complexity indices of countries and products.

        Parameters
        ----------
          - method : {'fitness', 'reflections', 'eigenvalues'}
              Choice of algorithm.
          - iterations : int
              Iteration budget of the fitness iteration. For 'reflections'
              and 'eigenvalues' it only raises the reflections cap above
              REFLECTIONS_MAX_ITERATIONS.
          - extremality : float
              Only for 'fitness'.
          - tolerance : float, optional
              Early-stopping threshold. For 'fitness', not reaching it raises
              ConvergenceError. Reflections always iterate to a tolerance
              (REFLECTIONS_TOLERANCE by default) and warn at the cap.
          - verbose : bool
              Only for 'fitness': show a progress bar.

        Returns
        -------
          - ComplexityResult
        """
        if method not in COMPLEXITY_METHODS:
            raise InvalidInput(f"Unsupported method '{method}', choose from {', '.join(COMPLEXITY_METHODS)}")
        if isinstance(iterations, (bool, np.bool_)) or not isinstance(iterations, (int, np.integer)) or iterations < 1:
            raise InvalidInput(f"'iterations' must be a positive integer, got {iterations!r}")
        extremality = _check_real("extremality", extremality, positive=True)
        if tolerance is not None:
            tolerance = _check_real("tolerance", tolerance, positive=True)

        matrix = self.balassa.matrix
        if matrix.nnz == 0:
            raise DegenerateInput("Complexity measures are undefined for an all-zero specialization matrix")

        logger.debug("Computing complexity measures with method '%s' on a %s matrix", method, self.shape)

        fitness = quality = None
        if method == 'fitness':
            fit, com = self._fitness_complexity(matrix, iterations=iterations, extremality=extremality,
                                                tolerance=tolerance, verbose=verbose)
            eci, pci = self.normalize(fit, 'zscore'), self.normalize(com, 'zscore')
            fitness = pd.Series(fit, index=list(self.balassa.row_labels), name="fitness")
            quality = pd.Series(com, index=list(self.balassa.col_labels), name="quality")
        elif method == 'reflections':
            eci, pci = self._method_of_reflections(matrix, iterations=iterations, tolerance=tolerance)
        else:
            eci, pci = self._eci_pci_from_eigs(matrix, iterations=iterations, tolerance=tolerance)

        diversity, ubiquity = self.get_diversification_ubiquity(aspandas=True)

        return ComplexityResult(
            complexity_index_country=pd.Series(eci, index=list(self.balassa.row_labels),
                                               name="complexity_index_country"),
            complexity_index_product=pd.Series(pci, index=list(self.balassa.col_labels),
                                               name="complexity_index_product"),
            method=method,
            diversity=diversity,
            ubiquity=ubiquity,
            fitness=fitness,
            quality=quality,
        )


def complexity_measures(balassa: Any,
                        method: str = DEFAULT_METHOD,
                        iterations: int = DEFAULT_ITERATIONS,
                        extremality: float = DEFAULT_EXTREMALITY,
                        tolerance: Optional[float] = None,
                        verbose: bool = False) -> ComplexityResult:
    """
    Complexity indices of countries and products. See
    EconomicComplexity.get_complexity_measures() for the parameters.
    """
    return EconomicComplexity(balassa).get_complexity_measures(
        method=method, iterations=iterations, extremality=extremality,
        tolerance=tolerance, verbose=verbose)
