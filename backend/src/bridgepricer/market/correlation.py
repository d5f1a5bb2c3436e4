"""
Factor correlation and its Cholesky transform.

A path generator needs the lower Cholesky factor L of the correlation
between its Brownian factors; correlated increments are then L @ dW per
time step. Matrices given as plain arrays are repaired (unit diagonal,
symmetric, entries in [-1, 1], PSD) before factorization, while a
`CorrelationMatrix` is checked strictly on construction.
"""

from dataclasses import dataclass, field
from typing import List, Optional
import logging
import numpy as np

logger = logging.getLogger(__name__)

# Added to the diagonal when a (near) singular matrix refuses to factorize
CHOLESKY_RIDGE = 1e-10


def _as_square(corr: np.ndarray) -> np.ndarray:
    out = np.array(corr, dtype=np.float64)
    if out.ndim != 2 or out.shape[0] != out.shape[1]:
        raise ValueError(f"Correlation matrix must be square, got shape {out.shape}")
    return out


def _repair_entries(corr: np.ndarray, epsilon: float) -> np.ndarray:
    """Unit diagonal, symmetric, entries within [-1, 1]. Works in place."""
    diag = np.diag(corr)
    if not np.allclose(diag, 1.0, atol=1e-6):
        logger.warning(f"Resetting correlation diagonal {diag} to 1.0")
        np.fill_diagonal(corr, 1.0)

    asym = float(np.max(np.abs(corr - corr.T)))
    if asym > 1e-6:
        logger.warning(f"Averaging asymmetric correlation matrix (max |c_ij - c_ji| = {asym:.3g})")
        corr[...] = 0.5 * (corr + corr.T)

    if np.any(np.abs(corr) > 1.0 + epsilon):
        logger.warning("Clipping correlation entries to [-1, 1]")
        np.clip(corr, -1.0, 1.0, out=corr)
        np.fill_diagonal(corr, 1.0)
    return corr


def _nearest_psd(corr: np.ndarray, epsilon: float) -> np.ndarray:
    """Floor the spectrum at epsilon and rescale back to a unit diagonal."""
    eigenvalues, eigenvectors = np.linalg.eigh(corr)
    lowest = float(eigenvalues[0])
    if lowest >= -epsilon:
        return corr

    logger.warning(
        f"Correlation matrix not PSD (lowest eigenvalue {lowest:.6f}), "
        f"flooring spectrum at {epsilon:g}"
    )
    floored = (eigenvectors * np.maximum(eigenvalues, epsilon)) @ eigenvectors.T
    scale = 1.0 / np.sqrt(np.diag(floored))
    return floored * np.outer(scale, scale)


def validate_and_fix_correlation(corr: np.ndarray, epsilon: float = 1e-8) -> np.ndarray:
    """
    Return a usable correlation matrix close to `corr`.

    Each repair that changes the matrix logs a warning. The input array is
    left untouched.

    Raises:
        ValueError: If `corr` is not a square matrix
    """
    fixed = _repair_entries(_as_square(corr), epsilon)
    return _nearest_psd(fixed, epsilon)


def compute_cholesky(corr: np.ndarray) -> np.ndarray:
    """Lower Cholesky factor of the repaired correlation matrix."""
    corr = validate_and_fix_correlation(corr)
    try:
        return np.linalg.cholesky(corr)
    except np.linalg.LinAlgError:
        logger.warning(f"Correlation matrix singular, adding {CHOLESKY_RIDGE:g} to the diagonal")
        return np.linalg.cholesky(corr + CHOLESKY_RIDGE * np.eye(corr.shape[0]))


@dataclass
class CorrelationMatrix:
    """
    Named correlation between the Brownian factors of a generator.

    Unlike a raw array, no repair is attempted: an inconsistent matrix is
    rejected with ValueError.

    Attributes:
        factors: Factor labels in matrix order
        matrix: NxN correlation matrix
    """

    factors: List[str]
    matrix: np.ndarray
    _cholesky: Optional[np.ndarray] = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        self.factors = list(self.factors)
        self.matrix = np.asarray(self.matrix, dtype=np.float64)
        n = len(self.factors)

        if len(set(self.factors)) != n:
            raise ValueError(f"Duplicate factor labels in {self.factors}")
        if self.matrix.shape != (n, n):
            raise ValueError(
                f"Matrix shape {self.matrix.shape} doesn't match {n} factors {self.factors}"
            )
        if not np.allclose(self.matrix, self.matrix.T):
            raise ValueError("Correlation between factors must be symmetric")
        if not np.allclose(np.diag(self.matrix), 1.0):
            raise ValueError("Each factor must have unit correlation with itself (diagonal 1.0)")
        if np.any(np.abs(self.matrix) > 1.0):
            raise ValueError("Factor correlations must lie in [-1, 1]")

    @property
    def size(self) -> int:
        """Number of correlated factors."""
        return len(self.factors)

    @property
    def cholesky(self) -> np.ndarray:
        """Lower Cholesky factor, computed on first use."""
        if self._cholesky is None:
            self._cholesky = compute_cholesky(self.matrix)
        return self._cholesky
