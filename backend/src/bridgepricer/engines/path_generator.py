"""
Monte Carlo path generators producing correlated Brownian increments.

Features:
- Multi-factor Brownian increments on an arbitrary increasing time grid
- Cholesky correlation applied per time step after increments are formed
- Pluggable normal deviate source (pseudo-random or Sobol')
- Single-path `next()` on reused scratch buffers, and vectorized
  `generate()` over a block of paths (no loops over paths/factors)
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence, Union
import copy
import logging
import numpy as np

from bridgepricer.exceptions import OrderingViolation, ShapeMismatch
from bridgepricer.market.correlation import CorrelationMatrix, compute_cholesky
from bridgepricer.engines.normal_source import NormalDeviateSource, make_normal_source

logger = logging.getLogger(__name__)

CorrelationInput = Union[None, np.ndarray, Sequence[Sequence[float]], CorrelationMatrix]


def augment_time_grid(time_steps: Sequence[float]) -> np.ndarray:
    """
    Prepend the time origin to a simulation grid and check its ordering.

    Args:
        time_steps: Simulation times t_1 < t_2 < ... < t_N (all > 0)

    Returns:
        Read-only array (0, t_1, ..., t_N)

    Raises:
        ValueError: If the grid is empty or holds an infinite time
        OrderingViolation: If the augmented grid is not strictly increasing
    """
    steps = np.asarray(time_steps, dtype=np.float64).ravel()
    if steps.size == 0:
        raise ValueError("Time grid must contain at least one time step")
    infinite = np.flatnonzero(np.isinf(steps))
    if infinite.size > 0:
        i = int(infinite[0]) + 1
        raise ValueError(f"Time steps must be finite, got t[{i}] = {steps[i - 1]}")

    times = np.concatenate([[0.0], steps])
    dt = np.diff(times)
    bad = np.flatnonzero(~(dt > 0.0))  # NaN fails the comparison
    if bad.size > 0:
        i = int(bad[0]) + 1
        raise OrderingViolation(i, float(times[i - 1]), float(times[i]))

    times.flags.writeable = False
    return times


def levels_to_increments(path: np.ndarray) -> np.ndarray:
    """
    Difference a level path into per-step increments.

    Args:
        path: Levels [..., n_time_steps + 1, n_factors], row 0 at the origin

    Returns:
        Increments [..., n_time_steps, n_factors]
    """
    return np.diff(path, axis=-2)


def apply_correlation(
    increments: np.ndarray,
    transform: np.ndarray,
    out: Optional[np.ndarray] = None
) -> np.ndarray:
    """
    Turn independent factor increments into correlated ones.

    For every time step the correlated factor j is the inner product of
    row j of `transform` with the full independent increment vector of that
    step. The complete vector is read before anything is written back, so
    the result does not depend on factor order.

    Args:
        increments: Independent increments [..., n_factors]
        transform: Cholesky factor [n_factors, n_factors], or empty for none
        out: Optional destination (may alias `increments`)

    Returns:
        Correlated increments, same shape as `increments`
    """
    if transform.size == 0:
        result = increments
    else:
        result = increments @ transform.T
    if out is None:
        return result
    out[...] = result
    return out


class PathGenerator(ABC):
    """
    Base class for generators of correlated Brownian increments.

    Holds the time grid, the factor count, the correlation transform and
    the normal deviate source. Subclasses decide how one vector of
    `dimension()` deviates becomes a set of independent increments.

    Deviate layout: factor j consumes the slice [j*N, (j+1)*N) of each
    draw, N being the number of time steps.

    Scratch buffers are private to the instance: use one generator per
    worker (see `clone`) rather than sharing one across threads.

    Either pass a ready `normal_source`, or let the generator build one
    from `source_kind` (default "pseudo") and `seed`; mixing the two
    raises ValueError.
    """

    def __init__(
        self,
        time_steps: Sequence[float],
        n_factors: int = 1,
        correlation: CorrelationInput = None,
        normal_source: Optional[NormalDeviateSource] = None,
        seed: Optional[int] = None,
        source_kind: Optional[str] = None
    ) -> None:
        if n_factors < 1:
            raise ValueError(f"n_factors must be positive, got {n_factors}")
        if normal_source is not None and (seed is not None or source_kind is not None):
            raise ValueError(
                "seed and source_kind only apply when no normal_source is given"
            )

        self._times = augment_time_grid(time_steps)
        self.n_time_steps = len(self._times) - 1
        self.n_factors = int(n_factors)
        self.sqrt_correl = self._build_transform(correlation)

        if normal_source is None:
            normal_source = make_normal_source(
                source_kind or "pseudo", self.dimension(), seed=seed
            )
        self._check_source(normal_source)
        self.normal_source = normal_source

        self._allocate_scratch()

    def _build_transform(self, correlation: CorrelationInput) -> np.ndarray:
        """Cholesky factor of the correlation, or an empty (0, 0) array."""
        if correlation is None:
            transform = np.zeros((0, 0))
        elif isinstance(correlation, CorrelationMatrix):
            if correlation.size != self.n_factors:
                raise ValueError(
                    f"Correlation matrix has {correlation.size} factors, "
                    f"generator has {self.n_factors}"
                )
            transform = np.array(correlation.cholesky)
        else:
            corr = np.asarray(correlation, dtype=np.float64)
            if corr.size == 0:
                transform = np.zeros((0, 0))
            else:
                if corr.shape != (self.n_factors, self.n_factors):
                    raise ValueError(
                        f"Correlation matrix shape {corr.shape} doesn't match "
                        f"{self.n_factors} factors"
                    )
                transform = compute_cholesky(corr)
        transform.flags.writeable = False
        return transform

    def _check_source(self, source: NormalDeviateSource) -> None:
        if source.dimension != self.dimension():
            raise ValueError(
                f"Normal source dimension {source.dimension} != "
                f"generator dimension {self.dimension()}"
            )

    def _allocate_scratch(self) -> None:
        """(Re)create the per-instance scratch buffers."""
        self._normal_devs = np.empty(self.dimension())

    @property
    def times(self) -> np.ndarray:
        """Augmented time grid (0, t_1, ..., t_N), read-only."""
        return self._times

    @property
    def time_steps(self) -> np.ndarray:
        """Simulation times t_1, ..., t_N, read-only."""
        return self._times[1:]

    @property
    def is_correlated(self) -> bool:
        return self.sqrt_correl.size > 0

    def dimension(self) -> int:
        """Total stochastic dimension: number of time steps x number of factors."""
        return self.n_time_steps * self.n_factors

    def _check_output(self, out: Optional[np.ndarray]) -> np.ndarray:
        shape = (self.n_time_steps, self.n_factors)
        if out is None:
            return np.empty(shape)
        if out.shape != shape:
            raise ShapeMismatch("Path buffer has the wrong shape", shape, out.shape)
        return out

    @abstractmethod
    def _independent_increments(self, deviates: np.ndarray) -> np.ndarray:
        """
        Map deviate vectors to independent Brownian increments.

        Args:
            deviates: [num_paths, dimension]

        Returns:
            Increments [num_paths, n_time_steps, n_factors]
        """
        pass

    @abstractmethod
    def next(self, out: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Generate the increments of one path from one fresh draw.

        Args:
            out: Optional buffer of shape (n_time_steps, n_factors) to fill

        Returns:
            Correlated increments [n_time_steps, n_factors]
        """
        pass

    def generate(self, num_paths: int) -> np.ndarray:
        """
        Generate a block of paths.

        Returns:
            Correlated increments [num_paths, n_time_steps, n_factors]
        """
        if num_paths < 0:
            raise ValueError(f"num_paths must be non-negative, got {num_paths}")
        deviates = self.normal_source.next_block(num_paths)
        increments = self._independent_increments(deviates)
        return apply_correlation(increments, self.sqrt_correl, out=increments)

    def reset(self, seed: Optional[int] = None) -> None:
        """Restart the deviate stream (for reproducible reruns)."""
        self.normal_source.reset(seed)

    def clone(
        self,
        seed: Optional[int] = None,
        normal_source: Optional[NormalDeviateSource] = None
    ) -> "PathGenerator":
        """
        Copy this generator for use by another worker.

        Immutable construction results (grid, transform, bridge points) are
        shared; scratch buffers and the deviate source are not. Pass a
        different seed (or source) per worker to get independent streams.
        """
        other = copy.copy(self)
        if normal_source is None:
            normal_source = copy.deepcopy(self.normal_source)
            if seed is not None:
                normal_source.reset(seed)
        other._check_source(normal_source)
        other.normal_source = normal_source
        other._allocate_scratch()
        return other


class SequentialPathGenerator(PathGenerator):
    """
    Plain random-walk generator: fills the time line in chronological order.

    Increment i of each factor is sqrt(t_i - t_{i-1}) * z_i.
    """

    def __init__(
        self,
        time_steps: Sequence[float],
        n_factors: int = 1,
        correlation: CorrelationInput = None,
        normal_source: Optional[NormalDeviateSource] = None,
        seed: Optional[int] = None,
        source_kind: Optional[str] = None
    ) -> None:
        super().__init__(time_steps, n_factors, correlation, normal_source, seed, source_kind)
        self._sqrt_dt = np.sqrt(np.diff(self._times))
        logger.debug(
            f"Sequential generator: {self.n_time_steps} steps, {self.n_factors} factors"
        )

    def _independent_increments(self, deviates: np.ndarray) -> np.ndarray:
        num_paths = deviates.shape[0]
        z = deviates.reshape(num_paths, self.n_factors, self.n_time_steps)
        return z.transpose(0, 2, 1) * self._sqrt_dt[None, :, None]

    def next(self, out: Optional[np.ndarray] = None) -> np.ndarray:
        out = self._check_output(out)
        devs = self.normal_source.next(self._normal_devs)
        z = devs.reshape(self.n_factors, self.n_time_steps).T
        np.multiply(z, self._sqrt_dt[:, None], out=out)
        return apply_correlation(out, self.sqrt_correl, out=out)
