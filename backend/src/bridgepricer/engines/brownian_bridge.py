"""
Brownian bridge path generator.

Instead of walking the time line in chronological order, the bridge draws
the terminal value first and then fills the grid coarse-to-fine: each
interior point is sampled conditionally on two already-known neighbours,

    W(t_m) = w_l * W(t_l) + w_r * W(t_r) + sigma_m * z

    w_l     = (t_r - t_m) / (t_r - t_l)
    w_r     = (t_m - t_l) / (t_r - t_l)
    sigma_m = sqrt((t_m - t_l) * (t_r - t_m) / (t_r - t_l))

The interpolation points are computed once per time grid by repeated
bisection and replayed in priority order (coarse levels first) for every
path. The first deviates of each draw therefore carry the large-scale
structure of the path, which is what makes the bridge pair well with
Sobol' sequences.
"""

from dataclasses import dataclass
from operator import attrgetter
from typing import List, Optional, Sequence, Tuple
import logging
import math
import numpy as np

from bridgepricer.exceptions import ShapeMismatch
from bridgepricer.engines.normal_source import NormalDeviateSource
from bridgepricer.engines.path_generator import (
    CorrelationInput,
    PathGenerator,
    apply_correlation,
    augment_time_grid,
    levels_to_increments,
)

logger = logging.getLogger(__name__)

# Tolerance when choosing between the two grid points around an interval's
# mid time: the earlier one wins only if it is closer by more than this.
MIDPOINT_EPSILON = float(np.finfo(np.float64).eps)


@dataclass(frozen=True)
class BridgePoint:
    """
    One interpolated grid point with its two bounding neighbours.

    Indices refer to the augmented grid (0, t_1, ..., t_N), index 0 being
    the time origin.

    Attributes:
        left_index: Index of the left neighbour
        right_index: Index of the right neighbour
        mid_index: Index of the interpolated point
        left_weight: Conditional mean weight on the left value
        right_weight: Conditional mean weight on the right value
        conditional_volatility: Std dev of the value at mid given both neighbours
        priority: Bisection level, 1 for the whole interval, doubled per level
    """

    left_index: int
    right_index: int
    mid_index: int
    left_weight: float
    right_weight: float
    conditional_volatility: float
    priority: int


def _find_midpoint(times: np.ndarray, first: int, last: int, epsilon: float) -> int:
    """Index strictly inside (first, last) whose time is closest to the interval middle."""
    if last - first == 2:
        return first + 1

    t_half = 0.5 * (times[first] + times[last])

    # first grid point whose time exceeds the middle
    mid = first + 1 + int(np.searchsorted(times[first + 1:last + 1], t_half, side="right"))
    if mid > first + 1:
        if abs(times[mid] - t_half) - abs(times[mid - 1] - t_half) > epsilon:
            mid -= 1

    return min(max(mid, first + 1), last - 1)


def build_bridge_points(
    time_steps: Sequence[float],
    epsilon: float = MIDPOINT_EPSILON
) -> Tuple[BridgePoint, ...]:
    """
    Compute the ordered bridge points for a simulation grid.

    The grid is bisected with an explicit work list of (first, last, priority)
    intervals, visiting intervals in the same left-first order a recursive
    bisection would. The result is stable-sorted by priority, so both
    neighbours of any point are known by the time it is reached.

    Args:
        time_steps: Strictly increasing positive times t_1, ..., t_N
        epsilon: Tie-break tolerance of the midpoint search

    Returns:
        N - 1 bridge points in replay order. Index N (the terminal time) is
        drawn directly and index 0 is the origin, so neither appears as a
        mid index.

    Raises:
        OrderingViolation: If the times are not strictly increasing and positive
    """
    times = augment_time_grid(time_steps)
    points: List[BridgePoint] = []

    work = [(0, len(times) - 1, 1)]
    while work:
        first, last, priority = work.pop()
        if last - first <= 1:
            continue

        mid = _find_midpoint(times, first, last, epsilon)
        t_first, t_mid, t_last = times[first], times[mid], times[last]
        span = t_last - t_first

        points.append(BridgePoint(
            left_index=first,
            right_index=last,
            mid_index=mid,
            left_weight=(t_last - t_mid) / span,
            right_weight=(t_mid - t_first) / span,
            conditional_volatility=math.sqrt((t_mid - t_first) * (t_last - t_mid) / span),
            priority=priority,
        ))

        # right half pushed first so the left half is processed first
        work.append((mid, last, 2 * priority))
        work.append((first, mid, 2 * priority))

    points.sort(key=attrgetter("priority"))
    return tuple(points)


class BrownianBridge(PathGenerator):
    """
    Correlated multi-factor Brownian increments built with a Brownian bridge.

    The bridge points are computed once at construction and never modified;
    `clone()` shares them with new instances that get their own buffers.

    Example:
        >>> bb = BrownianBridge([0.25, 0.5, 0.75, 1.0], n_factors=2,
        ...                     correlation=[[1.0, 0.5], [0.5, 1.0]], seed=42)
        >>> bb.dimension()
        8
        >>> bb.next().shape
        (4, 2)
    """

    def __init__(
        self,
        time_steps: Sequence[float],
        n_factors: int = 1,
        correlation: CorrelationInput = None,
        normal_source: Optional[NormalDeviateSource] = None,
        seed: Optional[int] = None,
        source_kind: Optional[str] = None,
        epsilon: float = MIDPOINT_EPSILON
    ) -> None:
        super().__init__(time_steps, n_factors, correlation, normal_source, seed, source_kind)
        self.bridge_points = build_bridge_points(self.time_steps, epsilon)
        self.sqrt_last_time = math.sqrt(self._times[-1])

        logger.debug(
            f"Brownian bridge: {self.n_time_steps} steps, {self.n_factors} factors, "
            f"{len(self.bridge_points)} bridge points, "
            f"max priority {self.bridge_points[-1].priority if self.bridge_points else 0}"
        )

    def _allocate_scratch(self) -> None:
        super()._allocate_scratch()
        self._path = np.zeros((self.n_time_steps + 1, self.n_factors))

    def create_path(
        self,
        normal_devs: np.ndarray,
        path: np.ndarray,
        factor_idx: int
    ) -> None:
        """
        Fill one factor column of a level path from N normal deviates.

        Row 0 is the origin (0), the last row is sqrt(t_N) * normal_devs[0],
        and the remaining rows are filled in bridge point order, consuming
        one deviate per point.

        Args:
            normal_devs: N standard normal deviates
            path: Level buffer with N + 1 rows
            factor_idx: Column of `path` to fill

        Raises:
            ShapeMismatch: If the buffer or the deviates do not fit the grid
        """
        n_devs = len(normal_devs)
        if path.ndim != 2 or path.shape[0] != n_devs + 1:
            raise ShapeMismatch(
                "The path must have one more row than the number of normal deviates",
                (n_devs + 1,), path.shape[:1],
            )
        if n_devs != self.n_time_steps:
            raise ShapeMismatch(
                "Number of normal deviates must equal the number of time steps",
                (self.n_time_steps,), (n_devs,),
            )
        if not 0 <= factor_idx < path.shape[1]:
            raise ShapeMismatch(
                f"Factor index {factor_idx} out of range for path buffer",
                (factor_idx + 1,), path.shape[1:],
            )

        col = path[:, factor_idx]
        col[0] = 0.0
        col[-1] = self.sqrt_last_time * normal_devs[0]
        for k, p in enumerate(self.bridge_points, start=1):
            col[p.mid_index] = (
                p.left_weight * col[p.left_index]
                + p.right_weight * col[p.right_index]
                + p.conditional_volatility * normal_devs[k]
            )

    def next(self, out: Optional[np.ndarray] = None) -> np.ndarray:
        out = self._check_output(out)
        devs = self.normal_source.next(self._normal_devs)
        n = self.n_time_steps

        for j in range(self.n_factors):
            self.create_path(devs[j * n:(j + 1) * n], self._path, j)

        np.subtract(self._path[1:], self._path[:-1], out=out)
        return apply_correlation(out, self.sqrt_correl, out=out)

    def _independent_increments(self, deviates: np.ndarray) -> np.ndarray:
        num_paths = deviates.shape[0]
        n = self.n_time_steps
        z = deviates.reshape(num_paths, self.n_factors, n)

        # levels [path, factor, time]; loop over bridge points only
        levels = np.zeros((num_paths, self.n_factors, n + 1))
        levels[:, :, n] = self.sqrt_last_time * z[:, :, 0]
        for k, p in enumerate(self.bridge_points, start=1):
            levels[:, :, p.mid_index] = (
                p.left_weight * levels[:, :, p.left_index]
                + p.right_weight * levels[:, :, p.right_index]
                + p.conditional_volatility * z[:, :, k]
            )

        return levels_to_increments(levels.transpose(0, 2, 1))
