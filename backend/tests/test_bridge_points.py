"""Tests for bridge point construction."""

import dataclasses
import math
import pytest
import numpy as np

from bridgepricer.exceptions import OrderingViolation
from bridgepricer.engines.brownian_bridge import (
    MIDPOINT_EPSILON,
    BridgePoint,
    build_bridge_points,
)
from bridgepricer.engines.path_generator import augment_time_grid


def _find(points, mid_index):
    return next(p for p in points if p.mid_index == mid_index)


class TestBridgePointStructure:
    """Tests for the shape of the bridge point list."""

    @pytest.mark.parametrize("n", [1, 2, 3, 4, 7, 8, 13, 64, 100])
    def test_one_point_per_interior_index(self, n: int) -> None:
        """N time steps give N - 1 points covering 1..N-1 exactly once."""
        times = np.arange(1, n + 1) * 0.1
        points = build_bridge_points(times)

        assert len(points) == n - 1
        mids = sorted(p.mid_index for p in points)
        assert mids == list(range(1, n))

    def test_irregular_grid_coverage(self, irregular_grid: np.ndarray) -> None:
        """Every grid index except origin and terminal is interpolated once."""
        points = build_bridge_points(irregular_grid)
        n = len(irregular_grid)

        mids = [p.mid_index for p in points]
        assert len(set(mids)) == len(mids)
        assert set(mids) | {n} == set(range(1, n + 1))

    def test_single_step_has_no_points(self) -> None:
        """A one-step grid is drawn directly from the terminal deviate."""
        assert build_bridge_points([1.0]) == ()

    def test_priorities_non_decreasing(self, irregular_grid: np.ndarray) -> None:
        """Points are ordered coarse level first."""
        points = build_bridge_points(irregular_grid)
        priorities = [p.priority for p in points]

        assert priorities == sorted(priorities)
        assert priorities[0] == 1
        for pr in priorities:
            assert pr & (pr - 1) == 0  # power of two

    def test_neighbours_known_before_use(self, irregular_grid: np.ndarray) -> None:
        """Both neighbours of each point are the origin, the terminal or earlier points."""
        points = build_bridge_points(irregular_grid)
        known = {0, len(irregular_grid)}

        for p in points:
            assert p.left_index in known
            assert p.right_index in known
            assert p.left_index < p.mid_index < p.right_index
            known.add(p.mid_index)

    def test_replay_order_on_uniform_grid(self) -> None:
        """Bisection of 8 equal steps: level by level, left to right."""
        points = build_bridge_points(np.arange(1.0, 9.0))

        assert [p.mid_index for p in points] == [4, 2, 6, 1, 3, 5, 7]
        assert [p.priority for p in points] == [1, 2, 2, 4, 4, 4, 4]

    def test_points_are_immutable(self) -> None:
        """Bridge points cannot be modified after construction."""
        points = build_bridge_points([1.0, 2.0, 3.0])

        assert isinstance(points, tuple)
        with pytest.raises(dataclasses.FrozenInstanceError):
            points[0].left_weight = 0.0


class TestBridgePointCoefficients:
    """Tests for the conditional weights and volatilities."""

    def test_weights_sum_to_one(self, irregular_grid: np.ndarray) -> None:
        """Left and right weights sum to 1 for every point."""
        for p in build_bridge_points(irregular_grid):
            assert abs(p.left_weight + p.right_weight - 1.0) < 1e-12

    def test_coefficients_match_bridge_formula(self, irregular_grid: np.ndarray) -> None:
        """Weights and volatility follow the conditional Brownian distribution."""
        times = augment_time_grid(irregular_grid)

        for p in build_bridge_points(irregular_grid):
            t_l, t_m, t_r = times[p.left_index], times[p.mid_index], times[p.right_index]
            assert p.left_weight == pytest.approx((t_r - t_m) / (t_r - t_l))
            assert p.right_weight == pytest.approx((t_m - t_l) / (t_r - t_l))
            assert p.conditional_volatility == pytest.approx(
                math.sqrt((t_m - t_l) * (t_r - t_m) / (t_r - t_l))
            )

    def test_centred_point_between_unit_neighbours(self) -> None:
        """A point 1.0 away from both neighbours has weights 0.5 and vol sqrt(0.5)."""
        points = build_bridge_points([1.0, 2.0, 3.0, 4.0])

        p = _find(points, 3)  # t = 3.0 between t = 2.0 and t = 4.0
        assert (p.left_index, p.right_index) == (2, 4)
        assert p.left_weight == pytest.approx(0.5)
        assert p.right_weight == pytest.approx(0.5)
        assert p.conditional_volatility == pytest.approx(math.sqrt(0.5))

    def test_three_step_grid(self) -> None:
        """On {1, 2, 3} the first point is t = 2 between the origin and t = 3."""
        points = build_bridge_points([1.0, 2.0, 3.0])

        root, child = points
        assert (root.left_index, root.mid_index, root.right_index) == (0, 2, 3)
        assert root.left_weight == pytest.approx(1.0 / 3.0)
        assert root.right_weight == pytest.approx(2.0 / 3.0)
        assert root.conditional_volatility == pytest.approx(math.sqrt(2.0 / 3.0))

        assert (child.left_index, child.mid_index, child.right_index) == (0, 1, 2)
        assert child.conditional_volatility == pytest.approx(math.sqrt(0.5))


class TestMidpointSelection:
    """Tests for choosing the grid point nearest an interval middle."""

    def test_closer_earlier_point_wins(self) -> None:
        """The earlier point is used when clearly closer to the middle time."""
        # middle of [0, 1.0] is 0.5: t = 0.2 is closer than t = 0.9
        points = build_bridge_points([0.1, 0.2, 0.9, 1.0])
        assert points[0].mid_index == 2

    def test_exact_tie_keeps_later_point(self) -> None:
        """Equidistant points resolve to the later one."""
        # middle of [0, 3] is 1.5: t = 1 and t = 2 are equally close
        points = build_bridge_points([1.0, 2.0, 3.0])
        assert points[0].mid_index == 2

    def test_large_epsilon_keeps_later_point(self) -> None:
        """The tie-break tolerance is a parameter."""
        points = build_bridge_points([0.1, 0.2, 0.9, 1.0], epsilon=1.0)
        assert points[0].mid_index == 3

    def test_default_epsilon_is_machine_epsilon(self) -> None:
        assert MIDPOINT_EPSILON == np.finfo(np.float64).eps

    def test_clustered_dates(self) -> None:
        """Clustered grids still split every interval strictly inside."""
        times = np.concatenate([np.linspace(0.001, 0.01, 10), [5.0, 10.0]])
        points = build_bridge_points(times)

        assert len(points) == len(times) - 1
        for p in points:
            assert p.left_index < p.mid_index < p.right_index
            assert p.conditional_volatility > 0.0


class TestGridValidation:
    """Tests for time grid ordering checks."""

    def test_decreasing_times_rejected(self) -> None:
        """{2.0, 1.0} is not strictly increasing."""
        with pytest.raises(OrderingViolation) as exc_info:
            build_bridge_points([2.0, 1.0])
        assert exc_info.value.position == 2
        assert exc_info.value.previous == 2.0
        assert exc_info.value.current == 1.0

    def test_duplicate_times_rejected(self) -> None:
        with pytest.raises(OrderingViolation):
            build_bridge_points([0.5, 1.0, 1.0, 2.0])

    @pytest.mark.parametrize("first", [0.0, -0.5])
    def test_non_positive_first_time_rejected(self, first: float) -> None:
        """The first time must lie after the origin."""
        with pytest.raises(OrderingViolation, match="strictly increasing"):
            build_bridge_points([first, 1.0])

    def test_nan_rejected(self) -> None:
        with pytest.raises(OrderingViolation):
            build_bridge_points([0.5, float("nan"), 1.0])

    @pytest.mark.parametrize("bad", [np.inf, -np.inf])
    def test_infinite_time_rejected(self, bad: float) -> None:
        with pytest.raises(ValueError, match=r"finite, got t\[2\]"):
            build_bridge_points([0.5, bad])

    def test_empty_grid_rejected(self) -> None:
        with pytest.raises(ValueError, match="at least one"):
            build_bridge_points([])

    def test_ordering_violation_is_value_error(self) -> None:
        """Callers catching ValueError also see ordering errors."""
        with pytest.raises(ValueError):
            build_bridge_points([3.0, 2.0, 1.0])

    def test_augmented_grid_is_read_only(self) -> None:
        times = augment_time_grid([0.5, 1.0])

        assert list(times) == [0.0, 0.5, 1.0]
        with pytest.raises(ValueError):
            times[1] = 0.7


class TestBridgePointDataclass:
    """Tests for the BridgePoint record."""

    def test_equality(self) -> None:
        a = BridgePoint(0, 2, 1, 0.5, 0.5, math.sqrt(0.5), 1)
        b = BridgePoint(0, 2, 1, 0.5, 0.5, math.sqrt(0.5), 1)
        assert a == b
