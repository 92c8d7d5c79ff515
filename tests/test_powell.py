"""
Powell方向集极小化测试
"""

import io

import numpy as np
import pytest

from liapnash.models import BehaviorProfile
from liapnash.solvers import (
    LiapunovObjective, powell, project, initial_direction_matrix, line_minimize
)
from liapnash.utils import CancellationToken, DegenerateDirectionError


def quadratic(x):
    return (x[0] - 1.0) ** 2 + 2.0 * (x[1] + 0.5) ** 2


class TestDirections:
    """投影与初始方向"""

    def test_projection_zeroes_block_sums(self, rng):
        lengths = [[2, 3], [4]]
        vector = rng.normal(size=9)
        project(vector, lengths)
        assert vector[0:2].sum() == pytest.approx(0.0, abs=1e-12)
        assert vector[2:5].sum() == pytest.approx(0.0, abs=1e-12)
        assert vector[5:9].sum() == pytest.approx(0.0, abs=1e-12)

    def test_initial_matrix(self):
        xi = initial_direction_matrix([[2], [1]])
        assert xi.shape == (3, 3)
        np.testing.assert_allclose(xi[0], [0.5, -0.5, 0.0])
        np.testing.assert_allclose(xi[1], [-0.5, 0.5, 0.0])
        # 单行动信息集投影后为零行
        np.testing.assert_array_equal(xi[2], [0.0, 0.0, 0.0])


class TestLineMinimize:
    """一维线搜索"""

    def test_moves_to_line_minimum(self):
        point = np.array([0.0, 0.0])
        new_point, value, converged = line_minimize(
            quadratic, point, np.array([1.0, 0.0]), quadratic(point), 100, 2e-10)
        assert converged
        np.testing.assert_allclose(new_point, [1.0, 0.0], atol=1e-6)
        assert value == pytest.approx(0.5)
        np.testing.assert_array_equal(point, [0.0, 0.0])

    def test_keeps_point_when_no_improvement(self):
        point = np.array([1.0, -0.5])
        new_point, value, _ = line_minimize(
            quadratic, point, np.array([0.0, 1.0]), 0.0, 100, 2e-10)
        np.testing.assert_array_equal(new_point, point)
        assert value == 0.0

    def test_flat_direction_is_not_a_failure(self):
        point = np.array([1.0, -0.5])
        new_point, value, converged = line_minimize(
            lambda x: 3.0, point, np.array([1.0, 0.0]), 3.0, 100, 2e-10)
        assert converged
        np.testing.assert_array_equal(new_point, point)

    @pytest.mark.parametrize("direction", [[0.0, 0.0], [np.nan, 1.0], [np.inf, 0.0]])
    def test_degenerate_direction(self, direction):
        with pytest.raises(DegenerateDirectionError):
            line_minimize(quadratic, np.zeros(2), np.array(direction), 1.0, 100, 2e-10)

    def test_degenerate_direction_is_arithmetic_error(self):
        with pytest.raises(ArithmeticError):
            line_minimize(quadratic, np.zeros(2), np.zeros(2), 1.0, 100, 2e-10)


class TestPowell:
    """外层迭代"""

    def test_minimizes_quadratic(self):
        point = np.array([3.0, 2.0])
        result = powell(point, np.eye(2), quadratic)
        assert result.converged
        assert not result.cancelled
        assert result.value <= 1e-10
        np.testing.assert_allclose(point, [1.0, -0.5], atol=1e-4)

    def test_equilibrium_start_converges_immediately(self, anti_game):
        start = BehaviorProfile.centroid(anti_game)
        objective = LiapunovObjective(anti_game, start)
        point = start.values.copy()
        result = powell(point, initial_direction_matrix(anti_game.dimensionality()),
                        objective)

        assert result.converged
        assert result.iterations == 1
        assert result.value < 2e-10
        np.testing.assert_allclose(point, [0.5, 0.5, 0.5, 0.5], atol=1e-6)

    def test_cancellation_before_first_iteration(self):
        token = CancellationToken()
        token.set()
        point = np.array([3.0, 2.0])
        result = powell(point, np.eye(2), quadratic, status=token)

        assert result.cancelled
        assert not result.converged
        assert result.iterations == 0
        np.testing.assert_array_equal(point, [3.0, 2.0])
        # Powell只读取令牌，复位由调用方负责
        assert token.is_set()

    def test_iteration_budget_exhausted(self):
        def rosenbrock(x):
            return (1.0 - x[0]) ** 2 + 100.0 * (x[1] - x[0] ** 2) ** 2

        point = np.array([-1.2, 2.0])
        result = powell(point, np.eye(2), rosenbrock, maxits_n=1, tol_n=1e-14)
        assert not result.converged
        assert result.iterations == 1

    def test_zero_rows_are_skipped(self):
        calls = []

        def func(x):
            calls.append(x.copy())
            return (x[0] - 2.0) ** 2

        xi = np.array([[1.0, 0.0], [0.0, 0.0]])
        result = powell(np.array([0.0, 5.0]), xi, func)
        assert result.converged
        assert all(c[1] == 5.0 for c in calls)

    def test_trace_output(self):
        trace = io.StringIO()
        powell(np.array([3.0, 2.0]), np.eye(2), quadratic, tracefile=trace, trace=2)
        text = trace.getvalue()
        assert "iter 1" in text
        assert "dir 0" in text
