"""
批量求解框架测试
"""

import numpy as np
import pytest

from liapnash.models import BehaviorProfile
from liapnash.solvers import BatchLiapRunner, max_regret


@pytest.fixture
def batch_config():
    return {
        'experiment': {'random_seed': 7},
        'solvers': {'liapunov': {'n_tries': 5, 'stop_after': 1}},
        'simulation': {'batch': {'num_runs': 6, 'distinct_tol': 1e-4, 'random_start': True}},
    }


class TestBatchLiapRunner:
    """批量运行"""

    def test_reads_config(self, batch_config):
        runner = BatchLiapRunner(batch_config)
        assert runner.params.n_tries == 5
        assert runner.base_seed == 7
        assert runner.distinct_tol == 1e-4

    def test_runs_use_consecutive_seeds(self, coord_game, batch_config):
        results = BatchLiapRunner(batch_config).run(coord_game, 4)
        assert [run.seed for run in results.runs] == [7, 8, 9, 10]
        assert results.num_runs == 4

    def test_aggregate_statistics(self, coord_game, batch_config):
        results = BatchLiapRunner(batch_config).run(coord_game, 6)
        stats = results.aggregate_stats

        assert 0.0 <= stats['success_rate'] <= 1.0
        assert stats['num_solutions'] == sum(len(r.result.solutions) for r in results.runs)
        assert stats['total_evals'] == sum(r.result.num_evals for r in results.runs)
        assert stats['num_distinct'] == len(results.distinct_equilibria)
        assert stats['num_distinct'] <= stats['num_solutions']

    def test_distinct_equilibria_are_separated(self, coord_game, batch_config):
        results = BatchLiapRunner(batch_config).run(coord_game, 6)
        profiles = [s.profile.values for s in results.distinct_equilibria]
        for i in range(len(profiles)):
            for j in range(i + 1, len(profiles)):
                assert np.max(np.abs(profiles[i] - profiles[j])) > 1e-4

    def test_fixed_start_gives_single_equilibrium(self, anti_game, batch_config):
        start = BehaviorProfile.centroid(anti_game)
        results = BatchLiapRunner(batch_config).run(anti_game, 3, start=start)

        assert results.aggregate_stats['success_rate'] == 1.0
        assert len(results.distinct_equilibria) == 1
        assert max_regret(results.distinct_equilibria[0].profile) < 1e-6

    def test_solution_rows(self, anti_game, batch_config):
        start = BehaviorProfile.centroid(anti_game)
        results = BatchLiapRunner(batch_config).run(anti_game, 2, start=start)
        rows = results.solution_rows()

        assert len(rows) == 2
        assert {'run_id', 'seed', 'value', 'regret', 'x0', 'x3'} <= set(rows[0])
