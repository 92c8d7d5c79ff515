"""
Liapunov目标函数测试
"""

import numpy as np
import pytest

from liapnash.models import BehaviorProfile
from liapnash.solvers import LiapunovObjective, liap_value, max_regret, BIG1


class TestLiapunovObjective:
    """目标函数取值"""

    def test_non_negative_everywhere(self, pennies_game, rng):
        start = BehaviorProfile.centroid(pennies_game)
        objective = LiapunovObjective(pennies_game, start)
        for _ in range(50):
            assert objective(rng.uniform(-1.0, 2.0, size=len(start))) >= 0.0

    def test_zero_at_mixed_equilibrium(self, anti_game):
        assert liap_value(BehaviorProfile.centroid(anti_game)) == 0.0

    def test_zero_at_pure_equilibria(self, entry):
        # (In, Accommodate) 和 (Out, Fight) 都是纳什均衡
        assert liap_value(BehaviorProfile(entry, [0.0, 1.0, 0.0, 1.0])) == 0.0
        assert liap_value(BehaviorProfile(entry, [1.0, 0.0, 1.0, 0.0])) == 0.0

    def test_positive_away_from_equilibrium(self, entry):
        # (In, Fight): 玩家1偏离收益1，玩家2偏离收益2
        profile = BehaviorProfile(entry, [0.0, 1.0, 1.0, 0.0])
        assert liap_value(profile) == pytest.approx(5.0)

    def test_negative_probability_penalty(self, anti_game):
        baseline = BehaviorProfile.centroid(anti_game)
        perturbed = BehaviorProfile(anti_game, [-0.1, 1.1, 0.5, 0.5])
        assert liap_value(perturbed) - liap_value(baseline) >= BIG1 * 0.1 ** 2

    def test_sum_penalty(self, anti_game):
        profile = BehaviorProfile(anti_game, [0.6, 0.6, 0.5, 0.5])
        # 玩家1的概率和为1.2
        assert liap_value(profile) >= 100.0 * 0.2 ** 2

    def test_counts_evaluations(self, anti_game):
        start = BehaviorProfile.centroid(anti_game)
        objective = LiapunovObjective(anti_game, start)
        assert objective.num_evals == 0
        objective(start.values)
        objective.evaluate(start.values)
        assert objective.num_evals == 2

    def test_evaluation_is_repeatable(self, coord_game, rng):
        start = BehaviorProfile.centroid(coord_game)
        objective = LiapunovObjective(coord_game, start)
        vector = rng.uniform(0.0, 1.0, size=len(start))
        first = objective(vector)
        objective(rng.uniform(0.0, 1.0, size=len(start)))
        assert objective(vector) == first

    def test_does_not_touch_start_profile(self, anti_game):
        start = BehaviorProfile.centroid(anti_game)
        objective = LiapunovObjective(anti_game, start)
        objective(np.array([1.0, 0.0, 0.0, 1.0]))
        np.testing.assert_array_equal(start.values, [0.5, 0.5, 0.5, 0.5])


class TestMaxRegret:
    """最大偏离收益"""

    def test_regret_off_equilibrium(self, entry):
        assert max_regret(BehaviorProfile(entry, [0.0, 1.0, 1.0, 0.0])) == pytest.approx(2.0)

    def test_unreached_infosets_ignored(self, entry):
        assert max_regret(BehaviorProfile(entry, [1.0, 0.0, 1.0, 0.0])) == 0.0
