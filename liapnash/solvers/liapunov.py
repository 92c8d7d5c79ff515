"""
Liapunov目标函数
将"离纳什均衡有多远"刻画为非负惩罚：负概率惩罚、有利偏离惩罚和概率和不为1的惩罚
"""

import numpy as np
import logging

from ..models.game_tree import ExtensiveGame
from ..models.behavior_profile import BehaviorProfile

logger = logging.getLogger(__name__)

# 负概率惩罚系数
BIG1 = 10000.0
# 概率和偏离1的惩罚系数
BIG2 = 100.0

class LiapunovObjective:
    """扩展式博弈的Liapunov函数"""
    
    def __init__(self, game: ExtensiveGame, start: BehaviorProfile):
        """
        初始化目标函数
        
        Args:
            game: 博弈
            start: 起始Profile，仅用于确定维度，目标函数内部持有其副本
        """
        self.game = game
        self._profile = start.copy()
        self._num_evals = 0
        
    @property
    def num_evals(self) -> int:
        """累计评估次数"""
        return self._num_evals
        
    def evaluate(self, vector: np.ndarray) -> float:
        """
        计算给定扁平向量的Liapunov值
        
        Args:
            vector: 扁平化的行为策略
            
        Returns:
            非负标量惩罚值
        """
        self._num_evals += 1
        self._profile.set_vector(vector)
        cpay, _ = self._profile.conditional_payoffs()
        
        result = 0.0
        for pl, iset in self._profile.infosets():
            block = self._profile.infoset_slice(pl, iset)
            x = self._profile.values[block]
            c = cpay[block]
            
            avg = float(np.dot(x, c))
            total = float(x.sum())
            
            # 负概率惩罚
            negative = np.minimum(x, 0.0)
            result += BIG1 * float(np.dot(negative, negative))
            # 非最优反应惩罚
            gain = np.maximum(c - avg, 0.0)
            result += float(np.dot(gain, gain))
            # 概率和不为1的惩罚
            result += BIG2 * (total - 1.0) ** 2
            
        return result
        
    __call__ = evaluate

def liap_value(profile: BehaviorProfile) -> float:
    """单次计算Profile的Liapunov值"""
    return LiapunovObjective(profile.game, profile).evaluate(profile.values)

def max_regret(profile: BehaviorProfile) -> float:
    """
    到达信息集上的最大单边偏离收益 max_a c_a - avg
    
    未被到达的信息集不计入。
    """
    cpay, infoset_probs = profile.conditional_payoffs()
    regret = 0.0
    for pl, iset in profile.infosets():
        if infoset_probs[pl - 1][iset - 1] == 0.0:
            continue
        block = profile.infoset_slice(pl, iset)
        x = profile.values[block]
        c = cpay[block]
        regret = max(regret, float(c.max() - np.dot(x, c)))
    return regret
