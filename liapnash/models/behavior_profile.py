"""
行为策略Profile模块
以扁平向量存储各(玩家, 信息集, 行动)的概率，并提供实现概率、节点期望收益和条件收益计算
对外使用从1开始的编号，内部统一映射为从0开始的向量下标
"""

import numpy as np
from typing import Tuple, List, Iterator, Optional, Sequence
import logging

from .game_tree import ExtensiveGame, Node, CHANCE
from ..utils.exceptions import GameStructureError, PayoffNormalizationError

logger = logging.getLogger(__name__)

class BehaviorProfile:
    """行为策略Profile"""
    
    def __init__(self, game: ExtensiveGame, values: Optional[Sequence[float]] = None):
        """
        初始化行为策略Profile
        
        Args:
            game: 所属博弈
            values: 扁平概率向量，默认全零
        """
        self.game = game
        self.lengths = game.dimensionality()
        
        # (玩家, 信息集) -> 向量起始下标
        self._offsets: List[List[int]] = []
        position = 0
        for player_lengths in self.lengths:
            offsets = []
            for num_actions in player_lengths:
                offsets.append(position)
                position += num_actions
            self._offsets.append(offsets)
        self._size = position
        
        if values is None:
            self.values = np.zeros(position)
        else:
            values = np.asarray(values, dtype=float)
            if values.shape != (position,):
                raise GameStructureError(
                    f"Profile长度应为{position}，实际为{values.shape}")
            self.values = values.copy()
            
        # 博弈结构在Profile生命周期内保持不变，遍历顺序只计算一次
        self._preorder = game.preorder()
        
    @classmethod
    def centroid(cls, game: ExtensiveGame) -> 'BehaviorProfile':
        """每个信息集上均匀分布的Profile"""
        profile = cls(game)
        for pl, iset in profile.infosets():
            block = profile.infoset_values(pl, iset)
            block[:] = 1.0 / len(block)
        return profile
        
    def __len__(self) -> int:
        return self._size
        
    def copy(self) -> 'BehaviorProfile':
        return BehaviorProfile(self.game, self.values)
        
    def infosets(self) -> Iterator[Tuple[int, int]]:
        """按(玩家, 信息集)顺序遍历"""
        for pl, player_lengths in enumerate(self.lengths, start=1):
            for iset in range(1, len(player_lengths) + 1):
                yield pl, iset
                
    def infoset_slice(self, pl: int, iset: int) -> slice:
        if not 1 <= pl <= len(self.lengths):
            raise GameStructureError(f"玩家编号越界: {pl}")
        if not 1 <= iset <= len(self.lengths[pl - 1]):
            raise GameStructureError(f"玩家{pl}没有信息集{iset}")
        start = self._offsets[pl - 1][iset - 1]
        return slice(start, start + self.lengths[pl - 1][iset - 1])
        
    def index(self, pl: int, iset: int, act: int) -> int:
        """(玩家, 信息集, 行动)对应的向量下标"""
        block = self.infoset_slice(pl, iset)
        if not 1 <= act <= block.stop - block.start:
            raise GameStructureError(f"信息集({pl}, {iset})没有行动{act}")
        return block.start + act - 1
        
    def __getitem__(self, key: Tuple[int, int, int]) -> float:
        return float(self.values[self.index(*key)])
        
    def __setitem__(self, key: Tuple[int, int, int], value: float):
        self.values[self.index(*key)] = value
        
    def infoset_values(self, pl: int, iset: int) -> np.ndarray:
        """信息集上的行动概率（视图，可原地修改）"""
        return self.values[self.infoset_slice(pl, iset)]
        
    def set_vector(self, vector: np.ndarray):
        """原地写入扁平向量"""
        vector = np.asarray(vector, dtype=float)
        if vector.shape != self.values.shape:
            raise GameStructureError(
                f"向量长度应为{self._size}，实际为{vector.shape}")
        self.values[:] = vector
        
    # ------------------------------------------------------------------
    # 期望计算
    # ------------------------------------------------------------------
    
    def _move_probs(self, node: Node) -> np.ndarray:
        if node.player == CHANCE:
            return node.chance_probs
        return self.infoset_values(node.player, node.infoset)
        
    def realization_probs(self) -> np.ndarray:
        """各节点的实现概率"""
        nodes = self.game.nodes
        reach = np.zeros(len(nodes))
        reach[self.game.root] = 1.0
        for node_id in self._preorder:
            node = nodes[node_id]
            if node.is_terminal:
                continue
            reach[node.children] = reach[node_id] * self._move_probs(node)
        return reach
        
    def node_values(self) -> np.ndarray:
        """
        各节点以下的期望收益
        
        Returns:
            形状为(节点数, 玩家数)的数组
        """
        nodes = self.game.nodes
        values = np.zeros((len(nodes), self.game.num_players))
        for node_id in reversed(self._preorder):
            node = nodes[node_id]
            if node.is_terminal:
                if node.payoffs is not None:
                    values[node_id] = node.payoffs
            else:
                values[node_id] = self._move_probs(node) @ values[node.children]
        return values
        
    def payoffs(self) -> np.ndarray:
        """各玩家的期望收益"""
        return self.node_values()[self.game.root]
        
    def conditional_payoffs(self) -> Tuple[np.ndarray, List[np.ndarray]]:
        """
        计算条件收益
        
        cpay(pl, iset, a) = Σ_h R(h)·V_pl(child(h, a)) / P(iset)
        其中R(h)为成员节点的实现概率，P(iset) = Σ_h R(h)。
        P(iset) < 0 时保留未归一化的加权和。
        未被到达的信息集（所有成员实现概率为0）条件收益记为0。
        
        Returns:
            (与Profile对齐的条件收益向量, 各玩家信息集到达概率列表)
            
        Raises:
            PayoffNormalizationError: P(iset)为0但存在非零成员实现概率
        """
        reach = self.realization_probs()
        values = self.node_values()
        nodes = self.game.nodes
        
        cpay = np.zeros(self._size)
        infoset_probs = [np.zeros(len(lengths)) for lengths in self.lengths]
        
        for pl, iset in self.infosets():
            members = self.game.infoset(pl, iset).members
            member_reach = reach[members]
            total = member_reach.sum()
            infoset_probs[pl - 1][iset - 1] = total
            
            if total != 0.0:
                numerator = np.zeros(self.lengths[pl - 1][iset - 1])
                for member_id, prob in zip(members, member_reach):
                    numerator += prob * values[nodes[member_id].children, pl - 1]
                # 到达概率为负（极小化过程中的暂态）时不做归一化
                if total > 0.0:
                    numerator /= total
                cpay[self.infoset_slice(pl, iset)] = numerator
            elif np.any(member_reach != 0.0):
                raise PayoffNormalizationError(
                    f"信息集({pl}, {iset})的到达概率为0，但成员实现概率非零: {member_reach}")
                    
        return cpay, infoset_probs
        
    def __repr__(self) -> str:
        return f"BehaviorProfile({np.array2string(self.values, precision=4)})"
