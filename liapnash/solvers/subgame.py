"""
子博弈分解求解器
自下而上逐个求解已标记的子博弈：内层子博弈解出后，在外层子博弈中
被替换为携带其期望收益的终点，最后把各子博弈的解拼接成完整Profile
"""

import numpy as np
from typing import Dict, List, Optional, Tuple
import logging
from dataclasses import dataclass
from concurrent.futures import ThreadPoolExecutor

from ..models.game_tree import ExtensiveGame
from ..models.behavior_profile import BehaviorProfile
from ..utils.exceptions import SubgameConsistencyError
from ..utils.reproducibility import spawn_generators
from .liap_solver import LiapParams, Solution, liap_solve
from .liapunov import liap_value

logger = logging.getLogger(__name__)

@dataclass
class DecomposedResult:
    """分解求解结果"""
    profile: BehaviorProfile
    subgame_solutions: List[List[Solution]]
    num_evals: int
    cancelled: bool
    value: float

class SubgameDecomposer:
    """子博弈分解器"""
    
    def __init__(self, game: ExtensiveGame, params: LiapParams,
                 start: BehaviorProfile, max_depth: int = 0):
        """
        初始化分解器并建立信息集到子博弈编号的映射
        
        Args:
            game: 已标记子博弈根的博弈
            params: 每个子博弈使用的求解参数
            start: 完整博弈的起始Profile
            max_depth: 只使用嵌套深度不超过该值的子博弈根，0表示不限
            
        Raises:
            SubgameConsistencyError: 某个信息集不属于任何子博弈根
        """
        if max_depth < 0:
            raise ValueError(f"max_depth不能为负: {max_depth}")
            
        self.game = game
        self.params = params
        self.profile = start.copy()
        self.num_evals = 0
        self._counter = 0
        
        roots = game.marked_subgame_roots()
        if max_depth > 0:
            roots = [r for r in roots if self._depth(r, roots) <= max_depth]
        self.roots = roots
        
        rank = {root: number for number, root in enumerate(roots, start=1)}
        self.subgame_map: Dict[Tuple[int, int], int] = {}
        for pl, iset in self.profile.infosets():
            members = game.infoset(pl, iset).members
            if not members:
                raise SubgameConsistencyError(f"信息集({pl}, {iset})没有成员节点")
            root = game.subgame_root_of(members[0], roots)
            if root is None:
                raise SubgameConsistencyError(
                    f"信息集({pl}, {iset})的节点{members[0]}不在任何子博弈中")
            self.subgame_map[(pl, iset)] = rank[root]
            
        logger.info(f"子博弈分解器初始化完成: {len(roots)}个子博弈，"
                    f"{len(self.subgame_map)}个信息集")
                    
    def _depth(self, root: int, roots: List[int]) -> int:
        """root之上（不含自身）的子博弈根数量"""
        return sum(1 for other in roots
                   if other != root and self.game.is_descendant(root, other))
                   
    @property
    def num_subgames(self) -> int:
        return len(self.roots)
        
    def heights(self) -> List[int]:
        """每个子博弈在子博弈树中的高度，不含内层子博弈的为0"""
        heights = []
        for index, root in enumerate(self.roots):
            nested = [heights[i] for i in range(index)
                      if self.game.is_descendant(self.roots[i], root)]
            heights.append(1 + max(nested) if nested else 0)
        return heights
        
    def local_infosets(self, number: int) -> List[Tuple[Tuple[int, int], Tuple[int, int]]]:
        """
        子博弈中的信息集对应关系
        
        Returns:
            [((玩家, 原信息集), (玩家, 子博弈内信息集))]，每个玩家内按原编号连续排列
        """
        pairs = []
        next_iset: Dict[int, int] = {}
        for (pl, iset), subgame in sorted(self.subgame_map.items()):
            if subgame != number:
                continue
            next_iset[pl] = next_iset.get(pl, 0) + 1
            pairs.append(((pl, iset), (pl, next_iset[pl])))
        return pairs
        
    def build_subgame(self, number: int) -> ExtensiveGame:
        """
        构造第number个子博弈
        
        内层子博弈的根被替换为终点，收益为当前Profile下该节点的期望收益。
        """
        index = number - 1
        root = self.roots[index]
        nested = [r for r in self.roots[:index] if self.game.is_descendant(r, root)]
        
        values = self.profile.node_values()
        replacements = {r: values[r].copy() for r in nested}
        subgame, infoset_map = self.game.copy_subtree(root, replacements)
        
        expected = {old: (pl, new) for old, (pl, new) in self.local_infosets(number)}
        if {key: (key[0], value) for key, value in infoset_map.items()} != expected:
            raise SubgameConsistencyError(
                f"子博弈{number}（根节点{root}）包含的信息集与子博弈映射不一致")
        return subgame
        
    def restricted_start(self, number: int, subgame: ExtensiveGame) -> BehaviorProfile:
        """把当前完整Profile中属于该子博弈的概率复制到子博弈Profile"""
        local = BehaviorProfile(subgame)
        for (pl, iset), (_, local_iset) in self.local_infosets(number):
            local.infoset_values(pl, local_iset)[:] = self.profile.infoset_values(pl, iset)
        return local
        
    def solve_subgame(self, subgame: ExtensiveGame,
                      rng: Optional[np.random.Generator] = None
                      ) -> Tuple[List[Solution], bool]:
        """
        求解下一个子博弈
        
        Args:
            subgame: build_subgame构造的子博弈
            rng: 随机数生成器
            
        Returns:
            (子博弈坐标下的候选解, 是否被取消)
        """
        self._counter += 1
        start = self.restricted_start(self._counter, subgame)
        result = liap_solve(subgame, self.params, start, rng)
        self.num_evals += result.num_evals
        return result.solutions, result.cancelled
        
    def overlay(self, number: int, fragment: BehaviorProfile):
        """把子博弈的解写回当前完整Profile"""
        for (pl, iset), (_, local_iset) in self.local_infosets(number):
            self.profile.infoset_values(pl, iset)[:] = fragment.infoset_values(pl, local_iset)
            
    def compose(self, number: int, solutions: List[Solution]) -> Optional[Solution]:
        """选取Liapunov值最小的候选解写回；没有候选解时保留起始值"""
        if not solutions:
            logger.warning(f"子博弈{number}没有找到收敛的解，保留起始Profile")
            return None
        best = min(solutions, key=lambda s: s.value)
        self.overlay(number, best.profile)
        return best

def _solve_task(subgame: ExtensiveGame, params: LiapParams, start: BehaviorProfile,
                rng: np.random.Generator):
    result = liap_solve(subgame, params, start, rng)
    return result.solutions, result.num_evals, result.cancelled

def solve_decomposed(game: ExtensiveGame,
                     start: BehaviorProfile,
                     params: LiapParams,
                     max_depth: int = 0,
                     rng: Optional[np.random.Generator] = None,
                     workers: int = 1) -> DecomposedResult:
    """
    按子博弈自下而上求解
    
    Args:
        game: 已标记子博弈根的博弈
        start: 起始Profile
        params: 求解参数
        max_depth: 子博弈嵌套深度上限，0表示不限
        rng: 随机数生成器
        workers: 大于1时，同一高度的子博弈并行求解
        
    Returns:
        分解求解结果
    """
    rng = rng if rng is not None else np.random.default_rng()
    decomposer = SubgameDecomposer(game, params, start, max_depth)
    subgame_solutions: List[List[Solution]] = []
    cancelled = False
    
    if workers <= 1:
        for number in range(1, decomposer.num_subgames + 1):
            subgame = decomposer.build_subgame(number)
            solutions, cancelled = decomposer.solve_subgame(subgame, rng)
            subgame_solutions.append(solutions)
            decomposer.compose(number, solutions)
            if cancelled:
                logger.info(f"分解求解在子博弈{number}处被取消")
                break
    else:
        heights = decomposer.heights()
        by_number: Dict[int, List[Solution]] = {}
        with ThreadPoolExecutor(max_workers=workers) as executor:
            for height in sorted(set(heights)):
                wave = [n for n, h in enumerate(heights, start=1) if h == height]
                generators = spawn_generators(rng, len(wave))
                futures = []
                for number, task_rng in zip(wave, generators):
                    subgame = decomposer.build_subgame(number)
                    local = decomposer.restricted_start(number, subgame)
                    futures.append(executor.submit(_solve_task, subgame, params,
                                                   local, task_rng))
                                                   
                for number, future in zip(wave, futures):
                    solutions, num_evals, task_cancelled = future.result()
                    decomposer.num_evals += num_evals
                    cancelled = cancelled or task_cancelled
                    by_number[number] = solutions
                    
                for number in wave:
                    decomposer.compose(number, by_number[number])
                logger.debug(f"高度{height}的{len(wave)}个子博弈求解完成")
                if cancelled:
                    logger.info(f"分解求解在高度{height}处被取消")
                    break
        subgame_solutions = [by_number[n] for n in sorted(by_number)]
        
    profile = decomposer.profile
    value = liap_value(profile)
    logger.info(f"分解求解完成: f={value:.3e}，评估{decomposer.num_evals}次")
    return DecomposedResult(profile=profile, subgame_solutions=subgame_solutions,
                            num_evals=decomposer.num_evals, cancelled=cancelled,
                            value=value)
