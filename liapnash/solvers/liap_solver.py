"""
Liapunov函数求解器
多起点随机重启：第一次从给定Profile出发，之后从随机Profile出发，
对每个起点用Powell方法极小化Liapunov函数，收敛时记录为一个解
"""

import numpy as np
from typing import Dict, Any, List, Optional, TextIO
import logging
from dataclasses import dataclass, field
from enum import Enum

from ..models.game_tree import ExtensiveGame
from ..models.behavior_profile import BehaviorProfile
from ..utils.status import CancellationToken
from .liapunov import LiapunovObjective, max_regret
from .powell import powell, initial_direction_matrix

logger = logging.getLogger(__name__)

class SolutionCreator(Enum):
    """解的来源算法"""
    LIAP = "liap"

@dataclass
class LiapParams:
    """Liapunov求解参数"""
    n_tries: int = 10          # 最多尝试的起点数
    stop_after: int = 1        # 接受的解达到该数量后停止，0表示不限
    maxits1: int = 100         # 一维线搜索迭代上限
    tol1: float = 2.0e-10      # 一维线搜索容差
    maxits_n: int = 20         # Powell外层迭代上限
    tol_n: float = 1.0e-10     # Powell外层容差
    trace: int = 0             # 诊断输出级别
    tracefile: Optional[TextIO] = None
    status: CancellationToken = field(default_factory=CancellationToken)
    
    def __post_init__(self):
        for name in ('n_tries', 'stop_after', 'maxits1', 'maxits_n', 'trace'):
            if getattr(self, name) < 0:
                raise ValueError(f"{name}不能为负: {getattr(self, name)}")
        for name in ('tol1', 'tol_n'):
            if not getattr(self, name) > 0:
                raise ValueError(f"{name}必须为正: {getattr(self, name)}")
                
    @classmethod
    def from_config(cls, config: Dict[str, Any], **overrides) -> 'LiapParams':
        """
        从配置字典读取solvers.liapunov节
        
        Args:
            config: 完整配置
            **overrides: 覆盖配置中的值（如status、tracefile）
            
        Returns:
            求解参数
        """
        solver_config = config.get('solvers', {}).get('liapunov', {})
        defaults = cls.__dataclass_fields__
        kwargs = {}
        for name in ('n_tries', 'stop_after', 'maxits1', 'maxits_n', 'trace'):
            kwargs[name] = int(solver_config.get(name, defaults[name].default))
        for name in ('tol1', 'tol_n'):
            kwargs[name] = float(solver_config.get(name, defaults[name].default))
        kwargs.update(overrides)
        return cls(**kwargs)

@dataclass(frozen=True)
class Solution:
    """被接受的均衡解"""
    profile: BehaviorProfile
    value: float
    creator: SolutionCreator = SolutionCreator.LIAP
    
    @property
    def regret(self) -> float:
        """到达信息集上的最大偏离收益"""
        return max_regret(self.profile)

@dataclass
class LiapResult:
    """一次求解调用的结果"""
    solutions: List[Solution]
    num_evals: int
    num_iters: int
    attempts: int
    cancelled: bool = False

def pick_random_profile(profile: BehaviorProfile, rng: np.random.Generator):
    """
    原地为每个信息集抽取随机概率向量
    
    除最后一个行动外依次抽取[0, 1)均匀数，若累计和超过1则重抽；
    最后一个行动取1减去累计和。
    """
    for pl, iset in profile.infosets():
        block = profile.infoset_values(pl, iset)
        total = 0.0
        for act in range(len(block) - 1):
            tmp = rng.random()
            while total + tmp > 1.0:
                tmp = rng.random()
            block[act] = tmp
            total += tmp
        block[-1] = 1.0 - total

def liap_solve(game: ExtensiveGame,
               params: LiapParams,
               start: BehaviorProfile,
               rng: Optional[np.random.Generator] = None) -> LiapResult:
    """
    多起点极小化Liapunov函数
    
    Args:
        game: 博弈
        params: 求解参数
        start: 第一次尝试的起点
        rng: 随机重启使用的随机数生成器
        
    Returns:
        求解结果；没有收敛的尝试时solutions为空
    """
    rng = rng if rng is not None else np.random.default_rng()
    objective = LiapunovObjective(game, start)
    profile = start.copy()
    lengths = game.dimensionality()
    status = params.status
    trace = params.tracefile if params.trace > 0 else None
    
    solutions: List[Solution] = []
    num_iters = 0
    attempts = 0
    cancelled = False
    
    logger.debug(f"{game.title or '博弈'}: 开始求解，维度{len(profile)}，"
                 f"最多{params.n_tries}次尝试")
                 
    while attempts < params.n_tries:
        if status.observe():
            cancelled = True
            break
            
        if attempts > 0:
            pick_random_profile(profile, rng)
        attempts += 1
        
        if trace is not None:
            trace.write(f"\nTry #: {attempts}\nstarting point: {profile.values}\n")
            
        point = profile.values.copy()
        xi = initial_direction_matrix(lengths)
        result = powell(point, xi, objective,
                        maxits1=params.maxits1, tol1=params.tol1,
                        maxits_n=params.maxits_n, tol_n=params.tol_n,
                        status=status, tracefile=trace, trace=params.trace)
        num_iters += result.iterations
        profile.set_vector(point)
        
        if result.converged:
            solutions.append(Solution(profile.copy(), result.value))
            logger.debug(f"尝试{attempts}收敛: f={result.value:.3e}，"
                         f"{result.iterations}轮迭代")
            if trace is not None:
                trace.write(f"accepted: {profile.values}, f = {result.value:.12g}\n")
        else:
            logger.debug(f"尝试{attempts}未收敛: f={result.value:.3e}")
            
        if status.observe():
            cancelled = True
            break
        if params.stop_after > 0 and len(solutions) >= params.stop_after:
            break
            
    if cancelled:
        logger.info(f"求解在第{attempts}次尝试后被取消，已接受{len(solutions)}个解")
        
    return LiapResult(solutions=solutions, num_evals=objective.num_evals,
                      num_iters=num_iters, attempts=attempts, cancelled=cancelled)
