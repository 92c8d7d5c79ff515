"""
批量求解框架
以不同随机种子多次独立运行Liapunov求解器，统计收敛率并归并出互不相同的均衡
"""

import numpy as np
from typing import Dict, Any, List, Optional
import logging
from dataclasses import dataclass
import time
from tqdm import tqdm

from ..models.game_tree import ExtensiveGame
from ..models.behavior_profile import BehaviorProfile
from .liap_solver import LiapParams, LiapResult, Solution, liap_solve, pick_random_profile

logger = logging.getLogger(__name__)

@dataclass
class BatchRun:
    """单次运行结果"""
    run_id: int
    seed: int
    result: LiapResult
    execution_time: float

@dataclass
class BatchResults:
    """批量求解结果"""
    game_title: str
    num_runs: int
    runs: List[BatchRun]
    distinct_equilibria: List[Solution]
    aggregate_stats: Dict[str, Any]
    execution_time: float
    
    def solution_rows(self) -> List[Dict[str, Any]]:
        """每个解一行，便于导出为表格"""
        rows = []
        for run in self.runs:
            for index, solution in enumerate(run.result.solutions):
                row = {'run_id': run.run_id, 'seed': run.seed, 'index': index,
                       'value': solution.value, 'regret': solution.regret}
                for position, prob in enumerate(solution.profile.values):
                    row[f'x{position}'] = float(prob)
                rows.append(row)
        return rows

class BatchLiapRunner:
    """批量Liapunov求解器"""
    
    def __init__(self, config: Dict[str, Any]):
        """
        初始化批量求解器
        
        Args:
            config: 完整配置，读取experiment、solvers.liapunov和simulation.batch节
        """
        self.config = config
        self.params = LiapParams.from_config(config)
        self.base_seed = config.get('experiment', {}).get('random_seed', 42)
        
        batch_config = config.get('simulation', {}).get('batch', {})
        self.distinct_tol = batch_config.get('distinct_tol', 1e-4)
        self.random_start = batch_config.get('random_start', True)
        
        logger.info("批量Liapunov求解器初始化完成")
        
    def run(self, game: ExtensiveGame, num_runs: int,
            start: Optional[BehaviorProfile] = None) -> BatchResults:
        """
        运行批量求解
        
        Args:
            game: 博弈
            num_runs: 运行次数
            start: 起始Profile；为None且random_start开启时每次随机抽取，否则使用均匀Profile
            
        Returns:
            批量求解结果
        """
        start_time = time.time()
        title = game.title or "game"
        
        logger.info(f"开始批量求解 {title}:")
        logger.info(f"  运行次数: {num_runs}")
        logger.info(f"  每次尝试数: {self.params.n_tries}")
        
        runs = []
        for run_id in tqdm(range(num_runs), desc=f"Liapunov求解 {title}"):
            seed = self.base_seed + run_id
            rng = np.random.default_rng(seed)
            
            if start is not None:
                run_start = start
            elif self.random_start:
                run_start = BehaviorProfile(game)
                pick_random_profile(run_start, rng)
            else:
                run_start = BehaviorProfile.centroid(game)
                
            run_begin = time.time()
            result = liap_solve(game, self.params, run_start, rng)
            runs.append(BatchRun(run_id, seed, result, time.time() - run_begin))
            
            if result.cancelled:
                logger.info(f"批量求解在第{run_id + 1}次运行时被取消")
                break
                
        distinct = self._cluster_solutions(runs)
        aggregate_stats = self._compute_aggregate_statistics(runs, distinct)
        execution_time = time.time() - start_time
        
        logger.info(f"批量求解完成，耗时: {execution_time:.2f}秒")
        logger.info(f"收敛率: {aggregate_stats['success_rate']:.1%}")
        logger.info(f"不同均衡数: {len(distinct)}")
        
        return BatchResults(game_title=title, num_runs=len(runs), runs=runs,
                            distinct_equilibria=distinct,
                            aggregate_stats=aggregate_stats,
                            execution_time=execution_time)
                            
    def _cluster_solutions(self, runs: List[BatchRun]) -> List[Solution]:
        """按最大范数距离归并解，每类保留Liapunov值最小的代表"""
        clusters: List[Solution] = []
        for run in runs:
            for solution in run.result.solutions:
                for index, representative in enumerate(clusters):
                    distance = np.max(np.abs(solution.profile.values
                                             - representative.profile.values),
                                      initial=0.0)
                    if distance <= self.distinct_tol:
                        if solution.value < representative.value:
                            clusters[index] = solution
                        break
                else:
                    clusters.append(solution)
        return clusters
        
    def _compute_aggregate_statistics(self, runs: List[BatchRun],
                                      distinct: List[Solution]) -> Dict[str, Any]:
        """计算汇总统计"""
        if not runs:
            return {'success_rate': 0.0, 'num_solutions': 0, 'num_distinct': 0}
            
        values = [s.value for run in runs for s in run.result.solutions]
        successes = sum(1 for run in runs if run.result.solutions)
        
        return {
            'num_solutions': len(values),
            'success_rate': successes / len(runs),
            'value_mean': float(np.mean(values)) if values else None,
            'value_min': float(np.min(values)) if values else None,
            'total_evals': int(sum(run.result.num_evals for run in runs)),
            'total_iters': int(sum(run.result.num_iters for run in runs)),
            'mean_attempts': float(np.mean([run.result.attempts for run in runs])),
            'mean_run_time': float(np.mean([run.execution_time for run in runs])),
            'num_distinct': len(distinct),
            'distinct_profiles': [s.profile.values.copy() for s in distinct],
        }
