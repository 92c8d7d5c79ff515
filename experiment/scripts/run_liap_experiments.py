#!/usr/bin/env python3
"""
Liapunov均衡计算实验

这个脚本对示例博弈执行：
1. 批量多起点求解并归并不同均衡
2. 对含真子博弈的博弈做子博弈分解求解
3. 导出结果与解表
"""

import sys
import os
import time
import logging
from datetime import datetime

import numpy as np

from liapnash.models import BehaviorProfile, SAMPLE_GAMES
from liapnash.solvers import BatchLiapRunner, LiapParams, solve_decomposed
from liapnash.utils import (
    ConfigManager, Logger, ResultsManager, create_experiment_id,
    format_number, setup_reproducibility, validate_config
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
                              'configs', 'config.yaml')

def load_configuration(config_path: str) -> ConfigManager:
    """加载并验证配置"""
    manager = ConfigManager(config_path)
    Logger(manager)
    logger.info(f"加载实验配置: {config_path}")
    
    errors = validate_config(manager.config)
    if errors:
        logger.error("配置验证失败:")
        for error in errors:
            logger.error(f"  - {error}")
        raise ValueError("配置文件有错误")
        
    logger.info("配置加载成功")
    return manager

def run_batch_experiments(config: ConfigManager):
    """对每个示例博弈运行批量求解"""
    logger.info("=== 实验1: 多起点批量求解 ===")
    
    runner = BatchLiapRunner(config.config)
    num_runs = config.get('simulation.batch.num_runs', 20)
    
    results, tables = {}, {}
    for name in config.get('simulation.games', list(SAMPLE_GAMES)):
        game = SAMPLE_GAMES[name]()
        batch = runner.run(game, num_runs)
        stats = batch.aggregate_stats
        
        results[name] = {
            'num_runs': batch.num_runs,
            'execution_time': batch.execution_time,
            **stats
        }
        tables[name] = batch.solution_rows()
        
        logger.info(f"{name}:")
        logger.info(f"  收敛率: {stats['success_rate']:.1%}")
        logger.info(f"  不同均衡数: {stats['num_distinct']}")
        for profile in stats['distinct_profiles']:
            logger.info(f"    {np.array2string(profile, precision=4)}")
            
    return results, tables

def run_decomposition_experiments(config: ConfigManager, rng: np.random.Generator):
    """对含有真子博弈的博弈做分解求解"""
    logger.info("=== 实验2: 子博弈分解求解 ===")
    
    params = LiapParams.from_config(config.config)
    max_depth = config.get('solvers.decomposition.max_depth', 0)
    workers = config.get('solvers.decomposition.workers', 1)
    
    results = {}
    for name in config.get('simulation.games', list(SAMPLE_GAMES)):
        game = SAMPLE_GAMES[name]()
        if len(game.marked_subgame_roots()) < 2:
            continue
            
        start = BehaviorProfile.centroid(game)
        result = solve_decomposed(game, start, params, max_depth=max_depth,
                                  rng=rng, workers=workers)
        results[name] = {
            'profile': result.profile.values,
            'value': result.value,
            'num_evals': result.num_evals,
            'num_subgames': len(result.subgame_solutions),
            'cancelled': result.cancelled
        }
        
        logger.info(f"{name}: f={format_number(result.value)}, "
                    f"Profile={np.array2string(result.profile.values, precision=4)}")
                    
    return results

def save_results(all_results, tables, config: ConfigManager):
    """保存实验结果"""
    logger.info("=== 保存实验结果 ===")
    
    results_manager = ResultsManager(config)
    experiment_id = create_experiment_id()
    
    results_manager.save_results(all_results, f"{experiment_id}_results", 'json')
    for name, rows in tables.items():
        if rows:
            results_manager.save_table(rows, f"{experiment_id}_{name}_solutions")
            
    logger.info("实验结果保存完成")

def main(config_path: str = DEFAULT_CONFIG) -> bool:
    """主实验函数"""
    start_time = time.time()
    
    try:
        config = load_configuration(config_path)
    except (RuntimeError, ValueError) as e:
        logging.basicConfig(level=logging.INFO)
        logger.error(f"配置加载失败: {e}")
        return False
        
    logger.info("=" * 80)
    logger.info("Liapunov均衡计算实验开始")
    logger.info("=" * 80)
    
    rng = setup_reproducibility(config.get('experiment.random_seed', 42))
    
    all_results = {'timestamp': datetime.now().isoformat()}
    all_results['batch'], tables = run_batch_experiments(config)
    all_results['decomposition'] = run_decomposition_experiments(config, rng)
    all_results['total_time'] = time.time() - start_time
    
    save_results(all_results, tables, config)
    
    logger.info("=" * 80)
    logger.info("实验成功完成!")
    logger.info(f"总耗时: {all_results['total_time']:.2f} 秒")
    logger.info("=" * 80)
    return True

if __name__ == "__main__":
    success = main(*sys.argv[1:2])
    sys.exit(0 if success else 1)
