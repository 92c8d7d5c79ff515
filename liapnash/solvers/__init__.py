"""
求解器模块
包含Liapunov目标函数、Powell极小化、多起点求解器、子博弈分解求解器和批量求解框架
"""

from .liapunov import LiapunovObjective, liap_value, max_regret, BIG1, BIG2
from .powell import PowellResult, powell, project, initial_direction_matrix, line_minimize
from .liap_solver import (
    LiapParams, LiapResult, Solution, SolutionCreator, liap_solve, pick_random_profile
)
from .subgame import SubgameDecomposer, DecomposedResult, solve_decomposed
from .batch_runner import BatchLiapRunner, BatchResults, BatchRun

__all__ = [
    'LiapunovObjective', 'liap_value', 'max_regret', 'BIG1', 'BIG2',
    'PowellResult', 'powell', 'project', 'initial_direction_matrix', 'line_minimize',
    'LiapParams', 'LiapResult', 'Solution', 'SolutionCreator', 'liap_solve', 'pick_random_profile',
    'SubgameDecomposer', 'DecomposedResult', 'solve_decomposed',
    'BatchLiapRunner', 'BatchResults', 'BatchRun'
]
