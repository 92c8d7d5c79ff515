"""
liapnash
通过极小化Liapunov函数计算有限扩展式博弈的纳什均衡
"""

from .models import ExtensiveGame, BehaviorProfile
from .solvers import LiapParams, Solution, liap_solve, solve_decomposed
from .utils import CancellationToken

__version__ = "0.1.0"

__all__ = [
    'ExtensiveGame', 'BehaviorProfile',
    'LiapParams', 'Solution', 'liap_solve', 'solve_decomposed',
    'CancellationToken'
]
