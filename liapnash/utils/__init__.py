"""
工具模块
包含配置管理器、日志与结果导出、可重复性工具、取消令牌和异常类型
"""

from .exceptions import (
    LiapError, GameStructureError, SubgameConsistencyError,
    LiapArithmeticError, DegenerateDirectionError, PayoffNormalizationError
)
from .status import CancellationToken
from .reproducibility import setup_reproducibility, spawn_generators
from .utils import ConfigManager, Logger, ResultsManager, create_experiment_id, ensure_dir, format_number, validate_config

__all__ = [
    'LiapError', 'GameStructureError', 'SubgameConsistencyError',
    'LiapArithmeticError', 'DegenerateDirectionError', 'PayoffNormalizationError',
    'CancellationToken', 'setup_reproducibility', 'spawn_generators',
    'ConfigManager', 'Logger', 'ResultsManager', 'create_experiment_id', 'ensure_dir', 'format_number', 'validate_config'
]
