"""
liapnash测试公共fixture

提供:
- 示例博弈
- 默认求解参数
- 固定种子的随机数生成器
"""

import logging

import numpy as np
import pytest

from liapnash.models import (
    anti_coordination_game, coordination_game, matching_pennies,
    entry_game, chance_split_game
)
from liapnash.solvers import LiapParams


@pytest.fixture
def anti_game():
    return anti_coordination_game()


@pytest.fixture
def coord_game():
    return coordination_game()


@pytest.fixture
def pennies_game():
    return matching_pennies()


@pytest.fixture
def entry():
    return entry_game()


@pytest.fixture
def chance_split():
    return chance_split_game()


@pytest.fixture
def params():
    """默认参数，每次测试都有独立的取消令牌"""
    return LiapParams()


@pytest.fixture
def rng():
    return np.random.default_rng(12345)


@pytest.fixture
def restore_root_logger():
    """Logger会清空根日志器的处理器，测试结束后恢复"""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
