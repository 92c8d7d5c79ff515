"""
可重复性工具
统一设置随机种子，并为并行求解的子博弈派生相互独立的随机数生成器
"""

import numpy as np
import logging
import os
import random
from typing import List

logger = logging.getLogger(__name__)

def setup_reproducibility(seed: int = 42) -> np.random.Generator:
    """
    设置可重复性
    
    Args:
        seed: 随机种子
        
    Returns:
        以该种子初始化的随机数生成器
    """
    # Python随机种子
    random.seed(seed)
    
    # NumPy全局随机种子
    np.random.seed(seed)
    
    os.environ['PYTHONHASHSEED'] = str(seed)
    
    logger.info(f"随机种子设置为: {seed}")
    return np.random.default_rng(seed)

def spawn_generators(rng: np.random.Generator, n: int) -> List[np.random.Generator]:
    """从rng派生n个独立的子生成器"""
    return list(rng.spawn(n))
