"""
Powell方向集极小化
无导数的多维极小化：沿一组共轭方向依次做一维线搜索（Brent方法），
每轮外层迭代后用净位移方向替换下降最多的方向
"""

import numpy as np
from typing import Callable, List, Optional, TextIO, Tuple
import logging
from dataclasses import dataclass
from scipy.optimize import minimize_scalar

from ..utils.exceptions import DegenerateDirectionError
from ..utils.status import CancellationToken

logger = logging.getLogger(__name__)

# 收敛判据中避免0/0的极小量
TINY = 1.0e-25

@dataclass
class PowellResult:
    """Powell极小化结果"""
    value: float
    iterations: int
    converged: bool
    cancelled: bool = False

def project(vector: np.ndarray, lengths: List[List[int]]) -> np.ndarray:
    """
    将向量投影到各信息集单纯形约束的切空间（每个信息集块内减去均值）
    
    Args:
        vector: 扁平向量，原地修改
        lengths: 每个玩家各信息集的行动数
        
    Returns:
        投影后的向量
    """
    position = 0
    for player_lengths in lengths:
        for num_actions in player_lengths:
            block = vector[position:position + num_actions]
            block -= block.mean()
            position += num_actions
    return vector

def initial_direction_matrix(lengths: List[List[int]]) -> np.ndarray:
    """单位矩阵的每一行投影到切空间后得到的初始方向矩阵"""
    size = sum(sum(player_lengths) for player_lengths in lengths)
    xi = np.eye(size)
    for row in xi:
        project(row, lengths)
    return xi

def line_minimize(func: Callable[[np.ndarray], float],
                  point: np.ndarray,
                  direction: np.ndarray,
                  fret: float,
                  maxits: int,
                  tol: float) -> Tuple[np.ndarray, float, bool]:
    """
    沿单位化后的方向做一维Brent极小化
    
    Args:
        func: 目标函数
        point: 当前点（不修改）
        direction: 搜索方向
        fret: 当前点的函数值
        maxits: 一维迭代上限
        tol: 一维相对容差
        
    Returns:
        (新点, 新函数值, 是否在迭代上限内收敛)
        
    Raises:
        DegenerateDirectionError: 方向为零向量或含非有限值
    """
    norm = float(np.linalg.norm(direction))
    if norm == 0.0 or not np.isfinite(norm):
        raise DegenerateDirectionError(f"线搜索方向无法归一化: |d|={norm}")
    unit = direction / norm
    
    result = minimize_scalar(lambda t: func(point + t * unit),
                             bracket=(0.0, 1.0), method='brent',
                             options={'xtol': tol, 'maxiter': maxits})
                             
    # 无法形成有效区间时nit为0，说明沿该方向函数平坦
    exhausted = not result.success and result.nit >= maxits
    
    if np.isfinite(result.fun) and result.fun < fret:
        return point + result.x * unit, float(result.fun), not exhausted
    return point, fret, not exhausted

def powell(point: np.ndarray,
           xi: np.ndarray,
           func: Callable[[np.ndarray], float],
           maxits1: int = 100,
           tol1: float = 2.0e-10,
           maxits_n: int = 20,
           tol_n: float = 1.0e-10,
           status: Optional[CancellationToken] = None,
           tracefile: Optional[TextIO] = None,
           trace: int = 0) -> PowellResult:
    """
    Powell方向集极小化
    
    一轮方向扫描后，若相对下降 2(fp-fret) <= tol_n(|fp|+|fret|) + TINY，
    或函数值已不超过tol_n，即视为收敛。
    结果点写回point。每轮外层迭代开始时检查取消令牌，
    被取消时返回未收敛结果而不抛出异常。
    
    Args:
        point: 起点，原地更新为终点
        xi: 方向矩阵（按行存储方向），原地更新
        func: 目标函数
        maxits1: 一维线搜索迭代上限
        tol1: 一维线搜索容差
        maxits_n: 外层迭代上限
        tol_n: 外层相对下降容差
        status: 取消令牌
        tracefile: 诊断输出
        trace: 诊断输出级别
        
    Returns:
        Powell极小化结果
    """
    p = np.array(point, dtype=float)
    fret = func(p)
    pt = p.copy()
    
    # 初始投影后为零的行（单行动信息集）不参与搜索
    active = [i for i in range(xi.shape[0]) if np.any(xi[i] != 0.0)]
    
    for iteration in range(1, maxits_n + 1):
        if status is not None and status.is_set():
            point[:] = p
            return PowellResult(fret, iteration - 1, False, cancelled=True)
            
        fp = fret
        ibig = None
        delta = 0.0
        
        for i in active:
            fptt = fret
            p, fret, line_ok = line_minimize(func, p, xi[i], fret, maxits1, tol1)
            if trace > 1 and tracefile is not None:
                tracefile.write(f"    dir {i}: f = {fret:.12g}\n")
            if not line_ok:
                logger.debug(f"第{iteration}轮方向{i}的线搜索超过{maxits1}次迭代")
                point[:] = p
                return PowellResult(fret, iteration, False)
            if fptt - fret > delta:
                delta = fptt - fret
                ibig = i
                
        if trace > 0 and tracefile is not None:
            tracefile.write(f"iter {iteration}: f = {fret:.12g}\n")
            
        # 相对下降足够小，或函数值本身已降到容差以下
        if (2.0 * (fp - fret) <= tol_n * (abs(fp) + abs(fret)) + TINY
                or fret <= tol_n):
            point[:] = p
            return PowellResult(fret, iteration, True)
            
        # 外推点与平均方向
        ptt = 2.0 * p - pt
        xit = p - pt
        pt = p.copy()
        fptt = func(ptt)
        
        if fptt < fp and ibig is not None:
            t = (2.0 * (fp - 2.0 * fret + fptt) * (fp - fret - delta) ** 2
                 - delta * (fp - fptt) ** 2)
            if t < 0.0:
                p, fret, line_ok = line_minimize(func, p, xit, fret, maxits1, tol1)
                if not line_ok:
                    point[:] = p
                    return PowellResult(fret, iteration, False)
                last = active[-1]
                xi[ibig] = xi[last]
                xi[last] = xit
                
    point[:] = p
    logger.debug(f"Powell在{maxits_n}轮内未收敛，f={fret:.3e}")
    return PowellResult(fret, maxits_n, False)
