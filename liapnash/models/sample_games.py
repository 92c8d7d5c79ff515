"""
示例博弈
包含同时行动的2x2博弈（以扩展式表示）和带有真子博弈的序贯博弈，供实验脚本和测试使用
"""

import numpy as np
from typing import Sequence

from .game_tree import ExtensiveGame

def simultaneous_game(payoffs_1: Sequence[Sequence[float]],
                      payoffs_2: Sequence[Sequence[float]],
                      title: str = "simultaneous") -> ExtensiveGame:
    """
    将双人矩阵博弈表示为扩展式博弈
    
    玩家1在根节点行动；玩家2的唯一信息集包含玩家1所有行动之后的节点，
    因此玩家2不知道玩家1的选择。
    
    Args:
        payoffs_1: 玩家1收益矩阵 A[i][j]
        payoffs_2: 玩家2收益矩阵 B[i][j]
        title: 博弈名称
        
    Returns:
        扩展式博弈
    """
    A = np.asarray(payoffs_1, dtype=float)
    B = np.asarray(payoffs_2, dtype=float)
    if A.shape != B.shape or A.ndim != 2:
        raise ValueError("收益矩阵必须形状相同的二维数组")
    rows, cols = A.shape
    
    game = ExtensiveGame(["Player 1", "Player 2"], title=title)
    row_infoset = game.new_infoset(1, rows)
    col_infoset = game.new_infoset(2, cols)
    
    for i, row_node in enumerate(game.append_move(game.root, row_infoset)):
        for j, leaf in enumerate(game.append_move(row_node, col_infoset)):
            game.set_payoffs(leaf, [A[i, j], B[i, j]])
    return game

def anti_coordination_game() -> ExtensiveGame:
    """对称反协调博弈，唯一的对称均衡为双方各以(0.5, 0.5)混合"""
    A = [[0.0, 1.0], [1.0, 0.0]]
    return simultaneous_game(A, A, title="anti-coordination")

def coordination_game() -> ExtensiveGame:
    """协调博弈，(1,1)与(2,2)为纯策略均衡"""
    A = [[2.0, 0.0], [0.0, 1.0]]
    return simultaneous_game(A, A, title="coordination")

def matching_pennies() -> ExtensiveGame:
    """猜硬币博弈"""
    A = [[1.0, -1.0], [-1.0, 1.0]]
    B = [[-1.0, 1.0], [1.0, -1.0]]
    return simultaneous_game(A, B, title="matching pennies")

def entry_game() -> ExtensiveGame:
    """
    市场进入博弈
    
    玩家1（进入者）选择Out得(0, 2)或In；In之后玩家2（在位者）选择
    Fight得(-1, -1)或Accommodate得(1, 1)。In之后的节点是真子博弈的根，
    子博弈精炼均衡为(In, Accommodate)。
    """
    game = ExtensiveGame(["Entrant", "Incumbent"], title="entry")
    entrant = game.new_infoset(1, ["Out", "In"])
    incumbent = game.new_infoset(2, ["Fight", "Accommodate"])
    
    out_node, in_node = game.append_move(game.root, entrant)
    game.set_payoffs(out_node, [0.0, 2.0])
    fight, accommodate = game.append_move(in_node, incumbent)
    game.set_payoffs(fight, [-1.0, -1.0])
    game.set_payoffs(accommodate, [1.0, 1.0])
    
    game.mark_subgames()
    return game

def chance_split_game() -> ExtensiveGame:
    """
    自然先以(0.5, 0.5)选择左右分支，两个分支各是一个独立的单人决策子博弈
    
    左：玩家1在(3, 0)与(1, 0)之间选择；右：玩家2在(0, 1)与(0, 4)之间选择。
    根节点本身不含任何信息集。
    """
    game = ExtensiveGame(["Left", "Right"], title="chance split")
    left_infoset = game.new_infoset(1, ["a", "b"])
    right_infoset = game.new_infoset(2, ["c", "d"])
    
    left, right = game.append_chance(game.root, [0.5, 0.5])
    a, b = game.append_move(left, left_infoset)
    game.set_payoffs(a, [3.0, 0.0])
    game.set_payoffs(b, [1.0, 0.0])
    c, d = game.append_move(right, right_infoset)
    game.set_payoffs(c, [0.0, 1.0])
    game.set_payoffs(d, [0.0, 4.0])
    
    game.mark_subgames()
    return game

SAMPLE_GAMES = {
    'anti_coordination': anti_coordination_game,
    'coordination': coordination_game,
    'matching_pennies': matching_pennies,
    'entry': entry_game,
    'chance_split': chance_split_game,
}
