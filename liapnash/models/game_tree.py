"""
扩展式博弈树模型
以节点数组(arena)表示博弈树：节点用整数id标识，父节点以索引记录，避免对象间的循环引用
玩家、信息集、行动均采用从1开始的编号，与行为策略Profile的(玩家, 信息集, 行动)索引一致
"""

import numpy as np
from typing import Dict, Tuple, Optional, List, Sequence, Union
import logging
from dataclasses import dataclass, field

from ..utils.exceptions import GameStructureError

logger = logging.getLogger(__name__)

# 自然（机会）玩家的编号
CHANCE = 0

@dataclass
class Node:
    """博弈树节点"""
    id: int
    parent: Optional[int] = None          # 父节点id，根节点为None
    parent_action: Optional[int] = None   # 从父节点到达本节点的行动编号
    player: Optional[int] = None          # 行动玩家：None为终点，0为自然
    infoset: Optional[int] = None         # 玩家内的信息集编号
    children: List[int] = field(default_factory=list)
    chance_probs: Optional[np.ndarray] = None
    payoffs: Optional[np.ndarray] = None  # 终点收益向量
    subgame_root: bool = False            # 子博弈根标记
    label: str = ""
    
    @property
    def is_terminal(self) -> bool:
        return not self.children

@dataclass
class Infoset:
    """信息集"""
    player: int
    number: int
    actions: List[str]
    members: List[int] = field(default_factory=list)
    label: str = ""
    
    @property
    def num_actions(self) -> int:
        return len(self.actions)

@dataclass
class Player:
    """参与者"""
    number: int
    name: str
    infosets: List[Infoset] = field(default_factory=list)

class ExtensiveGame:
    """有限扩展式博弈"""
    
    def __init__(self, players: Sequence[str], title: str = ""):
        """
        初始化博弈树，仅包含一个（已标记为子博弈根的）根节点
        
        Args:
            players: 玩家名称列表，按顺序编号为1..n
            title: 博弈名称
        """
        if len(players) == 0:
            raise GameStructureError("博弈至少需要一个玩家")
            
        self.title = title
        self.players = [Player(i + 1, name) for i, name in enumerate(players)]
        self.nodes: List[Node] = [Node(id=0, subgame_root=True)]
        self.root = 0
        
    @property
    def num_players(self) -> int:
        return len(self.players)
        
    def node(self, node_id: int) -> Node:
        if not 0 <= node_id < len(self.nodes):
            raise GameStructureError(f"节点不存在: {node_id}")
        return self.nodes[node_id]
        
    def player(self, pl: int) -> Player:
        if not 1 <= pl <= self.num_players:
            raise GameStructureError(f"玩家编号越界: {pl}")
        return self.players[pl - 1]
        
    def infoset(self, pl: int, iset: int) -> Infoset:
        player = self.player(pl)
        if not 1 <= iset <= len(player.infosets):
            raise GameStructureError(f"玩家{pl}没有信息集{iset}")
        return player.infosets[iset - 1]
        
    def num_actions(self, pl: int, iset: int) -> int:
        return self.infoset(pl, iset).num_actions
        
    # ------------------------------------------------------------------
    # 构造
    # ------------------------------------------------------------------
    
    def new_infoset(self, pl: int, actions: Union[int, Sequence[str]],
                    label: str = "") -> Infoset:
        """
        为玩家新建信息集
        
        Args:
            pl: 玩家编号
            actions: 行动数量或行动名称列表
            label: 信息集名称
            
        Returns:
            新信息集，编号为该玩家当前信息集数+1
        """
        player = self.player(pl)
        if isinstance(actions, int):
            actions = [str(a + 1) for a in range(actions)]
        actions = list(actions)
        if len(actions) == 0:
            raise GameStructureError("信息集至少需要一个行动")
            
        infoset = Infoset(player=pl, number=len(player.infosets) + 1,
                          actions=actions, label=label)
        player.infosets.append(infoset)
        return infoset
        
    def append_move(self, node_id: int, infoset: Infoset) -> List[int]:
        """
        在终点节点处添加玩家决策，按行动数生成子节点
        
        Returns:
            子节点id列表，顺序与行动编号一致
        """
        node = self.node(node_id)
        if not node.is_terminal:
            raise GameStructureError(f"节点{node_id}已有后继，不能再添加行动")
        if self.infoset(infoset.player, infoset.number) is not infoset:
            raise GameStructureError("信息集不属于该博弈")
            
        node.player = infoset.player
        node.infoset = infoset.number
        infoset.members.append(node_id)
        return self._add_children(node, infoset.num_actions)
        
    def append_chance(self, node_id: int, probs: Sequence[float]) -> List[int]:
        """在终点节点处添加自然行动"""
        node = self.node(node_id)
        if not node.is_terminal:
            raise GameStructureError(f"节点{node_id}已有后继，不能再添加行动")
            
        probs = np.asarray(probs, dtype=float)
        if probs.ndim != 1 or len(probs) == 0:
            raise GameStructureError("自然行动概率必须是非空向量")
        if np.any(probs < 0) or abs(probs.sum() - 1.0) > 1e-12:
            raise GameStructureError(f"自然行动概率不合法: {probs}")
            
        node.player = CHANCE
        node.chance_probs = probs
        return self._add_children(node, len(probs))
        
    def set_payoffs(self, node_id: int, payoffs: Sequence[float]):
        """设置终点节点的收益向量"""
        node = self.node(node_id)
        if not node.is_terminal:
            raise GameStructureError(f"节点{node_id}不是终点")
        payoffs = np.asarray(payoffs, dtype=float)
        if payoffs.shape != (self.num_players,):
            raise GameStructureError(
                f"收益向量长度应为{self.num_players}，实际为{payoffs.shape}")
        node.payoffs = payoffs
        
    def _add_children(self, node: Node, count: int) -> List[int]:
        child_ids = []
        for action in range(1, count + 1):
            child = Node(id=len(self.nodes), parent=node.id, parent_action=action)
            self.nodes.append(child)
            node.children.append(child.id)
            child_ids.append(child.id)
        node.payoffs = None
        return child_ids
        
    # ------------------------------------------------------------------
    # 结构查询
    # ------------------------------------------------------------------
    
    def dimensionality(self) -> List[List[int]]:
        """每个玩家各信息集的行动数"""
        return [[infoset.num_actions for infoset in player.infosets]
                for player in self.players]
                
    def num_dimensions(self) -> int:
        return sum(sum(lengths) for lengths in self.dimensionality())
        
    def preorder(self, start: Optional[int] = None) -> List[int]:
        """前序遍历（父节点先于子节点，子节点按行动顺序）"""
        start = self.root if start is None else start
        order = []
        stack = [start]
        while stack:
            node_id = stack.pop()
            order.append(node_id)
            stack.extend(reversed(self.nodes[node_id].children))
        return order
        
    def postorder(self, start: Optional[int] = None) -> List[int]:
        """后序遍历（子节点先于父节点）"""
        start = self.root if start is None else start
        order = []
        stack = [(start, False)]
        while stack:
            node_id, expanded = stack.pop()
            if expanded:
                order.append(node_id)
                continue
            stack.append((node_id, True))
            for child in reversed(self.nodes[node_id].children):
                stack.append((child, False))
        return order
        
    def is_descendant(self, node_id: int, ancestor: int) -> bool:
        """node_id是否位于ancestor为根的子树中（含自身）"""
        current = node_id
        while current is not None:
            if current == ancestor:
                return True
            current = self.nodes[current].parent
        return False
        
    # ------------------------------------------------------------------
    # 子博弈
    # ------------------------------------------------------------------
    
    def is_legal_subgame_root(self, node_id: int) -> bool:
        """
        判断节点是否为合法子博弈根：
        子树中每个决策节点所属信息集的全部成员都在该子树内
        """
        node = self.node(node_id)
        if node.is_terminal:
            return False
            
        subtree = set(self.preorder(node_id))
        for member_id in subtree:
            member = self.nodes[member_id]
            if member.is_terminal or member.player == CHANCE:
                continue
            infoset = self.infoset(member.player, member.infoset)
            if not subtree.issuperset(infoset.members):
                return False
        return True
        
    def mark_subgames(self) -> int:
        """
        标记所有合法子博弈根
        
        Returns:
            已标记的子博弈根数量（含根节点）
        """
        count = 0
        for node_id in self.preorder():
            legal = node_id == self.root or self.is_legal_subgame_root(node_id)
            self.nodes[node_id].subgame_root = legal
            count += legal
        logger.debug(f"{self.title or '博弈'}: 标记了{count}个子博弈根")
        return count
        
    def unmark_subgames(self):
        """清除根节点以外的全部子博弈标记"""
        for node in self.nodes:
            node.subgame_root = node.id == self.root
            
    def mark_subgame(self, node_id: int, marked: bool = True):
        """手动设置单个节点的子博弈标记（不做合法性检查）"""
        self.node(node_id).subgame_root = marked
        
    def marked_subgame_roots(self) -> List[int]:
        """已标记的子博弈根，按后序排列：后代先于祖先，最外层的根在最后"""
        return [node_id for node_id in self.postorder()
                if self.nodes[node_id].subgame_root]
                
    def subgame_root_of(self, node_id: int,
                        roots: Optional[Sequence[int]] = None) -> Optional[int]:
        """
        沿父节点索引向上查找包含node_id的最近子博弈根
        
        Args:
            node_id: 起始节点
            roots: 候选根集合，默认使用所有已标记节点
            
        Returns:
            最近的子博弈根，找不到时返回None
        """
        candidates = set(roots) if roots is not None else None
        current = node_id
        while current is not None:
            node = self.nodes[current]
            if (node.subgame_root if candidates is None else current in candidates):
                return current
            current = node.parent
        return None
        
    def copy_subtree(self, root: int,
                     replacements: Optional[Dict[int, np.ndarray]] = None
                     ) -> Tuple['ExtensiveGame', Dict[Tuple[int, int], int]]:
        """
        以root为根复制子树，生成独立的博弈
        
        子树中出现的信息集按原编号顺序在新博弈中重新编号；
        replacements中的节点被替换为携带给定收益向量的终点。
        
        Args:
            root: 子树根节点
            replacements: {节点id: 收益向量}
            
        Returns:
            (新博弈, {(玩家, 原信息集编号): 新信息集编号})
        """
        replacements = replacements or {}
        copy = ExtensiveGame([p.name for p in self.players],
                             title=f"{self.title}[{root}]")
                             
        # 先确定新博弈中的信息集及其顺序
        used = set()
        stack = [root]
        while stack:
            node_id = stack.pop()
            node = self.nodes[node_id]
            if node_id != root and node_id in replacements:
                continue
            if not node.is_terminal and node.player != CHANCE:
                used.add((node.player, node.infoset))
            stack.extend(node.children)
            
        infoset_map = {}
        new_infosets = {}
        for pl, iset in sorted(used):
            original = self.infoset(pl, iset)
            new_infosets[(pl, iset)] = copy.new_infoset(pl, original.actions,
                                                       original.label)
            infoset_map[(pl, iset)] = new_infosets[(pl, iset)].number
            
        stack = [(root, copy.root)]
        while stack:
            old_id, new_id = stack.pop()
            node = self.nodes[old_id]
            copy.nodes[new_id].label = node.label
            
            if old_id != root and old_id in replacements:
                copy.set_payoffs(new_id, replacements[old_id])
                continue
            if node.is_terminal:
                if node.payoffs is not None:
                    copy.set_payoffs(new_id, node.payoffs)
                continue
                
            if node.player == CHANCE:
                new_children = copy.append_chance(new_id, node.chance_probs)
            else:
                new_children = copy.append_move(
                    new_id, new_infosets[(node.player, node.infoset)])
            for old_child, new_child in reversed(list(zip(node.children, new_children))):
                stack.append((old_child, new_child))
                
        return copy, infoset_map
        
    def __repr__(self) -> str:
        return (f"ExtensiveGame(title={self.title!r}, players={self.num_players}, "
                f"nodes={len(self.nodes)})")
