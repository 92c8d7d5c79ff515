"""
博弈模型模块
包含扩展式博弈树、行为策略Profile和示例博弈
"""

from .game_tree import ExtensiveGame, Node, Infoset, Player, CHANCE
from .behavior_profile import BehaviorProfile
from .sample_games import (
    simultaneous_game, anti_coordination_game, coordination_game,
    matching_pennies, entry_game, chance_split_game, SAMPLE_GAMES
)

__all__ = [
    'ExtensiveGame', 'Node', 'Infoset', 'Player', 'CHANCE',
    'BehaviorProfile',
    'simultaneous_game', 'anti_coordination_game', 'coordination_game',
    'matching_pennies', 'entry_game', 'chance_split_game', 'SAMPLE_GAMES'
]
