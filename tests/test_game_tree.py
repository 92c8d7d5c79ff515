"""
扩展式博弈树测试
"""

import numpy as np
import pytest

from liapnash.models import ExtensiveGame, CHANCE, simultaneous_game
from liapnash.utils import GameStructureError


class TestConstruction:
    """博弈树构造"""

    def test_new_game_has_marked_root(self):
        game = ExtensiveGame(["A", "B"])
        assert game.num_players == 2
        assert len(game.nodes) == 1
        assert game.node(game.root).subgame_root
        assert game.node(game.root).is_terminal

    def test_requires_players(self):
        with pytest.raises(GameStructureError):
            ExtensiveGame([])

    def test_append_move_creates_children_in_action_order(self):
        game = ExtensiveGame(["A"])
        infoset = game.new_infoset(1, ["L", "M", "R"])
        children = game.append_move(game.root, infoset)

        assert children == [1, 2, 3]
        assert [game.node(c).parent_action for c in children] == [1, 2, 3]
        assert all(game.node(c).parent == game.root for c in children)
        assert infoset.members == [game.root]
        assert game.node(game.root).player == 1
        assert game.node(game.root).infoset == 1

    def test_append_to_non_terminal_fails(self):
        game = ExtensiveGame(["A"])
        infoset = game.new_infoset(1, 2)
        game.append_move(game.root, infoset)
        with pytest.raises(GameStructureError):
            game.append_move(game.root, infoset)

    def test_infoset_must_belong_to_game(self):
        game = ExtensiveGame(["A"])
        other = ExtensiveGame(["A"])
        foreign = other.new_infoset(1, 2)
        with pytest.raises(GameStructureError):
            game.append_move(game.root, foreign)

    def test_chance_probabilities_validated(self):
        game = ExtensiveGame(["A"])
        with pytest.raises(GameStructureError):
            game.append_chance(game.root, [0.7, 0.7])
        with pytest.raises(GameStructureError):
            game.append_chance(game.root, [1.5, -0.5])

        children = game.append_chance(game.root, [0.25, 0.75])
        assert game.node(game.root).player == CHANCE
        assert len(children) == 2

    def test_payoff_vector_size_checked(self):
        game = ExtensiveGame(["A", "B"])
        with pytest.raises(GameStructureError):
            game.set_payoffs(game.root, [1.0])

    def test_payoffs_only_on_terminals(self):
        game = ExtensiveGame(["A"])
        game.append_move(game.root, game.new_infoset(1, 2))
        with pytest.raises(GameStructureError):
            game.set_payoffs(game.root, [1.0])

    def test_invalid_lookups(self):
        game = ExtensiveGame(["A"])
        with pytest.raises(GameStructureError):
            game.node(5)
        with pytest.raises(GameStructureError):
            game.player(2)
        with pytest.raises(GameStructureError):
            game.infoset(1, 1)

    def test_simultaneous_game_rejects_mismatched_matrices(self):
        with pytest.raises(ValueError):
            simultaneous_game([[1, 2]], [[1], [2]])


class TestStructure:
    """结构查询"""

    def test_dimensionality(self, anti_game, entry):
        assert anti_game.dimensionality() == [[2], [2]]
        assert anti_game.num_dimensions() == 4
        assert entry.dimensionality() == [[2], [2]]

    def test_traversal_orders(self, entry):
        assert entry.preorder() == [0, 1, 2, 3, 4]
        assert entry.postorder() == [1, 3, 4, 2, 0]
        assert entry.preorder(2) == [2, 3, 4]

    def test_is_descendant(self, entry):
        assert entry.is_descendant(3, 2)
        assert entry.is_descendant(2, 2)
        assert not entry.is_descendant(1, 2)


class TestSubgames:
    """子博弈标记与子树复制"""

    def test_entry_game_subgames(self, entry):
        assert entry.marked_subgame_roots() == [2, 0]
        assert entry.subgame_root_of(4) == 2
        assert entry.subgame_root_of(1) == 0

    def test_imperfect_information_blocks_subgame(self, anti_game):
        assert not anti_game.is_legal_subgame_root(1)
        assert anti_game.mark_subgames() == 1
        assert anti_game.marked_subgame_roots() == [anti_game.root]

    def test_terminal_is_not_a_subgame_root(self, entry):
        assert not entry.is_legal_subgame_root(1)

    def test_unmark_keeps_root(self, entry):
        entry.unmark_subgames()
        assert entry.marked_subgame_roots() == [entry.root]

    def test_manual_marking(self, anti_game):
        anti_game.mark_subgame(anti_game.root, False)
        anti_game.mark_subgame(1)
        assert anti_game.marked_subgame_roots() == [1]
        assert anti_game.subgame_root_of(anti_game.root) is None

    def test_subgame_root_of_with_candidates(self, chance_split):
        assert chance_split.marked_subgame_roots() == [1, 2, 0]
        assert chance_split.subgame_root_of(3, roots=[0]) == 0
        assert chance_split.subgame_root_of(3) == 1

    def test_copy_subtree_renumbers_infosets(self, entry):
        copy, infoset_map = entry.copy_subtree(2)

        assert infoset_map == {(2, 1): 1}
        assert copy.dimensionality() == [[], [2]]
        assert len(copy.nodes) == 3
        payoffs = [copy.node(c).payoffs.tolist() for c in copy.node(copy.root).children]
        assert payoffs == [[-1.0, -1.0], [1.0, 1.0]]

    def test_copy_subtree_with_replacement(self, entry):
        copy, infoset_map = entry.copy_subtree(0, {2: np.array([0.5, 0.25])})

        assert infoset_map == {(1, 1): 1}
        assert copy.dimensionality() == [[2], []]
        out_node, in_node = copy.node(copy.root).children
        assert copy.node(in_node).is_terminal
        np.testing.assert_array_equal(copy.node(in_node).payoffs, [0.5, 0.25])
        np.testing.assert_array_equal(copy.node(out_node).payoffs, [0.0, 2.0])
