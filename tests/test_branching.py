"""Unit tests for branching.py - Search node expansion."""

import pytest
from board import Board, NUM_CELLS
from branching import (
    BranchOutcome, generate_branches, unique_orderings, placement_branches,
)
from errors import SolverInvariantError
from pieces import Orientation, Token, TokenType

N, E, S, W = Orientation.NORTH, Orientation.EAST, Orientation.SOUTH, Orientation.WEST


def board_with(placements, tokens_to_be_added=(), targets=1):
    """Build a board from {cell_index: Token}."""
    cells = [None] * NUM_CELLS
    for idx, token in placements.items():
        cells[idx] = token
    return Board(cells=cells, tokens_to_be_added=list(tokens_to_be_added), targets=targets)


def categories(ordering):
    return tuple((t.token_type, t.must_light) for t in ordering)


class TestUniqueOrderings:
    """Tests for distinct bag orderings."""

    def test_two_targets_one_splitter(self):
        """Test interchangeable tokens are not permuted among themselves."""
        bag = [Token(TokenType.TARGET_MIRROR), Token(TokenType.TARGET_MIRROR),
               Token(TokenType.BEAM_SPLITTER)]
        orderings = [categories(o) for o in unique_orderings(bag)]
        assert len(orderings) == 3
        assert len(set(orderings)) == 3

    def test_must_light_is_its_own_category(self):
        """Test required and free targets are told apart."""
        bag = [Token(TokenType.TARGET_MIRROR, must_light=True), Token(TokenType.TARGET_MIRROR)]
        orderings = [categories(o) for o in unique_orderings(bag)]
        assert len(orderings) == 2

    def test_worst_case_bag(self):
        """Test 5 targets, a checkpoint, a double mirror and 2 splitters give 1512."""
        bag = ([Token(TokenType.TARGET_MIRROR) for _ in range(5)]
               + [Token(TokenType.CHECKPOINT), Token(TokenType.DOUBLE_MIRROR)]
               + [Token(TokenType.BEAM_SPLITTER) for _ in range(2)])
        orderings = [categories(o) for o in unique_orderings(bag)]
        assert len(orderings) == 1512
        assert len(set(orderings)) == 1512

    def test_empty_bag(self):
        """Test an empty bag has exactly one (empty) ordering."""
        assert list(unique_orderings([])) == [[]]

    def test_orderings_are_fresh_tokens(self):
        """Test every ordering holds its own unrotated tokens."""
        bag = [Token(TokenType.TARGET_MIRROR), Token(TokenType.DOUBLE_MIRROR)]
        first, second = list(unique_orderings(bag))
        assert all(not t.is_oriented for t in first + second)
        assert first[0] is not second[1]

    def test_laser_cannot_be_shuffled(self):
        """Test an uncategorised token is an internal error."""
        with pytest.raises(SolverInvariantError):
            list(unique_orderings([Token(TokenType.LASER)]))


class TestGenerateBranches:
    """Tests for the branching precedence."""

    def test_laser_in_bag(self):
        """Test the laser is placed in every empty cell first."""
        board = board_with({12: Token(TokenType.CELL_BLOCKER)},
                           [Token(TokenType.LASER), Token(TokenType.TARGET_MIRROR)])
        outcome = generate_branches(board)
        assert not outcome.solved
        assert len(outcome.children) == NUM_CELLS - 1
        positions = [child.laser_position() for child in outcome.children]
        assert positions[0] == 0
        assert 12 not in positions
        for child in outcome.children:
            assert not child.laser_in_bag()
            assert len(child.tokens_to_be_added) == 1
        assert board.laser_in_bag()

    def test_unrotated_laser(self):
        """Test the laser is aimed next, skipping off-board directions."""
        board = board_with({0: Token(TokenType.LASER)}, [Token(TokenType.TARGET_MIRROR)])
        outcome = generate_branches(board)
        assert [child.cells[0].orientation for child in outcome.children] == [N, E]
        assert board.cells[0].orientation is None

    def test_bag_is_shuffled(self):
        """Test the bag is replaced by each distinct ordering."""
        bag = [Token(TokenType.TARGET_MIRROR), Token(TokenType.TARGET_MIRROR),
               Token(TokenType.BEAM_SPLITTER)]
        board = board_with({0: Token(TokenType.LASER, E)}, bag, targets=2)
        outcome = generate_branches(board)
        assert len(outcome.children) == 3
        for child in outcome.children:
            assert child.tokens_to_be_added == []
            assert len(child.tokens_to_be_added_shuffled) == 3

    def test_solved_node(self):
        """Test a solved node is returned with lit state cleared."""
        board = board_with({0: Token(TokenType.LASER, E), 4: Token(TokenType.TARGET_MIRROR, W)})
        outcome = generate_branches(board)
        assert outcome.solved
        assert outcome.children == []
        assert outcome.solution[4].orientation == W
        assert outcome.solution[4].target_lit is False

    def test_orient_paused_token(self):
        """Test a token the beam reached unrotated is rotated next."""
        board = board_with({0: Token(TokenType.LASER, E), 2: Token(TokenType.TARGET_MIRROR)})
        outcome = generate_branches(board)
        assert [child.cells[2].orientation for child in outcome.children] == [N, E, S, W]

    def test_orient_in_beam_order(self):
        """Test the first token the beam reached is rotated first."""
        board = board_with({
            0: Token(TokenType.LASER, N),
            10: Token(TokenType.DOUBLE_MIRROR),
            3: Token(TokenType.TARGET_MIRROR),
        })
        outcome = generate_branches(board)
        assert len(outcome.children) == 2
        for child in outcome.children:
            assert child.cells[10].is_oriented
            assert not child.cells[3].is_oriented

    def test_place_on_beam_path(self):
        """Test the next token goes into each empty cell the beam crossed."""
        board = board_with({0: Token(TokenType.LASER, E)})
        board.tokens_to_be_added_shuffled = [Token(TokenType.TARGET_MIRROR)]
        outcome = generate_branches(board)
        placed = [
            next(idx for idx, t in enumerate(child.cells)
                 if t is not None and t.token_type == TokenType.TARGET_MIRROR)
            for child in outcome.children
        ]
        assert placed == [4, 3, 2, 1]
        assert all(not child.tokens_to_be_added_shuffled for child in outcome.children)
        assert len(board.tokens_to_be_added_shuffled) == 1

    def test_dead_leaf(self):
        """Test a finished board that fails has no children."""
        board = board_with({0: Token(TokenType.LASER, E)})
        outcome = generate_branches(board)
        assert outcome == BranchOutcome()

    def test_no_laser_anywhere(self):
        """Test a node without a laser is a dead leaf."""
        board = board_with({3: Token(TokenType.TARGET_MIRROR)})
        assert generate_branches(board).children == []


class TestPlacementBranches:
    """Tests for placement_branches."""

    def test_skips_occupied_and_unreached_cells(self):
        """Test only empty beam cells are used."""
        board = board_with({0: Token(TokenType.LASER, E), 2: Token(TokenType.CELL_BLOCKER)})
        board.tokens_to_be_added_shuffled = [Token(TokenType.DOUBLE_MIRROR)]
        children = placement_branches(board, [0, 1, 2, 3])
        placed = [child.find_token(TokenType.DOUBLE_MIRROR) for child in children]
        assert placed == [3, 1]
