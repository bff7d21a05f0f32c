"""Unit tests for laser.py - Beam simulation."""

import random

import pytest
from board import Board, NUM_CELLS
from errors import SolverInvariantError
from laser import ActiveLaser, Checker, MAX_ACTIVE_LASERS, check_cells, fire_laser
from pieces import Orientation, Token, TokenType

N, E, S, W = Orientation.NORTH, Orientation.EAST, Orientation.SOUTH, Orientation.WEST


def board_with(placements, targets=1):
    """Build a board from {cell_index: Token}."""
    cells = [None] * NUM_CELLS
    for idx, token in placements.items():
        cells[idx] = token
    return Board(cells=cells, targets=targets)


def straight_line_board():
    """Laser in the south-west corner shooting east into a target."""
    return board_with({
        0: Token(TokenType.LASER, E),
        4: Token(TokenType.TARGET_MIRROR, W),
    })


def loop_board():
    """Splitter whose beams circle back into it."""
    return board_with({
        5: Token(TokenType.LASER, E),
        6: Token(TokenType.BEAM_SPLITTER, N),
        8: Token(TokenType.TARGET_MIRROR, E),
        18: Token(TokenType.TARGET_MIRROR, N),
        16: Token(TokenType.TARGET_MIRROR, W),
    })


class TestActiveLaser:
    """Tests for ActiveLaser movement."""

    def test_next_position(self):
        """Test stepping inside the board."""
        assert ActiveLaser(7, N).next_position() == 12
        assert ActiveLaser(7, E).next_position() == 8
        assert ActiveLaser(7, S).next_position() == 2
        assert ActiveLaser(7, W).next_position() == 6

    def test_leaving_the_board(self):
        """Test no row or column wrap-around."""
        assert ActiveLaser(4, E).next_position() is None
        assert ActiveLaser(5, W).next_position() is None
        assert ActiveLaser(22, N).next_position() is None
        assert ActiveLaser(2, S).next_position() is None


class TestCheckerBasic:
    """Basic beam scenarios."""

    def test_straight_line(self):
        """Test a beam travels straight into a target."""
        checker = fire_laser(straight_line_board())
        assert checker.solved()
        assert checker.board.cells[4].target_lit is True
        assert checker.lit_target_cells() == [4]
        assert checker.visited_cells() == [0, 1, 2, 3]
        assert checker.steps == 4

    def test_beam_leaves_board(self):
        """Test a beam leaving the board is recorded."""
        checker = fire_laser(board_with({0: Token(TokenType.LASER, E)}))
        assert checker.all_lasers_remain_on_board is False
        assert checker.empty_cells_with_active_laser() == [1, 2, 3, 4]
        assert not checker.solved()

    def test_back_of_target(self):
        """Test hitting the back of a target ends the beam as invalid."""
        checker = fire_laser(board_with({
            0: Token(TokenType.LASER, E),
            4: Token(TokenType.TARGET_MIRROR, S),
        }))
        assert checker.all_lasers_remain_on_board is False
        assert checker.count_lit_targets() == 0
        assert checker.board.cells[4].lit is False

    def test_pauses_at_unoriented_token(self):
        """Test the beam stops at an unrotated token and reports it."""
        checker = fire_laser(board_with({
            0: Token(TokenType.LASER, E),
            2: Token(TokenType.TARGET_MIRROR),
        }))
        assert checker.unoriented_cells == [2]
        assert checker.all_lasers_remain_on_board is True
        assert checker.empty_cells_with_active_laser() == [1]
        assert not checker.solved()

    def test_passes_through_cell_blocker(self):
        """Test the beam crosses a cell blocker."""
        board = straight_line_board()
        board.cells[2] = Token(TokenType.CELL_BLOCKER)
        assert fire_laser(board).solved()

    def test_beam_splitter(self):
        """Test a splitter lights two targets at once."""
        board = board_with({
            0: Token(TokenType.LASER, E),
            1: Token(TokenType.BEAM_SPLITTER, W),
            2: Token(TokenType.TARGET_MIRROR, W),
            6: Token(TokenType.TARGET_MIRROR, S),
        }, targets=2)
        checker = fire_laser(board)
        assert checker.lit_target_cells() == [2, 6]
        assert checker.beam_directions_at(1) == [N, E]
        assert checker.solved()

    def test_target_count_must_match(self):
        """Test lighting more targets than required is not a solution."""
        board = board_with({
            0: Token(TokenType.LASER, E),
            1: Token(TokenType.BEAM_SPLITTER, W),
            2: Token(TokenType.TARGET_MIRROR, W),
            6: Token(TokenType.TARGET_MIRROR, S),
        }, targets=1)
        assert not fire_laser(board).solved()

    def test_unlit_token_fails(self):
        """Test every placed token must be touched by the beam."""
        board = straight_line_board()
        board.cells[20] = Token(TokenType.DOUBLE_MIRROR, N)
        assert not fire_laser(board).solved()

    def test_required_target_must_be_lit(self):
        """Test a must-light target that only reflects fails the check."""
        board = board_with({
            0: Token(TokenType.LASER, E),
            1: Token(TokenType.BEAM_SPLITTER, W),
            2: Token(TokenType.TARGET_MIRROR, W),
            6: Token(TokenType.TARGET_MIRROR, N, must_light=True),
        }, targets=1)
        checker = fire_laser(board)
        assert checker.count_lit_targets() == 1
        assert not checker.all_required_targets_lit()
        assert not checker.solved()

    def test_no_laser(self):
        """Test a board without a laser simulates nothing."""
        checker = fire_laser(board_with({3: Token(TokenType.DOUBLE_MIRROR, N)}))
        assert checker.steps == 0
        assert checker.visited_cells() == []

    def test_unoriented_laser_raises(self):
        """Test simulating an unrotated laser is an internal error."""
        with pytest.raises(SolverInvariantError):
            fire_laser(board_with({0: Token(TokenType.LASER)}))


class TestCheckerTermination:
    """Tests that loops and random boards terminate."""

    def test_loop_terminates(self):
        """Test a beam circling back into the splitter stops."""
        checker = fire_laser(loop_board())
        assert checker.steps == 9
        assert checker.visited_cells() == [1, 5, 6, 7, 8, 11, 13, 16, 17, 18]
        assert checker.laser_visited[6, E] and checker.laser_visited[6, S]
        assert checker.all_lasers_remain_on_board is False

    @pytest.mark.parametrize("splitters", [1, 2])
    def test_random_boards_terminate(self, splitters):
        """Test random fully oriented boards finish within the visited bound."""
        rng = random.Random(1234 + splitters)
        piece_types = [TokenType.TARGET_MIRROR, TokenType.DOUBLE_MIRROR,
                       TokenType.CHECKPOINT, TokenType.CELL_BLOCKER]
        for _ in range(500):
            cells = [None] * NUM_CELLS
            positions = rng.sample(range(NUM_CELLS), rng.randint(splitters + 1, 9))
            cells[positions[0]] = Token(TokenType.LASER, rng.choice(list(Orientation)))
            for i, idx in enumerate(positions[1:]):
                token_type = TokenType.BEAM_SPLITTER if i < splitters else rng.choice(piece_types)
                cells[idx] = Token(token_type, rng.choice(list(Orientation)))
            checker = fire_laser(Board(cells=cells, targets=1))
            assert checker.steps <= NUM_CELLS * 4
            assert checker.laser_visited.sum() <= NUM_CELLS * 4
            assert not checker.active_lasers

    def test_too_many_beams_raises(self):
        """Test scheduling past the active beam limit is an internal error."""
        checker = Checker(Board())
        new_lasers = []
        for idx in range(MAX_ACTIVE_LASERS):
            checker._schedule(new_lasers, idx, N)
        with pytest.raises(SolverInvariantError):
            checker._schedule(new_lasers, 10, N)

    def test_visited_segment_not_rescheduled(self):
        """Test a traced segment is dropped silently."""
        checker = Checker(Board())
        new_lasers = []
        checker._schedule(new_lasers, 3, E)
        checker._schedule(new_lasers, 3, E)
        assert new_lasers == [ActiveLaser(3, E)]


class TestCheckerIsolation:
    """Tests that simulations do not leak state."""

    def test_input_board_untouched(self):
        """Test the simulated board is a private copy."""
        board = straight_line_board()
        fire_laser(board)
        assert board.cells[4].lit is False
        assert board.cells[4].target_lit is False

    def test_reset_is_idempotent(self):
        """Test simulate, reset, simulate gives the same lit state."""
        first = fire_laser(loop_board())
        lit_before = [(t.lit, t.target_lit) if t else None for t in first.board.cells]

        board = first.board
        for token in board.placed_tokens():
            token.reset()
        second = fire_laser(board)
        lit_after = [(t.lit, t.target_lit) if t else None for t in second.board.cells]
        assert lit_before == lit_after

    def test_stale_lit_state_ignored(self):
        """Test an already simulated board checks the same way again."""
        checker = fire_laser(straight_line_board())
        again = fire_laser(checker.board)
        assert again.solved()
        assert again.lit_target_cells() == [4]


class TestCheckCells:
    """Tests for the standalone check_cells helper."""

    def test_solved_cells(self):
        """Test a finished board passes."""
        assert check_cells(straight_line_board().cells, targets=1)

    def test_wrong_target_count(self):
        """Test the target count is part of the check."""
        assert not check_cells(straight_line_board().cells, targets=2)

    def test_unrotated_laser(self):
        """Test an unrotated laser is simply not a solution."""
        cells = straight_line_board().cells
        cells[0] = Token(TokenType.LASER)
        assert not check_cells(cells, targets=1)
