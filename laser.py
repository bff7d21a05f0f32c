"""
Laser beam simulation for the Laser Maze solver.

Traces every beam from the laser until none remain, handling reflections,
splits, absorption and beams leaving the board. A 25x4 visited table
(cell x travel direction) guarantees termination: each segment can be
traced at most once, so a run takes at most 100 steps.
"""

from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from board import Board, GRID_SIZE, NUM_CELLS
from errors import SolverInvariantError
from pieces import Orientation, Token, TokenType


# Two perpendicular beams hitting the same splitter give four beams at once
MAX_ACTIVE_LASERS = 4


@dataclass(frozen=True)
class ActiveLaser:
    """A beam front: the cell it is in and the direction it travels."""
    cell_index: int
    orientation: Orientation

    def next_position(self) -> Optional[int]:
        """Index of the next cell, or None if the beam leaves the board."""
        row, col = divmod(self.cell_index, GRID_SIZE)
        if self.orientation == Orientation.NORTH and row == GRID_SIZE - 1:
            return None
        if self.orientation == Orientation.EAST and col == GRID_SIZE - 1:
            return None
        if self.orientation == Orientation.SOUTH and row == 0:
            return None
        if self.orientation == Orientation.WEST and col == 0:
            return None
        return self.cell_index + self.orientation.step


class Checker:
    """
    Runs one beam simulation over a private copy of a board.

    The copy's lit state is cleared on construction, so a board that was
    already simulated can be checked again without calling reset() first.
    A Checker is used for a single run and then discarded.

    Attributes:
        board: The simulated copy; holds lit/target_lit after run()
        laser_visited: (25, 4) bool array of traced segments
        unoriented_cells: Cells where a beam paused on an unrotated token,
                          in the order they were first reached
        all_lasers_remain_on_board: False once any beam left the board or
                                    hit a solid side
        steps: Number of simulation steps taken
    """

    def __init__(self, board: Board):
        self.board = board.copy()
        self.board.reset_tokens()
        self.active_lasers: List[ActiveLaser] = []
        self.laser_visited = np.zeros((NUM_CELLS, 4), dtype=bool)
        self.unoriented_cells: List[int] = []
        self.all_lasers_remain_on_board = True
        self.steps = 0

    def run(self) -> 'Checker':
        """March every beam forward until none are left."""
        self._initialize()

        while self.active_lasers:
            self.steps += 1
            new_lasers: List[ActiveLaser] = []

            for laser in self.active_lasers:
                next_position = laser.next_position()
                if next_position is None:
                    self.all_lasers_remain_on_board = False
                    continue

                token = self.board.cells[next_position]
                if token is None:
                    self._schedule(new_lasers, next_position, laser.orientation)
                    continue

                # Unrotated token: pause here, the search will orient it
                if not token.is_oriented:
                    if next_position not in self.unoriented_cells:
                        self.unoriented_cells.append(next_position)
                    continue

                for result in token.outbound_given_inbound(laser.orientation):
                    if result.is_outbound:
                        self._schedule(new_lasers, next_position, result.direction)
                    elif not result.valid:
                        self.all_lasers_remain_on_board = False

            self.active_lasers = new_lasers

        return self

    def _initialize(self) -> None:
        """Seed a single beam at the laser, travelling the way it faces."""
        position = self.board.laser_position()
        if position is None:
            return
        laser = self.board.cells[position]
        if laser.orientation is None:
            raise SolverInvariantError("Tried running checker on a laser without orientation set")
        self.laser_visited[position, laser.orientation] = True
        self.active_lasers = [ActiveLaser(position, laser.orientation)]

    def _schedule(self, new_lasers: List[ActiveLaser], cell_index: int,
                  orientation: Orientation) -> None:
        # Segment already traced: this beam joins a known path
        if self.laser_visited[cell_index, orientation]:
            return
        self.laser_visited[cell_index, orientation] = True
        if len(new_lasers) >= MAX_ACTIVE_LASERS:
            raise SolverInvariantError(
                f"More than {MAX_ACTIVE_LASERS} active lasers at step {self.steps}"
            )
        new_lasers.append(ActiveLaser(cell_index, orientation))

    # === Results ===

    def visited_cells(self) -> List[int]:
        """Cells any beam passed through, including the laser's own cell."""
        return np.flatnonzero(self.laser_visited.any(axis=1)).tolist()

    def empty_cells_with_active_laser(self) -> List[int]:
        """Cells a beam passed through that hold no token."""
        return [idx for idx in self.visited_cells() if self.board.cells[idx] is None]

    def beam_directions_at(self, cell_index: int) -> List[Orientation]:
        return [Orientation(int(d)) for d in np.flatnonzero(self.laser_visited[cell_index])]

    def lit_target_cells(self) -> List[int]:
        return [
            idx for idx, token in enumerate(self.board.cells)
            if token is not None and token.target_lit
        ]

    def count_lit_targets(self) -> int:
        return len(self.lit_target_cells())

    def all_required_targets_lit(self) -> bool:
        return all(
            token.target_lit for token in self.board.placed_tokens() if token.must_light
        )

    def all_tokens_lit(self) -> bool:
        return all(token.lit for token in self.board.placed_tokens())

    def solved(self) -> bool:
        return (
            self.board.targets == self.count_lit_targets()
            and self.all_required_targets_lit()
            and self.all_tokens_lit()
            and self.all_lasers_remain_on_board
            and not self.board.remaining_tokens_to_be_added()
        )


def fire_laser(board: Board) -> Checker:
    """Run one beam simulation over `board` and return the finished Checker."""
    return Checker(board).run()


def check_cells(cells: List[Optional[Token]], targets: int) -> bool:
    """
    Check a finished board independently of the search.

    Args:
        cells: 25 slots with every token placed and oriented
        targets: Number of targets that must be lit

    Returns:
        True if simulating the board satisfies the win condition
    """
    board = Board(cells=[t.copy() if t is not None else None for t in cells], targets=targets)
    if any(t.token_type == TokenType.LASER and not t.is_oriented for t in board.placed_tokens()):
        return False
    return fire_laser(board).solved()
