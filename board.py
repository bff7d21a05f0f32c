"""
Board state (search node) for the Laser Maze solver.

The board is a 5x5 grid stored as a flat list of 25 cells, row-major,
with index 0 in the south-west corner:

    20 21 22 23 24      <- north edge
    15 16 17 18 19
    10 11 12 13 14
     5  6  7  8  9
     0  1  2  3  4      <- south edge

Each Board is one node of the search tree. Branching always works on a
copy, so nodes never share tokens.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from errors import SolverInvariantError
from pieces import Orientation, Token, TokenType


GRID_SIZE = 5
NUM_CELLS = GRID_SIZE * GRID_SIZE
CENTER_CELL = 12

# Corner first, spiralling inward. Cells near the rim tend to anchor the
# beam, so trying them first finds solutions sooner.
SPIRAL_ORDER: Tuple[int, ...] = (
    0, 1, 2, 3, 4, 9, 14, 19, 24, 23, 22, 21, 20, 15, 10, 5,
    6, 7, 8, 13, 18, 17, 16, 11, 12,
)
SPIRAL_ORDER_REVERSE: Tuple[int, ...] = tuple(reversed(SPIRAL_ORDER))

# Non-corner edge cells, keyed by the direction that leaves the board
EDGE_CELLS = {
    Orientation.NORTH: (21, 22, 23),
    Orientation.EAST: (9, 14, 19),
    Orientation.SOUTH: (1, 2, 3),
    Orientation.WEST: (5, 10, 15),
}

CORNER_CELLS = {
    0: (Orientation.SOUTH, Orientation.WEST),
    4: (Orientation.SOUTH, Orientation.EAST),
    20: (Orientation.NORTH, Orientation.WEST),
    24: (Orientation.NORTH, Orientation.EAST),
}

# For a cell blocker on the rim: the cells whose beam, aimed at the blocker,
# passes straight through it and off the board.
BLOCKER_NEIGHBOURS = {
    0: (1, 5),
    4: (3, 9),
    20: (15, 21),
    24: (23, 19),
    1: (6,),
    2: (7,),
    3: (8,),
    9: (8,),
    14: (13,),
    19: (18,),
    23: (18,),
    22: (17,),
    21: (16,),
    15: (16,),
    10: (11,),
    5: (6,),
}


def index_to_position(cell_index: int) -> Tuple[int, int]:
    """Return (row, col) for a cell index; row 0 is the south edge."""
    return divmod(cell_index, GRID_SIZE)


def position_to_index(row: int, col: int) -> int:
    return row * GRID_SIZE + col


def edge_direction(cell_index: int) -> Optional[Orientation]:
    """Direction pointing off the board from a non-corner edge cell."""
    for direction, cells in EDGE_CELLS.items():
        if cell_index in cells:
            return direction
    return None


def empty_cells_list() -> List[Optional[Token]]:
    return [None] * NUM_CELLS


@dataclass
class Board:
    """
    One node of the search tree.

    Attributes:
        cells: 25 slots, each holding a Token or None
        tokens_to_be_added: Bag of tokens not yet on the board
        tokens_to_be_added_shuffled: The ordering of the bag currently being
                                     tried; tokens are taken from the end
        targets: Number of targets that must end up lit (1-3)
    """
    cells: List[Optional[Token]] = field(default_factory=empty_cells_list)
    tokens_to_be_added: List[Token] = field(default_factory=list)
    tokens_to_be_added_shuffled: List[Token] = field(default_factory=list)
    targets: int = 1

    def __post_init__(self):
        self.cells = list(self.cells)
        self.tokens_to_be_added = list(self.tokens_to_be_added)
        self.tokens_to_be_added_shuffled = list(self.tokens_to_be_added_shuffled)

    def copy(self) -> 'Board':
        """Create a deep copy of the board."""
        return Board(
            cells=[token.copy() if token is not None else None for token in self.cells],
            tokens_to_be_added=[token.copy() for token in self.tokens_to_be_added],
            tokens_to_be_added_shuffled=[
                token.copy() for token in self.tokens_to_be_added_shuffled
            ],
            targets=self.targets,
        )

    def placed_tokens(self) -> List[Token]:
        return [token for token in self.cells if token is not None]

    def empty_cells(self) -> List[int]:
        return [idx for idx, token in enumerate(self.cells) if token is None]

    def find_token(self, token_type: TokenType) -> Optional[int]:
        """Index of the first cell holding a token of this type."""
        for idx, token in enumerate(self.cells):
            if token is not None and token.token_type == token_type:
                return idx
        return None

    def laser_position(self) -> Optional[int]:
        return self.find_token(TokenType.LASER)

    def cell_blocker_position(self) -> Optional[int]:
        return self.find_token(TokenType.CELL_BLOCKER)

    def laser_placed(self) -> bool:
        return self.laser_position() is not None

    def laser_placed_and_rotated(self) -> bool:
        position = self.laser_position()
        return position is not None and self.cells[position].is_oriented

    def laser_in_bag(self) -> bool:
        return any(t.token_type == TokenType.LASER for t in self.tokens_to_be_added)

    def all_placed_tokens_oriented(self) -> bool:
        return all(token.is_oriented for token in self.placed_tokens())

    def remaining_tokens_to_be_added(self) -> bool:
        """Does this node still have tokens waiting to go on the board?"""
        return bool(self.tokens_to_be_added) or bool(self.tokens_to_be_added_shuffled)

    def count_tokens(self, token_type: TokenType) -> int:
        """Count tokens of a type on the board and in both bags."""
        pool = self.placed_tokens() + self.tokens_to_be_added + self.tokens_to_be_added_shuffled
        return sum(1 for token in pool if token.token_type == token_type)

    def reset_tokens(self) -> None:
        """Clear lit state left behind by a simulation."""
        for token in self.placed_tokens():
            token.reset()

    # === Orientation pruning ===

    def forbidden_orientations(self, cell_index: int) -> Tuple[Orientation, ...]:
        """
        Directions that would aim a piece in this cell off the board.

        A cell blocker on the rim extends the rim inward: the beam passes
        through the blocker, and nothing can be placed there to catch it.
        """
        if cell_index == CENTER_CELL:
            return ()

        blocker_index = self.cell_blocker_position()
        if blocker_index is not None and cell_index in BLOCKER_NEIGHBOURS.get(blocker_index, ()):
            direction = edge_direction(blocker_index)
            if direction is not None:
                return (direction,)
            # Blocker in a corner, this cell on an edge next to it
            return CORNER_CELLS[blocker_index]

        if cell_index in CORNER_CELLS:
            return CORNER_CELLS[cell_index]

        direction = edge_direction(cell_index)
        if direction is not None:
            return (direction,)
        return ()

    def orientation_options(self, cell_index: int) -> List[int]:
        """
        Orientation indices worth trying for the token in a cell.

        Starts from the token's symmetry range and removes rotations that
        would aim its beam (or its target face) off the board.
        """
        token = self.cells[cell_index]
        if token is None:
            return []

        token_type = token.token_type
        options = list(token_type.orientation_range)

        # These pieces may legitimately point at the rim
        if token_type in (TokenType.BEAM_SPLITTER, TokenType.DOUBLE_MIRROR,
                          TokenType.CELL_BLOCKER):
            return options

        forbidden_directions = self.forbidden_orientations(cell_index)
        forbidden = [o.to_index() for o in forbidden_directions]

        if token_type == TokenType.LASER:
            return [idx for idx in options if idx not in forbidden]

        if token_type == TokenType.CHECKPOINT:
            # 180 degree symmetry: South is the same passage as North
            folded = {min(o, o.opposite()).to_index() for o in forbidden_directions}
            return [idx for idx in options if idx not in folded]

        return self.target_mirror_orientation_options(cell_index, forbidden)

    def target_mirror_orientation_options(self, cell_index: int,
                                          forbidden: List[int]) -> List[int]:
        """
        A target that must be lit cannot face off the board.

        Free targets keep all four rotations.
        """
        token = self.cells[cell_index]
        if token is None or token.token_type != TokenType.TARGET_MIRROR:
            raise SolverInvariantError(
                f"Tried checking target mirror rotations on cell {cell_index}, "
                f"which does not hold a target mirror"
            )

        options = [0, 1, 2, 3]
        if token.must_light:
            options = [idx for idx in options if idx not in forbidden]
        return options
