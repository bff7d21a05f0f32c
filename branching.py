"""
Branch generation for the Laser Maze search.

Given one search node, decide which degree of freedom to branch on next
and produce a child node per option. The precedence order matters for
speed: the laser is placed and aimed first so the beam anchors the rest of
the search.

    1. Laser still in the bag      -> place it in every empty cell
    2. Laser placed, not aimed     -> one child per useful rotation
    3. Bag not yet ordered         -> one child per distinct ordering
    4. Simulate the beam:
         solved                    -> done
         beam paused on a piece    -> rotate that piece
         tokens left to place      -> place the next one on the beam path
    5. Otherwise                   -> dead leaf
"""

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence

from board import Board, SPIRAL_ORDER, SPIRAL_ORDER_REVERSE
from errors import SolverInvariantError
from laser import fire_laser
from pieces import Orientation, Token, TokenType


# Order in which token categories are tried when building bag orderings
BAG_CATEGORIES = (
    (TokenType.TARGET_MIRROR, True),
    (TokenType.TARGET_MIRROR, False),
    (TokenType.CHECKPOINT, False),
    (TokenType.DOUBLE_MIRROR, False),
    (TokenType.BEAM_SPLITTER, False),
)


@dataclass
class BranchOutcome:
    """Either a solved board (`solution`) or the next generation of nodes."""
    solution: Optional[List[Optional[Token]]] = None
    children: List[Board] = field(default_factory=list)

    @property
    def solved(self) -> bool:
        return self.solution is not None


def unique_orderings(tokens: Sequence[Token]) -> Iterator[List[Token]]:
    """
    Yield every distinct ordering of a bag of tokens.

    Tokens of the same category are interchangeable, so a bag with n_i
    tokens of each category gives (sum n_i)! / prod(n_i!) orderings rather
    than (sum n_i)!. The worst legal bag (5 targets, 1 checkpoint, 1 double
    mirror, 2 splitters) gives 1512.
    """
    counts = [
        sum(1 for t in tokens if (t.token_type, t.must_light) == category)
        for category in BAG_CATEGORIES
    ]
    if sum(counts) != len(tokens):
        raise SolverInvariantError("Bag holds tokens that cannot be shuffled")

    def backtrack(ordering: List[Token]) -> Iterator[List[Token]]:
        if not any(counts):
            yield [token.copy() for token in ordering]
            return
        for i, (token_type, must_light) in enumerate(BAG_CATEGORIES):
            if counts[i] == 0:
                continue
            counts[i] -= 1
            ordering.append(Token(token_type, must_light=must_light))
            yield from backtrack(ordering)
            ordering.pop()
            counts[i] += 1

    yield from backtrack([])


def laser_placement_branches(board: Board) -> List[Board]:
    """Move the laser from the bag into each empty cell, unrotated."""
    children = []
    for cell_index in SPIRAL_ORDER:
        if board.cells[cell_index] is not None:
            continue
        child = board.copy()
        bag_index = next(
            i for i, token in enumerate(child.tokens_to_be_added)
            if token.token_type == TokenType.LASER
        )
        laser = child.tokens_to_be_added.pop(bag_index)
        laser.orientation = None
        child.cells[cell_index] = laser
        children.append(child)
    return children


def orientation_branches(board: Board, cell_index: int) -> List[Board]:
    """One child per useful rotation of the token in `cell_index`."""
    children = []
    for orientation_index in board.orientation_options(cell_index):
        child = board.copy()
        child.cells[cell_index].orientation = Orientation(orientation_index)
        children.append(child)
    return children


def shuffled_bag_branches(board: Board) -> List[Board]:
    """One child per distinct ordering of the remaining bag."""
    children = []
    for ordering in unique_orderings(board.tokens_to_be_added):
        child = board.copy()
        child.tokens_to_be_added = []
        child.tokens_to_be_added_shuffled = ordering
        children.append(child)
    return children


def placement_branches(board: Board, beam_cells: Sequence[int]) -> List[Board]:
    """Place the next shuffled token in each empty cell the beam crosses."""
    reachable = set(beam_cells)
    children = []
    for cell_index in SPIRAL_ORDER_REVERSE:
        if cell_index not in reachable or board.cells[cell_index] is not None:
            continue
        child = board.copy()
        child.cells[cell_index] = child.tokens_to_be_added_shuffled.pop()
        children.append(child)
    return children


def generate_branches(board: Board) -> BranchOutcome:
    """
    Expand one search node.

    Returns:
        BranchOutcome with `solution` set when `board` is itself a verified
        solution, otherwise with its children (possibly none: a dead leaf)
    """
    if board.laser_in_bag():
        return BranchOutcome(children=laser_placement_branches(board))

    laser_position = board.laser_position()
    if laser_position is None:
        return BranchOutcome()

    if not board.laser_placed_and_rotated():
        return BranchOutcome(children=orientation_branches(board, laser_position))

    if board.tokens_to_be_added:
        return BranchOutcome(children=shuffled_bag_branches(board))

    checker = fire_laser(board)
    if checker.solved():
        if not board.all_placed_tokens_oriented():
            raise SolverInvariantError("Solved board still holds unrotated pieces")
        solution = board.copy()
        solution.reset_tokens()
        return BranchOutcome(solution=solution.cells)

    # Orient pieces on demand, in the order the beam reached them
    if checker.unoriented_cells:
        return BranchOutcome(children=orientation_branches(board, checker.unoriented_cells[0]))

    if board.tokens_to_be_added_shuffled:
        return BranchOutcome(
            children=placement_branches(board, checker.empty_cells_with_active_laser())
        )

    return BranchOutcome()
