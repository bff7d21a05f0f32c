"""
Puzzle definitions for the Laser Maze solver.

A challenge is what a puzzle card prints: some pieces already on the
board (possibly unrotated), a bag of pieces to add, and how many targets
must be lit.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional

from board import NUM_CELLS, empty_cells_list
from pieces import Token, TokenType

if TYPE_CHECKING:
    from solver import LaserMazeSolver, SolverConfig


@dataclass
class Challenge:
    """
    Represents a puzzle challenge.

    Attributes:
        cells: 25 slots, pre-placed tokens or None
        tokens_to_be_added: Tokens the solver must place (orientation unset)
        targets: Number of targets that must be lit (1-3)
        name: Optional label, used for log and CLI output
    """
    cells: List[Optional[Token]] = field(default_factory=empty_cells_list)
    tokens_to_be_added: List[Token] = field(default_factory=list)
    targets: int = 1
    name: Optional[str] = None

    def copy(self) -> 'Challenge':
        """Create a deep copy of the challenge."""
        return Challenge(
            cells=[t.copy() if t is not None else None for t in self.cells],
            tokens_to_be_added=[t.copy() for t in self.tokens_to_be_added],
            targets=self.targets,
            name=self.name,
        )

    @property
    def must_light_cells(self) -> List[int]:
        """Cells holding a target that the puzzle requires lit."""
        return [
            idx for idx, token in enumerate(self.cells)
            if token is not None and token.must_light
        ]

    def count(self, token_type: TokenType) -> int:
        """Count tokens of a type on the board and in the bag."""
        pool = [t for t in self.cells if t is not None] + self.tokens_to_be_added
        return sum(1 for token in pool if token.token_type == token_type)

    def to_solver(self, config: Optional['SolverConfig'] = None) -> 'LaserMazeSolver':
        """Build a solver seeded with an independent copy of this challenge."""
        from solver import LaserMazeSolver

        puzzle = self.copy()
        return LaserMazeSolver(puzzle.cells, puzzle.tokens_to_be_added, puzzle.targets, config)

    @classmethod
    def from_dict(cls, data: dict) -> 'Challenge':
        """Create challenge from dictionary (loaded from JSON)."""
        from file_io import challenge_from_dict

        return challenge_from_dict(data)

    def to_dict(self) -> dict:
        """Convert challenge to dictionary for serialization."""
        from file_io import challenge_to_dict

        return challenge_to_dict(self)

    def __str__(self) -> str:
        placed = sum(1 for t in self.cells if t is not None)
        label = f"{self.name}: " if self.name else ""
        return (f"{label}{placed} piece(s) on board, {len(self.tokens_to_be_added)} to add, "
                f"{self.targets} target(s) of {NUM_CELLS} cells")
