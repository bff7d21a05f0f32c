"""
Piece model for the Laser Maze solver.

Every token defines how it interacts with a beam assuming it faces North.
The generic machinery rotates an inbound beam into that reference frame,
looks the interaction up, and rotates the outbound beams back out.

Direction encoding (clockwise from North):
    0 = North (towards higher rows, cell index + 5)
    1 = East  (towards higher columns, cell index + 1)
    2 = South (towards lower rows, cell index - 5)
    3 = West  (towards lower columns, cell index - 1)

Beam directions are always TRAVEL directions: a beam "inbound North" is
moving north when it enters the cell.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional, Tuple

from errors import SolverInvariantError


class Orientation(IntEnum):
    """Cardinal directions for beam travel and piece orientation."""
    NORTH = 0
    EAST = 1
    SOUTH = 2
    WEST = 3

    def to_index(self) -> int:
        return int(self)

    @classmethod
    def from_index(cls, idx: int) -> 'Orientation':
        return cls(idx % 4)

    def reorient_inbound(self, world_direction: 'Orientation') -> 'Orientation':
        """
        Rotate a world-frame beam direction into this piece's frame.

        `self` is the orientation of the piece. The result is the direction
        the beam would have if the piece faced North.
        """
        return Orientation((world_direction - self) % 4)

    def reorient_outbound(self, local_direction: 'Orientation') -> 'Orientation':
        """Rotate a reference-frame beam direction back into the world frame."""
        return Orientation((self + local_direction) % 4)

    def opposite(self) -> 'Orientation':
        """Return the opposite direction."""
        return Orientation((self + 2) % 4)

    @property
    def step(self) -> int:
        """Cell index delta for moving one cell in this direction."""
        steps = {
            Orientation.NORTH: 5,
            Orientation.EAST: 1,
            Orientation.SOUTH: -5,
            Orientation.WEST: -1,
        }
        return steps[self]

    @property
    def symbol(self) -> str:
        """Arrow symbol for this direction."""
        symbols = {
            Orientation.NORTH: '↑',
            Orientation.EAST: '→',
            Orientation.SOUTH: '↓',
            Orientation.WEST: '←',
        }
        return symbols[self]


class TokenType(IntEnum):
    """The closed set of piece types."""
    LASER = 0
    TARGET_MIRROR = 1
    BEAM_SPLITTER = 2
    DOUBLE_MIRROR = 3
    CHECKPOINT = 4
    CELL_BLOCKER = 5

    @property
    def orientation_range(self) -> Tuple[int, ...]:
        """
        Orientation indices that give distinct behaviour.

        Splitters, double mirrors and checkpoints have 180 degree symmetry;
        the cell blocker behaves the same in every rotation.
        """
        if self in (TokenType.BEAM_SPLITTER, TokenType.DOUBLE_MIRROR,
                    TokenType.CHECKPOINT):
            return (0, 1)
        if self == TokenType.CELL_BLOCKER:
            return (0,)
        return (0, 1, 2, 3)

    @property
    def label(self) -> str:
        """Human readable name, e.g. 'Target Mirror'."""
        return self.name.replace('_', ' ').title()


@dataclass(frozen=True)
class InteractionResult:
    """
    One outcome of a beam hitting a token.

    Either an outbound beam (`direction` is set) or a termination. A
    termination is `valid` when the puzzle allows it (a target absorbing the
    beam, the beam returning into the laser's mouth) and invalid when the
    beam hit a solid side.
    """
    direction: Optional[Orientation] = None
    valid: bool = True

    @property
    def is_outbound(self) -> bool:
        return self.direction is not None


STOP_VALID = InteractionResult(valid=True)
STOP_INVALID = InteractionResult(valid=False)


def _out(direction: Orientation) -> InteractionResult:
    return InteractionResult(direction=direction)


# Double mirror reflection in the reference orientation ("\" diagonal).
_REFLECTION = {
    Orientation.NORTH: Orientation.WEST,
    Orientation.WEST: Orientation.NORTH,
    Orientation.SOUTH: Orientation.EAST,
    Orientation.EAST: Orientation.SOUTH,
}


@dataclass
class Token:
    """
    A single game piece.

    Attributes:
        token_type: What kind of piece this is
        orientation: Facing direction, None while the search has not
                     rotated the piece yet
        must_light: Target mirrors only - the puzzle requires this target lit
        lit: Whether a beam touched the piece during the last simulation
        target_lit: Target mirrors only - whether the target side was hit
    """
    token_type: TokenType
    orientation: Optional[Orientation] = None
    must_light: bool = False
    lit: bool = field(init=False, default=False)
    target_lit: Optional[bool] = field(init=False, default=None)

    def __post_init__(self):
        self.token_type = TokenType(self.token_type)
        if self.orientation is not None:
            self.orientation = Orientation(self.orientation)
        if self.token_type != TokenType.TARGET_MIRROR:
            self.must_light = False
        if self.token_type == TokenType.CELL_BLOCKER:
            self.orientation = Orientation.NORTH
        self.reset()

    @property
    def is_target(self) -> bool:
        return self.token_type == TokenType.TARGET_MIRROR

    @property
    def is_oriented(self) -> bool:
        return self.orientation is not None

    def reset(self) -> None:
        """Restore lit/target_lit to their construction-time values."""
        self.lit = self.token_type in (TokenType.LASER, TokenType.CELL_BLOCKER)
        self.target_lit = False if self.is_target else None

    def toggle_must_light(self) -> None:
        if self.is_target:
            self.must_light = not self.must_light

    def copy(self) -> 'Token':
        """Create a copy of this token, including its lit state."""
        new_token = Token(self.token_type, self.orientation, self.must_light)
        new_token.lit = self.lit
        new_token.target_lit = self.target_lit
        return new_token

    def outbound_given_inbound(
        self, inbound: Orientation
    ) -> Tuple[InteractionResult, InteractionResult]:
        """
        Handle a beam entering this token.

        Args:
            inbound: World-frame travel direction of the beam

        Returns:
            Two results. The second is only ever an outbound beam for a beam
            splitter (the transmitted beam); otherwise it is a valid stop.

        Raises:
            SolverInvariantError: if the token has no orientation yet
        """
        if self.orientation is None:
            raise SolverInvariantError(
                f"Beam reached a {self.token_type.label} with no orientation set"
            )
        local = self.orientation.reorient_inbound(Orientation(inbound))
        results = self._reference_outbound(local)
        if not results[0].is_outbound and results[1].is_outbound:
            raise SolverInvariantError(
                f"{self.token_type.label} produced a second beam without a first"
            )
        return tuple(
            _out(self.orientation.reorient_outbound(r.direction)) if r.is_outbound else r
            for r in results
        )

    def _reference_outbound(
        self, inbound: Orientation
    ) -> Tuple[InteractionResult, InteractionResult]:
        """Interaction table for a token facing North. Marks the token lit."""
        if self.token_type == TokenType.LASER:
            # South-travelling beam re-enters the emitter's mouth
            if inbound == Orientation.SOUTH:
                return STOP_VALID, STOP_VALID
            return STOP_INVALID, STOP_INVALID

        if self.token_type == TokenType.CHECKPOINT:
            if inbound in (Orientation.NORTH, Orientation.SOUTH):
                self.lit = True
                return _out(inbound), STOP_VALID
            return STOP_INVALID, STOP_INVALID

        if self.token_type == TokenType.TARGET_MIRROR:
            if inbound == Orientation.WEST:
                # back of the mirror
                return STOP_INVALID, STOP_INVALID
            self.lit = True
            if inbound == Orientation.SOUTH:
                self.target_lit = True
                return STOP_VALID, STOP_VALID
            if inbound == Orientation.NORTH:
                return _out(Orientation.WEST), STOP_VALID
            return _out(Orientation.SOUTH), STOP_VALID

        if self.token_type == TokenType.DOUBLE_MIRROR:
            self.lit = True
            return _out(_REFLECTION[inbound]), STOP_VALID

        if self.token_type == TokenType.CELL_BLOCKER:
            return _out(inbound), STOP_VALID

        # Beam splitter: reflected beam first, transmitted beam second
        self.lit = True
        return _out(_REFLECTION[inbound]), _out(inbound)


TOKEN_TYPE_NAMES = {
    TokenType.LASER: 'laser',
    TokenType.TARGET_MIRROR: 'target_mirror',
    TokenType.BEAM_SPLITTER: 'beam_splitter',
    TokenType.DOUBLE_MIRROR: 'double_mirror',
    TokenType.CHECKPOINT: 'checkpoint',
    TokenType.CELL_BLOCKER: 'cell_blocker',
}

NAME_TO_TOKEN_TYPE = {v: k for k, v in TOKEN_TYPE_NAMES.items()}


def create_token(token_type: str, orientation: Optional[int] = None,
                 must_light: bool = False) -> Token:
    """
    Factory function to create a token by type name.

    Args:
        token_type: Snake-case name of the token type, e.g. 'target_mirror'
        orientation: Direction as integer (0-3), or None for unrotated
        must_light: Whether a target mirror must be lit

    Returns:
        A new Token instance
    """
    if token_type not in NAME_TO_TOKEN_TYPE:
        raise ValueError(f"Unknown token type: {token_type}")

    return Token(
        NAME_TO_TOKEN_TYPE[token_type],
        orientation=None if orientation is None else Orientation(orientation),
        must_light=must_light,
    )
