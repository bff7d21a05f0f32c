"""
Exception types for the Laser Maze solver.

Two kinds of failure exist:
    InvalidPuzzleError   - the caller handed us a puzzle that breaks the
                           game rules (recoverable, reported to the user)
    SolverInvariantError - the search or simulator reached a state that valid
                           branching can never produce (a bug, never caught)
"""


class InvalidPuzzleError(ValueError):
    """Raised when a puzzle definition fails validation."""


class SolverInvariantError(RuntimeError):
    """Raised when an internal consistency check of the solver fails."""
