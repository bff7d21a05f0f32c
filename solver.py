"""
Depth-first puzzle solver for Laser Maze.

The solver owns an explicit stack of search nodes. Each step pops a node,
asks the branch generator for its children and pushes them back, until a
node turns out to be a solution or the stack runs dry.

Key points:
1. Validation up front - invalid puzzles raise InvalidPuzzleError
2. LIFO stack - depth first, so memory stays bounded by depth x branching
3. Optional worker threads sharing the stack; the first solution stops all
4. A valid puzzle without a solution returns None, never an error
5. A spent node budget is reported as BUDGET_EXHAUSTED, not as unsolvable
"""

import logging
import threading
import time
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Tuple, Union

from board import Board, NUM_CELLS
from branching import generate_branches
from errors import InvalidPuzzleError
from pieces import Token, TokenType

if TYPE_CHECKING:
    from challenge import Challenge


logger = logging.getLogger(__name__)


# Allowed (min, max) count of each token type, board and bag combined.
# Beam splitters used to be tied to the target count (targets - 1), but real
# challenges break that rule.
PIECE_COUNT_LIMITS: Dict[TokenType, Tuple[int, int]] = {
    TokenType.LASER: (1, 1),
    TokenType.TARGET_MIRROR: (1, 5),
    TokenType.BEAM_SPLITTER: (0, 2),
    TokenType.DOUBLE_MIRROR: (0, 1),
    TokenType.CHECKPOINT: (0, 1),
    TokenType.CELL_BLOCKER: (0, 1),
}

MIN_TARGETS = 1
MAX_TARGETS = 3


class SolverState(IntEnum):
    """Lifecycle of a LaserMazeSolver."""
    VALIDATING = 0
    SEARCHING = 1
    SOLVED = 2
    EXHAUSTED = 3
    BUDGET_EXHAUSTED = 4


@dataclass
class SolverConfig:
    """
    Tuning knobs for a solve.

    Attributes:
        workers: Number of threads sharing the search stack (1 = sequential)
        max_nodes: Stop after expanding this many nodes (None = no limit)
    """
    workers: int = 1
    max_nodes: Optional[int] = None

    def __post_init__(self):
        if self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers}")
        if self.max_nodes is not None and self.max_nodes < 1:
            raise ValueError(f"max_nodes must be positive, got {self.max_nodes}")


@dataclass
class SolverResult:
    """Result of solving a puzzle; unsolved without budget_exhausted means no solution."""
    solved: bool
    cells: Optional[List[Optional[Token]]] = None
    nodes_visited: int = 0
    elapsed: float = 0.0
    budget_exhausted: bool = False


def validate_puzzle(cells: Sequence[Optional[Token]], tokens_to_be_added: Sequence[Token],
                    targets: int) -> None:
    """
    Check a puzzle definition against the game rules.

    Raises:
        InvalidPuzzleError: naming the first rule that is broken
    """
    if len(cells) != NUM_CELLS:
        raise InvalidPuzzleError(f"Board must have {NUM_CELLS} cells!")

    if not MIN_TARGETS <= targets <= MAX_TARGETS:
        raise InvalidPuzzleError("Invalid number of targets!")

    board = Board(cells=list(cells), tokens_to_be_added=list(tokens_to_be_added),
                  targets=targets)
    placed = board.placed_tokens()
    for token_type, (min_count, max_count) in PIECE_COUNT_LIMITS.items():
        if not min_count <= board.count_tokens(token_type) <= max_count:
            raise InvalidPuzzleError(
                f"Invalid piece count for piece type {token_type.label}!"
            )

    must_light_count = sum(1 for token in placed if token.must_light)
    must_light_count += sum(1 for token in tokens_to_be_added if token.must_light)
    if must_light_count > targets:
        raise InvalidPuzzleError("Invalid number of pieces which must be lit!")

    # Cell blockers are only ever pre-placed
    if any(token.token_type == TokenType.CELL_BLOCKER for token in tokens_to_be_added):
        raise InvalidPuzzleError("Cell Blocker included in tokens_to_be_added!")


class LaserMazeSolver:
    """
    Main solver class. Initialize with the puzzle, then call solve().

    Usage:
        solver = LaserMazeSolver(cells, tokens_to_be_added, targets=2)
        cells = solver.solve()     # None if no solution (or the budget ran out)

    Attributes:
        stack: Search nodes still to expand; the last one is expanded next
        nodes_visited: Number of nodes expanded so far
        state: Where the solver is in its lifecycle
    """

    def __init__(self, initial_cells: Sequence[Optional[Token]],
                 tokens_to_be_added: Sequence[Token], targets: int,
                 config: Optional[SolverConfig] = None):
        self.initial_cells = list(initial_cells)
        self.tokens_to_be_added = list(tokens_to_be_added)
        self.targets = targets
        self.config = config or SolverConfig()
        self.state = SolverState.VALIDATING
        self.nodes_visited = 0
        self.stack: List[Board] = []
        self._reset_search()

    def _reset_search(self) -> None:
        """Start over from the root node."""
        root = Board(
            cells=self.initial_cells,
            tokens_to_be_added=self.tokens_to_be_added,
            targets=self.targets,
        )
        self.stack = [root.copy()]
        self.nodes_visited = 0
        self._gave_up = False

    @property
    def budget_exhausted(self) -> bool:
        """True if the last search stopped on the node budget."""
        return self.state == SolverState.BUDGET_EXHAUSTED

    def validate(self) -> None:
        """Raise InvalidPuzzleError if the puzzle breaks the game rules."""
        validate_puzzle(self.initial_cells, self.tokens_to_be_added, self.targets)

    def solve(self) -> Optional[List[Optional[Token]]]:
        """
        Search for a solution.

        Returns:
            The 25 solved cells, every token placed and oriented, or None if
            the puzzle has no solution. None with state BUDGET_EXHAUSTED
            means the search gave up before deciding.

        Raises:
            InvalidPuzzleError: if the puzzle definition is invalid
        """
        self.state = SolverState.VALIDATING
        self._reset_search()
        self.validate()

        self.state = SolverState.SEARCHING
        logger.info(
            f"Solving: {len([t for t in self.initial_cells if t is not None])} pieces on board, "
            f"{len(self.tokens_to_be_added)} to add, {self.targets} target(s), "
            f"{self.config.workers} worker(s)"
        )

        if self.config.workers > 1:
            solution = self._solve_threaded(self.config.workers)
        else:
            solution = self._solve_sequential()

        if solution is not None:
            self.state = SolverState.SOLVED
            outcome = 'solved'
        elif self._gave_up:
            self.state = SolverState.BUDGET_EXHAUSTED
            outcome = 'gave up'
        else:
            self.state = SolverState.EXHAUSTED
            outcome = 'no solution'
        logger.info(f"Search finished: {outcome} after {self.nodes_visited} nodes")
        return solution

    def _out_of_budget(self) -> bool:
        if (self.config.max_nodes is not None
                and self.nodes_visited >= self.config.max_nodes):
            logger.warning(f"Node budget of {self.config.max_nodes} exhausted, giving up")
            self._gave_up = True
        return self._gave_up

    def _solve_sequential(self) -> Optional[List[Optional[Token]]]:
        while self.stack:
            if self._out_of_budget():
                return None

            node = self.stack.pop()
            self.nodes_visited += 1
            outcome = generate_branches(node)
            if outcome.solved:
                return outcome.solution
            self.stack.extend(outcome.children)

            if self.nodes_visited % 10000 == 0:
                logger.debug(f"{self.nodes_visited} nodes expanded, stack depth {len(self.stack)}")

        return None

    def _solve_threaded(self, workers: int) -> Optional[List[Optional[Token]]]:
        """
        Run the same search with several threads sharing the stack.

        Each worker pops under the lock, expands the node outside it and
        pushes the children back under it. A worker that finds the stack
        empty waits while other workers still hold nodes, since they may
        push more. `stop` is set by the first solution, an exhausted budget
        or a crashed worker; workers may finish a node already in flight.
        """
        condition = threading.Condition()
        stop = threading.Event()
        solutions: List[List[Optional[Token]]] = []
        failures: List[BaseException] = []
        in_flight = 0

        def worker() -> None:
            nonlocal in_flight
            while True:
                with condition:
                    while not self.stack and in_flight > 0 and not stop.is_set():
                        condition.wait()
                    if stop.is_set() or not self.stack:
                        condition.notify_all()
                        return
                    if self._out_of_budget():
                        stop.set()
                        condition.notify_all()
                        return
                    node = self.stack.pop()
                    self.nodes_visited += 1
                    in_flight += 1

                try:
                    outcome = generate_branches(node)
                except Exception as exc:
                    with condition:
                        failures.append(exc)
                        in_flight -= 1
                        stop.set()
                        condition.notify_all()
                    return

                with condition:
                    in_flight -= 1
                    if outcome.solved:
                        if not solutions:
                            solutions.append(outcome.solution)
                        stop.set()
                    elif not stop.is_set():
                        self.stack.extend(outcome.children)
                    condition.notify_all()

        threads = [
            threading.Thread(target=worker, name=f"solver-worker-{i}", daemon=True)
            for i in range(workers)
        ]
        for thread in threads:
            thread.start()
        logger.debug(f"Started {workers} solver workers")
        for thread in threads:
            thread.join()
        logger.debug("All solver workers stopped")

        if failures:
            raise failures[0]
        return solutions[0] if solutions else None


def solve_puzzle(challenge: 'Challenge', config: Optional[SolverConfig] = None) -> SolverResult:
    """
    Solve a puzzle definition.

    Args:
        challenge: Board, bag and target count
        config: Solver settings (defaults to a sequential search)

    Returns:
        SolverResult with the solved cells, if any

    Raises:
        InvalidPuzzleError: if the puzzle definition is invalid
    """
    solver = challenge.to_solver(config)
    start_time = time.time()
    cells = solver.solve()
    return SolverResult(
        solved=cells is not None,
        cells=cells,
        nodes_visited=solver.nodes_visited,
        elapsed=time.time() - start_time,
        budget_exhausted=solver.budget_exhausted,
    )


def solve_challenge_file(filepath: Union[str, Path],
                         config: Optional[SolverConfig] = None) -> SolverResult:
    """Load a puzzle from a JSON file and solve it."""
    from file_io import load_challenge

    return solve_puzzle(load_challenge(filepath), config)
