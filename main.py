"""
CLI entry point for the Laser Maze solver.

    python main.py solve puzzle.json [--workers N] [--max-nodes N] [--output FILE] [-v]
    python main.py show puzzle.json [--compact]

Exit codes: 0 solved, 1 no solution, 2 invalid puzzle or unreadable file,
3 node budget spent before the search finished.
"""

import argparse
import logging
import sys
from typing import List, Optional

from board import Board
from errors import InvalidPuzzleError
from file_io import load_challenge, save_solution
from laser import fire_laser
from pieces import TokenType
from solver import SolverConfig, solve_puzzle
from visualize import print_board, render_compact


logger = logging.getLogger(__name__)

EXIT_SOLVED = 0
EXIT_UNSOLVABLE = 1
EXIT_INVALID = 2
EXIT_GAVE_UP = 3


def configure_logging(verbosity: int) -> None:
    """WARNING by default, -v for INFO, -vv for DEBUG."""
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def show_challenge_info(challenge) -> None:
    """Display the target count and the bag contents."""
    print(f"\n--- {challenge.name or 'Challenge'} ---")
    print(f"Goal: Light {challenge.targets} target(s)")
    if challenge.must_light_cells:
        print(f"      Required targets in cells: {challenge.must_light_cells}")

    totals = ", ".join(
        f"{challenge.count(token_type)}x {token_type.label}"
        for token_type in TokenType if challenge.count(token_type)
    )
    print(f"Pieces in play: {totals}")

    if challenge.tokens_to_be_added:
        counts = {}
        for token in challenge.tokens_to_be_added:
            counts[token.token_type.label] = counts.get(token.token_type.label, 0) + 1
        pieces_str = ", ".join(f"{count}x {name}" for name, count in counts.items())
        print(f"Pieces to add: {pieces_str}")
    else:
        print("Pieces to add: (none)")
    print("-" * 17)


def cmd_show(args: argparse.Namespace) -> int:
    challenge = load_challenge(args.file)
    if args.compact:
        print(render_compact(challenge.cells))
        return EXIT_SOLVED
    show_challenge_info(challenge)
    print_board(challenge.cells, show_coords=True)
    return EXIT_SOLVED


def cmd_solve(args: argparse.Namespace) -> int:
    challenge = load_challenge(args.file)
    config = SolverConfig(workers=args.workers, max_nodes=args.max_nodes)
    result = solve_puzzle(challenge, config)
    logger.info(f"Explored {result.nodes_visited} nodes in {result.elapsed:.2f}s")

    if result.budget_exhausted:
        print(f"gave up after {result.nodes_visited} nodes")
        return EXIT_GAVE_UP
    if not result.solved:
        print("unsolvable")
        return EXIT_UNSOLVABLE

    checker = fire_laser(Board(cells=result.cells, targets=challenge.targets))
    print_board(result.cells, checker, show_coords=True)

    if args.output:
        save_solution(result.cells, challenge.targets, args.output)
        print(f"Saved solution to {args.output}")
    return EXIT_SOLVED


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Laser Maze puzzle solver')
    parser.add_argument('-v', '--verbose', action='count', default=0,
                        help='Increase log output (-v info, -vv debug)')
    subparsers = parser.add_subparsers(dest='command', required=True)

    solve_parser = subparsers.add_parser('solve', help='Solve a puzzle file')
    solve_parser.add_argument('file', help='Puzzle JSON file')
    solve_parser.add_argument('--workers', type=int, default=1,
                              help='Number of solver threads (default: 1)')
    solve_parser.add_argument('--max-nodes', type=int, default=None,
                              help='Give up after expanding this many nodes')
    solve_parser.add_argument('--output', '-o', default=None,
                              help='Write the solved board to this JSON file')
    solve_parser.set_defaults(func=cmd_solve)

    show_parser = subparsers.add_parser('show', help='Print a puzzle board')
    show_parser.add_argument('file', help='Puzzle JSON file')
    show_parser.add_argument('--compact', action='store_true',
                             help='One character per cell, no borders')
    show_parser.set_defaults(func=cmd_show)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        return args.func(args)
    except InvalidPuzzleError as e:
        print(f"Invalid puzzle: {e}", file=sys.stderr)
        return EXIT_INVALID
    except OSError as e:
        print(f"Error loading file: {e}", file=sys.stderr)
        return EXIT_INVALID
    except ValueError as e:
        # Bad solver settings, e.g. --workers 0
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_INVALID


if __name__ == '__main__':
    sys.exit(main())
