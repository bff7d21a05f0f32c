"""
ASCII visualization for the Laser Maze solver.

Renders a board and, optionally, the beam traced by a Checker to text for
terminal display. The north row is drawn at the top. Supports both Unicode
box drawing and ASCII fallback for Windows console.
"""

import sys
from typing import Dict, List, Optional, Sequence

from board import GRID_SIZE, position_to_index
from laser import Checker
from pieces import Orientation, Token, TokenType


def _supports_unicode() -> bool:
    """Check if the terminal supports Unicode output."""
    try:
        # Try to encode a box drawing character
        '┌'.encode(sys.stdout.encoding or 'utf-8')
        return True
    except (UnicodeEncodeError, LookupError):
        return False


# Detect Unicode support
USE_UNICODE = _supports_unicode()

if USE_UNICODE:
    BOX_TL, BOX_TR, BOX_BL, BOX_BR = '┌', '┐', '└', '┘'
    BOX_H, BOX_V = '─', '│'
    BOX_T, BOX_B, BOX_L, BOX_R, BOX_X = '┬', '┴', '├', '┤', '┼'
    BEAM_VERTICAL, BEAM_HORIZONTAL, BEAM_CROSS = '│', '─', '┼'
    DIR_ARROWS = {o: o.symbol for o in Orientation}
else:
    BOX_TL = BOX_TR = BOX_BL = BOX_BR = '+'
    BOX_H, BOX_V = '-', '|'
    BOX_T = BOX_B = BOX_L = BOX_R = BOX_X = '+'
    BEAM_VERTICAL, BEAM_HORIZONTAL, BEAM_CROSS = '|', '-', '+'
    DIR_ARROWS = {
        Orientation.NORTH: '^',
        Orientation.EAST: '>',
        Orientation.SOUTH: 'v',
        Orientation.WEST: '<',
    }

MIRROR_SLASH = '/'
MIRROR_BACKSLASH = '\\'

TYPE_CHARS = {
    TokenType.LASER: 'L',
    TokenType.TARGET_MIRROR: 'T',
    TokenType.BEAM_SPLITTER: 'B',
    TokenType.DOUBLE_MIRROR: 'D',
    TokenType.CHECKPOINT: 'C',
    TokenType.CELL_BLOCKER: 'X',
}


def get_beam_char(directions: Sequence[Orientation]) -> str:
    """Get the character to display for beam directions at a cell."""
    if not directions:
        return ' '
    vertical = any(d in (Orientation.NORTH, Orientation.SOUTH) for d in directions)
    horizontal = any(d in (Orientation.EAST, Orientation.WEST) for d in directions)
    if vertical and horizontal:
        return BEAM_CROSS
    return BEAM_VERTICAL if vertical else BEAM_HORIZONTAL


def get_token_symbol(token: Token) -> str:
    """Two-character symbol for a token; '?' marks a piece not yet rotated."""
    type_char = TYPE_CHARS[token.token_type]
    orientation = token.orientation

    if token.token_type == TokenType.CELL_BLOCKER:
        return 'XX'
    if orientation is None:
        return type_char + '?'
    if token.token_type in (TokenType.LASER, TokenType.TARGET_MIRROR):
        return type_char + DIR_ARROWS[orientation]
    if token.token_type == TokenType.CHECKPOINT:
        # Show orientation: | for N/S passage, - for E/W passage
        if orientation in (Orientation.NORTH, Orientation.SOUTH):
            return 'C|'
        return 'C-'
    # Facing North the mirror turns a north-bound beam west
    if orientation in (Orientation.NORTH, Orientation.SOUTH):
        return type_char + MIRROR_BACKSLASH
    return type_char + MIRROR_SLASH


def render_cell(token: Optional[Token], beam_dirs: Sequence[Orientation],
                is_target_hit: bool = False) -> str:
    """
    Render a single cell's contents as 3 characters.

    Token state indicators:
         XY - Token placed on the board
        XY* - Target that must be lit
        T*! - Target hit by laser beam
    """
    if token is None:
        if beam_dirs:
            return f' {get_beam_char(beam_dirs)} '
        return '   '

    if is_target_hit and token.is_target:
        return 'T*!'

    symbol = get_token_symbol(token)
    if token.must_light:
        return f'{symbol}*'
    return f' {symbol}'


def render_board(cells: Sequence[Optional[Token]], checker: Optional[Checker] = None,
                 show_coords: bool = False) -> str:
    """
    Render the board as ASCII art.

    Args:
        cells: 25 slots, row 0 (the south edge) first
        checker: Optional finished simulation to show the beam path
        show_coords: Whether to show row/column coordinates

    Returns:
        Multi-line string representation of the board
    """
    cell_width = 3
    lines: List[str] = []

    beam_at_cell: Dict[int, List[Orientation]] = {}
    targets_hit = set()
    if checker is not None:
        targets_hit = set(checker.lit_target_cells())
        for idx in checker.visited_cells():
            beam_at_cell[idx] = checker.beam_directions_at(idx)

    if show_coords:
        header = '    '
        for col in range(GRID_SIZE):
            header += f' {col}  '
        lines.append(header)

    def border(left: str, middle: str, right: str) -> str:
        line = left
        for col in range(GRID_SIZE):
            line += BOX_H * cell_width
            line += middle if col < GRID_SIZE - 1 else right
        return '   ' + line if show_coords else line

    lines.append(border(BOX_TL, BOX_T, BOX_TR))

    # North row first
    for row in reversed(range(GRID_SIZE)):
        row_str = BOX_V
        for col in range(GRID_SIZE):
            idx = position_to_index(row, col)
            row_str += render_cell(cells[idx], beam_at_cell.get(idx, []),
                                   idx in targets_hit) + BOX_V
        if show_coords:
            row_str = f' {row} ' + row_str
        lines.append(row_str)

        if row > 0:
            lines.append(border(BOX_L, BOX_X, BOX_R))
        else:
            lines.append(border(BOX_BL, BOX_B, BOX_BR))

    if checker is not None:
        status = f'Targets hit: {checker.count_lit_targets()}/{checker.board.targets}'
        if checker.solved():
            status += '  SOLVED'
        lines.append(status)

    return '\n'.join(lines)


def print_board(cells: Sequence[Optional[Token]], checker: Optional[Checker] = None,
                show_coords: bool = False) -> None:
    """Print the board to stdout."""
    print(render_board(cells, checker, show_coords))


def render_compact(cells: Sequence[Optional[Token]]) -> str:
    """
    Render a compact one-character-per-cell view, north row first.
    Useful for log messages.
    """
    lines = []
    for row in reversed(range(GRID_SIZE)):
        row_str = ''
        for col in range(GRID_SIZE):
            token = cells[position_to_index(row, col)]
            row_str += '.' if token is None else TYPE_CHARS[token.token_type]
        lines.append(row_str)
    return '\n'.join(lines)
