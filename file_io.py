"""
File I/O for the Laser Maze solver.

Handles loading and saving puzzles and solutions in JSON format.

A token is stored as:

    {"type": "target_mirror", "orientation": 2, "lit": false,
     "target_lit": false, "must_light": true}

and a puzzle as:

    {"targets": 2, "grid": [token or null x 25], "to_be_added": [token, ...]}

Older preset files use "type_" with CamelCase names ("TargetMirror"),
orientation names ("North") and pad "to_be_added" with nulls. Those are
accepted on load; saving always writes the format above.
"""

import json
import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Sequence, Union

from board import Board, NUM_CELLS
from errors import InvalidPuzzleError
from pieces import NAME_TO_TOKEN_TYPE, TOKEN_TYPE_NAMES, Orientation, Token, TokenType

if TYPE_CHECKING:
    from challenge import Challenge


logger = logging.getLogger(__name__)

ORIENTATION_NAMES = {o.name.lower(): o for o in Orientation}

_CAMEL_BOUNDARY = re.compile(r'(?<!^)(?=[A-Z])')


def _type_from_name(name) -> TokenType:
    if not isinstance(name, str):
        raise InvalidPuzzleError(f"Token type must be a string, got {name!r}")
    # "TargetMirror" -> "target_mirror"
    key = _CAMEL_BOUNDARY.sub('_', name).lower() if '_' not in name else name.lower()
    if key not in NAME_TO_TOKEN_TYPE:
        raise InvalidPuzzleError(f"Unknown token type: {name}")
    return NAME_TO_TOKEN_TYPE[key]


def _orientation_from_value(value) -> Optional[Orientation]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidPuzzleError(f"Invalid orientation: {value!r}")
    if isinstance(value, int):
        if not 0 <= value <= 3:
            raise InvalidPuzzleError(f"Invalid orientation: {value}")
        return Orientation(value)
    if isinstance(value, str) and value.lower() in ORIENTATION_NAMES:
        return ORIENTATION_NAMES[value.lower()]
    raise InvalidPuzzleError(f"Invalid orientation: {value!r}")


def token_to_dict(token: Token) -> dict:
    """
    Convert a token to a dictionary for JSON serialization.

    Args:
        token: Token to convert

    Returns:
        Dictionary representation, lit state included
    """
    return {
        'type': TOKEN_TYPE_NAMES[token.token_type],
        'orientation': None if token.orientation is None else int(token.orientation),
        'lit': token.lit,
        'target_lit': token.target_lit,
        'must_light': token.must_light,
    }


def token_from_dict(data: dict) -> Token:
    """
    Create a token from a dictionary.

    Raises:
        InvalidPuzzleError: if the type or orientation cannot be read
    """
    if not isinstance(data, dict):
        raise InvalidPuzzleError(f"Token must be an object, got {data!r}")

    name = data.get('type', data.get('type_'))
    token = Token(
        _type_from_name(name),
        orientation=_orientation_from_value(data.get('orientation')),
        must_light=bool(data.get('must_light', False)),
    )

    # Restore lit state when present so a simulated board survives a round trip
    if 'lit' in data and data['lit'] is not None:
        token.lit = bool(data['lit'])
    if token.is_target and data.get('target_lit') is not None:
        token.target_lit = bool(data['target_lit'])
    return token


def cells_to_list(cells: Sequence[Optional[Token]]) -> List[Optional[dict]]:
    return [token_to_dict(t) if t is not None else None for t in cells]


def cells_from_list(data) -> List[Optional[Token]]:
    """Read a 25-slot grid; null slots are empty cells."""
    if not isinstance(data, list) or len(data) != NUM_CELLS:
        raise InvalidPuzzleError(f"Board must have {NUM_CELLS} cells!")
    return [token_from_dict(item) if item is not None else None for item in data]


def challenge_to_dict(challenge: 'Challenge') -> dict:
    """
    Convert a challenge to a dictionary for JSON serialization.

    Args:
        challenge: Challenge to convert

    Returns:
        Dictionary with 'targets', 'grid' and 'to_be_added' keys
    """
    data = {
        'targets': challenge.targets,
        'grid': cells_to_list(challenge.cells),
        'to_be_added': [token_to_dict(t) for t in challenge.tokens_to_be_added],
    }
    if challenge.name:
        data['name'] = challenge.name
    return data


def challenge_from_dict(data: dict) -> 'Challenge':
    """
    Create a challenge from a dictionary.

    Only the shape of the data is checked here; the game rules are enforced
    when the puzzle is solved.

    Raises:
        InvalidPuzzleError: if the data is not a readable puzzle
    """
    from challenge import Challenge

    if not isinstance(data, dict):
        raise InvalidPuzzleError("Puzzle must be a JSON object")
    if 'grid' not in data:
        raise InvalidPuzzleError("Puzzle is missing 'grid'")

    targets = data.get('targets', 1)
    if isinstance(targets, bool) or not isinstance(targets, int):
        raise InvalidPuzzleError("Invalid number of targets!")

    to_be_added = data.get('to_be_added', [])
    if not isinstance(to_be_added, list):
        raise InvalidPuzzleError("'to_be_added' must be a list")

    return Challenge(
        cells=cells_from_list(data['grid']),
        # Preset files pad the bag with nulls
        tokens_to_be_added=[token_from_dict(item) for item in to_be_added if item is not None],
        targets=targets,
        name=data.get('name'),
    )


def _read_json(filepath: Union[str, Path]):
    try:
        with open(filepath, 'r') as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise InvalidPuzzleError(f"{filepath} is not valid JSON: {e}") from e


def save_challenge(challenge: 'Challenge', filepath: Union[str, Path]) -> None:
    """
    Save a challenge to a JSON file.

    Args:
        challenge: Puzzle to save
        filepath: Path to output file
    """
    with open(filepath, 'w') as f:
        json.dump(challenge_to_dict(challenge), f, indent=2)
    logger.debug(f"Saved challenge to {filepath}")


def load_challenge(filepath: Union[str, Path]) -> 'Challenge':
    """
    Load a challenge from a JSON file.

    Args:
        filepath: Path to challenge JSON

    Returns:
        Loaded Challenge, named after the file unless it carries a name

    Raises:
        InvalidPuzzleError: if the file is not a readable puzzle
        OSError: if the file cannot be opened
    """
    challenge = challenge_from_dict(_read_json(filepath))
    if challenge.name is None:
        challenge.name = Path(filepath).stem
    logger.debug(f"Loaded challenge from {filepath}")
    return challenge


def save_solution(cells: Sequence[Optional[Token]], targets: int,
                  filepath: Union[str, Path]) -> None:
    """Save a solved board; the file has the puzzle shape with an empty bag."""
    data = {
        'targets': targets,
        'grid': cells_to_list(cells),
        'to_be_added': [],
    }
    with open(filepath, 'w') as f:
        json.dump(data, f, indent=2)
    logger.debug(f"Saved solution to {filepath}")


def load_solution(filepath: Union[str, Path]) -> List[Optional[Token]]:
    """Load the cells of a solved board written by save_solution()."""
    data = _read_json(filepath)
    if not isinstance(data, dict) or 'grid' not in data:
        raise InvalidPuzzleError("Solution is missing 'grid'")
    return cells_from_list(data['grid'])


def board_to_dict(board: Board) -> dict:
    """Convert a search node, both bags included, to a dictionary."""
    return {
        'targets': board.targets,
        'grid': cells_to_list(board.cells),
        'to_be_added': [token_to_dict(t) for t in board.tokens_to_be_added],
        'to_be_added_shuffled': [token_to_dict(t) for t in board.tokens_to_be_added_shuffled],
    }


def board_from_dict(data: dict) -> Board:
    if not isinstance(data, dict) or 'grid' not in data:
        raise InvalidPuzzleError("Board is missing 'grid'")
    return Board(
        cells=cells_from_list(data['grid']),
        tokens_to_be_added=[
            token_from_dict(item) for item in data.get('to_be_added', []) if item is not None
        ],
        tokens_to_be_added_shuffled=[
            token_from_dict(item) for item in data.get('to_be_added_shuffled', [])
            if item is not None
        ],
        targets=data.get('targets', 1),
    )


def board_to_json(board: Board) -> str:
    """Convert board to JSON string."""
    return json.dumps(board_to_dict(board), indent=2)


def board_from_json(json_str: str) -> Board:
    """Create board from JSON string."""
    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        raise InvalidPuzzleError(f"Invalid JSON: {e}") from e
    return board_from_dict(data)
