"""
Wire formats shared by the server, the peer-to-peer worker and the handler.

Moves travel as ``"row,col"``. Control messages carry the ``NET::`` prefix.
Game state is exchanged as a dict (one JSON line on the wire) shaped::

    {"board": [["X", "", "O"], ...], "currentPlayer": "O",
     "winner": "X" | "O" | "tie" | None, "gameOver": bool}
"""

import json
from dataclasses import dataclass

from .errors import InvalidCoordinate, ProtocolError
from .game_logic import (BOARD_SIZE, IN_PROGRESS, TIE, GameState, Outcome,
                         OutcomeKind, Player)

NET_MSG_PREFIX = "NET::"
REQ_REMATCH = NET_MSG_PREFIX + "REQ_REMATCH"
ACK_REMATCH = NET_MSG_PREFIX + "ACK_REMATCH"
DEC_REMATCH = NET_MSG_PREFIX + "DEC_REMATCH"
RESET = NET_MSG_PREFIX + "RESET"
STATE = NET_MSG_PREFIX + "STATE"
JOIN = NET_MSG_PREFIX + "JOIN"

TIE_MARKER = "tie"


@dataclass(frozen=True)
class Coordinate:
    row: int
    col: int

    def __post_init__(self):
        for name in ("row", "col"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidCoordinate(f"{name} must be an integer, got {value!r}")
            if not 0 <= value < BOARD_SIZE:
                raise InvalidCoordinate(f"{name} {value} outside 0-{BOARD_SIZE - 1}")


def parse_move(text) -> Coordinate:
    """
    Parse ``"row,col"`` into a Coordinate.

    Raises InvalidCoordinate for anything that is not two in-range integers.
    """
    if not isinstance(text, str):
        raise InvalidCoordinate(f"move must be a string, got {type(text).__name__}")
    parts = text.strip().split(',')
    if len(parts) != 2:
        raise InvalidCoordinate(f"malformed move {text!r}, expected row,col")
    # int() alone would take "\u0661" or "1_0"
    digits = [p.strip() for p in parts]
    if not all(p.isascii() and p.isdigit() for p in digits):
        raise InvalidCoordinate(f"non-integer move {text!r}")
    return Coordinate(int(digits[0]), int(digits[1]))


def encode_move(coordinate) -> str:
    return f"{coordinate.row},{coordinate.col}"


def _winner_marker(outcome):
    if outcome.kind is OutcomeKind.WIN:
        return outcome.winner.value
    if outcome.kind is OutcomeKind.TIE:
        return TIE_MARKER
    return None


def state_to_dict(state: GameState) -> dict:
    return {
        "board": [[cell.value if cell else "" for cell in row] for row in state.board],
        "currentPlayer": state.current_player.value,
        "winner": _winner_marker(state.outcome),
        "gameOver": state.is_over,
    }


def state_to_json(state: GameState) -> str:
    return json.dumps(state_to_dict(state))


def state_from_dict(data) -> GameState:
    """
    Rebuild a GameState from the dict shape; raises ProtocolError if malformed.
    """
    try:
        rows = data["board"]
        if len(rows) != BOARD_SIZE or any(len(r) != BOARD_SIZE for r in rows):
            raise ProtocolError("board must be 3x3")
        board = tuple(tuple(Player(c) if c else None for c in r) for r in rows)
        current = Player(data["currentPlayer"])
        marker = data.get("winner")
        game_over = data.get("gameOver")
    except (KeyError, TypeError, ValueError) as e:
        raise ProtocolError(f"bad state payload: {e}") from e

    if marker is None:
        outcome = IN_PROGRESS
    elif marker == TIE_MARKER:
        outcome = TIE
    else:
        try:
            outcome = Outcome.win(Player(marker))
        except ValueError as e:
            raise ProtocolError(f"bad winner marker {marker!r}") from e
    if game_over is not None and bool(game_over) != outcome.is_terminal:
        raise ProtocolError(f"gameOver={game_over!r} disagrees with winner={marker!r}")
    return GameState(board=board, current_player=current, outcome=outcome)


def state_from_json(line) -> GameState:
    try:
        data = json.loads(line)
    except json.JSONDecodeError as e:
        raise ProtocolError(f"invalid json: {e}") from e
    if not isinstance(data, dict):
        raise ProtocolError("state payload must be an object")
    if "error" in data:
        raise ProtocolError(data["error"])
    return state_from_dict(data)
