import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from .logging_config import get_logger

logger = get_logger(__name__)

BOARD_SIZE = 3  # fixed 3x3 grid


class Player(Enum):
    """
    the two marks; value is the board character
    """
    X = 'X'
    O = 'O'

    @property
    def other(self):
        return Player.O if self is Player.X else Player.X


class OutcomeKind(Enum):
    IN_PROGRESS = "in_progress"
    WIN = "win"
    TIE = "tie"


@dataclass(frozen=True)
class Outcome:
    """
    result of a board: still going, a win for someone, or a tie
    """
    kind: OutcomeKind
    winner: Optional[Player] = None

    @classmethod
    def win(cls, player):
        return cls(OutcomeKind.WIN, player)

    @property
    def is_terminal(self):
        return self.kind is not OutcomeKind.IN_PROGRESS


IN_PROGRESS = Outcome(OutcomeKind.IN_PROGRESS)
TIE = Outcome(OutcomeKind.TIE)

Board = Tuple[Tuple[Optional[Player], ...], ...]


@dataclass(frozen=True)
class GameState:
    """
    read-only view of one game: board, whose turn, result
    """
    board: Board
    current_player: Player
    outcome: Outcome

    @property
    def is_over(self):
        return self.outcome.is_terminal

    @property
    def winner(self):
        return self.outcome.winner

    def cell(self, row, col):
        return self.board[row][col]


def empty_board():
    return tuple(tuple(None for _ in range(BOARD_SIZE)) for _ in range(BOARD_SIZE))


def _line_winner(cells):
    # all three filled with the same mark
    first = cells[0]
    if first is not None and all(c == first for c in cells):
        return first
    return None


def evaluate_outcome(board) -> Outcome:
    """
    scan rows, cols, then both diags for 3 in a row; full board is a tie.
    first matching line decides, in that order.
    """
    n = BOARD_SIZE
    lines = [[board[r][c] for c in range(n)] for r in range(n)]      # rows
    lines += [[board[r][c] for r in range(n)] for c in range(n)]     # cols
    lines.append([board[i][i] for i in range(n)])                    # main diag
    lines.append([board[i][n - 1 - i] for i in range(n)])            # anti-diag
    for line in lines:
        winner = _line_winner(line)
        if winner is not None:
            return Outcome.win(winner)
    if all(cell is not None for row in board for cell in row):
        return TIE
    return IN_PROGRESS


def _in_range(value):
    # bool is an int subclass but never a coordinate
    return isinstance(value, int) and not isinstance(value, bool) \
        and 0 <= value < BOARD_SIZE


class GameEngine:
    """
    authoritative tic-tac-toe state; only apply_move and reset write to it
    """
    def __init__(self):
        """
        init board and lock
        """
        self._lock = threading.RLock()   # serializes moves across threads
        self._state = self._fresh_state()
        self._move_count = 0

    @staticmethod
    def _fresh_state():
        return GameState(board=empty_board(), current_player=Player.X,
                         outcome=IN_PROGRESS)

    def apply_move(self, row, col) -> bool:
        """
        mark (row, col) for the current player and advance the game.
        returns False and leaves state untouched when the game is over,
        the coords are off the board, or the cell is taken.
        """
        with self._lock:
            state = self._state
            if state.is_over:
                logger.debug("move %s,%s ignored: game over", row, col)
                return False
            if not (_in_range(row) and _in_range(col)):
                logger.debug("move %r,%r ignored: off board", row, col)
                return False
            if state.board[row][col] is not None:
                logger.debug("move %s,%s ignored: cell taken", row, col)
                return False

            mover = state.current_player
            board = tuple(
                tuple(mover if (r, c) == (row, col) else cell
                      for c, cell in enumerate(cells))
                for r, cells in enumerate(state.board)
            )
            outcome = evaluate_outcome(board)
            # terminal move freezes the turn on the mover
            nxt = mover if outcome.is_terminal else mover.other
            self._state = GameState(board=board, current_player=nxt, outcome=outcome)
            self._move_count += 1

            if outcome.kind is OutcomeKind.WIN:
                logger.info("player %s wins after %d moves", mover.value, self._move_count)
            elif outcome.kind is OutcomeKind.TIE:
                logger.info("game tied")
            return True

    def play(self, coordinate) -> bool:
        # typed form used by callers that parsed a Coordinate
        return self.apply_move(coordinate.row, coordinate.col)

    def reset(self):
        """
        back to fresh state: empty board, X to move
        """
        with self._lock:
            self._state = self._fresh_state()
            self._move_count = 0

    def snapshot(self) -> GameState:
        # GameState is frozen and its board is nested tuples, safe to hand out
        with self._lock:
            return self._state

    @property
    def current_player(self):
        return self.snapshot().current_player

    @property
    def outcome(self):
        return self.snapshot().outcome

    @property
    def is_over(self):
        return self.snapshot().is_over

    @property
    def move_count(self):
        with self._lock:
            return self._move_count

    def is_cell_empty(self, row, col):
        """
        true if coords valid and cell blank
        """
        if _in_range(row) and _in_range(col):
            return self.snapshot().board[row][col] is None
        return False
