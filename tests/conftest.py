"""
Pytest fixtures for tateti tests.
"""

import os

import pytest

# widgets render without a display
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from tateti.game_logic import GameEngine


@pytest.fixture
def engine():
    """Fresh engine, X to move."""
    return GameEngine()


def play_moves(engine, moves):
    """Apply (row, col) pairs in order; returns the per-move results."""
    return [engine.apply_move(r, c) for r, c in moves]


# X wins on the top row, O filler on the middle row
X_TOP_ROW = [(0, 0), (1, 0), (0, 1), (1, 1), (0, 2)]

# ends X,O,X / X,O,O / O,X,X with no line
TIE_GAME = [(0, 0), (0, 1), (0, 2), (1, 1), (1, 0), (1, 2), (2, 1), (2, 0), (2, 2)]


@pytest.fixture(scope="session")
def qapp():
    """Single QApplication for widget tests."""
    from PySide6.QtWidgets import QApplication
    app = QApplication.instance() or QApplication([])
    yield app
