"""
Play handling on top of GameEngine.

``handle_play`` is the request handler: it takes the raw ``move`` and
``reset`` fields a client posts, drives the engine and returns the state dict.
``GameRooms`` keys independent engines by room id for hosts that run more
than one game.
"""

import threading

from .errors import InvalidCoordinate
from .game_logic import GameEngine
from .logging_config import get_logger
from .protocol import parse_move, state_to_dict

logger = get_logger(__name__)

DEFAULT_ROOM = "default"


def handle_play(engine, move=None, reset=None) -> dict:
    """
    apply ``move`` ("row,col") if given, then reset if ``reset`` is truthy.
    bad moves are logged and dropped; the engine never sees them.
    """
    if move:
        try:
            coordinate = parse_move(move)
        except InvalidCoordinate as e:
            logger.warning("ignoring move %r: %s", move, e)
        else:
            engine.play(coordinate)
    if reset:
        engine.reset()
    return state_to_dict(engine.snapshot())


class GameRooms:
    """
    room id -> GameEngine, created on first use
    """
    def __init__(self, engine_factory=GameEngine):
        self._engine_factory = engine_factory
        self._engines = {}
        self._lock = threading.Lock()

    def get(self, room_id=DEFAULT_ROOM):
        with self._lock:
            engine = self._engines.get(room_id)
            if engine is None:
                engine = self._engine_factory()
                self._engines[room_id] = engine
                logger.info("room %r created", room_id)
            return engine

    def discard(self, room_id):
        with self._lock:
            if self._engines.pop(room_id, None) is not None:
                logger.info("room %r closed", room_id)

    def room_ids(self):
        with self._lock:
            return sorted(self._engines)

    def __contains__(self, room_id):
        with self._lock:
            return room_id in self._engines

    def __len__(self):
        with self._lock:
            return len(self._engines)
