"""
tateti command line.

Usage:
    tateti [gui]                  Desktop board (local or network play)
    tateti serve [--host H] [--port P]
                                  Line-based game server
    tateti play                   Hot-seat game in the terminal
"""

import argparse
import sys

from .config import load_settings
from .errors import InvalidCoordinate
from .game_logic import GameEngine, OutcomeKind
from .logging_config import get_logger, setup_logging
from .protocol import parse_move

logger = get_logger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(description="tateti - tic-tac-toe engine", prog="tateti")
    parser.add_argument("--config", default="tateti.toml", help="Path to TOML settings")
    parser.add_argument("--log-level", help="Override log level")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("gui", help="Open the desktop board")

    serve_parser = subparsers.add_parser("serve", help="Run the game server")
    serve_parser.add_argument("--host", help="Address to bind")
    serve_parser.add_argument("--port", type=int, help="Port to bind")

    subparsers.add_parser("play", help="Hot-seat game in the terminal")
    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.config)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)
    if args.log_level:
        settings.log_level = args.log_level
    setup_logging(settings.log_level, settings.log_format)

    command = args.command or "gui"
    if command == "gui":
        return cmd_gui(settings)
    if command == "serve":
        return cmd_serve(args, settings)
    if command == "play":
        return cmd_play()
    parser.print_help()
    sys.exit(1)


def cmd_gui(settings):
    """Open the desktop window."""
    from PySide6.QtWidgets import QApplication
    from .ui.main_window import TicTacToeWindow
    from .ui.palette import apply_default_palette

    app = QApplication.instance() or QApplication(sys.argv)
    app.setStyle('Fusion')
    apply_default_palette(app)
    window = TicTacToeWindow(settings=settings)
    window.show()
    return app.exec()


def cmd_serve(args, settings):
    """Run the game server until interrupted."""
    from .server import GameServer

    host = args.host or settings.network.host
    port = args.port if args.port is not None else settings.network.port
    server = GameServer(host, port)
    try:
        server.serve_forever()
    except OSError as e:
        logger.error("could not start server on %s:%s: %s", host, port, e)
        return 1
    return 0


def render_board(state):
    """Board as text, empty cells show their column number."""
    lines = ["-------------"]
    for i, row in enumerate(state.board):
        cells = (cell.value if cell else str(j) for j, cell in enumerate(row))
        lines.append(f"{i}  {' | '.join(cells)}")
        if i < 2: lines.append("  -----------")
    lines.append("   0   1   2")  # column indices
    lines.append("-------------")
    return "\n".join(lines)


def cmd_play(engine=None, input_fn=input, output_fn=print):
    """Hot-seat loop: row,col to move, r to reset, q to quit."""
    engine = engine if engine is not None else GameEngine()
    output_fn(render_board(engine.snapshot()))
    while True:
        state = engine.snapshot()
        if state.is_over:
            if state.outcome.kind is OutcomeKind.TIE:
                output_fn("It's a Tie!")
            else:
                output_fn(f"Player {state.winner.value} wins!")
            return 0

        try:
            text = input_fn(f"Player {state.current_player.value}, enter move (row,col), r=reset, q=quit: ").strip()
        except EOFError:
            return 0
        if text.lower() == "q":
            return 0
        if text.lower() == "r":
            engine.reset()
            output_fn(render_board(engine.snapshot()))
            continue
        try:
            coord = parse_move(text)
        except InvalidCoordinate as e:
            output_fn(f"!! {e}")
            continue
        if not engine.play(coord):
            output_fn("!! Cell already taken. Try again.")
            continue
        output_fn(render_board(engine.snapshot()))


if __name__ == "__main__":
    sys.exit(main())
