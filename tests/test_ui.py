"""
Widget and window tests; run offscreen (see conftest).
"""

import socket

import pytest

from conftest import X_TOP_ROW
from tateti.game_logic import GameEngine, Player
from tateti.network import NetworkWorker
from tateti.protocol import ACK_REMATCH, DEC_REMATCH, REQ_REMATCH


@pytest.fixture
def board(qapp, engine):
    from tateti.ui.board_widget import BoardWidget
    w = BoardWidget(engine)
    w.resize(300, 300)
    return w


@pytest.fixture
def window(qapp):
    from tateti.ui.main_window import TicTacToeWindow
    win = TicTacToeWindow(engine=GameEngine())
    yield win
    win.close()


class TestBoardWidget:
    def test_cell_mapping(self, board):
        assert board.cell_at(10, 10) == (0, 0)
        assert board.cell_at(150, 150) == (1, 1)
        assert board.cell_at(299, 10) == (0, 2)
        assert board.cell_at(10, 299) == (2, 0)

    def test_outside_grid(self, board):
        assert board.cell_at(-1, 10) is None
        assert board.cell_at(300, 300) is None

    def test_non_square_is_centred(self, qapp, engine):
        from tateti.ui.board_widget import BoardWidget
        w = BoardWidget(engine)
        w.resize(400, 300)
        assert w.cell_at(40, 150) is None     # left margin
        assert w.cell_at(60, 150) == (1, 0)

    def test_accept_clicks_toggle(self, board):
        board.set_accept_clicks(False)
        assert board.accepts_clicks() is False

    def test_paints_without_error(self, board, engine):
        for move in X_TOP_ROW:
            engine.apply_move(*move)
        image = board.grab()
        assert not image.isNull()

    def test_square_hint(self, board):
        assert board.hasHeightForWidth()
        assert board.heightForWidth(120) == 120


class TestLocalPlay:
    def test_starts_local(self, window):
        assert window.game_mode == "local"
        assert window.engine.current_player is Player.X

    def test_click_moves_and_alternates(self, window):
        window._on_cell_clicked(0, 0)
        assert window.engine.snapshot().cell(0, 0) is Player.X
        assert window.message_text() == "Player O's turn"

    def test_taken_cell(self, window):
        window._on_cell_clicked(0, 0)
        window._on_cell_clicked(0, 0)
        assert window.message_text() == "cell taken"
        assert window.engine.move_count == 1

    def test_win_message(self, window):
        for move in X_TOP_ROW:
            window._on_cell_clicked(*move)
        assert window.message_text() == "Player X wins!"
        assert window.board_widget.accepts_clicks() is False

    def test_reset(self, window):
        for move in X_TOP_ROW:
            window._on_cell_clicked(*move)
        window.reset_game()
        assert window.engine.is_over is False
        assert window.engine.move_count == 0
        assert window.board_widget.accepts_clicks() is True


class TestNetworkFlow:
    """Drives the network slots directly, no sockets."""

    def test_client_waits_for_x(self, window):
        window.game_mode = "client"
        window._on_assign_symbol("O")
        assert window.is_my_turn is False
        assert window.board_widget.accepts_clicks() is False

    def test_opponent_move_gives_turn(self, window):
        window.game_mode = "client"
        window._on_assign_symbol("O")
        window._on_move_received(1, 1)
        assert window.engine.snapshot().cell(1, 1) is Player.X
        assert window.is_my_turn is True

    def test_out_of_turn_move_dropped(self, window):
        window.game_mode = "host"
        window._on_assign_symbol("X")
        window._on_move_received(1, 1)
        assert window.engine.move_count == 0

    def test_click_not_my_turn(self, window):
        window.game_mode = "client"
        window._on_assign_symbol("O")
        window._on_cell_clicked(0, 0)
        assert window.message_text() == "not your turn"
        assert window.engine.move_count == 0

    def test_loss_message(self, window):
        window.game_mode = "client"
        window._on_assign_symbol("O")
        # X = opponent on the top row, O = us in the middle row
        for r, c in X_TOP_ROW:
            if window.is_my_turn:
                window._on_cell_clicked(r, c)
            else:
                window._on_move_received(r, c)
        assert window.message_text() == "Opponent (X) wins!"

    def test_rematch_swaps_marks(self, window):
        window.game_mode = "host"
        window._on_assign_symbol("X")
        window.rematch_requested_by_me = True
        window._handle_rematch_accepted()
        assert window.my_symbol is Player.O
        assert window.engine.move_count == 0
        assert window.rematch_requested_by_me is False

    def test_rematch_request_only_after_game(self, window):
        window.game_mode = "host"
        window._on_assign_symbol("X")
        window._handle_rematch_request()
        assert window.rematch_requested_by_opponent is False


class TestNetworkWorker:
    def collect(self, signal):
        got = []
        signal.connect(lambda *args: got.append(args))
        return got

    def test_move_message(self, qapp):
        w = NetworkWorker()
        moves = self.collect(w.move_received)
        w.dispatch_message("2,1")
        assert moves == [(2, 1)]

    @pytest.mark.parametrize("msg", ["5,5", "x,y", "1", "NET::BOGUS"])
    def test_bad_messages_dropped(self, qapp, msg):
        w = NetworkWorker()
        moves = self.collect(w.move_received)
        w.dispatch_message(msg)
        assert moves == []

    def test_rematch_messages(self, qapp):
        w = NetworkWorker()
        req = self.collect(w.rematch_request_received)
        ack = self.collect(w.rematch_accepted)
        dec = self.collect(w.rematch_declined)
        for msg in (REQ_REMATCH, ACK_REMATCH, DEC_REMATCH):
            w.dispatch_message(msg)
        assert (len(req), len(ack), len(dec)) == (1, 1, 1)

    def test_send_without_socket(self, qapp):
        assert NetworkWorker().send_move(0, 0) is False

    def test_merged_and_split_chunks(self, qapp):
        w = NetworkWorker()
        moves = self.collect(w.move_received)
        req = self.collect(w.rematch_request_received)
        w.feed(b"0,0\n1,")
        w.feed(b"1\n" + REQ_REMATCH.encode() + b"\n2,2")
        assert moves == [(0, 0), (1, 1)]
        assert len(req) == 1
        w.feed(b"\n")
        assert moves[-1] == (2, 2)

    def test_undecodable_line_skipped(self, qapp):
        w = NetworkWorker()
        moves = self.collect(w.move_received)
        w.feed(b"\xff\xfe\n0,1\n")
        assert moves == [(0, 1)]

    def test_connection_loop_over_socketpair(self, qapp):
        local, peer = socket.socketpair()
        w = NetworkWorker()
        moves = self.collect(w.move_received)
        gone = self.collect(w.disconnected)
        w.socket = local
        w._running = True
        # two writes that may land in one segment
        peer.sendall(b"0,0\n")
        peer.sendall(b"1,1\n")
        peer.close()
        w._handle_connection()
        assert moves == [(0, 0), (1, 1)]
        assert gone == [("opponent disconnected",)]
        assert w.socket is None

    def test_sent_messages_are_newline_framed(self, qapp):
        local, peer = socket.socketpair()
        w = NetworkWorker()
        w.socket = local
        w._running = True
        try:
            assert w.send_move(2, 1) is True
            w.send_rematch_request()
            expected = b"2,1\n" + REQ_REMATCH.encode() + b"\n"
            got = b""
            while len(got) < len(expected):
                got += peer.recv(1024)
            assert got == expected
        finally:
            local.close()
            peer.close()
