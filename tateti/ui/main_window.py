import socket
from ..game_logic import GameEngine, OutcomeKind, Player
from ..logging_config import get_logger
from ..network import NetworkWorker
from ..ui.board_widget import BoardWidget

from PySide6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout,
    QPushButton, QLabel, QMenuBar, QMenu, QLineEdit,
    QRadioButton, QGroupBox, QMessageBox, QSizePolicy
)
from PySide6.QtGui import QAction, QFont
from PySide6.QtCore import Qt, QThread, Slot

logger = get_logger(__name__)

STYLE_SHEET = """
    QMainWindow { background-color: #222; }
    QMenuBar { background-color: #333; color: #eee; }
    QMenuBar::item:selected { background-color: #555; }
    QMenu { background-color: #333; color: #eee; border: 1px solid #555; }
    QMenu::item:selected { background-color: #555; }
    QGroupBox { color: #eee; border: 1px solid #555; margin-top: 8px; }
    QPushButton { background-color: #444; color: #eee; border: 1px solid #555; padding: 8px 15px; border-radius: 5px; }
    QPushButton:hover { background-color: #555; }
    QLabel, QRadioButton { color: #eee; }
"""


class TicTacToeWindow(QMainWindow):
    """
    main window: local hot-seat or peer-to-peer play, all moves go through one engine
    """
    def __init__(self, engine=None, settings=None):
        """
        init state, ui widgets, signals
        """
        super().__init__()
        self.engine = engine if engine is not None else GameEngine()
        self.port = settings.network.port if settings else 9999
        self.connect_timeout = settings.network.connect_timeout if settings else 10.0
        self.board_widget = BoardWidget(self.engine, parent=self)
        # network thread + worker placeholders
        self.network_thread = None; self.network_worker = None
        # game state flags
        self.game_mode = "local"; self.my_symbol = Player.X
        self.rematch_requested_by_me = False
        self.rematch_requested_by_opponent = False

        self._setup_ui()
        self._update_message("Select game mode or start local game.")

    @property
    def opponent_symbol(self):
        return self.my_symbol.other

    @property
    def is_my_turn(self):
        # network turn comes straight from the engine
        state = self.engine.snapshot()
        return not state.is_over and state.current_player is self.my_symbol

    def _setup_ui(self):
        '''window look + layout'''
        self.setWindowTitle("Network Tic-Tac-Toe")
        self.setStyleSheet(STYLE_SHEET)
        self.central_widget = QWidget()
        self.setCentralWidget(self.central_widget)
        self.main_layout = QVBoxLayout(self.central_widget)

        self._create_menu_bar()            # top menu
        self._create_network_controls()    # host/connect ui
        self.main_layout.addWidget(self.network_controls_group)
        self.main_layout.addWidget(self.board_widget, 1)
        self.board_widget.cell_clicked.connect(self._on_cell_clicked)

        self._create_bottom_controls()     # status + buttons
        self.main_layout.addWidget(self.controls_bottom_widget)
        self._update_network_ui_state(enabled=True)
        self.board_widget.set_accept_clicks(True)
        self._update_rematch_buttons_visibility()

    def _create_menu_bar(self):
        '''game menu actions'''
        menu_bar = QMenuBar()
        game_menu = QMenu("Game", self)
        local_action = QAction("New Local Game", self)
        local_action.triggered.connect(self.reset_game)
        net_action = QAction("Setup Network Game", self)
        net_action.triggered.connect(self._enable_network_setup)
        quit_action = QAction("Quit", self)
        quit_action.triggered.connect(self.close)
        for act in (local_action, net_action): game_menu.addAction(act)
        game_menu.addSeparator(); game_menu.addAction(quit_action)
        menu_bar.addMenu(game_menu)
        self.setMenuBar(menu_bar)

    def _create_network_controls(self):
        '''network setup group'''
        self.network_controls_group = QGroupBox("Network Game Setup")
        layout = QVBoxLayout()
        mode_layout = QHBoxLayout()
        self.host_radio = QRadioButton("Host Game")
        self.client_radio = QRadioButton("Connect to Game")
        self.host_radio.setChecked(True)
        self.host_radio.toggled.connect(self._update_ip_input_state)
        mode_layout.addWidget(self.host_radio)
        mode_layout.addWidget(self.client_radio)
        mode_layout.addStretch()
        layout.addLayout(mode_layout)
        # ip input
        ip_layout = QHBoxLayout(); ip_layout.addWidget(QLabel("IP Address:"))
        self.ip_address_input = QLineEdit()
        self.ip_address_input.setPlaceholderText("Your IP (auto-detect)")
        ip = self._get_local_ip()         # auto-detect
        if ip: self.ip_address_input.setText(ip)
        self.ip_address_input.setEnabled(False)
        ip_layout.addWidget(self.ip_address_input)
        layout.addLayout(ip_layout)
        self.start_network_button = QPushButton("Start Hosting")
        self.start_network_button.clicked.connect(self._start_or_connect_network_game)
        layout.addWidget(self.start_network_button, alignment=Qt.AlignCenter)
        self.network_controls_group.setLayout(layout)

    def _get_local_ip(self):
        '''
        Return the machine's LAN IP (not 127.0.0.1), or None.

        "Connecting" a UDP socket to a non-routable address makes the OS pick
        the outgoing interface without sending anything. A loopback answer
        falls back to the hostname lookup.
        '''
        s = None
        try:
            s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            s.settimeout(0.1)
            s.connect(('10.254.254.254', 1))
            ip = s.getsockname()[0]
            if ip == '127.0.0.1':
                ip = socket.gethostbyname(socket.gethostname())
            return ip
        except OSError as e:
            logger.debug("local ip detection failed: %s", e)
            return None
        finally:
            if s: s.close()

    def _update_ip_input_state(self):
        # toggle ip field for client vs host
        is_client = self.client_radio.isChecked()
        self.ip_address_input.setEnabled(is_client)
        self.ip_address_input.setPlaceholderText(
            "Enter Host IP" if is_client else "Your IP (auto)"
        )
        self.start_network_button.setText("Connect to Host" if is_client else "Start Hosting")
        # reset ip text
        if not is_client:
            self.ip_address_input.setText(self._get_local_ip() or "")
        else:
            self.ip_address_input.setText("")

    def _create_bottom_controls(self):
        # status label + rematch/reset buttons
        self.controls_bottom_widget = QWidget()
        hl = QHBoxLayout(self.controls_bottom_widget)
        self.controls_bottom_widget.setStyleSheet("background: transparent;")
        self.message_label = QLabel("")
        f = QFont(); f.setPointSize(12); self.message_label.setFont(f)
        self.message_label.setAlignment(Qt.AlignLeft | Qt.AlignVCenter)
        self.message_label.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Preferred)
        self.message_label.setWordWrap(True)
        self.reset_button = QPushButton("Reset"); self.reset_button.clicked.connect(self.reset_game)
        self.rematch_button = QPushButton("Rematch?"); self.rematch_button.clicked.connect(self._request_rematch)
        self.accept_rematch_button = QPushButton("Accept"); self.accept_rematch_button.clicked.connect(self._accept_rematch)
        self.decline_rematch_button = QPushButton("Decline"); self.decline_rematch_button.clicked.connect(self._decline_rematch)
        for w in (self.message_label, None, self.rematch_button,
                  self.accept_rematch_button, self.decline_rematch_button,
                  self.reset_button):
            if w: hl.addWidget(w)
            else: hl.addStretch(1)

    def _update_rematch_buttons_visibility(self):
        # show/hide rematch or accept/decline
        net_over = self.game_mode in ("host", "client") and self.engine.is_over
        req = net_over and not self.rematch_requested_by_me and not self.rematch_requested_by_opponent
        acc = net_over and self.rematch_requested_by_opponent
        self.rematch_button.setVisible(req); self.rematch_button.setEnabled(req)
        self.accept_rematch_button.setVisible(acc); self.decline_rematch_button.setVisible(acc)
        # disable reset if waiting on rematch
        ok = not (self.rematch_requested_by_me or self.rematch_requested_by_opponent)
        self.reset_button.setEnabled(ok)

    @Slot(str)
    def _update_message(self, text, is_error=False,
                         is_success=False, is_turn=False):
        # set message text + style
        style = "color: #eee;"
        if is_error:   style = "color: #ff8a8a; font-weight: bold;"
        elif is_success: style = "color: lime; font-weight: bold;"
        elif is_turn:    style = "color: #8acaff; font-weight: bold;"
        self.message_label.setStyleSheet(style)
        self.message_label.setText(text)

    def message_text(self):
        return self.message_label.text()

    def _update_network_ui_state(self, enabled):
        # enable/disable network controls
        self.network_controls_group.setEnabled(enabled)

    def _enable_network_setup(self):
        # switch to network mode
        self.reset_game()
        self._update_network_ui_state(True)
        self._update_message("setup network game.")

    @Slot()
    def _start_or_connect_network_game(self):
        # start host or client thread
        if self.network_thread and self.network_thread.isRunning():
            self._update_message("network active.", is_error=True)
            return
        self._stop_network_worker()
        ip = self.ip_address_input.text().strip()
        if self.host_radio.isChecked():
            host_ip = ip or self._get_local_ip()
            if not host_ip or host_ip == '127.0.0.1':
                self._update_message("Enter valid host ip", is_error=True)
                return
            self.game_mode = 'host'
            self.ip_address_input.setText(host_ip)
            self._setup_and_start_worker()
            self.network_worker.start_hosting(host_ip, self.port)
        else:
            if not ip:
                QMessageBox.warning(self, "Network Error", "Enter host ip")
                return
            self.game_mode = 'client'
            self._setup_and_start_worker()
            self.network_worker.start_connecting(ip, self.port)
        # lock ui until the peer shows up
        self.engine.reset()
        self._update_network_ui_state(False)
        self.board_widget.set_accept_clicks(False)
        self.board_widget.update()

    def _setup_and_start_worker(self):
        # create thread + worker + connect signals
        self.network_thread = QThread(self)
        self.network_worker = NetworkWorker(connect_timeout=self.connect_timeout)
        self.network_worker.moveToThread(self.network_thread)
        self.network_worker.disconnected.connect(self._on_network_disconnected)
        self.network_worker.move_received.connect(self._on_move_received)
        self.network_worker.status_update.connect(self._on_status_update)
        self.network_worker.error_occurred.connect(self._on_network_error)
        self.network_worker.assign_player_symbol.connect(self._on_assign_symbol)
        self.network_worker.rematch_request_received.connect(self._handle_rematch_request)
        self.network_worker.rematch_accepted.connect(self._handle_rematch_accepted)
        self.network_worker.rematch_declined.connect(self._handle_rematch_declined)
        self.network_thread.started.connect(lambda: logger.debug("network thread started"))
        self.network_thread.finished.connect(self._on_network_thread_finished)
        self.network_thread.finished.connect(self.network_worker.deleteLater)
        self.network_thread.start()

    def _prompt_turn(self, prefix=""):
        # status line + click gate for whoever moves next in network play
        self.board_widget.set_accept_clicks(self.is_my_turn)
        if self.is_my_turn:
            self._update_message(f"{prefix}Your ({self.my_symbol.value}) turn.", is_turn=True)
        else:
            self._update_message(
                f"{prefix}Waiting for opponent ('{self.opponent_symbol.value}') move...")

    @Slot(str)
    def _on_assign_symbol(self, symbol):
        # host is X and moves first
        self.my_symbol = Player(symbol)
        self.engine.reset()
        self.board_widget.update()
        logger.info("network game started as %s", symbol)
        self._prompt_turn(f"You are '{symbol}'. ")
        self._update_rematch_buttons_visibility()

    @Slot(str)
    def _on_network_disconnected(self, reason):
        # handle abrupt disconnect
        if self.game_mode != 'local':
            logger.info("disconnected: %s", reason)
            self._update_message(f"Disconnected: {reason}", is_error=True)
            QMessageBox.information(self, "Disconnected", reason)
            self.reset_game()

    @Slot(str)
    def _on_network_error(self, err):
        # show error + revert to local
        if self.game_mode != 'local':
            self._update_message(f"Network error: {err}", is_error=True)
            QMessageBox.critical(self, "Network Error", err)
            self._stop_network_worker()
            self._update_network_ui_state(True)
            self.game_mode = 'local'; self.my_symbol = Player.X
            self.board_widget.set_accept_clicks(True)
            self._update_rematch_buttons_visibility()

    @Slot(str)
    def _on_status_update(self, stat):
        # status from network worker
        self._update_message(stat)

    @Slot()
    def _on_network_thread_finished(self):
        # cleanup after thread ends
        logger.debug("network thread finished")
        self.network_thread = None; self.network_worker = None
        if self.game_mode != 'local' and not self.engine.is_over:
            self._update_message("connection ended unexpectedly", is_error=True)
            self._update_rematch_buttons_visibility()

    def _result_text(self, local):
        # message for a finished game, from this window's point of view
        outcome = self.engine.outcome
        if outcome.kind is OutcomeKind.TIE:
            return "It's a draw!", True
        winner = outcome.winner
        if local:
            return f"Player {winner.value} wins!", True
        if winner is self.my_symbol:
            return f"You ({winner.value}) win!", True
        return f"Opponent ({winner.value}) wins!", False

    def _handle_game_over(self, local=False):
        # end game UI updates
        msg, ok = self._result_text(local)
        self._update_message(msg, is_success=ok, is_error=not ok)
        self.board_widget.set_accept_clicks(False)
        self._update_rematch_buttons_visibility()

    @Slot(int, int)
    def _on_cell_clicked(self, r, c):
        # ignore clicks after game over
        if self.engine.is_over:
            return

        # local: both players share the mouse
        if self.game_mode == 'local':
            if not self.engine.apply_move(r, c):
                self._update_message("cell taken", is_error=True)
                return
            self.board_widget.update()
            if self.engine.is_over:
                self._handle_game_over(local=True)
            else:
                self._update_message(f"Player {self.engine.current_player.value}'s turn")
            return

        # network: only on your turn
        if not self.is_my_turn:
            self._update_message("not your turn", is_error=True)
            return
        if not self.engine.apply_move(r, c):
            self._update_message("cell taken", is_error=True)
            return
        self.board_widget.update()
        if self.network_worker and self.network_worker.is_running:
            self.network_worker.send_move(r, c)
        if self.engine.is_over:
            self._handle_game_over()
        else:
            self._prompt_turn()

    @Slot(int, int)
    def _on_move_received(self, r, c):
        # when opponent moves
        if self.game_mode == 'local' or self.engine.is_over: return
        if self.engine.current_player is not self.opponent_symbol:
            logger.warning("opponent moved out of turn at %s,%s", r, c)
            return
        if not self.engine.apply_move(r, c):
            logger.warning("opponent sent illegal move %s,%s", r, c)
            return
        self.board_widget.update()
        if self.engine.is_over:
            self._handle_game_over()
        else:
            self._prompt_turn()

    @Slot()
    def _request_rematch(self):
        # ask opponent for rematch
        if self.network_worker and self.network_worker.is_running:
            self.network_worker.send_rematch_request()
            self.rematch_requested_by_me = True
            self._update_message("rematch requested...")
            self._update_rematch_buttons_visibility()

    @Slot()
    def _accept_rematch(self):
        if self.network_worker: self.network_worker.send_rematch_accept()
        self._start_new_round()

    @Slot()
    def _decline_rematch(self):
        # decline and stay in game over
        if self.network_worker: self.network_worker.send_rematch_decline()
        self.rematch_requested_by_opponent = False
        self._update_message("Rematch declined.")
        self._update_rematch_buttons_visibility()

    @Slot()
    def _handle_rematch_request(self):
        # got rematch ask
        if self.engine.is_over:
            self.rematch_requested_by_opponent = True
            self._update_message("Opponent wants rematch")
            self._update_rematch_buttons_visibility()

    @Slot()
    def _handle_rematch_accepted(self):
        # opponent agreed
        if self.rematch_requested_by_me:
            self._start_new_round("Rematch accepted. ")

    @Slot()
    def _handle_rematch_declined(self):
        # opponent declined
        if self.rematch_requested_by_me:
            self.rematch_requested_by_me = False
            self._update_message("Rematch declined")
            self._update_rematch_buttons_visibility()

    def _start_new_round(self, prefix=""):
        # X always opens, so the peers swap marks each round
        self.engine.reset()
        self.my_symbol = self.my_symbol.other
        self.rematch_requested_by_me = False; self.rematch_requested_by_opponent = False
        self.board_widget.update()
        self._update_rematch_buttons_visibility()
        self._prompt_turn(f"{prefix}New round, you are '{self.my_symbol.value}'. ")

    def _stop_network_worker(self):
        # stop thread + sockets
        if self.network_worker:
            self.network_worker.stop()
        if self.network_thread and self.network_thread.isRunning():
            self.network_thread.quit()
            if not self.network_thread.wait(1000): self.network_thread.terminate()
        self.network_thread = None; self.network_worker = None

    @Slot()
    def reset_game(self):
        # full reset to local
        self._stop_network_worker()
        self.engine.reset()
        self.game_mode = 'local'; self.my_symbol = Player.X
        self.rematch_requested_by_me = False; self.rematch_requested_by_opponent = False
        self._update_message("New local game, player X turn")
        self.board_widget.set_accept_clicks(True); self.board_widget.update()
        self._update_network_ui_state(True)
        self._update_rematch_buttons_visibility()

    def closeEvent(self, event):
        # ensure cleanup on close
        self._stop_network_worker()
        event.accept()
