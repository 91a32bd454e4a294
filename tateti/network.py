import threading, socket
from PySide6.QtCore import QObject, Signal, Slot

from .errors import InvalidCoordinate
from .logging_config import get_logger
from .protocol import (NET_MSG_PREFIX, REQ_REMATCH, ACK_REMATCH, DEC_REMATCH,
                       Coordinate, encode_move, parse_move)

logger = get_logger(__name__)


def _close_quietly(sock):
    # teardown only; the peer may already be gone
    try: sock.close()
    except OSError: pass


class NetworkWorker(QObject):
    """
    qt worker for peer-to-peer socket i/o; host plays X, client plays O
    """
    connected = Signal()
    disconnected = Signal(str)
    move_received = Signal(int, int)
    status_update = Signal(str)
    error_occurred = Signal(str)
    assign_player_symbol = Signal(str)
    rematch_request_received = Signal()
    rematch_accepted = Signal()
    rematch_declined = Signal()

    def __init__(self, connect_timeout=10.0):
        """
        init sockets and control flags
        """
        super().__init__()
        self.socket = None
        self.server_socket = None
        self.host_ip = ""       # ip to bind or connect
        self.port = 0
        self.is_hosting = False # host vs client mode
        self.connect_timeout = connect_timeout
        self._recv_buffer = b""      # partial line from the peer
        self._running = False   # thread control flag
        self.connection_thread = None

    @property
    def is_running(self):
        return self._running

    def _start_connection_thread(self, target_func, args_tuple):
        """
        spawn daemon thread for host/connect
        """
        # only one thread at a time
        if self.connection_thread and self.connection_thread.is_alive(): return
        self._running = True
        self.connection_thread = threading.Thread(
            target=target_func,
            args=args_tuple,
            daemon=True
        )
        self.connection_thread.start()

    @Slot(str, int)
    def start_hosting(self, host_ip, port):
        """
        begin listening as host
        """
        self.host_ip = host_ip; self.port = port; self.is_hosting = True
        self._start_connection_thread(self._host_thread_func, ())

    @Slot(str, int)
    def start_connecting(self, host_ip, port):
        """
        connect to a host
        """
        self.host_ip = host_ip; self.port = port; self.is_hosting = False
        self._start_connection_thread(self._connect_thread_func, ())

    def _host_thread_func(self):
        """
        host socket loop: accept one client then handle msgs
        """
        self.server_socket = None
        try:
            # setup listening socket
            self.server_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            self.server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            self.server_socket.bind((self.host_ip, self.port))
            self.server_socket.listen(1)
            logger.info("hosting on %s:%s", self.host_ip, self.port)
            self.status_update.emit(f"listening on {self.host_ip}:{self.port}. waiting...")
            self.server_socket.settimeout(1.0)
            client_socket = None

            # wait for connection or stop
            while self._running and client_socket is None:
                try:
                    client_socket, addr = self.server_socket.accept()
                except socket.timeout:
                    continue
                except OSError as e:
                    if self._running: self.error_occurred.emit(f"accept error: {e}")
                    self._running = False
                    break

            if self.server_socket:
                self.server_socket.settimeout(None)

            # stopped before connect
            if not self._running:
                if client_socket: client_socket.close()
                return

            # client connected
            self.socket = client_socket
            logger.info("opponent connected from %s:%s", addr[0], addr[1])
            self.status_update.emit(f"opponent connected from {addr[0]}:{addr[1]}")
            self.assign_player_symbol.emit('X'); self.connected.emit()
            self._handle_connection()

        except OSError as e:
            logger.error("hosting error: %s", e)
            if self._running: self.error_occurred.emit(f"hosting error: {e}")
        finally:
            serv = self.server_socket
            self.server_socket = None
            if serv: _close_quietly(serv)

    def _connect_thread_func(self):
        """
        client socket setup and handshake
        """
        try:
            client_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            self.status_update.emit(f"connecting to {self.host_ip}:{self.port}...")
            client_socket.settimeout(self.connect_timeout)
            client_socket.connect((self.host_ip, self.port))
            client_socket.settimeout(None)

            if not self._running:
                client_socket.close()
                raise ConnectionAbortedError("connection stopped")

            self.socket = client_socket
            logger.info("connected to host %s:%s", self.host_ip, self.port)
            self.status_update.emit("connected to host.")
            self.assign_player_symbol.emit('O'); self.connected.emit()
            self._handle_connection()

        except socket.timeout:
            logger.error("connection timed out to %s:%s", self.host_ip, self.port)
            if self._running:
                self.error_occurred.emit(f"connection timed out to {self.host_ip}:{self.port}.")
        except socket.gaierror:
            logger.error("address error connecting to %s", self.host_ip)
            if self._running:
                self.error_occurred.emit(f"address error connecting to {self.host_ip}")
        except OSError as e:
            logger.error("connection error: %s", e)
            if self._running:
                self.error_occurred.emit(f"connection error: {e}")
        finally:
            # cleanup on failed connect
            if not self._running and self.socket:
                _close_quietly(self.socket)
                self.socket = None

    def dispatch_message(self, msg):
        """
        route one decoded message to the matching signal
        """
        if msg.startswith(NET_MSG_PREFIX):
            if msg == REQ_REMATCH: self.rematch_request_received.emit()
            elif msg == ACK_REMATCH: self.rematch_accepted.emit()
            elif msg == DEC_REMATCH: self.rematch_declined.emit()
            else: logger.warning("unknown net msg: %s", msg)
            return
        try:
            coord = parse_move(msg)
        except InvalidCoordinate as e:
            logger.warning("dropping move %r: %s", msg, e)
            return
        self.move_received.emit(coord.row, coord.col)

    def feed(self, data):
        """
        buffer raw bytes and dispatch every complete newline-terminated message
        """
        self._recv_buffer += data
        *lines, self._recv_buffer = self._recv_buffer.split(b"\n")
        for raw in lines:
            try:
                msg = raw.decode('utf-8').strip()
            except UnicodeDecodeError:
                logger.warning("undecodable data from peer: %r", raw)
                continue
            if msg: self.dispatch_message(msg)

    def _handle_connection(self):
        """
        main loop: recv chunks, split into lines, emit signals
        """
        self._recv_buffer = b""
        while self._running and self.socket:
            try:
                data = self.socket.recv(1024)
                if not data:
                    if self._running: self.disconnected.emit("opponent disconnected")
                    self._running = False; break
                self.feed(data)
            except ConnectionResetError:
                if self._running: self.disconnected.emit("connection lost")
                self._running=False; break
            except OSError as e:
                if self._running: self.disconnected.emit(f"socket error: {e}")
                self._running=False; break

        # tear down socket
        s = self.socket
        self.socket = None
        if s: _close_quietly(s)

    def _send_message(self, message):
        """
        send raw msg over socket, handle errors
        """
        if self.socket and self._running:
            try:
                self.socket.sendall((message + "\n").encode('utf-8'))
                return True
            except OSError as e:
                logger.error("send error: %s", e)
                if self._running: self.disconnected.emit(f"send error: {e}")
                self._running=False

            # cleanup on send fail
            if self.socket:
                _close_quietly(self.socket)
                self.socket=None
        return False

    @Slot(int, int)
    def send_move(self, row, col):
        # fire off a move
        return self._send_message(encode_move(Coordinate(row, col)))

    @Slot()
    def send_rematch_request(self): self._send_message(REQ_REMATCH)  # ask for another round

    @Slot()
    def send_rematch_accept(self): self._send_message(ACK_REMATCH)   # accepted rematch

    @Slot()
    def send_rematch_decline(self): self._send_message(DEC_REMATCH)  # declined rematch

    @Slot()
    def stop(self):
        """
        stop threads, close sockets
        """
        if not self._running: return
        self._running = False
        # close client socket
        if self.socket:
            try: self.socket.shutdown(socket.SHUT_RDWR)
            except OSError: pass
            _close_quietly(self.socket)
            self.socket=None
        # close server socket
        if self.server_socket:
            _close_quietly(self.server_socket)
            self.server_socket=None
        logger.info("network worker stopped")
