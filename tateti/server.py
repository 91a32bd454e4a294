import json
import socket
import threading

from .logging_config import get_logger
from .protocol import JOIN, RESET, STATE
from .service import DEFAULT_ROOM, GameRooms, handle_play

logger = get_logger(__name__)


class GameServer:
    """
    line-based tcp server: one thread per client, engines shared via GameRooms.

    client sends ``row,col``, ``NET::RESET`` or ``NET::STATE``; every line gets
    one json line back. ``NET::JOIN <room>`` switches the connection's room.
    """
    def __init__(self, host="127.0.0.1", port=0, rooms=None):
        self.host = host
        self.port = port
        self.rooms = rooms if rooms is not None else GameRooms()
        self.server_socket = None
        self._running = False
        self._accept_thread = None
        self._clients = set()
        self._clients_lock = threading.Lock()

    @property
    def address(self):
        if self.server_socket is None:
            return None
        return self.server_socket.getsockname()[:2]

    def start(self):
        """
        bind, listen and spawn the accept loop; returns the bound (host, port)
        """
        if self._running:
            return self.address
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((self.host, self.port))
            sock.listen()
        except OSError:
            sock.close()
            raise
        sock.settimeout(1.0)     # lets the accept loop notice stop()
        self.server_socket = sock
        self._running = True
        self._accept_thread = threading.Thread(target=self._accept_loop, daemon=True)
        self._accept_thread.start()
        logger.info("listening on %s:%s", *self.address)
        return self.address

    def serve_forever(self):
        self.start()
        try:
            while self._running:
                self._accept_thread.join(0.5)
        except KeyboardInterrupt:
            logger.info("interrupted, shutting down")
        finally:
            self.stop()

    def _accept_loop(self):
        sock = self.server_socket
        while self._running:
            try:
                client, addr = sock.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error("accept error: %s", e)
                break
            client.settimeout(None)
            with self._clients_lock:
                self._clients.add(client)
            logger.info("client connected from %s:%s", addr[0], addr[1])
            threading.Thread(target=self._handle_client, args=(client, addr),
                             daemon=True).start()

    def _handle_client(self, client, addr):
        """
        per-connection loop: read lines, answer each with a json line
        """
        room_id = DEFAULT_ROOM
        # undecodable bytes become U+FFFD and fall through to "unknown message"
        try:
            with client.makefile('r', encoding='utf-8', errors='replace', newline='\n') as reader:
                for line in reader:
                    msg = line.strip()
                    if not msg:
                        continue
                    room_id, reply = self.handle_line(msg, room_id)
                    client.sendall((json.dumps(reply) + "\n").encode('utf-8'))
        except (ConnectionResetError, BrokenPipeError):
            logger.info("client %s:%s dropped", addr[0], addr[1])
        except OSError as e:
            if self._running:
                logger.error("socket error with %s:%s: %s", addr[0], addr[1], e)
        finally:
            with self._clients_lock:
                self._clients.discard(client)
            client.close()
            logger.info("client %s:%s disconnected", addr[0], addr[1])

    def handle_line(self, msg, room_id=DEFAULT_ROOM):
        """
        dispatch one request line; returns (room_id, reply dict)
        """
        if msg == JOIN or msg.startswith(JOIN + " "):
            room_id = msg[len(JOIN):].strip() or DEFAULT_ROOM
            return room_id, handle_play(self.rooms.get(room_id))

        engine = self.rooms.get(room_id)
        if msg == RESET:
            return room_id, handle_play(engine, reset=True)
        if msg == STATE:
            return room_id, handle_play(engine)
        if ',' in msg:
            return room_id, handle_play(engine, move=msg)
        logger.warning("unknown message %r", msg)
        return room_id, {"error": f"unknown message: {msg}"}

    def stop(self):
        """
        stop accepting, close every client socket
        """
        if not self._running:
            return
        self._running = False
        serv = self.server_socket
        self.server_socket = None
        if serv:
            serv.close()
        with self._clients_lock:
            clients = list(self._clients)
        for c in clients:
            try:
                c.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass  # already gone
        if self._accept_thread:
            self._accept_thread.join(2.0)
        logger.info("server stopped")

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *exc):
        self.stop()
