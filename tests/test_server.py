"""
Server tests over real loopback sockets.
"""

import json
import socket
import threading

import pytest

from tateti.service import GameRooms
from tateti.server import GameServer


@pytest.fixture
def server():
    srv = GameServer("127.0.0.1", 0)
    srv.start()
    yield srv
    srv.stop()


class Client:
    def __init__(self, address):
        self.sock = socket.create_connection(address, timeout=5)
        self.reader = self.sock.makefile('r', encoding='utf-8')

    def send(self, line):
        self.sock.sendall((line + "\n").encode('utf-8'))
        return json.loads(self.reader.readline())

    def close(self):
        self.reader.close()
        self.sock.close()


@pytest.fixture
def client(server):
    c = Client(server.address)
    yield c
    c.close()


class TestHandleLine:
    def test_dispatch_without_sockets(self):
        srv = GameServer(rooms=GameRooms())
        room, reply = srv.handle_line("1,1")
        assert room == "default"
        assert reply["board"][1][1] == "X"

    def test_join_switches_room(self):
        srv = GameServer()
        room, _ = srv.handle_line("NET::JOIN lobby")
        assert room == "lobby"
        assert "lobby" in srv.rooms

    def test_blank_join_is_default(self):
        room, _ = GameServer().handle_line("NET::JOIN ")
        assert room == "default"

    def test_join_needs_separator(self):
        srv = GameServer()
        room, reply = srv.handle_line("NET::JOINER")
        assert room == "default"
        assert "error" in reply
        assert "ER" not in srv.rooms

    def test_unknown(self):
        _, reply = GameServer().handle_line("hello")
        assert "error" in reply


class TestServer:
    def test_address_bound(self, server):
        host, port = server.address
        assert host == "127.0.0.1"
        assert port > 0

    def test_move_and_state(self, client):
        reply = client.send("0,0")
        assert reply["board"][0][0] == "X"
        assert reply["currentPlayer"] == "O"
        assert client.send("NET::STATE") == reply

    def test_win_then_locked(self, client):
        for move in ("0,0", "1,0", "0,1", "1,1"):
            client.send(move)
        reply = client.send("0,2")
        assert reply["winner"] == "X"
        assert reply["gameOver"] is True
        assert client.send("2,2") == reply

    def test_reset(self, client):
        client.send("1,1")
        reply = client.send("NET::RESET")
        assert reply["board"] == [["", "", ""]] * 3
        assert reply["currentPlayer"] == "X"

    def test_bad_move_keeps_connection(self, client):
        reply = client.send("9,9")
        assert reply["gameOver"] is False
        assert "error" in client.send("garbage")
        assert client.send("2,2")["board"][2][2] == "X"

    def test_undecodable_line_keeps_connection(self, client):
        client.sock.sendall(b"\xff\xfe\n")
        assert "error" in json.loads(client.reader.readline())
        assert client.send("0,0")["board"][0][0] == "X"

    def test_clients_share_default_room(self, server, client):
        other = Client(server.address)
        try:
            client.send("0,0")
            reply = other.send("1,1")
            assert reply["board"][0][0] == "X"
            assert reply["board"][1][1] == "O"
        finally:
            other.close()

    def test_rooms_isolate_clients(self, server, client):
        other = Client(server.address)
        try:
            other.send("NET::JOIN side")
            client.send("0,0")
            assert other.send("NET::STATE")["board"][0][0] == ""
        finally:
            other.close()

    def test_concurrent_clients_one_move_per_cell(self, server):
        clients = [Client(server.address) for _ in range(6)]
        barrier = threading.Barrier(len(clients))
        replies = []
        lock = threading.Lock()

        def worker(c):
            barrier.wait()
            r = c.send("1,1")
            with lock:
                replies.append(r)

        threads = [threading.Thread(target=worker, args=(c,)) for c in clients]
        try:
            for t in threads:
                t.start()
            for t in threads:
                t.join(5)
        finally:
            for c in clients:
                c.close()
        assert len(replies) == len(clients)
        assert server.rooms.get().move_count == 1
        assert server.rooms.get().snapshot().current_player.value == "O"

    def test_context_manager(self):
        with GameServer("127.0.0.1", 0) as srv:
            c = Client(srv.address)
            try:
                assert c.send("NET::STATE")["currentPlayer"] == "X"
            finally:
                c.close()
        assert srv.address is None
