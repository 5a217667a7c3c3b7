import asyncio
import gzip
import socket
import threading
import time
from urllib.parse import parse_qs

import pytest
import uvicorn

GZIP_TEXT = b"compressed payload " * 200
CHUNKS = [bytes([i]) * 4096 for i in range(64)]


class RecordingApp:
    """ASGI app serving fixed bodies and recording the client port per request."""

    def __init__(self) -> None:
        self.ports: list[int] = []

    async def __call__(self, scope, receive, send):
        assert scope["type"] == "http"
        self.ports.append(scope["client"][1])
        query = parse_qs(scope["query_string"].decode())
        delay = float(query.get("delay", ["0"])[0])
        gap = float(query.get("gap", ["0"])[0])
        path = scope["path"]
        headers = [(b"content-type", b"text/plain; charset=utf-8")]
        chunks: list[bytes]
        status = 200
        if path == "/hello":
            chunks = [b"hello world"]
        elif path == "/empty":
            chunks = []
        elif path == "/missing":
            status, chunks = 404, [b"not found"]
        elif path == "/gzip":
            chunks = [gzip.compress(GZIP_TEXT)]
            headers.append((b"content-encoding", b"gzip"))
        elif path == "/chunks":
            chunks = CHUNKS
        elif path == "/redirect":
            status, chunks = 302, []
            headers.append((b"location", b"/hello"))
        elif path == "/abort":
            headers.append((b"content-length", b"100"))
            await send({"type": "http.response.start", "status": 200, "headers": headers})
            raise RuntimeError("connection dropped before the body")
        elif path == "/partial":
            headers.append((b"content-length", b"100"))
            await send({"type": "http.response.start", "status": 200, "headers": headers})
            await send({"type": "http.response.body", "body": b"abc", "more_body": True})
            await asyncio.sleep(0.05)
            raise RuntimeError("connection dropped mid body")
        elif path == "/drip":
            chunks = [b"drip"] * 5
        else:
            status, chunks = 404, []
        if path != "/chunks":
            length = sum(len(chunk) for chunk in chunks)
            headers.append((b"content-length", str(length).encode()))

        await send({"type": "http.response.start", "status": status, "headers": headers})
        if delay:
            await asyncio.sleep(delay)
        for chunk in chunks:
            await send({"type": "http.response.body", "body": chunk, "more_body": True})
            await asyncio.sleep(gap)
        await send({"type": "http.response.body", "body": b"", "more_body": False})


class LocalServer:
    def __init__(self, app: RecordingApp, port: int) -> None:
        self.app = app
        self.port = port

    def url(self, path: str) -> str:
        return f"http://127.0.0.1:{self.port}{path}"

    @property
    def ports(self) -> list[int]:
        return self.app.ports


@pytest.fixture(scope="session")
def _server():
    app = RecordingApp()
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    sock.bind(("127.0.0.1", 0))
    config = uvicorn.Config(app, lifespan="off", log_level="critical")
    server = uvicorn.Server(config)
    thread = threading.Thread(target=server.run, kwargs={"sockets": [sock]}, daemon=True)
    thread.start()
    deadline = time.monotonic() + 10
    while not server.started:
        if time.monotonic() > deadline:
            raise RuntimeError("test server did not start")
        time.sleep(0.01)
    yield LocalServer(app, sock.getsockname()[1])
    server.should_exit = True
    server.force_exit = True
    thread.join(timeout=5)


@pytest.fixture
def local_server(_server):
    _server.ports.clear()
    return _server


@pytest.fixture
def closed_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture(autouse=True)
def _reset_shared_client():
    from ttfb.http_utils import close_client

    yield
    close_client()
