"""Pytest configuration and shared fixtures."""

import os
import socket
import ssl
import threading
import time
from pathlib import Path

import pytest
import requests

from netreach.probes import ranges as ranges_module
from netreach.probes import transport as transport_module
from netreach.probes.ranges import CLOUDFLARE_IPV4_URL, CLOUDFLARE_IPV6_URL


class FakeResponse:
    """Streamed response stand-in: context manager, status check, line iterator."""

    def __init__(self, url, body="", status_code=200, read_error=None):
        self.url = url
        self.body = body
        self.status_code = status_code
        self.read_error = read_error
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True
        return False

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error for url: {self.url}", response=self)

    def iter_lines(self, decode_unicode=False):
        for line in self.body.splitlines():
            yield line
        if self.read_error is not None:
            raise self.read_error


class FakeSession:
    """HTTP client double that records every GET.

    ``responses`` maps a URL to a body string, a FakeResponse or an exception
    to raise from ``get``.
    """

    def __init__(self, responses, delay=0.0):
        self.responses = responses
        self.delay = delay
        self.calls = []
        self.closed = False
        self._lock = threading.Lock()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True
        return False

    def get(self, url, stream=False, timeout=None):
        with self._lock:
            self.calls.append(url)
        if self.delay:
            time.sleep(self.delay)
        response = self.responses[url]
        if isinstance(response, BaseException):
            raise response
        if isinstance(response, FakeResponse):
            return response
        return FakeResponse(url, body=response)


@pytest.fixture
def cloudflare_session():
    """Session serving a small IPv4 and IPv6 range list."""
    return FakeSession({
        CLOUDFLARE_IPV4_URL: "1.1.1.0/24\n104.16.0.0/13",
        CLOUDFLARE_IPV6_URL: "2606:4700::/32\n",
    })


@pytest.fixture
def static_resolver():
    """Build a resolver returning fixed addresses and recording lookups."""
    def _build(addresses):
        calls = []

        def resolver(host):
            calls.append(host)
            return list(addresses)

        resolver.calls = calls
        return resolver
    return _build


@pytest.fixture
def tcp_listener():
    """A listening socket on localhost; yields its host:port string."""
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    server.bind(("127.0.0.1", 0))
    server.listen(8)
    host, port = server.getsockname()
    yield f"{host}:{port}"
    server.close()


@pytest.fixture
def closing_listener():
    """A listener that accepts and immediately closes every connection."""
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    server.bind(("127.0.0.1", 0))
    server.listen(8)
    server.settimeout(5.0)
    host, port = server.getsockname()

    def _serve():
        try:
            conn, _ = server.accept()
        except OSError:
            return
        conn.close()

    thread = threading.Thread(target=_serve, daemon=True)
    thread.start()
    yield f"{host}:{port}"
    server.close()
    thread.join(timeout=5.0)


@pytest.fixture
def refused_address():
    """host:port of a localhost port nothing is listening on."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    host, port = sock.getsockname()
    sock.close()
    return f"{host}:{port}"


@pytest.fixture
def restore_globals(monkeypatch):
    """Undo any process-wide collaborator installed during a test."""
    monkeypatch.setattr(transport_module, "_dialer", transport_module._dialer)
    monkeypatch.setattr(transport_module, "_tls_config", transport_module._tls_config)
    monkeypatch.setattr(ranges_module, "_default_ranges", ranges_module._default_ranges)


@pytest.fixture
def clean_env():
    """Remove NETREACH_* variables before and after a test."""
    def _clear():
        for key in [k for k in os.environ if k.startswith("NETREACH_")]:
            del os.environ[key]

    _clear()
    yield
    _clear()


@pytest.fixture
def make_session():
    """Factory for FakeSession doubles."""
    return FakeSession


@pytest.fixture
def make_response():
    """Factory for FakeResponse doubles."""
    return FakeResponse


DATA_DIR = Path(__file__).parent / "data"


@pytest.fixture
def tls_listener():
    """A local TLS server with a self-signed localhost certificate.

    Completes the handshake for each accepted connection, then closes it.
    """
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.load_cert_chain(DATA_DIR / "localhost.crt", DATA_DIR / "localhost.key")

    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    server.bind(("127.0.0.1", 0))
    server.listen(8)
    server.settimeout(5.0)
    host, port = server.getsockname()
    stop = threading.Event()

    def _serve():
        while not stop.is_set():
            try:
                conn, _ = server.accept()
            except OSError:
                return
            try:
                with context.wrap_socket(conn, server_side=True) as tls_conn:
                    tls_conn.settimeout(5.0)
                    try:
                        tls_conn.recv(1)
                    except OSError:
                        pass
            except OSError:
                conn.close()

    thread = threading.Thread(target=_serve, daemon=True)
    thread.start()
    yield f"{host}:{port}"
    stop.set()
    server.close()
    thread.join(timeout=5.0)
