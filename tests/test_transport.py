"""Tests for the socket-level collaborators."""

import socket
import ssl
from unittest.mock import Mock

import pytest
from pydantic import ValidationError

from netreach.errors import InvalidHostError
from netreach.probes.transport import (
    Dialer,
    TLSConfig,
    build_http_session,
    default_tls_config,
    get_dialer,
    get_tls_config_factory,
    install_transport,
    split_host_port,
)


class TestSplitHostPort:
    """Test host[:port] parsing."""

    @pytest.mark.parametrize("value, expected", [
        ("example.com", ("example.com", None)),
        ("example.com:443", ("example.com", "443")),
        ("example.com:https", ("example.com", "https")),
        ("10.0.0.1:80", ("10.0.0.1", "80")),
        ("[::1]:443", ("::1", "443")),
        ("[::1]", ("::1", None)),
        ("2606:4700::1111", ("2606:4700::1111", None)),
    ])
    def test_valid_addresses(self, value, expected):
        assert split_host_port(value) == expected

    @pytest.mark.parametrize("value", [
        "",
        "host:::bad",
        "a:b:c",
        "[::1",
        "[::1]x",
        "[::1]:443:1",
        "::1]",
        ":443",
        "host:",
    ])
    def test_malformed_addresses(self, value):
        with pytest.raises(InvalidHostError):
            split_host_port(value)

    def test_require_port(self):
        with pytest.raises(InvalidHostError, match="missing port"):
            split_host_port("example.com", require_port=True)

    def test_invalid_host_error_is_value_error(self):
        with pytest.raises(ValueError):
            split_host_port("host:::bad")


class TestDialer:
    """Test the dialer against local sockets."""

    def test_dial_connects(self, tcp_listener):
        conn = Dialer(timeout=2.0).dial(tcp_listener)
        try:
            assert conn.getpeername()[1] == int(tcp_listener.rsplit(":", 1)[1])
            assert conn.gettimeout() == 2.0
        finally:
            conn.close()

    def test_tcp4_dials_ipv4(self, tcp_listener):
        conn = Dialer(network="tcp4", timeout=2.0).dial(tcp_listener)
        try:
            assert conn.family == socket.AF_INET
        finally:
            conn.close()

    def test_refused(self, refused_address):
        with pytest.raises(ConnectionRefusedError):
            Dialer(timeout=2.0).dial(refused_address)

    def test_dial_tls_closes_socket_on_handshake_error(self):
        raw = Mock()
        error = ssl.SSLError(1, "handshake failure")
        context = Mock(spec=ssl.SSLContext)
        context.wrap_socket.side_effect = error

        class RawDialer(Dialer):
            def dial(self, host):
                return raw

        with pytest.raises(ssl.SSLError) as excinfo:
            RawDialer().dial_tls("127.0.0.1:1", TLSConfig(context=context, server_name="x"))

        assert excinfo.value is error
        raw.close.assert_called_once()
        context.wrap_socket.assert_called_once_with(raw, server_hostname="x")

    def test_rejects_unknown_network(self):
        with pytest.raises(ValidationError):
            Dialer(network="udp")

    def test_rejects_non_positive_timeout(self):
        with pytest.raises(ValidationError):
            Dialer(timeout=0)


class TestTlsConfig:
    """Test the default TLS config constructor."""

    def test_server_name_comes_from_host(self):
        config = default_tls_config("example.com:443")

        assert config.server_name == "example.com"
        assert isinstance(config.context, ssl.SSLContext)

    def test_verification_off_by_default(self):
        config = default_tls_config("example.com:443")

        assert config.context.verify_mode == ssl.CERT_NONE
        assert config.context.check_hostname is False

    def test_verification_can_be_enabled(self):
        config = default_tls_config("example.com:443", verify=True)

        assert config.context.verify_mode == ssl.CERT_REQUIRED
        assert config.context.check_hostname is True


class TestProcessWideTransport:
    """Test installing collaborators."""

    def test_install_dialer(self, restore_globals):
        dialer = Dialer(network="tcp6", timeout=1.0)

        install_transport(dialer=dialer)

        assert get_dialer() is dialer

    def test_install_tls_config_keeps_dialer(self, restore_globals):
        dialer = get_dialer()

        def factory(host):
            return default_tls_config(host)

        install_transport(tls_config=factory)

        assert get_tls_config_factory() is factory
        assert get_dialer() is dialer


def test_http_session_user_agent():
    session = build_http_session("netreach-test/1.0")

    assert session.headers["User-Agent"] == "netreach-test/1.0"
