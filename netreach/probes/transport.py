"""Network collaborators used by the connectivity probes.

This module owns everything that touches sockets directly: splitting
host:port strings, resolving names, dialing TCP, wrapping TLS and building
the HTTP session used to download CloudFlare's ranges. Probes stay focused
on grading; timeouts and address families live here.
"""

import ipaddress
import socket
import ssl
import threading
from typing import Callable, List, Literal, Optional, Tuple

import requests
from pydantic import BaseModel, ConfigDict, Field

from netreach.errors import InvalidHostError, NoAddressesError

DEFAULT_USER_AGENT = "netreach/0.1"

NETWORK_FAMILIES = {
    "tcp": socket.AF_UNSPEC,
    "tcp4": socket.AF_INET,
    "tcp6": socket.AF_INET6,
}

Network = Literal["tcp", "tcp4", "tcp6"]


def _is_ipv6(value: str) -> bool:
    try:
        return ipaddress.ip_address(value).version == 6
    except ValueError:
        return False


def split_host_port(hostport: str, require_port: bool = False) -> Tuple[str, Optional[str]]:
    """Split ``host``, ``host:port``, ``[v6]``, ``[v6]:port`` or a bare IPv6 literal.

    Args:
        hostport: Address as given by the caller
        require_port: Reject addresses without a port

    Returns:
        Tuple of (host, port); port is None when absent

    Raises:
        InvalidHostError: If the address is malformed
    """
    if not hostport:
        raise InvalidHostError("missing host")

    if hostport.startswith("["):
        end = hostport.find("]")
        if end < 0:
            raise InvalidHostError(f"missing ']' in address {hostport!r}")
        host, rest = hostport[1:end], hostport[end + 1:]
        if "[" in host or "[" in rest or "]" in rest:
            raise InvalidHostError(f"unexpected bracket in address {hostport!r}")
        if not rest:
            port = None
        elif rest.startswith(":") and ":" not in rest[1:]:
            port = rest[1:]
        else:
            raise InvalidHostError(f"unexpected characters after ']' in address {hostport!r}")
    elif "[" in hostport or "]" in hostport:
        raise InvalidHostError(f"unexpected bracket in address {hostport!r}")
    elif ":" not in hostport:
        host, port = hostport, None
    elif hostport.count(":") == 1:
        host, port = hostport.split(":")
    elif _is_ipv6(hostport):
        host, port = hostport, None
    else:
        raise InvalidHostError(f"too many colons in address {hostport!r}")

    if not host:
        raise InvalidHostError(f"missing host in address {hostport!r}")
    if port == "" or (port is None and require_port):
        raise InvalidHostError(f"missing port in address {hostport!r}")
    return host, port


def lookup_host(host: str) -> List[str]:
    """Resolve a bare host name to its addresses, in resolver order."""
    infos = socket.getaddrinfo(host, None)
    return list(dict.fromkeys(info[4][0] for info in infos))


class TLSConfig(BaseModel):
    """TLS parameters for one dial: the context and the SNI server name."""
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    context: ssl.SSLContext
    server_name: Optional[str] = None


def default_tls_config(host: str, verify: bool = False) -> TLSConfig:
    """Build a TLSConfig for ``host``.

    Certificate verification is left off unless ``verify`` is set: the
    handshake probe answers "can we negotiate TLS", not "is the chain valid".
    """
    hostname, _ = split_host_port(host)
    context = ssl.create_default_context()
    if not verify:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return TLSConfig(context=context, server_name=hostname)


class Dialer(BaseModel):
    """Opens TCP and TLS connections for the dial probes.

    Attributes:
        network: "tcp" for any address family, "tcp4"/"tcp6" to pin one
        timeout: Per-connection timeout in seconds (None blocks forever)
    """
    model_config = ConfigDict(frozen=True)

    network: Network = Field("tcp", description="Address family selector")
    timeout: Optional[float] = Field(10.0, gt=0, description="Connect/handshake timeout in seconds")

    def dial(self, host: str) -> socket.socket:
        """Connect to ``host:port``, trying each resolved address in turn.

        Raises:
            InvalidHostError: If ``host`` has no port or is malformed
            OSError: The last connection error (refused, timed out, unresolvable)
        """
        hostname, port = split_host_port(host, require_port=True)
        infos = socket.getaddrinfo(
            hostname, port, NETWORK_FAMILIES[self.network], socket.SOCK_STREAM
        )

        error: Optional[OSError] = None
        for family, socktype, proto, _, sockaddr in infos:
            sock = socket.socket(family, socktype, proto)
            try:
                sock.settimeout(self.timeout)
                sock.connect(sockaddr)
                return sock
            except OSError as exc:
                sock.close()
                error = exc

        if error is not None:
            raise error
        raise NoAddressesError(f"no {self.network} addresses found for {hostname}")

    def dial_tls(self, host: str, tls_config: TLSConfig) -> ssl.SSLSocket:
        """Connect to ``host:port`` and complete a TLS handshake."""
        sock = self.dial(host)
        try:
            return tls_config.context.wrap_socket(sock, server_hostname=tls_config.server_name)
        except Exception:
            sock.close()
            raise


def build_http_session(user_agent: str = DEFAULT_USER_AGENT) -> requests.Session:
    session = requests.Session()
    session.headers["User-Agent"] = user_agent
    return session


# Process-wide collaborators, replaced once at startup by netreach.config.configure
_lock = threading.Lock()
_dialer = Dialer()
_tls_config: Callable[[str], TLSConfig] = default_tls_config


def get_dialer() -> Dialer:
    return _dialer


def get_tls_config_factory() -> Callable[[str], TLSConfig]:
    return _tls_config


def install_transport(
    dialer: Optional[Dialer] = None,
    tls_config: Optional[Callable[[str], TLSConfig]] = None,
) -> None:
    """Replace the process-wide dialer and/or TLS config constructor."""
    global _dialer, _tls_config
    with _lock:
        if dialer is not None:
            _dialer = dialer
        if tls_config is not None:
            _tls_config = tls_config
