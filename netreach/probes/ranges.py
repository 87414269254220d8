"""CloudFlare IP range cache.

CloudFlare publishes its edge networks as two plain-text documents, one CIDR
per line: one for IPv4 and one for IPv6. CloudflareRanges downloads both on
first use, parses them into ip_network objects and remembers the outcome for
the life of the process:

    uninitialized --fetch ok--> populated   (served from memory forever)
    uninitialized --any error--> failed     (same error raised forever)

Neither terminal state is ever left, so at most one pair of downloads is
issued per cache no matter how many threads ask for the ranges at once.
"""

import ipaddress
import itertools
import logging
import threading
from contextlib import ExitStack
from enum import Enum
from typing import Iterable, Iterator, Optional, Tuple, Union

import requests

from netreach.errors import RangeError, RangeFetchError, RangeParseError, RangeReadError
from netreach.probes.transport import build_http_session

logger = logging.getLogger(__name__)

CLOUDFLARE_IPV4_URL = "https://www.cloudflare.com/ips-v4"
CLOUDFLARE_IPV6_URL = "https://www.cloudflare.com/ips-v6"

IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


class RangeState(str, Enum):
    uninitialized = "uninitialized"
    populated = "populated"
    failed = "failed"


def parse_networks(lines: Iterable[str]) -> Tuple[IPNetwork, ...]:
    """Parse CIDR lines, skipping blank ones.

    Raises:
        RangeParseError: On the first line that is not a CIDR network
    """
    networks = []
    for line in lines:
        line = line.strip()
        if not line:
            continue
        try:
            networks.append(ipaddress.ip_network(line, strict=False))
        except ValueError as exc:
            raise RangeParseError(f"Couldn't parse CIDR range {line!r}: {exc}") from exc
    return tuple(networks)


class CloudflareRanges:
    """Lazily downloaded, memoized list of CloudFlare networks.

    Args:
        session: HTTP client with a requests-compatible ``get``; a fresh
            requests.Session is built on first fetch when omitted
        ipv4_url: Location of the IPv4 range document
        ipv6_url: Location of the IPv6 range document
        timeout: Timeout in seconds handed to each GET
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        ipv4_url: str = CLOUDFLARE_IPV4_URL,
        ipv6_url: str = CLOUDFLARE_IPV6_URL,
        timeout: Optional[float] = 10.0,
    ):
        self._session = session
        self.urls = (ipv4_url, ipv6_url)
        self.timeout = timeout

        self._lock = threading.Lock()
        self._state = RangeState.uninitialized
        self._networks: Tuple[IPNetwork, ...] = ()
        self._error: Optional[RangeError] = None

    @property
    def state(self) -> RangeState:
        return self._state

    @property
    def error(self) -> Optional[RangeError]:
        return self._error

    def get_ranges(self) -> Tuple[IPNetwork, ...]:
        """Return the cached networks, downloading them on first call.

        Raises:
            RangeError: The error of the first (and only) load attempt
        """
        if self._state is RangeState.uninitialized:
            with self._lock:
                if self._state is RangeState.uninitialized:
                    self._load()

        if self._state is RangeState.failed:
            raise self._error
        return self._networks

    def contains(self, address: str) -> bool:
        """Whether ``address`` falls inside any cached network."""
        return network_for(address, self.get_ranges()) is not None

    def _load(self) -> None:
        try:
            networks = self._fetch()
        except RangeError as exc:
            self._error = exc
            self._state = RangeState.failed
            return

        logger.debug("Loaded %d CloudFlare ranges", len(networks))
        self._networks = networks
        self._state = RangeState.populated

    def _fetch(self) -> Tuple[IPNetwork, ...]:
        with ExitStack() as stack:
            session = self._session
            if session is None:
                session = stack.enter_context(build_http_session())

            bodies = []
            for url in self.urls:
                logger.debug("Downloading CloudFlare ranges from %s", url)
                try:
                    resp = stack.enter_context(session.get(url, stream=True, timeout=self.timeout))
                    resp.raise_for_status()
                except requests.RequestException as exc:
                    raise RangeFetchError(f"Couldn't download CloudFlare IPs: {exc}") from exc
                bodies.append(resp.iter_lines(decode_unicode=True))

            return parse_networks(_read_lines(itertools.chain.from_iterable(bodies)))


def _read_lines(lines: Iterator[Union[str, bytes]]) -> Iterator[str]:
    while True:
        try:
            line = next(lines)
        except StopIteration:
            return
        except (requests.RequestException, OSError) as exc:
            raise RangeReadError(f"Couldn't read IP bodies: {exc}") from exc
        if isinstance(line, bytes):
            line = line.decode("utf-8", errors="replace")
        yield line


def network_for(address: str, networks: Iterable[IPNetwork]) -> Optional[IPNetwork]:
    """First network containing ``address``, or None.

    Addresses that do not parse never match; networks of the other IP
    version are skipped rather than compared.
    """
    try:
        ip = ipaddress.ip_address(address)
    except ValueError:
        return None
    for network in networks:
        if network.version == ip.version and ip in network:
            return network
    return None


_default_lock = threading.Lock()
_default_ranges: Optional[CloudflareRanges] = None


def default_ranges() -> CloudflareRanges:
    """The process-wide cache used when a probe is not given one."""
    global _default_ranges
    if _default_ranges is None:
        with _default_lock:
            if _default_ranges is None:
                _default_ranges = CloudflareRanges()
    return _default_ranges


def install_default_ranges(ranges: CloudflareRanges) -> None:
    """Replace the process-wide cache; meant to be called once at startup."""
    global _default_ranges
    with _default_lock:
        _default_ranges = ranges
