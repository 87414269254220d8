"""Connectivity probes: DNS resolution, CloudFlare membership, TCP and TLS dials."""

from typing import Callable, Dict, List, Optional

from netreach.errors import NetreachError, NoAddressesError, RangeError
from netreach.probes.ranges import CloudflareRanges, default_ranges, network_for
from netreach.probes.spec import ProbeSpec, family
from netreach.probes.transport import (
    Dialer,
    TLSConfig,
    get_dialer,
    get_tls_config_factory,
    lookup_host,
    split_host_port,
)
from netreach.schemas import Grade, ProbeResult

Resolver = Callable[[str], List[str]]


def dns_lookup_probe(host: str, resolver: Optional[Resolver] = None) -> ProbeResult:
    """Test that DNS resolution of the host returns at least one address.

    Args:
        host: Target as ``host`` or ``host:port``; the port is ignored
        resolver: Name resolver (defaults to the platform resolver)

    Returns:
        ProbeResult: good with the list of addresses, or bad with the
        malformed-host, resolver or no-addresses error
    """
    resolver = resolver or lookup_host
    try:
        hostname, _ = split_host_port(host)
        addrs = resolver(hostname)
    except (NetreachError, OSError, ValueError) as e:
        return ProbeResult(grade=Grade.bad, error=e)

    if not addrs:
        return ProbeResult(
            grade=Grade.bad,
            output=[],
            error=NoAddressesError("no addresses found for host"),
        )
    return ProbeResult(grade=Grade.good, output=list(addrs))


def cloudflare_status_probe(
    host: str,
    ranges: Optional[CloudflareRanges] = None,
    resolver: Optional[Resolver] = None,
) -> ProbeResult:
    """Test that every address of the host is inside CloudFlare's ranges.

    Every address is checked even after one misses, so the output always
    maps each resolved address to its membership.

    Args:
        host: Target as ``host`` or ``host:port``
        ranges: Range cache (defaults to the process-wide cache)
        resolver: Name resolver handed to the DNS lookup

    Returns:
        ProbeResult: skipped if the ranges are unavailable, the DNS lookup
        result if resolution failed, otherwise good/bad with address -> bool
    """
    ranges = ranges or default_ranges()
    try:
        networks = ranges.get_ranges()
    except RangeError as e:
        return ProbeResult(grade=Grade.skipped, error=e)

    lookup = dns_lookup_probe(host, resolver=resolver)
    if lookup.error is not None:
        return lookup

    status: Dict[str, bool] = {}
    grade = Grade.good
    for addr in lookup.output:
        status[addr] = network_for(addr, networks) is not None
        if not status[addr]:
            grade = Grade.bad

    return ProbeResult(grade=grade, output=status)


def tcp_dial_probe(host: str, dialer: Optional[Dialer] = None) -> ProbeResult:
    """Test that the host accepts a TCP connection.

    Args:
        host: Target as ``host:port``
        dialer: Connection factory (defaults to the process-wide dialer)
    """
    dialer = dialer or get_dialer()
    try:
        conn = dialer.dial(host)
    except (NetreachError, OSError, ValueError) as e:
        return ProbeResult(grade=Grade.bad, error=e)
    conn.close()
    return ProbeResult(grade=Grade.good)


def tls_dial_probe(
    host: str,
    dialer: Optional[Dialer] = None,
    tls_config: Optional[Callable[[str], TLSConfig]] = None,
) -> ProbeResult:
    """Test that the host can complete a TLS handshake.

    Args:
        host: Target as ``host:port``
        dialer: Connection factory (defaults to the process-wide dialer)
        tls_config: Builds the TLS config (SNI name, context) for the host
    """
    dialer = dialer or get_dialer()
    tls_config = tls_config or get_tls_config_factory()
    try:
        conn = dialer.dial_tls(host, tls_config(host))
    except (NetreachError, OSError, ValueError) as e:
        return ProbeResult(grade=Grade.bad, error=e)
    conn.close()
    return ProbeResult(grade=Grade.good)


CONNECTIVITY = family(
    "Connectivity",
    "Scans for basic connectivity with the host through DNS and TCP/TLS dials",
    ProbeSpec(
        name="DNSLookup",
        description="Host can be resolved through DNS",
        fn=dns_lookup_probe,
    ),
    ProbeSpec(
        name="CloudFlareStatus",
        description="Host is on CloudFlare",
        fn=cloudflare_status_probe,
    ),
    ProbeSpec(
        name="TCPDial",
        description="Host accepts TCP connection",
        fn=tcp_dial_probe,
    ),
    ProbeSpec(
        name="TLSDial",
        description="Host can perform TLS handshake",
        fn=tls_dial_probe,
    ),
)
