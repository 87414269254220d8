"""netreach probes package - network reachability checks.

This package provides the probe/family model, the CloudFlare range cache,
the socket-level collaborators and the connectivity probes built on them.
"""

from .spec import ProbeSpec, Family, family
from .ranges import (
    CloudflareRanges,
    RangeState,
    default_ranges,
    install_default_ranges,
    network_for,
    parse_networks,
)
from .transport import (
    Dialer,
    TLSConfig,
    build_http_session,
    default_tls_config,
    get_dialer,
    get_tls_config_factory,
    install_transport,
    lookup_host,
    split_host_port,
)
from .connectivity_probes import (
    CONNECTIVITY,
    dns_lookup_probe,
    cloudflare_status_probe,
    tcp_dial_probe,
    tls_dial_probe,
)
from .registry import FAMILIES

__all__ = [
    # Model
    "ProbeSpec",
    "Family",
    "family",
    # Range cache
    "CloudflareRanges",
    "RangeState",
    "default_ranges",
    "install_default_ranges",
    "network_for",
    "parse_networks",
    # Transport
    "Dialer",
    "TLSConfig",
    "build_http_session",
    "default_tls_config",
    "get_dialer",
    "get_tls_config_factory",
    "install_transport",
    "lookup_host",
    "split_host_port",
    # Connectivity probes
    "CONNECTIVITY",
    "dns_lookup_probe",
    "cloudflare_status_probe",
    "tcp_dial_probe",
    "tls_dial_probe",
    # Registry
    "FAMILIES",
]
