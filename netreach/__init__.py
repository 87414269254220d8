"""netreach - network-layer reachability probes."""

from netreach.schemas import Grade, ProbeResult

__version__ = "0.1.0"

__all__ = ["Grade", "ProbeResult", "__version__"]
