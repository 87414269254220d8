"""Probe and family specifications.

A ProbeSpec pairs a registry name and a human-readable description with the
callable that performs the check. Every probe callable has the same shape:

    probe(host: str) -> ProbeResult

A Family groups probes under a shared description. Families are immutable;
lookup is by probe name only and insertion order carries no meaning.
"""

from typing import Callable, Dict, List, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator

from netreach.schemas import ProbeResult


class ProbeSpec(BaseModel):
    """Specification for a single connectivity probe.

    Attributes:
        name: Unique identifier for the probe within its family
        description: What a good grade means for the host
        fn: The probe function, called with the host string
    """
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    name: str = Field(..., min_length=1, description="Unique probe identifier")
    description: str = Field(..., description="What this probe checks")
    fn: Callable[[str], ProbeResult] = Field(..., description="The probe function itself")

    def __call__(self, host: str) -> ProbeResult:
        return self.fn(host)


class Family(BaseModel):
    """A named, described group of probes."""
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    name: str = Field(..., min_length=1, description="Family identifier")
    description: str = Field(..., description="What the family as a whole checks")
    probes: Mapping[str, ProbeSpec] = Field(default_factory=dict)

    @field_validator("probes")
    @classmethod
    def _keys_match_names(cls, probes: Mapping[str, ProbeSpec]) -> Mapping[str, ProbeSpec]:
        for key, spec in probes.items():
            if key != spec.name:
                raise ValueError(f"probe registered as {key!r} is named {spec.name!r}")
        return probes

    def __getitem__(self, name: str) -> ProbeSpec:
        return self.probes[name]

    def __contains__(self, name: object) -> bool:
        return name in self.probes

    def names(self) -> List[str]:
        """Probe names in sorted order."""
        return sorted(self.probes)


def family(name: str, description: str, *specs: ProbeSpec) -> Family:
    """Build a Family from probe specs, rejecting duplicate names.

    Usage:
        CONNECTIVITY = family(
            "Connectivity",
            "Scans for basic connectivity with the host",
            ProbeSpec(name="TCPDial", description="...", fn=tcp_dial_probe),
        )
    """
    probes: Dict[str, ProbeSpec] = {}
    for spec in specs:
        if spec.name in probes:
            raise ValueError(f"duplicate probe name {spec.name!r} in family {name!r}")
        probes[spec.name] = spec
    return Family(name=name, description=description, probes=probes)
