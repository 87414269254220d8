from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class Grade(str, Enum):
    good = "Good"
    bad = "Bad"
    skipped = "Skipped"


class ProbeResult(BaseModel):
    """Outcome of one probe run against one host.

    Design principles:
    - grade: verdict of the probe; a probe that errored is graded bad
      unless it could not decide at all (skipped)
    - output: probe-specific payload, opaque to the runner
      (address list for DNS lookup, address -> bool for CloudFlare status)
    - error: the exception the probe ran into, kept as-is so callers can
      inspect its type and cause
    - probe_name/family/host/elapsed: filled in by the runner
    """
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    grade: Grade = Field(default=Grade.bad, description="Verdict of the probe")
    output: Any = Field(default=None, description="Probe-specific evidence")
    error: Optional[BaseException] = Field(
        default=None, description="Error the probe ran into, unmodified"
    )

    probe_name: Optional[str] = Field(default=None, description="Registry name of the probe")
    family: Optional[str] = Field(default=None, description="Family the probe belongs to")
    host: Optional[str] = Field(default=None, description="Host the probe was run against")
    elapsed: Optional[float] = Field(default=None, ge=0, description="Run time in seconds")

    @property
    def ok(self) -> bool:
        return self.error is None and self.grade == Grade.good

    def to_dict(self) -> Dict[str, Any]:
        """Flatten to a JSON-friendly dict for reporting."""
        result: Dict[str, Any] = {
            "family": self.family,
            "probe_name": self.probe_name,
            "host": self.host,
            "grade": self.grade.value,
            "output": self.output,
        }
        if self.error is not None:
            result["error"] = str(self.error)
            result["error_type"] = type(self.error).__name__
        if self.elapsed is not None:
            result["elapsed"] = round(self.elapsed, 4)
        return result
