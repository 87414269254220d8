"""Runtime utilities for probe execution.

This module selects probes out of the registered families, runs them
against a host and stamps each result with where it came from. Individual
probes only ever see the host string.
"""

import re
import time
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from netreach.probes.registry import FAMILIES
from netreach.probes.spec import Family, ProbeSpec
from netreach.schemas import Grade, ProbeResult


def invoke_probe(family: Family, spec: ProbeSpec, host: str) -> ProbeResult:
    """Run one probe and label its result.

    Args:
        family: Family the probe was selected from
        spec: The probe to run
        host: Target host string

    Returns:
        ProbeResult with probe_name, family, host and elapsed filled in. An
        exception escaping the probe is returned as a bad result holding it.
    """
    start = time.perf_counter()
    try:
        result = spec(host)
    except Exception as e:
        result = ProbeResult(grade=Grade.bad, error=e)

    if not isinstance(result, ProbeResult):
        result = ProbeResult(
            grade=Grade.bad,
            error=TypeError(
                f"Probe returned unexpected type: {type(result).__name__}. Expected ProbeResult."
            ),
        )

    return result.model_copy(update={
        "probe_name": spec.name,
        "family": family.name,
        "host": host,
        "elapsed": time.perf_counter() - start,
    })


def select_probes(
    families: Optional[Mapping[str, Family]] = None,
    family_pattern: Optional[str] = None,
    probe_pattern: Optional[str] = None,
) -> List[Tuple[Family, ProbeSpec]]:
    """Pick probes whose family and probe names match the given regexes.

    Patterns are searched (not anchored) in the names; None matches all.
    Selection is ordered by family name, then probe name.

    Raises:
        re.error: If a pattern is not a valid regular expression
    """
    families = FAMILIES if families is None else families
    family_re = re.compile(family_pattern or "")
    probe_re = re.compile(probe_pattern or "")

    selected = []
    for family_name in sorted(families):
        if not family_re.search(family_name):
            continue
        fam = families[family_name]
        for probe_name in fam.names():
            if probe_re.search(probe_name):
                selected.append((fam, fam[probe_name]))
    return selected


def run_probes(
    host: str,
    families: Optional[Mapping[str, Family]] = None,
    family_pattern: Optional[str] = None,
    probe_pattern: Optional[str] = None,
    workers: int = 4,
) -> List[ProbeResult]:
    """Run the selected probes against ``host`` on a thread pool.

    Results come back in selection order regardless of completion order.
    """
    selected = select_probes(families, family_pattern, probe_pattern)
    if not selected:
        return []

    with ThreadPoolExecutor(max_workers=max(1, workers)) as pool:
        futures = [pool.submit(invoke_probe, fam, spec, host) for fam, spec in selected]
        return [future.result() for future in futures]


def summarize(results: Iterable[ProbeResult]) -> Dict[str, int]:
    """Count results per grade, e.g. {"Good": 3, "Bad": 1, "Skipped": 0}."""
    counts = Counter(result.grade for result in results)
    return {grade.value: counts.get(grade, 0) for grade in Grade}
