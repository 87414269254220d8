"""Family registry - every probe family netreach knows how to run."""

from typing import Dict

from .connectivity_probes import CONNECTIVITY
from .spec import Family


# Family registry mapping names to families
FAMILIES: Dict[str, Family] = {
    CONNECTIVITY.name: CONNECTIVITY,
}
