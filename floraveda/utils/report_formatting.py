"""
Presentation helpers for plant reports.
"""
import re
from typing import List

_STEP_PREFIX = re.compile(r"^Point \d+:\s*", re.IGNORECASE)


def strip_step_prefix(step: str) -> str:
    """Remove a leading 'Point N:' marker from a guide step."""
    return _STEP_PREFIX.sub("", step)


def guide_steps(steps: List[str]) -> List[str]:
    return [strip_step_prefix(step) for step in steps]
