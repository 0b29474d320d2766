"""outcome.py — Maps the external actor's verdict string to an outcome."""
from __future__ import annotations

from dataclasses import dataclass

from distributed_analysis.config import PASSED_VERDICT

__all__ = ["VerdictOutcome", "map_verdict"]


@dataclass(frozen=True)
class VerdictOutcome:
    verdict: str
    passed: bool
    message: str = ""


def map_verdict(verdict: str) -> VerdictOutcome:
    # Exact, case-sensitive: "passed" or "PASSED" are failures.
    if verdict == PASSED_VERDICT:
        return VerdictOutcome(verdict=verdict, passed=True)
    return VerdictOutcome(verdict=verdict, passed=False, message=f"Result is not Passed: {verdict}")
