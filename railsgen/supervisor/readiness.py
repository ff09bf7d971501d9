"""Readiness marker matching for supervised processes."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ReadinessCondition:
    """The substring whose appearance in a line means "ready".

    Matching is a plain, case-sensitive containment test with no anchoring.
    """

    marker: str

    def __post_init__(self) -> None:
        if not self.marker:
            raise ValueError("Readiness marker must be a non-empty string")

    def matches(self, line: str) -> bool:
        return self.marker in line
