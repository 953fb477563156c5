"""Orchestrator data models."""
from dataclasses import dataclass
from typing import Optional

from ..models import UnitStatus


@dataclass(frozen=True)
class UnitOutcome:
    """Settled result of one transfer attempt, applied by the coordinator."""
    status: UnitStatus
    error: Optional[str] = None
    skipped: bool = False

    @classmethod
    def done(cls, skipped: bool = False) -> "UnitOutcome":
        return cls(UnitStatus.DONE, skipped=skipped)

    @classmethod
    def failed(cls, error: str) -> "UnitOutcome":
        return cls(UnitStatus.FAILED, error=error)


@dataclass(frozen=True)
class RoundSummary:
    """Result of one bounded-concurrency round."""
    index: int
    size: int
    done: int
    failed: int
    elapsed: float
    timed_out: bool = False
    remaining: int = 0
