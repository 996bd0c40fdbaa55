"""
Outcome of a delegated action or an internal gate.

Every step of a reconciliation tick reports one of three outcomes:
- COMPLETE: the step is done; the lifecycle may advance
- CONTINUE: stay in the current state and try again on a later tick
- FAILED: the step failed for this tick; the error travels with the outcome

Usage:
    from baremetal.host.outcome import ActionOutcome

    outcome = service.action_preparing()
    if outcome.is_complete:
        ...
    return ActionOutcome.continue_(delay=30)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from baremetal.errors import HostLifecycleError


class OutcomeKind(Enum):
    """Closed set of outcome variants."""

    COMPLETE = "complete"
    CONTINUE = "continue"
    FAILED = "failed"


@dataclass(frozen=True)
class ActionOutcome:
    """
    Immutable result of one step within a tick.

    Attributes:
        kind: Which variant this is
        error: The failure cause (FAILED only)
        delay: Seconds the caller should wait before the next tick (CONTINUE only)
    """

    kind: OutcomeKind
    error: Optional[Exception] = None
    delay: Optional[float] = None

    def __post_init__(self):
        if self.kind is OutcomeKind.FAILED and self.error is None:
            raise ValueError("failed outcome requires an error")
        if self.kind is not OutcomeKind.FAILED and self.error is not None:
            raise ValueError(f"{self.kind.value} outcome cannot carry an error")
        if self.delay is not None and self.kind is not OutcomeKind.CONTINUE:
            raise ValueError("only a continue outcome can carry a delay")

    @classmethod
    def complete(cls) -> "ActionOutcome":
        return cls(OutcomeKind.COMPLETE)

    @classmethod
    def continue_(cls, delay: Optional[float] = None) -> "ActionOutcome":
        return cls(OutcomeKind.CONTINUE, delay=delay)

    @classmethod
    def failed(cls, error: Exception) -> "ActionOutcome":
        return cls(OutcomeKind.FAILED, error=error)

    @property
    def is_complete(self) -> bool:
        return self.kind is OutcomeKind.COMPLETE

    @property
    def is_continue(self) -> bool:
        return self.kind is OutcomeKind.CONTINUE

    @property
    def is_failed(self) -> bool:
        return self.kind is OutcomeKind.FAILED

    @property
    def fatal(self) -> bool:
        """True for failures the caller must not retry."""
        if not self.is_failed:
            return False
        return isinstance(self.error, HostLifecycleError) and not self.error.retryable

    def __str__(self) -> str:
        if self.is_failed:
            return f"failed: {self.error}"
        if self.is_continue and self.delay is not None:
            return f"continue (after {self.delay}s)"
        return self.kind.value
