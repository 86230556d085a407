"""
Bounded-retry state machine shared by the simulation, submission and
confirmation phases.

    progress = RetryProgress(ceiling=4)
    progress = transition(progress, AttemptOutcome.FAILURE)

A ceiling of N admits N + 1 attempts: the (N + 1)-th failure exhausts it.
"""

from dataclasses import dataclass, replace
from enum import Enum


class RetryState(Enum):
    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    RETRIES_EXHAUSTED = "retries_exhausted"


class AttemptOutcome(Enum):
    SUCCESS = "success"
    FAILURE = "failure"


class InvalidStateTransitionError(Exception):
    """Attempt recorded after the retry loop already ended."""
    pass


@dataclass(frozen=True)
class RetryProgress:
    ceiling: int
    failures: int = 0
    state: RetryState = RetryState.ATTEMPTING

    @property
    def attempts(self) -> int:
        """Attempts made so far."""
        return self.failures + (1 if self.state is RetryState.SUCCEEDED else 0)

    @property
    def is_final(self) -> bool:
        return self.state is not RetryState.ATTEMPTING

    @property
    def exhausted(self) -> bool:
        return self.state is RetryState.RETRIES_EXHAUSTED

    def record_success(self) -> "RetryProgress":
        return transition(self, AttemptOutcome.SUCCESS)

    def record_failure(self) -> "RetryProgress":
        return transition(self, AttemptOutcome.FAILURE)


def transition(progress: RetryProgress, outcome: AttemptOutcome) -> RetryProgress:
    """Pure transition function (state, outcome) -> state."""
    if progress.is_final:
        raise InvalidStateTransitionError(
            f"Invalid transition: {progress.state.value} is terminal, got {outcome.value}"
        )

    if outcome is AttemptOutcome.SUCCESS:
        return replace(progress, state=RetryState.SUCCEEDED)

    failures = progress.failures + 1
    if failures > progress.ceiling:
        return replace(progress, failures=failures, state=RetryState.RETRIES_EXHAUSTED)
    return replace(progress, failures=failures)
