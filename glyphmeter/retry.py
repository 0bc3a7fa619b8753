"""Bounded retry with backoff and a fallback value for one unit of work.

A unit is a batch or a whole font. It always ends SUCCEEDED or
EXHAUSTED_FALLBACK; failures never propagate past the controller.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Generic, List, Optional, Sequence, TypeVar

from . import console_styles as cs
from .console_styles import Verbosity, get_console
from .errors import NoSignalMeasurement, RetriesExhausted
from .models import Geometry

console = get_console()
T = TypeVar("T")


def check_signal(
    baseline: Geometry,
    target: Geometry,
    epsilon: float,
    dimensions: Sequence[str] = ("width", "height"),
) -> None:
    """Raise NoSignalMeasurement when target matches baseline in every dimension.

    A target that silently fell back to the baseline font renders with the
    baseline's extents, so an exact match is treated as a load failure.
    """
    deltas = [abs(getattr(baseline, d) - getattr(target, d)) for d in dimensions]
    if all(delta < epsilon for delta in deltas):
        raise NoSignalMeasurement(
            "target extent matches baseline within "
            f"{epsilon}px ({', '.join(dimensions)}); font likely did not load"
        )


class UnitState(Enum):
    PENDING = "pending"
    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    EXHAUSTED_FALLBACK = "exhausted_fallback"


@dataclass
class UnitOutcome(Generic[T]):
    label: str
    state: UnitState = UnitState.PENDING
    value: Optional[T] = None
    attempts: int = 0
    errors: List[Exception] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.state is UnitState.SUCCEEDED

    @property
    def exhausted(self) -> Optional[RetriesExhausted]:
        if self.state is not UnitState.EXHAUSTED_FALLBACK:
            return None
        return RetriesExhausted(self.attempts, self.errors[-1] if self.errors else None)


class RetryController:
    def __init__(
        self,
        max_retries: int = 3,
        backoff_unit: float = 1.0,
        attempt_timeout: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        verbosity: Verbosity = Verbosity.BRIEF,
    ):
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.max_retries = max_retries
        self.backoff_unit = backoff_unit
        self.attempt_timeout = attempt_timeout
        self._sleep = sleep
        self.verbosity = verbosity

    def backoff(self, attempt_number: int) -> float:
        return attempt_number * self.backoff_unit

    async def run(
        self,
        label: str,
        attempt: Callable[[int], Awaitable[T]],
        fallback: Callable[[Optional[Exception]], T],
    ) -> UnitOutcome[T]:
        """Call attempt(n) until it returns, at most max_retries times.

        Args:
            label: Name used in log lines
            attempt: Coroutine factory receiving the 1-based attempt number
            fallback: Produces the substitute value from the last error

        Returns:
            UnitOutcome in SUCCEEDED or EXHAUSTED_FALLBACK state
        """
        outcome: UnitOutcome[T] = UnitOutcome(label)
        while outcome.attempts < self.max_retries:
            outcome.state = UnitState.ATTEMPTING
            outcome.attempts += 1
            try:
                if self.attempt_timeout is None:
                    value = await attempt(outcome.attempts)
                else:
                    value = await asyncio.wait_for(
                        attempt(outcome.attempts), timeout=self.attempt_timeout
                    )
            except asyncio.TimeoutError:
                # partial results of an abandoned attempt are dropped with it
                self._record_failure(
                    outcome,
                    asyncio.TimeoutError(f"attempt exceeded {self.attempt_timeout}s"),
                )
            except Exception as e:
                self._record_failure(outcome, e)
            else:
                outcome.state = UnitState.SUCCEEDED
                outcome.value = value
                return outcome

            if outcome.attempts < self.max_retries:
                await self._sleep(self.backoff(outcome.attempts))

        outcome.state = UnitState.EXHAUSTED_FALLBACK
        last_error = outcome.errors[-1] if outcome.errors else None
        outcome.value = fallback(last_error)
        return outcome

    def _record_failure(self, outcome: UnitOutcome, error: Exception) -> None:
        outcome.errors.append(error)
        if self.verbosity >= Verbosity.DEBUG:
            cs.StatusIndicator("retry").add_message(
                f"{outcome.label}: attempt {outcome.attempts}/{self.max_retries} failed"
            ).with_explanation(f"{type(error).__name__}: {error}").emit(console)
