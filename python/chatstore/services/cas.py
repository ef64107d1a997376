"""Bounded optimistic-update loop over a conditional write.

Every retrying compare-and-swap site (reaction toggle, reaction removal,
invite consumption, token version increment) has the same shape:

1. read the current state
2. decide: stop now with a result, or propose an update
3. conditional-write the update, guarded on exactly what was read
4. applied -> return the proposal's result; not applied -> go to 1

There is no backoff and no lock. After max_attempts lost races the loop gives
up and on_exhausted maps the last state read onto a soft-failure result.
Store errors from read/write propagate unchanged.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from chatstore.logging import get_logger
from chatstore.store.client import ConditionalResult

logger = get_logger(__name__)

MAX_CAS_ATTEMPTS = 5

S = TypeVar("S")
U = TypeVar("U")
T = TypeVar("T")


@dataclass(frozen=True)
class Stop(Generic[T]):
    """End the loop without writing (not found, validation failure, no-op)."""

    result: T


@dataclass(frozen=True)
class Propose(Generic[U, T]):
    """Attempt a conditional write of update; result is returned if it applies."""

    update: U
    result: T


async def optimistic_update(
    *,
    read: Callable[[], Awaitable[S]],
    decide: Callable[[S], "Stop[T] | Propose[Any, T]"],
    write: Callable[[S, Any], Awaitable[ConditionalResult]],
    on_exhausted: Callable[[S | None], T],
    max_attempts: int = MAX_CAS_ATTEMPTS,
) -> T:
    """Run the read / decide / conditional-write loop.

    Args:
        read: Fetch the current state. Called fresh on every attempt.
        decide: Pure function of the state; returns Stop or Propose.
        write: Conditional write of the proposed update guarded on the state read.
        on_exhausted: Builds the result when every attempt lost its race.
        max_attempts: Attempt bound.

    Returns:
        The result carried by Stop, by the applied Propose, or from on_exhausted.
    """
    state: S | None = None
    for attempt in range(1, max_attempts + 1):
        state = await read()
        decision = decide(state)
        if isinstance(decision, Stop):
            return decision.result

        outcome = await write(state, decision.update)
        if outcome.applied:
            if attempt > 1:
                logger.debug("cas_applied_after_retry", attempt=attempt)
            return decision.result

        logger.debug("cas_conflict", attempt=attempt)

    logger.warning("cas_retries_exhausted", attempts=max_attempts)
    return on_exhausted(state)
