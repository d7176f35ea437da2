"""Polling reconciler for asynchronous remote state.

Remote operations such as building a server or mapping a cloud IP return
before the work is finished. A ``StateChange`` polls a refresh function until
the object reports a target state, fails fast on states it does not expect,
and gives up once its timeout has elapsed.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable, Collection
from dataclasses import dataclass, field

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    wait_exponential,
)

from brightbox_provider.core.errors import UnexpectedStateError, WaitTimeoutError
from brightbox_provider.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 300.0
CHECK_DELAY = 10.0
MINIMUM_REFRESH_WAIT = 3.0
MAXIMUM_REFRESH_WAIT = 10.0

type RefreshFunc[T] = Callable[[], Awaitable[tuple[T, str]]]


class _StillPending(Exception):
    """Signals a poll that observed a pending state."""

    def __init__(self, state: str) -> None:
        self.state = state
        super().__init__(state)


@dataclass
class StateChange[T]:
    """A request to wait for a remote object to reach a target state.

    Attributes:
        pending: States that mean the object is still transitioning
        target: States that mean the transition is complete
        refresh: Async function returning ``(object, state)``; any exception
            it raises aborts the wait
        timeout: Seconds allowed from the first poll until giving up
        delay: Seconds to wait before the first poll
        min_interval: First wait between polls; later waits double
        max_interval: Ceiling for the wait between polls
        sleep: Async sleep function
        clock: Monotonic clock measuring the timeout
    """

    pending: Collection[str]
    target: Collection[str]
    refresh: RefreshFunc[T]
    timeout: float = DEFAULT_TIMEOUT
    delay: float = 0.0
    min_interval: float = MINIMUM_REFRESH_WAIT
    max_interval: float = MAXIMUM_REFRESH_WAIT
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, repr=False)
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)

    def __post_init__(self) -> None:
        self.pending = frozenset(self.pending)
        self.target = frozenset(self.target)

        if not self.target:
            raise ValueError("At least one target state is required")
        overlap = self.pending & self.target
        if overlap:
            raise ValueError(
                f"States cannot be both pending and target: {', '.join(sorted(overlap))}"
            )
        if self.timeout <= 0:
            raise ValueError("Timeout must be positive")
        if self.min_interval < 0 or self.min_interval > self.max_interval:
            raise ValueError("Poll interval floor must be between 0 and the ceiling")

    async def wait(self) -> T:
        """Poll until a target state is observed.

        Returns:
            The object returned by the refresh that reported a target state

        Raises:
            UnexpectedStateError: If a state outside pending and target is seen
            WaitTimeoutError: If the timeout elapses first
            Exception: Whatever the refresh function raises
        """
        if self.delay > 0:
            await self.sleep(self.delay)

        started = self.clock()
        backoff = wait_exponential(
            multiplier=self.min_interval,
            min=self.min_interval,
            max=self.max_interval,
        )

        def remaining() -> float:
            return self.timeout - (self.clock() - started)

        def wait_within_deadline(retry_state: RetryCallState) -> float:
            # Never sleep past the deadline; the last poll happens at it
            return min(backoff(retry_state), max(remaining(), 0.0))

        def deadline_passed(retry_state: RetryCallState) -> bool:
            return remaining() <= 0

        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(_StillPending),
                wait=wait_within_deadline,
                stop=deadline_passed,
                sleep=self.sleep,
            ):
                with attempt:
                    return await self._poll(attempt.retry_state.attempt_number)
        except RetryError as e:
            last = e.last_attempt.exception()
            state = last.state if isinstance(last, _StillPending) else ""
            logger.debug("Gave up waiting for state", state=state, timeout=self.timeout)
            raise WaitTimeoutError(state, self.timeout) from None

        # AsyncRetrying either returns, raises or gives up
        raise RuntimeError("Unexpected retry error")

    async def _poll(self, attempt: int) -> T:
        obj, state = await self.refresh()

        logger.debug("Refreshed state", state=state, attempt=attempt)

        if state in self.target:
            return obj
        if state not in self.pending:
            raise UnexpectedStateError(state, self.pending | self.target)
        raise _StillPending(state)


@dataclass(frozen=True)
class PollSettings:
    """Timing shared by every wait a handler performs.

    Attributes:
        delay: Seconds to wait before the first poll
        min_interval: First wait between polls
        max_interval: Ceiling for the wait between polls
        sleep: Async sleep function
        clock: Monotonic clock measuring the timeout
    """

    delay: float = CHECK_DELAY
    min_interval: float = MINIMUM_REFRESH_WAIT
    max_interval: float = MAXIMUM_REFRESH_WAIT
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, repr=False)
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)


DEFAULT_POLL = PollSettings()


async def wait_for_state[T](
    refresh: RefreshFunc[T],
    pending: Collection[str],
    target: Collection[str],
    timeout: float = DEFAULT_TIMEOUT,
    poll: PollSettings = DEFAULT_POLL,
) -> T:
    """Wait for a remote object to reach one of the target states.

    Args:
        refresh: Async function returning ``(object, state)``
        pending: States that mean the object is still transitioning
        target: States that mean the transition is complete
        timeout: Seconds allowed from the first poll until giving up
        poll: Poll timing

    Returns:
        The object in its target state
    """
    change = StateChange(
        pending=pending,
        target=target,
        refresh=refresh,
        timeout=timeout,
        delay=poll.delay,
        min_interval=poll.min_interval,
        max_interval=poll.max_interval,
        sleep=poll.sleep,
        clock=poll.clock,
    )
    return await change.wait()
