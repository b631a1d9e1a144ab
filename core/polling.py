"""
Retry-with-timeout primitive for waiting on asynchronously rendered content.
"""
import time
from typing import Callable, Optional, TypeVar

T = TypeVar("T")


class PollTimeoutError(TimeoutError):
    """Raised when a check did not succeed before its deadline."""

    def __init__(self, description: str, timeout_s: float):
        self.description = description
        self.timeout_s = timeout_s
        super().__init__(f"Timed out after {timeout_s:.1f}s waiting for {description}")


def poll_until(
    check: Callable[[], Optional[T]],
    timeout_s: float,
    interval_s: float = 0.5,
    description: str = "condition",
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> T:
    """
    Call ``check`` every ``interval_s`` seconds until it returns a truthy value.

    The check runs at least once, even with a zero timeout.

    Returns:
        The first truthy value returned by the check.

    Raises:
        PollTimeoutError: if the deadline passes first.
    """
    deadline = clock() + timeout_s

    while True:
        result = check()
        if result:
            return result

        remaining = deadline - clock()
        if remaining <= 0:
            raise PollTimeoutError(description, timeout_s)
        sleep(min(interval_s, remaining))
