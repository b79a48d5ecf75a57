"""Bounded polling: stream ARN discovery and table readiness."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from .exceptions import StreamIdentifierTimeoutError
from .observer import Present, describe_table

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class PollResult(Generic[T]):
    """Outcome of a bounded poll: the value found, or a timeout."""

    value: T | None
    attempts: int

    @property
    def timed_out(self) -> bool:
        return self.value is None


def poll(
    fetch: Callable[[], T | None],
    attempts: int,
    interval: float,
    sleep: Callable[[float], None] = time.sleep,
) -> PollResult[T]:
    """
    Call ``fetch`` until it returns a truthy value or ``attempts`` run out.

    Sleeps ``interval`` seconds between calls (not after the last one).

    Args:
        fetch: Returns the value, or a falsy value when not ready yet
        attempts: Maximum number of calls
        interval: Seconds between calls
        sleep: Sleep function (injected for testing)

    Returns:
        PollResult tagged with the value found or ``timed_out``
    """
    for attempt in range(1, attempts + 1):
        value = fetch()
        if value:
            return PollResult(value=value, attempts=attempt)
        if attempt < attempts:
            sleep(interval)
    return PollResult(value=None, attempts=attempts)


def wait_for_stream_arn(
    client: Any,
    name: str,
    attempts: int = 5,
    interval: float = 10.0,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """
    Poll DescribeTable until the table reports a stream ARN.

    A newly enabled stream does not expose its ARN synchronously.

    Raises:
        StreamIdentifierTimeoutError: If no ARN appears within ``attempts`` calls
    """

    def fetch() -> str | None:
        observation = describe_table(client, name)
        if isinstance(observation, Present):
            return observation.table.stream_arn
        return None

    logger.info("Waiting for the stream ARN of table %s", name)
    result = poll(fetch, attempts=attempts, interval=interval, sleep=sleep)
    if result.value is None:
        raise StreamIdentifierTimeoutError(name, result.attempts)
    logger.debug("Stream ARN for %s found after %d attempt(s)", name, result.attempts)
    return result.value


def wait_for_active(client: Any, name: str, delay: int = 20, max_attempts: int = 25) -> None:
    """
    Block until the table reports ACTIVE status.

    Raises:
        botocore.exceptions.WaiterError: If the table is not ACTIVE in time
    """
    logger.info("Waiting for table %s to become ACTIVE", name)
    waiter = client.get_waiter("table_exists")
    waiter.wait(
        TableName=name,
        WaiterConfig={"Delay": delay, "MaxAttempts": max_attempts},
    )
