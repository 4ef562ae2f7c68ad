# /*
# Copyright 2026 The Kubac Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Bounded polling of cluster state until a condition holds."""

from __future__ import annotations

import time
from collections.abc import Callable

from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception_type,
    retry_if_result,
    wait_fixed,
)

from kubac import logger
from kubac.errors import KubeError, PollTimeoutError

Sleep = Callable[[float], None]
Clock = Callable[[], float]


def _log_attempt(retry_state: RetryCallState) -> None:
    outcome = retry_state.outcome
    if outcome is not None and outcome.failed:
        logger.debug("Attempt %d: not yet (%s)", retry_state.attempt_number, outcome.exception())
    else:
        logger.debug("Attempt %d: condition not met", retry_state.attempt_number)


def poll(
    predicate: Callable[[], bool],
    interval: float,
    timeout: float,
    sleep: Sleep = time.sleep,
    clock: Clock = time.monotonic,
) -> bool:
    """Evaluate *predicate* immediately, then every *interval* seconds until it holds.

    A KubeError raised by the predicate means "not yet" and polling goes on.
    Any other exception propagates. Polling stops once an attempt finishes
    with *timeout* seconds or more elapsed, so the immediate attempt always
    runs, even when ``timeout < interval``.

    Args:
        predicate: Zero-argument callable returning True once the condition is met.
        interval: Seconds to sleep between attempts; must be positive.
        timeout: Total polling budget in seconds; must not be negative.
        sleep: Sleep function, replaceable in tests.
        clock: Monotonic clock used for the budget, replaceable in tests.

    Returns:
        True if the condition was met, False on timeout.

    Raises:
        ValueError: If interval or timeout is out of range.
    """
    if interval <= 0:
        raise ValueError(f"interval must be positive, got {interval}")
    if timeout < 0:
        raise ValueError(f"timeout must not be negative, got {timeout}")

    started = clock()

    def _budget_spent(retry_state: RetryCallState) -> bool:
        return clock() - started >= timeout

    retrying = Retrying(
        stop=_budget_spent,
        wait=wait_fixed(interval),
        retry=retry_if_result(lambda met: not met) | retry_if_exception_type(KubeError),
        before_sleep=_log_attempt,
        sleep=sleep,
    )
    try:
        return bool(retrying(predicate))
    except RetryError:
        return False


def wait_until(
    predicate: Callable[[], bool],
    interval: float,
    timeout: float,
    description: str,
    sleep: Sleep = time.sleep,
    clock: Clock = time.monotonic,
) -> None:
    """Poll like :func:`poll` but raise when the condition never holds.

    Raises:
        PollTimeoutError: If *predicate* is not met within *timeout*.
    """
    if not poll(predicate, interval, timeout, sleep=sleep, clock=clock):
        raise PollTimeoutError(description, timeout)
