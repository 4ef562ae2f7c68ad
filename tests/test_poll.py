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

"""Unit tests for the condition poller."""

import pytest

from kubac.errors import KubeError, NotFoundError, PollTimeoutError
from kubac.poll import poll, wait_until


class _Counter:
    def __init__(self, results):
        self.results = list(results)
        self.calls = 0

    def __call__(self):
        self.calls += 1
        result = self.results.pop(0) if self.results else False
        if isinstance(result, Exception):
            raise result
        return result


class TestPoll:
    """Tests for poll()."""

    def test_already_true_returns_without_sleeping(self, clock):
        """Test that a satisfied condition is seen on the first attempt."""
        assert poll(lambda: True, 5, 60, sleep=clock.sleep, clock=clock) is True
        assert clock.sleeps == []

    def test_becomes_true_after_a_few_attempts(self, clock):
        """Test polling continues at the interval until the condition holds."""
        predicate = _Counter([False, False, True])

        assert poll(predicate, 5, 60, sleep=clock.sleep, clock=clock) is True
        assert predicate.calls == 3
        assert clock.sleeps == [5, 5]

    def test_never_true_times_out_within_one_interval(self, clock):
        """Test elapsed time on timeout lies in [timeout, timeout + interval)."""
        assert poll(lambda: False, 5, 60, sleep=clock.sleep, clock=clock) is False
        assert 60 <= clock.now < 65

    def test_timeout_shorter_than_interval_still_attempts(self, clock):
        """Test the immediate attempt happens even when timeout < interval."""
        predicate = _Counter([])

        assert poll(predicate, 5, 2, sleep=clock.sleep, clock=clock) is False
        assert predicate.calls >= 1
        assert 2 <= clock.now < 7

    def test_zero_timeout_attempts_once(self, clock):
        """Test a zero budget evaluates the predicate exactly once."""
        predicate = _Counter([])

        assert poll(predicate, 1, 0, sleep=clock.sleep, clock=clock) is False
        assert predicate.calls == 1
        assert clock.sleeps == []

    def test_kube_errors_count_as_not_yet(self, clock):
        """Test transient accessor errors are tolerated."""
        predicate = _Counter([KubeError("connection refused"), NotFoundError("not found"), True])

        assert poll(predicate, 1, 10, sleep=clock.sleep, clock=clock) is True
        assert predicate.calls == 3

    def test_kube_errors_until_timeout_return_false(self, clock):
        """Test an always-failing accessor ends in a timeout, not an exception."""
        def predicate():
            raise KubeError("unreachable")

        assert poll(predicate, 5, 20, sleep=clock.sleep, clock=clock) is False

    def test_other_exceptions_propagate(self, clock):
        """Test programming errors are not swallowed."""
        def predicate():
            raise ZeroDivisionError("boom")

        with pytest.raises(ZeroDivisionError):
            poll(predicate, 1, 10, sleep=clock.sleep, clock=clock)
        assert clock.sleeps == []

    @pytest.mark.parametrize("interval,timeout", [(0, 10), (-1, 10), (1, -1)])
    def test_invalid_arguments(self, clock, interval, timeout):
        """Test non-positive interval and negative timeout are rejected."""
        with pytest.raises(ValueError):
            poll(lambda: True, interval, timeout, sleep=clock.sleep, clock=clock)


class TestWaitUntil:
    """Tests for wait_until()."""

    def test_returns_when_met(self, clock):
        wait_until(lambda: True, 5, 60, "something", sleep=clock.sleep, clock=clock)

    def test_raises_on_timeout(self, clock):
        """Test the timeout error names what was awaited."""
        with pytest.raises(PollTimeoutError) as exc_info:
            wait_until(lambda: False, 5, 10, "deployment kube-system/metrics-server",
                       sleep=clock.sleep, clock=clock)

        assert exc_info.value.timeout == 10
        assert "deployment kube-system/metrics-server" in str(exc_info.value)
        assert "10s" in str(exc_info.value)
