# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import pytest
from mock import MagicMock

from azsubnets.core.network.definitions import PollTimeout
from azsubnets.utils.polling import BoundedPoller


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, secs: float) -> None:
        self.sleeps.append(secs)
        self.now += secs


class TestBoundedPoller:
    @pytest.fixture()
    def clock(self):
        return FakeClock()

    def test_poll_immediate_success(self, clock):
        func = MagicMock(return_value=["subnet-1"])
        poller = BoundedPoller(5, 300, clock=clock, sleep=clock.sleep)

        assert poller.poll(func, "vpc-1") == ["subnet-1"]
        func.assert_called_once_with("vpc-1")
        assert clock.sleeps == []

    def test_poll_errors_mean_not_ready(self, clock):
        func = MagicMock(side_effect=[RuntimeError("AuthFailure"), RuntimeError("AuthFailure"), ["subnet-1"]])
        poller = BoundedPoller(5, 300, clock=clock, sleep=clock.sleep)

        assert poller.poll(func) == ["subnet-1"]
        assert func.call_count == 3
        assert clock.sleeps == [5, 5]

    def test_poll_timeout(self, clock):
        error = RuntimeError("AuthFailure")
        func = MagicMock(side_effect=error)
        poller = BoundedPoller(5, 300, clock=clock, sleep=clock.sleep)

        with pytest.raises(PollTimeout) as timeout:
            poller.poll(func)

        # t=0, 5, ..., 300
        assert func.call_count == 61
        assert timeout.value.attempts == 61
        assert timeout.value.__cause__ is error
        assert clock.now == 300

    def test_poll_last_sleep_is_capped_by_deadline(self, clock):
        func = MagicMock(side_effect=RuntimeError("not yet"))
        poller = BoundedPoller(4, 10, clock=clock, sleep=clock.sleep)

        with pytest.raises(PollTimeout):
            poller.poll(func)

        assert clock.sleeps == [4, 4, 2]
        assert func.call_count == 4

    @pytest.mark.parametrize("interval, timeout", [(0, 10), (5, 0), (-1, 10)])
    def test_invalid_settings(self, interval, timeout):
        with pytest.raises(ValueError):
            BoundedPoller(interval, timeout)
