# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import logging
import time
from typing import Any, Callable, Optional

from azsubnets.core.network.definitions import PollTimeout

module_logger = logging.getLogger(__name__)


class BoundedPoller:
    """Retrying read with a fixed interval and an overall deadline.

    The first attempt is made immediately. A call that raises is treated as "not ready yet" (e.g freshly minted
    credentials that have not propagated). Once ``timeout`` seconds have elapsed without a successful call,
    :class:`PollTimeout` is raised with the last error as its cause.

    ``clock`` and ``sleep`` can be replaced (e.g with a fake clock in tests).
    """

    def __init__(
        self,
        interval: float,
        timeout: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if interval <= 0 or timeout <= 0:
            raise ValueError(f"poll interval and timeout must be positive, got {interval} / {timeout}")
        self._interval = interval
        self._timeout = timeout
        self._clock = clock
        self._sleep = sleep

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def timeout(self) -> float:
        return self._timeout

    def poll(self, func: Callable[..., Any], *func_args, **func_kwargs) -> Any:
        func_name = func.__name__ if hasattr(func, "__name__") else str(func)
        deadline = self._clock() + self._timeout
        attempt = 0
        last_error: Optional[Exception] = None
        while True:
            attempt += 1
            try:
                return func(*func_args, **func_kwargs)
            except Exception as error:
                last_error = error
                module_logger.info(f"{func_name} not ready yet (attempt {attempt}): {error!r}")

            remaining = deadline - self._clock()
            if remaining <= 0:
                break
            self._sleep(min(self._interval, remaining))

        message = f"timed out after {self._timeout} seconds ({attempt} attempts) waiting on {func_name}"
        module_logger.error(message)
        raise PollTimeout(message, attempts=attempt) from last_error
