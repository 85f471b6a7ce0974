"""Token Bucket – SRP. Keeps remote calls under the MoySklad request quota.

a small tool that does one thing well.
"""
from __future__ import annotations

from time import monotonic, sleep
from typing import Callable


class TokenBucket:
    """ISP: minimal surface – add tokens by time, try consume, or block until one is free.

    - rate: requests/sec
    - burst: bucket capacity, also the starting amount
    """

    def __init__(
        self,
        rate: float,
        burst: float,
        clock: Callable[[], float] = monotonic,
        sleeper: Callable[[float], None] = sleep,
    ) -> None:
        if rate <= 0 or burst < 1:
            raise ValueError("rate must be positive and burst at least 1")
        self.rate = rate
        self.burst = burst
        self._clock = clock
        self._sleep = sleeper
        self._tokens = burst
        self._last = clock()

    def refill(self) -> None:
        now = self._clock()
        self._tokens = min(self.burst, self._tokens + self.rate * (now - self._last))
        self._last = now

    def try_consume(self, n: float = 1.0) -> bool:
        if self._tokens >= n:
            self._tokens -= n
            return True
        return False

    def acquire(self, n: float = 1.0) -> None:
        self.refill()
        while not self.try_consume(n):
            self._sleep((n - self._tokens) / self.rate)
            self.refill()
