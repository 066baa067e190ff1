from __future__ import annotations

import time
from dataclasses import dataclass
from threading import Lock

HOUR_SECONDS = 60 * 60
PRUNE_THRESHOLD = 10_000


@dataclass
class _Bucket:
  reset_at: float
  count: int


class RateLimiter:
  """
  In-memory fixed-window rate limiter.

  Notes:
  - Counters are per process; the service is deployed as a single instance.
  - Increment-and-compare happens under one lock so concurrent requests
    cannot both slip under the limit.
  """

  def __init__(self, clock=time.time, prune_threshold: int = PRUNE_THRESHOLD) -> None:
    self._lock = Lock()
    self._buckets: dict[str, _Bucket] = {}
    self._clock = clock
    self._prune_threshold = prune_threshold

  def hit(self, key: str, *, limit: int, window_seconds: int) -> tuple[bool, int]:
    """
    Returns (allowed, retry_after_seconds).
    """
    now = self._clock()
    with self._lock:
      if len(self._buckets) >= self._prune_threshold:
        self._prune_locked(now)
      b = self._buckets.get(key)
      if b is None or now >= b.reset_at:
        self._buckets[key] = _Bucket(reset_at=now + window_seconds, count=1)
        return True, 0
      if b.count >= limit:
        retry = max(1, int(b.reset_at - now))
        return False, retry
      b.count += 1
      return True, 0

  def _prune_locked(self, now: float) -> None:
    for k in [k for k, b in self._buckets.items() if now >= b.reset_at]:
      del self._buckets[k]

  def bucket_count(self) -> int:
    with self._lock:
      return len(self._buckets)

  def reset_prefix(self, prefix: str) -> None:
    with self._lock:
      for k in list(self._buckets.keys()):
        if k.startswith(prefix):
          del self._buckets[k]
