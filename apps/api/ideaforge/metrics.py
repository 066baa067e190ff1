from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from threading import Lock
from time import monotonic


@dataclass
class RequestSample:
  ts: datetime
  status_code: int
  latency_ms: float


class RuntimeMetrics:
  def __init__(self) -> None:
    self._started_monotonic = monotonic()
    self._started_at = datetime.now(timezone.utc)
    self._samples: deque[RequestSample] = deque()
    self._lock = Lock()

  def uptime_seconds(self) -> int:
    return max(0, int(monotonic() - self._started_monotonic))

  def observe_request(self, status_code: int, latency_ms: float) -> None:
    now = datetime.now(timezone.utc)
    with self._lock:
      self._samples.append(RequestSample(ts=now, status_code=status_code, latency_ms=latency_ms))
      self._prune_locked(now)

  def _prune_locked(self, now: datetime) -> None:
    cutoff = now - timedelta(hours=1)
    while self._samples and self._samples[0].ts < cutoff:
      self._samples.popleft()

  def snapshot(self) -> dict:
    now = datetime.now(timezone.utc)
    with self._lock:
      self._prune_locked(now)
      samples = list(self._samples)

    total = len(samples)
    client_errors = sum(1 for s in samples if 400 <= s.status_code < 500)
    server_errors = sum(1 for s in samples if s.status_code >= 500)
    rate_limited = sum(1 for s in samples if s.status_code == 429)

    p95_ms = 0.0
    if samples:
      sorted_latencies = sorted(s.latency_ms for s in samples)
      idx = max(0, int(len(sorted_latencies) * 0.95) - 1)
      p95_ms = sorted_latencies[idx]

    return {
      "startedAt": self._started_at.isoformat(),
      "uptimeSeconds": self.uptime_seconds(),
      "requestCount1h": total,
      "clientErrorCount1h": client_errors,
      "serverErrorCount1h": server_errors,
      "rateLimitedCount1h": rate_limited,
      "errorRate1h": round((server_errors / total) * 100, 2) if total else 0.0,
      "p95LatencyMs1h": round(p95_ms, 2),
    }
