from __future__ import annotations

import pytest
from httpx import AsyncClient

from ideaforge.rate_limit import RateLimiter
from ideaforge.services import Services

from conftest import create_project, register


def test_fixed_window_resets_after_window() -> None:
  now = [1000.0]
  limiter = RateLimiter(clock=lambda: now[0])
  assert limiter.hit("k", limit=2, window_seconds=60) == (True, 0)
  assert limiter.hit("k", limit=2, window_seconds=60) == (True, 0)
  allowed, retry_after = limiter.hit("k", limit=2, window_seconds=60)
  assert allowed is False
  assert retry_after == 60

  now[0] += 30
  assert limiter.hit("k", limit=2, window_seconds=60) == (False, 30)
  assert limiter.hit("other", limit=2, window_seconds=60) == (True, 0)

  now[0] += 31
  assert limiter.hit("k", limit=2, window_seconds=60) == (True, 0)



def test_expired_buckets_are_pruned() -> None:
  now = [1000.0]
  limiter = RateLimiter(clock=lambda: now[0], prune_threshold=3)
  for ip in ("1", "2", "3"):
    limiter.hit(f"qa:ask:ip:{ip}", limit=5, window_seconds=60)
  assert limiter.bucket_count() == 3

  now[0] += 61
  assert limiter.hit("qa:ask:ip:4", limit=5, window_seconds=60) == (True, 0)
  assert limiter.bucket_count() == 1

  limiter.hit("qa:ask:ip:5", limit=5, window_seconds=60)
  limiter.hit("qa:ask:ip:6", limit=5, window_seconds=60)
  limiter.hit("qa:ask:ip:4", limit=5, window_seconds=60)
  assert limiter.bucket_count() == 3
  assert limiter.hit("qa:ask:ip:4", limit=2, window_seconds=60)[0] is False

def test_reset_prefix() -> None:
  limiter = RateLimiter()
  limiter.hit("qa:ask:ip:1", limit=1, window_seconds=60)
  limiter.hit("ai:summary:ip:1", limit=1, window_seconds=60)
  limiter.reset_prefix("qa:")
  assert limiter.hit("qa:ask:ip:1", limit=1, window_seconds=60) == (True, 0)
  assert limiter.hit("ai:summary:ip:1", limit=1, window_seconds=60)[0] is False


@pytest.mark.anyio
async def test_qa_ask_rate_limited(client: AsyncClient, services: Services) -> None:
  services.settings.rate_limit_qa_per_hour = 2
  acct = await register(client)
  h = acct["headers"]
  p = await create_project(client, h)

  for _ in range(2):
    r = await client.post(f"/api/projects/{p['id']}/qa/ask", json={"question": "What should I do next?"}, headers=h)
    assert r.status_code == 200, r.text
  r = await client.post(f"/api/projects/{p['id']}/qa/ask", json={"question": "What should I do next?"}, headers=h)
  assert r.status_code == 429, r.text
  assert r.json() == {"error": "Too many questions, please try again later"}
  assert int(r.headers["retry-after"]) > 0

  # Other endpoints are not limited by the Q&A bucket.
  r = await client.get(f"/api/projects/{p['id']}/qa/history", headers=h)
  assert r.status_code == 200, r.text


@pytest.mark.anyio
async def test_summary_suggest_rate_limited(client: AsyncClient, services: Services) -> None:
  services.settings.rate_limit_ai_per_hour = 1
  acct = await register(client)
  h = acct["headers"]
  p = await create_project(client, h)

  r = await client.post(f"/api/projects/{p['id']}/summary/suggest", headers=h)
  assert r.status_code == 400, r.text
  r = await client.post(f"/api/projects/{p['id']}/summary/suggest", headers=h)
  assert r.status_code == 429, r.text
  assert r.json() == {"error": "Too many AI requests, please try again later"}


@pytest.mark.anyio
async def test_unauthenticated_requests_do_not_consume_quota(client: AsyncClient, services: Services) -> None:
  services.settings.rate_limit_qa_per_hour = 1
  acct = await register(client)
  h = acct["headers"]
  p = await create_project(client, h)

  for _ in range(3):
    r = await client.post(f"/api/projects/{p['id']}/qa/ask", json={"question": "What should I do next?"})
    assert r.status_code == 401, r.text
  r = await client.post(f"/api/projects/{p['id']}/qa/ask", json={"question": "What should I do next?"}, headers=h)
  assert r.status_code == 200, r.text
