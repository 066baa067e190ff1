from __future__ import annotations

from dataclasses import dataclass

import pytest
from httpx import AsyncClient

from ideaforge.ai.providers import AIProviderError, LocalDeterministicProvider
from ideaforge.services import Services
from ideaforge.storage import StorageError

from conftest import create_project, register


@dataclass
class _FailingInsights(LocalDeterministicProvider):
  async def generate_insight(self, *, content: str):
    raise AIProviderError("upstream down")


@dataclass
class _FailingTranscription(LocalDeterministicProvider):
  async def transcribe(self, *, data: bytes, filename: str | None) -> str:
    raise AIProviderError("whisper down")


class _RecordingStore:
  mode = "recording"

  def __init__(self, fail: bool = False) -> None:
    self.saved: list[tuple[str | None, int]] = []
    self.fail = fail

  async def save(self, *, data: bytes, filename: str | None, content_type: str | None) -> str | None:
    if self.fail:
      raise StorageError("bucket missing")
    self.saved.append((filename, len(data)))
    return f"https://storage.example.com/audio/{len(self.saved)}.webm"


@pytest.mark.anyio
async def test_text_idea_dump_creates_insight_and_tasks(client: AsyncClient) -> None:
  acct = await register(client)
  h = acct["headers"]
  p = await create_project(client, h)

  res = await client.post(
    f"/api/projects/{p['id']}/idea-dumps/text",
    json={"contentText": "We need to launch a referral program. Write the announcement post. Users love the dark mode."},
    headers=h,
  )
  assert res.status_code == 200, res.text
  body = res.json()
  assert body["ideaDump"]["projectId"] == p["id"]
  assert body["ideaDump"]["userId"] == acct["user"]["id"]
  assert body["insight"]["ideaDumpId"] == body["ideaDump"]["id"]
  suggested = [t["title"] for t in body["insight"]["suggestedTasks"]]
  assert suggested == ["Launch a referral program", "Write the announcement post"]

  tasks = (await client.get(f"/api/projects/{p['id']}/tasks", headers=h)).json()
  assert [t["title"] for t in tasks] == suggested
  assert all(t["status"] == "TODO" for t in tasks)
  assert tasks[1]["position"] == tasks[0]["position"] + 1


@pytest.mark.anyio
async def test_text_idea_dump_requires_content(client: AsyncClient) -> None:
  acct = await register(client)
  p = await create_project(client, acct["headers"])
  res = await client.post(f"/api/projects/{p['id']}/idea-dumps/text", json={"contentText": ""}, headers=acct["headers"])
  assert res.status_code == 400, res.text


@pytest.mark.anyio
async def test_short_content_gets_fallback_insight(client: AsyncClient) -> None:
  acct = await register(client)
  h = acct["headers"]
  p = await create_project(client, h)
  res = await client.post(f"/api/projects/{p['id']}/idea-dumps/text", json={"contentText": "Fix it"}, headers=h)
  assert res.status_code == 200, res.text
  insight = res.json()["insight"]
  assert insight["shortSummary"] == ["Failed to generate summary. Please try again."]
  assert insight["recommendations"] == ["Unable to generate recommendations at this time."]
  assert insight["suggestedTasks"] == []
  assert (await client.get(f"/api/projects/{p['id']}/tasks", headers=h)).json() == []


@pytest.mark.anyio
async def test_provider_failure_gets_fallback_insight(client: AsyncClient, services: Services) -> None:
  services.ai = _FailingInsights()
  acct = await register(client)
  h = acct["headers"]
  p = await create_project(client, h)
  res = await client.post(f"/api/projects/{p['id']}/idea-dumps/text", json={"contentText": "Build a mobile app for the beta."}, headers=h)
  assert res.status_code == 200, res.text
  assert res.json()["insight"]["shortSummary"] == ["Failed to generate summary. Please try again."]


@pytest.mark.anyio
async def test_audio_idea_dump_transcribes_and_stores(client: AsyncClient, services: Services) -> None:
  store = _RecordingStore()
  services.audio_store = store
  acct = await register(client)
  h = acct["headers"]
  p = await create_project(client, h)

  res = await client.post(
    f"/api/projects/{p['id']}/idea-dumps/audio",
    files={"file": ("note.webm", b"Plan the launch party. Email the early users.", "audio/webm")},
    headers=h,
  )
  assert res.status_code == 200, res.text
  dump = res.json()["ideaDump"]
  assert dump["transcript"] == "Plan the launch party. Email the early users."
  assert dump["contentText"] is None
  assert dump["audioUrl"] == "https://storage.example.com/audio/1.webm"
  assert store.saved == [("note.webm", 45)]
  assert [t["title"] for t in res.json()["insight"]["suggestedTasks"]] == ["Plan the launch party", "Email the early users"]


@pytest.mark.anyio
async def test_audio_idea_dump_in_memory_mode_has_no_url(client: AsyncClient) -> None:
  acct = await register(client)
  h = acct["headers"]
  p = await create_project(client, h)
  res = await client.post(
    f"/api/projects/{p['id']}/idea-dumps/audio",
    files={"file": ("memo.bin", b"Review the pricing tiers.", "application/octet-stream")},
    headers=h,
  )
  assert res.status_code == 200, res.text
  assert res.json()["ideaDump"]["audioUrl"] is None


@pytest.mark.anyio
async def test_audio_upload_gate(client: AsyncClient) -> None:
  acct = await register(client)
  h = acct["headers"]
  p = await create_project(client, h)
  url = f"/api/projects/{p['id']}/idea-dumps/audio"

  res = await client.post(url, files={"file": ("notes.txt", b"hello", "text/plain")}, headers=h)
  assert res.status_code == 400, res.text
  assert res.json() == {"error": "Invalid file type. Only audio files are allowed. Received: text/plain"}

  # Extension alone is enough.
  res = await client.post(url, files={"file": ("voice.m4a", b"Call the designer today.", "text/plain")}, headers=h)
  assert res.status_code == 200, res.text

  res = await client.post(url, files={"file": ("big.mp3", b"a" * 1025, "audio/mpeg")}, headers=h)
  assert res.status_code == 413, res.text
  assert res.json() == {"error": "File too large"}

  res = await client.post(url, data={"other": "x"}, headers=h)
  assert res.status_code == 400, res.text
  assert res.json() == {"error": "No audio file provided"}


@pytest.mark.anyio
async def test_transcription_failure_is_upstream_error(client: AsyncClient, services: Services) -> None:
  services.ai = _FailingTranscription()
  acct = await register(client)
  h = acct["headers"]
  p = await create_project(client, h)
  res = await client.post(
    f"/api/projects/{p['id']}/idea-dumps/audio",
    files={"file": ("note.webm", b"audio", "audio/webm")},
    headers=h,
  )
  assert res.status_code == 502, res.text
  assert res.json() == {"error": "Failed to transcribe audio"}
  assert (await client.get(f"/api/projects/{p['id']}/insights", headers=h)).json() == []


@pytest.mark.anyio
async def test_storage_failure_is_upstream_error(client: AsyncClient, services: Services) -> None:
  services.audio_store = _RecordingStore(fail=True)
  acct = await register(client)
  h = acct["headers"]
  p = await create_project(client, h)
  res = await client.post(
    f"/api/projects/{p['id']}/idea-dumps/audio",
    files={"file": ("note.webm", b"audio", "audio/webm")},
    headers=h,
  )
  assert res.status_code == 502, res.text
  assert res.json() == {"error": "Failed to upload audio"}
