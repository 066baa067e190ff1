from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient

from ideaforge.ai.providers import AIProviderError, AnswerDraft, LocalDeterministicProvider
from ideaforge.assistant import GENERIC_QUESTION_SUGGESTIONS, MILESTONE_SUGGESTION
from ideaforge.services import Services

from conftest import create_project, create_task, register


@dataclass
class _FailingAnswers(LocalDeterministicProvider):
  async def answer_question(self, *, question, context, include_examples):
    raise AIProviderError("upstream down")


@dataclass
class _TaskSuggestingAnswers(LocalDeterministicProvider):
  async def answer_question(self, *, question, context, include_examples):
    return AnswerDraft(
      answer="Split the launch into smaller pieces.",
      suggestions=["What is blocking the launch?"],
      examples=["Teams ship weekly"] if include_examples else None,
      suggested_tasks=[{"title": "Write launch checklist"}, {"title": "Book demo slot", "description": "Friday"}],
    )


@pytest.mark.anyio
async def test_ask_question_records_history(client: AsyncClient) -> None:
  acct = await register(client)
  h = acct["headers"]
  p = await create_project(client, h, "Atlas")
  t = await create_task(client, h, p["id"], "Write docs")
  await create_task(client, h, p["id"], "Ship beta")
  await client.patch(f"/api/tasks/{t['id']}", json={"status": "DONE"}, headers=h)

  res = await client.post(f"/api/projects/{p['id']}/qa/ask", json={"question": "What should I do next?"}, headers=h)
  assert res.status_code == 200, res.text
  body = res.json()
  assert body["question"] == "What should I do next?"
  assert "completed 1 of 2 tasks" in body["answer"]
  assert body["examples"]
  assert body["suggestedTasks"] == []

  history = (await client.get(f"/api/projects/{p['id']}/qa/history", headers=h)).json()
  assert [q["id"] for q in history] == [body["id"]]
  assert history[0]["helpful"] is None
  assert history[0]["projectId"] == p["id"]


@pytest.mark.anyio
async def test_short_question_rejected(client: AsyncClient) -> None:
  acct = await register(client)
  h = acct["headers"]
  p = await create_project(client, h)
  res = await client.post(f"/api/projects/{p['id']}/qa/ask", json={"question": "Why?"}, headers=h)
  assert res.status_code == 400, res.text
  assert res.json()["error"] == "Validation error"
  assert (await client.get(f"/api/projects/{p['id']}/qa/history", headers=h)).json() == []


@pytest.mark.anyio
async def test_examples_omitted_when_not_requested(client: AsyncClient) -> None:
  acct = await register(client)
  h = acct["headers"]
  p = await create_project(client, h)
  res = await client.post(
    f"/api/projects/{p['id']}/qa/ask",
    json={"question": "What should I do next?", "includeExamples": False},
    headers=h,
  )
  assert res.status_code == 200, res.text
  assert "examples" not in res.json()


@pytest.mark.anyio
async def test_fallback_answer_quotes_callers_task_counts(client: AsyncClient, services: Services) -> None:
  services.ai = _FailingAnswers()
  acct = await register(client)
  h = acct["headers"]
  p = await create_project(client, h)
  for i in range(3):
    t = await create_task(client, h, p["id"], f"Task {i}")
  await client.patch(f"/api/tasks/{t['id']}", json={"status": "DONE"}, headers=h)

  # Another account's tasks must not leak into the counts.
  other = await register(client)
  op = await create_project(client, other["headers"])
  await create_task(client, other["headers"], op["id"], "Not mine")

  res = await client.post(f"/api/projects/{p['id']}/qa/ask", json={"question": "How am I doing?"}, headers=h)
  assert res.status_code == 200, res.text
  body = res.json()
  assert "you have 3 tasks with 1 completed" in body["answer"]
  assert body["suggestions"] == [
    "What are my highest priority tasks?",
    "How can I improve my project velocity?",
    "What should I focus on this week?",
  ]
  assert len(body["examples"]) == 2

  res = await client.post(
    f"/api/projects/{p['id']}/qa/ask",
    json={"question": "How am I doing?", "includeExamples": False},
    headers=h,
  )
  assert "examples" not in res.json()


@pytest.mark.anyio
async def test_suggested_tasks_are_created(client: AsyncClient, services: Services) -> None:
  services.ai = _TaskSuggestingAnswers()
  acct = await register(client)
  h = acct["headers"]
  p = await create_project(client, h)
  question = "How should I structure the launch week for the team?"
  res = await client.post(f"/api/projects/{p['id']}/qa/ask", json={"question": question}, headers=h)
  assert res.status_code == 200, res.text
  assert [t["title"] for t in res.json()["suggestedTasks"]] == ["Write launch checklist", "Book demo slot"]

  tasks = (await client.get(f"/api/projects/{p['id']}/tasks", headers=h)).json()
  by_title = {t["title"]: t for t in tasks}
  assert by_title["Write launch checklist"]["description"] == f"Suggested from Q&A: {question[:50]}..."
  assert by_title["Book demo slot"]["description"] == "Friday"
  assert all(t["status"] == "TODO" for t in tasks)


@pytest.mark.anyio
async def test_feedback_marks_question(client: AsyncClient) -> None:
  acct = await register(client)
  h = acct["headers"]
  p = await create_project(client, h)
  q = (await client.post(f"/api/projects/{p['id']}/qa/ask", json={"question": "What should I do next?"}, headers=h)).json()

  res = await client.patch(f"/api/qa/{q['id']}/feedback", json={"helpful": True}, headers=h)
  assert res.status_code == 200, res.text
  assert res.json() == {"success": True}
  history = (await client.get(f"/api/projects/{p['id']}/qa/history", headers=h)).json()
  assert history[0]["helpful"] is True

  res = await client.patch("/api/qa/missing/feedback", json={"helpful": True}, headers=h)
  assert res.status_code == 404, res.text
  assert res.json() == {"error": "Question not found"}


@pytest.mark.anyio
async def test_question_suggestions_context_first(client: AsyncClient) -> None:
  acct = await register(client)
  h = acct["headers"]
  p = await create_project(client, h)

  res = await client.get(f"/api/projects/{p['id']}/qa/suggestions", headers=h)
  assert res.status_code == 200, res.text
  assert res.json() == {"suggestions": GENERIC_QUESTION_SUGGESTIONS}

  due = (datetime.now(timezone.utc) + timedelta(days=3)).isoformat()
  await client.post(f"/api/projects/{p['id']}/milestones", json={"title": "Demo day", "dueDate": due}, headers=h)
  suggestions = (await client.get(f"/api/projects/{p['id']}/qa/suggestions", headers=h)).json()["suggestions"]
  assert len(suggestions) == 5
  assert suggestions[0] == MILESTONE_SUGGESTION
  assert suggestions[1:] == GENERIC_QUESTION_SUGGESTIONS[:4]
