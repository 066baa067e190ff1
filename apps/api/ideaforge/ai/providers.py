from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from ideaforge.config import Settings

INSIGHT_SYSTEM_PROMPT = (
  "You are an expert product & business analyst. Given a raw idea dump, return:\n"
  "shortSummary: 2-4 crisp bullets of the core ideas (no fluff),\n"
  "recommendations: 2-5 practical business suggestions tailored to an ongoing project,\n"
  "suggestedTasks: 2-6 atomic tasks with actionable titles, keep scope to 1-2 hours each.\n"
  "Return strict JSON: { shortSummary: string[], recommendations: string[], "
  "suggestedTasks: {title: string, description?: string}[] }"
)

SUMMARY_SYSTEM_PROMPT = (
  "Given the project's recent insights (most recent 5), propose a single concise banner paragraph "
  "(max 220 chars) that captures direction & key ongoing items. No bullets, no extra text. "
  "Return: { suggestedSummary: string }"
)

QA_RESPONSE_FORMAT = """Provide a response in JSON format:
{
  "answer": "Direct answer to their question with specific references to their project",
  "suggestions": ["Follow-up question 1", "Follow-up question 2", "Follow-up question 3"],
  "examples": ["Real example 1", "Real example 2"] (only if includeExamples is true),
  "suggestedTasks": [{"title": "Task title", "description": "Brief description"}] (only if relevant)
}"""


class AIProviderError(RuntimeError):
  pass


@dataclass
class InsightDraft:
  short_summary: list[str]
  recommendations: list[str]
  suggested_tasks: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class AnswerDraft:
  answer: str
  suggestions: list[str]
  examples: list[str] | None = None
  suggested_tasks: list[dict[str, Any]] = field(default_factory=list)


class AIProvider(Protocol):
  async def generate_insight(self, *, content: str) -> InsightDraft: ...

  async def suggest_summary(self, *, recent_summaries: list[list[str]]) -> str: ...

  async def answer_question(self, *, question: str, context: dict[str, Any], include_examples: bool) -> AnswerDraft: ...

  async def transcribe(self, *, data: bytes, filename: str | None) -> str: ...


def _clean_task_items(raw: Any) -> list[dict[str, Any]]:
  out: list[dict[str, Any]] = []
  if not isinstance(raw, list):
    return out
  for item in raw:
    if not isinstance(item, dict):
      continue
    title = str(item.get("title") or "").strip()
    if not title:
      continue
    entry: dict[str, Any] = {"title": title[:200]}
    desc = item.get("description")
    if isinstance(desc, str) and desc.strip():
      entry["description"] = desc.strip()
    out.append(entry)
  return out


def _str_list(raw: Any) -> list[str]:
  if not isinstance(raw, list):
    return []
  return [str(x) for x in raw if str(x).strip()]


_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+|\n+")
_ACTION_PREFIXES = (
  "add",
  "build",
  "call",
  "create",
  "design",
  "draft",
  "email",
  "fix",
  "implement",
  "launch",
  "plan",
  "prepare",
  "research",
  "review",
  "set up",
  "ship",
  "test",
  "write",
)
_ACTION_LEADS = ("we need to ", "need to ", "i need to ", "we should ", "should ", "todo: ", "todo ", "- ")


@dataclass
class LocalDeterministicProvider:
  async def generate_insight(self, *, content: str) -> InsightDraft:
    # Deterministic, offline-friendly behavior suitable for acceptance tests.
    sentences = [s.strip(" -\t") for s in _SENTENCE_SPLIT_RE.split(content or "") if s.strip(" -\t")]
    summary = [s[:160] for s in sentences[:4]] or [content.strip()[:160]]
    tasks: list[dict[str, Any]] = []
    for s in sentences:
      lowered = s.lower()
      for lead in _ACTION_LEADS:
        if lowered.startswith(lead):
          s = s[len(lead):].strip()
          lowered = s.lower()
          break
      if lowered.startswith(_ACTION_PREFIXES):
        title = s.rstrip(".!?")
        tasks.append({"title": title[:1].upper() + title[1:200], "description": f"From idea dump: {s[:120]}"})
      if len(tasks) >= 6:
        break
    recommendations = [
      "Pick one idea from this dump and define a measurable outcome for it",
      "Validate the riskiest assumption with a user before building",
    ]
    if tasks:
      recommendations.append(f"Start with '{tasks[0]['title']}' to build momentum")
    return InsightDraft(short_summary=summary, recommendations=recommendations, suggested_tasks=tasks)

  async def suggest_summary(self, *, recent_summaries: list[list[str]]) -> str:
    bullets = [b.strip().rstrip(".") for group in recent_summaries for b in group[:1] if b.strip()]
    if not bullets:
      return ""
    return ("Focus: " + "; ".join(bullets))[:220]

  async def answer_question(self, *, question: str, context: dict[str, Any], include_examples: bool) -> AnswerDraft:
    stats = context.get("stats") or {}
    total = int(stats.get("totalTasks") or 0)
    done = int(stats.get("completedTasks") or 0)
    open_titles = [t.get("title") for t in context.get("recentTasks") or [] if t.get("status") != "DONE"]
    answer = f"For '{context.get('name') or 'your project'}' you have completed {done} of {total} tasks."
    if open_titles:
      answer += f" Next up: {open_titles[0]}."
    milestones = context.get("upcomingMilestones") or []
    if milestones:
      answer += f" Your next milestone is '{milestones[0].get('title')}'."
    return AnswerDraft(
      answer=answer,
      suggestions=[
        "Which task is blocking the most progress?",
        "What can I cut to hit my next milestone?",
        "How should I split my largest task?",
      ],
      examples=["Small teams often timebox work into one-week cycles"] if include_examples else None,
      suggested_tasks=[],
    )

  async def transcribe(self, *, data: bytes, filename: str | None) -> str:
    try:
      text = data.decode("utf-8").strip()
    except UnicodeDecodeError:
      text = ""
    if text and text.isprintable():
      return text
    return f"[audio note {filename or 'recording'} ({len(data)} bytes)]"


@dataclass
class OpenAICompatibleProvider:
  api_key: str
  base_url: str
  chat_model: str = "gpt-4o"
  transcription_model: str = "whisper-1"
  timeout: float = 60.0

  def _client(self) -> httpx.AsyncClient:
    headers = {"Authorization": f"Bearer {self.api_key}"}
    return httpx.AsyncClient(base_url=self.base_url, headers=headers, timeout=self.timeout)

  async def _chat_json(self, *, system: str, user: str, max_tokens: int) -> dict[str, Any]:
    try:
      async with self._client() as client:
        # OpenAI-compatible chat completions API.
        r = await client.post(
          "/chat/completions",
          json={
            "model": self.chat_model,
            "messages": [
              {"role": "system", "content": system},
              {"role": "user", "content": user},
            ],
            "response_format": {"type": "json_object"},
            "temperature": 0.7,
            "max_tokens": max_tokens,
          },
        )
        r.raise_for_status()
        data = r.json()
      content = data["choices"][0]["message"]["content"] or "{}"
      parsed = json.loads(content)
    except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as exc:
      raise AIProviderError(f"chat completion failed: {exc}") from exc
    if not isinstance(parsed, dict):
      raise AIProviderError("chat completion returned non-object JSON")
    return parsed

  async def generate_insight(self, *, content: str) -> InsightDraft:
    result = await self._chat_json(system=INSIGHT_SYSTEM_PROMPT, user=f"Analyze this idea dump: {content}", max_tokens=1000)
    if "shortSummary" not in result or "recommendations" not in result or "suggestedTasks" not in result:
      raise AIProviderError("Invalid response structure from AI")
    return InsightDraft(
      short_summary=_str_list(result.get("shortSummary")),
      recommendations=_str_list(result.get("recommendations")),
      suggested_tasks=_clean_task_items(result.get("suggestedTasks")),
    )

  async def suggest_summary(self, *, recent_summaries: list[list[str]]) -> str:
    joined = " ".join(" ".join(group) for group in recent_summaries)
    result = await self._chat_json(system=SUMMARY_SYSTEM_PROMPT, user=f"Recent insights: {joined}", max_tokens=100)
    return str(result.get("suggestedSummary") or "")

  async def answer_question(self, *, question: str, context: dict[str, Any], include_examples: bool) -> AnswerDraft:
    stats = context.get("stats") or {}
    examples_line = (
      "Real-world examples from successful projects/companies" if include_examples else "Focus only on their specific project"
    )
    system = (
      "You are an expert project management advisor with deep knowledge of best practices from companies like "
      "Google, Amazon, and successful startups.\n\n"
      "Given a project's context and a user's question, provide:\n"
      "1. A direct, actionable answer based on their project data\n"
      "2. 2-3 follow-up suggestions or questions\n"
      f"3. {examples_line}\n"
      "4. If relevant, suggest 1-2 specific tasks they should create\n\n"
      "Project Context:\n"
      f"- Project: {context.get('name')}\n"
      f"- Summary: {context.get('summary') or 'No summary provided'}\n"
      f"- Progress: {stats.get('completedTasks', 0)}/{stats.get('totalTasks', 0)} tasks completed\n"
      f"- Insights generated: {stats.get('totalInsights', 0)}\n"
      f"- Upcoming milestones: {stats.get('upcomingMilestones', 0)}\n\n"
      "Be specific, practical, and reference their actual project data when answering."
    )
    user = f"Project Details:\n{json.dumps(context, indent=2, default=str)}\n\nUser Question: {question}\n\n{QA_RESPONSE_FORMAT}"
    result = await self._chat_json(system=system, user=user, max_tokens=1500)
    answer = result.get("answer")
    if not answer:
      raise AIProviderError("Invalid AI response structure")
    return AnswerDraft(
      answer=str(answer),
      suggestions=_str_list(result.get("suggestions")),
      examples=_str_list(result.get("examples")) if include_examples else None,
      suggested_tasks=_clean_task_items(result.get("suggestedTasks")),
    )

  async def transcribe(self, *, data: bytes, filename: str | None) -> str:
    ext = ""
    if filename and "." in filename:
      ext = "." + filename.rsplit(".", 1)[1].lower()
    upload_name = f"audio{ext or '.webm'}"
    try:
      async with self._client() as client:
        r = await client.post(
          "/audio/transcriptions",
          data={"model": self.transcription_model},
          files={"file": (upload_name, data, "audio/webm")},
        )
        r.raise_for_status()
        return str(r.json()["text"])
    except (httpx.HTTPError, KeyError, TypeError, ValueError) as exc:
      raise AIProviderError(f"transcription failed: {exc}") from exc


def build_ai_provider(settings: Settings) -> AIProvider:
  if settings.ai_provider.lower() == "openai":
    if not settings.openai_api_key:
      raise RuntimeError("AI_PROVIDER=openai requires OPENAI_API_KEY")
    return OpenAICompatibleProvider(
      api_key=settings.openai_api_key,
      base_url=settings.openai_base_url,
      chat_model=settings.openai_chat_model,
      transcription_model=settings.openai_transcription_model,
      timeout=settings.openai_timeout_seconds,
    )
  return LocalDeterministicProvider()
