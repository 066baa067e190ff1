"""LLM-backed flows with their fallbacks.

Insight generation, banner suggestion and Q&A degrade to canned content when
the provider fails. Transcription does not: a failed transcription surfaces
as an upstream error because there is nothing sensible to store.
"""

from __future__ import annotations

import time
from datetime import timedelta
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ideaforge.ai.providers import AIProvider, AIProviderError, AnswerDraft, InsightDraft
from ideaforge.errors import UpstreamServiceError
from ideaforge.logging import get_logger
from ideaforge.models import IdeaDump, Insight, Milestone, Project, Task, utcnow

logger = get_logger(__name__)

MIN_INSIGHT_CONTENT_CHARS = 10

FALLBACK_INSIGHT = InsightDraft(
  short_summary=["Failed to generate summary. Please try again."],
  recommendations=["Unable to generate recommendations at this time."],
  suggested_tasks=[],
)

FALLBACK_QA_SUGGESTIONS = [
  "What are my highest priority tasks?",
  "How can I improve my project velocity?",
  "What should I focus on this week?",
]
FALLBACK_QA_EXAMPLES = [
  "Many successful teams use weekly sprints to maintain momentum",
  "Google's OKR system helps align tasks with larger goals",
]

GENERIC_QUESTION_SUGGESTIONS = [
  "What should I focus on next?",
  "Are there any bottlenecks in my project?",
  "How can I improve my project's progress?",
  "What are similar projects doing differently?",
  "What tasks should I prioritize this week?",
]
BACKLOG_SUGGESTION = "How can I better manage my task backlog?"
MILESTONE_SUGGESTION = "What do I need to complete for my upcoming milestone?"
MAX_QUESTION_SUGGESTIONS = 5
BACKLOG_THRESHOLD = 5


def now_ms() -> int:
  return int(time.time() * 1000)


async def generate_insight(ai: AIProvider, content: str) -> InsightDraft:
  if len((content or "").strip()) < MIN_INSIGHT_CONTENT_CHARS:
    logger.info("insight_content_too_short", length=len((content or "").strip()))
    return _fallback_insight()
  try:
    return await ai.generate_insight(content=content)
  except AIProviderError as exc:
    logger.warning("insight_generation_failed", error=str(exc))
    return _fallback_insight()


def _fallback_insight() -> InsightDraft:
  return InsightDraft(
    short_summary=list(FALLBACK_INSIGHT.short_summary),
    recommendations=list(FALLBACK_INSIGHT.recommendations),
    suggested_tasks=[],
  )


async def suggest_summary(ai: AIProvider, recent_summaries: list[list[str]]) -> str:
  if not recent_summaries:
    return ""
  try:
    suggestion = await ai.suggest_summary(recent_summaries=recent_summaries)
  except AIProviderError as exc:
    logger.warning("summary_suggestion_failed", error=str(exc))
    return ""
  return suggestion.strip()[:220]


async def answer_question(ai: AIProvider, *, question: str, context: dict[str, Any], include_examples: bool) -> AnswerDraft:
  try:
    draft = await ai.answer_question(question=question, context=context, include_examples=include_examples)
  except AIProviderError as exc:
    logger.warning("qa_generation_failed", error=str(exc))
    stats = context.get("stats") or {}
    return AnswerDraft(
      answer=(
        "I'm having trouble analyzing your project right now. Based on what I can see, you have "
        f"{stats.get('totalTasks', 0)} tasks with {stats.get('completedTasks', 0)} completed. "
        "Try asking about specific aspects of your project like task prioritization or milestone planning."
      ),
      suggestions=list(FALLBACK_QA_SUGGESTIONS),
      examples=list(FALLBACK_QA_EXAMPLES) if include_examples else None,
      suggested_tasks=[],
    )
  if not include_examples:
    draft.examples = None
  return draft


async def transcribe(ai: AIProvider, *, data: bytes, filename: str | None) -> str:
  try:
    return await ai.transcribe(data=data, filename=filename)
  except AIProviderError as exc:
    logger.warning("transcription_failed", error=str(exc))
    raise UpstreamServiceError("Failed to transcribe audio") from exc


def spawn_tasks(db: AsyncSession, project_id: str, items: list[dict[str, Any]], *, default_description: str | None = None) -> list[Task]:
  """Add one TODO task per suggested item; positions follow creation order."""
  base = now_ms()
  created: list[Task] = []
  for index, item in enumerate(items):
    title = str(item.get("title") or "").strip()
    if not title:
      continue
    t = Task(
      project_id=project_id,
      title=title[:200],
      description=item.get("description") or default_description,
      status="TODO",
      position=base + index,
    )
    db.add(t)
    created.append(t)
  return created


async def build_project_context(db: AsyncSession, project: Project) -> dict[str, Any]:
  """Snapshot handed to the Q&A provider."""
  now = utcnow()
  tres = await db.execute(select(Task).where(Task.project_id == project.id).order_by(Task.updated_at.desc()).limit(10))
  recent_tasks = tres.scalars().all()
  mres = await db.execute(
    select(Milestone)
    .where(Milestone.project_id == project.id, Milestone.due_date.is_not(None), Milestone.due_date >= now)
    .order_by(Milestone.due_date.asc())
    .limit(5)
  )
  milestones = mres.scalars().all()
  ires = await db.execute(
    select(Insight, IdeaDump)
    .join(IdeaDump, Insight.idea_dump_id == IdeaDump.id)
    .where(IdeaDump.project_id == project.id)
    .order_by(Insight.created_at.desc())
    .limit(10)
  )
  insights = ires.all()

  total_tasks = await _count(db, select(func.count()).select_from(Task).where(Task.project_id == project.id))
  completed_tasks = await _count(db, select(func.count()).select_from(Task).where(Task.project_id == project.id, Task.status == "DONE"))
  total_insights = await _count(
    db,
    select(func.count()).select_from(Insight).join(IdeaDump, Insight.idea_dump_id == IdeaDump.id).where(IdeaDump.project_id == project.id),
  )

  return {
    "name": project.name,
    "summary": project.summary_banner,
    "stats": {
      "totalTasks": total_tasks,
      "completedTasks": completed_tasks,
      "totalInsights": total_insights,
      "upcomingMilestones": len(milestones),
    },
    "recentTasks": [{"title": t.title, "status": t.status, "description": t.description} for t in recent_tasks],
    "upcomingMilestones": [
      {"title": m.title, "description": m.description, "dueDate": m.due_date.isoformat() if m.due_date else None} for m in milestones
    ],
    "recentInsights": [
      {
        "summary": i.short_summary,
        "recommendations": i.recommendations,
        "suggestedTasks": i.suggested_tasks,
        "source": d.content_text or d.transcript,
        "date": i.created_at.isoformat(),
      }
      for i, d in insights
    ],
  }


async def question_suggestions(db: AsyncSession, project_id: str) -> list[str]:
  now = utcnow()
  backlog = await _count(db, select(func.count()).select_from(Task).where(Task.project_id == project_id, Task.status == "TODO"))
  soon = await _count(
    db,
    select(func.count())
    .select_from(Milestone)
    .where(Milestone.project_id == project_id, Milestone.due_date >= now, Milestone.due_date <= now + timedelta(days=7)),
  )

  contextual: list[str] = []
  if backlog > BACKLOG_THRESHOLD:
    contextual.append(BACKLOG_SUGGESTION)
  if soon > 0:
    contextual.append(MILESTONE_SUGGESTION)
  return (contextual + GENERIC_QUESTION_SUGGESTIONS)[:MAX_QUESTION_SUGGESTIONS]


async def _count(db: AsyncSession, stmt) -> int:
  res = await db.execute(stmt)
  return int(res.scalar_one() or 0)
