from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ideaforge import assistant
from ideaforge.deps import QA_RATE_LIMIT_MESSAGE, AuthContext, get_db, rate_limited, require_auth
from ideaforge.logging import get_logger
from ideaforge.models import QAQuestion
from ideaforge.schemas import AnswerOut, AskQuestionIn, FeedbackIn, QuestionOut, QuestionSuggestionsOut, SuccessOut, SuggestedTaskOut
from ideaforge.scoping import get_owned_project, update_owned
from ideaforge.services import Services, get_services

router = APIRouter(prefix="/api", tags=["qa"])
logger = get_logger(__name__)

HISTORY_LIMIT = 20


def _question_out(q: QAQuestion) -> QuestionOut:
  return QuestionOut(
    id=q.id,
    projectId=q.project_id,
    question=q.question,
    answer=q.answer,
    suggestions=list(q.suggestions or []),
    examples=list(q.examples or []),
    helpful=q.helpful,
    createdAt=q.created_at,
  )


@router.get("/projects/{project_id}/qa/history", response_model=list[QuestionOut])
async def qa_history(project_id: str, auth: AuthContext = Depends(require_auth), db: AsyncSession = Depends(get_db)) -> list[QuestionOut]:
  await get_owned_project(db, project_id, auth.account_id)
  res = await db.execute(
    select(QAQuestion).where(QAQuestion.project_id == project_id).order_by(QAQuestion.created_at.desc()).limit(HISTORY_LIMIT)
  )
  return [_question_out(q) for q in res.scalars().all()]


@router.get("/projects/{project_id}/qa/suggestions", response_model=QuestionSuggestionsOut)
async def qa_suggestions(project_id: str, auth: AuthContext = Depends(require_auth), db: AsyncSession = Depends(get_db)) -> QuestionSuggestionsOut:
  await get_owned_project(db, project_id, auth.account_id)
  return QuestionSuggestionsOut(suggestions=await assistant.question_suggestions(db, project_id))


@router.post(
  "/projects/{project_id}/qa/ask",
  response_model=AnswerOut,
  response_model_exclude_none=True,
  dependencies=[Depends(rate_limited("qa:ask", "rate_limit_qa_per_hour", QA_RATE_LIMIT_MESSAGE))],
)
async def ask_question(
  project_id: str,
  payload: AskQuestionIn,
  auth: AuthContext = Depends(require_auth),
  db: AsyncSession = Depends(get_db),
  services: Services = Depends(get_services),
) -> AnswerOut:
  project = await get_owned_project(db, project_id, auth.account_id)
  context = await assistant.build_project_context(db, project)
  draft = await assistant.answer_question(services.ai, question=payload.question, context=context, include_examples=payload.includeExamples)

  q = QAQuestion(
    project_id=project_id,
    question=payload.question,
    answer=draft.answer,
    suggestions=list(draft.suggestions or []),
    examples=list(draft.examples or []),
    helpful=None,
  )
  db.add(q)
  await db.commit()

  if draft.suggested_tasks:
    assistant.spawn_tasks(
      db,
      project_id,
      draft.suggested_tasks,
      default_description=f"Suggested from Q&A: {payload.question[:50]}...",
    )
    await db.commit()
  logger.info("question_answered", project_id=project_id, question_id=q.id, spawned_tasks=len(draft.suggested_tasks))

  return AnswerOut(
    id=q.id,
    question=q.question,
    answer=q.answer,
    suggestions=list(q.suggestions),
    examples=list(q.examples) if payload.includeExamples else None,
    suggestedTasks=[SuggestedTaskOut(**t) for t in draft.suggested_tasks],
    createdAt=q.created_at,
  )


@router.patch("/qa/{question_id}/feedback", response_model=SuccessOut)
async def question_feedback(
  question_id: str,
  payload: FeedbackIn,
  auth: AuthContext = Depends(require_auth),
  db: AsyncSession = Depends(get_db),
) -> SuccessOut:
  await update_owned(db, QAQuestion, question_id, auth.account_id, {"helpful": payload.helpful})
  await db.commit()
  return SuccessOut()
