from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ideaforge import assistant
from ideaforge.deps import AI_RATE_LIMIT_MESSAGE, AuthContext, get_db, rate_limited, require_auth
from ideaforge.errors import ValidationFailed
from ideaforge.logging import get_logger
from ideaforge.models import IdeaDump, Insight, Project
from ideaforge.schemas import (
  ProjectCreateIn,
  ProjectOut,
  ProjectUpdateIn,
  SuccessOut,
  SummaryOut,
  SummarySuggestionOut,
  SummaryUpdateIn,
)
from ideaforge.scoping import get_owned_project, owned, update_owned
from ideaforge.services import Services, get_services

router = APIRouter(prefix="/api/projects", tags=["projects"])
logger = get_logger(__name__)

SUMMARY_INSIGHT_WINDOW = 5


def _project_out(p: Project) -> ProjectOut:
  return ProjectOut(
    id=p.id,
    userId=p.user_id,
    name=p.name,
    summaryBanner=p.summary_banner,
    createdAt=p.created_at,
    updatedAt=p.updated_at,
  )


@router.get("", response_model=list[ProjectOut])
async def list_projects(auth: AuthContext = Depends(require_auth), db: AsyncSession = Depends(get_db)) -> list[ProjectOut]:
  res = await db.execute(owned(Project, auth.account_id).order_by(Project.updated_at.desc()))
  return [_project_out(p) for p in res.scalars().all()]


@router.post("", response_model=ProjectOut)
async def create_project(payload: ProjectCreateIn, auth: AuthContext = Depends(require_auth), db: AsyncSession = Depends(get_db)) -> ProjectOut:
  p = Project(user_id=auth.account_id, name=payload.name)
  db.add(p)
  await db.commit()
  logger.info("project_created", project_id=p.id)
  return _project_out(p)


@router.get("/{project_id}", response_model=ProjectOut)
async def get_project(project_id: str, auth: AuthContext = Depends(require_auth), db: AsyncSession = Depends(get_db)) -> ProjectOut:
  return _project_out(await get_owned_project(db, project_id, auth.account_id))


@router.patch("/{project_id}", response_model=ProjectOut)
async def update_project(
  project_id: str,
  payload: ProjectUpdateIn,
  auth: AuthContext = Depends(require_auth),
  db: AsyncSession = Depends(get_db),
) -> ProjectOut:
  values: dict = {}
  if "name" in payload.model_fields_set:
    if payload.name is None:
      raise ValidationFailed("Project name cannot be empty")
    values["name"] = payload.name
  if "summaryBanner" in payload.model_fields_set:
    values["summary_banner"] = payload.summaryBanner
  await update_owned(db, Project, project_id, auth.account_id, values)
  await db.commit()
  p = await get_owned_project(db, project_id, auth.account_id)
  await db.refresh(p)
  return _project_out(p)


@router.get("/{project_id}/summary", response_model=SummaryOut)
async def get_summary(project_id: str, auth: AuthContext = Depends(require_auth), db: AsyncSession = Depends(get_db)) -> SummaryOut:
  p = await get_owned_project(db, project_id, auth.account_id)
  return SummaryOut(summaryBanner=p.summary_banner)


@router.patch("/{project_id}/summary", response_model=SuccessOut)
async def update_summary(
  project_id: str,
  payload: SummaryUpdateIn,
  auth: AuthContext = Depends(require_auth),
  db: AsyncSession = Depends(get_db),
) -> SuccessOut:
  await update_owned(db, Project, project_id, auth.account_id, {"summary_banner": payload.summaryBanner})
  await db.commit()
  return SuccessOut()


@router.post(
  "/{project_id}/summary/suggest",
  response_model=SummarySuggestionOut,
  dependencies=[Depends(rate_limited("ai:summary", "rate_limit_ai_per_hour", AI_RATE_LIMIT_MESSAGE))],
)
async def suggest_summary(
  project_id: str,
  auth: AuthContext = Depends(require_auth),
  db: AsyncSession = Depends(get_db),
  services: Services = Depends(get_services),
) -> SummarySuggestionOut:
  await get_owned_project(db, project_id, auth.account_id)
  res = await db.execute(
    select(Insight.short_summary)
    .join(IdeaDump, Insight.idea_dump_id == IdeaDump.id)
    .where(IdeaDump.project_id == project_id)
    .order_by(Insight.created_at.desc())
    .limit(SUMMARY_INSIGHT_WINDOW)
  )
  recent = [list(s or []) for s in res.scalars().all()]
  if not recent:
    raise ValidationFailed("No insights available to generate summary")
  return SummarySuggestionOut(suggestedSummary=await assistant.suggest_summary(services.ai, recent))
