from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ideaforge.deps import AuthContext, get_db, require_auth
from ideaforge.errors import ValidationFailed
from ideaforge.models import Milestone
from ideaforge.schemas import InvalidDate, MilestoneCreateIn, MilestoneOut, MilestoneUpdateIn, SuccessOut, parse_due_date
from ideaforge.scoping import delete_owned, get_owned, get_owned_project, update_owned

router = APIRouter(prefix="/api", tags=["milestones"])


def _milestone_out(m: Milestone) -> MilestoneOut:
  return MilestoneOut(
    id=m.id,
    projectId=m.project_id,
    title=m.title,
    description=m.description,
    dueDate=m.due_date,
    createdAt=m.created_at,
    updatedAt=m.updated_at,
  )


def _due_date(value: str | None):
  try:
    return parse_due_date(value)
  except InvalidDate:
    raise ValidationFailed("Invalid date format") from None


@router.get("/projects/{project_id}/milestones", response_model=list[MilestoneOut])
async def list_milestones(project_id: str, auth: AuthContext = Depends(require_auth), db: AsyncSession = Depends(get_db)) -> list[MilestoneOut]:
  await get_owned_project(db, project_id, auth.account_id)
  res = await db.execute(
    select(Milestone)
    .where(Milestone.project_id == project_id)
    # Undated milestones last on every backend.
    .order_by(Milestone.due_date.is_(None), Milestone.due_date.asc(), Milestone.created_at.asc())
  )
  return [_milestone_out(m) for m in res.scalars().all()]


@router.post("/projects/{project_id}/milestones", response_model=MilestoneOut)
async def create_milestone(
  project_id: str,
  payload: MilestoneCreateIn,
  auth: AuthContext = Depends(require_auth),
  db: AsyncSession = Depends(get_db),
) -> MilestoneOut:
  await get_owned_project(db, project_id, auth.account_id)
  m = Milestone(
    project_id=project_id,
    title=payload.title,
    description=payload.description or None,
    due_date=_due_date(payload.dueDate),
  )
  db.add(m)
  await db.commit()
  return _milestone_out(m)


@router.patch("/milestones/{milestone_id}", response_model=MilestoneOut)
async def update_milestone(
  milestone_id: str,
  payload: MilestoneUpdateIn,
  auth: AuthContext = Depends(require_auth),
  db: AsyncSession = Depends(get_db),
) -> MilestoneOut:
  values: dict = {}
  fields = payload.model_fields_set
  if "title" in fields:
    if payload.title is None:
      raise ValidationFailed("Milestone title cannot be empty")
    values["title"] = payload.title
  if "description" in fields:
    values["description"] = payload.description or None
  if "dueDate" in fields:
    values["due_date"] = _due_date(payload.dueDate)

  await update_owned(db, Milestone, milestone_id, auth.account_id, values)
  await db.commit()
  m = await get_owned(db, Milestone, milestone_id, auth.account_id)
  await db.refresh(m)
  return _milestone_out(m)


@router.delete("/milestones/{milestone_id}", response_model=SuccessOut)
async def delete_milestone(milestone_id: str, auth: AuthContext = Depends(require_auth), db: AsyncSession = Depends(get_db)) -> SuccessOut:
  await delete_owned(db, Milestone, milestone_id, auth.account_id)
  await db.commit()
  return SuccessOut()
