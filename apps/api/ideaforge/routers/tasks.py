from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ideaforge.assistant import now_ms
from ideaforge.deps import AuthContext, get_db, require_auth
from ideaforge.errors import NotFound, ValidationFailed
from ideaforge.logging import get_logger
from ideaforge.models import Task
from ideaforge.schemas import SuccessOut, TaskCreateIn, TaskOut, TaskReorderIn, TaskUpdateIn
from ideaforge.scoping import NOT_FOUND_MESSAGES, delete_owned, get_owned, get_owned_project, update_owned

router = APIRouter(prefix="/api", tags=["tasks"])
logger = get_logger(__name__)


def _task_out(t: Task) -> TaskOut:
  return TaskOut(
    id=t.id,
    projectId=t.project_id,
    title=t.title,
    description=t.description,
    status=t.status,
    position=t.position,
    createdAt=t.created_at,
    updatedAt=t.updated_at,
  )


def task_ordering():
  return (Task.position.asc(), Task.created_at.asc(), Task.id.asc())


@router.get("/projects/{project_id}/tasks", response_model=list[TaskOut])
async def list_tasks(project_id: str, auth: AuthContext = Depends(require_auth), db: AsyncSession = Depends(get_db)) -> list[TaskOut]:
  await get_owned_project(db, project_id, auth.account_id)
  res = await db.execute(select(Task).where(Task.project_id == project_id).order_by(*task_ordering()))
  return [_task_out(t) for t in res.scalars().all()]


@router.post("/projects/{project_id}/tasks", response_model=TaskOut)
async def create_task(
  project_id: str,
  payload: TaskCreateIn,
  auth: AuthContext = Depends(require_auth),
  db: AsyncSession = Depends(get_db),
) -> TaskOut:
  await get_owned_project(db, project_id, auth.account_id)
  t = Task(
    project_id=project_id,
    title=payload.title,
    description=payload.description,
    status=payload.status or "TODO",
    position=now_ms(),
  )
  db.add(t)
  await db.commit()
  logger.info("task_created", project_id=project_id, task_id=t.id)
  return _task_out(t)


@router.patch("/tasks/{task_id}", response_model=TaskOut)
async def update_task(task_id: str, payload: TaskUpdateIn, auth: AuthContext = Depends(require_auth), db: AsyncSession = Depends(get_db)) -> TaskOut:
  values: dict = {}
  fields = payload.model_fields_set
  if "title" in fields:
    if payload.title is None:
      raise ValidationFailed("Task title cannot be empty")
    values["title"] = payload.title
  if "description" in fields:
    values["description"] = payload.description
  if "status" in fields:
    if payload.status is None:
      raise ValidationFailed("Task status cannot be empty")
    values["status"] = payload.status
  if "position" in fields:
    if payload.position is None:
      raise ValidationFailed("Task position cannot be empty")
    values["position"] = payload.position

  await update_owned(db, Task, task_id, auth.account_id, values)
  await db.commit()
  t = await get_owned(db, Task, task_id, auth.account_id)
  await db.refresh(t)
  return _task_out(t)


@router.delete("/tasks/{task_id}", response_model=SuccessOut)
async def delete_task(task_id: str, auth: AuthContext = Depends(require_auth), db: AsyncSession = Depends(get_db)) -> SuccessOut:
  await delete_owned(db, Task, task_id, auth.account_id)
  await db.commit()
  logger.info("task_deleted", task_id=task_id)
  return SuccessOut()


@router.patch("/projects/{project_id}/tasks/reorder", response_model=SuccessOut)
async def reorder_tasks(
  project_id: str,
  payload: TaskReorderIn,
  auth: AuthContext = Depends(require_auth),
  db: AsyncSession = Depends(get_db),
) -> SuccessOut:
  """Rewrite positions to list indices. Tasks not listed keep their positions.

  All-or-nothing: if any id is not a task of this (owned) project, nothing changes.
  """
  await get_owned_project(db, project_id, auth.account_id)
  if not payload.orderedIds:
    return SuccessOut()
  res = await db.execute(select(Task.id).where(Task.project_id == project_id, Task.id.in_(payload.orderedIds)))
  found = set(res.scalars().all())
  if len(found) != len(payload.orderedIds):
    raise NotFound(NOT_FOUND_MESSAGES[Task])

  try:
    for index, task_id in enumerate(payload.orderedIds):
      await update_owned(db, Task, task_id, auth.account_id, {"position": index})
  except NotFound:
    await db.rollback()
    raise
  await db.commit()
  logger.info("tasks_reordered", project_id=project_id, count=len(payload.orderedIds))
  return SuccessOut()
