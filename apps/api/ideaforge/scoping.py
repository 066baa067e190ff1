"""Tenant-scoped data access.

Every lookup or mutation of a project, or of anything hanging off one,
goes through these helpers so the owner predicate is part of the same
statement that finds the row:

- Project: `projects.user_id = caller`
- Task / Milestone / IdeaDump / QAQuestion: parent project owned by caller
- Insight: idea dump -> project owned by caller

Rows that do not exist and rows owned by someone else both surface as
`NotFound`, so callers cannot probe for other accounts' ids.
"""

from __future__ import annotations

from typing import Any, TypeVar

from sqlalchemy import ColumnElement, Select, delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ideaforge.errors import NotFound
from ideaforge.models import Base, IdeaDump, Insight, Milestone, Project, QAQuestion, Task

ModelT = TypeVar("ModelT", bound=Base)

NOT_FOUND_MESSAGES: dict[type[Base], str] = {
  Project: "Project not found",
  Task: "Task not found",
  Milestone: "Milestone not found",
  IdeaDump: "Idea dump not found",
  Insight: "Insight not found",
  QAQuestion: "Question not found",
}


def owned_project_ids(account_id: str) -> Select:
  return select(Project.id).where(Project.user_id == account_id)


def owned_idea_dump_ids(account_id: str) -> Select:
  return select(IdeaDump.id).join(Project, IdeaDump.project_id == Project.id).where(Project.user_id == account_id)


def owner_clause(model: type[Base], account_id: str) -> ColumnElement[bool]:
  if model is Project:
    return Project.user_id == account_id
  if model is Insight:
    return Insight.idea_dump_id.in_(owned_idea_dump_ids(account_id))
  return model.project_id.in_(owned_project_ids(account_id))


def owned(model: type[ModelT], account_id: str) -> Select:
  """SELECT of `model` restricted to rows reachable from the caller's projects."""
  if model is Project:
    return select(Project).where(Project.user_id == account_id)
  if model is Insight:
    return (
      select(Insight)
      .join(IdeaDump, Insight.idea_dump_id == IdeaDump.id)
      .join(Project, IdeaDump.project_id == Project.id)
      .where(Project.user_id == account_id)
    )
  return select(model).join(Project, model.project_id == Project.id).where(Project.user_id == account_id)


async def get_owned(db: AsyncSession, model: type[ModelT], row_id: str, account_id: str) -> ModelT:
  res = await db.execute(owned(model, account_id).where(model.id == row_id))
  row = res.scalar_one_or_none()
  if row is None:
    raise NotFound(NOT_FOUND_MESSAGES[model])
  return row


async def get_owned_project(db: AsyncSession, project_id: str, account_id: str) -> Project:
  return await get_owned(db, Project, project_id, account_id)


async def update_owned(db: AsyncSession, model: type[ModelT], row_id: str, account_id: str, values: dict[str, Any]) -> None:
  """Apply `values` in one UPDATE whose WHERE carries both the id and the owner chain."""
  if not values:
    await get_owned(db, model, row_id, account_id)
    return
  stmt = (
    update(model)
    .where(model.id == row_id, owner_clause(model, account_id))
    .values(**values)
    .execution_options(synchronize_session=False)
  )
  res = await db.execute(stmt)
  if res.rowcount == 0:
    raise NotFound(NOT_FOUND_MESSAGES[model])


async def delete_owned(db: AsyncSession, model: type[ModelT], row_id: str, account_id: str) -> None:
  stmt = delete(model).where(model.id == row_id, owner_clause(model, account_id)).execution_options(synchronize_session=False)
  res = await db.execute(stmt)
  if res.rowcount == 0:
    raise NotFound(NOT_FOUND_MESSAGES[model])