from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ideaforge.deps import AuthContext, get_db, require_auth
from ideaforge.models import IdeaDump, Insight
from ideaforge.routers.idea_dumps import insight_out
from ideaforge.schemas import IdeaDumpSourceOut, InsightOut, InsightPinIn, SuccessOut
from ideaforge.scoping import get_owned_project, update_owned

router = APIRouter(prefix="/api", tags=["insights"])


@router.get("/projects/{project_id}/insights", response_model=list[InsightOut])
async def list_insights(project_id: str, auth: AuthContext = Depends(require_auth), db: AsyncSession = Depends(get_db)) -> list[InsightOut]:
  await get_owned_project(db, project_id, auth.account_id)
  res = await db.execute(
    select(Insight, IdeaDump)
    .join(IdeaDump, Insight.idea_dump_id == IdeaDump.id)
    .where(IdeaDump.project_id == project_id)
    .order_by(Insight.created_at.desc())
  )
  return [
    insight_out(
      i,
      ideaDump=IdeaDumpSourceOut(contentText=d.content_text, transcript=d.transcript, audioUrl=d.audio_url, createdAt=d.created_at),
    )
    for i, d in res.all()
  ]


@router.patch("/insights/{insight_id}/pin", response_model=SuccessOut)
async def pin_insight(insight_id: str, payload: InsightPinIn, auth: AuthContext = Depends(require_auth), db: AsyncSession = Depends(get_db)) -> SuccessOut:
  await update_owned(db, Insight, insight_id, auth.account_id, {"pinned": payload.pinned})
  await db.commit()
  return SuccessOut()
