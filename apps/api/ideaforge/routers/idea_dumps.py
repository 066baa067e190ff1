from __future__ import annotations

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from ideaforge import assistant
from ideaforge.deps import AuthContext, get_db, require_auth
from ideaforge.errors import UpstreamServiceError
from ideaforge.logging import get_logger
from ideaforge.models import IdeaDump, Insight
from ideaforge.schemas import IdeaDumpCreatedOut, IdeaDumpOut, InsightOut, SuggestedTaskOut, TextIdeaDumpIn
from ideaforge.scoping import get_owned_project
from ideaforge.services import Services, get_services
from ideaforge.storage import StorageError
from ideaforge.uploads import accept_audio_upload

router = APIRouter(prefix="/api/projects", tags=["idea-dumps"])
logger = get_logger(__name__)


def _idea_dump_out(d: IdeaDump) -> IdeaDumpOut:
  return IdeaDumpOut(
    id=d.id,
    projectId=d.project_id,
    userId=d.user_id,
    contentText=d.content_text,
    audioUrl=d.audio_url,
    transcript=d.transcript,
    createdAt=d.created_at,
  )


def insight_out(i: Insight, **extra) -> InsightOut:
  return InsightOut(
    id=i.id,
    ideaDumpId=i.idea_dump_id,
    shortSummary=list(i.short_summary or []),
    recommendations=list(i.recommendations or []),
    suggestedTasks=[SuggestedTaskOut(**t) for t in (i.suggested_tasks or [])],
    pinned=i.pinned,
    createdAt=i.created_at,
    **extra,
  )


async def _record_idea_dump(db: AsyncSession, services: Services, dump: IdeaDump, content: str) -> IdeaDumpCreatedOut:
  # Dump, insight and spawned tasks commit separately; a later failure leaves the earlier rows in place.
  db.add(dump)
  await db.commit()

  draft = await assistant.generate_insight(services.ai, content)
  insight = Insight(
    idea_dump_id=dump.id,
    short_summary=draft.short_summary,
    recommendations=draft.recommendations,
    suggested_tasks=draft.suggested_tasks,
  )
  db.add(insight)
  await db.commit()

  tasks = assistant.spawn_tasks(db, dump.project_id, draft.suggested_tasks)
  if tasks:
    await db.commit()
  logger.info("idea_dump_created", project_id=dump.project_id, idea_dump_id=dump.id, spawned_tasks=len(tasks))
  return IdeaDumpCreatedOut(ideaDump=_idea_dump_out(dump), insight=insight_out(insight))


@router.post("/{project_id}/idea-dumps/text", response_model=IdeaDumpCreatedOut)
async def create_text_idea_dump(
  project_id: str,
  payload: TextIdeaDumpIn,
  auth: AuthContext = Depends(require_auth),
  db: AsyncSession = Depends(get_db),
  services: Services = Depends(get_services),
) -> IdeaDumpCreatedOut:
  await get_owned_project(db, project_id, auth.account_id)
  dump = IdeaDump(project_id=project_id, user_id=auth.account_id, content_text=payload.contentText)
  return await _record_idea_dump(db, services, dump, payload.contentText)


@router.post("/{project_id}/idea-dumps/audio", response_model=IdeaDumpCreatedOut)
async def create_audio_idea_dump(
  project_id: str,
  file: UploadFile | None = File(default=None),
  auth: AuthContext = Depends(require_auth),
  db: AsyncSession = Depends(get_db),
  services: Services = Depends(get_services),
) -> IdeaDumpCreatedOut:
  upload = await accept_audio_upload(file, max_bytes=services.settings.max_audio_bytes)
  await get_owned_project(db, project_id, auth.account_id)
  logger.info("audio_received", project_id=project_id, size_bytes=upload.size_bytes, content_type=upload.content_type)

  try:
    audio_url = await services.audio_store.save(data=upload.data, filename=upload.filename, content_type=upload.content_type)
  except StorageError as exc:
    logger.warning("audio_store_failed", mode=services.audio_store.mode, error=str(exc))
    raise UpstreamServiceError("Failed to upload audio") from exc

  transcript = await assistant.transcribe(services.ai, data=upload.data, filename=upload.filename)
  dump = IdeaDump(project_id=project_id, user_id=auth.account_id, audio_url=audio_url, transcript=transcript)
  return await _record_idea_dump(db, services, dump, transcript)
