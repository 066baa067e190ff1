"""Process-wide collaborators, built once and handed to every request.

The app lifespan builds a `Services` value from settings and stores it on
`app.state.services`; routes receive it through the `get_services`
dependency instead of importing module-level clients. Tests construct their
own `Services` with stub collaborators.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from ideaforge.ai.providers import AIProvider, build_ai_provider
from ideaforge.config import Settings
from ideaforge.db import create_engine, create_sessionmaker
from ideaforge.identity import IdentityVerifier, build_identity_verifier
from ideaforge.metrics import RuntimeMetrics
from ideaforge.rate_limit import RateLimiter
from ideaforge.storage import AudioStore, build_audio_store


@dataclass
class Services:
  settings: Settings
  engine: AsyncEngine
  sessionmaker: async_sessionmaker[AsyncSession]
  ai: AIProvider
  identity: IdentityVerifier | None
  audio_store: AudioStore
  limiter: RateLimiter = field(default_factory=RateLimiter)
  metrics: RuntimeMetrics = field(default_factory=RuntimeMetrics)

  async def aclose(self) -> None:
    await self.engine.dispose()


def build_services(settings: Settings) -> Services:
  engine = create_engine(settings.database_url)
  return Services(
    settings=settings,
    engine=engine,
    sessionmaker=create_sessionmaker(engine),
    ai=build_ai_provider(settings),
    identity=build_identity_verifier(settings.firebase_project_id),
    audio_store=build_audio_store(settings),
  )


def get_services(request: Request) -> Services:
  return request.app.state.services
