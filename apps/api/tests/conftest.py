from __future__ import annotations

import secrets
import sys
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
  sys.path.insert(0, str(ROOT))

from ideaforge.ai.providers import LocalDeterministicProvider
from ideaforge.config import Settings
from ideaforge.db import create_engine, create_sessionmaker
from ideaforge.main import create_app
from ideaforge.models import Base
from ideaforge.services import Services
from ideaforge.storage import MemoryAudioStore


@pytest.fixture(scope="session")
def anyio_backend() -> str:
  return "asyncio"


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
  return Settings(
    _env_file=None,
    database_url=f"sqlite+aiosqlite:///{tmp_path / 'ideaforge_test.db'}",
    app_env="test",
    ai_provider="local",
    upload_mode="memory",
    firebase_project_id=None,
    max_audio_bytes=1024,
  )


@pytest.fixture
async def services(test_settings: Settings) -> Services:
  engine = create_engine(test_settings.database_url)
  async with engine.begin() as conn:
    await conn.run_sync(Base.metadata.create_all)
  svc = Services(
    settings=test_settings,
    engine=engine,
    sessionmaker=create_sessionmaker(engine),
    ai=LocalDeterministicProvider(),
    identity=None,
    audio_store=MemoryAudioStore(),
  )
  yield svc
  await svc.aclose()


@pytest.fixture
async def client(services: Services) -> AsyncClient:
  app = create_app(services=services)
  transport = ASGITransport(app=app)
  async with AsyncClient(transport=transport, base_url="http://localhost") as c:
    yield c


def auth_headers(token: str) -> dict[str, str]:
  return {"Authorization": f"Bearer {token}"}


async def register(client: AsyncClient, email: str | None = None, password: str = "secret123") -> dict:
  email = email or f"user-{secrets.token_hex(4)}@example.com"
  res = await client.post("/api/auth/register", json={"email": email, "password": password})
  assert res.status_code == 200, res.text
  body = res.json()
  return {"token": body["token"], "user": body["user"], "headers": auth_headers(body["token"]), "email": email}


async def create_project(client: AsyncClient, headers: dict[str, str], name: str = "Launch") -> dict:
  res = await client.post("/api/projects", json={"name": name}, headers=headers)
  assert res.status_code == 200, res.text
  return res.json()


async def create_task(client: AsyncClient, headers: dict[str, str], project_id: str, title: str, **extra) -> dict:
  res = await client.post(f"/api/projects/{project_id}/tasks", json={"title": title, **extra}, headers=headers)
  assert res.status_code == 200, res.text
  return res.json()
