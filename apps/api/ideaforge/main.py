from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from time import monotonic

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from ideaforge.config import Settings, settings as default_settings
from ideaforge.errors import install_error_handlers
from ideaforge.logging import bind_request_context, clear_request_context, configure_logging, get_logger
from ideaforge.routers.auth import router as auth_router
from ideaforge.routers.idea_dumps import router as idea_dumps_router
from ideaforge.routers.insights import router as insights_router
from ideaforge.routers.milestones import router as milestones_router
from ideaforge.routers.projects import router as projects_router
from ideaforge.routers.qa import router as qa_router
from ideaforge.routers.tasks import router as tasks_router
from ideaforge.services import Services, build_services
from ideaforge.storage import LOCAL_MOUNT_PATH

logger = get_logger(__name__)

PLACEHOLDER_SECRETS = {"", "dev-secret-change-me", "change-me", "changeme", "secret"}


def _check_production_settings(s: Settings) -> None:
  if s.app_env.strip().lower() in {"development", "test"}:
    return
  if s.jwt_secret.strip() in PLACEHOLDER_SECRETS or len(s.jwt_secret.strip()) < 32:
    raise RuntimeError("JWT_SECRET must be set to a strong value outside development")


def create_app(*, settings: Settings | None = None, services: Services | None = None) -> FastAPI:
  s = services.settings if services is not None else (settings or default_settings)

  @asynccontextmanager
  async def lifespan(app: FastAPI):
    configure_logging(level=s.log_level, json_format=not s.is_development)
    _check_production_settings(s)
    owned = getattr(app.state, "services", None) is None
    if owned:
      app.state.services = build_services(s)
    logger.info(
      "app_started",
      env=s.app_env,
      version=s.app_version,
      ai=s.ai_provider,
      storage=app.state.services.audio_store.mode,
      firebase=app.state.services.identity is not None,
    )
    try:
      yield
    finally:
      if owned:
        await app.state.services.aclose()
      logger.info("app_stopped")

  app = FastAPI(title="IdeaForge API", version=s.app_version, lifespan=lifespan)
  if services is not None:
    app.state.services = services

  install_error_handlers(app, expose_internal_errors=s.is_development)

  app.add_middleware(
    CORSMiddleware,
    allow_origins=s.cors_origin_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
  )

  app.include_router(auth_router)
  app.include_router(projects_router)
  app.include_router(tasks_router)
  app.include_router(milestones_router)
  app.include_router(idea_dumps_router)
  app.include_router(insights_router)
  app.include_router(qa_router)

  if s.upload_mode.strip().lower() == "local":
    app.mount(LOCAL_MOUNT_PATH, StaticFiles(directory=s.upload_dir, check_dir=False), name="uploads")

  @app.middleware("http")
  async def _request_metrics_middleware(request: Request, call_next):
    clear_request_context()
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
    bind_request_context(request_id=request_id, method=request.method, path=request.url.path)
    start = monotonic()
    services: Services | None = getattr(request.app.state, "services", None)
    try:
      response = await call_next(request)
    except Exception:
      elapsed_ms = (monotonic() - start) * 1000.0
      if services is not None:
        services.metrics.observe_request(500, elapsed_ms)
      logger.error("request_failed", status=500, latency_ms=round(elapsed_ms, 2))
      raise
    elapsed_ms = (monotonic() - start) * 1000.0
    if services is not None:
      services.metrics.observe_request(response.status_code, elapsed_ms)
    logger.info("request_completed", status=response.status_code, latency_ms=round(elapsed_ms, 2))
    response.headers.setdefault("X-Request-ID", request_id)
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    return response

  @app.get("/health")
  async def health(request: Request) -> dict:
    services: Services = request.app.state.services
    return {
      "status": "ok",
      "storage": services.audio_store.mode,
      "firebase": "configured" if services.identity is not None else "disabled",
      "ai": services.settings.ai_provider,
    }

  @app.get("/metrics")
  async def metrics(request: Request) -> dict:
    return request.app.state.services.metrics.snapshot()

  return app


app = create_app()
