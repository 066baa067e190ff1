from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
  model_config = SettingsConfigDict(env_file=".env", extra="ignore")

  database_url: str = "postgresql+asyncpg://ideaforge:ideaforge@db:5432/ideaforge"
  app_env: str = "development"  # development | production | test
  app_version: str = "0.1.0"
  log_level: str = "INFO"

  jwt_secret: str = "dev-secret-change-me"
  jwt_issuer: str = "project-management-app"
  jwt_ttl_days: int = 7

  cors_origins: str = "http://localhost:5173"
  frontend_url: str | None = None

  ai_provider: str = "local"  # local | openai
  openai_api_key: str | None = None
  openai_base_url: str = "https://api.openai.com/v1"
  openai_chat_model: str = "gpt-4o"
  openai_transcription_model: str = "whisper-1"
  openai_timeout_seconds: float = 60.0

  # Google Sign-In is disabled unless a Firebase project is configured.
  firebase_project_id: str | None = None

  upload_mode: str = "memory"  # memory | local | supabase
  upload_dir: str = "data/uploads"
  supabase_url: str | None = None
  supabase_service_key: str | None = None
  supabase_storage_bucket: str = "audio-uploads"
  max_audio_bytes: int = 25 * 1024 * 1024

  rate_limit_qa_per_hour: int = 50
  rate_limit_ai_per_hour: int = 100

  def cors_origin_list(self) -> list[str]:
    origins = [o.strip() for o in self.cors_origins.split(",") if o.strip()]
    if self.frontend_url and self.frontend_url not in origins:
      origins.append(self.frontend_url)
    return origins

  @property
  def is_development(self) -> bool:
    return self.app_env.strip().lower() == "development"


settings = Settings()
