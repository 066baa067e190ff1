"""Persistent sinks for uploaded audio.

`upload_mode` selects one of:
- memory: nothing is persisted, bytes only feed transcription
- local: files under `upload_dir`, served from the `/uploads` static mount
- supabase: Supabase Storage bucket, referenced by its public object URL
"""

from __future__ import annotations

import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import httpx

from ideaforge.config import Settings

LOCAL_MOUNT_PATH = "/uploads"


class StorageError(RuntimeError):
  pass


class AudioStore(Protocol):
  mode: str

  async def save(self, *, data: bytes, filename: str | None, content_type: str | None) -> str | None:
    """Persist the bytes and return a stable reference URL (None when not persisted)."""
    ...


def object_name(filename: str | None) -> str:
  ext = os.path.splitext(filename or "")[1].lower()
  return f"{uuid.uuid4().hex}{ext}"


@dataclass
class MemoryAudioStore:
  mode: str = "memory"

  async def save(self, *, data: bytes, filename: str | None, content_type: str | None) -> str | None:
    return None


@dataclass
class LocalAudioStore:
  directory: str
  mode: str = "local"

  async def save(self, *, data: bytes, filename: str | None, content_type: str | None) -> str | None:
    name = object_name(filename)
    try:
      Path(self.directory).mkdir(parents=True, exist_ok=True)
      with open(os.path.join(self.directory, name), "wb") as f:
        f.write(data)
    except OSError as exc:
      raise StorageError(f"could not write upload: {exc}") from exc
    return f"{LOCAL_MOUNT_PATH}/{name}"


@dataclass
class SupabaseAudioStore:
  base_url: str
  service_key: str
  bucket: str
  timeout: float = 30.0
  mode: str = "supabase"

  def public_url(self, name: str) -> str:
    return f"{self.base_url.rstrip('/')}/storage/v1/object/public/{self.bucket}/{name}"

  async def save(self, *, data: bytes, filename: str | None, content_type: str | None) -> str | None:
    name = object_name(filename)
    headers = {
      "Authorization": f"Bearer {self.service_key}",
      "apikey": self.service_key,
      "Content-Type": content_type or "application/octet-stream",
      "x-upsert": "false",
    }
    url = f"{self.base_url.rstrip('/')}/storage/v1/object/{self.bucket}/{name}"
    try:
      async with httpx.AsyncClient(timeout=self.timeout) as client:
        r = await client.post(url, content=data, headers=headers)
        r.raise_for_status()
    except httpx.HTTPError as exc:
      raise StorageError(f"upload to bucket {self.bucket} failed: {exc}") from exc
    return self.public_url(name)


def build_audio_store(settings: Settings) -> AudioStore:
  mode = settings.upload_mode.strip().lower()
  if mode == "local":
    return LocalAudioStore(directory=settings.upload_dir)
  if mode == "supabase":
    if not settings.supabase_url or not settings.supabase_service_key:
      raise RuntimeError("UPLOAD_MODE=supabase requires SUPABASE_URL and SUPABASE_SERVICE_KEY")
    return SupabaseAudioStore(
      base_url=settings.supabase_url,
      service_key=settings.supabase_service_key,
      bucket=settings.supabase_storage_bucket,
    )
  if mode != "memory":
    raise RuntimeError(f"Unknown UPLOAD_MODE: {settings.upload_mode}")
  return MemoryAudioStore()
