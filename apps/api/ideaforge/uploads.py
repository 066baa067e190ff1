from __future__ import annotations

import os
from dataclasses import dataclass

from fastapi import UploadFile

from ideaforge.errors import PayloadTooLarge, ValidationFailed

ALLOWED_AUDIO_MIMES = frozenset(
  {
    "audio/mpeg",
    "audio/wav",
    "audio/wave",
    "audio/webm",
    "audio/mp4",
    "audio/ogg",
    "audio/opus",
    "audio/flac",
    "audio/x-m4a",
    "audio/mp3",
    "audio/x-wav",
    "audio/x-flac",
    # Browsers send these for audio-only recordings.
    "video/webm",
    "application/octet-stream",
  }
)
ALLOWED_AUDIO_EXTS = frozenset({".mp3", ".wav", ".webm", ".ogg", ".m4a", ".opus", ".flac", ".mp4"})


@dataclass(frozen=True)
class AcceptedUpload:
  data: bytes
  filename: str | None
  content_type: str

  @property
  def size_bytes(self) -> int:
    return len(self.data)


def is_allowed_audio(content_type: str | None, filename: str | None) -> bool:
  mime = (content_type or "").split(";", 1)[0].strip().lower()
  ext = os.path.splitext(filename or "")[1].lower()
  return mime in ALLOWED_AUDIO_MIMES or ext in ALLOWED_AUDIO_EXTS


async def accept_audio_upload(file: UploadFile | None, *, max_bytes: int) -> AcceptedUpload:
  """Validate a single multipart audio file and read it into memory."""
  if file is None or (not file.filename and not file.size):
    raise ValidationFailed("No audio file provided")
  content_type = file.content_type or "application/octet-stream"
  if not is_allowed_audio(content_type, file.filename):
    raise ValidationFailed(f"Invalid file type. Only audio files are allowed. Received: {content_type}")
  data = await file.read(int(max_bytes) + 1)
  if len(data) > int(max_bytes):
    raise PayloadTooLarge("File too large")
  return AcceptedUpload(data=data, filename=file.filename, content_type=content_type)
