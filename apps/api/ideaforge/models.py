from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, BigInteger, Boolean, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

TASK_STATUSES = ("TODO", "IN_PROGRESS", "DONE")


def utcnow() -> datetime:
  return datetime.now(timezone.utc)


def new_id() -> str:
  return str(uuid.uuid4())


class Base(DeclarativeBase):
  pass


class User(Base):
  __tablename__ = "users"

  id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
  email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True, index=True)
  password_hash: Mapped[str | None] = mapped_column(String, nullable=True)
  firebase_uid: Mapped[str | None] = mapped_column(String(128), nullable=True, unique=True, index=True)
  display_name: Mapped[str | None] = mapped_column(String, nullable=True)
  photo_url: Mapped[str | None] = mapped_column(String, nullable=True)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class Project(Base):
  __tablename__ = "projects"

  id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
  user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
  name: Mapped[str] = mapped_column(String(100), nullable=False)
  summary_banner: Mapped[str | None] = mapped_column(String(220), nullable=True)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class Task(Base):
  __tablename__ = "tasks"

  id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
  project_id: Mapped[str] = mapped_column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
  title: Mapped[str] = mapped_column(String(200), nullable=False)
  description: Mapped[str | None] = mapped_column(Text, nullable=True)
  status: Mapped[str] = mapped_column(String(16), nullable=False, default="TODO")
  # Epoch milliseconds on create, dense 0..N-1 after a reorder.
  position: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class Milestone(Base):
  __tablename__ = "milestones"

  id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
  project_id: Mapped[str] = mapped_column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
  title: Mapped[str] = mapped_column(String(200), nullable=False)
  description: Mapped[str | None] = mapped_column(Text, nullable=True)
  due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class IdeaDump(Base):
  __tablename__ = "idea_dumps"

  id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
  project_id: Mapped[str] = mapped_column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
  user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
  content_text: Mapped[str | None] = mapped_column(Text, nullable=True)
  audio_url: Mapped[str | None] = mapped_column(String, nullable=True)
  transcript: Mapped[str | None] = mapped_column(Text, nullable=True)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class Insight(Base):
  __tablename__ = "insights"

  id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
  idea_dump_id: Mapped[str] = mapped_column(String(36), ForeignKey("idea_dumps.id", ondelete="CASCADE"), nullable=False, index=True)
  short_summary: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
  recommendations: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
  suggested_tasks: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
  pinned: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class QAQuestion(Base):
  __tablename__ = "qa_questions"

  id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
  project_id: Mapped[str] = mapped_column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
  question: Mapped[str] = mapped_column(Text, nullable=False)
  answer: Mapped[str] = mapped_column(Text, nullable=False)
  suggestions: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
  examples: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
  helpful: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
