from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field, field_validator

TaskStatus = Literal["TODO", "IN_PROGRESS", "DONE"]

_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class InvalidDate(ValueError):
  pass


def parse_due_date(value: str | None) -> datetime | None:
  """Accept ISO-8601 dates/datetimes; blank clears. Naive values are taken as UTC."""
  if value is None:
    return None
  s = value.strip()
  if not s:
    return None
  try:
    if _DATE_ONLY_RE.fullmatch(s):
      dt = datetime.fromisoformat(s)
    else:
      dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
  except ValueError as exc:
    raise InvalidDate(s) from exc
  if dt.tzinfo is None:
    return dt.replace(tzinfo=timezone.utc)
  return dt.astimezone(timezone.utc)


def _strip_email(value: str) -> str:
  v = (value or "").strip().lower()
  if "@" not in v or v.startswith("@") or v.endswith("@"):
    raise ValueError("Invalid email")
  return v


# Auth


class RegisterIn(BaseModel):
  email: str = Field(min_length=3, max_length=320)
  password: str = Field(min_length=6, max_length=200)

  @field_validator("email")
  @classmethod
  def _normalize_email(cls, v: str) -> str:
    return _strip_email(v)


class LoginIn(BaseModel):
  email: str = Field(min_length=1, max_length=320)
  password: str = Field(min_length=1, max_length=200)


class GoogleSignInIn(BaseModel):
  idToken: str = Field(min_length=1)


class AccountOut(BaseModel):
  id: str
  email: str
  isGuest: bool | None = None
  displayName: str | None = None
  photoUrl: str | None = None


class TokenOut(BaseModel):
  token: str
  user: AccountOut


class MeOut(BaseModel):
  id: str
  email: str
  displayName: str | None = None
  photoUrl: str | None = None
  createdAt: datetime


# Projects


class ProjectCreateIn(BaseModel):
  name: str = Field(min_length=1, max_length=100)


class ProjectUpdateIn(BaseModel):
  name: str | None = Field(default=None, min_length=1, max_length=100)
  summaryBanner: str | None = Field(default=None, max_length=220)


class ProjectOut(BaseModel):
  id: str
  userId: str
  name: str
  summaryBanner: str | None = None
  createdAt: datetime
  updatedAt: datetime


class SummaryOut(BaseModel):
  summaryBanner: str | None = None


class SummaryUpdateIn(BaseModel):
  summaryBanner: str | None = Field(max_length=220)


class SummarySuggestionOut(BaseModel):
  suggestedSummary: str


# Tasks


class TaskCreateIn(BaseModel):
  title: str = Field(min_length=1, max_length=200)
  description: str | None = None
  status: TaskStatus | None = None


class TaskUpdateIn(BaseModel):
  title: str | None = Field(default=None, min_length=1, max_length=200)
  description: str | None = None
  status: TaskStatus | None = None
  position: int | None = None


class TaskReorderIn(BaseModel):
  orderedIds: list[str]

  @field_validator("orderedIds")
  @classmethod
  def _no_duplicates(cls, v: list[str]) -> list[str]:
    if len(set(v)) != len(v):
      raise ValueError("orderedIds must not contain duplicates")
    return v


class TaskOut(BaseModel):
  id: str
  projectId: str
  title: str
  description: str | None = None
  status: TaskStatus
  position: int
  createdAt: datetime
  updatedAt: datetime


# Milestones


class MilestoneCreateIn(BaseModel):
  title: str = Field(min_length=1, max_length=200)
  description: str | None = None
  dueDate: str | None = None


class MilestoneUpdateIn(BaseModel):
  title: str | None = Field(default=None, min_length=1, max_length=200)
  description: str | None = None
  dueDate: str | None = None


class MilestoneOut(BaseModel):
  id: str
  projectId: str
  title: str
  description: str | None = None
  dueDate: datetime | None = None
  createdAt: datetime
  updatedAt: datetime


# Idea dumps & insights


class TextIdeaDumpIn(BaseModel):
  contentText: str = Field(min_length=1)


class SuggestedTaskOut(BaseModel):
  title: str
  description: str | None = None


class IdeaDumpOut(BaseModel):
  id: str
  projectId: str
  userId: str
  contentText: str | None = None
  audioUrl: str | None = None
  transcript: str | None = None
  createdAt: datetime


class IdeaDumpSourceOut(BaseModel):
  contentText: str | None = None
  transcript: str | None = None
  audioUrl: str | None = None
  createdAt: datetime


class InsightOut(BaseModel):
  id: str
  ideaDumpId: str
  shortSummary: list[str]
  recommendations: list[str]
  suggestedTasks: list[SuggestedTaskOut]
  pinned: bool | None = None
  createdAt: datetime
  ideaDump: IdeaDumpSourceOut | None = None


class IdeaDumpCreatedOut(BaseModel):
  ideaDump: IdeaDumpOut
  insight: InsightOut


class InsightPinIn(BaseModel):
  pinned: bool


# Q&A


class AskQuestionIn(BaseModel):
  question: str = Field(min_length=5, max_length=500)
  includeExamples: bool = True


class QuestionOut(BaseModel):
  id: str
  projectId: str
  question: str
  answer: str
  suggestions: list[str]
  examples: list[str]
  helpful: bool | None = None
  createdAt: datetime


class AnswerOut(BaseModel):
  id: str
  question: str
  answer: str
  suggestions: list[str]
  examples: list[str] | None = None
  suggestedTasks: list[SuggestedTaskOut]
  createdAt: datetime


class QuestionSuggestionsOut(BaseModel):
  suggestions: list[str]


class FeedbackIn(BaseModel):
  helpful: bool


class SuccessOut(BaseModel):
  success: bool = True
