"""init

Revision ID: 0001_init
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
  op.create_table(
    "users",
    sa.Column("id", sa.String(36), primary_key=True),
    sa.Column("email", sa.String(320), nullable=False),
    sa.Column("password_hash", sa.String(), nullable=True),
    sa.Column("firebase_uid", sa.String(128), nullable=True),
    sa.Column("display_name", sa.String(), nullable=True),
    sa.Column("photo_url", sa.String(), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
  )
  op.create_index("ix_users_email", "users", ["email"], unique=True)
  op.create_index("ix_users_firebase_uid", "users", ["firebase_uid"], unique=True)

  op.create_table(
    "projects",
    sa.Column("id", sa.String(36), primary_key=True),
    sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    sa.Column("name", sa.String(100), nullable=False),
    sa.Column("summary_banner", sa.String(220), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
  )
  op.create_index("ix_projects_user_id", "projects", ["user_id"], unique=False)

  op.create_table(
    "tasks",
    sa.Column("id", sa.String(36), primary_key=True),
    sa.Column("project_id", sa.String(36), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
    sa.Column("title", sa.String(200), nullable=False),
    sa.Column("description", sa.Text(), nullable=True),
    sa.Column("status", sa.String(16), nullable=False, server_default="TODO"),
    sa.Column("position", sa.BigInteger(), nullable=False, server_default="0"),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
  )
  op.create_index("ix_tasks_project_id", "tasks", ["project_id"], unique=False)
  op.create_index("ix_tasks_project_position", "tasks", ["project_id", "position"], unique=False)

  op.create_table(
    "milestones",
    sa.Column("id", sa.String(36), primary_key=True),
    sa.Column("project_id", sa.String(36), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
    sa.Column("title", sa.String(200), nullable=False),
    sa.Column("description", sa.Text(), nullable=True),
    sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
  )
  op.create_index("ix_milestones_project_id", "milestones", ["project_id"], unique=False)

  op.create_table(
    "idea_dumps",
    sa.Column("id", sa.String(36), primary_key=True),
    sa.Column("project_id", sa.String(36), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
    sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    sa.Column("content_text", sa.Text(), nullable=True),
    sa.Column("audio_url", sa.String(), nullable=True),
    sa.Column("transcript", sa.Text(), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
  )
  op.create_index("ix_idea_dumps_project_id", "idea_dumps", ["project_id"], unique=False)
  op.create_index("ix_idea_dumps_user_id", "idea_dumps", ["user_id"], unique=False)

  op.create_table(
    "insights",
    sa.Column("id", sa.String(36), primary_key=True),
    sa.Column("idea_dump_id", sa.String(36), sa.ForeignKey("idea_dumps.id", ondelete="CASCADE"), nullable=False),
    sa.Column("short_summary", sa.JSON(), nullable=False),
    sa.Column("recommendations", sa.JSON(), nullable=False),
    sa.Column("suggested_tasks", sa.JSON(), nullable=False),
    sa.Column("pinned", sa.Boolean(), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
  )
  op.create_index("ix_insights_idea_dump_id", "insights", ["idea_dump_id"], unique=False)

  op.create_table(
    "qa_questions",
    sa.Column("id", sa.String(36), primary_key=True),
    sa.Column("project_id", sa.String(36), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
    sa.Column("question", sa.Text(), nullable=False),
    sa.Column("answer", sa.Text(), nullable=False),
    sa.Column("suggestions", sa.JSON(), nullable=False),
    sa.Column("examples", sa.JSON(), nullable=False),
    sa.Column("helpful", sa.Boolean(), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
  )
  op.create_index("ix_qa_questions_project_id", "qa_questions", ["project_id"], unique=False)


def downgrade() -> None:
  op.drop_table("qa_questions")
  op.drop_table("insights")
  op.drop_table("idea_dumps")
  op.drop_table("milestones")
  op.drop_table("tasks")
  op.drop_table("projects")
  op.drop_table("users")
