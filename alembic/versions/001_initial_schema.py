"""Initial schema: projects, dictionary mirror, artifact history, command logs, notifications and profiles.

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── 1. Projects ───────────────────────────────────────────────
    op.create_table(
        "projects",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("project_name", sa.String(255), nullable=False),
        sa.Column("book_title", sa.String(500), nullable=False),
        sa.Column("author_name", sa.String(255), nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("epub_file_path", sa.Text, nullable=True),
        sa.Column("cover_file_path", sa.Text, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("current_mode", sa.String(20), nullable=False, server_default="validation"),
        sa.Column("voice_id", sa.String(255), nullable=True),
        sa.Column("voice_name", sa.String(255), nullable=True),
        sa.Column("pls_dict_name", sa.String(255), nullable=True),
        sa.Column("pls_dict_file", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("idx_projects_user_created", "projects", ["user_id", "created_at"])

    # ── 2. Storyboard artifact history ────────────────────────────
    op.create_table(
        "artifact_versions",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "project_id",
            sa.String(64),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("item_number", sa.Integer, nullable=False),
        sa.Column("kind", sa.String(10), nullable=False),
        sa.Column("action", sa.String(30), nullable=False),
        sa.Column("source_key", sa.Text, nullable=True),
        sa.Column("archived_key", sa.Text, nullable=True),
        sa.Column("active_track", sa.Integer, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(
        "idx_artifact_versions_item", "artifact_versions", ["project_id", "kind", "item_number"]
    )

    # ── 3. Master pronunciation dictionary mirror ─────────────────
    op.create_table(
        "master_dictionary_entries",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("project_id", sa.String(64), nullable=False),
        sa.Column("project_name", sa.String(255), nullable=True),
        sa.Column("book_name", sa.String(500), nullable=True),
        sa.Column("grapheme", sa.Text, nullable=False),
        sa.Column("phoneme", sa.Text, nullable=False),
        sa.Column("dict_id", sa.String(255), nullable=True),
        sa.Column("version_id", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(
        "idx_master_dictionary_project", "master_dictionary_entries", ["user_id", "project_id"]
    )
    op.create_index(
        "idx_master_dictionary_grapheme",
        "master_dictionary_entries",
        ["user_id", "project_id", "grapheme"],
    )

    # ── 4. Command log ────────────────────────────────────────────
    op.create_table(
        "command_logs",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(255), nullable=True),
        sa.Column("project_id", sa.String(64), nullable=True),
        sa.Column("command", sa.Text, nullable=False),
        sa.Column("task_id", sa.String(255), nullable=True),
        sa.Column("status", sa.String(30), nullable=False, server_default="submitted"),
        sa.Column("returncode", sa.Integer, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("idx_command_logs_project", "command_logs", ["project_id", "created_at"])

    # ── 5. Admin notifications ────────────────────────────────────
    op.create_table(
        "system_notifications",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("issue", sa.String(255), nullable=False),
        sa.Column("details", JSONB, nullable=True),
        sa.Column("project_id", sa.String(64), nullable=True),
        sa.Column("user_id", sa.String(255), nullable=True),
        sa.Column("user_email", sa.String(255), nullable=True),
        sa.Column("admin_email", sa.String(255), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="new"),
        sa.Column("message", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # ── 6. User profiles ──────────────────────────────────────────
    op.create_table(
        "user_profiles",
        sa.Column("id", sa.String(255), primary_key=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("first_name", sa.String(255), nullable=True),
        sa.Column("last_name", sa.String(255), nullable=True),
        sa.Column("phone_number", sa.String(50), nullable=True),
        sa.Column("date_of_birth", sa.Date, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("user_profiles")
    op.drop_table("system_notifications")
    op.drop_table("command_logs")
    op.drop_table("master_dictionary_entries")
    op.drop_table("artifact_versions")
    op.drop_table("projects")
