"""Project model."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..base import Base, TimestampMixin


class ProjectModel(Base, TimestampMixin):
    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    project_name: Mapped[str] = mapped_column(String(255), nullable=False)
    book_title: Mapped[str] = mapped_column(String(500), nullable=False)
    author_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    epub_file_path: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cover_file_path: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    current_mode: Mapped[str] = mapped_column(String(20), nullable=False, default="validation")
    voice_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    voice_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    pls_dict_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    pls_dict_file: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    artifact_versions: Mapped[list["ArtifactVersionModel"]] = relationship(  # noqa: F821
        back_populates="project", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        Index("idx_projects_user_created", "user_id", "created_at"),
    )
