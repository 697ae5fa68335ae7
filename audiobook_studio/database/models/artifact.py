"""Storyboard artifact version history."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..base import Base, utcnow


class ArtifactVersionModel(Base):
    """One row per swap of a storyboard image or narration track."""

    __tablename__ = "artifact_versions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    item_number: Mapped[int] = mapped_column(Integer, nullable=False)
    kind: Mapped[str] = mapped_column(String(10), nullable=False)
    action: Mapped[str] = mapped_column(String(30), nullable=False)
    source_key: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    archived_key: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    active_track: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    project: Mapped["ProjectModel"] = relationship(back_populates="artifact_versions")  # noqa: F821

    __table_args__ = (
        Index("idx_artifact_versions_item", "project_id", "kind", "item_number"),
    )
