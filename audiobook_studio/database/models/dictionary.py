"""Shared master pronunciation dictionary mirror."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ..base import Base, utcnow


class MasterDictionaryEntryModel(Base):
    __tablename__ = "master_dictionary_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    project_id: Mapped[str] = mapped_column(String(64), nullable=False)
    project_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    book_name: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    grapheme: Mapped[str] = mapped_column(Text, nullable=False)
    phoneme: Mapped[str] = mapped_column(Text, nullable=False)
    dict_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    version_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        Index("idx_master_dictionary_project", "user_id", "project_id"),
        Index("idx_master_dictionary_grapheme", "user_id", "project_id", "grapheme"),
    )
