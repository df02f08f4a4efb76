"""
Reported link model.

URLs users flagged as broken. Rows are the blacklist consulted before any
resource is offered again for the same discipline.
"""

from typing import Optional

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from learnpath.models.base import Base, CurationRecordMixin


class ReportedLink(Base, CurationRecordMixin):
    """A user-reported broken or unsuitable resource URL."""

    __tablename__ = "reported_links"

    url: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    resource_type: Mapped[str] = mapped_column(String(50), nullable=False)
    step_title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    discipline: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    # Free-form user reference; authentication lives outside this service
    reported_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    report_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    report_count: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
