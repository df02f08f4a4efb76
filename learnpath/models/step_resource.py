"""
Step resource cache model.

One row per (step title, discipline): the last successful resource bundle.
"""

from typing import Any, Optional

from sqlalchemy import JSON, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from learnpath.models.base import Base, CurationRecordMixin


class StepResourceCache(Base, CurationRecordMixin):
    """Cached resource bundle for a curriculum step."""

    __tablename__ = "step_resources"
    __table_args__ = (
        UniqueConstraint("step_title", "discipline", name="uq_step_resources_step_discipline"),
    )

    step_title: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    discipline: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    resources: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    syllabus_urls: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<StepResourceCache {self.discipline!r}/{self.step_title!r}>"
