"""
Data Models

SQLAlchemy models for the step resource cache and the reported-link blacklist.
"""

from learnpath.models.base import Base, CurationRecordMixin
from learnpath.models.step_resource import StepResourceCache
from learnpath.models.reported_link import ReportedLink

__all__ = [
    "Base",
    "CurationRecordMixin",
    "StepResourceCache",
    "ReportedLink",
]
