"""
Learning-object granularity - how big an educational artifact is.

Only atomic lessons and modules may appear on the essential path. Full
courses and syllabi have to be decomposed by the learner, so they are
shown as secondary material with a hint on where to look.
"""

import re
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel

from learnpath.engines.validation.url_rules import is_placeholder_url


class LearningObjectGranularity(str, Enum):
    ATOMIC_LESSON = "atomic_lesson"  # single video, article or exercise
    MODULE = "module"  # coherent topic unit
    FULL_COURSE = "full_course"  # needs enrollment
    SYLLABUS = "syllabus"  # program-level blueprint
    UNKNOWN = "unknown"


class ParentContainer(BaseModel):
    title: str
    url: str
    granularity: LearningObjectGranularity = LearningObjectGranularity.FULL_COURSE


class GranularityClassification(BaseModel):
    granularity: LearningObjectGranularity
    confidence: Literal["high", "medium", "low"]
    requires_decomposition: bool
    parent_container: Optional[ParentContainer] = None


ATOMIC_LESSON_PATTERNS: List[re.Pattern] = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"youtube\.com/watch",
        r"youtu\.be/",
        r"vimeo\.com/\d+",
        r"coursera\.org/learn/[^/]+/lecture/",
        r"coursera\.org/learn/[^/]+/quiz/",
        r"edx\.org/.*/block",
        r"khanacademy\.org/.*/v/",
        r"khanacademy\.org/.*/video/",
        r"plato\.stanford\.edu/entries/",
        r"wikipedia\.org/wiki/",
        r"medium\.com/@?[^/]+/[^/]+",
        r"\.pdf(\?|$)",
        r"/article/",
        r"/post/",
        r"/blog/",
    )
]

FULL_COURSE_PATTERNS: List[re.Pattern] = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"coursera\.org/learn/[^/]+/?$",
        r"coursera\.org/specializations/",
        r"edx\.org/course/[^/]+/?$",
        r"udemy\.com/course/[^/]+/?$",
        r"linkedin\.com/learning/[^/]+/?$",
        r"skillshare\.com/classes/[^/]+/?$",
        r"pluralsight\.com/courses/",
        r"udacity\.com/course/",
        r"masterclass\.com/classes/",
        r"futurelearn\.com/courses/",
    )
]

SYLLABUS_PATTERNS: List[re.Pattern] = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"ocw\.mit\.edu/courses/[^/]+/?$",
        r"/syllabus",
        r"/curriculum",
        r"/program/",
    )
]

_STEP_PREFIX = re.compile(r"^(Module\s+\d+\s*[-–—]\s*Step\s+\d+\s*[:.]?\s*|\d+\.\s*)", re.IGNORECASE)

_LABELS = {
    LearningObjectGranularity.ATOMIC_LESSON: "Lesson",
    LearningObjectGranularity.MODULE: "Module",
    LearningObjectGranularity.FULL_COURSE: "Full Course",
    LearningObjectGranularity.SYLLABUS: "Syllabus",
    LearningObjectGranularity.UNKNOWN: "Resource",
}


def classify_granularity(
    url: str,
    is_atomic: Optional[bool] = None,
    course_title: Optional[str] = None,
    course_url: Optional[str] = None,
) -> GranularityClassification:
    """
    Classify a resource by URL and MOOC search hints.

    Order: explicit is_atomic flag, placeholder ids, atomic patterns,
    full-course patterns, syllabus patterns, then module as the default.
    """
    if is_atomic is True:
        return GranularityClassification(
            granularity=LearningObjectGranularity.ATOMIC_LESSON,
            confidence="high",
            requires_decomposition=False,
        )
    if is_atomic is False:
        parent = None
        if course_url:
            parent = ParentContainer(title=course_title or "Course", url=course_url)
        return GranularityClassification(
            granularity=LearningObjectGranularity.FULL_COURSE,
            confidence="high",
            requires_decomposition=True,
            parent_container=parent,
        )

    if is_placeholder_url(url):
        return GranularityClassification(
            granularity=LearningObjectGranularity.UNKNOWN,
            confidence="low",
            requires_decomposition=False,
        )

    for pattern in ATOMIC_LESSON_PATTERNS:
        if pattern.search(url):
            return GranularityClassification(
                granularity=LearningObjectGranularity.ATOMIC_LESSON,
                confidence="high",
                requires_decomposition=False,
            )
    for pattern in FULL_COURSE_PATTERNS:
        if pattern.search(url):
            return GranularityClassification(
                granularity=LearningObjectGranularity.FULL_COURSE,
                confidence="high",
                requires_decomposition=True,
            )
    for pattern in SYLLABUS_PATTERNS:
        if pattern.search(url):
            return GranularityClassification(
                granularity=LearningObjectGranularity.SYLLABUS,
                confidence="high",
                requires_decomposition=True,
            )

    # Articles and docs without a clear atomic signal
    return GranularityClassification(
        granularity=LearningObjectGranularity.MODULE,
        confidence="medium",
        requires_decomposition=False,
    )


def is_essential_path_eligible(granularity: LearningObjectGranularity) -> bool:
    return granularity in (LearningObjectGranularity.ATOMIC_LESSON, LearningObjectGranularity.MODULE)


def get_granularity_label(granularity: LearningObjectGranularity) -> str:
    return _LABELS.get(LearningObjectGranularity(granularity), "Resource")


def clean_step_title(step_title: str) -> str:
    """Drop "Module 2 - Step 3:" / "4." numbering from a step title."""
    return _STEP_PREFIX.sub("", step_title or "").strip()


def get_decomposition_message(granularity: LearningObjectGranularity, step_title: str) -> str:
    """Hint shown when a resource is too large for the essential path ('' otherwise)."""
    title = clean_step_title(step_title)
    if granularity == LearningObjectGranularity.FULL_COURSE:
        return f'This is a full course. Search for "{title}" within it.'
    if granularity == LearningObjectGranularity.SYLLABUS:
        return f"This is a syllabus/curriculum. Navigate to the relevant module on {title}."
    return ""
