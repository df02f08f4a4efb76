"""
Curator - turn a raw step bundle into the essential path plus optional material.

Core selection per kind (videos, readings), best candidates first:
  1. Too large for the essential path (course/syllabus) -> expansion pack with a hint
  2. Known-dead link (verified is False) -> excluded "unverified"
  3. Same title as a chosen core resource -> excluded "similar_to_core"
  4. Score below MIN_CORE_SCORE -> excluded "low_relevance"
  5. Over MAX_CORE_PER_KIND or the time budget -> excluded "over_limit"
At least one core resource per kind is kept when any candidate qualifies.
"""

import re
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from learnpath.engines.curation.granularity import (
    classify_granularity,
    clean_step_title,
    get_decomposition_message,
    is_essential_path_eligible,
)
from learnpath.engines.curation.scoring import infer_origin, normalize_title, score_resource
from learnpath.engines.validation.url_rules import extract_domain, title_from_url
from learnpath.logging_config import get_logger
from learnpath.schemas.curated import (
    AvailabilityReport,
    CuratedResource,
    CuratedStepResources,
    ExcludedResource,
    KnowledgeCheck,
)
from learnpath.schemas.resources import (
    AlternativeResource,
    BookResource,
    ReadingResource,
    StepResources,
    VideoResource,
)

logger = get_logger(__name__)

MAX_CORE_PER_KIND = 2
MIN_CORE_SCORE = 10
DEEP_DIVE_SIZE = 3
DEFAULT_CONSUMPTION_TIME = "10 mins"
DEFAULT_MINUTES = 10
DEFAULT_LEARNING_OBJECTIVE = (
    "By completing this step, you will understand the core concepts and be able to apply them."
)
DEFAULT_KNOWLEDGE_CHECK = "Can you explain the main concepts covered in this step?"

_FIRST_INT = re.compile(r"(\d+)")

AnyResource = Union[VideoResource, ReadingResource, BookResource, AlternativeResource]


def parse_minutes(time_str: Optional[str]) -> int:
    """First integer in a duration string; 10 when there is none."""
    match = _FIRST_INT.search(time_str or "")
    return int(match.group(1)) if match else DEFAULT_MINUTES


def _time_of(resource: Union[CuratedResource, Dict[str, Any], None]) -> Optional[str]:
    if resource is None:
        return None
    if isinstance(resource, dict):
        return resource.get("consumption_time") or resource.get("consumptionTime") or resource.get("duration")
    return resource.consumption_time or resource.duration


def calculate_total_time(resources: Iterable[Union[CuratedResource, Dict[str, Any], None]]) -> str:
    """Sum consumption times and format as "N mins", "Hh Mm" or "Hh"."""
    total = sum(parse_minutes(_time_of(r)) for r in resources if r is not None)
    if total >= 60:
        hours, mins = divmod(total, 60)
        return f"{hours}h {mins}m" if mins else f"{hours}h"
    return f"{total} mins"


def _verification_status(verified: Optional[bool]) -> str:
    if verified is True:
        return "verified"
    if verified is False:
        return "failed"
    return "unverified"


def to_curated(resource: AnyResource, kind: str) -> CuratedResource:
    """Score and classify one raw resource."""
    url = resource.url
    classification = classify_granularity(
        url,
        is_atomic=getattr(resource, "is_atomic", None),
        course_title=getattr(resource, "course_title", None),
        course_url=getattr(resource, "course_url", None),
    )
    origin = infer_origin(url, resource.origin)
    rationale = (
        getattr(resource, "why_this_video", None)
        or getattr(resource, "why", None)
        or getattr(resource, "focus_highlight", None)
        or "Selected for relevance"
    )
    duration = getattr(resource, "duration", None)
    return CuratedResource(
        url=url,
        title=resource.title or title_from_url(url),
        author=resource.author,
        duration=duration,
        thumbnail_url=getattr(resource, "thumbnail_url", None),
        domain=getattr(resource, "domain", None) or extract_domain(url) or None,
        snippet=getattr(resource, "snippet", None),
        embedded_content=getattr(resource, "embedded_content", None),
        type=kind,
        origin=origin,
        score_breakdown=score_resource(url, origin, classification.granularity),
        rationale=rationale,
        consumption_time=duration or DEFAULT_CONSUMPTION_TIME,
        verified=resource.verified,
        verification_status=_verification_status(resource.verified),
        archived_url=resource.archived_url,
        granularity=classification.granularity.value,
        granularity_confidence=classification.confidence,
        requires_decomposition=classification.requires_decomposition,
    )


def _rank_key(resource: CuratedResource) -> Tuple[int, int]:
    verified_rank = {True: 0, None: 1, False: 2}[resource.verified]
    return verified_rank, -resource.score_breakdown.total


class _TimeBudget:
    """Minutes left for the essential path; None means unlimited."""

    def __init__(self, minutes: Optional[int]):
        self.remaining = minutes

    def fits(self, minutes: int) -> bool:
        return self.remaining is None or minutes <= self.remaining

    def spend(self, minutes: int) -> None:
        if self.remaining is not None:
            self.remaining -= minutes


def _select_core(
    candidates: Sequence[CuratedResource],
    budget: _TimeBudget,
    step_title: str,
) -> Tuple[List[CuratedResource], List[ExcludedResource], List[CuratedResource]]:
    """Split one kind into (core, excluded, ineligible)."""
    core: List[CuratedResource] = []
    excluded: List[ExcludedResource] = []
    ineligible: List[CuratedResource] = []
    chosen_titles = set()

    for resource in sorted(candidates, key=_rank_key):
        total = resource.score_breakdown.total
        if not is_essential_path_eligible(resource.granularity):
            resource.why_secondary = get_decomposition_message(resource.granularity, step_title) or None
            ineligible.append(resource)
            continue
        if resource.verified is False:
            excluded.append(ExcludedResource(resource=resource, reason="unverified", original_score=total))
            continue
        title_key = normalize_title(resource.title)
        if title_key and title_key in chosen_titles:
            excluded.append(ExcludedResource(resource=resource, reason="similar_to_core", original_score=total))
            continue
        if total < MIN_CORE_SCORE:
            excluded.append(ExcludedResource(resource=resource, reason="low_relevance", original_score=total))
            continue
        minutes = parse_minutes(resource.consumption_time)
        if len(core) >= MAX_CORE_PER_KIND or (core and not budget.fits(minutes)):
            excluded.append(ExcludedResource(resource=resource, reason="over_limit", original_score=total))
            continue
        resource.priority = "mandatory"
        core.append(resource)
        chosen_titles.add(title_key)
        budget.spend(minutes)

    return core, excluded, ineligible


def _secondary(resource: CuratedResource, reason: str) -> CuratedResource:
    resource.priority = "optional_expansion"
    if not resource.why_secondary:
        resource.why_secondary = {
            "unverified": "The original link could not be verified",
            "similar_to_core": "Covers the same material as a core resource",
            "low_relevance": "Less directly relevant to this step",
            "over_limit": "Additional perspective beyond the essential path",
        }.get(reason)
    return resource


def _availability(
    videos_found: int,
    core_videos: int,
    readings_found: int,
    core_readings: int,
) -> AvailabilityReport:
    missing = []
    if core_videos == 0:
        missing.append("videos")
    if core_readings == 0:
        missing.append("readings")
    message = None
    if missing:
        message = (
            f"No suitable {' or '.join(missing)} could be verified for this step. "
            "See the expansion pack or search for more resources."
        )
    return AvailabilityReport(
        videos_found=videos_found,
        videos_shown_as_core=core_videos,
        readings_found=readings_found,
        readings_shown_as_core=core_readings,
        was_limited_by_availability=bool(missing),
        message=message,
    )


def _dump(items: Iterable[Any]) -> List[Dict[str, Any]]:
    return [item.model_dump(mode="json", exclude_none=True) for item in items]


def curate(
    bundle: StepResources,
    user_time_budget: Optional[int] = None,
    *,
    step_title: str = "",
) -> CuratedStepResources:
    """
    Build the curated view of a raw bundle.

    Args:
        bundle: Raw step resources (already link-checked)
        user_time_budget: Minutes available for the essential path, None for no limit
        step_title: Used in decomposition hints and the knowledge check
    """
    budget = _TimeBudget(user_time_budget)
    videos = [to_curated(v, "video") for v in bundle.videos]
    readings = [to_curated(r, "reading") for r in bundle.readings]

    core_videos, excluded_videos, ineligible_videos = _select_core(videos, budget, step_title)
    core_readings, excluded_readings, ineligible_readings = _select_core(readings, budget, step_title)
    excluded = excluded_videos + excluded_readings

    usable = [_secondary(e.resource, e.reason) for e in excluded if e.reason != "unverified"]
    unverified = [_secondary(e.resource, e.reason) for e in excluded if e.reason == "unverified"]
    moocs = [a for a in bundle.alternatives if a.type == "mooc"]
    other_alternatives = [a for a in bundle.alternatives if a.type != "mooc"]

    deep_dive = usable[:DEEP_DIVE_SIZE]
    expansion_pack = (
        usable[DEEP_DIVE_SIZE:]
        + ineligible_videos
        + ineligible_readings
        + unverified
        + [to_curated(b, "book") for b in bundle.books if b.url]
        + [to_curated(a, a.type) for a in other_alternatives]
    )
    for resource in expansion_pack:
        resource.priority = "optional_expansion"

    objective = DEFAULT_LEARNING_OBJECTIVE
    if bundle.step_details and bundle.step_details.description:
        objective = bundle.step_details.description
    clean_title = clean_step_title(step_title)
    question = (
        f'Can you explain the main ideas of "{clean_title}" in your own words?'
        if clean_title
        else DEFAULT_KNOWLEDGE_CHECK
    )

    curated = CuratedStepResources(
        core_videos=core_videos,
        core_readings=core_readings,
        core_video=core_videos[0] if core_videos else None,
        core_reading=core_readings[0] if core_readings else None,
        learning_objective=objective,
        total_core_time=calculate_total_time(core_videos + core_readings),
        total_expanded_time=calculate_total_time(deep_dive + expansion_pack),
        deep_dive=deep_dive,
        expansion_pack=expansion_pack,
        moocs=_dump(moocs),
        knowledge_check=KnowledgeCheck(
            question=question,
            supplemental_resource_id="0" if deep_dive else None,
        ),
        excluded_core=excluded,
        availability_report=_availability(
            len(bundle.videos), len(core_videos), len(bundle.readings), len(core_readings)
        ),
        videos=_dump(bundle.videos),
        readings=_dump(bundle.readings),
        books=_dump(bundle.books),
        alternatives=_dump(other_alternatives),
        step_details=bundle.step_details,
        provenance=bundle.provenance,
    )
    logger.debug(
        "Curated step resources",
        extra={
            "core_videos": len(core_videos),
            "core_readings": len(core_readings),
            "excluded": len(excluded),
            "expansion": len(expansion_pack),
        },
    )
    return curated
