"""
Reshape stored or legacy resource payloads into ``CuratedStepResources``.

Three payload generations are in circulation:
  - multi-core (core_videos / core_readings): kept, defaults filled in
  - single-core (core_video / core_reading / learning_objective): promoted to lists
  - raw bundles, including the singular primary_video / deep_reading / book
    shape: parsed and run through the curator
Keys may be camelCase or snake_case.
"""

from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from learnpath.engines.curation.curator import DEFAULT_LEARNING_OBJECTIVE, calculate_total_time, curate
from learnpath.engines.validation.url_rules import extract_domain
from learnpath.logging_config import get_logger
from learnpath.schemas.curated import (
    AvailabilityReport,
    CuratedResource,
    CuratedStepResources,
    ExcludedResource,
    KnowledgeCheck,
    ScoreBreakdown,
)
from learnpath.schemas.resources import Provenance, StepDetails, StepResources, snake_keys

logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)


def _parse_list(model: Type[M], items: Any) -> List[M]:
    parsed: List[M] = []
    for item in items or []:
        if not isinstance(item, dict):
            continue
        try:
            parsed.append(model.model_validate(item))
        except ValidationError:
            logger.debug("Skipping malformed %s entry", model.__name__)
    return parsed


def _parse_one(model: Type[M], item: Any) -> Optional[M]:
    found = _parse_list(model, [item])
    return found[0] if found else None


def _dict_list(items: Any) -> List[Dict[str, Any]]:
    return [i for i in (items or []) if isinstance(i, dict)]


def _split_moocs(data: Dict[str, Any]) -> tuple:
    alternatives = _dict_list(data.get("alternatives"))
    moocs = _dict_list(data.get("moocs")) or [a for a in alternatives if a.get("type") == "mooc"]
    return moocs, [a for a in alternatives if a.get("type") != "mooc"]


def _common(data: Dict[str, Any]) -> Dict[str, Any]:
    """Fields shared by the curated payload generations."""
    deep_dive = _parse_list(CuratedResource, data.get("deep_dive"))
    expansion_pack = _parse_list(CuratedResource, data.get("expansion_pack"))
    moocs, alternatives = _split_moocs(data)
    return {
        "learning_objective": data.get("learning_objective") or DEFAULT_LEARNING_OBJECTIVE,
        "total_expanded_time": data.get("total_expanded_time") or calculate_total_time(deep_dive + expansion_pack),
        "deep_dive": deep_dive,
        "expansion_pack": expansion_pack,
        "moocs": moocs,
        "knowledge_check": _parse_one(KnowledgeCheck, data.get("knowledge_check")),
        "videos": _dict_list(data.get("videos")),
        "readings": _dict_list(data.get("readings")),
        "books": _dict_list(data.get("books")),
        "alternatives": alternatives,
        "step_details": _parse_one(StepDetails, data.get("step_details")),
        "provenance": _parse_one(Provenance, data.get("provenance")),
    }


def _from_multi_core(data: Dict[str, Any]) -> CuratedStepResources:
    core_videos = _parse_list(CuratedResource, data.get("core_videos"))
    core_readings = _parse_list(CuratedResource, data.get("core_readings"))
    return CuratedStepResources(
        core_videos=core_videos,
        core_readings=core_readings,
        core_video=_parse_one(CuratedResource, data.get("core_video")) or (core_videos[0] if core_videos else None),
        core_reading=_parse_one(CuratedResource, data.get("core_reading")) or (core_readings[0] if core_readings else None),
        total_core_time=data.get("total_core_time") or calculate_total_time(core_videos + core_readings),
        excluded_core=_parse_list(ExcludedResource, data.get("excluded_core")),
        availability_report=_parse_one(AvailabilityReport, data.get("availability_report")) or AvailabilityReport(),
        **_common(data),
    )


def _from_single_core(data: Dict[str, Any]) -> CuratedStepResources:
    core_video = _parse_one(CuratedResource, data.get("core_video"))
    core_reading = _parse_one(CuratedResource, data.get("core_reading"))
    core_videos = [core_video] if core_video else []
    core_readings = [core_reading] if core_reading else []
    common = _common(data)
    return CuratedStepResources(
        core_videos=core_videos,
        core_readings=core_readings,
        core_video=core_video,
        core_reading=core_reading,
        total_core_time=data.get("total_core_time") or calculate_total_time(core_videos + core_readings),
        excluded_core=[],
        availability_report=AvailabilityReport(
            videos_found=len(common["videos"]) + len(core_videos),
            videos_shown_as_core=len(core_videos),
            readings_found=len(common["readings"]) + len(core_readings),
            readings_shown_as_core=len(core_readings),
            was_limited_by_availability=False,
        ),
        **common,
    )


def transform_to_curated_format(
    payload: Optional[Dict[str, Any]],
    user_time_budget: Optional[int] = None,
    *,
    step_title: str = "",
) -> CuratedStepResources:
    """Normalise any stored/legacy payload into the curated structure."""
    data = snake_keys(payload or {})
    if "core_videos" in data or "core_readings" in data:
        return _from_multi_core(data)
    if "core_video" in data or data.get("learning_objective"):
        return _from_single_core(data)
    return curate(StepResources.from_payload(data), user_time_budget, step_title=step_title)


def append_additional_resource(
    curated: CuratedStepResources,
    payload: Dict[str, Any],
    resource_type: str,
) -> CuratedResource:
    """
    Add a find-more result to the expansion pack.

    Raises:
        ValueError: when the payload has no URL.
    """
    data = snake_keys(payload or {})
    url = data.get("url")
    if not url:
        raise ValueError("No resource found")
    breakdown = _parse_one(ScoreBreakdown, data.get("score_breakdown")) or ScoreBreakdown()
    resource = CuratedResource(
        url=url,
        title=data.get("title") or "Untitled",
        author=data.get("author"),
        duration=data.get("duration"),
        thumbnail_url=data.get("thumbnail_url"),
        domain=data.get("domain") or extract_domain(url) or None,
        snippet=data.get("snippet"),
        embedded_content=data.get("embedded_content"),
        type=resource_type,
        priority="optional_expansion",
        origin=data.get("origin") or "ai_selected",
        score_breakdown=breakdown,
        rationale=(
            data.get("rationale")
            or data.get("why_this_video")
            or data.get("focus_highlight")
            or f"Additional {resource_type} found via search"
        ),
        consumption_time=data.get("consumption_time") or data.get("duration") or "10 mins",
        verified=data.get("verified"),
        archived_url=data.get("archived_url"),
    )
    curated.expansion_pack.append(resource)
    curated.total_expanded_time = calculate_total_time(curated.deep_dive + curated.expansion_pack)
    return resource
