"""Unit tests for curation: core selection, budgets and payload reshaping."""

import pytest

from learnpath.engines.curation.curator import (
    DEFAULT_LEARNING_OBJECTIVE,
    MAX_CORE_PER_KIND,
    calculate_total_time,
    curate,
    parse_minutes,
)
from learnpath.engines.curation.transformer import append_additional_resource, transform_to_curated_format
from learnpath.schemas.resources import ResourceOrigin, StepResources


def _video(n: int, **extra) -> dict:
    return {
        "url": f"https://www.youtube.com/watch?v=vid{n:08d}",
        "title": f"Video {n}",
        "duration": "8 mins",
        "verified": True,
        **extra,
    }


def _reading(path: str, **extra) -> dict:
    return {"url": f"https://plato.stanford.edu/entries/{path}/", "title": path.title(), "verified": True, **extra}


class TestTime:
    def test_parse_minutes(self):
        assert parse_minutes("12 mins") == 12
        assert parse_minutes("about 1 hour") == 1
        assert parse_minutes(None) == 10
        assert parse_minutes("a while") == 10

    def test_calculate_total_time(self):
        assert calculate_total_time([{"consumption_time": "20 mins"}, {"duration": "25 mins"}]) == "45 mins"
        assert calculate_total_time([{"consumption_time": "60 mins"}, {"consumption_time": "15"}]) == "1h 15m"
        assert calculate_total_time([{"consumption_time": "120"}, None]) == "2h"
        assert calculate_total_time([]) == "0 mins"


class TestCurate:
    def test_core_limited_per_kind_and_rest_goes_to_deep_dive(self):
        bundle = StepResources.from_payload({"videos": [_video(i) for i in range(4)], "readings": [_reading("ethics")]})
        curated = curate(bundle, step_title="Module 1 - Step 2: Ethics")

        assert len(curated.core_videos) == MAX_CORE_PER_KIND
        assert all(v.priority == "mandatory" for v in curated.core_videos)
        assert curated.core_video == curated.core_videos[0]
        assert len(curated.core_readings) == 1
        assert [e.reason for e in curated.excluded_core] == ["over_limit", "over_limit"]
        assert len(curated.deep_dive) == 2
        assert all(r.priority == "optional_expansion" for r in curated.deep_dive)
        assert curated.total_core_time == "26 mins"
        assert curated.knowledge_check.supplemental_resource_id == "0"
        assert '"Ethics"' in curated.knowledge_check.question
        assert not curated.availability_report.was_limited_by_availability

    def test_verified_links_outrank_unknown_ones(self):
        bundle = StepResources.from_payload(
            {"videos": [_video(1, verified=None), _video(2), _video(3)]}
        )
        curated = curate(bundle)
        assert {v.title for v in curated.core_videos} == {"Video 2", "Video 3"}

    def test_dead_links_never_reach_the_core(self):
        bundle = StepResources.from_payload({"videos": [_video(1, verified=False)]})
        curated = curate(bundle)
        assert curated.core_videos == []
        assert curated.excluded_core[0].reason == "unverified"
        assert curated.deep_dive == []
        assert curated.expansion_pack[0].why_secondary == "The original link could not be verified"
        assert curated.availability_report.was_limited_by_availability
        assert "videos" in curated.availability_report.message

    def test_duplicate_titles_are_excluded(self):
        bundle = StepResources.from_payload({"videos": [_video(1, title="Intro"), _video(2, title="intro!")]})
        curated = curate(bundle)
        assert len(curated.core_videos) == 1
        assert curated.excluded_core[0].reason == "similar_to_core"

    def test_module_and_unknown_granularity(self):
        bundle = StepResources.from_payload(
            {"readings": [_reading("a"), {"url": "https://blog.test/course/overview", "title": "Overview"}]}
        )
        # plain module on an unknown domain scores 10 and stays eligible
        curated = curate(bundle)
        assert len(curated.core_readings) == 2

        bundle = StepResources.from_payload(
            {"readings": [_reading("a"), {"url": "https://blog.test/course/overview", "title": "Overview"}]}
        )
        bundle.readings[1].url = "https://www.youtube.com/watch?v=VIDEO_ID"
        curated = curate(bundle)
        assert [e.reason for e in curated.excluded_core] == []
        assert curated.expansion_pack[0].granularity == "unknown"

    def test_courses_go_to_expansion_with_hint(self):
        bundle = StepResources.from_payload(
            {"readings": [{"url": "https://www.coursera.org/learn/ethics", "title": "Ethics course"}]}
        )
        curated = curate(bundle, step_title="Virtue Ethics")
        assert curated.core_readings == []
        assert curated.expansion_pack[0].requires_decomposition
        assert "Virtue Ethics" in curated.expansion_pack[0].why_secondary

    def test_time_budget_keeps_one_core_per_kind(self):
        videos = [_video(1, duration="30 mins"), _video(2, duration="30 mins")]
        readings = [_reading("a", duration="20 mins")]
        curated = curate(StepResources.from_payload({"videos": videos, "readings": readings}), user_time_budget=20)
        assert len(curated.core_videos) == 1
        assert len(curated.core_readings) == 1
        assert curated.excluded_core[0].reason == "over_limit"

    def test_books_moocs_and_alternatives(self):
        bundle = StepResources.from_payload(
            {
                "books": [
                    {"title": "Nicomachean Ethics", "url": "https://www.gutenberg.org/ebooks/8438"},
                    {"title": "No link book"},
                ],
                "alternatives": [
                    {"type": "course", "url": "https://www.edx.org/course/ethics", "title": "Ethics MOOC"},
                    {"type": "podcast", "url": "https://podcasts.apple.com/x", "title": "Ethics pod"},
                ],
            }
        )
        curated = curate(bundle)
        assert [m["title"] for m in curated.moocs] == ["Ethics MOOC"]
        assert [a["type"] for a in curated.alternatives] == ["podcast"]
        assert {r.type for r in curated.expansion_pack} == {"book", "podcast"}
        assert len(curated.books) == 2

    def test_empty_bundle(self):
        curated = curate(StepResources())
        assert curated.learning_objective == DEFAULT_LEARNING_OBJECTIVE
        assert curated.total_core_time == "0 mins"
        assert curated.availability_report.message
        assert curated.knowledge_check.supplemental_resource_id is None

    def test_syllabus_citation_scores_highest(self):
        bundle = StepResources.from_payload(
            {"readings": [_reading("a"), {**_reading("b"), "origin": "syllabus_cited"}]}
        )
        curated = curate(bundle)
        assert curated.core_readings[0].origin == ResourceOrigin.SYLLABUS_CITED
        assert curated.core_readings[0].score_breakdown.total == 90


class TestTransform:
    def test_legacy_singular_camel_case_payload(self):
        payload = {
            "primaryVideo": {"url": "https://youtu.be/dQw4w9WgXcQ", "title": "Intro", "whyThisVideo": "Clear"},
            "deepReading": {"url": "https://plato.stanford.edu/entries/ethics/", "title": "Ethics"},
            "book": {"title": "A Book", "url": "https://openlibrary.org/works/OL1W"},
            "stepDetails": {"description": "Learn the basics"},
        }
        curated = transform_to_curated_format(payload)
        assert curated.core_video.url == "https://youtu.be/dQw4w9WgXcQ"
        assert curated.core_video.rationale == "Clear"
        assert curated.core_reading.title == "Ethics"
        assert curated.learning_objective == "Learn the basics"
        assert curated.expansion_pack[-1].type == "book"

    def test_multi_core_payload_is_preserved(self):
        payload = {
            "coreVideos": [{"url": "https://youtu.be/dQw4w9WgXcQ", "title": "A", "consumptionTime": "15 mins"}],
            "coreReadings": [],
            "learningObjective": "Objective",
            "deepDive": [{"url": "https://nngroup.com/a", "consumptionTime": "5 mins"}],
        }
        curated = transform_to_curated_format(payload)
        assert curated.core_video.title == "A"
        assert curated.core_reading is None
        assert curated.total_core_time == "15 mins"
        assert curated.total_expanded_time == "5 mins"
        assert curated.learning_objective == "Objective"

    def test_single_core_payload_is_promoted(self):
        payload = {
            "core_video": {"url": "https://youtu.be/dQw4w9WgXcQ", "title": "V"},
            "core_reading": {"url": "https://nngroup.com/r", "title": "R"},
            "learning_objective": "Do it",
            "videos": [{"url": "https://youtu.be/dQw4w9WgXcQ"}],
        }
        curated = transform_to_curated_format(payload)
        assert [v.title for v in curated.core_videos] == ["V"]
        assert [r.title for r in curated.core_readings] == ["R"]
        assert curated.availability_report.videos_found == 2
        assert curated.excluded_core == []

    def test_empty_payload(self):
        curated = transform_to_curated_format(None)
        assert curated.core_videos == []
        assert curated.availability_report.was_limited_by_availability

    def test_append_additional_resource(self):
        curated = transform_to_curated_format(
            {"learningObjective": "Objective", "deepDive": [{"url": "https://nngroup.com/a", "consumptionTime": "5"}]}
        )
        added = append_additional_resource(
            curated, {"url": "https://nngroup.com/b", "title": "More", "duration": "10 mins"}, "reading"
        )
        assert added.priority == "optional_expansion"
        assert added.domain == "nngroup.com"
        assert curated.expansion_pack[-1] is added
        assert curated.total_expanded_time == "15 mins"

        with pytest.raises(ValueError):
            append_additional_resource(curated, {"title": "No url"}, "video")
