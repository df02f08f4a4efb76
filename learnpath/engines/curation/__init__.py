"""
Curation Engine - rank, classify and arrange step resources.

- Granularity: lesson / module / course / syllabus classification
- Scoring: syllabus, authority and scope heuristics
- Curator: essential path selection with transparent exclusions
- Transformer: normalise stored and legacy payloads
"""

from learnpath.engines.curation.curator import calculate_total_time, curate
from learnpath.engines.curation.granularity import LearningObjectGranularity, classify_granularity
from learnpath.engines.curation.transformer import append_additional_resource, transform_to_curated_format

__all__ = [
    "curate",
    "calculate_total_time",
    "classify_granularity",
    "LearningObjectGranularity",
    "transform_to_curated_format",
    "append_additional_resource",
]
