"""
Heuristic resource ranking.

total = syllabus_match + authority_match + atomic_scope, where
  syllabus_match   40 when the resource was cited by the syllabus
  authority_match  30 high-authority domain, 20 medium-authority domain
  atomic_scope     20 atomic lesson, 10 module, 0 course/syllabus/unknown
"""

import re
from typing import Optional

from learnpath.engines.curation.granularity import LearningObjectGranularity
from learnpath.engines.validation.url_rules import extract_domain
from learnpath.schemas.curated import ScoreBreakdown
from learnpath.schemas.resources import ResourceOrigin

HIGH_AUTHORITY_DOMAINS = (
    "stanford.edu", "mit.edu", "harvard.edu", "yale.edu",
    "plato.stanford.edu", "ox.ac.uk", "cam.ac.uk",
)
MEDIUM_AUTHORITY_DOMAINS = (
    "nngroup.com", "hbr.org", "coursera.org", "edx.org", "khanacademy.org",
    "wikipedia.org", "britannica.com", "gutenberg.org", "archive.org",
)

SYLLABUS_MATCH_SCORE = 40
HIGH_AUTHORITY_SCORE = 30
MEDIUM_AUTHORITY_SCORE = 20
ATOMIC_SCOPE_SCORES = {
    LearningObjectGranularity.ATOMIC_LESSON: 20,
    LearningObjectGranularity.MODULE: 10,
}

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def _domain_matches(domain: str, candidates: tuple) -> bool:
    return any(domain == d or domain.endswith("." + d) for d in candidates)


def authority_score(url: str) -> int:
    domain = extract_domain(url)
    if not domain:
        return 0
    if _domain_matches(domain, HIGH_AUTHORITY_DOMAINS):
        return HIGH_AUTHORITY_SCORE
    if _domain_matches(domain, MEDIUM_AUTHORITY_DOMAINS):
        return MEDIUM_AUTHORITY_SCORE
    return 0


def infer_origin(url: str, origin: Optional[ResourceOrigin] = None) -> ResourceOrigin:
    """Keep an explicit origin; otherwise authority domains beat plain AI picks."""
    if origin is not None:
        return ResourceOrigin(origin)
    return ResourceOrigin.AUTHORITY_DOMAIN if authority_score(url) else ResourceOrigin.AI_SELECTED


def score_resource(
    url: str,
    origin: ResourceOrigin,
    granularity: LearningObjectGranularity,
) -> ScoreBreakdown:
    syllabus = SYLLABUS_MATCH_SCORE if origin == ResourceOrigin.SYLLABUS_CITED else 0
    authority = authority_score(url)
    atomic = ATOMIC_SCOPE_SCORES.get(granularity, 0)
    return ScoreBreakdown(
        syllabus_match=syllabus,
        authority_match=authority,
        atomic_scope=atomic,
        total=syllabus + authority + atomic,
    )


def normalize_title(title: str) -> str:
    """Lowercased alphanumerics only, for near-duplicate detection."""
    return _NON_ALNUM.sub(" ", (title or "").lower()).strip()
