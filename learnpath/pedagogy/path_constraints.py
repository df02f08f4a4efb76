"""
Learning-path constraints - depth, feasibility and pruning.

Depth is chosen from the hours a learner has, adjusted for skill level.
Pruning trims a syllabus to the coverage of that depth and, optionally, to
a hard time budget.
"""

import math
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

SkillLevel = Literal["beginner", "intermediate", "advanced"]
Depth = Literal["overview", "standard", "detailed"]

# Base hours needed for each depth level
DEPTH_THRESHOLDS: Dict[str, Dict[str, int]] = {
    "overview": {"min": 5, "typical": 10},
    "standard": {"min": 15, "typical": 30},
    "detailed": {"min": 50, "typical": 80},
}

SKILL_MULTIPLIERS: Dict[str, float] = {
    "beginner": 1.3,
    "intermediate": 1.0,
    "advanced": 0.7,
}

DEPTH_DESCRIPTIONS: Dict[str, str] = {
    "overview": "Quick introduction covering core concepts only",
    "standard": "Balanced curriculum with solid understanding",
    "detailed": "Comprehensive mastery with deep exploration",
}

# Percentage of each module's steps kept at a depth
DEPTH_COVERAGE: Dict[str, int] = {
    "overview": 40,
    "standard": 75,
    "detailed": 100,
}

INTENSIVE_HOURS_PER_WEEK = 40
DEFAULT_STEP_MINUTES = 30


class DepthResult(BaseModel):
    depth: Optional[Depth] = None
    feasible: bool
    coverage_percentage: int


class Suggestion(BaseModel):
    """A change the learner can apply to make the plan work."""

    text: str
    changes: Dict[str, object] = Field(default_factory=dict)


class FeasibilityResult(BaseModel):
    status: Literal["valid", "warning", "impossible"]
    message: str
    suggestions: List[Suggestion] = Field(default_factory=list)
    minimum_hours_needed: Optional[float] = None
    minimum_weeks_needed: Optional[int] = None


class PathStep(BaseModel):
    title: str
    estimated_minutes: int = Field(DEFAULT_STEP_MINUTES, ge=0)


class PathModule(BaseModel):
    title: str
    steps: List[PathStep] = Field(default_factory=list)


class PruneResult(BaseModel):
    modules: List[PathModule]
    pruned_steps: List[str] = Field(default_factory=list)
    kept_minutes: int = 0


def compute_recommended_depth(total_hours: float, skill_level: SkillLevel) -> DepthResult:
    """Deepest level the skill-adjusted hours reach; depth None when even an overview is out of reach."""
    adjusted = total_hours / SKILL_MULTIPLIERS[skill_level]
    if adjusted < DEPTH_THRESHOLDS["overview"]["min"]:
        return DepthResult(depth=None, feasible=False, coverage_percentage=0)
    if adjusted < DEPTH_THRESHOLDS["standard"]["min"]:
        return DepthResult(depth="overview", feasible=True, coverage_percentage=DEPTH_COVERAGE["overview"])
    if adjusted < DEPTH_THRESHOLDS["detailed"]["min"]:
        return DepthResult(depth="standard", feasible=True, coverage_percentage=DEPTH_COVERAGE["standard"])
    return DepthResult(depth="detailed", feasible=True, coverage_percentage=DEPTH_COVERAGE["detailed"])


def validate_feasibility(hours_per_week: float, duration_weeks: int, skill_level: SkillLevel) -> FeasibilityResult:
    total_hours = hours_per_week * duration_weeks
    min_required = DEPTH_THRESHOLDS["overview"]["min"] * SKILL_MULTIPLIERS[skill_level]

    if total_hours < min_required:
        min_hours_per_week = math.ceil(min_required / duration_weeks)
        min_weeks = math.ceil(min_required / hours_per_week)
        return FeasibilityResult(
            status="impossible",
            message=(
                f"Your {total_hours:g} available hours aren't enough for even an overview "
                f"(minimum {math.ceil(min_required)} hours needed)."
            ),
            suggestions=[
                Suggestion(text=f"Increase to {min_hours_per_week} hours/week", changes={"hours_per_week": min_hours_per_week}),
                Suggestion(text=f"Extend duration to {min_weeks} weeks", changes={"duration_weeks": min_weeks}),
            ],
            minimum_hours_needed=min_required,
            minimum_weeks_needed=min_weeks,
        )

    if hours_per_week > INTENSIVE_HOURS_PER_WEEK:
        return FeasibilityResult(
            status="warning",
            message="This is an intensive schedule (over 40 hours/week). Make sure you have the time.",
            suggestions=[Suggestion(text="Reduce to 20 hours/week", changes={"hours_per_week": 20})],
        )

    if skill_level == "beginner" and duration_weeks < 2 and hours_per_week < 10:
        return FeasibilityResult(
            status="warning",
            message="As a beginner with limited time, you may find this pace challenging.",
            suggestions=[
                Suggestion(text="Extend to 4 weeks", changes={"duration_weeks": 4}),
                Suggestion(text="Increase to 5 hours/week", changes={"hours_per_week": 5}),
            ],
        )

    return FeasibilityResult(
        status="valid",
        message="Your plan is achievable! This pace allows comfortable learning with review time.",
    )


def prune_steps(
    modules: List[PathModule],
    depth: Depth,
    time_budget_hours: Optional[float] = None,
) -> PruneResult:
    """
    Trim a syllabus to a depth and optional time budget.

    Each module keeps its first ceil(coverage% x steps) steps (at least one).
    With a budget, steps are then dropped from the end of the syllabus once
    the running total of estimated minutes exceeds it; the first step always stays.
    """
    coverage = DEPTH_COVERAGE[depth]
    pruned: List[str] = []
    kept_modules: List[PathModule] = []

    for module in modules:
        if not module.steps:
            kept_modules.append(module.model_copy(update={"steps": []}))
            continue
        keep = max(1, math.ceil(len(module.steps) * coverage / 100))
        kept_modules.append(module.model_copy(update={"steps": module.steps[:keep]}))
        pruned.extend(s.title for s in module.steps[keep:])

    if time_budget_hours is not None:
        budget_minutes = time_budget_hours * 60
        used = 0
        over_budget = False
        kept_any = False
        for module in kept_modules:
            within: List[PathStep] = []
            for step in module.steps:
                if not over_budget and (not kept_any or used + step.estimated_minutes <= budget_minutes):
                    within.append(step)
                    used += step.estimated_minutes
                    kept_any = True
                else:
                    over_budget = True
                    pruned.append(step.title)
            module.steps = within

    # Modules that lost every step are dropped; modules that never had any stay
    result_modules = [m for m, original in zip(kept_modules, modules) if m.steps or not original.steps]
    return PruneResult(
        modules=result_modules,
        pruned_steps=pruned,
        kept_minutes=sum(s.estimated_minutes for m in result_modules for s in m.steps),
    )
