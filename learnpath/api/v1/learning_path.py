"""
Learning-path planning API: feasibility of a schedule and syllabus pruning.
"""

from fastapi import APIRouter

from learnpath.pedagogy import compute_recommended_depth, prune_steps, validate_feasibility
from learnpath.pedagogy.path_constraints import DEPTH_COVERAGE, DEPTH_DESCRIPTIONS
from learnpath.schemas.learning_path import (
    FeasibilityRequest,
    FeasibilityResponse,
    PruneRequest,
    PruneResponse,
)

router = APIRouter()


@router.post("/feasibility", response_model=FeasibilityResponse)
async def check_feasibility(body: FeasibilityRequest):
    total_hours = body.hours_per_week * body.duration_weeks
    recommended = compute_recommended_depth(total_hours, body.skill_level)
    return FeasibilityResponse(
        total_hours=total_hours,
        feasibility=validate_feasibility(body.hours_per_week, body.duration_weeks, body.skill_level),
        recommended=recommended,
        depth_description=DEPTH_DESCRIPTIONS.get(recommended.depth) if recommended.depth else None,
    )


@router.post("/prune", response_model=PruneResponse)
async def prune_path(body: PruneRequest):
    result = prune_steps(body.modules, body.depth, body.time_budget_hours)
    return PruneResponse(
        modules=result.modules,
        pruned_steps=result.pruned_steps,
        kept_minutes=result.kept_minutes,
        coverage_percentage=DEPTH_COVERAGE[body.depth],
    )
