"""
Request and response schemas for learning-path planning.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from learnpath.pedagogy.path_constraints import (
    Depth,
    DepthResult,
    FeasibilityResult,
    PathModule,
    SkillLevel,
)


class FeasibilityRequest(BaseModel):
    hours_per_week: float = Field(..., gt=0, le=168)
    duration_weeks: int = Field(..., ge=1, le=520)
    skill_level: SkillLevel = "intermediate"


class FeasibilityResponse(BaseModel):
    total_hours: float
    feasibility: FeasibilityResult
    recommended: DepthResult
    depth_description: Optional[str] = None


class PruneRequest(BaseModel):
    modules: List[PathModule] = Field(..., min_length=1)
    depth: Depth = "standard"
    time_budget_hours: Optional[float] = Field(None, gt=0)


class PruneResponse(BaseModel):
    modules: List[PathModule]
    pruned_steps: List[str]
    kept_minutes: int
    coverage_percentage: int
