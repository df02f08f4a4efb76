"""
Pedagogy - learning-path depth, feasibility and pruning rules.
"""

from learnpath.pedagogy.path_constraints import (
    compute_recommended_depth,
    prune_steps,
    validate_feasibility,
)

__all__ = ["compute_recommended_depth", "prune_steps", "validate_feasibility"]
