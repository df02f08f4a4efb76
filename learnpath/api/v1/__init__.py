"""
API v1 routes.
"""

from fastapi import APIRouter

from learnpath.api.v1 import learning_path, resources

router = APIRouter()

router.include_router(resources.router, prefix="/resources", tags=["Resources"])
router.include_router(learning_path.router, prefix="/learning-path", tags=["Learning Path"])
