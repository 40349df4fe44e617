"""API v1 routes."""

from fastapi import APIRouter, Depends

from app.api.v1 import (
    activities,
    analytics,
    auth,
    catalog,
    classes,
    export,
    files,
    goals,
    groups,
    student_skills,
    students,
    surveys,
    users,
)
from app.core.rate_limit import api_limiter

api_router = APIRouter(dependencies=[Depends(api_limiter)])

# Include all route modules
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(users.router, prefix="/users", tags=["Users"])
api_router.include_router(students.router, prefix="/students", tags=["Students"])
api_router.include_router(student_skills.router, prefix="/students", tags=["Student Skills & Interests"])
api_router.include_router(catalog.router, prefix="/catalog", tags=["Catalog"])
api_router.include_router(goals.router, prefix="/goals", tags=["Goals"])
api_router.include_router(activities.router, prefix="/activities", tags=["Activities"])
api_router.include_router(classes.router, prefix="/classes", tags=["Classes"])
api_router.include_router(surveys.router, prefix="/surveys", tags=["Surveys"])
api_router.include_router(groups.router, prefix="/groups", tags=["Groups"])
api_router.include_router(files.router, prefix="/files", tags=["Files"])
api_router.include_router(analytics.router, prefix="/analytics", tags=["Analytics"])
api_router.include_router(export.router, prefix="/export", tags=["Export"])
