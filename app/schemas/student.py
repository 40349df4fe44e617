"""Full student record served to owners and staff."""

from typing import List

from app.schemas.auth import UserResponse
from app.schemas.common import APIResponse
from app.schemas.goal import ActivityResponse, GoalResponse
from app.schemas.profile import StudentProfileResponse


class StudentDetailResponse(APIResponse):
    user: UserResponse
    profile: StudentProfileResponse
    goals: List[GoalResponse] = []
    activities: List[ActivityResponse] = []
