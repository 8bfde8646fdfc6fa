import uuid
from typing import Optional

from pydantic import BaseModel

from studypartner.schemas.shares.profile import ProfileOut


class AdminUserOut(ProfileOut):
    email: Optional[str] = None


class ApproveTutorSchema(BaseModel):
    tutor_id: uuid.UUID
    approved: bool


class SystemStatsOut(BaseModel):
    total_users: int
    total_students: int
    total_tutors: int
    approved_tutors: int
    total_notes: int
    total_sessions: int
    completed_sessions: int
    total_transactions: int
    total_revenue: float
