import uuid
from datetime import datetime
from typing import Annotated, Literal, Optional

from pydantic import BaseModel, Field

from studypartner.schemas.shares.profile import ProfileOut


class SessionRequestSchema(BaseModel):
    tutor_id: uuid.UUID = Field(..., description="User id of the tutor")
    subject: Annotated[str, Field(min_length=1, max_length=255)]
    description: str = ""
    scheduled_time: datetime
    duration: Annotated[int, Field(gt=0, le=24 * 60, description="Minutes")]


class SessionRespondSchema(BaseModel):
    response: Literal["accepted", "rejected"]
    meeting_link: Optional[str] = None


class SessionCompleteSchema(BaseModel):
    notes: Optional[str] = None


class SessionRateSchema(BaseModel):
    rating: Annotated[int, Field(ge=1, le=5)]
    review: Optional[str] = None


class SessionOut(BaseModel):
    id: uuid.UUID
    student_id: uuid.UUID
    tutor_id: uuid.UUID
    subject: str
    description: str
    scheduled_time: datetime
    duration: int
    status: str
    price: int
    meeting_link: Optional[str] = None
    notes: Optional[str] = None
    rating: Optional[int] = None
    review: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class SessionWithTutorOut(SessionOut):
    tutor: Optional[ProfileOut] = None


class SessionWithStudentOut(SessionOut):
    student: Optional[ProfileOut] = None
