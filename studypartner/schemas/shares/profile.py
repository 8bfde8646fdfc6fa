import uuid
from datetime import datetime
from typing import Annotated, Literal, Optional

from pydantic import BaseModel, Field, field_validator

ProfileRole = Literal["student", "tutor", "admin"]


class ProfileCreateSchema(BaseModel):
    role: Literal["student", "tutor"]
    first_name: Annotated[str, Field(min_length=1, max_length=100)]
    last_name: Annotated[str, Field(min_length=1, max_length=100)]
    bio: Optional[str] = None
    expertise: Optional[list[str]] = None
    hourly_rate: Optional[Annotated[int, Field(ge=0)]] = None


class ProfileUpdateSchema(BaseModel):
    first_name: Optional[Annotated[str, Field(min_length=1, max_length=100)]] = None
    last_name: Optional[Annotated[str, Field(min_length=1, max_length=100)]] = None
    bio: Optional[str] = None
    expertise: Optional[list[str]] = None
    hourly_rate: Optional[Annotated[int, Field(ge=0)]] = None

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def _names_not_null(cls, v):
        if v is None:
            raise ValueError("name cannot be null")
        return v


class ProfileOut(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    role: str
    first_name: str
    last_name: str
    bio: Optional[str] = None
    expertise: Optional[list[str]] = None
    hourly_rate: Optional[int] = None
    tokens: int
    total_earnings: Optional[int] = None
    is_approved: Optional[bool] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TutorOut(ProfileOut):
    email: Optional[str] = None


class TokenAdjustSchema(BaseModel):
    user_id: uuid.UUID
    amount: Annotated[int, Field(gt=0)]
