import uuid
from typing import Annotated

from pydantic import BaseModel, EmailStr, Field


class UserCreate(BaseModel):
    email: EmailStr
    password: Annotated[str, Field(min_length=6, max_length=72)]
    full_name: str | None = None


class LoginUser(BaseModel):
    email: EmailStr
    password: str


class MeOut(BaseModel):
    id: uuid.UUID
    email: EmailStr
    fullname: str
    role: str | None = None
    profile_id: uuid.UUID | None = None
