import uuid
from datetime import datetime
from typing import Annotated, Optional

from pydantic import BaseModel, Field


class NoteCreateSchema(BaseModel):
    title: Annotated[str, Field(min_length=1, max_length=300)]
    content: Annotated[str, Field(min_length=1)]
    subject: Optional[str] = None
    file_id: Optional[str] = Field(default=None, description="Storage id returned by the upload URL")
    file_type: Optional[str] = None


class NoteOut(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    content: str
    subject: Optional[str] = None
    file_id: Optional[str] = None
    file_type: Optional[str] = None
    processed: bool
    processing_status: str
    created_at: datetime

    class Config:
        from_attributes = True


class FlashcardOut(BaseModel):
    id: uuid.UUID
    note_id: uuid.UUID
    question: str
    answer: str
    difficulty: str
    subject: Optional[str] = None

    class Config:
        from_attributes = True


class FlashcardPage(BaseModel):
    flashcards: list[FlashcardOut]
    total_count: int
    current_page: int
    total_pages: int
    has_more: bool


class QuizOut(BaseModel):
    id: uuid.UUID
    note_id: uuid.UUID
    title: str
    questions: list[dict]
    subject: Optional[str] = None

    class Config:
        from_attributes = True


class SummaryOut(BaseModel):
    id: uuid.UUID
    note_id: uuid.UUID
    content: str
    key_points: list[str]
    subject: Optional[str] = None

    class Config:
        from_attributes = True


class UploadUrlOut(BaseModel):
    storage_id: str
    upload_url: str
    expires_in: int
