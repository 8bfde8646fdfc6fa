import uuid
from typing import Annotated, Literal, Optional

from pydantic import BaseModel, Field

StudyType = Literal["flashcards", "quiz", "notes"]


class StudySessionCreateSchema(BaseModel):
    type: StudyType
    note_id: Optional[uuid.UUID] = None
    duration: Annotated[int, Field(ge=0, description="Minutes")]
    score: Optional[Annotated[float, Field(ge=0)]] = None


class DailyStats(BaseModel):
    date: str
    total_minutes: int = 0
    flashcards_sessions: int = 0
    quiz_sessions: int = 0
    notes_sessions: int = 0
    average_score: float = 0


class AnalyticsSummary(BaseModel):
    total_minutes: int
    total_sessions: int
    average_session_length: float
    streak: int


class StudyAnalyticsOut(BaseModel):
    daily_stats: list[DailyStats]
    summary: AnalyticsSummary


class FocusStatsOut(BaseModel):
    minutes_today: int
    sessions_today: int
    goal: int
    progress: float
