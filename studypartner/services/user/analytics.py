import uuid
from collections import defaultdict
from datetime import date
from typing import Iterable

from fastapi import Depends, HTTPException
from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from studypartner.core.deps import AuthContext
from studypartner.core.settings import settings
from studypartner.db.models.database import StudySessions
from studypartner.db.session import get_session
from studypartner.libs.formats.datetime import date_key, days_ago, today
from studypartner.libs.formats.datetime import now as get_now
from studypartner.schemas.user.analytics import StudySessionCreateSchema


def compute_daily_stats(sessions: Iterable[StudySessions]) -> list[dict]:
    """Group study sessions by calendar date, oldest day first."""
    days: dict[str, dict] = {}
    scores: dict[str, list[float]] = defaultdict(list)

    for s in sessions:
        day = days.setdefault(
            s.date,
            {
                "date": s.date,
                "total_minutes": 0,
                "flashcards_sessions": 0,
                "quiz_sessions": 0,
                "notes_sessions": 0,
                "average_score": 0,
            },
        )
        day["total_minutes"] += s.duration
        day[f"{s.type}_sessions"] += 1
        if s.score is not None:
            scores[s.date].append(s.score)

    for key, values in scores.items():
        days[key]["average_score"] = sum(values) / len(values)

    return [days[k] for k in sorted(days)]


def calculate_streak(dates: Iterable[str], ref: date | None = None) -> int:
    """
    Consecutive study days walking backward from ``ref`` (today).

    A day counts when it is at most one day older than the previous one
    counted; the walk stops at the first larger gap.
    """
    current = ref or today()
    streak = 0
    for key in sorted(set(dates), reverse=True):
        d = date.fromisoformat(key)
        if d > current:
            continue
        if (current - d).days > 1:
            break
        streak += 1
        current = d
    return streak


class AnalyticsService:
    def __init__(self, db: AsyncSession = Depends(get_session)):
        self.db = db

    async def track_study_session_async(
        self, ctx: AuthContext, schema: StudySessionCreateSchema
    ) -> StudySessions:
        try:
            record = StudySessions(
                id=uuid.uuid4(),
                user_id=ctx.user_id,
                type=schema.type,
                note_id=schema.note_id,
                duration=schema.duration,
                score=schema.score,
                date=date_key(today()),
                created_at=get_now(),
            )
            self.db.add(record)
            await self.db.commit()
            return record
        except Exception as e:
            await self.db.rollback()
            logger.exception(f"[Analytics][Track] {e}")
            raise HTTPException(500, "Failed to track study session")

    async def get_study_analytics_async(self, ctx: AuthContext, days: int = 30) -> dict:
        start = date_key(days_ago(days))
        sessions = (
            await self.db.scalars(
                select(StudySessions).where(
                    StudySessions.user_id == ctx.user_id,
                    StudySessions.date >= start,
                )
            )
        ).all()

        daily = compute_daily_stats(sessions)
        total_minutes = sum(s.duration for s in sessions)
        total_sessions = len(sessions)

        return {
            "daily_stats": daily,
            "summary": {
                "total_minutes": total_minutes,
                "total_sessions": total_sessions,
                "average_session_length": total_minutes / total_sessions if total_sessions else 0,
                "streak": calculate_streak(d["date"] for d in daily),
            },
        }

    async def get_focus_stats_async(self, ctx: AuthContext) -> dict:
        row = (
            await self.db.execute(
                select(
                    func.coalesce(func.sum(StudySessions.duration), 0),
                    func.count(StudySessions.id),
                ).where(
                    StudySessions.user_id == ctx.user_id,
                    StudySessions.date == date_key(today()),
                )
            )
        ).one()
        minutes, count = int(row[0]), int(row[1])
        goal = settings.DAILY_FOCUS_GOAL_MINUTES

        return {
            "minutes_today": minutes,
            "sessions_today": count,
            "goal": goal,
            "progress": min(minutes / goal * 100, 100) if goal else 100,
        }
