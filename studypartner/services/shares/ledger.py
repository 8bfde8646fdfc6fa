import uuid

from fastapi import Depends
from loguru import logger
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from studypartner.core.errors import InsufficientFunds, NotFound
from studypartner.db.models.database import Profiles
from studypartner.db.session import get_session
from studypartner.libs.formats.datetime import now as get_now


class LedgerService:
    """
    Token balances live on ``Profiles.tokens``.

    Every change is a single conditional UPDATE so two invocations racing on
    the same profile can never drive the balance negative. Nothing here
    commits: the caller writes the matching ``Transactions`` row in the same
    unit of work and commits (or rolls back) once.
    """

    def __init__(self, db: AsyncSession = Depends(get_session)):
        self.db = db

    async def get_balance(self, user_id: uuid.UUID) -> int:
        balance = await self.db.scalar(
            select(Profiles.tokens).where(Profiles.user_id == user_id)
        )
        if balance is None:
            raise NotFound("Profile not found")
        return balance

    async def credit(self, user_id: uuid.UUID, amount: int) -> int:
        if amount < 0:
            raise ValueError("credit amount must be non-negative")

        result = await self.db.execute(
            update(Profiles)
            .where(Profiles.user_id == user_id)
            .values(tokens=Profiles.tokens + amount, updated_at=get_now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFound("Profile not found")

        logger.info(f"[Ledger] +{amount} tokens → user {user_id}")
        return await self.get_balance(user_id)

    async def debit(self, user_id: uuid.UUID, amount: int) -> int:
        """Debit if balance >= amount, else InsufficientFunds with no change."""
        if amount < 0:
            raise ValueError("debit amount must be non-negative")

        result = await self.db.execute(
            update(Profiles)
            .where(Profiles.user_id == user_id, Profiles.tokens >= amount)
            .values(tokens=Profiles.tokens - amount, updated_at=get_now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            exists = await self.db.scalar(
                select(Profiles.id).where(Profiles.user_id == user_id)
            )
            if exists is None:
                raise NotFound("Profile not found")
            raise InsufficientFunds("Insufficient tokens")

        logger.info(f"[Ledger] -{amount} tokens ← user {user_id}")
        return await self.get_balance(user_id)

    async def credit_earnings(self, user_id: uuid.UUID, amount: int) -> None:
        """Bump a tutor's lifetime earnings counter (not the spendable balance)."""
        result = await self.db.execute(
            update(Profiles)
            .where(Profiles.user_id == user_id)
            .values(
                total_earnings=func.coalesce(Profiles.total_earnings, 0) + amount,
                updated_at=get_now(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFound("Profile not found")
