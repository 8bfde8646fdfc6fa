import uuid
from typing import Optional

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studypartner.db.models.database import Transactions
from studypartner.db.session import get_session
from studypartner.libs.formats.datetime import now as get_now

TRANSACTION_TYPES = ("token_purchase", "tutoring_payment", "tutor_earning", "withdrawal")
TRANSACTION_STATUSES = ("pending", "completed", "failed", "refunded")


class TransactionLogService:
    """Append-only audit trail. Writes are flushed, never committed here."""

    def __init__(self, db: AsyncSession = Depends(get_session)):
        self.db = db

    async def record(
        self,
        user_id: uuid.UUID,
        type_: str,
        amount: float,
        status: str,
        session_id: Optional[uuid.UUID] = None,
        tokens: Optional[int] = None,
        payment_ref: Optional[str] = None,
        description: str = "",
    ) -> uuid.UUID:
        if type_ not in TRANSACTION_TYPES:
            raise ValueError(f"unknown transaction type {type_!r}")
        if status not in TRANSACTION_STATUSES:
            raise ValueError(f"unknown transaction status {status!r}")

        now = get_now()
        tx = Transactions(
            id=uuid.uuid4(),
            user_id=user_id,
            type=type_,
            amount=amount,
            tokens=tokens,
            status=status,
            payment_ref=payment_ref,
            session_id=session_id,
            description=description,
            created_at=now,
            confirmed_at=now if status == "completed" else None,
        )
        self.db.add(tx)
        await self.db.flush()
        return tx.id

    async def list_async(
        self,
        user_id: Optional[uuid.UUID] = None,
        type_: Optional[str] = None,
        status: Optional[str] = None,
        session_id: Optional[uuid.UUID] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Transactions]:
        stmt = select(Transactions)
        if user_id is not None:
            stmt = stmt.where(Transactions.user_id == user_id)
        if type_:
            stmt = stmt.where(Transactions.type == type_)
        if status:
            stmt = stmt.where(Transactions.status == status)
        if session_id is not None:
            stmt = stmt.where(Transactions.session_id == session_id)
        stmt = stmt.order_by(Transactions.created_at.desc()).offset(offset)
        if limit:
            stmt = stmt.limit(limit)
        return list((await self.db.scalars(stmt)).all())

    async def get_by_payment_ref(self, payment_ref: str) -> Optional[Transactions]:
        return await self.db.scalar(
            select(Transactions).where(Transactions.payment_ref == payment_ref)
        )
