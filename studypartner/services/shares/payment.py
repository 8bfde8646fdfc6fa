from fastapi import Depends, HTTPException
from loguru import logger
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from studypartner.core.deps import AuthContext
from studypartner.core.errors import InvalidState, NotFound
from studypartner.core.security import SecurityService
from studypartner.db.models.database import Transactions
from studypartner.db.session import get_session
from studypartner.libs.formats.datetime import now as get_now
from studypartner.schemas.shares.notification import NotificationCreateSchema
from studypartner.schemas.shares.payment import PaymentIntentCreateSchema
from studypartner.services.shares.ledger import LedgerService
from studypartner.services.shares.notification import NotificationService
from studypartner.services.shares.transaction import TransactionLogService


class PaymentService:
    """
    Simulated card checkout for token packs.

    An intent is a ``pending`` token_purchase row keyed by a generated
    payment reference; confirming flips it to ``completed`` exactly once and
    credits the tokens in the same commit.
    """

    def __init__(
        self,
        db: AsyncSession = Depends(get_session),
        ledger: LedgerService = Depends(LedgerService),
        transactions: TransactionLogService = Depends(TransactionLogService),
        notification_service: NotificationService = Depends(NotificationService),
    ):
        self.db = db
        self.ledger = ledger
        self.transactions = transactions
        self.notification_service = notification_service

    async def create_payment_intent_async(
        self, ctx: AuthContext, schema: PaymentIntentCreateSchema
    ) -> dict:
        try:
            payment_ref = SecurityService.generate_payment_ref()
            await self.transactions.record(
                user_id=ctx.user_id,
                type_="token_purchase",
                amount=schema.amount,
                tokens=schema.tokens,
                status="pending",
                payment_ref=payment_ref,
                description=f"Purchase {schema.tokens} tokens",
            )
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.exception(f"[Payments][Intent] {e}")
            raise HTTPException(500, "Failed to create payment intent")

        return {
            "client_secret": f"{payment_ref}_secret_demo",
            "payment_intent_id": payment_ref,
        }

    async def confirm_payment_async(self, ctx: AuthContext, payment_intent_id: str) -> dict:
        try:
            tx = await self.transactions.get_by_payment_ref(payment_intent_id)
            if not tx or tx.user_id != ctx.user_id:
                raise NotFound("Transaction not found")

            # the status guard makes a double confirm a no-op even under a race
            result = await self.db.execute(
                update(Transactions)
                .where(Transactions.id == tx.id, Transactions.status == "pending")
                .values(status="completed", confirmed_at=get_now())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise InvalidState("Transaction already processed")

            tokens = tx.tokens or 0
            balance = await self.ledger.credit(ctx.user_id, tokens)

            await self.notification_service.create_notification_async(
                NotificationCreateSchema(
                    user_id=ctx.user_id,
                    title="Payment Successful",
                    message=f"Successfully purchased {tokens} tokens!",
                    type="success",
                )
            )
            await self.db.commit()
        except HTTPException:
            await self.db.rollback()
            self.notification_service.discard_pending()
            raise
        except Exception as e:
            await self.db.rollback()
            self.notification_service.discard_pending()
            logger.exception(f"[Payments][Confirm] {e}")
            raise HTTPException(500, "Failed to confirm payment")

        await self.notification_service.publish_pending_async()
        logger.info(f"[Payments] {payment_intent_id} confirmed: +{tokens} tokens")
        return {"success": True, "tokens": balance}

    async def list_transactions_async(self, ctx: AuthContext, limit: int = 20):
        return await self.transactions.list_async(user_id=ctx.user_id, limit=limit)
