from fastapi import APIRouter, Depends

from studypartner.core.deps import AuthorizationService
from studypartner.schemas.shares.payment import (
    PaymentConfirmSchema,
    PaymentIntentCreateSchema,
    PaymentIntentOut,
    TransactionOut,
)
from studypartner.services.shares.payment import PaymentService

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("/intent", response_model=PaymentIntentOut)
async def create_payment_intent(
    schema: PaymentIntentCreateSchema,
    payment_svc: PaymentService = Depends(PaymentService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.require_profile()
    return await payment_svc.create_payment_intent_async(ctx, schema)


@router.post("/confirm")
async def confirm_payment(
    schema: PaymentConfirmSchema,
    payment_svc: PaymentService = Depends(PaymentService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.require_profile()
    return await payment_svc.confirm_payment_async(ctx, schema.payment_intent_id)


@router.get("/transactions", response_model=list[TransactionOut])
async def list_transactions(
    limit: int = 20,
    payment_svc: PaymentService = Depends(PaymentService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.get_current_user()
    return await payment_svc.list_transactions_async(ctx, limit=limit)
