import uuid
from datetime import datetime
from typing import Annotated, Optional

from pydantic import BaseModel, Field


class PaymentIntentCreateSchema(BaseModel):
    amount: Annotated[float, Field(gt=0, description="Money charged for the pack")]
    tokens: Annotated[int, Field(gt=0, description="Tokens credited on confirmation")]


class PaymentIntentOut(BaseModel):
    client_secret: str
    payment_intent_id: str


class PaymentConfirmSchema(BaseModel):
    payment_intent_id: str


class TransactionOut(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    type: str
    amount: float
    tokens: Optional[int] = None
    status: str
    payment_ref: Optional[str] = None
    session_id: Optional[uuid.UUID] = None
    description: str
    created_at: datetime
    confirmed_at: Optional[datetime] = None

    class Config:
        from_attributes = True
