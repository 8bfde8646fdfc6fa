import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

NotificationType = Literal["info", "success", "warning", "error"]


class NotificationCreateSchema(BaseModel):
    """
    Notification written by any state transition that should surface to a user.
    """

    user_id: uuid.UUID = Field(..., description="Recipient")
    title: str = Field(..., description="Short headline shown in the bell menu")
    message: str = Field(..., description="Full message body")
    type: NotificationType = Field(default="info", description="Severity")
    action_url: Optional[str] = Field(
        default=None, description="Frontend path opened on click (e.g. /student/sessions/<id>)"
    )


class NotificationOut(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    message: str
    type: str
    is_read: bool
    action_url: Optional[str] = None
    read_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True
