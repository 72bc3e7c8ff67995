from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from enum import Enum

class NotificationType(str, Enum):
    BORROW_REQUEST = "borrow_request"
    REQUEST_UPDATE = "request_update"
    NEW_MESSAGE = "new_message"
    OFFER = "offer"
    PAYMENT = "payment"
    REVIEW = "review"
    OVERDUE = "overdue"

class Notification(BaseModel):
    id: str
    user_id: str
    type: NotificationType
    title: str
    message: str
    related_id: Optional[str] = None
    is_read: bool = False
    created_at: datetime
