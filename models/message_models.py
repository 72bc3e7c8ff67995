from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum


class MessageType(str, Enum):
    TEXT = "text"
    OFFER = "offer"
    IMAGE = "image"
    SYSTEM = "system"
    PAYMENT_REQUEST = "payment_request"


class MessageCreate(BaseModel):
    content: str = Field(..., min_length=1)
    message_type: MessageType = MessageType.TEXT


class OfferCreate(BaseModel):
    amount: float = Field(..., gt=0)
    duration_days: int = Field(..., ge=1)


class Conversation(BaseModel):
    id: str
    borrow_request_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Message(BaseModel):
    id: str
    conversation_id: str
    sender_id: Optional[str] = None
    message_type: MessageType
    content: str
    offer_amount: Optional[float] = None
    offer_duration_days: Optional[int] = None
    is_read: bool = False
    created_at: datetime
