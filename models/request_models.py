from pydantic import BaseModel
from typing import List, Optional
from datetime import date, datetime
from enum import Enum


class RequestStatus(str, Enum):
    PENDING = "pending"
    NEGOTIATING = "negotiating"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    ACTIVE = "active"
    COMPLETED = "completed"
    OVERDUE = "overdue"


class PaymentStatus(str, Enum):
    NONE = "none"
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class StatusGroup(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"


class OwnerDecision(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"


class BorrowRequestCreate(BaseModel):
    item_id: str
    start_date: date
    end_date: date
    message: Optional[str] = None


class OwnerResponse(BaseModel):
    decision: OwnerDecision
    owner_response: Optional[str] = None


class BorrowRequest(BaseModel):
    id: str
    item_id: str
    borrower_id: str
    owner_id: str
    start_date: datetime
    end_date: datetime
    message: Optional[str] = None
    status: RequestStatus
    negotiated_rate: Optional[float] = None
    negotiated_duration_days: Optional[int] = None
    total_cost: Optional[float] = None
    owner_response: Optional[str] = None
    payment_status: PaymentStatus = PaymentStatus.NONE
    payment_intent_id: Optional[str] = None
    last_message_at: Optional[datetime] = None
    actual_return_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BorrowRequestDetails(BorrowRequest):
    available_actions: List[str] = []
    progress_percent: int = 0
    item: Optional[dict] = None
    counterpart: Optional[dict] = None
