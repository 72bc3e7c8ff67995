from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum


class ReviewType(str, Enum):
    BORROWER_TO_OWNER = "borrower_to_owner"
    OWNER_TO_BORROWER = "owner_to_borrower"


class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None


class Review(BaseModel):
    id: str
    borrow_request_id: str
    reviewer_id: str
    reviewee_id: str
    rating: int
    comment: Optional[str] = None
    review_type: ReviewType
    created_at: datetime
