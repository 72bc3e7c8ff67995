from fastapi import APIRouter, Depends, HTTPException
from typing import Any, Dict, List, Tuple
from datetime import datetime
from pymongo.errors import DuplicateKeyError
from models.review_models import Review, ReviewCreate, ReviewType
from models.request_models import RequestStatus
from models.notification_models import NotificationType
from chat_service import create_notification
from dependencies import counterpart_of, get_current_profile, load_request_for_participant
from utils import parse_object_id, serialize_doc
from dataBase import db
from logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/requests", tags=["reviews"])


def trust_score(ratings: List[int]) -> Tuple[float, int]:
    """Mean rating rounded to two places, and how many ratings it covers."""
    if not ratings:
        return 0.0, 0
    return round(sum(ratings) / len(ratings), 2), len(ratings)


async def refresh_trust_score(profile_id: str) -> Tuple[float, int]:
    ratings = []
    async for review in db.reviews.find({"reviewee_id": profile_id}, {"rating": 1}):
        ratings.append(review["rating"])
    score, total = trust_score(ratings)
    await db.profiles.update_one(
        {"_id": parse_object_id(profile_id, "Profile")},
        {"$set": {"trust_score": score, "total_ratings": total, "updated_at": datetime.utcnow()}},
    )
    return score, total


@router.post("/{request_id}/reviews", response_model=Review, status_code=201)
async def create_review(request_id: str, review: ReviewCreate, profile: Dict[str, Any] = Depends(get_current_profile)):
    borrow_request = await load_request_for_participant(request_id, profile)
    if borrow_request["status"] != RequestStatus.COMPLETED.value:
        raise HTTPException(status_code=409, detail="Only completed requests can be reviewed")

    existing = await db.reviews.find_one({"borrow_request_id": borrow_request["id"], "reviewer_id": profile["id"]})
    if existing:
        raise HTTPException(status_code=400, detail="You have already reviewed this request")

    is_borrower = profile["id"] == borrow_request["borrower_id"]
    review_dict = {
        "borrow_request_id": borrow_request["id"],
        "reviewer_id": profile["id"],
        "reviewee_id": counterpart_of(borrow_request, profile["id"]),
        "rating": review.rating,
        "comment": review.comment,
        "review_type": (ReviewType.BORROWER_TO_OWNER if is_borrower else ReviewType.OWNER_TO_BORROWER).value,
        "created_at": datetime.utcnow(),
    }
    try:
        result = await db.reviews.insert_one(review_dict)
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail="You have already reviewed this request")
    review_dict["_id"] = result.inserted_id

    score, total = await refresh_trust_score(review_dict["reviewee_id"])
    logger.info(f"Profile {review_dict['reviewee_id']} trust score now {score} over {total} ratings")

    await create_notification(
        review_dict["reviewee_id"],
        "New Review",
        f"{profile['full_name']} rated you {review.rating}/5.",
        NotificationType.REVIEW,
        borrow_request["id"],
    )
    return serialize_doc(review_dict)
