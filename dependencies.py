"""
Request-scoped dependencies: who is calling, and which request they touch.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from typing import Any, Dict, Optional

from dataBase import db
from models.request_models import RequestStatus
from utils import verify_token, parse_object_id, serialize_doc

bearer_scheme = HTTPBearer(auto_error=False)

# A rental holds its item from payment until the item comes back
HOLDING_STATUSES = [RequestStatus.ACTIVE.value, RequestStatus.OVERDUE.value]


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    user_id = verify_token(credentials.credentials)
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user_id


async def profile_for_user(user_id: str) -> Optional[Dict[str, Any]]:
    return serialize_doc(await db.profiles.find_one({"user_id": user_id}))


async def get_current_profile(user_id: str = Depends(get_current_user_id)) -> Dict[str, Any]:
    profile = await profile_for_user(user_id)
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile


async def load_request_for_participant(request_id: str, profile: Dict[str, Any]) -> Dict[str, Any]:
    """Fetch a borrow request the caller takes part in, as borrower or owner."""
    borrow_request = await db.borrow_requests.find_one({"_id": parse_object_id(request_id, "Request")})
    if not borrow_request:
        raise HTTPException(status_code=404, detail="Request not found")
    if profile["id"] not in (borrow_request["borrower_id"], borrow_request["owner_id"]):
        raise HTTPException(status_code=403, detail="Not a participant of this request")
    return serialize_doc(borrow_request)


def counterpart_of(borrow_request: Dict[str, Any], profile_id: str) -> str:
    if profile_id == borrow_request["owner_id"]:
        return borrow_request["borrower_id"]
    return borrow_request["owner_id"]


async def ensure_item_free(borrow_request: Dict[str, Any]) -> None:
    """Refuse to commit a request while another rental holds the same item."""
    holder = await db.borrow_requests.find_one({
        "item_id": borrow_request["item_id"],
        "_id": {"$ne": parse_object_id(borrow_request["id"], "Request")},
        "status": {"$in": HOLDING_STATUSES},
    })
    if holder:
        raise HTTPException(status_code=409, detail="This item is currently rented out on another request")
