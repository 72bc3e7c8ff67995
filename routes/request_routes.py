from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Any, Dict, List, Optional
from datetime import datetime, time
from models.request_models import (
    BorrowRequestCreate,
    BorrowRequestDetails,
    OwnerDecision,
    OwnerResponse,
    PaymentStatus,
    RequestStatus,
    StatusGroup,
)
from models.notification_models import NotificationType
from lifecycle import (
    STATUS_GROUPS,
    available_actions,
    compute_total,
    ensure_transition,
    item_rate,
    progress_percent,
    rental_days,
)
from chat_service import create_notification, latest_offer, post_system_message, update_request
from dependencies import (
    counterpart_of,
    ensure_item_free,
    get_current_profile,
    get_current_user_id,
    load_request_for_participant,
)
from realtime import publish_change, requests_channel
from utils import parse_object_id, serialize_doc
from dataBase import db
from logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/requests", tags=["requests"])


async def item_title(item_id: str) -> str:
    item = await db.items.find_one({"_id": parse_object_id(item_id, "Item")})
    return item.get("title", "Unknown Item") if item else "Unknown Item"


async def request_details(borrow_request: Dict[str, Any], viewer_id: str) -> Dict[str, Any]:
    """Attach the item, the other party and what the viewer can do next."""
    details = dict(borrow_request)
    details.setdefault("payment_status", PaymentStatus.NONE.value)
    details["available_actions"] = available_actions(details["status"], details["payment_status"])
    details["progress_percent"] = progress_percent(details["status"])

    item = await db.items.find_one({"_id": parse_object_id(details["item_id"], "Item")})
    if item:
        details["item"] = {
            "id": str(item["_id"]),
            "title": item.get("title"),
            "daily_rate": item.get("daily_rate"),
            "hourly_rate": item.get("hourly_rate"),
            "is_service": item.get("is_service", False),
            "image_urls": item.get("image_urls", []),
        }

    other = await db.profiles.find_one({"_id": parse_object_id(counterpart_of(details, viewer_id), "Profile")})
    if other:
        details["counterpart"] = {
            "id": str(other["_id"]),
            "full_name": other.get("full_name", "Unknown User"),
            "trust_score": other.get("trust_score") or 0.0,
            "total_ratings": other.get("total_ratings") or 0,
        }
    return details


def _status_query(status: Optional[RequestStatus], group: Optional[StatusGroup]) -> Dict[str, Any]:
    if status:
        return {"status": status.value}
    if group:
        return {"status": {"$in": [s.value for s in STATUS_GROUPS[group]]}}
    return {}


@router.post("", response_model=BorrowRequestDetails, status_code=201)
async def create_borrow_request(request: BorrowRequestCreate, profile: Dict[str, Any] = Depends(get_current_profile)):
    item = await db.items.find_one({"_id": parse_object_id(request.item_id, "Item")})
    if not item:
        raise HTTPException(status_code=404, detail="Item not found")
    if not item.get("is_available", True):
        raise HTTPException(status_code=400, detail="Item is not available")
    if item["owner_id"] == profile["id"]:
        raise HTTPException(status_code=400, detail="You cannot borrow your own item")

    try:
        days = rental_days(request.start_date, request.end_date)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    now = datetime.utcnow()
    request_dict = {
        "item_id": request.item_id,
        "borrower_id": profile["id"],
        "owner_id": item["owner_id"],
        "start_date": datetime.combine(request.start_date, time.min),
        "end_date": datetime.combine(request.end_date, time.min),
        "message": request.message,
        "status": RequestStatus.PENDING.value,
        "negotiated_rate": None,
        "negotiated_duration_days": None,
        "total_cost": compute_total(item_rate(item), days),
        "owner_response": None,
        "payment_status": PaymentStatus.NONE.value,
        "payment_intent_id": None,
        "last_message_at": now,
        "actual_return_date": None,
        "created_at": now,
        "updated_at": now,
    }
    result = await db.borrow_requests.insert_one(request_dict)
    request_dict["_id"] = result.inserted_id
    created = serialize_doc(request_dict)
    logger.info(f"Profile {profile['id']} requested item {request.item_id} for {days} days")

    for profile_id in (created["borrower_id"], created["owner_id"]):
        publish_change(requests_channel(profile_id), "borrow_requests", "INSERT", created)
    await create_notification(
        created["owner_id"],
        "New Borrow Request",
        f"{profile['full_name']} wants to borrow '{item.get('title', 'your item')}'",
        NotificationType.BORROW_REQUEST,
        created["id"],
    )
    return await request_details(created, profile["id"])


@router.get("/outgoing", response_model=List[BorrowRequestDetails])
async def get_outgoing_requests(
    status: Optional[RequestStatus] = None,
    group: Optional[StatusGroup] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    profile: Dict[str, Any] = Depends(get_current_profile),
):
    query = {"borrower_id": profile["id"], **_status_query(status, group)}
    requests = []
    cursor = db.borrow_requests.find(query).sort("created_at", -1).skip(skip).limit(limit)
    async for borrow_request in cursor:
        requests.append(await request_details(serialize_doc(borrow_request), profile["id"]))
    return requests


@router.get("/incoming", response_model=List[BorrowRequestDetails])
async def get_incoming_requests(
    status: Optional[RequestStatus] = None,
    group: Optional[StatusGroup] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    profile: Dict[str, Any] = Depends(get_current_profile),
):
    query = {"owner_id": profile["id"], **_status_query(status, group)}
    requests = []
    cursor = (
        db.borrow_requests.find(query)
        .sort([("last_message_at", -1), ("created_at", -1)])
        .skip(skip)
        .limit(limit)
    )
    async for borrow_request in cursor:
        requests.append(await request_details(serialize_doc(borrow_request), profile["id"]))
    return requests


@router.post("/overdue-sweep")
async def mark_overdue_requests(user_id: str = Depends(get_current_user_id)):
    """Flag active rentals whose end date has passed"""
    today = datetime.combine(datetime.utcnow().date(), time.min)
    overdue = []
    async for borrow_request in db.borrow_requests.find({"status": RequestStatus.ACTIVE.value, "end_date": {"$lt": today}}):
        overdue.append(serialize_doc(borrow_request))

    for borrow_request in overdue:
        ensure_transition(borrow_request["status"], RequestStatus.OVERDUE)
        await update_request(borrow_request, {"status": RequestStatus.OVERDUE.value})
        title = await item_title(borrow_request["item_id"])
        await create_notification(
            borrow_request["borrower_id"],
            "Rental Overdue",
            f"'{title}' was due back on {borrow_request['end_date']:%b %d}. Please return it.",
            NotificationType.OVERDUE,
            borrow_request["id"],
        )
        await create_notification(
            borrow_request["owner_id"],
            "Rental Overdue",
            f"'{title}' has not been returned yet.",
            NotificationType.OVERDUE,
            borrow_request["id"],
        )

    if overdue:
        logger.info(f"Marked {len(overdue)} requests overdue (swept by {user_id})")
    return {"message": f"Marked {len(overdue)} requests overdue", "updated": len(overdue)}


@router.get("/{request_id}", response_model=BorrowRequestDetails)
async def get_borrow_request(request_id: str, profile: Dict[str, Any] = Depends(get_current_profile)):
    borrow_request = await load_request_for_participant(request_id, profile)
    return await request_details(borrow_request, profile["id"])


@router.post("/{request_id}/respond", response_model=BorrowRequestDetails)
async def respond_to_request(request_id: str, response: OwnerResponse, profile: Dict[str, Any] = Depends(get_current_profile)):
    borrow_request = await load_request_for_participant(request_id, profile)
    if profile["id"] != borrow_request["owner_id"]:
        raise HTTPException(status_code=403, detail="Only the owner can respond to this request")

    accepted = response.decision == OwnerDecision.ACCEPT
    target = ensure_transition(borrow_request["status"], RequestStatus.ACCEPTED if accepted else RequestStatus.REJECTED)

    changes = {"status": target.value, "owner_response": response.owner_response}
    rate = borrow_request.get("negotiated_rate")
    days = borrow_request.get("negotiated_duration_days")
    if accepted:
        await ensure_item_free(borrow_request)
    if accepted and rate is not None and days is not None:
        # Negotiated terms bind only once the borrower has proposed or agreed to them
        offer = await latest_offer(borrow_request["id"])
        if offer and offer["sender_id"] == profile["id"]:
            raise HTTPException(
                status_code=409,
                detail=f"Your counter-offer is waiting on the borrower; they can accept it at "
                       f"/requests/{request_id}/offers/{offer['id']}/accept",
            )
        changes["total_cost"] = compute_total(rate, days)

    updated = await update_request(borrow_request, changes)
    verb = "accepted" if accepted else "rejected"
    await post_system_message(updated, f"Request {verb} by owner")

    title = await item_title(updated["item_id"])
    await create_notification(
        updated["borrower_id"],
        f"Request {verb.capitalize()}",
        f"Your request for '{title}' has been {verb}." + (" Please complete payment." if accepted else ""),
        NotificationType.REQUEST_UPDATE,
        updated["id"],
    )
    logger.info(f"Owner {profile['id']} {verb} request {request_id}")
    return await request_details(updated, profile["id"])


@router.post("/{request_id}/cancel", response_model=BorrowRequestDetails)
async def cancel_request(request_id: str, profile: Dict[str, Any] = Depends(get_current_profile)):
    borrow_request = await load_request_for_participant(request_id, profile)
    if profile["id"] != borrow_request["borrower_id"]:
        raise HTTPException(status_code=403, detail="Only the borrower can cancel this request")

    ensure_transition(borrow_request["status"], RequestStatus.CANCELLED)
    updated = await update_request(borrow_request, {"status": RequestStatus.CANCELLED.value})
    await post_system_message(updated, "Request cancelled by borrower")

    title = await item_title(updated["item_id"])
    await create_notification(
        updated["owner_id"],
        "Request Cancelled",
        f"{profile['full_name']} cancelled their request for '{title}'.",
        NotificationType.REQUEST_UPDATE,
        updated["id"],
    )
    return await request_details(updated, profile["id"])


@router.post("/{request_id}/complete", response_model=BorrowRequestDetails)
async def complete_request(request_id: str, profile: Dict[str, Any] = Depends(get_current_profile)):
    borrow_request = await load_request_for_participant(request_id, profile)
    ensure_transition(borrow_request["status"], RequestStatus.COMPLETED)

    updated = await update_request(borrow_request, {
        "status": RequestStatus.COMPLETED.value,
        "actual_return_date": datetime.utcnow(),
    })
    await db.items.update_one(
        {"_id": parse_object_id(updated["item_id"], "Item")},
        {"$set": {"is_available": True, "updated_at": datetime.utcnow()}},
    )
    await post_system_message(updated, "Order completed")

    title = await item_title(updated["item_id"])
    await create_notification(
        counterpart_of(updated, profile["id"]),
        "Order Completed",
        f"The order for '{title}' is complete. Leave a review!",
        NotificationType.REQUEST_UPDATE,
        updated["id"],
    )
    return await request_details(updated, profile["id"])
