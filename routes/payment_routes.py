from fastapi import APIRouter, Depends, HTTPException
from typing import Any, Dict
from datetime import datetime
from models.payment_models import PaymentIntentResponse
from models.request_models import BorrowRequestDetails, PaymentStatus, RequestStatus
from models.notification_models import NotificationType
from lifecycle import ensure_transition
from chat_service import create_notification, post_system_message, update_request
from dependencies import ensure_item_free, get_current_profile, load_request_for_participant
from payment_service import FAILED_INTENT_STATUSES, PaymentError, payment_service
from routes.request_routes import item_title, request_details
from utils import parse_object_id
from dataBase import db
from logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/requests", tags=["payments"])


async def _borrowers_request(request_id: str, profile: Dict[str, Any]) -> Dict[str, Any]:
    borrow_request = await load_request_for_participant(request_id, profile)
    if profile["id"] != borrow_request["borrower_id"]:
        raise HTTPException(status_code=403, detail="Only the borrower can pay for this request")
    if borrow_request["status"] != RequestStatus.ACCEPTED.value:
        raise HTTPException(status_code=409, detail="Only accepted requests can be paid")
    if borrow_request.get("payment_status") == PaymentStatus.COMPLETED.value:
        raise HTTPException(status_code=409, detail="This request is already paid")
    await ensure_item_free(borrow_request)
    return borrow_request


@router.post("/{request_id}/payment-intent", response_model=PaymentIntentResponse)
async def create_payment_intent(request_id: str, profile: Dict[str, Any] = Depends(get_current_profile)):
    borrow_request = await _borrowers_request(request_id, profile)
    total = borrow_request.get("total_cost") or 0
    if total <= 0:
        raise HTTPException(status_code=400, detail="Nothing to pay for this request")

    try:
        intent = await payment_service.create_payment_intent(borrow_request["id"], total)
    except PaymentError as e:
        raise HTTPException(status_code=502, detail=f"Payment provider error: {e}")

    await update_request(borrow_request, {
        "payment_intent_id": intent["payment_intent_id"],
        "payment_status": PaymentStatus.PENDING.value,
    })
    return {"request_id": borrow_request["id"], **intent}


@router.post("/{request_id}/payment/confirm", response_model=BorrowRequestDetails)
async def confirm_payment(request_id: str, profile: Dict[str, Any] = Depends(get_current_profile)):
    borrow_request = await _borrowers_request(request_id, profile)
    payment_intent_id = borrow_request.get("payment_intent_id")
    if not payment_intent_id:
        raise HTTPException(status_code=400, detail="No payment has been started for this request")

    try:
        intent_status = await payment_service.intent_status(payment_intent_id)
    except PaymentError as e:
        raise HTTPException(status_code=502, detail=f"Payment provider error: {e}")

    if intent_status in FAILED_INTENT_STATUSES:
        await update_request(borrow_request, {"payment_status": PaymentStatus.FAILED.value})
        raise HTTPException(status_code=402, detail=f"Payment failed ({intent_status})")
    if intent_status != "succeeded":
        raise HTTPException(status_code=409, detail=f"Payment is not complete yet ({intent_status})")

    target = ensure_transition(borrow_request["status"], RequestStatus.ACTIVE)
    updated = await update_request(borrow_request, {
        "status": target.value,
        "payment_status": PaymentStatus.COMPLETED.value,
    })
    await db.items.update_one(
        {"_id": parse_object_id(updated["item_id"], "Item")},
        {"$set": {"is_available": False, "updated_at": datetime.utcnow()}},
    )
    await post_system_message(updated, f"Payment of ${updated['total_cost']:.2f} received")

    title = await item_title(updated["item_id"])
    await create_notification(
        updated["owner_id"],
        "Payment Received",
        f"{profile['full_name']} paid for '{title}'. Please arrange the handover.",
        NotificationType.PAYMENT,
        updated["id"],
    )
    logger.info(f"Request {request_id} paid via {payment_intent_id}")
    return await request_details(updated, profile["id"])
