from fastapi import APIRouter, Depends, HTTPException
from typing import Any, Dict, List
from models.message_models import Conversation, Message, MessageCreate, MessageType, OfferCreate
from models.notification_models import NotificationType
from models.request_models import PaymentStatus, RequestStatus
from lifecycle import (
    acceptance_content,
    compute_total,
    ensure_transition,
    is_chat_open,
    is_negotiable,
    offer_content,
    payment_request_content,
    rate_unit,
)
from chat_service import (
    create_notification,
    get_or_create_conversation,
    insert_message,
    latest_offer,
    list_messages,
    mark_messages_read,
    post_system_message,
    update_request,
)
from dependencies import counterpart_of, ensure_item_free, get_current_profile, load_request_for_participant
from utils import parse_object_id, serialize_doc
from dataBase import db
from logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["chat"])

USER_MESSAGE_TYPES = {MessageType.TEXT, MessageType.IMAGE}


async def _request_item(borrow_request: Dict[str, Any]) -> Dict[str, Any]:
    item = await db.items.find_one({"_id": parse_object_id(borrow_request["item_id"], "Item")})
    return item or {}


def _preview(content: str, length: int = 80) -> str:
    return content if len(content) <= length else content[:length - 3] + "..."


@router.get("/requests/{request_id}/conversation", response_model=Conversation)
async def get_conversation(request_id: str, profile: Dict[str, Any] = Depends(get_current_profile)):
    borrow_request = await load_request_for_participant(request_id, profile)
    return await get_or_create_conversation(borrow_request["id"])


@router.get("/requests/{request_id}/messages", response_model=List[Message])
async def get_messages(request_id: str, profile: Dict[str, Any] = Depends(get_current_profile)):
    borrow_request = await load_request_for_participant(request_id, profile)
    messages = await list_messages(borrow_request["id"])
    await mark_messages_read(borrow_request["id"], profile["id"])
    return messages


@router.post("/requests/{request_id}/messages", response_model=Message, status_code=201)
async def send_message(request_id: str, message: MessageCreate, profile: Dict[str, Any] = Depends(get_current_profile)):
    borrow_request = await load_request_for_participant(request_id, profile)
    if message.message_type not in USER_MESSAGE_TYPES:
        raise HTTPException(status_code=400, detail=f"Cannot send '{message.message_type.value}' messages here")
    if not is_chat_open(borrow_request["status"]):
        raise HTTPException(status_code=409, detail=f"Chat is closed for {borrow_request['status']} requests")

    created = await insert_message(borrow_request, profile["id"], message.message_type, message.content)

    if borrow_request["status"] == RequestStatus.PENDING.value:
        ensure_transition(borrow_request["status"], RequestStatus.NEGOTIATING)
        await update_request(borrow_request, {"status": RequestStatus.NEGOTIATING.value})

    await create_notification(
        counterpart_of(borrow_request, profile["id"]),
        f"New message from {profile['full_name']}",
        _preview(message.content),
        NotificationType.NEW_MESSAGE,
        borrow_request["id"],
    )
    return created


@router.post("/requests/{request_id}/offers", response_model=Message, status_code=201)
async def send_offer(request_id: str, offer: OfferCreate, profile: Dict[str, Any] = Depends(get_current_profile)):
    borrow_request = await load_request_for_participant(request_id, profile)
    if not is_negotiable(borrow_request["status"]):
        raise HTTPException(status_code=409, detail=f"Offers are closed for a {borrow_request['status']} request")

    item = await _request_item(borrow_request)
    content = offer_content(offer.amount, offer.duration_days, rate_unit(item))
    created = await insert_message(
        borrow_request,
        profile["id"],
        MessageType.OFFER,
        content,
        offer_amount=offer.amount,
        offer_duration_days=offer.duration_days,
    )
    await update_request(borrow_request, {
        "status": RequestStatus.NEGOTIATING.value,
        "negotiated_rate": offer.amount,
        "negotiated_duration_days": offer.duration_days,
    })

    await create_notification(
        counterpart_of(borrow_request, profile["id"]),
        "New Offer",
        f"{profile['full_name']} sent a counter-offer: {content}",
        NotificationType.OFFER,
        borrow_request["id"],
    )
    logger.info(f"Profile {profile['id']} offered {offer.amount} x {offer.duration_days} on request {request_id}")
    return created


@router.post("/requests/{request_id}/offers/{message_id}/accept")
async def accept_offer(request_id: str, message_id: str, profile: Dict[str, Any] = Depends(get_current_profile)):
    borrow_request = await load_request_for_participant(request_id, profile)
    conversation = await get_or_create_conversation(borrow_request["id"])

    offer = await db.messages.find_one({"_id": parse_object_id(message_id, "Offer")})
    if (
        not offer
        or offer.get("conversation_id") != conversation["id"]
        or offer.get("message_type") != MessageType.OFFER.value
    ):
        raise HTTPException(status_code=404, detail="Offer not found")
    offer = serialize_doc(offer)
    if offer["sender_id"] == profile["id"]:
        raise HTTPException(status_code=403, detail="You cannot accept your own offer")

    newest = await latest_offer(borrow_request["id"])
    if newest is None or newest["id"] != offer["id"]:
        raise HTTPException(status_code=409, detail="This offer has been superseded by a newer one")

    ensure_transition(borrow_request["status"], RequestStatus.ACCEPTED)
    await ensure_item_free(borrow_request)

    amount = offer["offer_amount"]
    days = offer["offer_duration_days"]
    updated = await update_request(borrow_request, {
        "status": RequestStatus.ACCEPTED.value,
        "negotiated_rate": amount,
        "negotiated_duration_days": days,
        "total_cost": compute_total(amount, days),
    })

    item = await _request_item(updated)
    system_message = await post_system_message(updated, acceptance_content(amount, days, rate_unit(item)))

    await create_notification(
        offer["sender_id"],
        "Offer Accepted",
        f"{profile['full_name']} accepted your offer for '{item.get('title', 'the item')}'.",
        NotificationType.OFFER,
        updated["id"],
    )
    logger.info(f"Offer {message_id} accepted on request {request_id}; total {updated['total_cost']}")
    return {"message": "Offer accepted", "request": updated, "system_message": system_message}


@router.post("/requests/{request_id}/payment-request", response_model=Message, status_code=201)
async def request_payment(request_id: str, profile: Dict[str, Any] = Depends(get_current_profile)):
    borrow_request = await load_request_for_participant(request_id, profile)
    if profile["id"] != borrow_request["owner_id"]:
        raise HTTPException(status_code=403, detail="Only the owner can request payment")
    if borrow_request["status"] != RequestStatus.ACCEPTED.value:
        raise HTTPException(status_code=409, detail="Payment can only be requested for accepted requests")
    if borrow_request.get("payment_status") == PaymentStatus.COMPLETED.value:
        raise HTTPException(status_code=409, detail="This request is already paid")

    total = borrow_request.get("total_cost") or 0
    created = await insert_message(
        borrow_request,
        profile["id"],
        MessageType.PAYMENT_REQUEST,
        payment_request_content(total),
        offer_amount=total,
    )
    await create_notification(
        borrow_request["borrower_id"],
        "Payment Requested",
        f"{profile['full_name']} requested ${total:.2f}.",
        NotificationType.PAYMENT,
        borrow_request["id"],
    )
    return created


@router.get("/messages/unread-count")
async def get_unread_message_count(profile: Dict[str, Any] = Depends(get_current_profile)):
    request_ids = []
    query = {"$or": [{"borrower_id": profile["id"]}, {"owner_id": profile["id"]}]}
    async for borrow_request in db.borrow_requests.find(query, {"_id": 1}):
        request_ids.append(str(borrow_request["_id"]))

    conversation_ids = []
    async for conversation in db.conversations.find({"borrow_request_id": {"$in": request_ids}}, {"_id": 1}):
        conversation_ids.append(str(conversation["_id"]))

    count = await db.messages.count_documents({
        "conversation_id": {"$in": conversation_ids},
        "sender_id": {"$ne": profile["id"]},
        "is_read": False,
    })
    return {"unread_count": count}
