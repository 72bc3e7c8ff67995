"""
Persistence helpers shared by the request, chat and payment routes.

Every write here also publishes the matching change event so subscribed
clients see it without polling.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pymongo import ReturnDocument

from dataBase import db
from logging_config import get_logger
from models.message_models import MessageType
from models.notification_models import NotificationType
from realtime import (
    conversation_channel,
    notifications_channel,
    publish_change,
    requests_channel,
)
from utils import parse_object_id, serialize_doc

logger = get_logger(__name__)


async def get_or_create_conversation(request_id: str) -> Dict[str, Any]:
    """A request has exactly one conversation; create it on first use."""
    now = datetime.utcnow()
    conversation = await db.conversations.find_one_and_update(
        {"borrow_request_id": request_id},
        {"$setOnInsert": {"borrow_request_id": request_id, "created_at": now, "updated_at": now}},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    return serialize_doc(conversation)


async def update_request(borrow_request: Dict[str, Any], changes: Dict[str, Any]) -> Dict[str, Any]:
    changes = dict(changes)
    changes["updated_at"] = datetime.utcnow()
    updated = await db.borrow_requests.find_one_and_update(
        {"_id": parse_object_id(borrow_request["id"], "Request")},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        raise LookupError(f"Borrow request {borrow_request['id']} disappeared during update")
    updated = serialize_doc(updated)
    for profile_id in (updated["borrower_id"], updated["owner_id"]):
        publish_change(requests_channel(profile_id), "borrow_requests", "UPDATE", updated)
    return updated


async def insert_message(
    borrow_request: Dict[str, Any],
    sender_id: Optional[str],
    message_type: MessageType,
    content: str,
    offer_amount: Optional[float] = None,
    offer_duration_days: Optional[int] = None,
) -> Dict[str, Any]:
    conversation = await get_or_create_conversation(borrow_request["id"])
    now = datetime.utcnow()
    message = {
        "conversation_id": conversation["id"],
        "sender_id": sender_id,
        "message_type": MessageType(message_type).value,
        "content": content,
        "offer_amount": offer_amount,
        "offer_duration_days": offer_duration_days,
        "is_read": False,
        "created_at": now,
    }
    result = await db.messages.insert_one(message)
    message["_id"] = result.inserted_id
    message = serialize_doc(message)

    await update_request(borrow_request, {"last_message_at": now})
    await db.conversations.update_one(
        {"_id": parse_object_id(conversation["id"], "Conversation")},
        {"$set": {"updated_at": now}},
    )

    publish_change(conversation_channel(borrow_request["id"]), "messages", "INSERT", message)
    return message


async def post_system_message(borrow_request: Dict[str, Any], content: str) -> Dict[str, Any]:
    return await insert_message(borrow_request, None, MessageType.SYSTEM, content)


async def list_messages(request_id: str) -> List[Dict[str, Any]]:
    conversation = await get_or_create_conversation(request_id)
    messages = []
    cursor = db.messages.find({"conversation_id": conversation["id"]}).sort([("created_at", 1), ("_id", 1)])
    async for message in cursor:
        messages.append(serialize_doc(message))
    return messages


async def mark_messages_read(request_id: str, reader_id: str) -> int:
    """Mark everything the reader did not send as read, system messages included."""
    conversation = await get_or_create_conversation(request_id)
    result = await db.messages.update_many(
        {"conversation_id": conversation["id"], "sender_id": {"$ne": reader_id}, "is_read": False},
        {"$set": {"is_read": True}},
    )
    return result.modified_count


async def latest_offer(request_id: str) -> Optional[Dict[str, Any]]:
    conversation = await get_or_create_conversation(request_id)
    cursor = (
        db.messages.find({"conversation_id": conversation["id"], "message_type": MessageType.OFFER.value})
        .sort([("created_at", -1), ("_id", -1)])
        .limit(1)
    )
    async for message in cursor:
        return serialize_doc(message)
    return None


async def create_notification(
    user_id: str,
    title: str,
    message: str,
    notification_type: NotificationType,
    related_id: Optional[str] = None,
) -> Dict[str, Any]:
    notification = {
        "user_id": user_id,
        "title": title,
        "message": message,
        "type": NotificationType(notification_type).value,
        "related_id": related_id,
        "is_read": False,
        "created_at": datetime.utcnow(),
    }
    result = await db.notifications.insert_one(notification)
    notification["_id"] = result.inserted_id
    notification = serialize_doc(notification)
    publish_change(notifications_channel(user_id), "notifications", "INSERT", notification)
    logger.debug(f"Notified {user_id}: {title}")
    return notification
