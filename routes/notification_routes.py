from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Any, Dict, List
from models.notification_models import Notification
from dependencies import get_current_profile
from realtime import notifications_channel, publish_change
from utils import parse_object_id, serialize_doc
from dataBase import db

router = APIRouter(prefix="/notifications", tags=["notifications"])


async def _own_notification(notification_id: str, profile: Dict[str, Any]) -> Dict[str, Any]:
    notification = await db.notifications.find_one({"_id": parse_object_id(notification_id, "Notification")})
    if not notification or notification["user_id"] != profile["id"]:
        raise HTTPException(status_code=404, detail="Notification not found")
    return serialize_doc(notification)


@router.get("", response_model=List[Notification])
async def get_notifications(
    unread_only: bool = False,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    profile: Dict[str, Any] = Depends(get_current_profile),
):
    query = {"user_id": profile["id"]}
    if unread_only:
        query["is_read"] = False

    notifications = []
    cursor = db.notifications.find(query) \
        .sort([("created_at", -1), ("_id", -1)]) \
        .skip(skip).limit(limit)

    async for notif in cursor:
        notifications.append(serialize_doc(notif))

    return notifications


@router.get("/unread-count")
async def get_unread_count(profile: Dict[str, Any] = Depends(get_current_profile)):
    count = await db.notifications.count_documents({"user_id": profile["id"], "is_read": False})
    return {"unread_count": count}


@router.put("/read-all")
async def mark_all_notifications_read(profile: Dict[str, Any] = Depends(get_current_profile)):
    result = await db.notifications.update_many(
        {"user_id": profile["id"], "is_read": False},
        {"$set": {"is_read": True}}
    )
    publish_change(notifications_channel(profile["id"]), "notifications", "UPDATE", {"all_read": True})
    return {"message": "Notifications marked as read", "updated": result.modified_count}


@router.put("/{notification_id}/read")
async def mark_notification_read(notification_id: str, profile: Dict[str, Any] = Depends(get_current_profile)):
    notification = await _own_notification(notification_id, profile)
    await db.notifications.update_one(
        {"_id": parse_object_id(notification_id, "Notification")},
        {"$set": {"is_read": True}}
    )
    notification["is_read"] = True
    publish_change(notifications_channel(profile["id"]), "notifications", "UPDATE", notification)
    return {"message": "Notification marked as read"}


@router.delete("/{notification_id}")
async def delete_notification(notification_id: str, profile: Dict[str, Any] = Depends(get_current_profile)):
    notification = await _own_notification(notification_id, profile)
    await db.notifications.delete_one({"_id": parse_object_id(notification_id, "Notification")})
    publish_change(notifications_channel(profile["id"]), "notifications", "DELETE", {"id": notification["id"]})
    return {"message": "Notification deleted successfully"}
