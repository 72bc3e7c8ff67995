from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import HttpUrl
from typing import Any, Dict, List, Optional
from datetime import datetime
from models.item_models import Item, ItemCategory, ItemCreate, ItemType, ItemUpdate, SortOrder
from models.request_models import RequestStatus
from catalog import catalog_query, filter_items, sort_items
from dependencies import get_current_profile
from utils import parse_object_id, serialize_doc
from dataBase import db
from logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/items", tags=["items"])

# Requests that hold the item; it cannot be deleted under them
BLOCKING_STATUSES = [RequestStatus.ACCEPTED.value, RequestStatus.ACTIVE.value, RequestStatus.OVERDUE.value]


def _clean(data: Dict[str, Any]) -> Dict[str, Any]:
    cleaned = {}
    for key, value in data.items():
        if isinstance(value, list):
            value = [str(v) if isinstance(v, HttpUrl) else v for v in value]
        elif hasattr(value, "value"):
            value = value.value
        cleaned[key] = value
    return cleaned


async def attach_owners(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Embed the owner's name and trust figures in each item."""
    owner_ids = {item["owner_id"] for item in items}
    object_ids = [parse_object_id(owner_id, "Profile") for owner_id in owner_ids]
    owners = {}
    async for profile in db.profiles.find({"_id": {"$in": object_ids}}):
        owners[str(profile["_id"])] = {
            "id": str(profile["_id"]),
            "full_name": profile.get("full_name", "Unknown User"),
            "trust_score": profile.get("trust_score") or 0.0,
            "total_ratings": profile.get("total_ratings") or 0,
        }
    for item in items:
        item["owner"] = owners.get(item["owner_id"])
    return items


async def load_item(item_id: str) -> Dict[str, Any]:
    item = await db.items.find_one({"_id": parse_object_id(item_id, "Item")})
    if not item:
        raise HTTPException(status_code=404, detail="Item not found")
    return serialize_doc(item)


async def _catalog(query: Dict[str, Any], search, category, item_type, sort_by, skip, limit):
    cursor = db.items.find(catalog_query(query, category=category, item_type=item_type))
    # Newest-first pages come straight from Mongo; text search and price or
    # rating orders are applied in memory.
    paged_in_db = sort_by == SortOrder.NEWEST and not search
    if paged_in_db:
        cursor = cursor.sort([("created_at", -1), ("_id", -1)]).skip(skip).limit(limit)

    items = []
    async for item in cursor:
        items.append(serialize_doc(item))
    items = filter_items(items, search=search)
    items = await attach_owners(items)
    if paged_in_db:
        return items
    return sort_items(items, sort_by)[skip:skip + limit]


@router.get("", response_model=List[Item])
async def browse_items(
    search: Optional[str] = None,
    category: Optional[str] = Query(None, description="Item category or 'all'"),
    item_type: ItemType = ItemType.ALL,
    sort_by: SortOrder = SortOrder.NEWEST,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
):
    if category and category != "all" and category not in {c.value for c in ItemCategory}:
        raise HTTPException(status_code=400, detail=f"Unknown category '{category}'")
    return await _catalog({"is_available": True}, search, category, item_type, sort_by, skip, limit)


@router.get("/services", response_model=List[Item])
async def browse_services(
    search: Optional[str] = None,
    service_type: Optional[str] = None,
    sort_by: SortOrder = SortOrder.NEWEST,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
):
    query = {"is_available": True, "is_service": True}
    if service_type and service_type != "all":
        query["service_type"] = service_type
    return await _catalog(query, search, None, ItemType.SERVICES, sort_by, skip, limit)


@router.get("/{item_id}", response_model=Item)
async def get_item(item_id: str):
    item = await load_item(item_id)
    return (await attach_owners([item]))[0]


@router.post("", response_model=Item, status_code=201)
async def create_item(item: ItemCreate, profile: Dict[str, Any] = Depends(get_current_profile)):
    if item.is_service and item.hourly_rate is None:
        raise HTTPException(status_code=400, detail="Services need an hourly rate")

    now = datetime.utcnow()
    item_dict = _clean(item.dict())
    item_dict.update({
        "owner_id": profile["id"],
        "is_available": True,
        "created_at": now,
        "updated_at": now,
    })
    result = await db.items.insert_one(item_dict)
    item_dict["_id"] = result.inserted_id
    logger.info(f"Profile {profile['id']} listed item {result.inserted_id}")
    return (await attach_owners([serialize_doc(item_dict)]))[0]


@router.put("/{item_id}", response_model=Item)
async def update_item(item_id: str, updated_data: ItemUpdate, profile: Dict[str, Any] = Depends(get_current_profile)):
    item = await load_item(item_id)
    if item["owner_id"] != profile["id"]:
        raise HTTPException(status_code=403, detail="Only the owner can edit this item")

    update_dict = _clean(updated_data.dict(exclude_unset=True))
    if not update_dict:
        raise HTTPException(status_code=400, detail="No fields provided for update")

    update_dict["updated_at"] = datetime.utcnow()
    await db.items.update_one({"_id": parse_object_id(item_id, "Item")}, {"$set": update_dict})
    return await get_item(item_id)


@router.delete("/{item_id}")
async def delete_item(item_id: str, profile: Dict[str, Any] = Depends(get_current_profile)):
    item = await load_item(item_id)
    if item["owner_id"] != profile["id"]:
        raise HTTPException(status_code=403, detail="Only the owner can delete this item")

    in_use = await db.borrow_requests.count_documents({"item_id": item_id, "status": {"$in": BLOCKING_STATUSES}})
    if in_use:
        raise HTTPException(status_code=409, detail="Item has an accepted or active request")

    await db.items.delete_one({"_id": parse_object_id(item_id, "Item")})
    return {"message": "Item deleted successfully"}
