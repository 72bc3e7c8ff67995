from fastapi import APIRouter, Depends, HTTPException
from pydantic import HttpUrl
from typing import Any, Dict, List
from datetime import datetime
from models.profile_models import Profile, ProfileCreate, ProfileUpdate
from models.review_models import Review
from models.item_models import Item
from routes.item_routes import attach_owners
from dependencies import get_current_user_id, get_current_profile, profile_for_user
from utils import parse_object_id, serialize_doc
from dataBase import db
from logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/profiles", tags=["profiles"])


def _clean(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: str(v) if isinstance(v, HttpUrl) else v for k, v in data.items()}


@router.post("", response_model=Profile, status_code=201)
async def create_profile(profile: ProfileCreate, user_id: str = Depends(get_current_user_id)):
    if await profile_for_user(user_id):
        raise HTTPException(status_code=400, detail="Profile already exists")

    now = datetime.utcnow()
    profile_dict = _clean(profile.dict())
    profile_dict.update({
        "user_id": user_id,
        "trust_score": 0.0,
        "total_ratings": 0,
        "created_at": now,
        "updated_at": now,
    })
    result = await db.profiles.insert_one(profile_dict)
    profile_dict["_id"] = result.inserted_id
    logger.info(f"Created profile {result.inserted_id} for user {user_id}")
    return serialize_doc(profile_dict)


@router.get("/me", response_model=Profile)
async def get_my_profile(profile: Dict[str, Any] = Depends(get_current_profile)):
    return profile


@router.put("/me", response_model=Profile)
async def update_my_profile(updated_data: ProfileUpdate, profile: Dict[str, Any] = Depends(get_current_profile)):
    update_dict = _clean(updated_data.dict(exclude_unset=True))
    if not update_dict:
        raise HTTPException(status_code=400, detail="No fields provided for update")

    update_dict["updated_at"] = datetime.utcnow()
    await db.profiles.update_one({"_id": parse_object_id(profile["id"], "Profile")}, {"$set": update_dict})

    updated = await db.profiles.find_one({"_id": parse_object_id(profile["id"], "Profile")})
    return serialize_doc(updated)


@router.get("/{profile_id}", response_model=Profile)
async def get_profile(profile_id: str):
    profile = await db.profiles.find_one({"_id": parse_object_id(profile_id, "Profile")})
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    return serialize_doc(profile)


@router.get("/{profile_id}/reviews", response_model=List[Review])
async def get_profile_reviews(profile_id: str):
    reviews = []
    async for review in db.reviews.find({"reviewee_id": profile_id}).sort("created_at", -1):
        reviews.append(serialize_doc(review))
    return reviews


@router.get("/{profile_id}/items", response_model=List[Item])
async def get_profile_items(profile_id: str, include_unavailable: bool = False):
    query = {"owner_id": profile_id}
    if not include_unavailable:
        query["is_available"] = True
    items = []
    async for item in db.items.find(query).sort("created_at", -1):
        items.append(serialize_doc(item))
    return await attach_owners(items)
