from pydantic import BaseModel, HttpUrl, Field
from typing import List, Optional
from datetime import datetime
from enum import Enum

from models.profile_models import ProfileSummary


class ItemCategory(str, Enum):
    BOOKS = "books"
    ELECTRONICS = "electronics"
    NOTES = "notes"
    BIKES = "bikes"
    SPORTS_EQUIPMENT = "sports_equipment"
    TOOLS = "tools"
    CLOTHING = "clothing"
    FURNITURE = "furniture"
    OTHER = "other"
    SERVICES = "services"


class ItemCondition(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class ItemType(str, Enum):
    ALL = "all"
    ITEMS = "items"
    SERVICES = "services"


class SortOrder(str, Enum):
    NEWEST = "newest"
    PRICE_LOW = "price_low"
    PRICE_HIGH = "price_high"
    RATING = "rating"


class ItemCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    category: ItemCategory
    condition: ItemCondition
    daily_rate: Optional[float] = Field(None, ge=0)
    hourly_rate: Optional[float] = Field(None, ge=0)
    deposit_amount: float = Field(0, ge=0)
    is_service: bool = False
    service_type: Optional[str] = None
    location: Optional[str] = None
    tags: List[str] = []
    image_urls: List[HttpUrl] = []
    availability_schedule: List[str] = []


class ItemUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    category: Optional[ItemCategory] = None
    condition: Optional[ItemCondition] = None
    daily_rate: Optional[float] = Field(None, ge=0)
    hourly_rate: Optional[float] = Field(None, ge=0)
    deposit_amount: Optional[float] = Field(None, ge=0)
    service_type: Optional[str] = None
    location: Optional[str] = None
    tags: Optional[List[str]] = None
    image_urls: Optional[List[HttpUrl]] = None
    availability_schedule: Optional[List[str]] = None
    is_available: Optional[bool] = None


class Item(BaseModel):
    id: str
    owner_id: str
    title: str
    description: Optional[str] = None
    category: ItemCategory
    condition: ItemCondition
    daily_rate: Optional[float] = None
    hourly_rate: Optional[float] = None
    deposit_amount: float = 0
    is_service: bool = False
    service_type: Optional[str] = None
    location: Optional[str] = None
    tags: List[str] = []
    image_urls: List[str] = []
    availability_schedule: List[str] = []
    is_available: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    owner: Optional[ProfileSummary] = None
