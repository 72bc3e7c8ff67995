from pydantic import BaseModel, EmailStr, HttpUrl, Field
from typing import Optional
from datetime import datetime


class ProfileCreate(BaseModel):
    full_name: str = Field(..., min_length=1)
    email: EmailStr
    avatar_url: Optional[HttpUrl] = None
    bio: Optional[str] = None
    phone: Optional[str] = None
    major: Optional[str] = None
    year_of_study: Optional[str] = None


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1)
    avatar_url: Optional[HttpUrl] = None
    bio: Optional[str] = None
    phone: Optional[str] = None
    major: Optional[str] = None
    year_of_study: Optional[str] = None


class Profile(BaseModel):
    id: str
    user_id: str
    full_name: str
    email: EmailStr
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    phone: Optional[str] = None
    major: Optional[str] = None
    year_of_study: Optional[str] = None
    trust_score: float = 0.0
    total_ratings: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProfileSummary(BaseModel):
    id: str
    full_name: str
    trust_score: float = 0.0
    total_ratings: int = 0
