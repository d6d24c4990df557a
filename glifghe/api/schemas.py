"""
Pydantic request / response schemas for the API layer.
Kept separate from ORM models to avoid coupling transport to storage.
"""
from typing import Optional
from pydantic import BaseModel, Field


# ──────────────────────────── Users ───────────────────────────────────────

class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    bio: str = ""
    font: str = ""
    profile_picture: str = ""


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    bio: Optional[str] = None
    font: Optional[str] = None
    profile_picture: Optional[str] = None


class UserResponse(BaseModel):
    id: int
    auth_id: str
    name: str
    bio: str
    font: str
    profile_picture: str

    class Config:
        from_attributes = True


# ──────────────────────────── Posts ───────────────────────────────────────

class PostCreate(BaseModel):
    # Image CDN public id (or an absolute URL)
    image_url: str = Field(..., min_length=1, max_length=500)
    message: Optional[str] = None


class PostResponse(BaseModel):
    id: int
    user_id: int
    user_name: Optional[str] = None
    image_url: str
    message: Optional[str]
    date_added: int


# ──────────────────────────── Comments ────────────────────────────────────

class CommentCreate(BaseModel):
    message: str = Field(..., min_length=1)


class CommentResponse(BaseModel):
    """A comment joined with the author fields the UI shows next to it."""
    id: int
    post_id: int
    user_id: int
    auth_id: str
    user_name: str
    profile_picture: str
    message: Optional[str]
