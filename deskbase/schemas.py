"""Pydantic schemas for records returned by the service and bridge requests."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


# User Schemas
class UserRead(BaseModel):
    """Schema for a user record without its posts."""

    id: int
    name: str
    email: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Post Schemas
class PostRead(BaseModel):
    """Schema for a post record without its author."""

    id: int
    title: str
    content: Optional[str] = None
    published: bool
    author_id: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserWithPosts(UserRead):
    """Schema for a user record with its posts, newest first."""

    posts: List[PostRead] = []


class PostWithAuthor(PostRead):
    """Schema for a post record with its author."""

    author: UserRead


# Setting Schemas
class SettingRead(BaseModel):
    """Schema for a stored setting."""

    key: str
    value: str
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Bridge Schemas
class InvokeRequest(BaseModel):
    """Schema for a bridge invocation: positional and keyword arguments."""

    args: List[Any] = Field(default_factory=list)
    kwargs: Dict[str, Any] = Field(default_factory=dict)
