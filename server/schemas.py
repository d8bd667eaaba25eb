"""Pydantic request/response schemas for the Design Vault API.

Wire keys are camelCase (parentId, itemId, createdAt); Python attributes are
snake_case. Requests accept either spelling.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---- Auth ----

class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=8, max_length=128)


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)


class UserResponse(BaseModel):
    id: str
    email: str


# ---- Items ----

class AssetSchema(CamelModel):
    id: str
    kind: str = "image"
    url: str
    alt: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None


class ItemPayload(CamelModel):
    """Create/update body. Every field optional here; the item store enforces name on create."""
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    kind: Optional[str] = None
    description: Optional[str] = None
    cost: Optional[Union[float, str]] = None
    currency: Optional[str] = None
    dimensions: Optional[Dict[str, Any]] = None
    attributes: Optional[Dict[str, Any]] = None
    categories: Optional[Union[List[str], str]] = None
    tags: Optional[Union[List[str], str]] = None
    assets: Optional[List[Dict[str, Any]]] = None


class ItemResponse(CamelModel):
    id: str
    name: str
    kind: str
    description: Optional[str] = None
    cost: Optional[float] = None
    currency: str
    dimensions: Dict[str, Any]
    attributes: Dict[str, Any]
    categories: List[str]
    tags: List[str]
    assets: List[AssetSchema]
    created_at: str
    updated_at: str


class ExportBundle(BaseModel):
    version: str
    items: List[ItemResponse]


class ImportResponse(BaseModel):
    message: str
    count: int


# ---- Categories ----

class CategoryCreate(CamelModel):
    name: Optional[str] = None
    parent_id: Optional[str] = None


class CategoryUpdate(CamelModel):
    name: Optional[str] = None
    parent_id: Optional[str] = None


class CategoryResponse(CamelModel):
    id: str
    name: str
    parent_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class CategoryNode(CategoryResponse):
    children: List["CategoryNode"] = Field(default_factory=list)


class DescendantsResponse(CamelModel):
    category_id: str
    ids: List[str]


# ---- Assets ----

class AssetIngestResponse(AssetSchema):
    created_at: str


# ---- Flashcards / progress ----

class GradeRequest(CamelModel):
    item_id: str = Field(..., min_length=1)
    grade: Literal["again", "good", "easy"]
    timestamp: Optional[datetime] = None


class MessageResponse(BaseModel):
    message: str


class ItemProgressResponse(CamelModel):
    item_id: str
    again: int
    good: int
    easy: int
    total: int
    accuracy: float
    last_seen: Optional[str] = None


class DueItem(ItemResponse):
    interval_days: Optional[int] = None
    due_at: Optional[str] = None


class DueItemsResponse(CamelModel):
    due_count: int
    items: List[DueItem]


class SessionRecordRequest(CamelModel):
    mode: str = Field(..., min_length=1, max_length=32)
    total_cards: int = Field(default=0, ge=0)
    again: int = Field(default=0, ge=0)
    good: int = Field(default=0, ge=0)
    easy: int = Field(default=0, ge=0)
    accuracy: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    duration_seconds: float = Field(default=0.0, ge=0.0)
    coins_earned: Optional[int] = Field(default=None, ge=0)
    timestamp: Optional[datetime] = None


class SessionStatResponse(CamelModel):
    mode: str
    total_cards: int
    again: int
    good: int
    easy: int
    accuracy: float
    duration_seconds: float
    coins_earned: int
    timestamp: Optional[str] = None


class SessionStatsResponse(CamelModel):
    total_sessions: int
    total_cards: int
    total_again: int
    total_good: int
    total_easy: int
    total_coins: int
    total_duration_seconds: float
    average_accuracy: float
    total_accuracy: float


class ResetResponse(CamelModel):
    grades_removed: int
    sessions_removed: int


# ---- Profile ----

class ProfileResponse(CamelModel):
    user_id: str
    coins: int
    background_theme: str
    collectibles: List[str]
    upgrades: Dict[str, Any]


class CoinsRequest(BaseModel):
    amount: int


class CollectibleRequest(CamelModel):
    collectible_id: str = Field(..., min_length=1, max_length=128)


class UpgradeRequest(CamelModel):
    upgrade_id: str = Field(..., min_length=1, max_length=128)
    value: Any = True


class ThemeRequest(BaseModel):
    theme: str = Field(..., min_length=1, max_length=64)


class OwnershipResponse(CamelModel):
    item_id: str
    owned: bool


# ---- Seed ----

class SeedResponse(BaseModel):
    message: str
    count: int
