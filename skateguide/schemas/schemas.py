"""
Pydantic Schemas for the SkateGuide API.
Request and Response models shared by services and routers.
"""
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from typing import Dict, Optional, List, Literal, Tuple
from datetime import datetime
from enum import Enum


# ============================================
# ENUMS
# ============================================
class Role(str, Enum):
    admin = "Admin"
    user = "User"
    guest = "Guest"


class Size(str, Enum):
    tiny = "Tiny"
    small = "Small"
    medium = "Medium"
    large = "Large"
    huge = "Huge"


class SkaterLevel(str, Enum):
    all_levels = "All Levels"
    beginner = "Beginner"
    intermediate = "Intermediate"
    expert = "Expert"


class Tag(str, Enum):
    rail = "Rail"
    ledge = "Ledge"
    stairs = "Stairs"
    manual_pad = "Manual Pad"
    bank = "Bank"
    quarter_pipe = "Quarter Pipe"
    half_pipe = "Half Pipe"
    bowl = "Bowl"
    pool = "Pool"
    pyramid = "Pyramid"
    hubba = "Hubba"
    flatbar = "Flatbar"
    kicker = "Kicker"
    spine = "Spine"
    funbox = "Funbox"
    diy = "DIY"
    mini_ramp = "Mini Ramp"


class ActivityType(str, Enum):
    park_created = "PARK_CREATED"
    park_approved = "PARK_APPROVED"
    park_deleted = "PARK_DELETED"
    user_role_changed = "USER_ROLE_CHANGED"
    user_deleted = "USER_DELETED"
    password_changed = "PASSWORD_CHANGED"


TypeFilter = Literal["all", "park", "street"]
SortBy = Literal["default", "distance", "rating", "recent"]


def _dedupe(values: list) -> list:
    seen = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


# ============================================
# GEO
# ============================================
class Coordinates(BaseModel):
    lat: float
    lng: float


# ============================================
# SKATEPARK SCHEMAS
# ============================================
class SkateparkCreate(BaseModel):
    """Payload for adding a skatepark (sent as the ``data`` form field)."""
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    title: str = Field(..., min_length=2, max_length=30)
    description: Optional[str] = Field(None, max_length=300)
    tags: List[Tag] = Field(default_factory=list, max_length=10)
    size: Size
    levels: List[SkaterLevel] = Field(..., min_length=1)
    is_park: bool
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    external_links: List[str] = Field(default_factory=list, max_length=10)

    @field_validator("tags", "levels")
    @classmethod
    def unique_values(cls, v):
        return _dedupe(v)

    @field_validator("external_links")
    @classmethod
    def unique_links(cls, v):
        if len(set(v)) != len(v):
            raise ValueError("Each link must be unique")
        return v


class SkateparkUpdate(BaseModel):
    """Partial update. Ownership, approval and ratings are not editable here."""
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    title: Optional[str] = Field(None, min_length=2, max_length=30)
    description: Optional[str] = Field(None, max_length=300)
    tags: Optional[List[Tag]] = Field(None, max_length=10)
    size: Optional[Size] = None
    levels: Optional[List[SkaterLevel]] = Field(None, min_length=1)
    is_park: Optional[bool] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    keep_photo_names: Optional[List[str]] = None

    @field_validator("tags", "levels")
    @classmethod
    def unique_values(cls, v):
        return _dedupe(v) if v is not None else v

    @model_validator(mode="after")
    def coordinates_together(self):
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be updated together")
        return self


class SkateparkExtrasUpdate(BaseModel):
    """Append tags and external links without replacing existing ones."""
    model_config = ConfigDict(extra="forbid")

    tags: List[Tag] = Field(default_factory=list)
    links: List[str] = Field(default_factory=list)


class ExternalLinkResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    url: str
    sent_by: Optional[int] = None
    sent_at: Optional[datetime] = None


class SkateparkResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: Optional[str] = None
    tags: List[str] = []
    size: str
    levels: List[str] = []
    is_park: bool
    latitude: float
    longitude: float
    photo_names: List[str] = []
    avg_rating: float = 0
    favorites_count: int = 0
    is_approved: bool = False
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    external_links: List[ExternalLinkResponse] = []


class SkateparkDetailResponse(SkateparkResponse):
    """Single park with the caller's own rating."""
    user_rating: Optional[float] = None
    ratings_count: int = 0


class AnnotatedSkatepark(SkateparkResponse):
    """Park that survived filtering, with display annotations."""
    coordinates: Coordinates
    distance_km: Optional[float] = None
    is_deleting: bool = False


class PaginatedSkateparks(BaseModel):
    data: List[SkateparkResponse]
    page: int
    limit: int
    total: int


class PendingParkItem(BaseModel):
    id: int
    title: str
    thumbnail: Optional[str] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    link: str


class PendingParksResponse(BaseModel):
    data: List[PendingParkItem]
    page: int
    limit: int
    total: int


# ============================================
# FILTER SCHEMAS
# ============================================
class FilterState(BaseModel):
    """Every search/filter/sort parameter applied to a listing at once."""
    model_config = ConfigDict(extra="forbid")

    search_term: str = ""
    type_filter: TypeFilter = "all"
    size_filter: List[Size] = Field(default_factory=list)
    level_filter: List[SkaterLevel] = Field(default_factory=list)
    tag_filter: List[Tag] = Field(default_factory=list)
    distance_filter_enabled: bool = False
    distance_filter: float = Field(10, gt=0, description="Radius in km")
    rating_filter_enabled: bool = False
    rating_filter: Tuple[float, float] = (0, 5)
    show_only_favorites: bool = False
    show_only_approved: bool = False
    sort_by: SortBy = "default"

    @field_validator("rating_filter")
    @classmethod
    def valid_range(cls, v):
        low, high = v
        if not 0 <= low <= high <= 5:
            raise ValueError("rating_filter must satisfy 0 <= min <= max <= 5")
        return v


class SearchRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    filters: FilterState = Field(default_factory=FilterState)
    user_coords: Optional[Coordinates] = None
    excluded_ids: List[int] = Field(default_factory=list)
    deleting_ids: List[int] = Field(default_factory=list)


# ============================================
# RATING / REPORT SCHEMAS
# ============================================
class RatingRequest(BaseModel):
    """Rating value is range-checked by the rating service (1-5, half steps)."""
    value: float


class RatingResponse(BaseModel):
    skatepark_id: int
    user_id: int
    value: float
    avg_rating: float
    ratings_count: int


class ReportRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=300)


class ReportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    skatepark_id: int
    reported_by: int
    reason: str
    created_at: Optional[datetime] = None


# ============================================
# FAVORITES SCHEMAS
# ============================================
class FavoriteToggleRequest(BaseModel):
    skatepark_id: int


class FavoriteToggleResponse(BaseModel):
    action: Literal["added", "removed"]
    favorites_count: int


# ============================================
# AUTHORIZATION SCHEMAS
# ============================================
class Actor(BaseModel):
    """Resolved identity of the caller."""
    id: int
    role: Role


class ResourceRef(BaseModel):
    """What the authorization gate needs to know about a resource."""
    created_by: Optional[int] = None
    owner_role: Optional[Role] = None
    is_approved: Optional[bool] = None


class Capabilities(BaseModel):
    approve: bool = False
    edit: bool = False
    delete: bool = False


# ============================================
# USER / AUTH SCHEMAS
# ============================================
class RegisterRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=4, max_length=128)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    role: Role
    is_active: bool
    photo_name: Optional[str] = None
    created_at: Optional[datetime] = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class PasswordChangeRequest(BaseModel):
    current_password: Optional[str] = None
    new_password: str = Field(..., min_length=4, max_length=128)


class RoleChangeRequest(BaseModel):
    role: Role


class ActivityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: ActivityType
    actor_user_id: int
    target_type: str
    target_id: int
    details: Optional[dict] = None
    created_at: Optional[datetime] = None


class MessageResponse(BaseModel):
    message: str


# ============================================
# STATS SCHEMAS
# ============================================
class UserStatsResponse(BaseModel):
    user_id: int
    total_spots: int
    avg_rating: float


class DailyCount(BaseModel):
    date: str
    count: int


class ContributorCount(BaseModel):
    user_id: int
    name: str
    count: int


class StatsOverviewResponse(BaseModel):
    """Admin dashboard totals."""
    total_users: int
    admin_count: int
    new_users_days: int
    new_users_by_day: List[DailyCount]
    total_parks: int
    approved_parks: int
    pending_parks: int
    parks_by_type: Dict[str, int]
    parks_by_size: Dict[str, int]
    parks_by_level: Dict[str, int]
    top_contributors: List[ContributorCount]
