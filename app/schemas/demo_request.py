# app/schemas/demo_request.py
import re
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic_core import PydanticCustomError

from app.constants.demo_request import DemoType
from app.utils.timezones import is_valid_timezone, parse_local_datetime

EMAIL_PATTERN = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"


class DemoRequestCreate(BaseModel):
    """
    Validated booking input.

    Blank strings count as missing so that every absent required field is
    reported in the same pass. `timezone` is declared before
    `preferred_datetime` because the latter is localized with it. Pass
    `context={"now": <aware datetime>}` to judge "in the future" against an
    injected clock.
    """

    name: str = Field(max_length=255)
    email: str = Field(max_length=255)
    company: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=20)
    message: Optional[str] = Field(default=None, max_length=1000)
    demo_type: str
    timezone: str = Field(max_length=50)
    preferred_datetime: datetime
    session_id: Optional[str] = Field(default=None, max_length=100)
    metadata: Optional[Dict[str, Any]] = None

    @model_validator(mode="before")
    @classmethod
    def drop_blank_values(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {
                key: value
                for key, value in data.items()
                if value is not None and not (isinstance(value, str) and not value.strip())
            }
        return data

    @field_validator("name", "company", "phone", "message", "session_id")
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip()
        if not re.match(EMAIL_PATTERN, v) or len(v) > 254:
            raise PydanticCustomError(
                "email_invalid", "Please provide a valid email address."
            )
        return v.lower()

    @field_validator("demo_type")
    @classmethod
    def validate_demo_type(cls, v: str) -> str:
        v = v.strip().lower()
        if not DemoType.is_valid(v):
            raise PydanticCustomError(
                "demo_type_invalid",
                "Demo type must be one of: {allowed}.",
                {"allowed": ", ".join(DemoType.all_values())},
            )
        return v

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        v = v.strip()
        if not is_valid_timezone(v):
            raise PydanticCustomError(
                "timezone_invalid",
                "'{timezone}' is not a recognised timezone. Use an IANA name such as America/New_York.",
                {"timezone": v},
            )
        return v

    @field_validator("preferred_datetime", mode="before")
    @classmethod
    def localize_preferred_datetime(cls, v: Any, info: ValidationInfo) -> datetime:
        tz_name = info.data.get("timezone")
        try:
            local = parse_local_datetime(v, tz_name or "UTC")
        except ValueError:
            raise PydanticCustomError(
                "preferred_datetime_invalid",
                "Please provide the preferred date and time as YYYY-MM-DD HH:MM.",
            )
        # Without a usable timezone the instant is unknown, so "future" can't be judged.
        if tz_name:
            now = (info.context or {}).get("now") or datetime.now(timezone.utc)
            if local <= now:
                raise PydanticCustomError(
                    "preferred_datetime_past",
                    "The preferred date and time must be in the future.",
                )
        return local


class ChatbotDemoRequestCreate(DemoRequestCreate):
    session_id: str = Field(max_length=100)


class DemoRequestUpdate(BaseModel):
    status: Optional[str] = None
    confirmed_datetime: Optional[datetime] = None
    admin_notes: Optional[str] = None


class DemoRequestResponse(BaseModel):
    id: str
    name: str
    email: str
    company: Optional[str] = None
    phone: Optional[str] = None
    message: Optional[str] = None
    demo_type: str
    demo_type_label: str
    preferred_datetime: datetime
    preferred_datetime_local: datetime
    formatted_preferred_datetime: str
    timezone: str
    status: str
    confirmed_datetime: Optional[datetime] = None
    confirmed_datetime_local: Optional[datetime] = None
    formatted_confirmed_datetime: Optional[str] = None
    source: str
    session_id: Optional[str] = None
    user_id: Optional[str] = None
    admin_notes: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(
        default=None, validation_alias=AliasChoices("request_metadata", "metadata")
    )
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class DemoRequestCreated(BaseModel):
    success: bool = True
    message: str
    demo_request: DemoRequestResponse


# --- Availability ---


class Slot(BaseModel):
    datetime: str  # UTC instant, ISO-8601 with Z
    local_datetime: str  # ISO-8601 with the zone's offset
    formatted: str
    timezone: str


class AvailabilityCheckRequest(BaseModel):
    preferred_datetime: str
    timezone: str


class AvailabilityResponse(BaseModel):
    available: bool
    requested: str
    timezone: str
    suggested_times: List[Slot] = []


class DaySlot(BaseModel):
    time: str  # "14:00"
    datetime: str
    formatted: str  # "2:00 PM"
    available: bool


class AvailableSlotsResponse(BaseModel):
    success: bool = True
    date: date
    timezone: str
    slots: List[DaySlot]


# --- Admin ---


class DemoStatusUpdate(BaseModel):
    status: str
    confirmed_datetime: Optional[str] = None
    admin_notes: Optional[str] = Field(default=None, max_length=1000)


class DemoBulkActionRequest(BaseModel):
    demo_request_ids: List[str] = Field(min_length=1)
    action: Literal["confirm", "complete", "cancel", "delete"]
    confirmed_datetime: Optional[str] = None
    admin_notes: Optional[str] = Field(default=None, max_length=1000)


class BulkActionResponse(BaseModel):
    success: bool
    message: str
    updated_count: int
    failures: Dict[str, str] = {}


class DemoRequestStats(BaseModel):
    total: int
    pending: int
    confirmed: int
    completed: int
    today: int
    this_week: int


class Pagination(BaseModel):
    totalItems: int
    totalPages: int
    currentPage: int


class PaginatedDemoRequests(BaseModel):
    data: List[DemoRequestResponse]
    pagination: Pagination
    stats: DemoRequestStats
