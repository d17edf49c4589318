from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

IslandCode = Literal["STT", "STJ", "STX"]
AvailabilityStatus = Literal["OPEN_NOW", "BUSY_LIMITED", "NOT_TAKING_WORK"]
PlanName = Literal["FREE", "PREMIUM"]
LifecycleStatusName = Literal["ACTIVE", "INACTIVE", "ARCHIVED"]
BadgeName = Literal["VERIFIED", "GOV_APPROVED", "EMERGENCY_READY"]
ContactMethod = Literal["CALL", "WHATSAPP", "SMS"]


class AreaRef(BaseModel):
    id: int
    name: str
    island: IslandCode


class CategoryRef(BaseModel):
    id: int
    name: str


class ProviderOut(BaseModel):
    id: int
    name: str
    phone: str
    whatsapp: str | None = None
    island: IslandCode
    status: AvailabilityStatus
    plan: PlanName
    trial_end_at: datetime | None = None
    lifecycle_status: LifecycleStatusName
    status_last_updated_at: datetime
    created_at: datetime
    contact_call_enabled: bool = True
    contact_whatsapp_enabled: bool = True
    contact_sms_enabled: bool = True
    preferred_contact_method: ContactMethod | None = None
    typical_hours: str | None = None
    emergency_calls_accepted: bool = False
    badges: list[BadgeName] = Field(default_factory=list)
    trust_score: int
    last_active_at: datetime | None = None
    is_premium: bool = False
    trial_days_left: int = 0


class ProviderDetailOut(ProviderOut):
    areas: list[AreaRef] = Field(default_factory=list)
    categories: list[CategoryRef] = Field(default_factory=list)


class SuggestionOut(BaseModel):
    id: str
    label: str
    description: str
    patch: dict[str, Any] = Field(default_factory=dict)


class ProviderListData(BaseModel):
    providers: list[ProviderOut] = Field(default_factory=list)
    suggestions: list[SuggestionOut] | None = None


class ProviderListResponse(BaseModel):
    data: ProviderListData
    error: None = None


class ProviderStatusUpdateRequest(BaseModel):
    status: str


class ProviderProfileUpdateRequest(BaseModel):
    name: str | None = None
    phone: str | None = None
    whatsapp: str | None = None
    island: str | None = None
    area_ids: list[int] = Field(default_factory=list)
    category_ids: list[int] | None = None
    contact_call_enabled: bool | None = None
    contact_whatsapp_enabled: bool | None = None
    contact_sms_enabled: bool | None = None
    preferred_contact_method: str | None = None
    typical_hours: str | None = None
    emergency_calls_accepted: bool | None = None


class MessageOut(BaseModel):
    message: str
