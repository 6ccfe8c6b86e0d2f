"""
Pydantic schemas for bus, table and RSVP signups.
"""

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field

SignupStatus = Literal["pending", "confirmed", "waitlisted", "cancelled"]
SignupType = Literal["bus", "table", "rsvp"]
AccessLevel = Literal["web_user", "web_admin", "both"]


class EventAccessGrant(BaseModel):
    user_id: int
    access_level: AccessLevel = "web_user"


class EventAccessResponse(BaseModel):
    user_id: int
    event_id: int
    access_level: str

    model_config = {"from_attributes": True}


class BusRouteCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    capacity: int = Field(..., ge=0)
    waitlist_capacity: int = Field(0, ge=0)
    departure_location: Optional[str] = Field(None, max_length=255)
    departure_time: Optional[datetime] = None
    signup_deadline: Optional[datetime] = None


class BusRouteSummary(BaseModel):
    id: int
    event_id: int
    name: str
    description: Optional[str] = None
    capacity: int
    waitlist_capacity: int
    departure_location: Optional[str] = None
    departure_time: Optional[datetime] = None
    seats_remaining: int
    waitlist_count: int


class EventTableCreate(BaseModel):
    label: str = Field(..., min_length=1, max_length=120)
    capacity: int = Field(..., ge=0)
    location: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None
    signup_deadline: Optional[datetime] = None


class EventTableSummary(BaseModel):
    id: int
    event_id: int
    label: str
    capacity: int
    location: Optional[str] = None
    seats_remaining: int


class BusSignupCreate(BaseModel):
    route_id: int
    notes: Optional[str] = None


class TableSignupCreate(BaseModel):
    table_id: int
    seats_requested: Optional[int] = None
    group_name: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None


class RsvpCreate(BaseModel):
    notes: Optional[str] = None


class SignupResponse(BaseModel):
    id: int
    type: SignupType
    event_id: int
    user_id: int
    status: str
    waitlist_position: Optional[int] = None
    notes: Optional[str] = None
    acted_by: Optional[int] = None
    user_email: Optional[str] = None
    user_name: Optional[str] = None
    route_id: Optional[int] = None
    route_name: Optional[str] = None
    table_id: Optional[int] = None
    table_label: Optional[str] = None
    group_name: Optional[str] = None
    seats_requested: Optional[int] = None
    updated_at: Optional[datetime] = None


class SignupListResponse(BaseModel):
    signups: list[SignupResponse]
    count: int


class SignupSummaryResponse(BaseModel):
    bus: list[SignupResponse]
    tables: list[SignupResponse]
    rsvps: list[SignupResponse]


class SignupStatusUpdate(BaseModel):
    type: SignupType
    status: SignupStatus
    waitlist_position: Optional[int] = Field(None, ge=1)
    notes: Optional[str] = None
