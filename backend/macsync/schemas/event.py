"""
Pydantic schemas for event-related request/response validation.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, model_validator


class EventCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    date: datetime
    location: Optional[str] = Field(None, max_length=255)
    capacity: int = Field(..., gt=0, le=100000)
    image_url: Optional[str] = Field(None, max_length=500)
    price: int = Field(0, ge=0)  # cents
    stripe_price_id: Optional[str] = None
    stripe_product_id: Optional[str] = None
    requires_table_signup: bool = False
    requires_bus_signup: bool = False
    table_count: Optional[int] = Field(None, gt=0, le=1000)
    seats_per_table: Optional[int] = Field(None, gt=0, le=100)
    bus_count: Optional[int] = Field(None, gt=0, le=100)
    bus_capacity: Optional[int] = Field(None, gt=0, le=200)

    @model_validator(mode="after")
    def seating_layout_present(self):
        if self.requires_table_signup and not (self.table_count and self.seats_per_table):
            raise ValueError("table_count and seats_per_table are required for table signup")
        if self.requires_bus_signup and not (self.bus_count and self.bus_capacity):
            raise ValueError("bus_count and bus_capacity are required for bus signup")
        return self


class EventUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    date: Optional[datetime] = None
    location: Optional[str] = Field(None, max_length=255)
    capacity: Optional[int] = Field(None, gt=0, le=100000)
    image_url: Optional[str] = Field(None, max_length=500)
    price: Optional[int] = Field(None, ge=0)
    stripe_price_id: Optional[str] = None
    stripe_product_id: Optional[str] = None


class EventResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    date: datetime
    location: Optional[str]
    capacity: int
    image_url: Optional[str]
    price: int
    is_paid: bool
    requires_table_signup: bool
    requires_bus_signup: bool
    table_count: Optional[int]
    seats_per_table: Optional[int]
    bus_count: Optional[int]
    bus_capacity: Optional[int]
    registered_count: int = 0
    created_at: datetime

    model_config = {"from_attributes": True}


class UserTicketInfo(BaseModel):
    ticket_id: int
    table_seat: Optional[str] = None
    bus_seat: Optional[str] = None
    checked_in: bool = False


class EventDetailResponse(EventResponse):
    user_ticket: Optional[UserTicketInfo] = None


class EventListResponse(BaseModel):
    events: list[EventResponse]
    count: int
    cached: bool = False


class SeatGroupSummary(BaseModel):
    number: int
    capacity: int
    seats_remaining: int


class SeatingResponse(BaseModel):
    event_id: int
    tables: list[SeatGroupSummary]
    buses: list[SeatGroupSummary]
