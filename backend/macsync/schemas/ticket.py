"""
Pydantic schemas for tickets, direct signup and check-in.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class SignupRequest(BaseModel):
    selected_table: Optional[int] = Field(None, gt=0)


class TicketResponse(BaseModel):
    id: int
    user_id: int
    event_id: int
    checked_in: bool
    checked_in_at: Optional[datetime] = None
    table_seat: Optional[str] = None
    bus_seat: Optional[str] = None
    qr_code_data: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class TicketWithEventResponse(TicketResponse):
    event_name: str
    event_date: datetime
    event_location: Optional[str] = None


class TicketListResponse(BaseModel):
    tickets: list[TicketWithEventResponse]
    count: int


class CheckInRequest(BaseModel):
    qr_code_data: str = Field(..., min_length=1, max_length=255)
