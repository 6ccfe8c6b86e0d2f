"""
Pydantic schema for the admin dashboard statistics.
"""

from pydantic import BaseModel


class StatsResponse(BaseModel):
    user_count: int
    event_count: int
    upcoming_event_count: int
    tickets_sold: int
    total_capacity: int
    total_revenue: int  # cents
    conversion_rate: float
