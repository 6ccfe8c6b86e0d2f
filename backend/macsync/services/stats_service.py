"""
Admin dashboard statistics.
"""

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from macsync.models.user import User
from macsync.models.event import Event
from macsync.models.ticket import Ticket
from macsync.models.payment import Payment
from macsync.core.clock import utcnow

REVENUE_STATUSES = ("succeeded", "partially_refunded")


async def get_stats(db: AsyncSession) -> dict:
    start_of_today = utcnow().replace(hour=0, minute=0, second=0, microsecond=0)

    user_count = (await db.execute(select(func.count(User.id)))).scalar_one()
    event_count = (await db.execute(select(func.count(Event.id)))).scalar_one()
    upcoming_event_count = (
        await db.execute(select(func.count(Event.id)).where(Event.date >= start_of_today))
    ).scalar_one()
    tickets_sold = (await db.execute(select(func.count(Ticket.id)))).scalar_one()
    total_capacity = (await db.execute(select(func.coalesce(func.sum(Event.capacity), 0)))).scalar_one()
    total_revenue = (
        await db.execute(
            select(func.coalesce(func.sum(Payment.amount_paid - Payment.refunded_amount), 0))
            .where(Payment.status.in_(REVENUE_STATUSES))
        )
    ).scalar_one()

    conversion_rate = round(tickets_sold / total_capacity * 100, 2) if total_capacity else 0

    return {
        "user_count": user_count,
        "event_count": event_count,
        "upcoming_event_count": upcoming_event_count,
        "tickets_sold": tickets_sold,
        "total_capacity": int(total_capacity),
        "total_revenue": int(total_revenue),
        "conversion_rate": conversion_rate,
    }
