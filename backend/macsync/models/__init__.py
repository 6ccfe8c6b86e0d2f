from macsync.models.user import User, Role, UserRole, VerificationToken
from macsync.models.event import Event
from macsync.models.ticket import Ticket, TableSeat, BusSeat, SeatReservation
from macsync.models.payment import Payment, StripeWebhookEvent
from macsync.models.signup import EventAccess, BusRoute, BusSignup, EventTable, TableSignup, EventRsvp

__all__ = [
    "User",
    "Role",
    "UserRole",
    "VerificationToken",
    "Event",
    "Ticket",
    "TableSeat",
    "BusSeat",
    "SeatReservation",
    "Payment",
    "StripeWebhookEvent",
    "EventAccess",
    "BusRoute",
    "BusSignup",
    "EventTable",
    "TableSignup",
    "EventRsvp",
]
