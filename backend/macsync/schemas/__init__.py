from macsync.schemas.auth import (
    RequestCodeRequest, RequestCodeResponse, VerifyCodeRequest, VerifyCodeResponse,
    CheckEmailRequest, CheckEmailResponse, RegisterRequest, LoginRequest, AuthResponse,
    TokenResponse, MessageResponse,
)
from macsync.schemas.user import UserResponse, UserListResponse, UserCreate, UserUpdate, UserRolesReplace
from macsync.schemas.role import (
    RoleResponse, RoleListResponse, AssignRoleRequest, UserRoleResponse, UserRolesResponse,
)
from macsync.schemas.event import (
    EventCreate, EventUpdate, EventResponse, EventDetailResponse, EventListResponse, SeatingResponse,
)
from macsync.schemas.ticket import SignupRequest, TicketResponse, TicketWithEventResponse, TicketListResponse, CheckInRequest
from macsync.schemas.payment import (
    CheckoutRequest, CheckoutResponse, PaymentResponse, PaymentListResponse, RefundRequest, RefundResponse,
)
from macsync.schemas.signup import (
    EventAccessGrant, EventAccessResponse, BusRouteCreate, BusRouteSummary, EventTableCreate,
    EventTableSummary, BusSignupCreate, TableSignupCreate, RsvpCreate, SignupResponse,
    SignupListResponse, SignupSummaryResponse, SignupStatusUpdate,
)
from macsync.schemas.stats import StatsResponse

__all__ = [
    "RequestCodeRequest", "RequestCodeResponse", "VerifyCodeRequest", "VerifyCodeResponse",
    "CheckEmailRequest", "CheckEmailResponse", "RegisterRequest", "LoginRequest", "AuthResponse",
    "TokenResponse", "MessageResponse",
    "UserResponse", "UserListResponse", "UserCreate", "UserUpdate", "UserRolesReplace",
    "RoleResponse", "RoleListResponse", "AssignRoleRequest", "UserRoleResponse", "UserRolesResponse",
    "EventCreate", "EventUpdate", "EventResponse", "EventDetailResponse", "EventListResponse",
    "SeatingResponse",
    "SignupRequest", "TicketResponse", "TicketWithEventResponse", "TicketListResponse", "CheckInRequest",
    "CheckoutRequest", "CheckoutResponse", "PaymentResponse", "PaymentListResponse", "RefundRequest",
    "RefundResponse",
    "EventAccessGrant", "EventAccessResponse", "BusRouteCreate", "BusRouteSummary", "EventTableCreate",
    "EventTableSummary", "BusSignupCreate", "TableSignupCreate", "RsvpCreate", "SignupResponse",
    "SignupListResponse", "SignupSummaryResponse", "SignupStatusUpdate",
    "StatsResponse",
]
