from courtside.schemas.user import UserCreate, UserResponse, UserLogin, Token
from courtside.schemas.booking import (
    AdminBookingUpdate, AdminForceCancel, BookingCancelRequest, BookingDetailResponse,
    BookingResponse, BookingTransitionResponse,
)
from courtside.schemas.review import (
    FlagRequest, ModerationRequest, OwnerResponseRequest, RatingSummaryResponse, ReviewResponse,
)

__all__ = [
    "UserCreate", "UserResponse", "UserLogin", "Token",
    "AdminBookingUpdate", "AdminForceCancel", "BookingCancelRequest", "BookingDetailResponse",
    "BookingResponse", "BookingTransitionResponse",
    "FlagRequest", "ModerationRequest", "OwnerResponseRequest", "RatingSummaryResponse", "ReviewResponse",
]
