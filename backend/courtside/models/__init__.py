from courtside.models.user import User
from courtside.models.facility import Facility, Court
from courtside.models.booking import Booking
from courtside.models.payment import Payment, Refund
from courtside.models.notification import Notification
from courtside.models.review import Review, ReviewHelpfulVote, ReviewFlag

__all__ = [
    "User", "Facility", "Court", "Booking", "Payment", "Refund",
    "Notification", "Review", "ReviewHelpfulVote", "ReviewFlag",
]
