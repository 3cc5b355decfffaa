from court_lottery.models.user import User, AccountTier
from court_lottery.models.court import Court
from court_lottery.models.time_slot import TimeSlot
from court_lottery.models.booking_request import BookingRequest, RequestStatus
from court_lottery.models.reservation import Reservation, ReservationStatus
from court_lottery.models.usage_counter import UsageCounter, UsageReset

__all__ = [
    "User", "AccountTier", "Court", "TimeSlot",
    "BookingRequest", "RequestStatus",
    "Reservation", "ReservationStatus",
    "UsageCounter", "UsageReset",
]
