from court_lottery.schemas.booking_request import (
    BookingRequestCreate, BookingRequestResponse, BookingRequestCancelResponse,
)
from court_lottery.schemas.reservation import (
    DirectBookingCreate, ReservationResponse, CourtResponse, AvailabilityResponse,
)
from court_lottery.schemas.lottery import (
    LotteryRunRequest, LotteryRunResponse, LotterySummary, AssignmentResponse,
    UsageResponse, UsageResetResponse,
)

__all__ = [
    "BookingRequestCreate", "BookingRequestResponse", "BookingRequestCancelResponse",
    "DirectBookingCreate", "ReservationResponse", "CourtResponse", "AvailabilityResponse",
    "LotteryRunRequest", "LotteryRunResponse", "LotterySummary", "AssignmentResponse",
    "UsageResponse", "UsageResetResponse",
]
