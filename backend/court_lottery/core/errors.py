"""
Typed failure outcomes for the allocation services.

Every error is an HTTPException so routers can let it propagate unchanged;
`code` is a stable identifier for non-HTTP callers (scheduler, scripts).
"""

from fastapi import HTTPException, status


class CourtLotteryError(HTTPException):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "court_lottery_error"
    message = "Request could not be processed"

    def __init__(self, detail: str | None = None):
        super().__init__(status_code=self.status_code, detail=detail or self.message)


class WindowError(CourtLotteryError):
    code = "invalid_window"
    message = "Target date is outside the allowed booking window"


class PlayerCountError(CourtLotteryError):
    code = "invalid_player_count"
    message = "Player count must be between 2 and 4 and match the participant list"


class InvalidTimeSlotError(CourtLotteryError):
    code = "invalid_time_slot"
    message = "Time slot must be in HH:MM format"


class AccountNotFoundError(CourtLotteryError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "account_not_found"
    message = "Account not found"


class ResourceNotFoundError(CourtLotteryError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "court_not_found"
    message = "Court not found"


class ResourceInactiveError(CourtLotteryError):
    code = "court_inactive"
    message = "Court is not active"


class ResourceConflictError(CourtLotteryError):
    status_code = status.HTTP_409_CONFLICT
    code = "court_not_available"
    message = "Court is already reserved for this date and time slot"


class RequestNotFoundError(CourtLotteryError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "request_not_found"
    message = "Booking request not found"


class ReservationNotFoundError(CourtLotteryError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "reservation_not_found"
    message = "Reservation not found"


class InvalidStateError(CourtLotteryError):
    code = "invalid_state"
    message = "Transition not allowed from the current status"


class CannotCancelCompletedError(InvalidStateError):
    code = "cannot_cancel_completed"
    message = "Completed reservations cannot be cancelled"
