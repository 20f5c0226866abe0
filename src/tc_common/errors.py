"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Not found (user / skill / booking / ledger entry)
  2xxx: Business rule (credits, capacity, amounts)
  3xxx: Booking lifecycle and idempotency guards
  4xxx: Failed precondition (missing or mismatched related records)
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Not found ---

class NotFoundError(AppError):
    pass


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: str) -> None:
        super().__init__(1001, f"User not found: {user_id}", 404)


class SkillNotFoundError(NotFoundError):
    def __init__(self, skill_id: str) -> None:
        super().__init__(1002, f"Skill not found: {skill_id}", 404)


class BookingNotFoundError(NotFoundError):
    def __init__(self, booking_id: str) -> None:
        super().__init__(1003, f"Booking not found: {booking_id}", 404)


class LedgerEntryNotFoundError(NotFoundError):
    def __init__(self, entry_id: str) -> None:
        super().__init__(1004, f"Ledger entry not found: {entry_id}", 404)


# --- 2xxx: Business rule ---

class InsufficientCreditsError(AppError):
    def __init__(self, user_id: str, required: int, available: int) -> None:
        self.user_id = user_id
        self.required = required
        self.available = available
        super().__init__(
            2001,
            f"Insufficient credits for user {user_id}: required {required}, available {available}",
            422,
        )


class NoCapacityError(AppError):
    def __init__(self, skill_id: str) -> None:
        super().__init__(2002, f"No available slots for skill {skill_id}", 422)


class InvalidAmountError(AppError):
    def __init__(self, amount: int) -> None:
        super().__init__(2003, f"Credit amount must be positive, got {amount}", 422)


class SkillInactiveError(AppError):
    def __init__(self, skill_id: str) -> None:
        super().__init__(2004, f"Skill is not active: {skill_id}", 422)


# --- 3xxx: Lifecycle ---

class InvalidTransitionError(AppError):
    def __init__(self, booking_id: str, current: str, target: str) -> None:
        super().__init__(
            3001,
            f"Booking {booking_id} cannot move from {current} to {target}",
            409,
        )


class BookingNotCompletedError(AppError):
    def __init__(self, booking_id: str, status: str) -> None:
        super().__init__(
            3002, f"Booking {booking_id} is {status}; only completed bookings can be reviewed", 422
        )


class AlreadyReviewedError(AppError):
    def __init__(self, booking_id: str) -> None:
        super().__init__(3003, f"Booking {booking_id} has already been reviewed", 409)


class AlreadyCancelledError(AppError):
    def __init__(self, reference: str) -> None:
        super().__init__(3004, f"Ledger entries already cancelled: {reference}", 409)


class InvalidRatingError(AppError):
    def __init__(self, rating: object) -> None:
        super().__init__(3005, f"Rating must be an integer from 1 to 5, got {rating!r}", 422)


# --- 4xxx: Failed precondition ---

class FailedPreconditionError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4001, f"Failed precondition: {detail}", 412)


# --- 9xxx: System ---

class ContentionError(AppError):
    def __init__(self, operation: str, attempts: int) -> None:
        super().__init__(
            9001,
            f"Too much concurrent activity on {operation} after {attempts} attempts; please retry",
            409,
        )


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
