"""
Domain exceptions raised by the services layer.

Every error carries the HTTP status it maps to, so routes never have to
translate them by hand; see app.api.exception_handlers.
"""

from typing import Any, Iterable


class AppError(Exception):
    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def payload(self) -> dict[str, Any]:
        return {"detail": self.message}


class ValidationError(AppError):
    """Malformed or missing input, rejected before any transaction opens."""

    status_code = 400


class UnauthorizedError(AppError):
    status_code = 401


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class TicketNotFoundError(NotFoundError):
    def __init__(self) -> None:
        super().__init__("Invalid ticket")

    def payload(self) -> dict[str, Any]:
        return {"valid": False, "reason": "invalid_ticket", "message": self.message}


class ConflictError(AppError):
    status_code = 409


class SeatConflictError(ConflictError):
    def __init__(self, seats: Iterable[int]) -> None:
        self.seats = sorted(set(seats))
        super().__init__("Seats already booked")

    def payload(self) -> dict[str, Any]:
        return {"message": self.message, "seats": self.seats}


class HoldNotConfirmableError(ConflictError):
    def __init__(self) -> None:
        super().__init__("Hold expired or booking not found")

    def payload(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "hint": "Start a new hold and confirm it before it expires",
        }


class BookingNotCancellableError(ConflictError):
    def __init__(self) -> None:
        super().__init__("Only a live hold can be cancelled")


class TransientStoreError(AppError):
    """The transaction was rolled back; retrying the whole operation is safe."""

    status_code = 503

    def __init__(self, message: str = "Temporary storage failure, please retry") -> None:
        super().__init__(message)
