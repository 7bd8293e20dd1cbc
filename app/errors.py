"""Error taxonomy shared by the reservation services and the HTTP layer.

Services raise these; ``app.main`` maps each one to its status code.
"""


class ReservationError(Exception):
    status_code = 400
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ReservationError):
    status_code = 400


class NotFoundError(ReservationError):
    status_code = 404


class InvalidStateError(ReservationError):
    status_code = 409


class AvailabilityConflictError(ReservationError):
    status_code = 409
    retryable = True


class DuplicateHolidayError(ReservationError):
    status_code = 409


class AuthorizationError(ReservationError):
    status_code = 403


class UnexpectedError(ReservationError):
    status_code = 500
