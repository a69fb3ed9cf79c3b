"""
Domain errors raised by the scheduling services and the API exception
handler that renders them.

Services raise these and never build HTTP responses themselves; every
failure leaves the database untouched because the raising code runs inside
``transaction.atomic()``.
"""
from django.db import OperationalError
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler


class SchedulingError(Exception):
    status_code = 400
    default_code = 'scheduling_error'

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code or self.default_code
        super().__init__(message)


class InvalidIntervalError(SchedulingError):
    default_code = 'invalid_interval'


class NotFoundError(SchedulingError):
    status_code = 404
    default_code = 'not_found'


class SlotNotFound(NotFoundError):
    default_code = 'slot_not_found'


class BookingNotFound(NotFoundError):
    default_code = 'booking_not_found'


class PatientNotFound(NotFoundError):
    default_code = 'patient_not_found'


class ClinicianNotFound(NotFoundError):
    default_code = 'clinician_not_found'


class ConflictError(SchedulingError):
    status_code = 409
    default_code = 'conflict'


class SlotConflict(ConflictError):
    """The interval overlaps another slot of the same clinician."""
    default_code = 'slot_conflict'


class SlotUnavailable(ConflictError):
    """The slot is Booked or Blocked."""
    default_code = 'slot_unavailable'


class SlotVersionConflict(ConflictError):
    default_code = 'slot_version_conflict'


class BookingNotActive(ConflictError):
    """The booking is in a terminal status."""
    default_code = 'booking_not_active'


class DuplicateWalkIn(ConflictError):
    default_code = 'duplicate_walk_in'


def api_exception_handler(exc, context):
    if isinstance(exc, SchedulingError):
        return Response({'ok': False, 'error': {'code': exc.code, 'message': exc.message}}, status=exc.status_code)
    if isinstance(exc, OperationalError):
        # lock timeout or lost connection; the transaction has been rolled back
        return Response(
            {'ok': False, 'error': {'code': 'store_unavailable', 'message': 'Database busy, retry the request'}},
            status=503,
        )
    resp = drf_exception_handler(exc, context)
    if resp is None:
        return None
    # normalize response
    detail = None
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = resp.data
    return Response({'ok': False, 'error': {'code': 'api_error', 'message': detail}}, status=resp.status_code)
