from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..permissions import CanBook, CanTouchBookings, may_act_for_patient
from ..serializers.bookings import (
    BookingCreateSerializer,
    BookingRescheduleSerializer,
    BookingUpdateSerializer,
    format_booking,
)
from ..services import bookings as booking_service


def _ensure_patient(user, patient_id) -> None:
    if not may_act_for_patient(user, patient_id):
        raise PermissionDenied("patients may only access their own bookings")


@api_view(['POST'])
@permission_classes([IsAuthenticated, CanBook])
def booking_create(request):
    s = BookingCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    _ensure_patient(request.user, s.validated_data['patientId'])
    booking = booking_service.create_booking(
        s.validated_data['patientId'],
        s.validated_data['slotId'],
        s.validated_data.get('reasonForVisit', ''),
        actor=request.user,
    )
    return Response({'ok': True, 'data': format_booking(booking)}, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, CanTouchBookings])
def patient_bookings(request, patient_id):
    _ensure_patient(request.user, patient_id)
    items = booking_service.get_patient_appointments(patient_id)
    return Response({'ok': True, 'data': [format_booking(b) for b in items]})


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated, CanTouchBookings])
def booking_detail(request, booking_id):
    booking = booking_service.get_booking(booking_id)
    _ensure_patient(request.user, booking.patient_id)
    if request.method == 'GET':
        return Response({'ok': True, 'data': format_booking(booking)})
    s = BookingUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    booking = booking_service.update_booking(
        booking.pk,
        reason_for_visit=s.validated_data.get('reasonForVisit'),
        status=s.validated_data.get('status'),
        actor=request.user,
    )
    return Response({'ok': True, 'data': format_booking(booking)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, CanTouchBookings])
def booking_cancel(request, booking_id):
    booking = booking_service.get_booking(booking_id)
    _ensure_patient(request.user, booking.patient_id)
    booking = booking_service.cancel_booking(booking.pk, actor=request.user)
    return Response({'ok': True, 'data': format_booking(booking)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, CanBook])
def booking_reschedule(request, booking_id):
    """Move a booking to ``newSlotId``; responds with the new booking."""
    booking = booking_service.get_booking(booking_id)
    _ensure_patient(request.user, booking.patient_id)
    s = BookingRescheduleSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    new_booking = booking_service.reschedule_booking(booking.pk, s.validated_data['newSlotId'], actor=request.user)
    return Response({'ok': True, 'data': format_booking(new_booking)})
