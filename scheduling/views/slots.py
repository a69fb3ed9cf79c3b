"""
Slot calendar endpoints.

Clinicians publish, move, block and unblock their own availability;
admins may do so for any clinician.  Every authenticated user may list a
clinician's open slots and read a single slot.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..permissions import CanViewSchedule, IsClinicianOrAdmin, owns_calendar
from ..serializers.slots import (
    AvailableSlotQuerySerializer,
    ScheduleQuerySerializer,
    SlotBlockSerializer,
    SlotCreateSerializer,
    SlotUpdateSerializer,
    format_slot,
)
from ..services import slots as slot_service
from ..services.availability import list_available
from ..services.clinicians import list_clinicians


def _ensure_owner(user, clinician_id) -> None:
    if not owns_calendar(user, clinician_id):
        raise PermissionDenied("clinicians may only manage their own slots")


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def clinicians(request):
    return Response({'ok': True, 'data': list_clinicians()})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicianOrAdmin])
def slot_create(request):
    s = SlotCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    _ensure_owner(request.user, s.validated_data['clinicianId'])
    slot = slot_service.define_slot(
        s.validated_data['clinicianId'],
        s.validated_data['startTime'],
        s.validated_data['endTime'],
        actor=request.user,
    )
    return Response({'ok': True, 'data': format_slot(slot)}, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def slots_available(request):
    """Open slots of one clinician, optionally limited to ``date`` (YYYY-MM-DD)."""
    q = AvailableSlotQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    slots = list_available(q.validated_data['clinicianId'], q.validated_data.get('date'))
    return Response({'ok': True, 'data': [format_slot(s) for s in slots]})


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def slot_detail(request, slot_id):
    slot = slot_service.get_slot(slot_id)
    if request.method == 'GET':
        return Response({'ok': True, 'data': format_slot(slot)})
    if not IsClinicianOrAdmin().has_permission(request, None):
        raise PermissionDenied()
    _ensure_owner(request.user, slot.clinician_id)
    s = SlotUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    slot = slot_service.update_slot(
        slot.pk,
        start=s.validated_data.get('startTime'),
        end=s.validated_data.get('endTime'),
        expected_version=s.validated_data.get('version'),
        actor=request.user,
    )
    return Response({'ok': True, 'data': format_slot(slot)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicianOrAdmin])
def slot_block(request, slot_id):
    slot = slot_service.get_slot(slot_id)
    _ensure_owner(request.user, slot.clinician_id)
    s = SlotBlockSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    slot = slot_service.block_slot(slot.pk, s.validated_data.get('reason', ''), actor=request.user)
    return Response({'ok': True, 'data': format_slot(slot)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicianOrAdmin])
def slot_unblock(request, slot_id):
    slot = slot_service.get_slot(slot_id)
    _ensure_owner(request.user, slot.clinician_id)
    slot = slot_service.unblock_slot(slot.pk, actor=request.user)
    return Response({'ok': True, 'data': format_slot(slot)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, CanViewSchedule])
def clinician_schedule(request, clinician_id):
    """Full calendar of a clinician between ``startDate`` and ``endDate``."""
    if request.user.role == 'clinician' and request.user.id != clinician_id:
        raise PermissionDenied("clinicians may only view their own schedule")
    q = ScheduleQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    slots = slot_service.get_clinician_schedule(
        clinician_id,
        q.validated_data['startDate'],
        q.validated_data['endDate'],
        q.validated_data.get('status'),
    )
    return Response({'ok': True, 'data': [format_slot(s) for s in slots]})
