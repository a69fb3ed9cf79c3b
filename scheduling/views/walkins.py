from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..permissions import IsStaffOrAdmin
from ..serializers.bookings import WalkInCreateSerializer, WalkInQuerySerializer, format_booking
from ..services.walkins import get_walk_ins_for_date, register_walk_in


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsStaffOrAdmin])
def walk_ins(request):
    """GET lists the day's walk-ins (``date``, default today); POST admits one."""
    if request.method == 'GET':
        q = WalkInQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        items = get_walk_ins_for_date(q.validated_data.get('date'))
        return Response({'ok': True, 'data': [format_booking(b) for b in items]})
    s = WalkInCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    booking = register_walk_in(
        s.validated_data['patientId'],
        s.validated_data['clinicianId'],
        s.validated_data['reasonForVisit'],
        actor=request.user,
    )
    return Response({'ok': True, 'data': format_booking(booking)}, status=status.HTTP_201_CREATED)
