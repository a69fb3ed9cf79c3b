import bleach
from rest_framework import serializers

from scheduling.models import Booking
from scheduling.serializers.slots import format_slot


def _clean_reason(v):
    return bleach.clean((v or '').strip(), strip=True)


class BookingCreateSerializer(serializers.Serializer):
    patientId = serializers.IntegerField(min_value=1)
    slotId = serializers.UUIDField()
    reasonForVisit = serializers.CharField(max_length=2000, required=False, allow_blank=True)

    def validate_reasonForVisit(self, v):
        return _clean_reason(v)


class BookingUpdateSerializer(serializers.Serializer):
    reasonForVisit = serializers.CharField(max_length=2000, required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=[c for c, _ in Booking.STATUS_CHOICES], required=False)

    def validate_reasonForVisit(self, v):
        return _clean_reason(v)


class BookingRescheduleSerializer(serializers.Serializer):
    newSlotId = serializers.UUIDField()


class WalkInCreateSerializer(serializers.Serializer):
    patientId = serializers.IntegerField(min_value=1)
    clinicianId = serializers.IntegerField(min_value=1)
    reasonForVisit = serializers.CharField(max_length=2000)

    def validate_reasonForVisit(self, v):
        v = _clean_reason(v)
        if not v:
            raise serializers.ValidationError('reasonForVisit must not be empty')
        return v


class WalkInQuerySerializer(serializers.Serializer):
    date = serializers.DateField(required=False)


def _person(u) -> dict:
    return {'id': u.id, 'name': u.display_name, 'email': u.email, 'phone': u.phone or None}


def format_booking(b: Booking) -> dict:
    slot = b.slot
    return {
        'id': str(b.id),
        'patientId': b.patient_id,
        'slotId': str(b.slot_id) if b.slot_id else None,
        'status': b.status,
        'reasonForVisit': b.reason_for_visit,
        'isWalkIn': b.is_walk_in,
        'rescheduledFrom': str(b.rescheduled_from_id) if b.rescheduled_from_id else None,
        'createdAt': b.created_at.isoformat(),
        'patient': _person(b.patient),
        'clinician': _person(slot.clinician) if slot else None,
        'slot': format_slot(slot) if slot else None,
    }
