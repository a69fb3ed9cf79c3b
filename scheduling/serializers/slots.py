import bleach
from rest_framework import serializers

from scheduling.models import Slot


class SlotCreateSerializer(serializers.Serializer):
    clinicianId = serializers.IntegerField(min_value=1)
    startTime = serializers.DateTimeField()
    endTime = serializers.DateTimeField()

    def validate(self, attrs):
        if attrs['startTime'] >= attrs['endTime']:
            raise serializers.ValidationError('startTime must be before endTime')
        return attrs


class SlotUpdateSerializer(serializers.Serializer):
    startTime = serializers.DateTimeField(required=False)
    endTime = serializers.DateTimeField(required=False)
    version = serializers.IntegerField(min_value=1, required=False)


class SlotBlockSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True)

    def validate_reason(self, v):
        return bleach.clean((v or '').strip(), strip=True)


class AvailableSlotQuerySerializer(serializers.Serializer):
    clinicianId = serializers.IntegerField(min_value=1)
    date = serializers.DateField(required=False)


class ScheduleQuerySerializer(serializers.Serializer):
    startDate = serializers.DateTimeField()
    endDate = serializers.DateTimeField()
    status = serializers.ChoiceField(choices=[c for c, _ in Slot.STATUS_CHOICES], required=False)


def format_slot(slot: Slot) -> dict:
    return {
        'id': str(slot.id),
        'clinicianId': slot.clinician_id,
        'startTime': slot.start_at.isoformat(),
        'endTime': slot.end_at.isoformat(),
        'status': slot.status,
        'version': slot.version,
        'isEmergency': slot.is_emergency,
        'blockReason': slot.block_reason or None,
        'clinician': {'id': slot.clinician.id, 'name': slot.clinician.display_name},
    }
