"""
URL mappings for the scheduling API.

Paths mirror the scheduling endpoints the front-end calls; trailing
slashes are deliberately omitted (``APPEND_SLASH = False``).
"""
from django.urls import include, path

from .views import bookings, health, slots, walkins

urlpatterns = [
    path('metrics', include('django_prometheus.urls')),
    path('healthz', health.healthz),
    # Clinicians & slots
    path('api/scheduling/clinicians', slots.clinicians),
    path('api/scheduling/clinicians/<int:clinician_id>/schedule', slots.clinician_schedule),
    path('api/scheduling/slots', slots.slot_create),
    path('api/scheduling/slots/available', slots.slots_available),
    path('api/scheduling/slots/<uuid:slot_id>', slots.slot_detail),
    path('api/scheduling/slots/<uuid:slot_id>/block', slots.slot_block),
    path('api/scheduling/slots/<uuid:slot_id>/unblock', slots.slot_unblock),
    # Bookings
    path('api/scheduling/bookings', bookings.booking_create),
    path('api/scheduling/bookings/patient/<int:patient_id>', bookings.patient_bookings),
    path('api/scheduling/bookings/<uuid:booking_id>', bookings.booking_detail),
    path('api/scheduling/bookings/<uuid:booking_id>/cancel', bookings.booking_cancel),
    path('api/scheduling/bookings/<uuid:booking_id>/reschedule', bookings.booking_reschedule),
    # Walk-ins
    path('api/scheduling/walk-ins', walkins.walk_ins),
]
