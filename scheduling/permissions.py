"""
Role based permission classes.

Authentication and role assignment happen upstream; these classes only
read ``request.user.role`` so the scheduling services can trust the actor
they are handed.
"""
from rest_framework.permissions import BasePermission

PATIENT = "patient"
CLINICIAN = "clinician"
STAFF = "staff"
ADMIN = "admin"


def has_role(user, *roles) -> bool:
    return bool(user and user.is_authenticated and getattr(user, "role", None) in roles)


class IsClinicianOrAdmin(BasePermission):
    """Clinicians manage their own calendar; admins manage all of them."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return has_role(getattr(request, "user", None), CLINICIAN, ADMIN)


class IsStaffOrAdmin(BasePermission):
    """Front desk operations such as walk-in registration."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return has_role(getattr(request, "user", None), STAFF, ADMIN)


class CanViewSchedule(BasePermission):
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return has_role(getattr(request, "user", None), CLINICIAN, STAFF, ADMIN)


class CanBook(BasePermission):
    """Patients book for themselves; staff and admins book on behalf of patients."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return has_role(getattr(request, "user", None), PATIENT, STAFF, ADMIN)


class CanTouchBookings(BasePermission):
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return has_role(getattr(request, "user", None), PATIENT, CLINICIAN, STAFF, ADMIN)


def owns_calendar(user, clinician_id) -> bool:
    """Clinicians may only act on their own slots; admins on any."""
    if getattr(user, "role", None) == ADMIN:
        return True
    return getattr(user, "role", None) == CLINICIAN and user.id == clinician_id


def may_act_for_patient(user, patient_id) -> bool:
    """Patients may only act on their own bookings."""
    if getattr(user, "role", None) == PATIENT:
        return user.id == patient_id
    return True
