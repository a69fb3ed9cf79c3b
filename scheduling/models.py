"""
Database models for the scheduling backend.

The calendar of each clinician is a set of :class:`Slot` rows, each a
half-open ``[start_at, end_at)`` interval.  A patient's claim on a slot is
a :class:`Booking`.  Neither is ever deleted: slots move between
Available, Booked and Blocked, bookings end in a terminal status, and the
history stays queryable for auditing.
"""
from __future__ import annotations

import uuid

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.db.models import F, Q
from django_prometheus.models import ExportModelOperationsMixin


class User(AbstractUser):
    """Custom user model carrying the role used for access decisions.

    Roles mirror the dashboards of the front-end: patients book, clinicians
    publish availability, staff run the front desk (walk-ins), technicians
    only read, admins can do everything.
    """
    ROLE_PATIENT = 'patient'
    ROLE_CLINICIAN = 'clinician'
    ROLE_STAFF = 'staff'
    ROLE_TECHNICIAN = 'technician'
    ROLE_ADMIN = 'admin'
    ROLE_CHOICES = [
        (ROLE_PATIENT, 'Patient'),
        (ROLE_CLINICIAN, 'Clinician'),
        (ROLE_STAFF, 'Staff'),
        (ROLE_TECHNICIAN, 'Lab Technician'),
        (ROLE_ADMIN, 'Administrator'),
    ]
    role = models.CharField(max_length=16, choices=ROLE_CHOICES, default=ROLE_PATIENT, db_index=True)
    phone = models.CharField(max_length=32, blank=True)

    @property
    def display_name(self) -> str:
        return self.get_full_name() or self.username

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class Slot(ExportModelOperationsMixin('slot'), models.Model):
    """One bookable (or blocked) interval on a clinician's calendar.

    ``is_emergency`` marks slots synthesized for walk-in admissions.  Those
    are allowed to overlap regular availability, so the PostgreSQL exclusion
    constraint installed by migration ``0002`` skips them.
    """
    STATUS_AVAILABLE = 'Available'
    STATUS_BOOKED = 'Booked'
    STATUS_BLOCKED = 'Blocked'
    STATUS_CHOICES = (
        (STATUS_AVAILABLE, 'Available'),
        (STATUS_BOOKED, 'Booked'),
        (STATUS_BLOCKED, 'Blocked'),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    clinician = models.ForeignKey(User, on_delete=models.PROTECT, related_name='slots')
    start_at = models.DateTimeField()
    end_at = models.DateTimeField()
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_AVAILABLE)
    version = models.PositiveIntegerField(default=1)
    is_emergency = models.BooleanField(default=False)
    block_reason = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['start_at']
        constraints = [
            models.CheckConstraint(condition=Q(start_at__lt=F('end_at')), name='slot_start_before_end'),
        ]
        indexes = [
            models.Index(fields=['clinician', 'status', 'start_at'], name='slot_clinician_status_idx'),
            models.Index(fields=['clinician', 'start_at', 'end_at'], name='slot_clinician_range_idx'),
        ]

    def __str__(self) -> str:
        return f"Slot(c={self.clinician_id}, {self.start_at:%F %T}~{self.end_at:%F %T}, {self.status})"


class Booking(ExportModelOperationsMixin('booking'), models.Model):
    """A patient's claim on a slot.

    Pending and Confirmed are the live states; a slot has at most one live
    booking at a time, which the partial unique constraint below enforces
    in storage as well.  Rescheduling cancels the booking and creates a new
    row pointing back at it through ``rescheduled_from``.
    """
    STATUS_PENDING = 'Pending'
    STATUS_CONFIRMED = 'Confirmed'
    STATUS_CANCELLED = 'Cancelled'
    STATUS_COMPLETED = 'Completed'
    STATUS_NO_SHOW = 'No-Show'
    STATUS_CHOICES = (
        (STATUS_PENDING, 'Pending'),
        (STATUS_CONFIRMED, 'Confirmed'),
        (STATUS_CANCELLED, 'Cancelled'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_NO_SHOW, 'No-Show'),
    )
    LIVE_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(User, on_delete=models.PROTECT, related_name='bookings')
    slot = models.ForeignKey(Slot, null=True, blank=True, on_delete=models.PROTECT, related_name='bookings')
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    reason_for_visit = models.TextField(blank=True)
    is_walk_in = models.BooleanField(default=False)
    rescheduled_from = models.OneToOneField(
        'self', null=True, blank=True, on_delete=models.PROTECT, related_name='rescheduled_to'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['slot'],
                condition=Q(status__in=['Pending', 'Confirmed']),
                name='booking_one_live_per_slot',
            ),
        ]
        indexes = [
            models.Index(fields=['patient', 'status'], name='booking_patient_status_idx'),
            models.Index(fields=['is_walk_in', 'status'], name='booking_walkin_status_idx'),
        ]

    @property
    def is_live(self) -> bool:
        return self.status in self.LIVE_STATUSES

    def __str__(self) -> str:
        return f"Booking(p={self.patient_id}, slot={self.slot_id}, {self.status})"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.CharField(max_length=64, blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='audit_action_created_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='audit_object_created_idx'),
        ]

    def __str__(self):
        return f"{self.action}:{self.object_type}/{self.object_id}"
