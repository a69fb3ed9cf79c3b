"""
Django admin registrations for the scheduling models.

The admin is a read-mostly window onto the calendar: slot status and
booking status are only ever changed through the scheduling services, so
they are shown read-only here to keep the slot/booking pairing intact.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import AuditEvent, Booking, Slot, User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ('username', 'first_name', 'last_name', 'role', 'is_active')
    list_filter = ('role', 'is_active')
    search_fields = ('username', 'first_name', 'last_name', 'email')
    fieldsets = BaseUserAdmin.fieldsets + (('Hospital', {'fields': ('role', 'phone')}),)


class BookingInline(admin.TabularInline):
    model = Booking
    fields = ('patient', 'status', 'is_walk_in', 'created_at')
    readonly_fields = fields
    extra = 0
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Slot)
class SlotAdmin(admin.ModelAdmin):
    list_display = ('id', 'clinician', 'start_at', 'end_at', 'status', 'is_emergency', 'version')
    list_filter = ('status', 'is_emergency')
    search_fields = ('clinician__username', 'clinician__last_name')
    date_hierarchy = 'start_at'
    readonly_fields = ('clinician', 'start_at', 'end_at', 'status', 'version', 'is_emergency', 'block_reason')
    inlines = [BookingInline]

    # slots are only published through define_slot, which checks for overlaps
    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'slot', 'status', 'is_walk_in', 'created_at')
    list_filter = ('status', 'is_walk_in')
    search_fields = ('patient__username', 'patient__last_name', 'reason_for_visit')
    readonly_fields = ('patient', 'slot', 'status', 'is_walk_in', 'rescheduled_from')

    # bookings are only created through the booking engine
    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'user', 'object_type', 'object_id', 'created_at')
    list_filter = ('action', 'object_type')
    search_fields = ('object_id',)
