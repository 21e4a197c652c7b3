# ==========================================
# apps/meetings/admin.py
# ==========================================

from django.contrib import admin
from apps.meetings.models import Meeting, Property, PropertyTransfer, Shareholder, UndoRequest


class PropertyInline(admin.TabularInline):
    """Inline admin for a shareholder's properties."""
    model = Property
    extra = 0
    fields = ['account', 'service_address', 'owner_name', 'checked_in']
    readonly_fields = ['checked_in']


@admin.register(Meeting)
class MeetingAdmin(admin.ModelAdmin):
    """Admin interface for meetings."""

    list_display = [
        'year',
        'date',
        'data_source',
        'checked_in',
        'total_shareholders',
        'has_initial_data',
        'mailers_generated',
    ]
    list_filter = ['data_source', 'has_initial_data', 'mailers_generated']
    # Counters move only through the check-in ledger and roster import
    readonly_fields = ['checked_in', 'total_shareholders', 'created_at']
    date_hierarchy = 'date'
    ordering = ['-date']


@admin.register(Shareholder)
class ShareholderAdmin(admin.ModelAdmin):
    """Admin interface for shareholders."""

    list_display = [
        'shareholder_id',
        'name',
        'meeting',
        'is_new',
        'checked_in',
        'checked_in_at',
        'designee',
    ]
    list_filter = ['meeting', 'checked_in', 'is_new']
    search_fields = ['shareholder_id', 'name', 'owner_mailing_address', 'designee']
    readonly_fields = ['signature_hash', 'checked_in_at', 'created_at']
    inlines = [PropertyInline]

    fieldsets = (
        ('Basic Information', {
            'fields': ('shareholder_id', 'name', 'meeting', 'is_new')
        }),
        ('Owner Address', {
            'fields': ('owner_mailing_address', 'owner_city_state_zip')
        }),
        ('Check-in', {
            'fields': ('checked_in', 'checked_in_at', 'signature_hash')
        }),
        ('Desk Notes', {
            'fields': ('designee', 'comment')
        }),
        ('Metadata', {
            'fields': ('created_at',),
            'classes': ('collapse',)
        }),
    )


@admin.register(Property)
class PropertyAdmin(admin.ModelAdmin):
    """Admin interface for properties."""

    list_display = ['account', 'shareholder', 'service_address', 'owner_name', 'checked_in']
    list_filter = ['checked_in']
    search_fields = ['account', 'service_address', 'owner_name', 'customer_name', 'shareholder__shareholder_id']
    raw_id_fields = ['shareholder']


@admin.register(PropertyTransfer)
class PropertyTransferAdmin(admin.ModelAdmin):
    """Read-only view of the transfer audit trail."""

    list_display = ['property', 'from_shareholder_id', 'to_shareholder_id', 'transfer_date', 'transferred_by']
    search_fields = ['from_shareholder_id', 'to_shareholder_id', 'property__account']
    date_hierarchy = 'transfer_date'

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(UndoRequest)
class UndoRequestAdmin(admin.ModelAdmin):
    """Admin interface for undo requests."""

    list_display = ['shareholder_id', 'shareholder_name', 'requested_by', 'requested_at', 'status', 'approved_by']
    list_filter = ['status', 'requested_at']
    search_fields = ['shareholder_id', 'shareholder_name', 'requested_by']
    readonly_fields = ['requested_at', 'approved_by', 'approved_at']
