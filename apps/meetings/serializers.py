from rest_framework import serializers

from .models import (
    DataSource,
    Meeting,
    Property,
    PropertyTransfer,
    Shareholder,
    UndoRequest,
)
from .services.checkin import CHECKIN, UNDO
from .services.property_management import EDITABLE_FIELDS
from .services.undo_requests import APPROVE, REJECT


# =============================================================================
# Meetings
# =============================================================================

class MeetingSerializer(serializers.ModelSerializer):
    """Main serializer for meetings."""

    remaining_capacity = serializers.IntegerField(read_only=True)

    class Meta:
        model = Meeting
        fields = [
            'id',
            'year',
            'date',
            'data_source',
            'total_shareholders',
            'checked_in',
            'remaining_capacity',
            'has_initial_data',
            'mailers_generated',
            'mailer_generation_date',
            'created_at',
        ]
        read_only_fields = [
            'id',
            'total_shareholders',
            'checked_in',
            'has_initial_data',
            'mailers_generated',
            'mailer_generation_date',
            'created_at',
        ]


class MeetingCreateSerializer(serializers.Serializer):
    """Serializer for creating meetings."""

    year = serializers.IntegerField(min_value=1900)
    date = serializers.DateTimeField()
    data_source = serializers.ChoiceField(choices=DataSource.choices, default=DataSource.EXCEL)


class MeetingStatsSerializer(serializers.Serializer):
    """Dashboard figures for a meeting."""

    meeting = MeetingSerializer(read_only=True)
    total_shareholders = serializers.IntegerField()
    checked_in = serializers.IntegerField()
    remaining = serializers.IntegerField()
    attendance_rate = serializers.FloatField()
    shareholders_on_roster = serializers.IntegerField()
    checked_in_shareholders = serializers.IntegerField()
    total_properties = serializers.IntegerField()
    checked_in_properties = serializers.IntegerField()
    pending_undo_requests = serializers.IntegerField()


class RosterImportSerializer(serializers.Serializer):
    """Already-parsed roster rows keyed by column name."""

    rows = serializers.ListField(
        child=serializers.DictField(allow_empty=True),
        allow_empty=False
    )


class RosterImportResultSerializer(serializers.Serializer):
    meeting = MeetingSerializer(read_only=True)
    total_records = serializers.IntegerField()
    total_shareholders = serializers.IntegerField()


# =============================================================================
# Shareholders
# =============================================================================

class ShareholderSerializer(serializers.ModelSerializer):
    """Shareholder without the stored signature image."""

    has_signature = serializers.SerializerMethodField()

    class Meta:
        model = Shareholder
        fields = [
            'id',
            'shareholder_id',
            'name',
            'meeting',
            'owner_mailing_address',
            'owner_city_state_zip',
            'is_new',
            'checked_in',
            'checked_in_at',
            'has_signature',
            'designee',
            'comment',
            'created_at',
        ]
        read_only_fields = fields

    def get_has_signature(self, obj):
        return bool(obj.signature_hash)


class ShareholderListSerializer(ShareholderSerializer):
    """List serializer; expects property count annotations."""

    total_properties = serializers.IntegerField(read_only=True)
    checked_in_properties = serializers.IntegerField(read_only=True)

    class Meta(ShareholderSerializer.Meta):
        fields = ShareholderSerializer.Meta.fields + ['total_properties', 'checked_in_properties']
        read_only_fields = fields


class ShareholderCreateSerializer(serializers.Serializer):
    """Serializer for adding a shareholder by hand."""

    meeting_id = serializers.IntegerField()
    name = serializers.CharField(max_length=255)
    shareholder_id = serializers.CharField(max_length=32, required=False, allow_blank=True)
    owner_mailing_address = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    owner_city_state_zip = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')


class ShareholderNameSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)


class DesigneeSerializer(serializers.Serializer):
    designee = serializers.CharField(max_length=255)


class CommentSerializer(serializers.Serializer):
    comment = serializers.CharField(allow_blank=True)


# =============================================================================
# Properties
# =============================================================================

class PropertySerializer(serializers.ModelSerializer):
    """Main serializer for properties."""

    shareholder_id = serializers.CharField(read_only=True)
    shareholder_name = serializers.CharField(source='shareholder.name', read_only=True)

    class Meta:
        model = Property
        fields = [
            'id',
            'account',
            'num_of',
            'shareholder_id',
            'shareholder_name',
            'service_address',
            'customer_name',
            'customer_mailing_address',
            'city_state_zip',
            'owner_name',
            'owner_mailing_address',
            'owner_city_state_zip',
            'resident_name',
            'resident_mailing_address',
            'resident_city_state_zip',
            'checked_in',
            'created_at',
        ]
        read_only_fields = fields


class PropertyDetailsSerializer(serializers.ModelSerializer):
    """Descriptive property fields that can be edited directly."""

    class Meta:
        model = Property
        fields = sorted(EDITABLE_FIELDS)
        extra_kwargs = {'account': {'required': False}}


class PropertyCreateSerializer(PropertyDetailsSerializer):
    """Serializer for creating a property under an existing shareholder."""

    shareholder_id = serializers.CharField(max_length=32)

    class Meta(PropertyDetailsSerializer.Meta):
        fields = ['shareholder_id'] + sorted(EDITABLE_FIELDS)
        extra_kwargs = {'account': {'required': True}}


class TransferSerializer(serializers.Serializer):
    """Target and optional name/address overrides for a transfer."""

    target_shareholder_id = serializers.CharField(max_length=32)
    owner_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    owner_mailing_address = serializers.CharField(max_length=255, required=False, allow_blank=True)
    owner_city_state_zip = serializers.CharField(max_length=255, required=False, allow_blank=True)
    resident_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    resident_mailing_address = serializers.CharField(max_length=255, required=False, allow_blank=True)
    resident_city_state_zip = serializers.CharField(max_length=255, required=False, allow_blank=True)
    keep_existing_service = serializers.BooleanField(default=False)


class PropertyTransferSerializer(serializers.ModelSerializer):
    """Audit row for a transfer."""

    class Meta:
        model = PropertyTransfer
        fields = [
            'id',
            'property',
            'from_shareholder_id',
            'to_shareholder_id',
            'transfer_date',
            'meeting',
            'transferred_by',
            'created_at',
        ]
        read_only_fields = fields


class TransferResultSerializer(serializers.Serializer):
    property = PropertySerializer(read_only=True)
    previous_shareholder_id = serializers.CharField()
    previous_shareholder_deleted = serializers.BooleanField()
    transfer_record = PropertyTransferSerializer(read_only=True, allow_null=True)
    warnings = serializers.ListField(child=serializers.CharField())


class BulkUncheckInSerializer(serializers.Serializer):
    meeting_id = serializers.IntegerField(required=False, allow_null=True)


# =============================================================================
# Check-in
# =============================================================================

class CheckInSerializer(serializers.Serializer):
    shareholder_id = serializers.CharField(max_length=32)
    signature_image = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class ManualCheckInSerializer(serializers.Serializer):
    shareholder_id = serializers.CharField(max_length=32)
    action = serializers.ChoiceField(choices=[CHECKIN, UNDO])


class CheckInResultSerializer(serializers.Serializer):
    message = serializers.CharField()
    meeting = MeetingSerializer(read_only=True)


# =============================================================================
# Undo requests
# =============================================================================

class UndoRequestSerializer(serializers.ModelSerializer):
    """Serializer for undo requests."""

    class Meta:
        model = UndoRequest
        fields = [
            'id',
            'shareholder_id',
            'shareholder_name',
            'requested_by',
            'requested_at',
            'reason',
            'status',
            'approved_by',
            'approved_at',
        ]
        read_only_fields = fields


class UndoRequestCreateSerializer(serializers.Serializer):
    # Presence is checked by the service so the error message is uniform
    shareholder_id = serializers.CharField(max_length=32, required=False, allow_blank=True, default='')
    shareholder_name = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class UndoResolveSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=[APPROVE, REJECT])
