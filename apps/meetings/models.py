# ==========================================
# apps/meetings/models.py
# ==========================================

from django.db import models


class DataSource(models.TextChoices):
    EXCEL = 'excel', 'Excel upload'
    DATABASE = 'database', 'Database'


class UndoRequestStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    APPROVED = 'approved', 'Approved'
    REJECTED = 'rejected', 'Rejected'


class Meeting(models.Model):
    """Annual shareholder meeting with its attendance aggregates."""

    year = models.PositiveIntegerField()
    date = models.DateTimeField()
    data_source = models.CharField(
        max_length=20,
        choices=DataSource.choices,
        default=DataSource.EXCEL
    )

    # Aggregates: checked_in is clamped to total_shareholders
    total_shareholders = models.PositiveIntegerField(default=0)
    checked_in = models.PositiveIntegerField(default=0)

    has_initial_data = models.BooleanField(default=False)
    mailers_generated = models.BooleanField(default=False)
    mailer_generation_date = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'meetings'
        indexes = [
            models.Index(fields=['date'], name='meetings_date_idx'),
        ]
        ordering = ['-date']

    def __str__(self):
        return f"{self.year} meeting ({self.date:%Y-%m-%d})"

    @property
    def remaining_capacity(self):
        return max(0, self.total_shareholders - self.checked_in)


class Shareholder(models.Model):
    """Person or entity entitled to attend, keyed by an external id."""

    shareholder_id = models.CharField(max_length=32, unique=True, db_index=True)
    name = models.CharField(max_length=255)
    meeting = models.ForeignKey(
        Meeting,
        on_delete=models.CASCADE,
        related_name='shareholders'
    )

    owner_mailing_address = models.CharField(max_length=255, blank=True)
    owner_city_state_zip = models.CharField(max_length=255, blank=True)

    # Added by hand rather than through roster import
    is_new = models.BooleanField(default=False)

    # Check-in state
    checked_in = models.BooleanField(default=False)
    checked_in_at = models.DateTimeField(null=True, blank=True)
    signature_image = models.TextField(null=True, blank=True)
    signature_hash = models.CharField(max_length=64, null=True, blank=True)

    designee = models.CharField(max_length=255, null=True, blank=True)
    comment = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'shareholders'
        indexes = [
            models.Index(fields=['meeting', 'checked_in'], name='shareholders_meeting_ci_idx'),
            models.Index(fields=['name'], name='shareholders_name_idx'),
        ]
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.shareholder_id})"


class Property(models.Model):
    """
    Benefit unit tied to a service address.

    Ownership is expressed through the shareholder's external id, so the
    ``shareholder_id`` column holds the same string shown on mailers and
    barcodes. PROTECT keeps a shareholder from being deleted while it
    still owns anything.
    """

    account = models.CharField(max_length=64)
    num_of = models.CharField(max_length=32, blank=True)
    shareholder = models.ForeignKey(
        Shareholder,
        to_field='shareholder_id',
        db_column='shareholder_id',
        on_delete=models.PROTECT,
        related_name='properties'
    )

    service_address = models.CharField(max_length=255, blank=True)

    customer_name = models.CharField(max_length=255, blank=True)
    customer_mailing_address = models.CharField(max_length=255, blank=True)
    city_state_zip = models.CharField(max_length=255, blank=True)

    owner_name = models.CharField(max_length=255, blank=True)
    owner_mailing_address = models.CharField(max_length=255, blank=True)
    owner_city_state_zip = models.CharField(max_length=255, blank=True)

    resident_name = models.CharField(max_length=255, blank=True)
    resident_mailing_address = models.CharField(max_length=255, blank=True)
    resident_city_state_zip = models.CharField(max_length=255, blank=True)

    checked_in = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'properties'
        verbose_name_plural = 'properties'
        indexes = [
            models.Index(fields=['account'], name='properties_account_idx'),
            models.Index(fields=['shareholder', 'checked_in'], name='properties_owner_ci_idx'),
        ]
        ordering = ['account', 'id']

    def __str__(self):
        return f"{self.account} - {self.service_address}"


class PropertyTransfer(models.Model):
    """Append-only audit row written for every ownership transfer."""

    property = models.ForeignKey(
        Property,
        on_delete=models.CASCADE,
        related_name='transfers'
    )
    # Plain strings: the previous owner may be deleted right after the transfer
    from_shareholder_id = models.CharField(max_length=32)
    to_shareholder_id = models.CharField(max_length=32)
    transfer_date = models.DateTimeField()
    meeting = models.ForeignKey(
        Meeting,
        on_delete=models.CASCADE,
        related_name='property_transfers'
    )
    transferred_by = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'property_transfers'
        indexes = [
            models.Index(fields=['property', 'transfer_date'], name='transfers_property_date_idx'),
        ]
        ordering = ['-transfer_date', '-id']

    def __str__(self):
        return f"Property {self.property_id}: {self.from_shareholder_id} -> {self.to_shareholder_id}"


class UndoRequest(models.Model):
    """Clerk's request to reverse a check-in, resolved once by an admin."""

    shareholder_id = models.CharField(max_length=32, db_index=True)
    shareholder_name = models.CharField(max_length=255)
    requested_by = models.CharField(max_length=255)
    requested_at = models.DateTimeField(auto_now_add=True)
    reason = models.TextField(null=True, blank=True)

    status = models.CharField(
        max_length=20,
        choices=UndoRequestStatus.choices,
        default=UndoRequestStatus.PENDING
    )
    approved_by = models.CharField(max_length=255, null=True, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'undo_requests'
        indexes = [
            models.Index(fields=['status', 'requested_at'], name='undo_status_requested_idx'),
        ]
        ordering = ['requested_at', 'id']

    def __str__(self):
        return f"Undo {self.shareholder_name} ({self.status})"

    @property
    def is_pending(self):
        return self.status == UndoRequestStatus.PENDING
