"""
Registry store.

Point lookups and single-statement writes over meetings, shareholders,
properties, transfer records and undo requests. No business rules live
here: absent rows raise ``NotFoundError`` subclasses and any database
failure is re-raised as ``StorageError``.
"""

import logging
from contextlib import contextmanager
from typing import List

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError
from django.db.models import F, IntegerField
from django.db.models.functions import Greatest, Least
from django.utils import timezone

from apps.meetings.models import Meeting, Property, PropertyTransfer, Shareholder

from .exceptions import (
    MeetingNotFoundError,
    PropertyNotFoundError,
    ShareholderNotFoundError,
    StorageError,
    ServiceValidationError,
)

logger = logging.getLogger(__name__)

PROPERTY_UPDATE_FIELDS = frozenset({
    'account',
    'num_of',
    'shareholder_id',
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
})

SHAREHOLDER_CHECKIN_FIELDS = frozenset({
    'checked_in',
    'checked_in_at',
    'signature_image',
    'signature_hash',
})


@contextmanager
def storage_errors(operation: str):
    """Re-raise database failures as StorageError."""
    try:
        yield
    except DatabaseError as e:
        logger.error("Storage failure during %s: %s", operation, e)
        raise StorageError(f"Storage failure during {operation}") from e


# =============================================================================
# Lookups
# =============================================================================

def get_meeting(meeting_id, *, for_update: bool = False) -> Meeting:
    qs = Meeting.objects.select_for_update() if for_update else Meeting.objects.all()
    with storage_errors('meeting lookup'):
        try:
            return qs.get(pk=meeting_id)
        except (Meeting.DoesNotExist, ValueError, TypeError):
            raise MeetingNotFoundError(f"Meeting {meeting_id} not found")


def get_shareholder(shareholder_id, *, for_update: bool = False) -> Shareholder:
    qs = Shareholder.objects.select_for_update() if for_update else Shareholder.objects.all()
    with storage_errors('shareholder lookup'):
        try:
            return qs.get(shareholder_id=shareholder_id)
        except Shareholder.DoesNotExist:
            raise ShareholderNotFoundError(f"Shareholder {shareholder_id} not found")


def get_property(property_id, *, for_update: bool = False) -> Property:
    qs = Property.objects.select_for_update() if for_update else Property.objects.all()
    with storage_errors('property lookup'):
        try:
            return qs.get(pk=property_id)
        except (Property.DoesNotExist, ValueError, TypeError):
            raise PropertyNotFoundError(f"Property {property_id} not found")


def shareholder_exists(shareholder_id) -> bool:
    with storage_errors('shareholder lookup'):
        return Shareholder.objects.filter(shareholder_id=shareholder_id).exists()


def list_properties_by_shareholder(shareholder_id) -> List[Property]:
    with storage_errors('property listing'):
        return list(Property.objects.filter(shareholder_id=shareholder_id))


def count_properties_by_shareholder(shareholder_id) -> int:
    with storage_errors('property count'):
        return Property.objects.filter(shareholder_id=shareholder_id).count()


# =============================================================================
# Writes
# =============================================================================

def update_property(property_id, **fields) -> Property:
    """
    Write ``fields`` onto a property in one UPDATE and return the fresh row.

    A ``shareholder_id`` naming no existing shareholder is rejected before
    anything is written. Values the column cannot hold raise
    ``ServiceValidationError``.
    """
    unknown = set(fields) - PROPERTY_UPDATE_FIELDS
    if unknown:
        raise ServiceValidationError(f"Cannot update property fields: {', '.join(sorted(unknown))}")

    if 'shareholder_id' in fields and not shareholder_exists(fields['shareholder_id']):
        raise ShareholderNotFoundError(f"Shareholder {fields['shareholder_id']} not found")

    prop = get_property(property_id)

    with storage_errors('property update'):
        try:
            updated = Property.objects.filter(pk=prop.pk).update(**fields)
        except (ValueError, TypeError, DjangoValidationError) as e:
            raise ServiceValidationError(f"Invalid property field value: {e}") from e

    if not updated:
        raise PropertyNotFoundError(f"Property {property_id} not found")

    return get_property(prop.pk)


def delete_shareholder(shareholder_id) -> None:
    with storage_errors('shareholder delete'):
        deleted, _ = Shareholder.objects.filter(shareholder_id=shareholder_id).delete()

    if not deleted:
        raise ShareholderNotFoundError(f"Shareholder {shareholder_id} not found")


def insert_transfer_record(
    *,
    property_id,
    from_shareholder_id: str,
    to_shareholder_id: str,
    meeting_id,
    transferred_by: str = '',
    transfer_date=None
) -> PropertyTransfer:
    with storage_errors('transfer record insert'):
        return PropertyTransfer.objects.create(
            property_id=property_id,
            from_shareholder_id=from_shareholder_id or 'unknown',
            to_shareholder_id=to_shareholder_id,
            meeting_id=meeting_id,
            transferred_by=transferred_by,
            transfer_date=transfer_date or timezone.now(),
        )


def update_shareholder_checkin(shareholder_id, **fields) -> None:
    unknown = set(fields) - SHAREHOLDER_CHECKIN_FIELDS
    if unknown:
        raise ServiceValidationError(f"Cannot update check-in fields: {', '.join(sorted(unknown))}")

    with storage_errors('shareholder check-in update'):
        updated = Shareholder.objects.filter(shareholder_id=shareholder_id).update(**fields)

    if not updated:
        raise ShareholderNotFoundError(f"Shareholder {shareholder_id} not found")


def set_properties_checked_in(shareholder_id, checked_in: bool) -> int:
    """Flag every property of a shareholder; returns rows touched."""
    with storage_errors('property check-in update'):
        return Property.objects.filter(shareholder_id=shareholder_id).update(checked_in=checked_in)


def atomic_increment_checked_in(meeting_id) -> None:
    """
    Add one to the meeting's checked-in counter, capped at its total.

    Runs as a single ``UPDATE ... SET checked_in = LEAST(checked_in + 1,
    total_shareholders)`` so concurrent check-ins racing for the last slot
    cannot lose updates or overshoot.
    """
    with storage_errors('checked-in increment'):
        updated = Meeting.objects.filter(pk=meeting_id).update(
            checked_in=Least(
                F('checked_in') + 1,
                F('total_shareholders'),
                output_field=IntegerField(),
            )
        )

    if not updated:
        raise MeetingNotFoundError(f"Meeting {meeting_id} not found")


def atomic_decrement_checked_in(meeting_id) -> None:
    """Subtract one from the checked-in counter, never below zero."""
    with storage_errors('checked-in decrement'):
        updated = Meeting.objects.filter(pk=meeting_id).update(
            checked_in=Greatest(F('checked_in') - 1, 0, output_field=IntegerField())
        )

    if not updated:
        raise MeetingNotFoundError(f"Meeting {meeting_id} not found")
