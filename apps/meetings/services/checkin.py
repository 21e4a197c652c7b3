"""
Check-in ledger.

Records and reverses a shareholder's attendance and keeps the meeting's
checked-in counter in step. The counter only ever moves through the
registry's single-statement atomic updates.
"""

import hashlib
import logging
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.accounts.models import User
from apps.meetings.models import Meeting, Property, Shareholder

from . import registry
from .access import require_admin, require_authenticated
from .exceptions import (
    AlreadyCheckedInError,
    PropertyNotFoundError,
    ServiceValidationError,
    ShareholderNotFoundError,
)

logger = logging.getLogger(__name__)

CHECKIN = 'checkin'
UNDO = 'undo'


def signature_digest(signature_image: str) -> str:
    return hashlib.sha256(signature_image.encode('utf-8')).hexdigest()


@transaction.atomic
def check_in_shareholder(
    *,
    shareholder_id: str,
    signature_image: Optional[str] = None
) -> Meeting:
    """
    Check a shareholder in and return the meeting's updated counts.

    Re-checking an already checked-in shareholder is allowed: the counter
    is incremented again, bounded only by the meeting total.

    Args:
        shareholder_id: External shareholder id (barcode value)
        signature_image: Optional captured signature (data URL or base64)

    Returns:
        Meeting re-read after the update

    Raises:
        ShareholderNotFoundError: If the shareholder doesn't exist
        MeetingNotFoundError: If the shareholder's meeting doesn't exist
        StorageError: On database failure
    """
    shareholder = registry.get_shareholder(shareholder_id)
    meeting = registry.get_meeting(shareholder.meeting_id)

    registry.atomic_increment_checked_in(meeting.pk)
    registry.set_properties_checked_in(shareholder.shareholder_id, True)

    fields = {'checked_in': True, 'checked_in_at': timezone.now()}
    if signature_image:
        fields['signature_image'] = signature_image
        fields['signature_hash'] = signature_digest(signature_image)
    registry.update_shareholder_checkin(shareholder.shareholder_id, **fields)

    meeting = registry.get_meeting(meeting.pk)
    logger.info(
        "Shareholder %s checked in (%s/%s)",
        shareholder.shareholder_id, meeting.checked_in, meeting.total_shareholders
    )
    return meeting


def reverse_check_in(shareholder_id: str) -> Optional[Meeting]:
    """
    Clear a shareholder's check-in state and that of all its properties.

    The meeting counter is decremented only when UNDO_DECREMENTS_CHECKED_IN
    is enabled and the shareholder was actually checked in. Must run inside
    the caller's transaction.

    Returns:
        The shareholder's meeting, or None if the shareholder no longer exists
    """
    try:
        shareholder = registry.get_shareholder(shareholder_id, for_update=True)
    except ShareholderNotFoundError:
        logger.warning("Nothing to undo: shareholder %s no longer exists", shareholder_id)
        return None

    was_checked_in = shareholder.checked_in or any(
        prop.checked_in for prop in registry.list_properties_by_shareholder(shareholder_id)
    )

    registry.set_properties_checked_in(shareholder_id, False)
    registry.update_shareholder_checkin(
        shareholder_id,
        checked_in=False,
        checked_in_at=None,
        signature_image=None,
        signature_hash=None,
    )

    if was_checked_in and settings.UNDO_DECREMENTS_CHECKED_IN:
        registry.atomic_decrement_checked_in(shareholder.meeting_id)

    return registry.get_meeting(shareholder.meeting_id)


def manual_check_in(*, shareholder_id: str, action: str, actor: User) -> Optional[Meeting]:
    """
    Check-in desk operation with a duplicate-ballot guard.

    ``checkin`` refuses shareholders without properties or with any
    property already checked in, then delegates to the ledger. ``undo``
    reverses the check-in directly and is limited to admins.

    Raises:
        AuthenticationRequiredError: If actor is not signed in
        InsufficientPermissionsError: If a non-admin tries ``undo``
        PropertyNotFoundError: If the shareholder owns no properties
        AlreadyCheckedInError: If a ballot was already issued
        ServiceValidationError: If action is unknown
    """
    require_authenticated(actor)

    if action == CHECKIN:
        properties = registry.list_properties_by_shareholder(shareholder_id)
        if not properties:
            raise PropertyNotFoundError("No properties found for this shareholder")
        if any(prop.checked_in for prop in properties):
            raise AlreadyCheckedInError(
                "This benefit unit owner is already checked in and has a ballot!"
            )
        return check_in_shareholder(shareholder_id=shareholder_id)

    if action == UNDO:
        require_admin(actor, action='undo a check-in')
        with transaction.atomic():
            meeting = reverse_check_in(shareholder_id)
        if meeting is None:
            raise ShareholderNotFoundError(f"Shareholder {shareholder_id} not found")
        logger.info("Check-in undone for %s by %s", shareholder_id, actor.audit_identity())
        return meeting

    raise ServiceValidationError("Invalid action. Must be 'checkin' or 'undo'")


@transaction.atomic
def bulk_uncheck_in(*, actor: User, meeting_id=None) -> int:
    """
    Reset attendance, optionally for a single meeting.

    Clears every property and shareholder check-in flag in scope and sets
    the affected meeting counters back to zero.

    Returns:
        Number of properties updated

    Raises:
        InsufficientPermissionsError: If actor is not a meeting admin
        MeetingNotFoundError: If meeting_id is given and doesn't exist
    """
    require_admin(actor, action='reset check-ins')

    properties = Property.objects.all()
    shareholders = Shareholder.objects.all()
    meetings = Meeting.objects.all()

    if meeting_id is not None:
        registry.get_meeting(meeting_id)
        properties = properties.filter(shareholder__meeting_id=meeting_id)
        shareholders = shareholders.filter(meeting_id=meeting_id)
        meetings = meetings.filter(pk=meeting_id)

    with registry.storage_errors('bulk uncheck-in'):
        updated = properties.update(checked_in=False)
        shareholders.update(
            checked_in=False,
            checked_in_at=None,
            signature_image=None,
            signature_hash=None,
        )
        meetings.update(checked_in=0)

    logger.info("Bulk uncheck-in completed: %s properties by %s", updated, actor.audit_identity())
    return updated
