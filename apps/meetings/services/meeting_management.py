"""
Meeting management service.

Creating and deleting meetings, dashboard statistics and the mailer flag.
"""

import logging
from datetime import datetime
from typing import Optional

from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone

from apps.accounts.models import User
from apps.meetings.models import (
    DataSource,
    Meeting,
    Property,
    Shareholder,
    UndoRequest,
    UndoRequestStatus,
)

from . import registry
from .access import require_admin
from .exceptions import ServiceValidationError

logger = logging.getLogger(__name__)


def create_meeting(
    *,
    year: int,
    date: datetime,
    actor: User,
    data_source: str = DataSource.EXCEL
) -> Meeting:
    """
    Create an empty meeting; the roster arrives later through import.

    Raises:
        InsufficientPermissionsError: If actor is not a meeting admin
        ServiceValidationError: If year, date or data source is invalid
    """
    require_admin(actor, action='create meetings')

    if not year or year < 1900 or date is None or data_source not in DataSource.values:
        raise ServiceValidationError("Invalid year, date, or data source")

    with registry.storage_errors('meeting insert'):
        meeting = Meeting.objects.create(year=year, date=date, data_source=data_source)

    logger.info("Meeting %s created for %s by %s", meeting.pk, year, actor.audit_identity())
    return meeting


@transaction.atomic
def delete_meeting(*, meeting_id, actor: User) -> None:
    """
    Delete a meeting with its roster and transfer history.

    Properties go first because they protect their shareholders.

    Raises:
        InsufficientPermissionsError: If actor is not a meeting admin
        MeetingNotFoundError: If the meeting doesn't exist
    """
    require_admin(actor, action='delete meetings')

    meeting = registry.get_meeting(meeting_id, for_update=True)

    with registry.storage_errors('meeting delete'):
        Property.objects.filter(shareholder__meeting=meeting).delete()
        meeting.delete()

    logger.info("Meeting %s deleted by %s", meeting_id, actor.audit_identity())


def get_next_meeting() -> Optional[Meeting]:
    """Earliest meeting scheduled after now, if any."""
    return Meeting.objects.filter(date__gt=timezone.now()).order_by('date').first()


def get_meeting_stats(*, meeting_id) -> dict:
    """
    Dashboard figures for a meeting.

    ``checked_in`` is the ledger's aggregate counter. ``checked_in_shareholders``
    counts shareholders currently flagged as present; the two can differ
    after re-check-ins or approved undo requests.

    Raises:
        MeetingNotFoundError: If the meeting doesn't exist
    """
    meeting = registry.get_meeting(meeting_id)

    shareholders = Shareholder.objects.filter(meeting=meeting)
    shareholder_counts = shareholders.aggregate(
        on_roster=Count('id'),
        present=Count('id', filter=Q(checked_in=True)),
    )
    property_counts = Property.objects.filter(shareholder__meeting=meeting).aggregate(
        total=Count('id'),
        checked_in=Count('id', filter=Q(checked_in=True)),
    )
    pending_undo = UndoRequest.objects.filter(
        status=UndoRequestStatus.PENDING,
        shareholder_id__in=shareholders.values('shareholder_id'),
    ).count()

    attendance_rate = (
        round(meeting.checked_in * 100 / meeting.total_shareholders, 1)
        if meeting.total_shareholders else 0.0
    )

    return {
        'meeting': meeting,
        'total_shareholders': meeting.total_shareholders,
        'checked_in': meeting.checked_in,
        'remaining': meeting.remaining_capacity,
        'attendance_rate': attendance_rate,
        'shareholders_on_roster': shareholder_counts['on_roster'],
        'checked_in_shareholders': shareholder_counts['present'],
        'total_properties': property_counts['total'],
        'checked_in_properties': property_counts['checked_in'],
        'pending_undo_requests': pending_undo,
    }


def mark_mailers_generated(*, meeting_id, actor: User) -> Meeting:
    """
    Record that mailers for the meeting were produced.

    Raises:
        InsufficientPermissionsError: If actor is not a meeting admin
        MeetingNotFoundError: If the meeting doesn't exist
    """
    require_admin(actor, action='generate mailers')

    meeting = registry.get_meeting(meeting_id)
    meeting.mailers_generated = True
    meeting.mailer_generation_date = timezone.now()

    with registry.storage_errors('meeting update'):
        meeting.save(update_fields=['mailers_generated', 'mailer_generation_date'])

    return meeting
