"""
Roster import service.

Replaces a meeting's shareholders and properties with rows that were
already parsed from the uploaded spreadsheet. Rows sharing an owner
mailing address and city/state/zip belong to the same shareholder.
"""

import logging
import secrets
from typing import Iterable, Mapping, Optional, Set

from django.conf import settings
from django.db import transaction

from apps.accounts.models import User
from apps.meetings.models import Property, Shareholder

from . import registry
from .access import require_admin

logger = logging.getLogger(__name__)

PROPERTY_COLUMNS = (
    'account',
    'num_of',
    'customer_name',
    'customer_mailing_address',
    'city_state_zip',
    'owner_name',
    'owner_mailing_address',
    'owner_city_state_zip',
    'resident_name',
    'resident_mailing_address',
    'resident_city_state_zip',
    'service_address',
)


def generate_shareholder_id(*, taken: Set[str] = frozenset(), max_retries: Optional[int] = None) -> str:
    """
    Pick an unused random 6-digit shareholder id.

    Raises:
        RuntimeError: If no free id is found within max_retries attempts
    """
    if max_retries is None:
        max_retries = settings.SHAREHOLDER_ID_MAX_RETRIES

    for _ in range(max_retries):
        candidate = str(100000 + secrets.randbelow(900000))
        if candidate in taken:
            continue
        if not Shareholder.objects.filter(shareholder_id=candidate).exists():
            return candidate

    raise RuntimeError(f"Failed to generate unique shareholder id after {max_retries} attempts")


def _clean(row: Mapping, column: str) -> str:
    value = row.get(column)
    return str(value).strip() if value is not None else ''


@transaction.atomic
def import_roster(*, meeting_id, rows: Iterable[Mapping], actor: User) -> dict:
    """
    Load a meeting roster.

    Process:
    1. Drop the meeting's existing properties and shareholders
    2. Skip blank rows
    3. Group rows into shareholders by owner address
    4. Bulk insert shareholders and properties
    5. Set total_shareholders, reset checked_in, flag has_initial_data

    Args:
        meeting_id: Meeting to load into
        rows: Mappings keyed by roster column name
        actor: Meeting admin performing the import

    Returns:
        dict with meeting, total_records and total_shareholders

    Raises:
        InsufficientPermissionsError: If actor is not a meeting admin
        MeetingNotFoundError: If the meeting doesn't exist
        StorageError: On database failure (nothing is imported)
    """
    require_admin(actor, action='import rosters')

    meeting = registry.get_meeting(meeting_id, for_update=True)

    records = [
        row for row in rows
        if any(_clean(row, column) for column in row)
    ]

    with registry.storage_errors('roster import'):
        Property.objects.filter(shareholder__meeting=meeting).delete()
        Shareholder.objects.filter(meeting=meeting).delete()

        shareholder_ids = {}
        taken = set()
        new_shareholders = []
        new_properties = []

        for row in records:
            owner_key = (
                _clean(row, 'owner_mailing_address'),
                _clean(row, 'owner_city_state_zip'),
            )

            shareholder_id = shareholder_ids.get(owner_key)
            if shareholder_id is None:
                shareholder_id = generate_shareholder_id(taken=taken)
                taken.add(shareholder_id)
                shareholder_ids[owner_key] = shareholder_id
                new_shareholders.append(Shareholder(
                    shareholder_id=shareholder_id,
                    name=_clean(row, 'owner_name') or 'Unknown',
                    meeting=meeting,
                    owner_mailing_address=owner_key[0],
                    owner_city_state_zip=owner_key[1],
                ))

            new_properties.append(Property(
                shareholder_id=shareholder_id,
                **{column: _clean(row, column) for column in PROPERTY_COLUMNS}
            ))

        Shareholder.objects.bulk_create(new_shareholders, batch_size=50)
        Property.objects.bulk_create(new_properties, batch_size=50)

        meeting.total_shareholders = len(new_shareholders)
        meeting.checked_in = 0
        meeting.has_initial_data = True
        meeting.save(update_fields=['total_shareholders', 'checked_in', 'has_initial_data'])

    logger.info(
        "Imported %s records (%s shareholders) into meeting %s by %s",
        len(records), len(new_shareholders), meeting.pk, actor.audit_identity()
    )

    return {
        'meeting': meeting,
        'total_records': len(records),
        'total_shareholders': len(new_shareholders),
    }
