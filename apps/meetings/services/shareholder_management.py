"""
Shareholder management service.

Manual additions to the roster and the small per-shareholder edits made
at the check-in desk (name, designee, comment).
"""

import logging
from typing import Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Count, Q, QuerySet

from apps.accounts.models import User
from apps.meetings.models import Shareholder

from . import registry
from .access import require_authenticated
from .exceptions import DuplicateShareholderIdError, ServiceValidationError
from .roster_import import generate_shareholder_id

logger = logging.getLogger(__name__)


def create_shareholder(
    *,
    meeting_id,
    name: str,
    actor: User,
    shareholder_id: Optional[str] = None,
    owner_mailing_address: str = '',
    owner_city_state_zip: str = ''
) -> Shareholder:
    """
    Add a shareholder by hand, typically as a transfer target.

    Without an explicit id a random 6-digit id is generated; an id
    collision on insert triggers another attempt.

    Raises:
        AuthenticationRequiredError: If actor is not signed in
        ServiceValidationError: If name is blank
        MeetingNotFoundError: If the meeting doesn't exist
        DuplicateShareholderIdError: If an explicit id is already taken
        RuntimeError: If no unique id could be generated
    """
    require_authenticated(actor)

    name = (name or '').strip()
    if not name:
        raise ServiceValidationError("Shareholder name is required")

    meeting = registry.get_meeting(meeting_id)

    fields = {
        'name': name,
        'meeting': meeting,
        'owner_mailing_address': owner_mailing_address,
        'owner_city_state_zip': owner_city_state_zip,
        'is_new': True,
    }

    if shareholder_id:
        try:
            with transaction.atomic():
                shareholder = Shareholder.objects.create(shareholder_id=shareholder_id, **fields)
        except IntegrityError:
            raise DuplicateShareholderIdError(f"Shareholder ID {shareholder_id} already exists")
    else:
        max_retries = settings.SHAREHOLDER_ID_MAX_RETRIES
        # Each attempt is a separate transaction
        for attempt in range(max_retries):
            try:
                with transaction.atomic():
                    shareholder = Shareholder.objects.create(
                        shareholder_id=generate_shareholder_id(),
                        **fields
                    )
                break
            except IntegrityError:
                continue
        else:
            raise RuntimeError(
                f"Failed to generate unique shareholder id after {max_retries} attempts"
            )

    logger.info(
        "Shareholder %s created in meeting %s by %s",
        shareholder.shareholder_id, meeting.pk, actor.audit_identity()
    )
    return shareholder


def list_shareholders(*, meeting_id=None, search: Optional[str] = None) -> QuerySet[Shareholder]:
    """Shareholders annotated with total and checked-in property counts."""
    shareholders = Shareholder.objects.annotate(
        total_properties=Count('properties'),
        checked_in_properties=Count('properties', filter=Q(properties__checked_in=True)),
    )

    if meeting_id is not None:
        shareholders = shareholders.filter(meeting_id=meeting_id)
    if search:
        shareholders = shareholders.filter(
            Q(name__icontains=search) | Q(shareholder_id__icontains=search)
        )

    return shareholders.order_by('name')


def get_shareholder_details(*, shareholder_id: str) -> dict:
    """
    Shareholder with its properties and check-in progress.

    Raises:
        ShareholderNotFoundError: If the shareholder doesn't exist
    """
    shareholder = registry.get_shareholder(shareholder_id)
    properties = registry.list_properties_by_shareholder(shareholder_id)

    return {
        'shareholder': shareholder,
        'properties': properties,
        'total_properties': len(properties),
        'checked_in_properties': sum(1 for prop in properties if prop.checked_in),
    }


def _update_shareholder(shareholder_id: str, **fields) -> Shareholder:
    shareholder = registry.get_shareholder(shareholder_id)
    for attr, value in fields.items():
        setattr(shareholder, attr, value)

    with registry.storage_errors('shareholder update'):
        shareholder.save(update_fields=list(fields))

    return shareholder


def update_shareholder_name(*, shareholder_id: str, name: str, actor: User) -> Shareholder:
    """
    Raises:
        ServiceValidationError: If name is blank
        ShareholderNotFoundError: If the shareholder doesn't exist
    """
    require_authenticated(actor)

    name = (name or '').strip()
    if not name:
        raise ServiceValidationError("Shareholder name is required")

    return _update_shareholder(shareholder_id, name=name)


def set_designee(*, shareholder_id: str, designee: str, actor: User) -> Shareholder:
    """Name a proxy who attends on the shareholder's behalf."""
    require_authenticated(actor)

    designee = (designee or '').strip()
    if not designee:
        raise ServiceValidationError("Designee is required")

    return _update_shareholder(shareholder_id, designee=designee)


def clear_designee(*, shareholder_id: str, actor: User) -> Shareholder:
    require_authenticated(actor)
    return _update_shareholder(shareholder_id, designee=None)


def get_comment(*, shareholder_id: str) -> str:
    return registry.get_shareholder(shareholder_id).comment or ''


def set_comment(*, shareholder_id: str, comment: str, actor: User) -> Shareholder:
    require_authenticated(actor)
    return _update_shareholder(shareholder_id, comment=comment or '')
