"""
Property management service.

Manual property creation, detail edits and admin deletion. Ownership
changes never go through here; they belong to the transfer service.
"""

import logging

from django.db import transaction

from apps.accounts.models import User
from apps.meetings.models import Property

from . import registry
from .access import require_admin, require_authenticated
from .exceptions import ServiceValidationError

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = registry.PROPERTY_UPDATE_FIELDS - {'shareholder_id', 'checked_in'}


def create_property(*, shareholder_id: str, account: str, actor: User, **details) -> Property:
    """
    Attach a new property to an existing shareholder.

    Raises:
        AuthenticationRequiredError: If actor is not signed in
        ServiceValidationError: If account is blank or unknown fields are given
        ShareholderNotFoundError: If the shareholder doesn't exist
    """
    require_authenticated(actor)

    account = (account or '').strip()
    if not account:
        raise ServiceValidationError("Account is required")

    unknown = set(details) - EDITABLE_FIELDS
    if unknown:
        raise ServiceValidationError(f"Unknown property fields: {', '.join(sorted(unknown))}")

    shareholder = registry.get_shareholder(shareholder_id)

    with registry.storage_errors('property insert'):
        prop = Property.objects.create(
            shareholder=shareholder,
            account=account,
            **details
        )

    logger.info(
        "Property %s (%s) created for %s by %s",
        prop.pk, account, shareholder_id, actor.audit_identity()
    )
    return prop


def update_property_details(*, property_id, actor: User, **fields) -> Property:
    """
    Edit descriptive property fields.

    Raises:
        ServiceValidationError: If ownership or check-in state is targeted
        PropertyNotFoundError: If the property doesn't exist
    """
    require_authenticated(actor)

    if 'shareholder_id' in fields or 'shareholder' in fields:
        raise ServiceValidationError("Use a transfer to change a property's owner")

    unknown = set(fields) - EDITABLE_FIELDS
    if unknown:
        raise ServiceValidationError(f"Cannot update property fields: {', '.join(sorted(unknown))}")

    if not fields:
        return registry.get_property(property_id)

    return registry.update_property(property_id, **fields)


@transaction.atomic
def delete_property(*, property_id, actor: User) -> None:
    """
    Remove a property and its transfer history.

    The owning shareholder is kept even when it owns no properties
    afterwards; only a transfer removes a shareholder left without any.

    Raises:
        InsufficientPermissionsError: If actor is not a meeting admin
        PropertyNotFoundError: If the property doesn't exist
    """
    require_admin(actor, action='delete properties')

    prop = registry.get_property(property_id, for_update=True)

    with registry.storage_errors('property delete'):
        prop.delete()

    logger.info("Property %s deleted by %s", property_id, actor.audit_identity())
