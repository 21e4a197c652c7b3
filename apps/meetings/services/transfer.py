"""
Property ownership transfer service.

Moves a property from its current shareholder to an existing target
shareholder, writes an audit record and removes the previous shareholder
once it owns nothing. The audit insert and the orphan cleanup are best
effort: their failures are logged and reported as warnings on the result,
never raised, and never undo the ownership change.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from django.db import transaction
from django.db.models import QuerySet

from apps.accounts.models import User
from apps.meetings.models import Property, PropertyTransfer, Shareholder

from . import registry
from .access import require_authenticated
from .exceptions import ShareholderNotFoundError, StorageError

logger = logging.getLogger(__name__)


@dataclass
class TransferResult:
    """Outcome of a committed transfer."""

    property: Property
    previous_shareholder_id: str
    previous_shareholder_deleted: bool = False
    transfer_record: Optional[PropertyTransfer] = None
    warnings: List[str] = field(default_factory=list)


def compute_transfer_fields(
    prop: Property,
    target: Shareholder,
    *,
    owner_name: Optional[str] = None,
    owner_mailing_address: Optional[str] = None,
    owner_city_state_zip: Optional[str] = None,
    resident_name: Optional[str] = None,
    resident_mailing_address: Optional[str] = None,
    resident_city_state_zip: Optional[str] = None,
    keep_existing_service: bool = False
) -> dict:
    """
    Work out the name/address triples a property carries after transfer.

    Owner fields come from the overrides, else from the target shareholder
    (a blank target address keeps the property's current one). Customer
    fields are never touched. Resident fields stay unless overridden, and
    ``keep_existing_service`` pins them regardless of overrides.
    """
    fields = {
        'owner_name': owner_name or target.name,
        'owner_mailing_address': (
            owner_mailing_address
            or target.owner_mailing_address
            or prop.owner_mailing_address
        ),
        'owner_city_state_zip': (
            owner_city_state_zip
            or target.owner_city_state_zip
            or prop.owner_city_state_zip
        ),
    }

    if keep_existing_service:
        return fields

    if resident_name:
        fields['resident_name'] = resident_name
    if resident_mailing_address:
        fields['resident_mailing_address'] = resident_mailing_address
    if resident_city_state_zip:
        fields['resident_city_state_zip'] = resident_city_state_zip

    return fields


def transfer_property(
    *,
    property_id,
    target_shareholder_id: str,
    actor: User,
    owner_name: Optional[str] = None,
    owner_mailing_address: Optional[str] = None,
    owner_city_state_zip: Optional[str] = None,
    resident_name: Optional[str] = None,
    resident_mailing_address: Optional[str] = None,
    resident_city_state_zip: Optional[str] = None,
    keep_existing_service: bool = False
) -> TransferResult:
    """
    Transfer a property to another, already existing, shareholder.

    Process:
    1. Lock the property
    2. Resolve the target shareholder (callers create it first if needed)
    3. Compute owner/resident fields; customer fields are carried over
    4. Append the PropertyTransfer audit row (best effort)
    5. Rewrite the property's shareholder and computed fields
    6. Delete the previous shareholder if it now owns no properties (best effort)

    Steps 4-6 share one transaction. Best-effort steps run in their own
    savepoints, so their failure leaves the ownership change intact while a
    failure of step 5 rolls everything back.

    Args:
        property_id: Property primary key
        target_shareholder_id: External id of the new owner
        actor: Authenticated caller, recorded on the audit row
        owner_*: Optional owner name/address overrides
        resident_*: Optional resident name/address overrides
        keep_existing_service: Keep resident fields exactly as they are

    Returns:
        TransferResult with the updated property and any warnings

    Raises:
        AuthenticationRequiredError: If actor is not signed in
        PropertyNotFoundError: If the property doesn't exist
        ShareholderNotFoundError: If the target shareholder doesn't exist
        StorageError: If the property update fails
    """
    require_authenticated(actor)

    with transaction.atomic():
        prop = registry.get_property(property_id, for_update=True)
        target = registry.get_shareholder(target_shareholder_id)

        previous_shareholder_id = prop.shareholder_id

        fields = compute_transfer_fields(
            prop,
            target,
            owner_name=owner_name,
            owner_mailing_address=owner_mailing_address,
            owner_city_state_zip=owner_city_state_zip,
            resident_name=resident_name,
            resident_mailing_address=resident_mailing_address,
            resident_city_state_zip=resident_city_state_zip,
            keep_existing_service=keep_existing_service,
        )

        result = TransferResult(property=prop, previous_shareholder_id=previous_shareholder_id)

        try:
            with transaction.atomic():
                result.transfer_record = registry.insert_transfer_record(
                    property_id=prop.pk,
                    from_shareholder_id=previous_shareholder_id,
                    to_shareholder_id=target.shareholder_id,
                    meeting_id=target.meeting_id,
                    transferred_by=actor.audit_identity(),
                )
        except StorageError as e:
            logger.warning("Error creating transfer record for property %s: %s", prop.pk, e)
            result.warnings.append("Transfer audit record could not be written")

        result.property = registry.update_property(
            prop.pk,
            shareholder_id=target.shareholder_id,
            **fields
        )

        try:
            with transaction.atomic():
                if registry.count_properties_by_shareholder(previous_shareholder_id) == 0:
                    registry.delete_shareholder(previous_shareholder_id)
                    result.previous_shareholder_deleted = True
                    logger.info(
                        "Deleted shareholder %s with no properties",
                        previous_shareholder_id
                    )
        except (StorageError, ShareholderNotFoundError) as e:
            logger.warning(
                "Error deleting old shareholder %s: %s",
                previous_shareholder_id, e
            )
            result.warnings.append(
                f"Previous shareholder {previous_shareholder_id} could not be removed"
            )

    logger.info(
        "Property %s transferred from %s to %s by %s",
        prop.pk, previous_shareholder_id, target.shareholder_id, actor.audit_identity()
    )
    return result


def list_property_transfers(*, property_id) -> QuerySet[PropertyTransfer]:
    """
    Transfer history for a property, newest first.

    Raises:
        PropertyNotFoundError: If the property doesn't exist
    """
    registry.get_property(property_id)
    return PropertyTransfer.objects.filter(property_id=property_id).select_related('meeting')
