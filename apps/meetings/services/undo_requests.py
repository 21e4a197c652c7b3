"""
Undo request workflow.

A clerk asks for a check-in to be reversed; an admin approves or rejects
the request exactly once. Pending is the only state that can change.
"""

import logging
from typing import Optional

from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone

from apps.accounts.models import User
from apps.meetings.models import UndoRequest, UndoRequestStatus

from .access import require_admin, require_authenticated
from .checkin import reverse_check_in
from .exceptions import (
    RequestAlreadyProcessedError,
    ServiceValidationError,
    UndoRequestNotFoundError,
)
from .registry import storage_errors

logger = logging.getLogger(__name__)

APPROVE = 'approve'
REJECT = 'reject'


def request_undo(
    *,
    shareholder_id: str,
    shareholder_name: str,
    actor: User,
    reason: Optional[str] = None
) -> UndoRequest:
    """
    File a pending undo request.

    Raises:
        AuthenticationRequiredError: If actor is not signed in
        ServiceValidationError: If shareholder id or name is missing
    """
    require_authenticated(actor)

    if not shareholder_id or not shareholder_name:
        raise ServiceValidationError("Shareholder ID and name are required")

    with storage_errors('undo request insert'):
        undo_request = UndoRequest.objects.create(
            shareholder_id=shareholder_id,
            shareholder_name=shareholder_name,
            requested_by=actor.audit_identity(),
            reason=reason or None,
        )

    logger.info(
        "New undo request %s for %s by %s",
        undo_request.pk, shareholder_id, undo_request.requested_by
    )
    return undo_request


def resolve_undo(*, request_id, action: str, actor: User) -> UndoRequest:
    """
    Approve or reject a pending undo request.

    Approval clears the shareholder's check-in, timestamp and signature and
    un-checks all of its properties. The meeting counter stays as it is
    unless UNDO_DECREMENTS_CHECKED_IN is enabled. Rejection only records
    the decision.

    Args:
        request_id: UndoRequest primary key
        action: 'approve' or 'reject'
        actor: Meeting admin resolving the request

    Returns:
        The resolved UndoRequest

    Raises:
        InsufficientPermissionsError: If actor is not a meeting admin
        ServiceValidationError: If action is unknown
        UndoRequestNotFoundError: If the request doesn't exist
        RequestAlreadyProcessedError: If the request is not pending
    """
    require_admin(actor, action='resolve undo requests')

    if action not in (APPROVE, REJECT):
        raise ServiceValidationError("Action must be 'approve' or 'reject'")

    with transaction.atomic():
        try:
            undo_request = UndoRequest.objects.select_for_update().get(pk=request_id)
        except (UndoRequest.DoesNotExist, ValueError, TypeError):
            raise UndoRequestNotFoundError(f"Undo request {request_id} not found")

        if not undo_request.is_pending:
            raise RequestAlreadyProcessedError("Request has already been processed")

        undo_request.status = (
            UndoRequestStatus.APPROVED if action == APPROVE else UndoRequestStatus.REJECTED
        )
        undo_request.approved_by = actor.audit_identity()
        undo_request.approved_at = timezone.now()

        with storage_errors('undo request update'):
            undo_request.save(update_fields=['status', 'approved_by', 'approved_at'])

        if action == APPROVE:
            reverse_check_in(undo_request.shareholder_id)

    logger.info(
        "Undo request %s %s by %s (shareholder %s)",
        undo_request.pk, undo_request.status, undo_request.approved_by,
        undo_request.shareholder_id
    )
    return undo_request


def list_undo_requests(*, actor: User, status: Optional[str] = None) -> QuerySet[UndoRequest]:
    """
    Undo requests in the order they were filed.

    Raises:
        InsufficientPermissionsError: If actor is not a meeting admin
        ServiceValidationError: If status is not a known status
    """
    require_admin(actor, action='view undo requests')

    requests = UndoRequest.objects.order_by('requested_at', 'id')

    if status:
        if status not in UndoRequestStatus.values:
            raise ServiceValidationError(f"Unknown status: {status}")
        requests = requests.filter(status=status)

    return requests
