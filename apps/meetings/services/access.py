"""
Authorization gate for meeting services.

The caller's principal is passed explicitly into every service that needs
it. Authentication itself happens in the HTTP layer; these helpers only
decide pass or fail.
"""

import logging

from .exceptions import AuthenticationRequiredError, InsufficientPermissionsError

logger = logging.getLogger(__name__)


def require_authenticated(actor):
    """Return the actor or raise if there is no signed-in caller."""
    if actor is None or not getattr(actor, 'is_authenticated', False):
        raise AuthenticationRequiredError("Authentication required")
    return actor


def require_admin(actor, *, action: str):
    """Return the actor if it carries the meeting admin capability."""
    require_authenticated(actor)

    if not getattr(actor, 'is_meeting_admin', False):
        logger.warning("Non-admin access attempt: %s tried to %s", actor, action)
        raise InsufficientPermissionsError(f"Admin access required to {action}")

    return actor
