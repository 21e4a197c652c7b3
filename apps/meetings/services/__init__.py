"""
Meetings services - Business logic layer.

This package contains all business operations for the meetings app:
- Registry lookups and atomic counter updates
- Property ownership transfer
- Check-in ledger and undo request workflow
- Meeting, shareholder and property management
- Roster import
"""

# Check-in Ledger
from .checkin import (
    check_in_shareholder,
    reverse_check_in,
    manual_check_in,
    bulk_uncheck_in,
)

# Undo Requests
from .undo_requests import (
    request_undo,
    resolve_undo,
    list_undo_requests,
)

# Transfers
from .transfer import (
    TransferResult,
    transfer_property,
    list_property_transfers,
)

# Meeting Management
from .meeting_management import (
    create_meeting,
    delete_meeting,
    get_next_meeting,
    get_meeting_stats,
    mark_mailers_generated,
)

# Roster Import
from .roster_import import (
    import_roster,
    generate_shareholder_id,
)

# Shareholder Management
from .shareholder_management import (
    create_shareholder,
    list_shareholders,
    get_shareholder_details,
    update_shareholder_name,
    set_designee,
    clear_designee,
    get_comment,
    set_comment,
)

# Property Management
from .property_management import (
    create_property,
    update_property_details,
    delete_property,
)

# Domain Exceptions
from .exceptions import (
    MeetingsServiceError,
    NotFoundError,
    MeetingNotFoundError,
    ShareholderNotFoundError,
    PropertyNotFoundError,
    UndoRequestNotFoundError,
    InvalidStateError,
    RequestAlreadyProcessedError,
    AlreadyCheckedInError,
    ServiceValidationError,
    StorageError,
    DuplicateShareholderIdError,
    AuthenticationRequiredError,
    InsufficientPermissionsError,
)

__all__ = [
    # Check-in Ledger
    'check_in_shareholder',
    'reverse_check_in',
    'manual_check_in',
    'bulk_uncheck_in',
    # Undo Requests
    'request_undo',
    'resolve_undo',
    'list_undo_requests',
    # Transfers
    'TransferResult',
    'transfer_property',
    'list_property_transfers',
    # Meeting Management
    'create_meeting',
    'delete_meeting',
    'get_next_meeting',
    'get_meeting_stats',
    'mark_mailers_generated',
    # Roster Import
    'import_roster',
    'generate_shareholder_id',
    # Shareholder Management
    'create_shareholder',
    'list_shareholders',
    'get_shareholder_details',
    'update_shareholder_name',
    'set_designee',
    'clear_designee',
    'get_comment',
    'set_comment',
    # Property Management
    'create_property',
    'update_property_details',
    'delete_property',
    # Exceptions
    'MeetingsServiceError',
    'NotFoundError',
    'MeetingNotFoundError',
    'ShareholderNotFoundError',
    'PropertyNotFoundError',
    'UndoRequestNotFoundError',
    'InvalidStateError',
    'RequestAlreadyProcessedError',
    'AlreadyCheckedInError',
    'ServiceValidationError',
    'StorageError',
    'DuplicateShareholderIdError',
    'AuthenticationRequiredError',
    'InsufficientPermissionsError',
]
