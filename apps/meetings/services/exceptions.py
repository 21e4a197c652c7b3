"""
Domain-specific exceptions for the meetings app.

These exceptions represent business rule violations and storage failures.
Views catch them and convert them to HTTP responses; services never
swallow them.
"""


class MeetingsServiceError(Exception):
    """Base exception for all meetings service errors."""
    pass


# Lookup failures

class NotFoundError(MeetingsServiceError):
    """Raised when a referenced entity does not exist."""
    pass


class MeetingNotFoundError(NotFoundError):
    """Raised when a meeting does not exist."""
    pass


class ShareholderNotFoundError(NotFoundError):
    """Raised when no shareholder has the given external id."""
    pass


class PropertyNotFoundError(NotFoundError):
    """Raised when a property does not exist."""
    pass


class UndoRequestNotFoundError(NotFoundError):
    """Raised when an undo request does not exist."""
    pass


# Workflow violations

class InvalidStateError(MeetingsServiceError):
    """Raised when an operation is not valid for the entity's current state."""
    pass


class RequestAlreadyProcessedError(InvalidStateError):
    """Raised when resolving an undo request that is no longer pending."""
    pass


class AlreadyCheckedInError(InvalidStateError):
    """Raised by manual check-in when the shareholder already holds a ballot."""
    pass


class ServiceValidationError(MeetingsServiceError):
    """Raised when required input is missing or malformed."""
    pass


# Persistence

class StorageError(MeetingsServiceError):
    """Raised when the underlying database fails."""
    pass


class DuplicateShareholderIdError(MeetingsServiceError):
    """Raised when a shareholder id is already taken."""
    pass


# Authorization

class AuthenticationRequiredError(MeetingsServiceError):
    """Raised when an operation is attempted without an authenticated caller."""
    pass


class InsufficientPermissionsError(MeetingsServiceError):
    """Raised when the caller lacks the meeting admin capability."""
    pass
