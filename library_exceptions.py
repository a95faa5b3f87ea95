class LibraryError(Exception):
    """Base exception for library system errors."""


class ValidationError(LibraryError, ValueError):
    """Argument is missing, empty, out of range or malformed."""


class StateError(LibraryError):
    """Operation is not allowed given the current library state."""


class BookNotFoundError(StateError):
    """Requested ISBN does not exist in the catalog."""


class MemberNotFoundError(StateError):
    """Requested memberId does not exist in the member registry."""


class CheckoutRuleViolationError(StateError):
    """borrow/return violates business rules."""
