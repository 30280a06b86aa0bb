"""Exceptions for officetrack."""


class OfficeTrackError(Exception):
    """Base exception for tracker errors."""
    pass


class PersistenceFailure(OfficeTrackError):
    """Raised when durable storage cannot be read or written."""

    def __init__(self, key: str, message: str = "") -> None:
        self.key = key
        super().__init__(message or f"Storage access failed for key '{key}'")


class InvalidTransition(OfficeTrackError):
    """Raised when an action is requested while its guard is unmet."""

    def __init__(self, action: str, status: str) -> None:
        self.action = action
        self.status = status
        super().__init__(f"Cannot {action} while status is {status}")


class ClipboardFailure(OfficeTrackError):
    """Raised by a clipboard sink that rejected a write."""
    pass


class EntryNotFound(OfficeTrackError):
    """Raised when an update targets an entry id that does not exist."""

    def __init__(self, entry_id: str) -> None:
        self.entry_id = entry_id
        super().__init__(f"Time entry '{entry_id}' not found")


class SessionAlreadyOpen(OfficeTrackError):
    """Raised when an edit session is opened while another one is open."""
    pass


class InvalidDraft(OfficeTrackError):
    """Raised when an edit draft is saved with empty fields."""
    pass
