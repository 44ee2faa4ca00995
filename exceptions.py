"""Session engine exceptions."""


class SessionError(Exception):
    """Base exception for session engine errors."""
    pass


class SessionAlreadyRunningError(SessionError):
    """Raised when a session is started while another one is running."""
    pass


class SessionStorageError(SessionError):
    """Raised when a finished session could not be written to the store."""

    def __init__(self, message: str, session_name: str | None = None):
        super().__init__(message)
        self.session_name = session_name
