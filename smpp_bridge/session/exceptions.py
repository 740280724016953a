from typing import Optional


class SessionError(Exception):
    """Base exception for SMPP submission failures."""
    def __init__(self, message: str, status: Optional[int] = None):
        self.message = message
        self.status = status
        super().__init__(message)


class NotConnectedError(SessionError):
    """Raised when the session is not bound to the SMSC."""
    def __init__(self, message: str = "not connected"):
        super().__init__(message)


class SubmitRejectedError(SessionError):
    """Raised when the SMSC answers submit_sm with an error status."""
    pass


class SubmitTimeoutError(SessionError):
    """Raised when no submit_sm_resp arrives in time."""
    pass
