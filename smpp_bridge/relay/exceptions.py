from typing import Optional


class RelayError(Exception):
    """Raised while preparing a Telegram request; never leaves the relay client."""
    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(message if field is None else f"{message} (field: {field})")
