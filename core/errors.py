"""Domain errors raised before any state change is applied."""

from typing import Optional


class ValidationError(ValueError):
    """Payload rejected at the create/edit boundary (e.g. blank title)."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def __str__(self) -> str:
        if self.field:
            return f"{self.field}: {self.message}"
        return self.message
