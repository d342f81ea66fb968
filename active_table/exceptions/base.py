"""Root of the active-table exception hierarchy."""

from typing import Any, Dict, Optional


class ActiveTableError(Exception):
    """Error raised by the gateway layer itself.

    ``context`` carries what a caller needs to act on the failure (table
    name, primary key, rejected fields). When a lower-level exception
    triggered the error it is kept as ``original_error`` and named in the
    rendered message.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error
        self.context = dict(context or {})

    def __str__(self) -> str:
        text = self.message
        if self.context:
            details = ", ".join(f"{key}={value}" for key, value in self.context.items())
            text = f"{text} ({details})"
        if self.original_error is not None:
            text = f"{text}: {type(self.original_error).__name__}: {self.original_error}"
        return text

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, context={self.context!r})"
