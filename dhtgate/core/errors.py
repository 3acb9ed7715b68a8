"""
Gateway error taxonomy.

Every failure a handler can hit is one of these. Each error knows the HTTP
status it maps to and how it renders as a JSON body, so the transport layer
only needs a single exception handler.
"""

from typing import Any, Dict, Optional


class GatewayError(Exception):
    """Base class for errors that terminate a request with a JSON error body."""

    status_code: int = 500

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_body(self) -> Dict[str, Any]:
        """Render as the JSON error body (always carries ``error``)."""
        return {"error": self.message, **self.context}


class InvalidIdentifier(GatewayError):
    """Identifier text or key bytes could not be turned into a StoreIdentifier."""

    status_code = 400

    def __init__(self, reason: str):
        super().__init__(f"Invalid ID: {reason}")
        self.reason = reason


class MissingField(GatewayError):
    """A required body field is absent or empty."""

    status_code = 400


class InvalidBody(GatewayError):
    """Request body is not a JSON object of the expected shape."""

    status_code = 400

    def __init__(self, message: str = "Invalid JSON body"):
        super().__init__(message)


class MalformedValue(GatewayError):
    """Stored bytes cannot be decoded into the expected record shape."""

    status_code = 500

    def __init__(self, detail: str = ""):
        super().__init__("Invalid value format")
        self.detail = detail


class NotFound(GatewayError):
    """The store resolved the lookup, but holds no value for the identifier."""

    status_code = 404


class StoreFailure(GatewayError):
    """The underlying store operation raised; the message is the store's own."""

    status_code = 500

    @classmethod
    def from_exception(cls, exc: BaseException) -> "StoreFailure":
        return cls(str(exc) or exc.__class__.__name__)
