"""
Error taxonomy for the analysis and report pipeline
"""
from typing import Any, Optional


class IdeaLabError(Exception):
    """Base class for pipeline errors; carries the HTTP status it maps to"""

    status_code = 500
    public_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.public_message)
        self.message = message or self.public_message

    def to_response(self) -> dict:
        """Body returned to the client"""
        return {"error": self.public_message}


class ValidationError(IdeaLabError):
    """Malformed or out-of-bounds input, raised before any external call"""

    status_code = 400
    public_message = "Invalid request data"

    def __init__(self, message: Optional[str] = None, details: Optional[list] = None):
        super().__init__(message)
        self.details = details or []

    def to_response(self) -> dict:
        body = {"error": self.public_message}
        if self.details:
            body["details"] = self.details
        return body


class Refused(IdeaLabError):
    """The model declined to answer on policy grounds"""

    status_code = 400

    def to_response(self) -> dict:
        # Refusals are shown to the user verbatim
        return {"error": self.message}


class NotReady(IdeaLabError):
    status_code = 400
    public_message = "Report not yet generated"


class NotFound(IdeaLabError):
    status_code = 404
    public_message = "Not found"

    def to_response(self) -> dict:
        return {"error": self.message}


class InvalidToken(IdeaLabError):
    status_code = 404
    public_message = "Invalid token"


class Expired(IdeaLabError):
    status_code = 401
    public_message = "Token has expired"


class SchemaViolation(IdeaLabError):
    """The model response does not match the declared contract"""

    status_code = 500
    public_message = "Failed to process the model response"

    def __init__(self, message: Optional[str] = None, raw_payload: Any = None):
        super().__init__(message)
        self.raw_payload = raw_payload


class PersistenceError(IdeaLabError):
    status_code = 500
    public_message = "Failed to save data"


class ProviderError(IdeaLabError):
    """The LLM provider failed (network, timeout, API error)"""

    status_code = 502
    public_message = "The analysis provider is unavailable, please try again"


class SubscriptionError(IdeaLabError):
    """The email provider refused or failed a list subscription"""

    status_code = 500
    public_message = "Failed to subscribe to list"
