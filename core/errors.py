"""Tagged errors raised by the chat engine.

Service functions raise these instead of HTTP errors so callers can pick their
own response; `main.py` maps them onto status codes.
"""


class ChatError(Exception):
    code = "internal"
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class NotFoundError(ChatError):
    """User, conversation, message, group or media item is absent."""

    code = "not_found"
    status_code = 404


class UnauthorizedError(ChatError):
    """Caller is not a participant, not the sender or not the owner."""

    code = "unauthorized"
    status_code = 403


class ConflictError(ChatError):
    code = "conflict"
    status_code = 409


class ValidationError(ChatError):
    code = "validation"
    status_code = 400


class InternalError(ChatError):
    """Storage failure, commit failure or identifier exhaustion."""

    code = "internal"
    status_code = 500


class IdentifierGenerationError(InternalError):
    pass
