# services/quiz_service/errors.py
"""
Error taxonomy for the quiz service.

- AuthError: bad credentials, provider rejection, network failure talking to the identity provider
- StoreError: network/permission failure on a Firestore read or write
- ValidationError: a stored document has the wrong shape (decoders degrade to defaults)
"""


class QuizError(Exception):
    """Base class; `message` is safe to show to the user."""

    def __init__(self, message: str, *, detail: str | None = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class AuthError(QuizError):
    pass


class StoreError(QuizError):
    def __init__(self, message: str, *, path: str | None = None, detail: str | None = None):
        super().__init__(message, detail=detail)
        self.path = path


class ValidationError(QuizError):
    def __init__(self, message: str, *, field: str | None = None):
        super().__init__(message)
        self.field = field
