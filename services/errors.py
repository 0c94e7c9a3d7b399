"""Domain errors raised by the generation, ledger and image services.

Each error carries the HTTP status the routes translate it to.
"""


class AppError(Exception):
    """Base class for errors surfaced directly to the caller."""

    status_code = 500

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    """Empty prompt, empty id or otherwise unusable input."""

    status_code = 400


class InsufficientCredits(AppError):
    """The caller has no credits left to spend."""

    status_code = 402

    def __init__(self, message: str = "You don't have enough credits to generate an image. Please buy more credits.") -> None:
        super().__init__(message)


class GenerationFailed(AppError):
    """Opaque failure of the provider call, the download or the upload."""

    status_code = 502

    def __init__(self, message: str = "Error generating image") -> None:
        super().__init__(message)


class NotFound(AppError):
    status_code = 404


class Unauthorized(AppError):
    """Caller is not signed in (401) or does not own the resource (403)."""

    status_code = 401


class PaymentUnavailable(AppError):
    status_code = 503
