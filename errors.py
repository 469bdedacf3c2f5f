"""Error taxonomy shared by the stores, the auth layer and the routes.

Every error carries the HTTP status it maps to; the exception handlers in
``main`` turn them into ``{"error": message}`` responses.
"""


class AppError(Exception):
    status_code = 500
    message = "Internal server error"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    message = "Invalid request"


class AuthError(AppError):
    status_code = 401
    message = "Not authenticated"


class InvalidTokenError(AuthError):
    message = "Invalid token"


class InvalidCredentialsError(AuthError):
    # Login failures are reported as 400, like any other bad form submission.
    status_code = 400
    message = "Invalid credentials"


class ConflictError(AppError):
    status_code = 400
    message = "Already exists"


class NotFoundError(AppError):
    status_code = 404
    message = "Not found"


class InternalError(AppError):
    status_code = 500
