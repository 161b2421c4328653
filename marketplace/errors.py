"""
Application error taxonomy.

Services raise these; the handlers registered in main.py turn them into
``{"error": message}`` JSON responses with the matching status code.
"""


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(AppError):
    status_code = 400


class LifecycleError(AppError):
    """A job operation is not allowed in the job's current state"""

    status_code = 400


class InvalidTransitionError(LifecycleError):
    def __init__(self, current: str, target: str, reason: str = ""):
        message = f"Cannot move job from {current} to {target}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.current = current
        self.target = target


class UnauthorizedError(AppError):
    status_code = 401


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


class ConfigurationError(AppError):
    """A required external-service credential is missing"""

    status_code = 500


class UpstreamError(AppError):
    """The payment provider (or another external service) failed"""

    status_code = 500
