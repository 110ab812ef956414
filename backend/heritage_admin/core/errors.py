"""Service-level errors carrying a human-readable message for the console."""


class ServiceError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    status_code = 422


class NotFoundError(ServiceError):
    status_code = 404


class BackendError(ServiceError):
    """The backend platform (tables or functions) failed the request."""

    status_code = 502


class AuthenticationError(ServiceError):
    status_code = 401
