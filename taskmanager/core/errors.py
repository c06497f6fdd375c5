"""
Application Error Module

Domain errors raised by services and dependencies. Each carries the HTTP status
it maps to; the handlers registered in main.py render them as {"error": message}.
"""
from fastapi import status


class AppError(Exception):
    """Base class for errors surfaced verbatim to the client."""
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Bad request"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidArgument(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class Unauthenticated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authenticated"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not authorized"


class EmailNotVerified(Forbidden):
    default_message = "Please verify your email before logging in"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class InvalidToken(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid or unknown token"


class Expired(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Token has expired"


class ConfigError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Server configuration incomplete"


class Unavailable(AppError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Service temporarily unavailable"
