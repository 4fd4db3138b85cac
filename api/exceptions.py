"""
Custom Exception Handler for API
"""
from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework import status
import logging

from apps.core.exceptions import (
    AmountMismatchException,
    CommerceException,
    ConflictException,
    CouponUnusableException,
    ForbiddenException,
    InsufficientStockException,
    InvalidCredentialsException,
    InvalidOrderStateException,
    NotFoundException,
    ValidationException,
)

logger = logging.getLogger(__name__)


DOMAIN_STATUS_CODES = {
    NotFoundException: status.HTTP_404_NOT_FOUND,
    ForbiddenException: status.HTTP_403_FORBIDDEN,
    InsufficientStockException: status.HTTP_409_CONFLICT,
    InvalidOrderStateException: status.HTTP_409_CONFLICT,
    CouponUnusableException: status.HTTP_400_BAD_REQUEST,
    AmountMismatchException: status.HTTP_400_BAD_REQUEST,
    ValidationException: status.HTTP_400_BAD_REQUEST,
    ConflictException: status.HTTP_409_CONFLICT,
    InvalidCredentialsException: status.HTTP_401_UNAUTHORIZED,
}


def domain_status_code(exc: CommerceException) -> int:
    for exc_class in type(exc).__mro__:
        if exc_class in DOMAIN_STATUS_CODES:
            return DOMAIN_STATUS_CODES[exc_class]
    return status.HTTP_400_BAD_REQUEST


def custom_exception_handler(exc, context):
    """
    Custom exception handler that provides consistent error responses.
    """
    if isinstance(exc, CommerceException):
        status_code = domain_status_code(exc)
        logger.info(f"Domain error {exc.code} ({status_code}): {exc.message}")
        return Response(
            {
                "error": True,
                "code": exc.code,
                "message": exc.message,
                "details": exc.details(),
                "status_code": status_code
            },
            status=status_code
        )

    # Call REST framework's default exception handler first
    response = exception_handler(exc, context)

    if response is not None:
        # Customize the response format
        response.data = {
            "error": True,
            "code": getattr(exc, 'default_code', 'error').upper(),
            "message": str(exc),
            "details": response.data if isinstance(response.data, dict) else {"detail": response.data},
            "status_code": response.status_code
        }
    else:
        # Handle unexpected exceptions
        logger.exception(f"Unhandled exception: {exc}")
        response = Response(
            {
                "error": True,
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "details": {},
                "status_code": 500
            },
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    return response
