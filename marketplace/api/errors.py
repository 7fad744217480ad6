"""Translate failed ServiceResults into DRF responses."""

from rest_framework import status
from rest_framework.response import Response

from marketplace.services.base import ErrorCodes, ServiceResult

ERROR_STATUS = {
    # Not found
    ErrorCodes.CUSTOMER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCodes.CART_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCodes.CART_ITEM_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCodes.PRODUCT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCodes.ORDER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCodes.PAYMENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    # Permission
    ErrorCodes.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
    # Client errors
    ErrorCodes.INSUFFICIENT_STOCK: status.HTTP_400_BAD_REQUEST,
    ErrorCodes.CART_EMPTY: status.HTTP_400_BAD_REQUEST,
    ErrorCodes.PAYMENT_NOT_SUCCESSFUL: status.HTTP_400_BAD_REQUEST,
    ErrorCodes.INVALID_QUANTITY: status.HTTP_400_BAD_REQUEST,
    ErrorCodes.INVALID_STATUS: status.HTTP_400_BAD_REQUEST,
    ErrorCodes.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCodes.INVALID_ORDER_STATE: status.HTTP_400_BAD_REQUEST,
    # Upstream
    ErrorCodes.PAYMENT_PROVIDER_ERROR: status.HTTP_502_BAD_GATEWAY,
    ErrorCodes.PAYMENT_PROVIDER_TIMEOUT: status.HTTP_504_GATEWAY_TIMEOUT,
    # Server
    ErrorCodes.PERSISTENCE_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCodes.ORDER_CREATION_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCodes.INTERNAL_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for(error_code: str) -> int:
    return ERROR_STATUS.get(error_code, status.HTTP_500_INTERNAL_SERVER_ERROR)


def error_response(result: ServiceResult) -> Response:
    return Response({"detail": result.error_detail, "code": result.error}, status=status_for(result.error))


def validation_error_response(errors) -> Response:
    return Response(
        {"detail": "Invalid request data.", "code": ErrorCodes.VALIDATION_ERROR, "errors": errors},
        status=status.HTTP_400_BAD_REQUEST,
    )
