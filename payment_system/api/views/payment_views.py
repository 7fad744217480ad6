import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from infrastructure.container import container
from marketplace.api.errors import error_response, validation_error_response
from marketplace.api.serializers import ErrorResponseSerializer
from payment_system.api.serializers.request_serializers import ConfirmPaymentRequestSerializer
from payment_system.api.serializers.response_serializers import (
    ConfirmPaymentResponseSerializer,
    PaymentIntentResponseSerializer,
)


logger = logging.getLogger(__name__)

PROVIDER_ERROR_RESPONSES = {
    502: OpenApiResponse(response=ErrorResponseSerializer, description="Payment processor error"),
    504: OpenApiResponse(response=ErrorResponseSerializer, description="Payment processor did not answer"),
}


@extend_schema(
    operation_id="payment_create_intent",
    summary="Create a payment intent for the cart",
    description="""
    **What it receives:**
    - Authentication token (the cart of the current customer is charged)

    **What it returns:**
    - `client_secret` for the client-side payment form
    - `payment_intent_id`, `payment_id`, `amount` and `currency`
    """,
    request=None,
    responses={
        201: OpenApiResponse(response=PaymentIntentResponseSerializer, description="Payment intent created"),
        400: OpenApiResponse(response=ErrorResponseSerializer, description="Cart is empty"),
        404: OpenApiResponse(response=ErrorResponseSerializer, description="Customer not found"),
        **PROVIDER_ERROR_RESPONSES,
    },
    tags=["Payments"],
)
@api_view(["POST"])
@permission_classes([IsAuthenticated])
def create_payment_intent(request):
    result = container.payment_service().create_payment_intent(request.user)
    if not result.ok:
        logger.warning(f"Payment intent creation failed for user {request.user.id}: {result.error}")
        return error_response(result)

    return Response(PaymentIntentResponseSerializer(result.value).data, status=status.HTTP_201_CREATED)


@extend_schema(
    operation_id="payment_confirm",
    summary="Confirm a payment and create the order",
    description="""
    **What it receives:**
    - `payment_intent_id`: intent returned by the create endpoint

    **What it returns:**
    - `order_id` of the order created from the cart
    - `created`: false when the payment had already been confirmed
    """,
    request=ConfirmPaymentRequestSerializer,
    responses={
        201: OpenApiResponse(response=ConfirmPaymentResponseSerializer, description="Order created"),
        200: OpenApiResponse(response=ConfirmPaymentResponseSerializer, description="Already confirmed"),
        400: OpenApiResponse(
            response=ErrorResponseSerializer, description="Payment not successful, empty cart or insufficient stock"
        ),
        403: OpenApiResponse(response=ErrorResponseSerializer, description="Payment belongs to another customer"),
        404: OpenApiResponse(response=ErrorResponseSerializer, description="Payment not found"),
        **PROVIDER_ERROR_RESPONSES,
    },
    tags=["Payments"],
)
@api_view(["POST"])
@permission_classes([IsAuthenticated])
def confirm_payment(request):
    input_serializer = ConfirmPaymentRequestSerializer(data=request.data)
    if not input_serializer.is_valid():
        return validation_error_response(input_serializer.errors)

    payment_intent_id = input_serializer.validated_data["payment_intent_id"]
    result = container.payment_service().confirm_payment_and_create_order(request.user, payment_intent_id)
    if not result.ok:
        logger.warning(f"Payment confirmation failed for intent {payment_intent_id}: {result.error}")
        return error_response(result)

    response_status = status.HTTP_201_CREATED if result.value["created"] else status.HTTP_200_OK
    return Response(ConfirmPaymentResponseSerializer(result.value).data, status=response_status)
