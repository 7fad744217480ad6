from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from infrastructure.container import container
from marketplace.api.errors import error_response, validation_error_response
from marketplace.api.serializers import ErrorResponseSerializer
from marketplace.ordering.api.serializers.order_serializers import (
    CreateOrderRequestSerializer,
    OrderPageResponseSerializer,
    OrderSerializer,
    UpdateOrderStatusRequestSerializer,
)
from marketplace.services.base import ErrorCodes, service_err
from marketplace.services.order_service import OrderService


ORDER_TAGS = ["Marketplace - Orders"]


def _query_int(request, name):
    """Read an optional integer query parameter; raises ValueError on junk."""
    raw = request.query_params.get(name)
    if raw in (None, ""):
        return None
    return int(raw)


class OrderViewSet(viewsets.ViewSet):
    permission_classes = [IsAuthenticated]
    lookup_value_regex = "[0-9a-f-]{36}"

    def get_service(self) -> OrderService:
        return container.order_service()

    @extend_schema(
        operation_id="orders_list",
        summary="List the current customer's orders",
        description="""
        **What it receives:**
        - Authentication token

        **What it returns:**
        - Every order placed by the customer, newest first, with line items
        """,
        responses={
            200: OrderSerializer(many=True),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Customer not found"),
        },
        tags=ORDER_TAGS,
    )
    def list(self, request):
        result = self.get_service().list_customer_orders(request.user)
        if not result.ok:
            return error_response(result)
        return Response(OrderSerializer(result.value, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="orders_create",
        summary="Create an order from a cart",
        description="""
        **What it receives:**
        - `cart_id` (integer, optional): Cart to check out (defaults to your own)
        - `notes` (string, optional): Order notes

        **What it returns:**
        - The created order. Stock is decremented and the cart is emptied
          in the same transaction; nothing changes if any line is short on stock.
        """,
        request=CreateOrderRequestSerializer,
        responses={
            201: OrderSerializer,
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Empty cart or insufficient stock"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Cart belongs to another customer"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Customer or cart not found"),
        },
        tags=ORDER_TAGS,
    )
    def create(self, request):
        input_serializer = CreateOrderRequestSerializer(data=request.data)
        if not input_serializer.is_valid():
            return validation_error_response(input_serializer.errors)

        data = input_serializer.validated_data
        result = self.get_service().create_order(request.user, cart_id=data.get("cart_id"), notes=data.get("notes", ""))
        if not result.ok:
            return error_response(result)
        return Response(OrderSerializer(result.value).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="orders_retrieve",
        summary="Get an order",
        description="Customers can read their own orders; administrators can read any order.",
        responses={
            200: OrderSerializer,
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Order belongs to another customer"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Order not found"),
        },
        tags=ORDER_TAGS,
    )
    def retrieve(self, request, pk=None):
        result = self.get_service().get_order(pk, request.user)
        if not result.ok:
            return error_response(result)
        return Response(OrderSerializer(result.value).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="orders_update_status",
        summary="Change an order's status (admin)",
        description="""
        **What it receives:**
        - `status`: pending, processing, shipped, delivered or cancelled

        **What it returns:**
        - The updated order. Cancelling returns the ordered quantities to stock.
        """,
        request=UpdateOrderStatusRequestSerializer,
        responses={
            200: OrderSerializer,
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Unknown status or transition"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Not an administrator"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Order not found"),
        },
        tags=ORDER_TAGS,
    )
    @action(detail=True, methods=["patch"], url_path="status")
    def update_status(self, request, pk=None):
        input_serializer = UpdateOrderStatusRequestSerializer(data=request.data)
        if not input_serializer.is_valid():
            return validation_error_response(input_serializer.errors)

        result = self.get_service().update_status(pk, input_serializer.validated_data["status"], request.user)
        if not result.ok:
            return error_response(result)
        return Response(OrderSerializer(result.value).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="orders_admin_list",
        summary="List all orders (admin)",
        description="""
        **What it receives:**
        - `page` (one-based, default 1), `page_size` (capped), optional `status`

        **What it returns:**
        - One page of orders, newest first, with paging information
        """,
        parameters=[
            OpenApiParameter(name="status", type=str, description="Filter by order status"),
            OpenApiParameter(name="page", type=int, description="Page number (default: 1)"),
            OpenApiParameter(name="page_size", type=int, description="Items per page"),
        ],
        responses={
            200: OrderPageResponseSerializer,
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Invalid paging or status"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Not an administrator"),
        },
        tags=ORDER_TAGS,
    )
    @action(detail=False, methods=["get"], url_path="admin")
    def admin_list(self, request):
        try:
            page = _query_int(request, "page")
            page_size = _query_int(request, "page_size")
        except ValueError:
            return error_response(service_err(ErrorCodes.VALIDATION_ERROR, "Page and page size must be integers."))

        if page is None:
            page = 1

        result = self.get_service().list_orders(
            page=page,
            page_size=page_size,
            status=request.query_params.get("status") or None,
            user=request.user,
        )
        if not result.ok:
            return error_response(result)

        paged = result.value.to_dict()
        paged["items"] = OrderSerializer(paged["items"], many=True).data
        return Response(paged, status=status.HTTP_200_OK)
