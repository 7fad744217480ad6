from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from infrastructure.container import container  # For DI
from marketplace.api.errors import error_response, validation_error_response
from marketplace.api.serializers import ErrorResponseSerializer, SuccessResponseSerializer
from marketplace.cart.api.serializers.cart_serializers import (
    AddToCartRequestSerializer,
    CartContainsResponseSerializer,
    CartCountResponseSerializer,
    CartServiceOutputSerializer,
    UpdateCartItemRequestSerializer,
)
from marketplace.services.cart_service import CartService


CART_TAGS = ["Marketplace - Cart"]

NOT_FOUND_RESPONSE = OpenApiResponse(response=ErrorResponseSerializer, description="Customer, cart or item not found")
CART_RESPONSE = OpenApiResponse(response=CartServiceOutputSerializer, description="Current cart")


class CartViewSet(viewsets.ViewSet):
    permission_classes = [IsAuthenticated]

    def get_service(self) -> CartService:
        # Inject CartService via DI container
        return container.cart_service()

    def get_output_serializer(self, *args, **kwargs):
        return CartServiceOutputSerializer(*args, **kwargs)

    def _cart_response(self, result, success_status=status.HTTP_200_OK):
        if not result.ok:
            return error_response(result)
        return Response(self.get_output_serializer(result.value).data, status=success_status)

    @extend_schema(
        operation_id="cart_get",
        summary="Get the shopping cart",
        description="""
        **What it receives:**
        - Authentication token (header)

        **What it returns:**
        - Cart items with their unit price and line total
        - Total item count and total price (prices captured when each item was added)
        - An empty cart if none exists yet
        """,
        responses={200: CART_RESPONSE, 404: NOT_FOUND_RESPONSE},
        tags=CART_TAGS,
    )
    def list(self, request):
        return self._cart_response(self.get_service().get_cart(request.user))

    @extend_schema(
        operation_id="cart_add_item",
        summary="Add item to cart",
        description="""
        **What it receives:**
        - `product_id` (UUID): Product to add
        - `quantity` (integer, optional): Quantity to add (default: 1)
        - `selected_size` / `selected_color` (string, optional)

        **What it returns:**
        - Updated cart. Adding a product that is already in the cart
          increases the existing line.
        """,
        request=AddToCartRequestSerializer,
        responses={
            201: CART_RESPONSE,
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Invalid quantity or insufficient stock"),
            404: NOT_FOUND_RESPONSE,
        },
        tags=CART_TAGS,
    )
    @action(detail=False, methods=["post"], url_path="items")
    def add_item(self, request):
        input_serializer = AddToCartRequestSerializer(data=request.data)
        if not input_serializer.is_valid():
            return validation_error_response(input_serializer.errors)

        data = input_serializer.validated_data
        result = self.get_service().add_item(
            request.user,
            data["product_id"],
            data["quantity"],
            selected_size=data.get("selected_size", ""),
            selected_color=data.get("selected_color", ""),
        )
        return self._cart_response(result, success_status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="cart_update_item",
        summary="Set the quantity of a cart item",
        description="""
        **What it receives:**
        - `item_id` (path): Cart item to update
        - `quantity` (integer): New quantity; zero or less removes the item

        **What it returns:**
        - Updated cart
        """,
        request=UpdateCartItemRequestSerializer,
        responses={
            200: CART_RESPONSE,
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Insufficient stock"),
            404: NOT_FOUND_RESPONSE,
        },
        tags=CART_TAGS,
    )
    def update_item(self, request, item_id=None):
        input_serializer = UpdateCartItemRequestSerializer(data=request.data)
        if not input_serializer.is_valid():
            return validation_error_response(input_serializer.errors)

        result = self.get_service().update_item_quantity(
            request.user, item_id, input_serializer.validated_data["quantity"]
        )
        return self._cart_response(result)

    @extend_schema(
        operation_id="cart_remove_item",
        summary="Remove an item from the cart",
        responses={200: CART_RESPONSE, 404: NOT_FOUND_RESPONSE},
        tags=CART_TAGS,
    )
    def remove_item(self, request, item_id=None):
        return self._cart_response(self.get_service().remove_item(request.user, item_id))

    @extend_schema(
        operation_id="cart_increase_item",
        summary="Increase a cart item by one",
        request=None,
        responses={
            200: CART_RESPONSE,
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Stock limit reached"),
            404: NOT_FOUND_RESPONSE,
        },
        tags=CART_TAGS,
    )
    def increase_item(self, request, item_id=None):
        return self._cart_response(self.get_service().increase_quantity(request.user, item_id))

    @extend_schema(
        operation_id="cart_decrease_item",
        summary="Decrease a cart item by one",
        description="An item at quantity one is removed.",
        request=None,
        responses={200: CART_RESPONSE, 404: NOT_FOUND_RESPONSE},
        tags=CART_TAGS,
    )
    def decrease_item(self, request, item_id=None):
        return self._cart_response(self.get_service().decrease_quantity(request.user, item_id))

    @extend_schema(
        operation_id="cart_clear",
        summary="Remove every item from the cart",
        responses={200: SuccessResponseSerializer, 404: NOT_FOUND_RESPONSE},
        tags=CART_TAGS,
    )
    @action(detail=False, methods=["delete"])
    def clear(self, request):
        result = self.get_service().clear_cart(request.user)
        if not result.ok:
            return error_response(result)
        return Response({"success": result.value}, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="cart_count",
        summary="Number of units in the cart",
        description="Returns 0 when the customer has no cart.",
        responses={200: CartCountResponseSerializer},
        tags=CART_TAGS,
    )
    @action(detail=False, methods=["get"])
    def count(self, request):
        result = self.get_service().item_count(request.user)
        if not result.ok:
            return error_response(result)
        return Response({"count": result.value}, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="cart_contains",
        summary="Whether a product is in the cart",
        responses={200: CartContainsResponseSerializer},
        tags=CART_TAGS,
    )
    def contains(self, request, product_id=None):
        result = self.get_service().is_product_in_cart(request.user, product_id)
        if not result.ok:
            return error_response(result)
        return Response({"product_id": product_id, "in_cart": result.value}, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="cart_validate",
        summary="Check the cart against current stock and prices",
        description="""
        **What it returns:**
        - `valid`: whether every line can still be bought
        - Per-line issues (unavailable product, insufficient stock)
        """,
        responses={200: OpenApiResponse(description="Validation report"), 404: NOT_FOUND_RESPONSE},
        tags=CART_TAGS,
    )
    @action(detail=False, methods=["get"])
    def validate(self, request):
        result = self.get_service().validate_cart(request.user)
        if not result.ok:
            return error_response(result)
        return Response(result.value, status=status.HTTP_200_OK)
