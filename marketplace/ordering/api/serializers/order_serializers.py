from rest_framework import serializers

from marketplace.ordering.domain.models.order import Order, OrderItem, OrderStatus


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_id",
            "product_name",
            "product_sku",
            "unit_price",
            "quantity",
            "subtotal",
            "selected_size",
            "selected_color",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    customer_id = serializers.UUIDField(read_only=True)
    payment_id = serializers.UUIDField(read_only=True, allow_null=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "customer_id",
            "order_date",
            "status",
            "total_amount",
            "order_notes",
            "payment_id",
            "items",
            "updated_at",
        ]
        read_only_fields = fields


class CreateOrderRequestSerializer(serializers.Serializer):
    cart_id = serializers.IntegerField(required=False, help_text="Cart to check out; defaults to your own cart")
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class UpdateOrderStatusRequestSerializer(serializers.Serializer):
    # Plain CharField so unknown values reach the service and come back as invalid_status
    status = serializers.CharField(help_text=f"One of: {', '.join(OrderStatus.values)}")


class OrderPageResponseSerializer(serializers.Serializer):
    items = OrderSerializer(many=True)
    page_index = serializers.IntegerField()
    page_size = serializers.IntegerField()
    total_count = serializers.IntegerField()
    total_pages = serializers.IntegerField()
    has_previous_page = serializers.BooleanField()
    has_next_page = serializers.BooleanField()
