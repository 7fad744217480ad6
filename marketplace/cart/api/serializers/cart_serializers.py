from rest_framework import serializers


class AddToCartRequestSerializer(serializers.Serializer):
    product_id = serializers.UUIDField(help_text="Product to add")
    quantity = serializers.IntegerField(default=1, help_text="Units to add (must be positive)")
    selected_size = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")
    selected_color = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")


class UpdateCartItemRequestSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(help_text="New quantity; zero or less removes the item")


class CartItemServiceOutputSerializer(serializers.Serializer):
    id = serializers.IntegerField(read_only=True)
    product_id = serializers.UUIDField(read_only=True)
    product_name = serializers.CharField(read_only=True)
    quantity = serializers.IntegerField(read_only=True)
    unit_price = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)
    total_price = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    selected_size = serializers.CharField(read_only=True)
    selected_color = serializers.CharField(read_only=True)
    added_at = serializers.DateTimeField(read_only=True)


class CartServiceOutputSerializer(serializers.Serializer):
    id = serializers.IntegerField(read_only=True)
    customer_id = serializers.UUIDField(read_only=True)
    items = CartItemServiceOutputSerializer(many=True, read_only=True)
    items_count = serializers.IntegerField(read_only=True)
    total_items = serializers.IntegerField(read_only=True)
    total_price = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    created_at = serializers.DateTimeField(read_only=True)
    modified_at = serializers.DateTimeField(read_only=True)


class CartCountResponseSerializer(serializers.Serializer):
    count = serializers.IntegerField()


class CartContainsResponseSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    in_cart = serializers.BooleanField()
