from django.contrib import admin

from .models import Cart, CartItem, Order, OrderItem, Product


class CartItemInline(admin.TabularInline):
    model = CartItem
    extra = 0
    fields = ('product', 'quantity', 'price_at_addition', 'selected_size', 'selected_color', 'added_at')
    readonly_fields = ('price_at_addition', 'added_at')


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    fields = ('product_id', 'product_name', 'product_sku', 'quantity', 'unit_price', 'subtotal')
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ('name', 'sku', 'price', 'discount_price', 'is_on_sale', 'stock_quantity',
                    'is_active', 'is_deleted', 'created_at')
    list_filter = ('is_active', 'is_deleted', 'is_on_sale', 'created_at')
    search_fields = ('name', 'sku', 'description')
    readonly_fields = ('id', 'created_at', 'updated_at')

    fieldsets = (
        ('Basic Information', {
            'fields': ('id', 'name', 'sku', 'description')
        }),
        ('Pricing & Inventory', {
            'fields': ('price', 'discount_price', 'is_on_sale', 'stock_quantity')
        }),
        ('Status & Visibility', {
            'fields': ('is_active', 'is_deleted')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        })
    )

    actions = ['activate_products', 'deactivate_products', 'soft_delete_products']

    def get_queryset(self, request):
        # Soft-deleted products stay visible to staff
        return Product.all_objects.all()

    def activate_products(self, request, queryset):
        updated = queryset.update(is_active=True)
        self.message_user(request, f"{updated} products activated.")
    activate_products.short_description = "Activate selected products"

    def deactivate_products(self, request, queryset):
        updated = queryset.update(is_active=False)
        self.message_user(request, f"{updated} products deactivated.")
    deactivate_products.short_description = "Deactivate selected products"

    def soft_delete_products(self, request, queryset):
        updated = queryset.update(is_deleted=True)
        self.message_user(request, f"{updated} products removed from the catalog.")
    soft_delete_products.short_description = "Remove selected products from the catalog"


@admin.register(Cart)
class CartAdmin(admin.ModelAdmin):
    list_display = ('id', 'customer', 'item_count', 'created_at', 'modified_at', 'is_deleted')
    list_filter = ('is_deleted', 'created_at')
    search_fields = ('customer__email', 'customer__username')
    readonly_fields = ('created_at', 'modified_at')
    inlines = [CartItemInline]

    def get_queryset(self, request):
        return Cart.all_objects.select_related('customer')

    def item_count(self, obj):
        return obj.items.count()
    item_count.short_description = "Items"


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ('id', 'customer', 'status', 'total_amount', 'payment', 'order_date')
    list_filter = ('status', 'order_date', 'is_deleted')
    search_fields = ('id', 'customer__email', 'customer__username')
    readonly_fields = ('id', 'customer', 'total_amount', 'payment', 'order_date', 'updated_at')
    inlines = [OrderItemInline]

    fieldsets = (
        ('Order', {
            'fields': ('id', 'customer', 'status', 'order_notes')
        }),
        ('Payment', {
            'fields': ('total_amount', 'payment')
        }),
        ('Timestamps', {
            'fields': ('order_date', 'updated_at'),
            'classes': ('collapse',)
        })
    )

    def get_queryset(self, request):
        return Order.all_objects.select_related('customer', 'payment')
