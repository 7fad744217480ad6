from django.contrib import admin

from .models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ('external_intent_id', 'customer', 'amount', 'currency', 'status', 'payment_date', 'created_at')
    list_filter = ('status', 'currency', 'created_at')
    search_fields = ('external_intent_id', 'customer__email')
    readonly_fields = ('id', 'customer', 'amount', 'currency', 'external_intent_id', 'status',
                       'payment_date', 'created_at', 'updated_at')
    ordering = ('-created_at',)

    def has_add_permission(self, request):
        return False
