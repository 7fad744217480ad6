from rest_framework import serializers


class PaymentIntentResponseSerializer(serializers.Serializer):
    client_secret = serializers.CharField(allow_null=True)
    payment_intent_id = serializers.CharField()
    payment_id = serializers.UUIDField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    currency = serializers.CharField()


class ConfirmPaymentResponseSerializer(serializers.Serializer):
    order_id = serializers.UUIDField()
    created = serializers.BooleanField(help_text="False when the payment had already been confirmed")
