from rest_framework import serializers


class ConfirmPaymentRequestSerializer(serializers.Serializer):
    payment_intent_id = serializers.CharField(max_length=255, help_text="Processor payment intent identifier")
