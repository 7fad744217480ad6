from rest_framework import serializers


class ErrorResponseSerializer(serializers.Serializer):
    """Standard error response"""

    detail = serializers.CharField(help_text="Human-readable error message")
    code = serializers.CharField(help_text="Error code identifier")
    errors = serializers.JSONField(help_text="Field errors for invalid request data", required=False)


class SuccessResponseSerializer(serializers.Serializer):
    """Standard success response"""

    success = serializers.BooleanField()
