# Marketplace API Serializers

from .response_serializers import ErrorResponseSerializer, SuccessResponseSerializer


__all__ = [
    "ErrorResponseSerializer",
    "SuccessResponseSerializer",
]
