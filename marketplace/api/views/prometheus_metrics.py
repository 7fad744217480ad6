from django.http import HttpResponse
from drf_spectacular.utils import extend_schema
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny


@extend_schema(exclude=True)
@api_view(["GET"])
@permission_classes([AllowAny])
def storefront_prometheus_metrics(request):
    """
    Exposes the cart, order and payment counters in Prometheus text format.
    """
    return HttpResponse(generate_latest(), content_type=CONTENT_TYPE_LATEST)
