from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .api.views import prometheus_metrics
from .cart.api.views.cart_views import CartViewSet
from .ordering.api.views.order_views import OrderViewSet

# Create the main router
router = DefaultRouter()
router.register(r"cart", CartViewSet, basename="cart")
router.register(r"orders", OrderViewSet, basename="order")

app_name = "marketplace"

urlpatterns = [
    # Cart item routes keyed by cart item id (manual routing)
    path(
        "cart/items/<int:item_id>/",
        CartViewSet.as_view({"patch": "update_item", "delete": "remove_item"}),
        name="cart-item-detail",
    ),
    path(
        "cart/items/<int:item_id>/increase/",
        CartViewSet.as_view({"post": "increase_item"}),
        name="cart-item-increase",
    ),
    path(
        "cart/items/<int:item_id>/decrease/",
        CartViewSet.as_view({"post": "decrease_item"}),
        name="cart-item-decrease",
    ),
    path(
        "cart/contains/<uuid:product_id>/",
        CartViewSet.as_view({"get": "contains"}),
        name="cart-contains",
    ),
    # Main API routes
    path("", include(router.urls)),
    # Prometheus metrics endpoint
    path("metrics/", prometheus_metrics.storefront_prometheus_metrics, name="storefront-metrics"),
]
