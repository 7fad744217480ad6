from django.urls import path

from .api.views import payment_views

app_name = "payment_system"

urlpatterns = [
    # Payment intent endpoints
    path("intents/", payment_views.create_payment_intent, name="create_payment_intent"),
    path("confirm/", payment_views.confirm_payment, name="confirm_payment"),
]
