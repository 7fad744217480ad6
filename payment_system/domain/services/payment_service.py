"""
PaymentService - Orchestration Layer for Payments

Creates payment intents for the customer's cart and, once the processor
reports success, turns the cart into an order through OrderService. Processor
calls happen outside database transactions; the payment update and the order
creation commit together.
"""

import logging
from decimal import Decimal
from typing import Dict

from django.conf import settings
from django.core.exceptions import PermissionDenied
from django.db import DatabaseError, transaction
from django.utils import timezone

from infrastructure.payments.interface import (
    PaymentException,
    PaymentIntent,
    PaymentProviderInterface,
    PaymentStatus,
    PaymentTimeoutException,
)
from marketplace.cart.domain.services.pricing_service import PricingPolicy, PricingService
from marketplace.models import Cart, Order, OrderStatus
from marketplace.services.base import BaseService, CheckoutAborted, ErrorCodes, ServiceResult, service_err, service_ok
from payment_system.infra.observability.metrics import payment_provider_errors_total, payment_volume_total
from payment_system.models import Payment
from utils.rbac import require_ownership, resolve_customer


logger = logging.getLogger(__name__)


class PaymentService(BaseService):
    """
    Service for orchestrating payment operations.

    Responsibilities:
    - Create a payment intent for the cart total (snapshot prices)
    - Confirm a payment with the processor and create the order

    Dependencies:
    - PaymentProviderInterface: Abstraction for Stripe / mock processor
    - OrderService: single cart -> order entry point
    - PricingService: cart totals
    """

    def __init__(
        self,
        payment_provider: PaymentProviderInterface = None,
        order_service=None,
        pricing_service: PricingService = None,
    ):
        """
        Initialize PaymentService.

        Args:
            payment_provider: Implementation of PaymentProviderInterface
            order_service: OrderService used to create the order
            pricing_service: PricingService used for the intent amount
        """
        super().__init__()
        if payment_provider is None:
            # Fallback to getting provider from infrastructure configuration if not provided
            from infrastructure.container import Container

            self.payment_provider = Container.get_payment_provider()
        else:
            self.payment_provider = payment_provider

        if order_service is None:
            from marketplace.services.order_service import OrderService

            order_service = OrderService()
        self.order_service = order_service
        self.pricing_service = pricing_service or PricingService()

    def _provider_error(self, operation: str, error: PaymentException) -> ServiceResult:
        if isinstance(error, PaymentTimeoutException):
            payment_provider_errors_total.labels(operation=operation, kind="timeout").inc()
            return service_err(ErrorCodes.PAYMENT_PROVIDER_TIMEOUT, str(error))
        payment_provider_errors_total.labels(operation=operation, kind="error").inc()
        return service_err(ErrorCodes.PAYMENT_PROVIDER_ERROR, str(error))

    @BaseService.log_performance
    def create_payment_intent(self, user) -> ServiceResult[Dict]:
        """
        Create a payment intent for the customer's current cart.

        The amount is the sum of quantity x price_at_addition, the same prices
        the order is created with once the payment is confirmed.

        Returns:
            ServiceResult with client_secret, payment_intent_id, amount and currency

        Example:
            >>> result = payment_service.create_payment_intent(user)
            >>> if result.ok:
            ...     client_secret = result.value["client_secret"]
        """
        customer = resolve_customer(user)
        if customer is None:
            return service_err(ErrorCodes.CUSTOMER_NOT_FOUND, "Customer not found.")

        try:
            cart = Cart.objects.filter(customer=customer).first()
            cart_items = list(cart.items.select_related("product")) if cart else []
            if not cart_items:
                return service_err(ErrorCodes.CART_EMPTY, "Cart is empty.")

            totals_result = self.pricing_service.calculate_cart_total(cart_items, PricingPolicy.SNAPSHOT)
            if not totals_result.ok:
                return totals_result

            amount: Decimal = totals_result.value["total_price"]
            currency = getattr(settings, "PAYMENT_CURRENCY", "usd")

            try:
                intent: PaymentIntent = self.payment_provider.create_payment_intent(
                    amount=amount,
                    currency=currency,
                    metadata={"customer_id": str(customer.id), "cart_id": str(cart.id)},
                    customer_email=customer.email,
                )
            except PaymentException as e:
                self.logger.error(f"Payment provider error creating intent for user {customer.id}: {e}", exc_info=True)
                return self._provider_error("create_payment_intent", e)

            payment = Payment.objects.create(
                customer=customer,
                amount=amount,
                currency=currency,
                external_intent_id=intent.intent_id,
                status=Payment.STATUS_PENDING,
            )

            self.logger.info(
                f"Created payment intent {intent.intent_id} for user {customer.id}: {amount} {currency}"
            )

            return service_ok(
                {
                    "client_secret": intent.client_secret,
                    "payment_intent_id": intent.intent_id,
                    "payment_id": payment.id,
                    "amount": amount,
                    "currency": currency,
                }
            )

        except DatabaseError as e:
            self.logger.error(f"Database error creating payment for user {customer.id}: {e}", exc_info=True)
            return service_err(ErrorCodes.PERSISTENCE_ERROR, "Could not save the payment.")
        except Exception as e:
            self.logger.error(f"Internal error creating payment intent for user {customer.id}: {e}", exc_info=True)
            return service_err(ErrorCodes.INTERNAL_ERROR, str(e))

    @BaseService.log_performance
    def confirm_payment_and_create_order(self, user, payment_intent_id: str) -> ServiceResult[Dict]:
        """
        Confirm a payment with the processor and create the order from the cart.

        Confirming an already confirmed payment returns the existing order.

        Args:
            user: Requesting user, must own the payment
            payment_intent_id: Processor intent identifier

        Returns:
            ServiceResult with order_id and whether it was created by this call
        """
        customer = resolve_customer(user)
        if customer is None:
            return service_err(ErrorCodes.CUSTOMER_NOT_FOUND, "Customer not found.")

        try:
            try:
                payment = Payment.objects.get(external_intent_id=payment_intent_id)
            except Payment.DoesNotExist:
                return service_err(ErrorCodes.PAYMENT_NOT_FOUND, "Payment not found")

            try:
                require_ownership(customer, payment.customer_id)
            except PermissionDenied:
                return service_err(ErrorCodes.UNAUTHORIZED, "You do not own this payment.")

            existing_order = Order.all_objects.filter(payment=payment).first()
            if payment.is_succeeded and existing_order is not None:
                self.logger.info(f"Payment {payment_intent_id} already confirmed as order {existing_order.id}")
                return service_ok({"order_id": existing_order.id, "created": False})

            # 1. Verify status with provider (no transaction held)
            try:
                intent = self.payment_provider.retrieve_payment_intent(payment_intent_id)
            except PaymentException as e:
                self.logger.error(f"Payment provider error confirming {payment_intent_id}: {e}", exc_info=True)
                return self._provider_error("retrieve_payment_intent", e)

            if intent.status != PaymentStatus.SUCCEEDED:
                if intent.status in (PaymentStatus.FAILED, PaymentStatus.CANCELED) and not payment.is_succeeded:
                    payment.status = Payment.STATUS_FAILED
                    payment.save(update_fields=["status", "updated_at"])
                    payment_volume_total.labels(currency=payment.currency, status="failed").inc(float(payment.amount))
                return service_err(ErrorCodes.PAYMENT_NOT_SUCCESSFUL, "Payment not successful")

            cart = Cart.objects.filter(customer=customer).first()
            if cart is None:
                return service_err(ErrorCodes.CART_EMPTY, "Cart is empty.")

            # 2. Mark the payment and create the order in one transaction
            with transaction.atomic():
                payment = Payment.objects.select_for_update().get(pk=payment.pk)

                existing_order = Order.all_objects.filter(payment=payment).first()
                if existing_order is not None:
                    return service_ok({"order_id": existing_order.id, "created": False})

                payment.status = Payment.STATUS_SUCCEEDED
                payment.payment_date = timezone.now()
                payment.save(update_fields=["status", "payment_date", "updated_at"])

                order_result = self.order_service.create_order_from_cart(
                    customer,
                    cart.id,
                    pricing=PricingPolicy.SNAPSHOT,
                    payment=payment,
                    initial_status=OrderStatus.PROCESSING,
                )
                if not order_result.ok:
                    raise CheckoutAborted(order_result)

                order = order_result.value

            if order.total_amount != payment.amount:
                self.logger.warning(
                    f"Order {order.id} total {order.total_amount} differs from payment amount {payment.amount}"
                )

            payment_volume_total.labels(currency=payment.currency, status="succeeded").inc(float(payment.amount))

            self.logger.info(f"Confirmed payment {payment_intent_id} for user {customer.id}: order {order.id}")

            return service_ok({"order_id": order.id, "created": True})

        except CheckoutAborted as e:
            return e.result
        except DatabaseError as e:
            self.logger.error(f"Database error confirming payment {payment_intent_id}: {e}", exc_info=True)
            return service_err(ErrorCodes.PERSISTENCE_ERROR, "Could not save the payment.")
        except Exception as e:
            self.logger.error(f"Internal error confirming payment {payment_intent_id}: {e}", exc_info=True)
            return service_err(ErrorCodes.INTERNAL_ERROR, str(e))
