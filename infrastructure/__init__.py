"""
Infrastructure Package
======================

Provides abstraction layers for external dependencies following the Dependency Inversion Principle.

Modules:
    - payments: Payment provider abstraction (Stripe, mock)
    - container: Service locator wiring providers into the storefront services

Tests run against the mock payment provider; switching to Stripe is a
settings change (PAYMENT_PROVIDER).
"""
