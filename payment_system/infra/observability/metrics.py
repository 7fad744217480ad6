from prometheus_client import Counter


payment_volume_total = Counter("payment_volume_total", "Total payment volume processed", ["currency", "status"])

payment_provider_errors_total = Counter(
    "payment_provider_errors_total", "Payment processor call failures", ["operation", "kind"]
)
