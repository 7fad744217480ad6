from .inventory_service import InventoryService
from .pricing_service import PricingPolicy, PricingService

__all__ = [
    "InventoryService",
    "PricingPolicy",
    "PricingService",
]
