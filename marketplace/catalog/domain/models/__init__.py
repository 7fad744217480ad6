from .catalog import Product
from .managers import SoftDeleteManager


__all__ = [
    "Product",
    "SoftDeleteManager",
]
