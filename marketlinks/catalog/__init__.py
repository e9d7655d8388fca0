"""Product catalog access.

Read-only models and repository for the products and variants that
marketplace links point at.
"""

from marketlinks.catalog.models import Product, ProductVariant
from marketlinks.catalog.repository import CatalogRepository

__all__ = [
    # Models
    "Product",
    "ProductVariant",
    # Repository
    "CatalogRepository",
]
