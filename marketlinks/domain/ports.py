"""Interfaces the hierarchy engine consumes.

The catalog and the marketplaces are owned by other systems. The engine
only talks to them through these narrow protocols, so a real API-backed
matcher can replace the simulated one without touching hierarchy logic.
"""

from typing import TYPE_CHECKING, Protocol

from marketlinks.domain.value_objects import ProductMatch, VariantMatch

if TYPE_CHECKING:
    from marketlinks.catalog.models import Product, ProductVariant
    from marketlinks.infrastructure.models import MarketplaceAccount


class CatalogAccessor(Protocol):
    """Read-only access to catalog products and variants."""

    async def get_product(self, product_id: str) -> "Product | None": ...

    async def get_variant(self, variant_id: str) -> "ProductVariant | None": ...

    async def find_variant_by_sku(self, product_id: str, sku: str) -> "ProductVariant | None": ...

    async def get_owning_product(self, variant: "ProductVariant") -> "Product | None": ...


class MarketplaceDataSource(Protocol):
    """Per-account lookup of external product and variant identifiers.

    ``catalog_id`` names the catalog product or variant being probed, so
    catalog entities that share a SKU still resolve to distinct listings.
    """

    async def match_product(
        self,
        sku: str,
        account: "MarketplaceAccount",
        catalog_id: str | None = None,
    ) -> ProductMatch | None: ...

    async def match_variant(
        self,
        sku: str,
        product_match: ProductMatch,
        account: "MarketplaceAccount",
        catalog_id: str | None = None,
    ) -> VariantMatch | None: ...
