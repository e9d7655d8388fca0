"""Simulated marketplace data source.

Deterministic stand-in for marketplace API lookups, for environments
without live marketplace access. A SKU "exists" on a channel when
``crc32(sku + channel) % 10`` falls below the configured threshold
(30% of SKUs with the default of 3).
"""

import zlib
from collections.abc import Callable

import structlog

from marketlinks.domain.value_objects import ProductMatch, VariantMatch
from marketlinks.infrastructure.config import settings
from marketlinks.infrastructure.models import MarketplaceAccount

logger = structlog.get_logger()

MatchPredicate = Callable[[str, MarketplaceAccount], bool]


def simulate_marketplace_match(sku: str, channel: str, threshold: int | None = None) -> bool:
    """Decide deterministically whether a SKU exists on a channel.

    Args:
        sku: SKU to probe.
        channel: Marketplace channel name.
        threshold: Buckets out of 10 that count as a match.

    Returns:
        True if the SKU is considered listed on the channel.
    """
    if threshold is None:
        threshold = settings.simulated_match_threshold
    return zlib.crc32(f"{sku}{channel}".encode()) % 10 < threshold


class SimulatedMarketplaceDataSource:
    """MarketplaceDataSource backed by a pluggable match predicate.

    Example usage:
        source = SimulatedMarketplaceDataSource()
        match = await source.match_product("ABC-123", account)

        # Every SKU matches
        source = SimulatedMarketplaceDataSource(predicate=lambda sku, account: True)
    """

    def __init__(self, predicate: MatchPredicate | None = None) -> None:
        """Initialize data source.

        Args:
            predicate: Decides whether a SKU is listed on an account,
                defaults to the crc32 simulation keyed on the channel.
        """
        self.predicate = predicate or (lambda sku, account: simulate_marketplace_match(sku, account.channel))

    async def match_product(
        self,
        sku: str,
        account: MarketplaceAccount,
        catalog_id: str | None = None,
    ) -> ProductMatch | None:
        """Look up a product listing by SKU.

        Args:
            sku: Product SKU to probe.
            account: Marketplace account to probe.
            catalog_id: Catalog product the listing is for, keys the external ID.

        Returns:
            ProductMatch if the SKU is listed, None otherwise.
        """
        if not self.predicate(sku, account):
            return None

        logger.debug("Simulated product match", sku=sku, channel=account.channel)
        return ProductMatch(
            external_id=f"ext_prod_{catalog_id or sku}_{account.id}",
            sku=sku,
            extra={"marketplace": account.channel},
        )

    async def match_variant(
        self,
        sku: str,
        product_match: ProductMatch,
        account: MarketplaceAccount,
        catalog_id: str | None = None,
    ) -> VariantMatch | None:
        """Look up a variant listing under a matched product.

        Args:
            sku: Variant SKU to probe.
            product_match: Product the variant should belong to.
            account: Marketplace account to probe.
            catalog_id: Catalog variant the listing is for, keys the external ID.

        Returns:
            VariantMatch if the SKU is listed, None otherwise.
        """
        if not self.predicate(sku, account):
            return None

        logger.debug("Simulated variant match", sku=sku, channel=account.channel)
        return VariantMatch(
            external_product_id=product_match.external_id,
            external_variant_id=f"ext_var_{catalog_id or sku}_{account.id}",
            sku=sku,
            extra={"marketplace": account.channel},
        )
