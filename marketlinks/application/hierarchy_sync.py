"""Hierarchy synchronization service.

Builds or refreshes the full product + variant link set of one product on
one marketplace account as a single unit of work:

- Upserts the product-level link first, so no variant link ever points at
  a parent that is not yet written
- Upserts one variant-level link per reported variant and forces its parent
- Marks links of variants the marketplace stopped reporting as unlinked
- Skips reported SKUs the catalog does not know
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from marketlinks.application.schemas import (
    ProductMarketplaceData,
    VariantMarketplaceData,
    parse_product_data,
    parse_variant_data,
)
from marketlinks.catalog.models import Product
from marketlinks.catalog.repository import CatalogRepository
from marketlinks.domain.exceptions import (
    AccountNotFoundError,
    DomainError,
    ProductNotFoundError,
    StoreFailureError,
)
from marketlinks.domain.state_machines import LinkStatus
from marketlinks.domain.value_objects import NO_SKU, LinkableRef
from marketlinks.infrastructure.models import MarketplaceAccount, MarketplaceLink
from marketlinks.infrastructure.repositories import AccountRepository, LinkRepository

logger = structlog.get_logger()


# ============================================================================
# Service Result Types
# ============================================================================


@dataclass
class HierarchySyncResult:
    """Result of syncing one product hierarchy.

    Attributes:
        product_link: The product-level link.
        variant_links: Variant-level links created or refreshed by this sync.
        orphaned_links: Existing variant links moved to unlinked.
        skipped_skus: Reported SKUs with no matching catalog variant.
        success: Whether the sync was applied.
        error: Error message if the sync was rejected.
        error_code: Machine-readable error code.
    """

    product_link: MarketplaceLink | None = None
    variant_links: list[MarketplaceLink] = field(default_factory=list)
    orphaned_links: list[MarketplaceLink] = field(default_factory=list)
    skipped_skus: list[str] = field(default_factory=list)
    success: bool = True
    error: str | None = None
    error_code: str | None = None

    @property
    def synced_variants(self) -> int:
        """Number of variant links touched."""
        return len(self.variant_links)


# ============================================================================
# Hierarchy Synchronizer
# ============================================================================


class HierarchySynchronizer:
    """Creates and refreshes product + variant links for one account.

    Example usage:
        synchronizer = HierarchySynchronizer(async_session_factory)
        result = await synchronizer.sync_product_hierarchy(
            product_id=product.id,
            account_id=account.id,
            product_data={"product_id": "ext_p1", "sku": "ABC"},
            variant_data=[{"internal_sku": "ABC-001", "variant_id": "ext_v1", "sku": "ABC-001"}],
        )
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Initialize synchronizer.

        Args:
            session_factory: Factory for the sessions each sync runs in.
        """
        self.session_factory = session_factory

    async def sync_product_hierarchy(
        self,
        product_id: str,
        account_id: str,
        product_data: ProductMarketplaceData | dict[str, Any],
        variant_data: Sequence[VariantMarketplaceData | dict[str, Any]] = (),
    ) -> HierarchySyncResult:
        """Sync a product and its variants to one marketplace account.

        All-or-nothing: on any failure nothing from this call is persisted.

        Args:
            product_id: Catalog product ID.
            account_id: Marketplace account ID.
            product_data: Marketplace product payload (product_id and sku required).
            variant_data: Marketplace variant payloads (internal_sku required).

        Returns:
            HierarchySyncResult with the touched links, or a failed result
            when the payload is invalid or the product/account is unknown.

        Raises:
            StoreFailureError: If the link store fails.
        """
        try:
            product_payload = parse_product_data(product_data)
            variant_payloads = parse_variant_data(list(variant_data))
        except DomainError as e:
            logger.warning("Rejected marketplace data", product_id=product_id, error=e.message)
            return HierarchySyncResult(success=False, error=e.message, error_code=e.error_code)

        try:
            async with self.session_factory() as session, session.begin():
                catalog = CatalogRepository(session)
                product = await catalog.get_product(product_id)
                if product is None:
                    raise ProductNotFoundError(product_id)
                account = await AccountRepository(session).get(account_id)
                if account is None:
                    raise AccountNotFoundError(account_id)

                result = await self.apply_hierarchy(
                    LinkRepository(session),
                    catalog,
                    product,
                    account,
                    product_payload,
                    variant_payloads,
                )
        except DomainError as e:
            logger.warning(
                "Product hierarchy sync aborted",
                product_id=product_id,
                account_id=account_id,
                error=e.message,
            )
            return HierarchySyncResult(success=False, error=e.message, error_code=e.error_code)
        except SQLAlchemyError as e:
            logger.error(
                "Link store failure during hierarchy sync",
                product_id=product_id,
                account_id=account_id,
                error=str(e),
            )
            raise StoreFailureError("sync_product_hierarchy", str(e)) from e

        return result

    async def apply_hierarchy(
        self,
        links: LinkRepository,
        catalog: CatalogRepository,
        product: Product,
        account: MarketplaceAccount,
        product_payload: ProductMarketplaceData,
        variant_payloads: list[VariantMarketplaceData],
    ) -> HierarchySyncResult:
        """Apply a validated sync inside the caller's transaction.

        Args:
            links: Link store bound to the open session.
            catalog: Catalog accessor bound to the open session.
            product: Product being synced.
            account: Target marketplace account.
            product_payload: Validated product payload.
            variant_payloads: Validated variant payloads.

        Returns:
            Successful HierarchySyncResult.
        """
        logger.info(
            "Syncing product hierarchy to marketplace",
            product_id=product.id,
            product_name=product.name,
            channel=account.channel,
            variants_count=len(variant_payloads),
        )

        product_link = await self._upsert_product_link(links, product, account, product_payload)
        result = HierarchySyncResult(product_link=product_link)

        synced_ids: set[str] = set()
        for payload in variant_payloads:
            variant = await catalog.find_variant_by_sku(product.id, payload.internal_sku)
            if variant is None:
                logger.info(
                    "Marketplace reported unknown variant SKU",
                    product_id=product.id,
                    sku=payload.internal_sku,
                    channel=account.channel,
                )
                result.skipped_skus.append(payload.internal_sku)
                continue

            link = await links.find_for(LinkableRef.variant(variant.id), account.id, for_update=True)
            if link is None:
                link = await links.save(
                    MarketplaceLink.for_linkable(
                        LinkableRef.variant(variant.id),
                        account.id,
                        variant.sku,
                        parent_link_id=product_link.id,
                    )
                )
            else:
                link.parent_link_id = product_link.id

            link.internal_sku = variant.sku or NO_SKU
            link.external_sku = payload.sku or variant.sku
            link.external_product_id = payload.product_id or product_link.external_product_id
            link.external_variant_id = payload.variant_id
            link.marketplace_data = payload.model_dump(mode="json")
            link.transition_to(LinkStatus.LINKED)

            if variant.id not in synced_ids:
                synced_ids.add(variant.id)
                result.variant_links.append(link)

        await links.flush()
        result.orphaned_links = await self._unlink_orphans(links, product_link, synced_ids, account)
        await links.flush()

        logger.info(
            "Product hierarchy synced",
            product_link_id=product_link.id,
            synced_variants=result.synced_variants,
            orphaned=len(result.orphaned_links),
            skipped=len(result.skipped_skus),
        )
        return result

    async def _upsert_product_link(
        self,
        links: LinkRepository,
        product: Product,
        account: MarketplaceAccount,
        payload: ProductMarketplaceData,
    ) -> MarketplaceLink:
        ref = LinkableRef.product(product.id)
        link = await links.find_for(ref, account.id, for_update=True)
        if link is None:
            link = await links.save(MarketplaceLink.for_linkable(ref, account.id, product.parent_sku))

        link.parent_link_id = None
        link.internal_sku = product.parent_sku or NO_SKU
        link.external_sku = payload.sku or product.parent_sku
        link.external_product_id = payload.product_id
        link.marketplace_data = payload.model_dump(mode="json")
        link.transition_to(LinkStatus.LINKED)

        await links.flush()
        return link

    async def _unlink_orphans(
        self,
        links: LinkRepository,
        product_link: MarketplaceLink,
        synced_variant_ids: set[str],
        account: MarketplaceAccount,
    ) -> list[MarketplaceLink]:
        orphaned = []
        for child in await links.list_children(product_link.id):
            if not child.is_variant_level or child.linkable_id in synced_variant_ids:
                continue
            if child.status is LinkStatus.UNLINKED:
                continue

            logger.warning(
                "Orphaned variant link found",
                variant_id=child.linkable_id,
                external_sku=child.external_sku,
                channel=account.channel,
            )
            child.unlink()
            orphaned.append(child)
        return orphaned
