"""Link administration service.

Manual operations an administrator performs on individual links:
- Confirming, failing and unlinking a link
- Listing the links of a product or variant
- Showing a product's link hierarchy per marketplace
- Building the marketplace URL of a linked listing
"""

from collections.abc import Callable
from dataclasses import dataclass, field

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from marketlinks.domain.exceptions import DomainError, LinkNotFoundError, StoreFailureError
from marketlinks.domain.value_objects import LinkableRef
from marketlinks.infrastructure.models import MarketplaceAccount, MarketplaceLink
from marketlinks.infrastructure.repositories import AccountRepository, LinkRepository

logger = structlog.get_logger()


# ============================================================================
# Service Result Types
# ============================================================================


@dataclass
class LinkResult:
    """Result of a manual link operation."""

    link: MarketplaceLink | None = None
    success: bool = True
    error: str | None = None
    error_code: str | None = None


@dataclass
class ProductHierarchyEntry:
    """A product-level link with its variant links on one marketplace."""

    product_link: MarketplaceLink
    variant_links: list[MarketplaceLink] = field(default_factory=list)
    marketplace: str | None = None
    status: str | None = None


# ============================================================================
# External URLs
# ============================================================================


def build_external_url(link: MarketplaceLink, account: MarketplaceAccount | None) -> str | None:
    """Build the marketplace URL of a linked listing.

    Args:
        link: Link with an external product ID.
        account: Account the link belongs to.

    Returns:
        Listing URL, or None for unknown channels, links without an
        external product ID, or Shopify accounts without a store URL.
    """
    product_id = link.external_product_id
    if not product_id or account is None:
        return None

    if account.channel == "shopify":
        store_url = (account.credentials or {}).get("store_url")
        if not store_url:
            return None
        url = f"https://{store_url}/admin/products/{product_id}"
        if link.external_variant_id and link.is_variant_level:
            url += f"/variants/{link.external_variant_id}"
        return url
    if account.channel == "ebay":
        return f"https://www.ebay.co.uk/itm/{product_id}"
    if account.channel == "amazon":
        return f"https://www.amazon.co.uk/dp/{product_id}"
    return None


# ============================================================================
# Link Service
# ============================================================================


class LinkService:
    """Manual link administration.

    Example usage:
        service = LinkService(async_session_factory)
        result = await service.link_item(link_id, external_product_id="123", linked_by="ops")
        if not result.success:
            print(result.error_code)
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def link_item(
        self,
        link_id: str,
        external_product_id: str | None = None,
        external_variant_id: str | None = None,
        linked_by: str | None = None,
    ) -> LinkResult:
        """Mark a link as linked, optionally recording external IDs."""
        return await self._update(
            link_id,
            "link_item",
            lambda link: link.mark_linked(external_product_id, external_variant_id, linked_by),
        )

    async def unlink_item(self, link_id: str) -> LinkResult:
        """Mark a link as unlinked."""
        return await self._update(link_id, "unlink_item", MarketplaceLink.unlink)

    async def mark_failed(self, link_id: str) -> LinkResult:
        """Mark a link as failed."""
        return await self._update(link_id, "mark_failed", MarketplaceLink.mark_failed)

    async def get_links_for(self, ref: LinkableRef) -> list[MarketplaceLink]:
        """List the links of a product or variant across all accounts, newest first."""
        async with self.session_factory() as session:
            return list(await LinkRepository(session).list_for_linkable(ref))

    async def get_hierarchy_for_product(self, product_id: str) -> list[ProductHierarchyEntry]:
        """List each product-level link of a product with its variant links.

        Args:
            product_id: Catalog product ID.

        Returns:
            One entry per account the product is linked on.
        """
        async with self.session_factory() as session:
            links = LinkRepository(session)
            channels = await AccountRepository(session).channels_by_id()

            hierarchy = []
            for product_link in await links.list_for_linkable(LinkableRef.product(product_id)):
                hierarchy.append(
                    ProductHierarchyEntry(
                        product_link=product_link,
                        variant_links=list(await links.list_children(product_link.id)),
                        marketplace=channels.get(product_link.account_id),
                        status=product_link.link_status,
                    )
                )
        return hierarchy

    async def external_url(self, link_id: str) -> str | None:
        """Marketplace URL of a link's listing, if one can be built."""
        async with self.session_factory() as session:
            link = await LinkRepository(session).get_by_id(link_id)
            if link is None:
                return None
            account = await AccountRepository(session).get(link.account_id)
            return build_external_url(link, account)

    async def _update(self, link_id: str, operation: str, apply: Callable[[MarketplaceLink], None]) -> LinkResult:
        try:
            async with self.session_factory() as session, session.begin():
                link = await LinkRepository(session).get_by_id(link_id)
                if link is None:
                    raise LinkNotFoundError(link_id)
                apply(link)
        except DomainError as e:
            logger.warning("Link operation rejected", operation=operation, link_id=link_id, error=e.message)
            return LinkResult(success=False, error=e.message, error_code=e.error_code)
        except SQLAlchemyError as e:
            raise StoreFailureError(operation, str(e)) from e

        logger.info("Link updated", operation=operation, link_id=link_id, status=link.link_status)
        return LinkResult(link=link)
