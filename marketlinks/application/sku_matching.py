"""SKU matching and auto-linking.

Seeds first-time links for catalog products that have none yet, by probing
the marketplace data source with the catalog SKUs and common alternate
spellings of them. Each (product, account) pair is its own unit of work,
so a failure partway through a batch keeps earlier successes.
"""

from dataclasses import dataclass, field

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from marketlinks.application.hierarchy_sync import HierarchySynchronizer
from marketlinks.application.schemas import ProductMarketplaceData, VariantMarketplaceData
from marketlinks.catalog.models import Product, ProductVariant
from marketlinks.catalog.repository import CatalogRepository
from marketlinks.domain.exceptions import AccountNotFoundError, DomainError, ProductNotFoundError
from marketlinks.domain.ports import MarketplaceDataSource
from marketlinks.domain.value_objects import NO_SKU, LinkableKind, LinkableRef, ProductMatch
from marketlinks.infrastructure.models import MarketplaceAccount, MarketplaceLink
from marketlinks.infrastructure.repositories import AccountRepository, LinkRepository

logger = structlog.get_logger()

# Position at which a separator is inserted when generating spellings.
_SEPARATOR_POSITION = 3
_MIN_LENGTH_FOR_SEPARATOR = 6


def generate_sku_variations(sku: str) -> list[str]:
    """Generate common spellings of a SKU for marketplace probing.

    Produces the trimmed, uppercased SKU; the same without ``-`` and ``_``;
    and, for SKUs of at least six characters lacking a separator, a version
    with that separator inserted after the third character.

    Args:
        sku: Base SKU.

    Returns:
        Distinct variations, the cleaned original first.

    Example:
        >>> generate_sku_variations("abc123")
        ['ABC123', 'ABC-123', 'ABC_123']
    """
    cleaned = sku.strip().upper()
    variations = [cleaned]

    without_separators = cleaned.replace("-", "").replace("_", "")
    if without_separators != cleaned:
        variations.append(without_separators)

    if len(cleaned) >= _MIN_LENGTH_FOR_SEPARATOR:
        for separator in ("-", "_"):
            if separator not in cleaned:
                variations.append(
                    f"{cleaned[:_SEPARATOR_POSITION]}{separator}{cleaned[_SEPARATOR_POSITION:]}"
                )

    return list(dict.fromkeys(variations))


@dataclass
class AutoLinkReport:
    """Outcome of an auto-link batch.

    Attributes:
        product_links_created: Product-level links written.
        variant_links_created: Variant-level links written.
        errors: One entry per (product, account) pair that failed.
    """

    product_links_created: int = 0
    variant_links_created: int = 0
    errors: list[dict[str, str]] = field(default_factory=list)

    @property
    def links_created(self) -> int:
        return self.product_links_created + self.variant_links_created


class SkuMatcher:
    """Discovers marketplace listings for unlinked catalog products.

    Example usage:
        matcher = SkuMatcher(async_session_factory, SimulatedMarketplaceDataSource())
        report = await matcher.auto_link_hierarchical()
        print(report.links_created)
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        data_source: MarketplaceDataSource,
        synchronizer: HierarchySynchronizer | None = None,
    ) -> None:
        """Initialize matcher.

        Args:
            session_factory: Factory for the per-pair sessions.
            data_source: Marketplace lookup used for probing.
            synchronizer: Hierarchy writer reused for each matched product.
        """
        self.session_factory = session_factory
        self.data_source = data_source
        self.synchronizer = synchronizer or HierarchySynchronizer(session_factory)

    async def find_matching_external_sku(self, sku: str, account: MarketplaceAccount) -> str | None:
        """Find the first spelling of a SKU listed on an account.

        Args:
            sku: Catalog SKU.
            account: Marketplace account to probe.

        Returns:
            The marketplace spelling, or None if no variation is listed.
        """
        match = await self._match_product_variations(sku, account)
        return match.sku if match else None

    async def auto_link_hierarchical(self) -> AutoLinkReport:
        """Create product and variant links for products with no links.

        Only variants with a SKU and no link of their own are considered.
        A product match with no variant matches still creates the product link.

        Returns:
            AutoLinkReport with created counts and per-pair errors.
        """
        report = AutoLinkReport()
        candidates, accounts = await self._load_candidates(exclude_linked_variants=True)

        logger.info("Auto-linking hierarchies", products=len(candidates), accounts=len(accounts))

        for product, variants in candidates:
            for account in accounts:
                try:
                    created = await self._link_hierarchy(product, variants, account)
                except (DomainError, SQLAlchemyError) as e:
                    logger.warning(
                        "Auto-link failed",
                        product_id=product.id,
                        account_id=account.id,
                        error=str(e),
                    )
                    report.errors.append({"product_id": product.id, "account_id": account.id, "error": str(e)})
                    continue

                if created is not None:
                    report.product_links_created += 1
                    report.variant_links_created += created

        logger.info(
            "Auto-link complete",
            links_created=report.links_created,
            product_links=report.product_links_created,
            variant_links=report.variant_links_created,
            errors=len(report.errors),
        )
        return report

    async def auto_link_by_exact_sku(self) -> AutoLinkReport:
        """Create pending product links from variant SKU matches.

        For each unlinked product and active account, the first variant
        whose SKU (or a spelling of it) is listed yields one pending
        product-level link.

        Returns:
            AutoLinkReport with created counts and per-pair errors.
        """
        report = AutoLinkReport()
        candidates, accounts = await self._load_candidates(exclude_linked_variants=False)

        for product, variants in candidates:
            for account in accounts:
                try:
                    if await self._link_first_matching_sku(product, variants, account):
                        report.product_links_created += 1
                except (DomainError, SQLAlchemyError) as e:
                    logger.warning(
                        "SKU auto-link failed",
                        product_id=product.id,
                        account_id=account.id,
                        error=str(e),
                    )
                    report.errors.append({"product_id": product.id, "account_id": account.id, "error": str(e)})

        logger.info("SKU auto-link complete", links_created=report.links_created, errors=len(report.errors))
        return report

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _load_candidates(
        self,
        exclude_linked_variants: bool,
    ) -> tuple[list[tuple[Product, list[ProductVariant]]], list[MarketplaceAccount]]:
        """Load unlinked products with their SKU-bearing variants, and active accounts."""
        async with self.session_factory() as session:
            links = LinkRepository(session)
            linked_products = await links.linked_entity_ids(LinkableKind.PRODUCT)
            linked_variants = await links.linked_entity_ids(LinkableKind.VARIANT) if exclude_linked_variants else set()

            candidates = []
            for product, variants in await CatalogRepository(session).list_products_with_sku_variants():
                if product.id in linked_products:
                    continue
                unlinked = [variant for variant in variants if variant.id not in linked_variants]
                if unlinked:
                    candidates.append((product, unlinked))

            accounts = list(await AccountRepository(session).list_active())
        return candidates, accounts

    async def _match_product_variations(
        self,
        sku: str,
        account: MarketplaceAccount,
        catalog_id: str | None = None,
    ) -> ProductMatch | None:
        for variation in generate_sku_variations(sku):
            match = await self.data_source.match_product(variation, account, catalog_id)
            if match is not None:
                return match
        return None

    async def _link_hierarchy(
        self,
        product: Product,
        variants: list[ProductVariant],
        account: MarketplaceAccount,
    ) -> int | None:
        """Probe one product on one account and write its hierarchy.

        Returns:
            Number of variant links written, or None when the product has no match.
        """
        product_match = await self._match_product_variations(product.parent_sku or NO_SKU, account, product.id)
        if product_match is None:
            return None

        product_payload = ProductMarketplaceData.model_validate(
            {**product_match.to_marketplace_data(), "title": product_match.title or product.name}
        )
        variant_payloads = []
        for variant in variants:
            variant_match = await self.data_source.match_variant(variant.sku, product_match, account, variant.id)
            if variant_match is None:
                continue
            data = variant_match.to_marketplace_data(internal_sku=variant.sku)
            data["title"] = variant_match.title or variant.display_title
            variant_payloads.append(VariantMarketplaceData.model_validate(data))

        async with self.session_factory() as session, session.begin():
            catalog = CatalogRepository(session)
            loaded_product = await catalog.get_product(product.id)
            if loaded_product is None:
                raise ProductNotFoundError(product.id)
            loaded_account = await AccountRepository(session).get(account.id)
            if loaded_account is None:
                raise AccountNotFoundError(account.id)

            result = await self.synchronizer.apply_hierarchy(
                LinkRepository(session),
                catalog,
                loaded_product,
                loaded_account,
                product_payload,
                variant_payloads,
            )

        logger.info(
            "Auto-linked product hierarchy",
            product_id=product.id,
            channel=account.channel,
            variant_links=result.synced_variants,
        )
        return result.synced_variants

    async def _link_first_matching_sku(
        self,
        product: Product,
        variants: list[ProductVariant],
        account: MarketplaceAccount,
    ) -> bool:
        """Create one pending product link from the first matching variant SKU."""
        async with self.session_factory() as session:
            if await LinkRepository(session).find_for(LinkableRef.product(product.id), account.id):
                return False

        for variant in variants:
            external_sku = await self.find_matching_external_sku(variant.sku, account)
            if external_sku is None:
                continue

            async with self.session_factory() as session, session.begin():
                links = LinkRepository(session)
                ref = LinkableRef.product(product.id)
                if await links.find_for(ref, account.id, for_update=True):
                    return False
                link = MarketplaceLink.for_linkable(ref, account.id, variant.sku)
                link.external_sku = external_sku
                await links.save(link)

            logger.info(
                "Created pending link from SKU match",
                product_id=product.id,
                channel=account.channel,
                internal_sku=variant.sku,
                external_sku=external_sku,
            )
            return True
        return False
