"""Hierarchy rebuild service.

Best-effort maintenance pass that re-derives parent references for every
link on one marketplace account. Never deletes links; it only repoints
``parent_link_id`` or counts what cannot be fixed without marketplace data.
"""

from dataclasses import dataclass, field

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from marketlinks.catalog.repository import CatalogRepository
from marketlinks.domain.exceptions import AccountNotFoundError, DomainError
from marketlinks.domain.value_objects import LinkableRef, LinkLevel
from marketlinks.infrastructure.repositories import AccountRepository, LinkRepository

logger = structlog.get_logger()


@dataclass
class RebuildReport:
    """Outcome of rebuilding one account's hierarchy.

    Attributes:
        product_links_processed: Product-level links whose children were checked.
        variant_links_fixed: Parentless variant links attached to a parent.
        variant_links_repointed: Variant links moved to their product's link.
        orphaned_links_found: Parentless variant links with no product link to attach.
        errors: One entry per link that could not be processed.
    """

    product_links_processed: int = 0
    variant_links_fixed: int = 0
    variant_links_repointed: int = 0
    orphaned_links_found: int = 0
    errors: list[dict[str, str]] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


class HierarchyRebuilder:
    """Repairs parent references for all links under one account.

    Every product link and every parentless variant link is handled in its
    own transaction, so one bad row never blocks the rest of the batch.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def rebuild_for_account(self, account_id: str) -> RebuildReport:
        """Rebuild the link hierarchy of one marketplace account.

        Args:
            account_id: Marketplace account ID.

        Returns:
            RebuildReport with counters and per-link errors.
        """
        report = RebuildReport()

        async with self.session_factory() as session:
            account = await AccountRepository(session).get(account_id)
            if account is None:
                error = AccountNotFoundError(account_id)
                report.errors.append({"account_id": account_id, "error": error.message})
                return report
            channel = account.channel
            links = LinkRepository(session)
            product_link_ids = [
                link.id for link in await links.list_by_account(account_id, level=LinkLevel.PRODUCT)
            ]

        logger.info(
            "Rebuilding hierarchy for marketplace",
            account_id=account_id,
            channel=channel,
            product_links=len(product_link_ids),
        )

        for product_link_id in product_link_ids:
            try:
                report.variant_links_repointed += await self._repoint_children(product_link_id)
                report.product_links_processed += 1
            except (DomainError, SQLAlchemyError) as e:
                logger.warning("Failed to rebuild product hierarchy", product_link_id=product_link_id, error=str(e))
                report.errors.append({"product_link_id": product_link_id, "error": str(e)})

        async with self.session_factory() as session:
            orphan_ids = [link.id for link in await LinkRepository(session).list_orphaned_variants(account_id)]

        for variant_link_id in orphan_ids:
            try:
                attached = await self._attach_parent(variant_link_id)
            except (DomainError, SQLAlchemyError) as e:
                logger.warning("Failed to attach variant link", variant_link_id=variant_link_id, error=str(e))
                report.errors.append({"variant_link_id": variant_link_id, "error": str(e)})
                continue

            if attached:
                report.variant_links_fixed += 1
            else:
                report.orphaned_links_found += 1

        logger.info(
            "Hierarchy rebuild complete",
            account_id=account_id,
            product_links_processed=report.product_links_processed,
            variant_links_fixed=report.variant_links_fixed,
            variant_links_repointed=report.variant_links_repointed,
            orphaned_links_found=report.orphaned_links_found,
            errors=len(report.errors),
        )
        return report

    async def _repoint_children(self, product_link_id: str) -> int:
        """Point every variant link of the product at the product link."""
        async with self.session_factory() as session, session.begin():
            links = LinkRepository(session)
            product_link = await links.get_by_id(product_link_id)
            if product_link is None or not product_link.is_product_level:
                return 0

            variant_ids = await CatalogRepository(session).list_variant_ids(product_link.linkable_id)
            repointed = 0
            for variant_link in await links.list_variant_links_for(product_link.account_id, variant_ids):
                # Parentless links are attached by the second pass
                if variant_link.has_parent and variant_link.parent_link_id != product_link.id:
                    variant_link.parent_link_id = product_link.id
                    repointed += 1
            return repointed

    async def _attach_parent(self, variant_link_id: str) -> bool:
        """Attach a parentless variant link to its product's link if one exists."""
        async with self.session_factory() as session, session.begin():
            links = LinkRepository(session)
            catalog = CatalogRepository(session)

            variant_link = await links.get_by_id(variant_link_id)
            if variant_link is None or variant_link.has_parent:
                return variant_link is not None

            variant = await catalog.get_variant(variant_link.linkable_id)
            product = await catalog.get_owning_product(variant) if variant else None
            if product is None:
                return False

            parent = await links.find_for(LinkableRef.product(product.id), variant_link.account_id)
            if parent is None:
                return False

            variant_link.parent_link_id = parent.id
            return True
