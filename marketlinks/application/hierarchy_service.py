"""Marketplace hierarchy service.

Single entry point for callers (batch jobs, admin tooling) over the
hierarchy components. Holds no state of its own; every component gets
the same injected session factory.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from marketlinks.application.hierarchy_rebuild import HierarchyRebuilder, RebuildReport
from marketlinks.application.hierarchy_sync import HierarchySynchronizer, HierarchySyncResult
from marketlinks.application.integrity import (
    IntegrityValidator,
    IssueRepairer,
    RepairReport,
    ValidationReport,
)
from marketlinks.application.link_service import LinkService
from marketlinks.application.schemas import ProductMarketplaceData, VariantMarketplaceData
from marketlinks.application.sku_matching import AutoLinkReport, SkuMatcher
from marketlinks.application.statistics import HierarchyStatistics, StatisticsReporter
from marketlinks.domain.ports import MarketplaceDataSource


@dataclass
class HierarchyService:
    """Facade over synchronization, maintenance, matching and reporting."""

    synchronizer: HierarchySynchronizer
    rebuilder: HierarchyRebuilder
    validator: IntegrityValidator
    repairer: IssueRepairer
    matcher: SkuMatcher
    reporter: StatisticsReporter
    links: LinkService

    async def sync_product_hierarchy(
        self,
        product_id: str,
        account_id: str,
        product_data: ProductMarketplaceData | dict[str, Any],
        variant_data: Sequence[VariantMarketplaceData | dict[str, Any]] = (),
    ) -> HierarchySyncResult:
        return await self.synchronizer.sync_product_hierarchy(product_id, account_id, product_data, variant_data)

    async def rebuild_for_account(self, account_id: str) -> RebuildReport:
        return await self.rebuilder.rebuild_for_account(account_id)

    async def validate(self, account_id: str | None = None) -> ValidationReport:
        return await self.validator.validate(account_id)

    async def repair(self, issue_ids: Sequence[str] | None = None, account_id: str | None = None) -> RepairReport:
        return await self.repairer.repair(issue_ids, account_id)

    async def auto_link_hierarchical(self) -> AutoLinkReport:
        return await self.matcher.auto_link_hierarchical()

    async def auto_link_by_exact_sku(self) -> AutoLinkReport:
        return await self.matcher.auto_link_by_exact_sku()

    async def get_hierarchy_statistics(self, account_id: str | None = None) -> HierarchyStatistics:
        return await self.reporter.get_hierarchy_statistics(account_id)


def build_hierarchy_service(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    data_source: MarketplaceDataSource | None = None,
) -> HierarchyService:
    """Wire the hierarchy components.

    Args:
        session_factory: Session factory, defaults to the configured database.
        data_source: Marketplace lookup, defaults to the simulated matcher.

    Returns:
        HierarchyService sharing one session factory.
    """
    if session_factory is None:
        from marketlinks.infrastructure.database import async_session_factory

        session_factory = async_session_factory
    if data_source is None:
        from marketlinks.infrastructure.data_source import SimulatedMarketplaceDataSource

        data_source = SimulatedMarketplaceDataSource()

    synchronizer = HierarchySynchronizer(session_factory)
    validator = IntegrityValidator(session_factory)
    return HierarchyService(
        synchronizer=synchronizer,
        rebuilder=HierarchyRebuilder(session_factory),
        validator=validator,
        repairer=IssueRepairer(session_factory, validator),
        matcher=SkuMatcher(session_factory, data_source, synchronizer),
        reporter=StatisticsReporter(session_factory),
        links=LinkService(session_factory),
    )
