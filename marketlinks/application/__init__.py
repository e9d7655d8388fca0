"""Application layer - hierarchy services.

- **HierarchySynchronizer**: atomic product + variant sync per account
- **HierarchyRebuilder**: parent repointing for a whole account
- **IntegrityValidator** / **IssueRepairer**: defect scan and fixes
- **SkuMatcher**: SKU-based auto-linking
- **StatisticsReporter**: hierarchy health counters
- **LinkService**: manual link administration
"""

from marketlinks.application.hierarchy_rebuild import HierarchyRebuilder, RebuildReport
from marketlinks.application.hierarchy_service import HierarchyService, build_hierarchy_service
from marketlinks.application.hierarchy_sync import HierarchySynchronizer, HierarchySyncResult
from marketlinks.application.integrity import (
    HierarchyIssue,
    IntegrityValidator,
    IssueRepairer,
    IssueType,
    RepairFailure,
    RepairReport,
    ValidationReport,
)
from marketlinks.application.link_service import LinkResult, LinkService, ProductHierarchyEntry, build_external_url
from marketlinks.application.schemas import ProductMarketplaceData, VariantMarketplaceData
from marketlinks.application.sku_matching import AutoLinkReport, SkuMatcher, generate_sku_variations
from marketlinks.application.statistics import HierarchyStatistics, StatisticsReporter, completion_percentage

__all__ = [
    "HierarchyService",
    "build_hierarchy_service",
    "HierarchySynchronizer",
    "HierarchySyncResult",
    "HierarchyRebuilder",
    "RebuildReport",
    "IntegrityValidator",
    "IssueRepairer",
    "IssueType",
    "HierarchyIssue",
    "ValidationReport",
    "RepairFailure",
    "RepairReport",
    "SkuMatcher",
    "AutoLinkReport",
    "generate_sku_variations",
    "StatisticsReporter",
    "HierarchyStatistics",
    "completion_percentage",
    "LinkService",
    "LinkResult",
    "ProductHierarchyEntry",
    "build_external_url",
    "ProductMarketplaceData",
    "VariantMarketplaceData",
]
