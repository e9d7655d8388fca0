"""Hierarchy integrity validation and repair.

``IntegrityValidator`` scans the link store for three classes of structural
defects and returns them as data. ``IssueRepairer`` consumes those issues
and applies a deterministic fix per defect type, one transaction per issue.

Defect types:
- orphaned_variant: variant-level link without a parent link
- invalid_parent: variant-level link whose parent link no longer exists
- cross_marketplace_variants: product-level link with children on another account
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from marketlinks.catalog.repository import CatalogRepository
from marketlinks.domain.exceptions import (
    DomainError,
    LinkNotFoundError,
    ProductNotFoundError,
    UnfixableDefectError,
    VariantNotFoundError,
)
from marketlinks.domain.value_objects import LinkableRef
from marketlinks.infrastructure.models import MarketplaceLink
from marketlinks.infrastructure.repositories import AccountRepository, LinkRepository

logger = structlog.get_logger()


# ============================================================================
# Issue Types
# ============================================================================


class IssueType(str, Enum):
    """Structural defect detected in the link hierarchy."""

    ORPHANED_VARIANT = "orphaned_variant"
    INVALID_PARENT = "invalid_parent"
    CROSS_MARKETPLACE_VARIANTS = "cross_marketplace_variants"


@dataclass
class HierarchyIssue:
    """One defect found by the validator.

    Attributes:
        type: Defect type.
        link_id: Link the defect was found on.
        account_id: Account of that link.
        marketplace: Channel of that account.
        sku: Internal SKU of the link.
        description: Human-readable summary.
        details: Extra context, e.g. the offending child link IDs.
    """

    type: IssueType
    link_id: str
    account_id: str
    marketplace: str | None
    sku: str | None
    description: str
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def id(self) -> str:
        """Stable identifier used to select issues for repair."""
        return f"{self.type.value}:{self.link_id}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "type": self.type.value,
            "link_id": self.link_id,
            "account_id": self.account_id,
            "marketplace": self.marketplace,
            "sku": self.sku,
            "description": self.description,
            "details": self.details,
        }


@dataclass
class ValidationReport:
    """All defects found by one validation pass."""

    issues: list[HierarchyIssue] = field(default_factory=list)

    @property
    def total_issues(self) -> int:
        return len(self.issues)

    @property
    def status(self) -> str:
        return "healthy" if not self.issues else "issues_found"

    def of_type(self, issue_type: IssueType) -> list[HierarchyIssue]:
        """Issues of one defect type."""
        return [issue for issue in self.issues if issue.type is issue_type]


@dataclass
class RepairFailure:
    """An issue the repairer could not fix."""

    issue: HierarchyIssue
    reason: str
    error_code: str | None = None


@dataclass
class RepairReport:
    """Outcome of one repair pass."""

    fixed: list[HierarchyIssue] = field(default_factory=list)
    failed: list[RepairFailure] = field(default_factory=list)

    @property
    def fixed_count(self) -> int:
        return len(self.fixed)

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    @property
    def success(self) -> bool:
        return not self.failed


# ============================================================================
# Integrity Validator
# ============================================================================


class IntegrityValidator:
    """Read-only scan of the link store for hierarchy defects."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def validate(self, account_id: str | None = None) -> ValidationReport:
        """Run all defect checks.

        All three checks always run and accumulate into one report.

        Args:
            account_id: Restrict the scan to one marketplace account.

        Returns:
            ValidationReport with one issue per defect.
        """
        report = ValidationReport()

        async with self.session_factory() as session:
            links = LinkRepository(session)
            channels = await AccountRepository(session).channels_by_id()

            for link in await links.list_orphaned_variants(account_id):
                report.issues.append(
                    self._issue(
                        IssueType.ORPHANED_VARIANT,
                        link,
                        channels,
                        "Variant link has no parent product link",
                    )
                )

            for link in await links.list_dangling_parent_variants(account_id):
                report.issues.append(
                    self._issue(
                        IssueType.INVALID_PARENT,
                        link,
                        channels,
                        f"Variant link points to missing parent link {link.parent_link_id}",
                        details={"parent_link_id": link.parent_link_id},
                    )
                )

            for link in await links.list_cross_account_parents(account_id):
                foreign = [
                    child for child in await links.list_children(link.id) if child.account_id != link.account_id
                ]
                report.issues.append(
                    self._issue(
                        IssueType.CROSS_MARKETPLACE_VARIANTS,
                        link,
                        channels,
                        f"Product link has {len(foreign)} variant link(s) from other marketplaces",
                        details={
                            "child_link_ids": [child.id for child in foreign],
                            "child_marketplaces": sorted({channels.get(child.account_id, "") for child in foreign}),
                        },
                    )
                )

        if report.issues:
            logger.warning(
                "Hierarchy issues found",
                account_id=account_id,
                total_issues=report.total_issues,
                orphaned=len(report.of_type(IssueType.ORPHANED_VARIANT)),
                invalid_parent=len(report.of_type(IssueType.INVALID_PARENT)),
                cross_marketplace=len(report.of_type(IssueType.CROSS_MARKETPLACE_VARIANTS)),
            )
        else:
            logger.info("Hierarchy is healthy", account_id=account_id)

        return report

    @staticmethod
    def _issue(
        issue_type: IssueType,
        link: MarketplaceLink,
        channels: dict[str, str],
        description: str,
        details: dict[str, Any] | None = None,
    ) -> HierarchyIssue:
        return HierarchyIssue(
            type=issue_type,
            link_id=link.id,
            account_id=link.account_id,
            marketplace=channels.get(link.account_id),
            sku=link.internal_sku,
            description=description,
            details=details or {},
        )


# ============================================================================
# Issue Repairer
# ============================================================================


class IssueRepairer:
    """Applies automatic fixes to issues reported by the validator."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        validator: IntegrityValidator | None = None,
    ) -> None:
        """Initialize repairer.

        Args:
            session_factory: Factory for the per-issue sessions.
            validator: Validator used to find issues, one is built if omitted.
        """
        self.session_factory = session_factory
        self.validator = validator or IntegrityValidator(session_factory)

    async def repair(
        self,
        issue_ids: Iterable[str] | None = None,
        account_id: str | None = None,
    ) -> RepairReport:
        """Re-validate and fix issues.

        Args:
            issue_ids: Only fix these issues. Accepts issue IDs
                (``"<type>:<link_id>"``) or bare link IDs. All issues when None.
            account_id: Restrict the validation pass to one account.

        Returns:
            RepairReport separating fixed and failed issues.
        """
        issues = (await self.validator.validate(account_id)).issues
        if issue_ids is not None:
            wanted = set(issue_ids)
            issues = [issue for issue in issues if issue.id in wanted or issue.link_id in wanted]

        report = RepairReport()
        for issue in issues:
            try:
                await self.fix(issue)
            except (DomainError, SQLAlchemyError) as e:
                reason = e.message if isinstance(e, DomainError) else str(e)
                error_code = e.error_code if isinstance(e, DomainError) else "STORE_FAILURE"
                logger.warning("Failed to fix hierarchy issue", issue_id=issue.id, error=reason)
                report.failed.append(RepairFailure(issue=issue, reason=reason, error_code=error_code))
                continue

            report.fixed.append(issue)

        logger.info("Hierarchy repair complete", fixed=report.fixed_count, failed=report.failed_count)
        return report

    async def fix(self, issue: HierarchyIssue) -> None:
        """Fix one issue in its own transaction.

        Raises:
            UnfixableDefectError: For cross-marketplace defects.
            NotFoundError: If the link, variant or product is gone.
        """
        if issue.type is IssueType.CROSS_MARKETPLACE_VARIANTS:
            logger.warning(
                "Cross-marketplace variant issue requires manual intervention",
                link_id=issue.link_id,
                marketplace=issue.marketplace,
                child_link_ids=issue.details.get("child_link_ids"),
            )
            raise UnfixableDefectError(issue.type.value, issue.link_id)

        async with self.session_factory() as session, session.begin():
            links = LinkRepository(session)
            link = await links.get_by_id(issue.link_id)
            if link is None:
                raise LinkNotFoundError(issue.link_id)

            if issue.type is IssueType.INVALID_PARENT:
                link.parent_link_id = None
            await self._attach_product_link(links, CatalogRepository(session), link)

        logger.info("Fixed hierarchy issue", issue_id=issue.id)

    async def _attach_product_link(
        self,
        links: LinkRepository,
        catalog: CatalogRepository,
        link: MarketplaceLink,
    ) -> None:
        """Attach a parentless variant link, creating a pending product link if needed."""
        if link.has_parent:
            return

        variant = await catalog.get_variant(link.linkable_id)
        if variant is None:
            raise VariantNotFoundError(link.linkable_id)
        product = await catalog.get_owning_product(variant)
        if product is None:
            raise ProductNotFoundError(variant.product_id)

        ref = LinkableRef.product(product.id)
        parent = await links.find_for(ref, link.account_id, for_update=True)
        if parent is None:
            parent = await links.save(MarketplaceLink.for_linkable(ref, link.account_id, product.parent_sku))
            logger.info(
                "Created pending product link for orphaned variant",
                product_id=product.id,
                account_id=link.account_id,
            )

        link.parent_link_id = parent.id
        await links.flush()
