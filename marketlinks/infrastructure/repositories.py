"""Repositories for marketplace accounts and links.

``LinkRepository`` is the link store: every component reads and writes
links only through it. Hierarchy edges are followed by indexed lookups on
``parent_link_id`` instead of loading an object graph.
"""

from collections.abc import Iterable, Sequence
from typing import Any

from sqlalchemy import and_, case, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from marketlinks.domain.exceptions import LinkConflictError
from marketlinks.domain.state_machines import LinkStatus
from marketlinks.domain.value_objects import LinkableKind, LinkableRef, LinkLevel
from marketlinks.infrastructure.models import MarketplaceAccount, MarketplaceLink

_PRODUCT = LinkLevel.PRODUCT.value
_VARIANT = LinkLevel.VARIANT.value


class AccountRepository:
    """Repository for marketplace account reads."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self.session = session

    async def get(self, account_id: str) -> MarketplaceAccount | None:
        """Get account by ID."""
        return await self.session.get(MarketplaceAccount, account_id)

    async def list_active(self) -> Sequence[MarketplaceAccount]:
        """List active accounts ordered by channel."""
        query = (
            select(MarketplaceAccount)
            .where(MarketplaceAccount.is_active.is_(True))
            .order_by(MarketplaceAccount.channel, MarketplaceAccount.id)
        )
        result = await self.session.execute(query)
        return result.scalars().all()

    async def channels_by_id(self) -> dict[str, str]:
        """Map every account ID to its channel."""
        result = await self.session.execute(select(MarketplaceAccount.id, MarketplaceAccount.channel))
        return {row.id: row.channel for row in result.all()}


class LinkRepository:
    """Repository for MarketplaceLink database operations.

    Example usage:
        async with async_session_factory() as session, session.begin():
            links = LinkRepository(session)
            link = await links.find_for(LinkableRef.product(pid), account.id, for_update=True)
            if link is None:
                link = await links.save(MarketplaceLink.for_linkable(...))
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self.session = session

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def save(self, link: MarketplaceLink) -> MarketplaceLink:
        """Save a link and flush so its ID is assigned.

        Args:
            link: Link to save.

        Returns:
            Saved link.

        Raises:
            LinkConflictError: If another link already exists for the same
                linkable and account.
        """
        self.session.add(link)
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise LinkConflictError(link.linkable_type, link.linkable_id, link.account_id) from e
        return link

    async def flush(self) -> None:
        """Flush pending attribute changes."""
        await self.session.flush()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def get_by_id(self, link_id: str) -> MarketplaceLink | None:
        """Get link by ID."""
        return await self.session.get(MarketplaceLink, link_id)

    async def find_for(
        self,
        ref: LinkableRef,
        account_id: str,
        for_update: bool = False,
    ) -> MarketplaceLink | None:
        """Find the link of a catalog entity on one account.

        Args:
            ref: Product or variant reference.
            account_id: Marketplace account ID.
            for_update: Lock the row so concurrent writers serialize.

        Returns:
            The link if one exists, None otherwise.
        """
        query = select(MarketplaceLink).where(
            and_(
                MarketplaceLink.linkable_type == ref.kind.value,
                MarketplaceLink.linkable_id == ref.id,
                MarketplaceLink.account_id == account_id,
            )
        )
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_for_linkable(self, ref: LinkableRef) -> Sequence[MarketplaceLink]:
        """List links of a catalog entity across all accounts."""
        query = (
            select(MarketplaceLink)
            .where(
                and_(
                    MarketplaceLink.linkable_type == ref.kind.value,
                    MarketplaceLink.linkable_id == ref.id,
                )
            )
            .order_by(MarketplaceLink.created_at.desc())
        )
        result = await self.session.execute(query)
        return result.scalars().all()

    async def list_by_account(
        self,
        account_id: str,
        level: LinkLevel | None = None,
    ) -> Sequence[MarketplaceLink]:
        """List links of one account, optionally restricted to a level."""
        conditions = [MarketplaceLink.account_id == account_id]
        if level is not None:
            conditions.append(MarketplaceLink.link_level == level.value)

        query = select(MarketplaceLink).where(and_(*conditions)).order_by(MarketplaceLink.created_at)
        result = await self.session.execute(query)
        return result.scalars().all()

    async def list_children(self, parent_link_id: str) -> Sequence[MarketplaceLink]:
        """List links whose parent is the given link."""
        query = (
            select(MarketplaceLink)
            .where(MarketplaceLink.parent_link_id == parent_link_id)
            .order_by(MarketplaceLink.internal_sku)
        )
        result = await self.session.execute(query)
        return result.scalars().all()

    async def list_by_status(
        self,
        status: LinkStatus,
        account_id: str | None = None,
    ) -> Sequence[MarketplaceLink]:
        """List links in one status, optionally on one account."""
        conditions = [MarketplaceLink.link_status == status.value]
        if account_id is not None:
            conditions.append(MarketplaceLink.account_id == account_id)

        result = await self.session.execute(select(MarketplaceLink).where(and_(*conditions)))
        return result.scalars().all()

    async def list_variant_links_for(
        self,
        account_id: str,
        variant_ids: Iterable[str],
    ) -> Sequence[MarketplaceLink]:
        """List variant-level links on an account for the given variants."""
        ids = list(variant_ids)
        if not ids:
            return []
        query = select(MarketplaceLink).where(
            and_(
                MarketplaceLink.account_id == account_id,
                MarketplaceLink.linkable_type == LinkableKind.VARIANT.value,
                MarketplaceLink.linkable_id.in_(ids),
            )
        )
        result = await self.session.execute(query)
        return result.scalars().all()

    async def linked_entity_ids(self, kind: LinkableKind) -> set[str]:
        """IDs of catalog entities of a kind that have any link at all."""
        query = select(MarketplaceLink.linkable_id).where(MarketplaceLink.linkable_type == kind.value).distinct()
        result = await self.session.execute(query)
        return set(result.scalars().all())

    # ------------------------------------------------------------------
    # Defect scans
    # ------------------------------------------------------------------

    async def list_orphaned_variants(self, account_id: str | None = None) -> Sequence[MarketplaceLink]:
        """Variant-level links with no parent link."""
        conditions = [
            MarketplaceLink.link_level == _VARIANT,
            MarketplaceLink.parent_link_id.is_(None),
        ]
        if account_id is not None:
            conditions.append(MarketplaceLink.account_id == account_id)

        query = select(MarketplaceLink).where(and_(*conditions)).order_by(MarketplaceLink.created_at)
        result = await self.session.execute(query)
        return result.scalars().all()

    async def list_dangling_parent_variants(self, account_id: str | None = None) -> Sequence[MarketplaceLink]:
        """Variant-level links whose parent link no longer exists."""
        parent = aliased(MarketplaceLink)
        conditions = [
            MarketplaceLink.link_level == _VARIANT,
            MarketplaceLink.parent_link_id.is_not(None),
            parent.id.is_(None),
        ]
        if account_id is not None:
            conditions.append(MarketplaceLink.account_id == account_id)

        query = (
            select(MarketplaceLink)
            .outerjoin(parent, parent.id == MarketplaceLink.parent_link_id)
            .where(and_(*conditions))
            .order_by(MarketplaceLink.created_at)
        )
        result = await self.session.execute(query)
        return result.scalars().all()

    async def list_cross_account_parents(self, account_id: str | None = None) -> Sequence[MarketplaceLink]:
        """Product-level links with at least one child on a different account."""
        child = aliased(MarketplaceLink)
        foreign_child = (
            select(child.id)
            .where(
                and_(
                    child.parent_link_id == MarketplaceLink.id,
                    child.account_id != MarketplaceLink.account_id,
                )
            )
            .exists()
        )
        conditions = [MarketplaceLink.link_level == _PRODUCT, foreign_child]
        if account_id is not None:
            conditions.append(MarketplaceLink.account_id == account_id)

        query = select(MarketplaceLink).where(and_(*conditions)).order_by(MarketplaceLink.created_at)
        result = await self.session.execute(query)
        return result.scalars().all()

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    @staticmethod
    def _hierarchy_counters() -> list[Any]:
        is_variant = MarketplaceLink.link_level == _VARIANT
        return [
            func.count(MarketplaceLink.id).label("total"),
            func.count(case((MarketplaceLink.link_level == _PRODUCT, 1))).label("product_links"),
            func.count(case((is_variant, 1))).label("variant_links"),
            func.count(
                case((and_(is_variant, MarketplaceLink.parent_link_id.is_not(None)), 1))
            ).label("hierarchical_links"),
            func.count(
                case((and_(is_variant, MarketplaceLink.parent_link_id.is_(None)), 1))
            ).label("orphaned_variants"),
        ]

    async def count_hierarchy(self, account_id: str | None = None) -> dict[str, int]:
        """Count links by level and parent presence.

        Returns:
            Dict with total, product_links, variant_links,
            hierarchical_links and orphaned_variants.
        """
        query = select(*self._hierarchy_counters())
        if account_id is not None:
            query = query.where(MarketplaceLink.account_id == account_id)

        row = (await self.session.execute(query)).one()
        return dict(row._mapping)

    async def count_by_status(self, account_id: str | None = None) -> dict[str, int]:
        """Count links per status, including statuses with no links."""
        query = select(MarketplaceLink.link_status, func.count(MarketplaceLink.id)).group_by(
            MarketplaceLink.link_status
        )
        if account_id is not None:
            query = query.where(MarketplaceLink.account_id == account_id)

        counts = {status.value: 0 for status in LinkStatus}
        for status, count in (await self.session.execute(query)).all():
            counts[status] = count
        return counts

    async def count_hierarchy_by_channel(self) -> dict[str, dict[str, int]]:
        """Count links by level and parent presence per marketplace channel."""
        query = (
            select(MarketplaceAccount.channel, *self._hierarchy_counters())
            .select_from(MarketplaceLink)
            .join(MarketplaceAccount, MarketplaceAccount.id == MarketplaceLink.account_id)
            .group_by(MarketplaceAccount.channel)
            .order_by(MarketplaceAccount.channel)
        )
        result = await self.session.execute(query)
        breakdown: dict[str, dict[str, int]] = {}
        for row in result.all():
            counters = dict(row._mapping)
            breakdown[counters.pop("channel")] = counters
        return breakdown
