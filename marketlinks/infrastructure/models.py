"""SQLAlchemy models for marketplace accounts and links.

``marketplace_links`` holds the two-level association graph: one row per
(catalog entity, account), with variant rows pointing at their product
row through ``parent_link_id``.
"""

from datetime import datetime, timezone
from typing import Any, Self
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, validates

from marketlinks.domain.state_machines import LinkStatus, validate_link_transition
from marketlinks.domain.value_objects import NO_SKU, LinkableKind, LinkableRef, LinkLevel
from marketlinks.infrastructure.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Marketplace Account
# ============================================================================


class MarketplaceAccount(Base):
    """A connected marketplace account (one store on one channel).

    Read-only from the link engine's point of view.

    Attributes:
        id: Account identifier.
        channel: Marketplace integration, e.g. "shopify" or "ebay".
        display_name: Optional human-facing name.
        is_active: Whether the account takes part in matching.
        credentials: Opaque connection settings.
    """

    __tablename__ = "marketplace_accounts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    channel: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    credentials: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    def __repr__(self) -> str:
        """String representation."""
        return f"<MarketplaceAccount(id={self.id}, channel={self.channel})>"

    @property
    def name(self) -> str:
        """Display name, falling back to the capitalised channel."""
        return self.display_name or self.channel.capitalize()


# ============================================================================
# Marketplace Link
# ============================================================================


class MarketplaceLink(Base):
    """Association between a catalog entity and one marketplace account.

    Product-level links have no parent. Variant-level links should point
    at the product-level link of their owning product on the same account;
    a missing or dangling parent is a detectable defect rather than a
    write-time error, since marketplace data may arrive out of order.

    ``link_level`` is derived from ``linkable_type`` on assignment and
    ``linked_at`` is kept in step with ``link_status`` by the status methods.
    """

    __tablename__ = "marketplace_links"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    linkable_type: Mapped[str] = mapped_column(String(20), nullable=False)
    linkable_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    account_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("marketplace_accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    link_level: Mapped[str] = mapped_column(String(20), nullable=False)
    # Plain indexed column: a dangling parent must stay representable
    parent_link_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)

    internal_sku: Mapped[str] = mapped_column(String(255), nullable=False, default=NO_SKU)
    external_sku: Mapped[str | None] = mapped_column(String(255), nullable=True)
    external_product_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    external_variant_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    link_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=LinkStatus.PENDING.value, index=True
    )
    linked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    linked_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    marketplace_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    __table_args__ = (
        UniqueConstraint(
            "linkable_type",
            "linkable_id",
            "account_id",
            name="uq_marketplace_links_linkable_account",
        ),
        Index("ix_marketplace_links_account_level", "account_id", "link_level"),
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<MarketplaceLink(id={self.id}, {self.linkable_type}={self.linkable_id}, "
            f"account={self.account_id}, status={self.link_status})>"
        )

    @validates("linkable_type")
    def _derive_link_level(self, key: str, value: str) -> str:
        kind = LinkableKind(value)
        self.link_level = LinkLevel.for_kind(kind).value
        return kind.value

    @classmethod
    def for_linkable(
        cls,
        ref: LinkableRef,
        account_id: str,
        internal_sku: str | None,
        parent_link_id: str | None = None,
    ) -> Self:
        """Build a new pending link for a catalog entity.

        Args:
            ref: Product or variant the link points at.
            account_id: Marketplace account ID.
            internal_sku: Catalog SKU, ``NO-SKU`` when missing.
            parent_link_id: Product-level link ID for variant links.

        Returns:
            Unsaved link in ``pending`` status.
        """
        sku = internal_sku or NO_SKU
        return cls(
            linkable_type=ref.kind.value,
            linkable_id=ref.id,
            account_id=account_id,
            parent_link_id=parent_link_id if ref.kind is LinkableKind.VARIANT else None,
            internal_sku=sku,
            external_sku=sku,
            link_status=LinkStatus.PENDING.value,
            linked_at=None,
        )

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    @property
    def ref(self) -> LinkableRef:
        """Tagged reference to the linked catalog entity."""
        return LinkableRef(kind=LinkableKind(self.linkable_type), id=self.linkable_id)

    @property
    def status(self) -> LinkStatus:
        """Current status as an enum."""
        return LinkStatus(self.link_status or LinkStatus.PENDING.value)

    @property
    def is_product_level(self) -> bool:
        return self.link_level == LinkLevel.PRODUCT.value

    @property
    def is_variant_level(self) -> bool:
        return self.link_level == LinkLevel.VARIANT.value

    @property
    def has_parent(self) -> bool:
        return self.parent_link_id is not None

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    def transition_to(self, target: LinkStatus, at: datetime | None = None) -> None:
        """Move the link to a new status.

        Entering ``linked`` stamps ``linked_at``; any other status clears it.
        Refreshing an already linked link keeps its original ``linked_at``
        unless ``at`` is given.

        Args:
            target: Status to move to.
            at: Timestamp for ``linked_at``, defaults to now.

        Raises:
            InvalidStateTransitionError: If the transition is not allowed.
        """
        validate_link_transition(str(self.id), self.status, target)
        if target is not LinkStatus.LINKED:
            self.linked_at = None
        elif at is not None or self.status is not LinkStatus.LINKED or self.linked_at is None:
            self.linked_at = at or _utcnow()
        self.link_status = target.value

    def mark_linked(
        self,
        external_product_id: str | None = None,
        external_variant_id: str | None = None,
        linked_by: str | None = None,
    ) -> None:
        """Confirm the link, keeping existing external IDs when none are given."""
        self.transition_to(LinkStatus.LINKED)
        self.external_product_id = external_product_id or self.external_product_id
        self.external_variant_id = external_variant_id or self.external_variant_id
        self.linked_by = linked_by or self.linked_by

    def mark_failed(self) -> None:
        self.transition_to(LinkStatus.FAILED)

    def mark_pending(self) -> None:
        self.transition_to(LinkStatus.PENDING)

    def unlink(self) -> None:
        """Mark the entity as no longer reported by the marketplace."""
        self.transition_to(LinkStatus.UNLINKED)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "linkable_type": self.linkable_type,
            "linkable_id": self.linkable_id,
            "account_id": self.account_id,
            "link_level": self.link_level,
            "parent_link_id": self.parent_link_id,
            "internal_sku": self.internal_sku,
            "external_sku": self.external_sku,
            "external_product_id": self.external_product_id,
            "external_variant_id": self.external_variant_id,
            "link_status": self.link_status,
            "linked_at": self.linked_at.isoformat() if self.linked_at else None,
            "linked_by": self.linked_by,
            "marketplace_data": self.marketplace_data,
        }
